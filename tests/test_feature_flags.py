import pytest
from doom_index import feature_flags


@pytest.fixture(autouse=True)
def restore_flags():
    yield
    feature_flags.init_flags()


def test_defaults_without_env():
    feature_flags.init_flags({})
    assert feature_flags.all_flags() == {'token_enrichment': True, 'exclude_stablecoins': True}


def test_env_overrides_known_flags_only():
    feature_flags.init_flags({'FF_TOKEN_ENRICHMENT': ' off ', 'FF_SOMETHING_ELSE': 'true'})
    assert feature_flags.is_enabled('token_enrichment') is False
    assert feature_flags.is_enabled('exclude_stablecoins') is True
    assert feature_flags.is_enabled('something_else') is False


def test_set_flag_rejects_unknown_names():
    with pytest.raises(KeyError):
        feature_flags.set_flag('something_else', True)
    feature_flags.set_flag('exclude_stablecoins', False)
    assert feature_flags.is_enabled('exclude_stablecoins') is False
