"""
Runtime toggles for the generation pipeline.

Defaults live in KNOWN_FLAGS; ``FF_<NAME>`` environment variables override
them at startup (``FF_TOKEN_ENRICHMENT=false``). Unknown names are ignored.
"""
import os

KNOWN_FLAGS = {
    # LLM-written token context in the prompt
    'token_enrichment': True,
    # Drop stablecoins from trending candidates
    'exclude_stablecoins': True,
}

TRUTHY = ('true', '1', 'yes', 'on')

_state = dict(KNOWN_FLAGS)


def init_flags(environ=None):
    environ = os.environ if environ is None else environ
    _state.clear()
    _state.update(KNOWN_FLAGS)
    for name in KNOWN_FLAGS:
        raw = environ.get(f"FF_{name.upper()}")
        if raw is not None:
            _state[name] = raw.strip().lower() in TRUTHY


def is_known(flag_name: str) -> bool:
    return flag_name in KNOWN_FLAGS


def is_enabled(flag_name: str) -> bool:
    return _state.get(flag_name, False)


def all_flags() -> dict:
    return dict(_state)


def set_flag(flag_name: str, value: bool):
    if not is_known(flag_name):
        raise KeyError(flag_name)
    _state[flag_name] = bool(value)
