import pytest
from doom_index.domain import WeightedFragment
from doom_index.pipeline.weighted_prompt import (
    HUMAN_ELEMENT_TEXT,
    NEGATIVE_PROMPT,
    OPENING_LINE,
    STYLE_BASE,
    TOKEN_PHRASES,
    WeightConfig,
    build_prompt,
    calculate_dominance_weights,
    format_fragment,
    to_weighted_fragments,
    weight_summary,
)

ABC = WeightConfig(min_weight=0.1, max_weight=2.0, exponent=2.0, token_set=('A', 'B', 'C'))


class TestDominanceWeights:
    def test_dominant_token_gets_max(self):
        weights = calculate_dominance_weights({'A': 1000, 'B': 0, 'C': 0}, ABC)
        assert weights == {'A': 2.0, 'B': 0.1, 'C': 0.1}

    def test_all_zero_caps_get_min(self):
        weights = calculate_dominance_weights({'A': 0, 'B': 0, 'C': 0}, ABC)
        assert set(weights.values()) == {0.1}

    def test_empty_map_covers_token_set(self):
        weights = calculate_dominance_weights({}, WeightConfig())
        assert weights == {'BTC': 0.75, 'ETH': 0.75, 'ALTS': 0.75, 'TOKEN': 0.75}

    @pytest.mark.parametrize('exponent', [0.0, -1.0])
    def test_non_positive_exponent_stays_in_range(self, exponent):
        config = WeightConfig(min_weight=0.1, max_weight=2.0, exponent=exponent, token_set=('A', 'B'))
        assert calculate_dominance_weights({'A': 1000, 'B': 0}, config) == {'A': 2.0, 'B': 0.1}

    def test_exponent_curve(self):
        weights = calculate_dominance_weights({'A': 100, 'B': 50, 'C': 0}, ABC)
        assert weights['B'] == pytest.approx(0.1 + 0.25 * 1.9)

    def test_monotonic_in_cap(self):
        weights = calculate_dominance_weights({'A': 300, 'B': 200, 'C': 100}, ABC)
        assert weights['A'] >= weights['B'] >= weights['C']

    def test_invalid_caps_count_as_zero(self):
        weights = calculate_dominance_weights({'A': 10, 'B': float('nan'), 'C': -5}, ABC)
        assert weights == {'A': 2.0, 'B': 0.1, 'C': 0.1}

    def test_extra_tokens_are_weighted_too(self):
        weights = calculate_dominance_weights({'A': 10, 'D': 10}, ABC)
        assert list(weights) == ['A', 'B', 'C', 'D']
        assert weights['D'] == 2.0

    @pytest.mark.parametrize('caps', [
        {'A': 1, 'B': 1e12, 'C': 3},
        {'A': float('inf'), 'B': 2, 'C': 0},
        {'A': 'lots', 'B': None, 'C': 7},
    ])
    def test_weights_stay_in_bounds(self, caps):
        for weight in calculate_dominance_weights(caps, ABC).values():
            assert 0.1 <= weight <= 2.0


class TestFragments:
    def test_sorted_descending_with_human_element_last(self):
        fragments = to_weighted_fragments({'BTC': 10, 'ETH': 40, 'ALTS': 20, 'TOKEN': 5}, WeightConfig())
        assert fragments[0].text == TOKEN_PHRASES['ETH']
        assert fragments[-1] == WeightedFragment(HUMAN_ELEMENT_TEXT, 1.0)
        weights = [f.weight for f in fragments[:-1]]
        assert weights == sorted(weights, reverse=True)

    def test_ties_keep_token_set_order(self):
        fragments = to_weighted_fragments({}, WeightConfig())
        assert [f.text for f in fragments[:4]] == [
            TOKEN_PHRASES['BTC'], TOKEN_PHRASES['ETH'], TOKEN_PHRASES['ALTS'], TOKEN_PHRASES['TOKEN'],
        ]

    def test_phrase_override(self):
        fragments = to_weighted_fragments({'TOKEN': 1}, WeightConfig(), phrases={'TOKEN': 'a frog idol'})
        assert fragments[0].text == 'a frog idol'

    def test_format_fragment_two_decimals(self):
        assert format_fragment(WeightedFragment('citadel', 1.23456)) == '(citadel:1.23)'

    def test_weight_summary(self):
        fragments = [WeightedFragment('a', 1.5), WeightedFragment('b', 0.75)]
        assert weight_summary(fragments) == 'weights: sum=2.250, min=0.750, max=1.500'
        assert weight_summary([]) == 'weights: sum=0.000, min=0.000, max=0.000'


class TestBuildPrompt:
    def test_prompt_layout(self):
        result = build_prompt({'BTC': 100, 'ETH': 0, 'ALTS': 0, 'TOKEN': 0})
        lines = result.prompt.split('\n')
        assert lines[0] == OPENING_LINE
        assert lines[1] == STYLE_BASE
        assert lines[2].startswith(f"({TOKEN_PHRASES['BTC']}:1.50), ")
        assert lines[2].endswith(f"({HUMAN_ELEMENT_TEXT}:1.00)")
        assert lines[3] == 'weights: sum=4.750, min=0.750, max=1.500'
        assert result.negative == NEGATIVE_PROMPT

    def test_deterministic(self):
        caps = {'BTC': 1.9e12, 'ETH': 4.2e11, 'ALTS': 1.1e12, 'TOKEN': 5e9}
        assert build_prompt(caps) == build_prompt(caps)
