"""
Weighted prompt generation.

Market caps become dominance weights, dominance weights become
``(phrase:weight)`` fragments, and fragments become the final prompt text.
"""
import math
from dataclasses import dataclass
from typing import Dict, List, Tuple

from doom_index.domain import WeightedFragment

OPENING_LINE = (
    'a grand baroque allegorical oil painting of the world, '
    'all forces visible and weighted by real-time power,'
)

STYLE_BASE = (
    'baroque allegorical oil painting, Caravaggio and Rubens influence, '
    'dramatic tenebrism with intense chiaroscuro, dynamic composition with diagonal movement, '
    'rich vibrant colors, emotional expression, thick impasto oil texture, theatrical lighting, '
    'detailed human figures, cohesive single landscape'
)

NEGATIVE_PROMPT = 'watermark, text, logo, oversaturated colors, low detail hands, extra limbs'

HUMAN_ELEMENT_TEXT = 'figures praying, trading, recording the scene'
HUMAN_ELEMENT_WEIGHT = 1.0

# Forces the pipeline weighs against each other
DEFAULT_TOKEN_SET = ('BTC', 'ETH', 'ALTS', 'TOKEN')

TOKEN_PHRASES = {
    'BTC': 'a colossal golden citadel of hard stone towering over the horizon',
    'ETH': 'a luminous cathedral of interlocking crystal gears and flowing aether',
    'ALTS': 'a restless sprawling bazaar of banners, lanterns and shifting tents',
    'TOKEN': 'a single emblem rising from the crowd',
}


@dataclass(frozen=True)
class WeightConfig:
    min_weight: float = 0.75
    max_weight: float = 1.5
    exponent: float = 2.0
    token_set: Tuple[str, ...] = DEFAULT_TOKEN_SET


@dataclass(frozen=True)
class WeightedPrompt:
    prompt: str
    negative: str


def _cap(value):
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(value) or value < 0:
        return 0.0
    return value


def _ordered_tokens(mc_map, config):
    tokens = [t for t in config.token_set]
    tokens.extend(t for t in mc_map if t not in config.token_set)
    return tokens


def calculate_dominance_weights(mc_map: Dict[str, float], config: WeightConfig) -> Dict[str, float]:
    """
    weight = min + (cap / max_cap) ** exponent * (max - min), clamped.

    Every token gets ``min_weight`` when no token has a positive cap.
    """
    lo, hi = config.min_weight, config.max_weight
    tokens = _ordered_tokens(mc_map, config)
    caps = {t: _cap(mc_map.get(t, 0)) for t in tokens}
    top = max(caps.values(), default=0.0)

    if top <= 0:
        return {t: lo for t in tokens}

    weights = {}
    for token in tokens:
        ratio = caps[token] / top
        # Zero-cap tokens sit at the floor whatever the exponent
        curve = ratio ** config.exponent if ratio > 0 else 0.0
        weight = lo + curve * (hi - lo)
        weights[token] = max(lo, min(hi, weight))
    return weights


def to_weighted_fragments(mc_map, config: WeightConfig, phrases=None) -> List[WeightedFragment]:
    phrases = {**TOKEN_PHRASES, **(phrases or {})}
    weights = calculate_dominance_weights(mc_map, config)

    fragments = [
        WeightedFragment(text=phrases.get(token, token.lower()), weight=weight)
        for token, weight in weights.items()
    ]
    # sorted() is stable: equal weights keep token_set order
    fragments = sorted(fragments, key=lambda f: f.weight, reverse=True)
    fragments.append(WeightedFragment(text=HUMAN_ELEMENT_TEXT, weight=HUMAN_ELEMENT_WEIGHT))
    return fragments


def format_fragment(fragment):
    return f"({fragment.text}:{fragment.weight:.2f})"


def weight_summary(fragments):
    weights = [f.weight for f in fragments]
    if not weights:
        return 'weights: sum=0.000, min=0.000, max=0.000'
    return f"weights: sum={sum(weights):.3f}, min={min(weights):.3f}, max={max(weights):.3f}"


def build_prompt(mc_map, config=None, phrases=None) -> WeightedPrompt:
    config = config or WeightConfig()
    fragments = to_weighted_fragments(mc_map, config, phrases=phrases)

    lines = [
        OPENING_LINE,
        STYLE_BASE,
        ', '.join(format_fragment(f) for f in fragments),
        weight_summary(fragments),
    ]
    return WeightedPrompt(prompt='\n'.join(lines), negative=NEGATIVE_PROMPT)
