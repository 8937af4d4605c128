"""
Candidate scoring. Pure functions: every score is a float in [0, 1] and
non-finite inputs are treated as 0.
"""
import math
from doom_index.domain import MarketClimate, Scores

# Trend score weights (rank vs. volume)
WEIGHT_TREND_RANK = 0.60
WEIGHT_TREND_VOLUME = 0.40

# Final score weights
WEIGHT_FINAL_TREND = 0.50
WEIGHT_FINAL_IMPACT = 0.35
WEIGHT_FINAL_MOOD = 0.15

# Impact score weights
WEIGHT_IMPACT_MAGNITUDE = 0.5
WEIGHT_IMPACT_SIZE = 0.5
WEIGHT_SIZE_MARKET_CAP = 0.6
WEIGHT_SIZE_TURNOVER = 0.4

# Trending search lists at most 15 coins: rank 1 -> 1.0, rank 15 -> 0.0
TRENDING_RANK_SPAN = 14

VOLUME_REFERENCE_USD = 10_000_000_000
MARKET_CAP_REFERENCE_USD = 1_000_000_000_000
DEFAULT_PRICE_CHANGE_CEILING_PCT = 50.0

ARCHETYPE_MULTIPLIERS = (
    (('l1', 'layer-1'), 1.0),
    (('defi',), 0.7),
    (('meme',), 0.3),
)
DEFAULT_ARCHETYPE_MULTIPLIER = 0.5


def _finite(value):
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0.0
    return value if math.isfinite(value) else 0.0


def clamp01(value):
    value = _finite(value)
    return max(0.0, min(1.0, value))


def _log_scaled(value, reference):
    value = _finite(value)
    return clamp01(math.log10(max(1.0, value)) / math.log10(reference))


def trend_score(candidate):
    rank_term = 0.0
    if candidate.trending_rank is not None:
        rank = _finite(candidate.trending_rank)
        rank_term = clamp01(1 - (rank - 1) / TRENDING_RANK_SPAN)

    volume_term = _log_scaled(candidate.volume_24h_usd, VOLUME_REFERENCE_USD)
    return clamp01(WEIGHT_TREND_RANK * rank_term + WEIGHT_TREND_VOLUME * volume_term)


def archetype_multiplier(categories):
    tags = {str(c).lower() for c in categories or ()}
    for names, multiplier in ARCHETYPE_MULTIPLIERS:
        if tags.intersection(names):
            return multiplier
    return DEFAULT_ARCHETYPE_MULTIPLIER


def impact_score(candidate, ceiling_pct=DEFAULT_PRICE_CHANGE_CEILING_PCT):
    ceiling = _finite(ceiling_pct)
    if ceiling <= 0:
        ceiling = DEFAULT_PRICE_CHANGE_CEILING_PCT

    # A 7d move is spread over a week, so it counts half as much as a 24h move
    move_24h = abs(_finite(candidate.price_change_24h))
    move_7d = abs(_finite(candidate.price_change_7d)) / 2
    magnitude = clamp01(max(move_24h, move_7d) / ceiling)

    market_cap = _finite(candidate.market_cap_usd)
    volume = _finite(candidate.volume_24h_usd)
    cap_term = _log_scaled(market_cap, MARKET_CAP_REFERENCE_USD)
    turnover_term = clamp01(volume / market_cap) if market_cap > 0 else 0.0
    size = WEIGHT_SIZE_MARKET_CAP * cap_term + WEIGHT_SIZE_TURNOVER * turnover_term

    combined = WEIGHT_IMPACT_MAGNITUDE * magnitude + WEIGHT_IMPACT_SIZE * size
    return clamp01(combined * archetype_multiplier(candidate.categories))


def _bullish_mood(change):
    if change > 5:
        return 1.0
    if change > 0:
        return 0.7
    if change > -5:
        return 0.3
    return 0.0


def _bearish_mood(change):
    if change < -5:
        return 1.0
    if change < 0:
        return 0.7
    if change < 5:
        return 0.3
    return 0.0


def _steady_mood(change):
    magnitude = abs(change)
    if magnitude < 3:
        return 0.8
    if magnitude < 10:
        return 0.5
    return 0.2


MOOD_TABLE = {
    MarketClimate.EUPHORIA: _bullish_mood,
    MarketClimate.PANIC: _bearish_mood,
    MarketClimate.DESPAIR: _bearish_mood,
    MarketClimate.COOLING: _steady_mood,
    MarketClimate.TRANSITION: _steady_mood,
}


def mood_score(candidate, climate):
    """How well the candidate's 24h move agrees with the market climate."""
    change = _finite(candidate.price_change_24h)
    return clamp01(MOOD_TABLE[MarketClimate(climate)](change))


def final_score(trend, impact, mood):
    return clamp01(
        WEIGHT_FINAL_TREND * _finite(trend)
        + WEIGHT_FINAL_IMPACT * _finite(impact)
        + WEIGHT_FINAL_MOOD * _finite(mood)
    )


def score_candidate(candidate, climate, ceiling_pct=DEFAULT_PRICE_CHANGE_CEILING_PCT):
    trend = trend_score(candidate)
    impact = impact_score(candidate, ceiling_pct=ceiling_pct)
    mood = mood_score(candidate, climate)
    return Scores(trend=trend, impact=impact, mood=mood, final=final_score(trend, impact, mood))
