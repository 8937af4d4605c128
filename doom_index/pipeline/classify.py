"""
Painting context classification.

Every function here is total over its inputs and deterministic: the same
snapshot and token always classify the same way, which keeps the params
hash of a painting reproducible.
"""
import math
from doom_index.domain import (
    Composition,
    Dynamics,
    EventKind,
    EventPressure,
    MarketClimate,
    Palette,
    TokenArchetype,
    TrendDirection,
    VolatilityLevel,
)

# Market climate ladder (first match wins)
EUPHORIA_MC_CHANGE = 3.0
EUPHORIA_FEAR_GREED = 70
COOLING_MC_CHANGE = 0.5
DESPAIR_MC_CHANGE = -5.0
PANIC_MC_CHANGE = -1.5

ARCHETYPE_PRECEDENCE = (
    (TokenArchetype.PERP_LIQUIDITY, ('perp',)),
    (TokenArchetype.MEME_ASCENDANT, ('meme',)),
    (TokenArchetype.L1_SOVEREIGN, ('l1', 'layer-1')),
    (TokenArchetype.PRIVACY, ('privacy',)),
    (TokenArchetype.AI_ORACLE, ('ai', 'artificial-intelligence')),
    (TokenArchetype.POLITICAL, ('political',)),
)

TREND_THRESHOLD_PCT = 3.0
HIGH_VOLATILITY = 0.66
MEDIUM_VOLATILITY = 0.33
VOLATILITY_SCALE_PCT = 50.0

MOTIFS = {
    TokenArchetype.PERP_LIQUIDITY: ('temple', 'wheel-of-liquidity', 'pillar'),
    TokenArchetype.MEME_ASCENDANT: ('crowd', 'idol'),
    TokenArchetype.L1_SOVEREIGN: ('crown', 'bedrock', 'city-walls'),
    TokenArchetype.PRIVACY: ('mask', 'graveyard'),
    TokenArchetype.AI_ORACLE: ('oracle-eye', 'clockwork'),
    TokenArchetype.POLITICAL: ('banner', 'podium'),
    TokenArchetype.UNKNOWN: ('unknown',),
}

CLIMATE_HINTS = {
    MarketClimate.EUPHORIA: ('collective celebration', 'rising tide'),
    MarketClimate.PANIC: ('mass exodus', 'fear spreads'),
    MarketClimate.DESPAIR: ('deepening shadows', 'lost hope'),
    MarketClimate.COOLING: ('calming winds', 'settling dust'),
    MarketClimate.TRANSITION: ('shifting currents', 'uncertain path'),
}


def _finite(value):
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0.0
    return value if math.isfinite(value) else 0.0


def classify_market_climate(snapshot):
    mc = _finite(snapshot.market_cap_change_pct_24h)
    fg = snapshot.fear_greed_index

    if mc > EUPHORIA_MC_CHANGE and fg is not None and fg >= EUPHORIA_FEAR_GREED:
        return MarketClimate.EUPHORIA
    if mc > COOLING_MC_CHANGE:
        return MarketClimate.COOLING
    if mc < DESPAIR_MC_CHANGE:
        return MarketClimate.DESPAIR
    if mc < PANIC_MC_CHANGE:
        return MarketClimate.PANIC
    return MarketClimate.TRANSITION


def classify_token_archetype(token, categories):
    """Map category tags to an archetype. ``token`` is accepted for symmetry with callers."""
    tags = {str(c).strip().lower() for c in categories or ()}
    for archetype, names in ARCHETYPE_PRECEDENCE:
        if tags.intersection(names):
            return archetype
    return TokenArchetype.UNKNOWN


def classify_event_pressure(token_snapshot):
    change = _finite(token_snapshot.price_change_24h)

    if change > 10:
        return EventPressure(EventKind.RALLY, 3)
    if change < -10:
        return EventPressure(EventKind.COLLAPSE, 3)
    if change > 5:
        return EventPressure(EventKind.RALLY, 2)
    if change < -5:
        return EventPressure(EventKind.COLLAPSE, 2)
    return EventPressure(EventKind.RITUAL, 1)


def pick_composition(climate, archetype, event):
    if archetype == TokenArchetype.PERP_LIQUIDITY and event.kind == EventKind.RALLY:
        return Composition.CITADEL_PANORAMA
    if archetype == TokenArchetype.MEME_ASCENDANT and event.kind == EventKind.RALLY:
        return Composition.PROCESSION
    if climate == MarketClimate.EUPHORIA:
        return Composition.CENTRAL_ALTAR
    if climate == MarketClimate.DESPAIR:
        return Composition.STORM_BATTLEFIELD
    return Composition.COSMIC_HORIZON


def pick_palette(climate, archetype, event):
    if climate == MarketClimate.EUPHORIA:
        return Palette.SOLAR_GOLD
    if climate in (MarketClimate.PANIC, MarketClimate.DESPAIR):
        return Palette.ASHEN_BLUE
    if archetype == TokenArchetype.MEME_ASCENDANT and event.kind == EventKind.RALLY:
        return Palette.INFERNAL_RED
    return Palette.IVORY_MARBLE


def volatility_score(price_change_24h, price_change_7d):
    """24h move at full weight plus the daily average of the 7d move, scaled to [0, 1]."""
    raw = (abs(_finite(price_change_24h)) + abs(_finite(price_change_7d)) / 7) / VOLATILITY_SCALE_PCT
    return max(0.0, min(1.0, raw))


def classify_dynamics(token_snapshot):
    change = _finite(token_snapshot.price_change_24h)
    vol = _finite(token_snapshot.volatility)

    if change > TREND_THRESHOLD_PCT:
        direction = TrendDirection.UP
    elif change < -TREND_THRESHOLD_PCT:
        direction = TrendDirection.DOWN
    else:
        direction = TrendDirection.FLAT

    if vol > HIGH_VOLATILITY:
        level = VolatilityLevel.HIGH
    elif vol > MEDIUM_VOLATILITY:
        level = VolatilityLevel.MEDIUM
    else:
        level = VolatilityLevel.LOW

    return Dynamics(direction=direction, volatility=level)


def derive_motifs(archetype):
    return list(MOTIFS[TokenArchetype(archetype)])


def _event_hints(event):
    if event.kind == EventKind.RALLY:
        return [f"momentum building (intensity {event.intensity})"]
    if event.kind == EventKind.COLLAPSE:
        return [f"foundation crumbling (intensity {event.intensity})"]
    return ['steady rhythm', f"enduring pattern (intensity {event.intensity})"]


def derive_narrative_hints(climate, event):
    return list(CLIMATE_HINTS[MarketClimate(climate)]) + _event_hints(event)
