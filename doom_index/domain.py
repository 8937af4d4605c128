"""Value types shared by the generation pipeline."""
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional, Tuple


class MarketClimate(str, Enum):
    EUPHORIA = 'euphoria'
    COOLING = 'cooling'
    DESPAIR = 'despair'
    PANIC = 'panic'
    TRANSITION = 'transition'


class TokenArchetype(str, Enum):
    PERP_LIQUIDITY = 'perp-liquidity'
    MEME_ASCENDANT = 'meme-ascendant'
    L1_SOVEREIGN = 'l1-sovereign'
    PRIVACY = 'privacy'
    AI_ORACLE = 'ai-oracle'
    POLITICAL = 'political'
    UNKNOWN = 'unknown'


class EventKind(str, Enum):
    RALLY = 'rally'
    COLLAPSE = 'collapse'
    RITUAL = 'ritual'


class Composition(str, Enum):
    CITADEL_PANORAMA = 'citadel-panorama'
    PROCESSION = 'procession'
    CENTRAL_ALTAR = 'central-altar'
    STORM_BATTLEFIELD = 'storm-battlefield'
    COSMIC_HORIZON = 'cosmic-horizon'


class Palette(str, Enum):
    SOLAR_GOLD = 'solar-gold'
    ASHEN_BLUE = 'ashen-blue'
    INFERNAL_RED = 'infernal-red'
    IVORY_MARBLE = 'ivory-marble'


class TrendDirection(str, Enum):
    UP = 'up'
    DOWN = 'down'
    FLAT = 'flat'


class VolatilityLevel(str, Enum):
    LOW = 'low'
    MEDIUM = 'medium'
    HIGH = 'high'


class CandidateSource(str, Enum):
    TRENDING = 'trending'
    FORCED = 'forced'


@dataclass(frozen=True)
class MarketSnapshot:
    total_market_cap_usd: float
    total_volume_usd: float
    market_cap_change_pct_24h: float
    btc_dominance: float
    eth_dominance: float
    active_cryptocurrencies: int
    markets: int
    fear_greed_index: Optional[int]
    updated_at: int
    created_at: Optional[int] = None

    def to_dict(self):
        return {
            'total_market_cap_usd': self.total_market_cap_usd,
            'total_volume_usd': self.total_volume_usd,
            'market_cap_change_pct_24h': self.market_cap_change_pct_24h,
            'btc_dominance': self.btc_dominance,
            'eth_dominance': self.eth_dominance,
            'active_cryptocurrencies': self.active_cryptocurrencies,
            'markets': self.markets,
            'fear_greed_index': self.fear_greed_index,
            'updated_at': self.updated_at,
            'created_at': self.created_at,
        }


@dataclass(frozen=True)
class TokenCandidate:
    id: str
    symbol: str
    name: str
    logo_url: Optional[str] = None
    price_usd: float = 0.0
    price_change_24h: float = 0.0
    price_change_7d: float = 0.0
    volume_24h_usd: float = 0.0
    market_cap_usd: float = 0.0
    categories: Tuple[str, ...] = ()
    trending_rank: Optional[int] = None
    force_priority: Optional[int] = None
    source: CandidateSource = CandidateSource.TRENDING

    def with_updates(self, **changes):
        return replace(self, **changes)


@dataclass(frozen=True)
class Scores:
    trend: float
    impact: float
    mood: float
    final: float

    def to_dict(self):
        return {'trend': self.trend, 'impact': self.impact, 'mood': self.mood, 'final': self.final}


@dataclass(frozen=True)
class SelectedToken:
    candidate: TokenCandidate
    scores: Scores

    @property
    def id(self):
        return self.candidate.id

    @property
    def symbol(self):
        return self.candidate.symbol

    @property
    def name(self):
        return self.candidate.name

    def to_dict(self):
        c = self.candidate
        return {
            'id': c.id,
            'symbol': c.symbol,
            'name': c.name,
            'logo_url': c.logo_url,
            'price_usd': c.price_usd,
            'price_change_24h': c.price_change_24h,
            'price_change_7d': c.price_change_7d,
            'volume_24h_usd': c.volume_24h_usd,
            'market_cap_usd': c.market_cap_usd,
            'categories': list(c.categories),
            'source': c.source.value,
            'scores': self.scores.to_dict(),
        }


@dataclass(frozen=True)
class TokenSnapshot:
    price_change_24h: float
    price_change_7d: float
    volume_24h_usd: float
    market_cap_usd: float
    volatility: float


@dataclass(frozen=True)
class EventPressure:
    kind: EventKind
    intensity: int


@dataclass(frozen=True)
class Dynamics:
    direction: TrendDirection
    volatility: VolatilityLevel


@dataclass(frozen=True)
class PaintingContext:
    token_id: str
    token_name: str
    token_symbol: str
    market: MarketSnapshot
    token: TokenSnapshot
    climate: MarketClimate
    archetype: TokenArchetype
    event: EventPressure
    composition: Composition
    palette: Palette
    dynamics: Dynamics
    motifs: Tuple[str, ...] = ()
    narrative_hints: Tuple[str, ...] = ()

    def to_dict(self):
        """Compact, JSON-serialisable form used in visual params and logs."""
        return {
            'token': {'id': self.token_id, 'name': self.token_name, 'symbol': self.token_symbol},
            'market': {
                'mc_change_24h': self.market.market_cap_change_pct_24h,
                'btc_dominance': self.market.btc_dominance,
                'fear_greed': self.market.fear_greed_index,
            },
            'snapshot': {
                'p': self.token.price_change_24h,
                'p7': self.token.price_change_7d,
                'v': self.token.volume_24h_usd,
                'mc': self.token.market_cap_usd,
                'vol': self.token.volatility,
            },
            'climate': self.climate.value,
            'archetype': self.archetype.value,
            'event': {'kind': self.event.kind.value, 'intensity': self.event.intensity},
            'composition': self.composition.value,
            'palette': self.palette.value,
            'dynamics': {'direction': self.dynamics.direction.value, 'volatility': self.dynamics.volatility.value},
            'motifs': list(self.motifs),
            'narrative_hints': list(self.narrative_hints),
        }


@dataclass(frozen=True)
class WeightedFragment:
    text: str
    weight: float


@dataclass(frozen=True)
class PromptComposition:
    prompt: str
    negative: str
    width: int
    height: int
    format: str
    seed: str
    params_hash: str
    minute_bucket: str
    filename: str
    visual_params: dict = field(default_factory=dict)


@dataclass(frozen=True)
class PaintingMetadata:
    id: str
    timestamp: str
    minute_bucket: str
    bucket: str
    params_hash: str
    seed: str
    image_url: str
    file_size: int
    visual_params: dict
    prompt: str
    negative: str
    token_id: Optional[str] = None

    def to_dict(self):
        return {
            'id': self.id,
            'timestamp': self.timestamp,
            'minute_bucket': self.minute_bucket,
            'bucket': self.bucket,
            'params_hash': self.params_hash,
            'seed': self.seed,
            'image_url': self.image_url,
            'file_size': self.file_size,
            'visual_params': self.visual_params,
            'prompt': self.prompt,
            'negative': self.negative,
            'token_id': self.token_id,
        }


@dataclass(frozen=True)
class ImageRequest:
    prompt: str
    negative: str
    width: int
    height: int
    seed: str
    format: str = 'webp'
    model: Optional[str] = None
    reference_image_url: Optional[str] = None


@dataclass(frozen=True)
class ImageResponse:
    image_bytes: bytes
    provider_meta: dict = field(default_factory=dict)


@dataclass
class PageResult:
    items: List[dict]
    has_more: bool
    next_cursor: Optional[str] = None
    prev_cursor: Optional[str] = None

    def to_dict(self):
        return {
            'items': self.items,
            'has_more': self.has_more,
            'next_cursor': self.next_cursor,
            'prev_cursor': self.prev_cursor,
        }
