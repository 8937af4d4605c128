from doom_index.repositories.market_snapshots import MarketSnapshotRepository
from doom_index.repositories.tokens import TokensRepository
from doom_index.repositories.paintings import PaintingsRepository

__all__ = [
    'MarketSnapshotRepository',
    'TokensRepository',
    'PaintingsRepository',
]
