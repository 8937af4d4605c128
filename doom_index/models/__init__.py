from doom_index.models.market import MarketSnapshotRecord
from doom_index.models.token import Token
from doom_index.models.painting import Painting

__all__ = [
    'MarketSnapshotRecord',
    'Token',
    'Painting',
]
