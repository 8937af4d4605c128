import os
import pytest
from datetime import datetime, timezone

# Set test env vars before importing app
os.environ['FF_TOKEN_ENRICHMENT'] = 'true'
os.environ['FF_EXCLUDE_STABLECOINS'] = 'true'

from doom_index import create_app
from doom_index.domain import CandidateSource, MarketSnapshot, PaintingMetadata, TokenCandidate
from doom_index.errors import ExternalApiError
from doom_index.extensions import db as _db
from doom_index.integrations.blob_store import LocalBlobStore
from doom_index.integrations.mock_image import MockImageProvider
from doom_index.services.container import build_orchestrator
from config import TestConfig

FIXED_NOW = datetime(2025, 11, 14, 12, 34, 56, tzinfo=timezone.utc)
FIXED_BUCKET = '2025-11-14T12:00'

DEFAULT_GLOBAL = {
    'market_cap_usd': 3.5e12,
    'volume_usd': 1.2e11,
    'change_pct_24h': 4.5,
    'btc_dominance': 55.0,
    'eth_dominance': 12.0,
    'active_count': 12000,
    'markets_count': 1100,
    'updated_at': 1763120000,
}


def make_candidate(id='pepe', symbol='PEPE', name='Pepe', **overrides):
    values = {
        'logo_url': f'https://img.example.com/{id}.png',
        'price_usd': 1.0,
        'price_change_24h': 6.0,
        'price_change_7d': 10.0,
        'volume_24h_usd': 5e8,
        'market_cap_usd': 5e9,
        'trending_rank': 1,
    }
    values.update(overrides)
    return TokenCandidate(id=id, symbol=symbol, name=name, **values)


def make_snapshot(change=4.5, fear_greed=75, **overrides):
    values = {
        'total_market_cap_usd': 3.5e12,
        'total_volume_usd': 1.2e11,
        'market_cap_change_pct_24h': change,
        'btc_dominance': 55.0,
        'eth_dominance': 12.0,
        'active_cryptocurrencies': 12000,
        'markets': 1100,
        'fear_greed_index': fear_greed,
        'updated_at': 1763120000,
    }
    values.update(overrides)
    return MarketSnapshot(**values)


def make_metadata(bucket, params_hash='a1b2c3d4', seed='abcdef012345', timestamp=None, painting_id=None):
    stamp = bucket.replace('-', '').replace('T', '').replace(':', '')
    return PaintingMetadata(
        id=painting_id or f"DOOM_{stamp}_{params_hash}_{seed}",
        timestamp=timestamp or f"{bucket}:00Z",
        minute_bucket=bucket,
        bucket=bucket,
        params_hash=params_hash,
        seed=seed,
        image_url=f"https://storage.example.com/images/{bucket[:10].replace('-', '/')}/{stamp}.webp",
        file_size=1024,
        visual_params={'bucket': bucket},
        prompt='a baroque painting',
        negative='watermark',
        token_id='pepe',
    )


def storage_key(metadata):
    return f"images/{metadata.bucket[:10].replace('-', '/')}/{metadata.id}.webp"


class FakeMarketClient:
    """Stands in for CoinGeckoClient."""

    def __init__(self, candidates=None, global_data=None, categories=None,
                 trending_error=None, global_error=None):
        self.candidates = list(candidates or [])
        self.global_data = dict(global_data or DEFAULT_GLOBAL)
        self.categories = categories or {}
        self.trending_error = trending_error
        self.global_error = global_error
        self.trending_calls = 0
        self.global_calls = 0

    def get_trending_candidates(self):
        self.trending_calls += 1
        if self.trending_error:
            raise self.trending_error
        return list(self.candidates)

    def get_coins_markets(self, ids, source=CandidateSource.TRENDING):
        return [c.with_updates(source=source) for c in self.candidates if c.id in ids]

    def get_coin_categories(self, coin_id):
        return list(self.categories.get(coin_id, []))

    def get_global_market_data(self):
        self.global_calls += 1
        if self.global_error:
            raise self.global_error
        return dict(self.global_data)


class FakeSentimentClient:
    def __init__(self, value=75, error=None):
        self.value = value
        self.error = error
        self.calls = 0

    def get_index(self):
        self.calls += 1
        if self.error:
            raise self.error
        return {'value': self.value, 'classification': 'Greed', 'timestamp': 1763120000}


class CountingImageProvider(MockImageProvider):
    def __init__(self, error=None):
        self.calls = 0
        self.error = error

    def generate(self, request):
        self.calls += 1
        if self.error:
            raise self.error
        return super().generate(request)


@pytest.fixture(scope='session')
def app():
    """Create app with test config."""
    app = create_app(TestConfig)
    return app


@pytest.fixture(autouse=True)
def setup_db(app):
    """Create tables before each test, drop after."""
    with app.app_context():
        _db.create_all()
        yield
        _db.session.rollback()
        _db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_headers(app):
    return {'X-Admin-Key': app.config['ADMIN_API_KEY']}


@pytest.fixture
def db_session(app):
    with app.app_context():
        yield _db.session


@pytest.fixture
def blob_store(tmp_path):
    return LocalBlobStore(str(tmp_path / 'blobs'))


@pytest.fixture
def market_client():
    return FakeMarketClient(
        candidates=[
            make_candidate(),
            make_candidate('solana', 'SOL', 'Solana', price_change_24h=2.0, trending_rank=5,
                           volume_24h_usd=3e9, market_cap_usd=8e10),
        ],
        categories={'pepe': ['meme'], 'solana': ['layer-1', 'l1']},
    )


@pytest.fixture
def image_provider():
    return CountingImageProvider()


@pytest.fixture
def make_orchestrator(app, market_client, image_provider, blob_store):
    """Orchestrator wired like production, with fake network clients."""
    def _make(market=None, provider=None, sentiment=None, **config_overrides):
        config = {**app.config, **config_overrides}
        return build_orchestrator(
            config,
            market_client=market or market_client,
            sentiment_client=sentiment or FakeSentimentClient(),
            image_provider=provider or image_provider,
            blob_store=blob_store,
        )
    return _make


@pytest.fixture
def api_error():
    return ExternalApiError('CoinGecko', 'upstream unavailable', status=503)
