import logging
from concurrent.futures import ThreadPoolExecutor
from doom_index.domain import MarketSnapshot
from doom_index.errors import AppError, Result
from doom_index.utils.time import get_interval_bucket

logger = logging.getLogger(__name__)


class MarketDataService:
    """
    Global market snapshot for the current bucket.

    Market totals and the Fear & Greed index are fetched in parallel. The
    index is optional: when it fails the snapshot carries ``None``. A fetched
    snapshot is reused for the rest of the bucket by this instance.
    """

    def __init__(self, market_client, sentiment_client, snapshot_repository, interval_minutes=60):
        self.market_client = market_client
        self.sentiment_client = sentiment_client
        self.snapshot_repository = snapshot_repository
        self.interval_minutes = interval_minutes
        self._cache = {}

    def _fetch_sentiment(self):
        try:
            return self.sentiment_client.get_index()['value']
        except AppError as e:
            logger.warning(f"Fear & Greed index unavailable ({e.kind}): {e.message}")
            return None

    def fetch_global_market_data(self, bucket=None):
        bucket = bucket or get_interval_bucket(interval_minutes=self.interval_minutes)
        if bucket in self._cache:
            return Result.success(self._cache[bucket])

        with ThreadPoolExecutor(max_workers=2) as pool:
            market_future = pool.submit(self.market_client.get_global_market_data)
            sentiment_future = pool.submit(self._fetch_sentiment)
            try:
                market = market_future.result()
            except AppError as e:
                logger.error(f"Global market data fetch failed ({e.kind}): {e.message}")
                return Result.failure(e)
            fear_greed = sentiment_future.result()

        snapshot = MarketSnapshot(
            total_market_cap_usd=market['market_cap_usd'],
            total_volume_usd=market['volume_usd'],
            market_cap_change_pct_24h=market['change_pct_24h'],
            btc_dominance=market['btc_dominance'],
            eth_dominance=market['eth_dominance'],
            active_cryptocurrencies=market['active_count'],
            markets=market['markets_count'],
            fear_greed_index=fear_greed,
            updated_at=market['updated_at'],
        )
        self._cache[bucket] = snapshot
        logger.info(
            f"Market snapshot {bucket}: mc={snapshot.total_market_cap_usd:,.0f} "
            f"change={snapshot.market_cap_change_pct_24h:.2f}% fear_greed={fear_greed}"
        )
        return Result.success(snapshot)

    def store_market_snapshot(self, bucket, snapshot):
        """Result value: True when this call created the bucket's row."""
        return self.snapshot_repository.upsert(bucket, snapshot)

    def find_by_hour_bucket(self, bucket):
        return self.snapshot_repository.find_by_hour_bucket(bucket)
