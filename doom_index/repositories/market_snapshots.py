import logging
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from doom_index.extensions import db
from doom_index.errors import Result, StorageError
from doom_index.models.market import MarketSnapshotRecord
from doom_index.utils.time import epoch_seconds

logger = logging.getLogger(__name__)


class MarketSnapshotRepository:
    def __init__(self, session=None):
        self.session = session or db.session

    def find_by_hour_bucket(self, bucket):
        """Result holding the stored MarketSnapshotRecord, or None when the bucket is empty."""
        try:
            row = self.session.query(MarketSnapshotRecord).filter_by(hour_bucket=bucket).first()
            return Result.success(row)
        except SQLAlchemyError as e:
            self.session.rollback()
            return Result.failure(StorageError('get', bucket, f"Snapshot lookup failed: {e}"))

    def upsert(self, bucket, snapshot, now=None):
        """
        Store ``snapshot`` under ``bucket`` unless a row already exists.
        Result value is True only when this call created the row.
        """
        existing = self.find_by_hour_bucket(bucket)
        if not existing.ok:
            return existing
        if existing.value is not None:
            return Result.success(False)

        row = MarketSnapshotRecord(
            hour_bucket=bucket,
            total_market_cap_usd=snapshot.total_market_cap_usd,
            total_volume_usd=snapshot.total_volume_usd,
            market_cap_change_pct_24h=snapshot.market_cap_change_pct_24h,
            btc_dominance=snapshot.btc_dominance,
            eth_dominance=snapshot.eth_dominance,
            active_cryptocurrencies=snapshot.active_cryptocurrencies,
            markets=snapshot.markets,
            fear_greed_index=snapshot.fear_greed_index,
            updated_at=snapshot.updated_at,
            created_at=epoch_seconds(now),
        )
        self.session.add(row)
        try:
            self.session.commit()
        except IntegrityError:
            # A concurrent run stored this bucket first
            self.session.rollback()
            logger.info(f"Market snapshot for {bucket} already stored by another run")
            return Result.success(False)
        except SQLAlchemyError as e:
            self.session.rollback()
            return Result.failure(StorageError('put', bucket, f"Snapshot write failed: {e}"))

        return Result.success(True)
