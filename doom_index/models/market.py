from doom_index.extensions import db
from doom_index.domain import MarketSnapshot


class MarketSnapshotRecord(db.Model):
    __tablename__ = 'market_snapshots'

    hour_bucket = db.Column(db.String(16), primary_key=True)
    total_market_cap_usd = db.Column(db.Float, nullable=False)
    total_volume_usd = db.Column(db.Float, nullable=False)
    market_cap_change_pct_24h = db.Column(db.Float, nullable=False)
    btc_dominance = db.Column(db.Float, nullable=False)
    eth_dominance = db.Column(db.Float, nullable=False)
    active_cryptocurrencies = db.Column(db.Integer, nullable=False)
    markets = db.Column(db.Integer, nullable=False)
    fear_greed_index = db.Column(db.Integer, nullable=True)
    updated_at = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.Integer, nullable=False)

    __table_args__ = (
        db.Index('ix_market_snapshots_created_at', 'created_at'),
    )

    def to_snapshot(self):
        return MarketSnapshot(
            total_market_cap_usd=self.total_market_cap_usd,
            total_volume_usd=self.total_volume_usd,
            market_cap_change_pct_24h=self.market_cap_change_pct_24h,
            btc_dominance=self.btc_dominance,
            eth_dominance=self.eth_dominance,
            active_cryptocurrencies=self.active_cryptocurrencies,
            markets=self.markets,
            fear_greed_index=self.fear_greed_index,
            updated_at=self.updated_at,
            created_at=self.created_at,
        )

    def to_dict(self):
        return {'hour_bucket': self.hour_bucket, **self.to_snapshot().to_dict()}
