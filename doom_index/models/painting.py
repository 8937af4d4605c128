import json
from doom_index.extensions import db


class Painting(db.Model):
    __tablename__ = 'paintings'

    id = db.Column(db.String(64), primary_key=True)
    ts = db.Column(db.Integer, nullable=False)  # epoch seconds
    timestamp = db.Column(db.String(32), nullable=False)
    minute_bucket = db.Column(db.String(16), nullable=False)
    bucket = db.Column(db.String(16), nullable=False, unique=True)
    params_hash = db.Column(db.String(8), nullable=False)
    seed = db.Column(db.String(12), nullable=False)
    storage_key = db.Column(db.String(255), nullable=False, unique=True)
    image_url = db.Column(db.Text, nullable=False)
    file_size = db.Column(db.Integer, nullable=False)
    visual_params_json = db.Column(db.Text, nullable=False)
    prompt = db.Column(db.Text, nullable=False)
    negative = db.Column(db.Text, nullable=False)
    token_id = db.Column(db.String(64), nullable=True)

    __table_args__ = (
        db.Index('ix_paintings_ts_id', 'ts', 'id'),
        db.Index('ix_paintings_params_hash', 'params_hash'),
        db.Index('ix_paintings_seed', 'seed'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'ts': self.ts,
            'timestamp': self.timestamp,
            'minute_bucket': self.minute_bucket,
            'bucket': self.bucket,
            'params_hash': self.params_hash,
            'seed': self.seed,
            'storage_key': self.storage_key,
            'image_url': self.image_url,
            'file_size': self.file_size,
            'visual_params': json.loads(self.visual_params_json or '{}'),
            'prompt': self.prompt,
            'negative': self.negative,
            'token_id': self.token_id,
        }
