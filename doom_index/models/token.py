from doom_index.extensions import db


class Token(db.Model):
    __tablename__ = 'tokens'

    id = db.Column(db.String(64), primary_key=True)
    symbol = db.Column(db.String(32), nullable=False)
    name = db.Column(db.String(128), nullable=False)
    logo_url = db.Column(db.Text)
    categories = db.Column(db.JSON, nullable=False, default=list)
    short_context = db.Column(db.Text)
    last_selected_at = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.Integer, nullable=False)
    updated_at = db.Column(db.Integer, nullable=False)

    __table_args__ = (
        db.Index('ix_tokens_symbol', 'symbol'),
        db.Index('ix_tokens_last_selected_at', 'last_selected_at'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'symbol': self.symbol,
            'name': self.name,
            'logo_url': self.logo_url,
            'categories': self.categories or [],
            'short_context': self.short_context,
            'last_selected_at': self.last_selected_at,
        }
