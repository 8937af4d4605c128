import logging
from sqlalchemy.exc import SQLAlchemyError
from doom_index.extensions import db
from doom_index.errors import Result, StorageError
from doom_index.models.token import Token
from doom_index.utils.time import epoch_seconds

logger = logging.getLogger(__name__)


class TokensRepository:
    def __init__(self, session=None):
        self.session = session or db.session

    def _fail(self, op, key, e):
        self.session.rollback()
        return Result.failure(StorageError(op, key, f"Token {op} failed: {e}"))

    def find_by_id(self, token_id):
        try:
            return Result.success(self.session.query(Token).filter_by(id=token_id).first())
        except SQLAlchemyError as e:
            return self._fail('get', token_id, e)

    def find_recently_selected(self, since_ts):
        """``{id: last_selected_at}`` for tokens selected at or after ``since_ts``."""
        try:
            rows = (
                self.session.query(Token.id, Token.last_selected_at)
                .filter(Token.last_selected_at.isnot(None), Token.last_selected_at >= since_ts)
                .all()
            )
            return Result.success({r.id: r.last_selected_at for r in rows})
        except SQLAlchemyError as e:
            return self._fail('list', 'recent', e)

    def upsert(self, candidate, now=None):
        """Insert or refresh the token row for ``candidate``. Keeps stored context and selection time."""
        ts = epoch_seconds(now)
        try:
            token = self.session.query(Token).filter_by(id=candidate.id).first()
            if not token:
                token = Token(id=candidate.id, created_at=ts)
                self.session.add(token)
            token.symbol = candidate.symbol
            token.name = candidate.name
            token.logo_url = candidate.logo_url or token.logo_url
            if candidate.categories or not token.categories:
                token.categories = list(candidate.categories)
            token.updated_at = ts
            self.session.commit()
            return Result.success(token)
        except SQLAlchemyError as e:
            return self._fail('put', candidate.id, e)

    def mark_selected(self, token_id, now=None):
        ts = epoch_seconds(now)
        try:
            updated = self.session.query(Token).filter_by(id=token_id).update(
                {'last_selected_at': ts, 'updated_at': ts}, synchronize_session=False
            )
            self.session.commit()
            return Result.success(updated > 0)
        except SQLAlchemyError as e:
            return self._fail('put', token_id, e)

    def update_context(self, token_id, short_context, categories=None, now=None):
        ts = epoch_seconds(now)
        values = {'short_context': short_context, 'updated_at': ts}
        if categories:
            values['categories'] = list(categories)
        try:
            updated = self.session.query(Token).filter_by(id=token_id).update(values, synchronize_session=False)
            self.session.commit()
            return Result.success(updated > 0)
        except SQLAlchemyError as e:
            return self._fail('put', token_id, e)
