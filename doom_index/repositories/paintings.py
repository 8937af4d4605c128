"""
Painting index rows: idempotent insert and keyset pagination.

Pages are ordered by ``(ts, id)``. A cursor is the URL-safe base64 of the
compact JSON ``{"id": ..., "ts": ...}`` of the last row a client has seen.
"""
import base64
import binascii
import json
import logging
from datetime import datetime, timezone

from sqlalchemy import and_, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from doom_index.domain import PageResult
from doom_index.errors import ParsingError, Result, StorageError
from doom_index.extensions import db
from doom_index.models.painting import Painting
from doom_index.utils.hashing import canonical_json
from doom_index.utils.time import day_range

logger = logging.getLogger(__name__)

MIN_LIMIT = 1
MAX_LIMIT = 100


def encode_cursor(cursor):
    raw = json.dumps({'ts': int(cursor['ts']), 'id': cursor['id']}, separators=(',', ':'), sort_keys=True)
    return base64.urlsafe_b64encode(raw.encode('utf-8')).decode('ascii')


def decode_cursor(value):
    """Inverse of encode_cursor. Raises ParsingError on anything malformed."""
    try:
        padded = value + '=' * (-len(value) % 4)
        data = json.loads(base64.urlsafe_b64decode(padded.encode('ascii')).decode('utf-8'))
    except (binascii.Error, UnicodeError, ValueError, TypeError, AttributeError) as e:
        raise ParsingError(value, f"Invalid cursor: {e}") from e

    if not isinstance(data, dict):
        raise ParsingError(value, 'Invalid cursor: expected an object')
    ts, painting_id = data.get('ts'), data.get('id')
    if isinstance(ts, bool) or not isinstance(ts, int) or not isinstance(painting_id, str):
        raise ParsingError(value, 'Invalid cursor: ts must be an integer and id a string')
    return {'ts': ts, 'id': painting_id}


def clamp_limit(limit):
    try:
        limit = int(limit)
    except (TypeError, ValueError):
        limit = MAX_LIMIT
    return max(MIN_LIMIT, min(MAX_LIMIT, limit))


def _timestamp_to_epoch(timestamp):
    moment = datetime.fromisoformat(timestamp.replace('Z', '+00:00'))
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return int(moment.timestamp())


class PaintingsRepository:
    def __init__(self, session=None):
        self.session = session or db.session

    def insert(self, metadata, storage_key):
        """
        Insert the index row for a painting. Result value is False when a row
        with the same id, bucket or storage key already exists.
        """
        row = Painting(
            id=metadata.id,
            ts=_timestamp_to_epoch(metadata.timestamp),
            timestamp=metadata.timestamp,
            minute_bucket=metadata.minute_bucket,
            bucket=metadata.bucket,
            params_hash=metadata.params_hash,
            seed=metadata.seed,
            storage_key=storage_key,
            image_url=metadata.image_url,
            file_size=metadata.file_size,
            visual_params_json=canonical_json(metadata.visual_params),
            prompt=metadata.prompt,
            negative=metadata.negative,
            token_id=metadata.token_id,
        )
        self.session.add(row)
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            logger.info(f"Painting {metadata.id} (bucket {metadata.bucket}) already indexed")
            return Result.success(False)
        except SQLAlchemyError as e:
            self.session.rollback()
            return Result.failure(StorageError('put', storage_key, f"Painting index insert failed: {e}"))
        return Result.success(True)

    def find_by_id(self, painting_id):
        try:
            return Result.success(self.session.query(Painting).filter_by(id=painting_id).first())
        except SQLAlchemyError as e:
            self.session.rollback()
            return Result.failure(StorageError('get', painting_id, f"Painting lookup failed: {e}"))

    def find_by_hour_bucket(self, bucket):
        try:
            return Result.success(self.session.query(Painting).filter_by(bucket=bucket).first())
        except SQLAlchemyError as e:
            self.session.rollback()
            return Result.failure(StorageError('get', bucket, f"Painting lookup failed: {e}"))

    def list(self, limit, cursor=None, start_date=None, end_date=None, direction='desc',
             params_hash=None, seed=None):
        limit = clamp_limit(limit)
        descending = direction != 'asc'

        try:
            position = decode_cursor(cursor) if cursor else None
        except ParsingError as e:
            return Result.failure(e)

        query = self.session.query(Painting)
        start_ts, end_ts = day_range(start_date, end_date)
        if start_ts is not None:
            query = query.filter(Painting.ts >= start_ts)
        if end_ts is not None:
            query = query.filter(Painting.ts < end_ts)
        if params_hash:
            query = query.filter(Painting.params_hash == params_hash)
        if seed:
            query = query.filter(Painting.seed == seed)

        if position:
            if descending:
                query = query.filter(or_(
                    Painting.ts < position['ts'],
                    and_(Painting.ts == position['ts'], Painting.id < position['id']),
                ))
            else:
                query = query.filter(or_(
                    Painting.ts > position['ts'],
                    and_(Painting.ts == position['ts'], Painting.id > position['id']),
                ))

        if descending:
            query = query.order_by(Painting.ts.desc(), Painting.id.desc())
        else:
            query = query.order_by(Painting.ts.asc(), Painting.id.asc())

        try:
            rows = query.limit(limit + 1).all()
        except SQLAlchemyError as e:
            self.session.rollback()
            return Result.failure(StorageError('list', 'paintings', f"Painting listing failed: {e}"))

        has_more = len(rows) > limit
        rows = rows[:limit]

        next_cursor = prev_cursor = None
        if rows:
            if has_more:
                next_cursor = encode_cursor({'ts': rows[-1].ts, 'id': rows[-1].id})
            if position:
                prev_cursor = encode_cursor({'ts': rows[0].ts, 'id': rows[0].id})

        logger.debug(
            f"Listed {len(rows)} paintings (limit={limit}, direction={'desc' if descending else 'asc'}, "
            f"has_more={has_more})"
        )
        return Result.success(PageResult(
            items=[r.to_dict() for r in rows],
            has_more=has_more,
            next_cursor=next_cursor,
            prev_cursor=prev_cursor,
        ))
