from datetime import datetime, timedelta, timezone

BUCKET_FORMAT = '%Y-%m-%dT%H:%M'


def utcnow():
    return datetime.now(timezone.utc)


def _as_utc(moment):
    moment = moment or utcnow()
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def get_minute_bucket(moment=None):
    """'2025-11-09T12:34' for any instant inside that minute."""
    return _as_utc(moment).strftime(BUCKET_FORMAT)


def get_interval_bucket(moment=None, interval_minutes=60):
    """Start of the interval containing ``moment``, counted from the epoch."""
    moment = _as_utc(moment)
    interval_minutes = max(1, int(interval_minutes))
    minutes = int(moment.timestamp() // 60)
    start = (minutes // interval_minutes) * interval_minutes
    return datetime.fromtimestamp(start * 60, tz=timezone.utc).strftime(BUCKET_FORMAT)


def parse_bucket(bucket):
    return datetime.strptime(bucket, BUCKET_FORMAT).replace(tzinfo=timezone.utc)


def epoch_seconds(moment=None):
    return int(_as_utc(moment).timestamp())


def day_range(start_date=None, end_date=None):
    """
    Inclusive date range -> (start_ts, end_ts) epoch seconds.
    The end bound is the following midnight, exclusive.
    """
    start_ts = end_ts = None
    if start_date:
        start = datetime(start_date.year, start_date.month, start_date.day, tzinfo=timezone.utc)
        start_ts = int(start.timestamp())
    if end_date:
        end = datetime(end_date.year, end_date.month, end_date.day, tzinfo=timezone.utc) + timedelta(days=1)
        end_ts = int(end.timestamp())
    return start_ts, end_ts
