import re

FILENAME_PATTERN = re.compile(r'^DOOM_\d{12}_[0-9a-f]{8}_[0-9a-f]{12}\.webp$')
DATE_PREFIX = re.compile(r'^(\d{4})-(\d{2})-(\d{2})')
LOCAL_STORAGE_PATH = '/api/storage'


def build_generation_filename(minute_bucket, params_hash, seed):
    """'2025-11-14T12:34' -> DOOM_202511141234_<hash>_<seed>.webp"""
    stamp = re.sub(r'\D', '', minute_bucket)[:12]
    return f"DOOM_{stamp}_{params_hash}_{seed}.webp"


def is_valid_painting_filename(filename):
    return bool(FILENAME_PATTERN.match(filename or ''))


def extract_id_from_filename(filename):
    if filename.endswith('.webp'):
        return filename[:-len('.webp')]
    return filename


def build_painting_key(date_string, filename):
    """images/YYYY/MM/DD/<filename> from a YYYY-MM-DD date or ISO timestamp."""
    if hasattr(date_string, 'isoformat'):
        date_string = date_string.isoformat()
    match = DATE_PREFIX.match(date_string or '')
    if not match:
        raise ValueError(f"Invalid date format: {date_string}. Expected YYYY-MM-DD or ISO timestamp.")
    year, month, day = match.groups()
    return f"images/{year}/{month}/{day}/{filename}"


def build_public_url(key, base_url=None):
    key = key.lstrip('/')
    if not base_url:
        return f"{LOCAL_STORAGE_PATH}/{key}"

    base_url = base_url.rstrip('/')
    if not base_url.startswith(('http://', 'https://')):
        scheme = 'http' if base_url.startswith('localhost') else 'https'
        base_url = f"{scheme}://{base_url}"
    return f"{base_url}/{key}"
