import hashlib
import json

PARAMS_HASH_LENGTH = 8
SEED_LENGTH = 12


def canonical_json(value):
    """Key-sorted, whitespace-free JSON so equal dicts serialise identically."""
    return json.dumps(value, sort_keys=True, separators=(',', ':'), ensure_ascii=False, default=str)


def _sha256_hex(text):
    return hashlib.sha256(text.encode('utf-8')).hexdigest()


def hash_visual_params(visual_params):
    """First 8 hex chars of SHA-256 over the canonical visual params."""
    return _sha256_hex(canonical_json(visual_params))[:PARAMS_HASH_LENGTH]


def seed_for_bucket(minute_bucket, params_hash):
    return _sha256_hex(f"{minute_bucket}:{params_hash}")[:SEED_LENGTH]
