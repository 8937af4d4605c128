import os

from flask import Blueprint, current_app, jsonify
from sqlalchemy import text
from doom_index.extensions import db
from doom_index.utils.time import get_interval_bucket

health_bp = Blueprint('health', __name__)


def _storage_writable(root):
    # The blob store creates its root on first put, so a writable parent is enough
    if not root:
        return False
    target = root if os.path.isdir(root) else os.path.dirname(os.path.abspath(root))
    return os.path.isdir(target) and os.access(target, os.W_OK)


@health_bp.route('/health')
def health():
    interval = current_app.config.get('GENERATION_INTERVAL_MINUTES', 60)
    return jsonify({'status': 'ok', 'bucket': get_interval_bucket(None, interval)})


@health_bp.route('/ready')
def ready():
    try:
        db.session.execute(text('SELECT 1'))
        db_ok = True
    except Exception:
        db.session.rollback()
        db_ok = False

    storage_ok = _storage_writable(current_app.config.get('BLOB_STORE_ROOT'))

    ok = db_ok and storage_ok
    return jsonify({
        'status': 'ready' if ok else 'not_ready',
        'db': db_ok,
        'storage': storage_ok,
    }), 200 if ok else 503
