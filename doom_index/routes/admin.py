import hmac
import threading
from functools import wraps
from flask import Blueprint, jsonify, request, current_app
from doom_index import feature_flags
from doom_index.services.container import run_generation_once

admin_bp = Blueprint('admin', __name__)
_generation_thread = None
_generation_trigger_lock = threading.Lock()

STATUS_CODES = {'generated': 200, 'skipped': 200, 'failed': 502}


def _extract_admin_token():
    auth_header = request.headers.get('Authorization', '')
    if auth_header.lower().startswith('bearer '):
        return auth_header.split(' ', 1)[1].strip()
    return (request.headers.get('X-Admin-Key') or '').strip()


def require_admin_key(func):
    """Require ADMIN_API_KEY for all admin endpoints."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        configured_key = current_app.config.get('ADMIN_API_KEY')
        if not configured_key:
            return jsonify({'error': 'Admin API is disabled: ADMIN_API_KEY is not configured'}), 503

        presented_key = _extract_admin_token()
        if not presented_key or not hmac.compare_digest(presented_key, configured_key):
            return jsonify({'error': 'Unauthorized'}), 401

        return func(*args, **kwargs)

    return wrapper


@admin_bp.route('/generate', methods=['POST'])
@require_admin_key
def trigger_generation():
    """Run one generation cycle. ?background=true returns immediately."""
    global _generation_thread

    if request.args.get('background', '').lower() in ('1', 'true', 'yes'):
        app = current_app._get_current_object()

        def run_in_thread():
            with app.app_context():
                run_generation_once()

        with _generation_trigger_lock:
            if _generation_thread and _generation_thread.is_alive():
                return jsonify({'error': 'Generation already running'}), 409
            _generation_thread = threading.Thread(target=run_in_thread, daemon=True)
            _generation_thread.start()
        return jsonify({'status': 'triggered'}), 202

    result = run_generation_once()
    return jsonify(result.to_dict()), STATUS_CODES.get(result.status, 500)


@admin_bp.route('/flags')
@require_admin_key
def list_flags():
    return jsonify(feature_flags.all_flags())


@admin_bp.route('/flags/<flag_name>', methods=['PUT'])
@require_admin_key
def update_flag(flag_name):
    if not feature_flags.is_known(flag_name):
        return jsonify({'error': f"Unknown flag: {flag_name}"}), 404
    data = request.get_json(silent=True) or {}
    if 'enabled' not in data:
        return jsonify({'error': 'JSON body with "enabled" required'}), 400
    feature_flags.set_flag(flag_name, bool(data['enabled']))
    return jsonify({flag_name: feature_flags.is_enabled(flag_name)})
