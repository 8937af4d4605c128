import mimetypes
from datetime import datetime
from flask import Blueprint, Response, current_app, jsonify, request
from doom_index.errors import AppError
from doom_index.integrations.blob_store import LocalBlobStore
from doom_index.repositories.paintings import PaintingsRepository

paintings_bp = Blueprint('paintings', __name__)


def _parse_date(value):
    if not value:
        return None
    return datetime.strptime(value, '%Y-%m-%d').date()


@paintings_bp.route('/paintings')
def list_paintings():
    """Keyset-paginated painting archive, newest first by default."""
    direction = request.args.get('direction', 'desc')
    if direction not in ('asc', 'desc'):
        return jsonify({'error': 'direction must be asc or desc'}), 400

    try:
        start_date = _parse_date(request.args.get('from'))
        end_date = _parse_date(request.args.get('to'))
    except ValueError:
        return jsonify({'error': 'Invalid date format. Use YYYY-MM-DD'}), 400
    if start_date and end_date and start_date > end_date:
        return jsonify({'error': 'from must not be after to'}), 400

    result = PaintingsRepository().list(
        limit=request.args.get('limit', 20, type=int),
        cursor=request.args.get('cursor') or None,
        start_date=start_date,
        end_date=end_date,
        direction=direction,
        params_hash=request.args.get('params_hash') or None,
        seed=request.args.get('seed') or None,
    )
    if not result.ok:
        code = 400 if result.error.kind == 'ParsingError' else 500
        return jsonify({'error': result.error.to_dict()}), code
    return jsonify(result.value.to_dict())


@paintings_bp.route('/paintings/<painting_id>')
def get_painting(painting_id):
    result = PaintingsRepository().find_by_id(painting_id)
    if not result.ok:
        return jsonify({'error': result.error.to_dict()}), 500
    if result.value is None:
        return jsonify({'error': f'No painting {painting_id}'}), 404
    return jsonify(result.value.to_dict())


@paintings_bp.route('/storage/<path:key>')
def get_blob(key):
    store = LocalBlobStore(current_app.config['BLOB_STORE_ROOT'])
    try:
        data = store.get(key)
    except AppError as e:
        code = 400 if e.kind == 'StorageError' and getattr(e, 'op', None) == 'resolve' else 500
        return jsonify({'error': e.to_dict()}), code
    if data is None:
        return jsonify({'error': 'Not found'}), 404

    content_type = mimetypes.guess_type(key)[0] or 'application/octet-stream'
    if key.endswith('.webp'):
        content_type = 'image/webp'
    return Response(data, mimetype=content_type, headers={'Cache-Control': 'public, max-age=31536000, immutable'})
