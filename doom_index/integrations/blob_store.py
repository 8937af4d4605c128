import logging
import os
from doom_index.errors import StorageError

logger = logging.getLogger(__name__)


class LocalBlobStore:
    """Filesystem-backed object store. Keys are slash-separated paths under ``root``."""

    def __init__(self, root):
        self.root = os.path.abspath(root)

    def _path(self, key):
        path = os.path.abspath(os.path.join(self.root, key.lstrip('/')))
        if os.path.commonpath([self.root, path]) != self.root or path == self.root:
            raise StorageError('resolve', key, f"Key escapes storage root: {key}")
        return path

    def put(self, key, data, content_type=None):
        path = self._path(key)
        tmp_path = f"{path}.tmp"
        try:
            os.makedirs(os.path.dirname(path), exist_ok=True)
            with open(tmp_path, 'wb') as f:
                f.write(data)
            os.replace(tmp_path, path)
        except OSError as e:
            raise StorageError('put', key, f"Blob write failed: {e}") from e
        logger.debug(f"Stored blob {key} ({len(data)} bytes, {content_type or 'application/octet-stream'})")
        return key

    def get(self, key):
        """Blob bytes, or None when nothing is stored under ``key``."""
        path = self._path(key)
        if not os.path.isfile(path):
            return None
        try:
            with open(path, 'rb') as f:
                return f.read()
        except OSError as e:
            raise StorageError('get', key, f"Blob read failed: {e}") from e

    def exists(self, key):
        return os.path.isfile(self._path(key))
