"""
Local disk storage for uploaded files
"""
import logging
import os
import uuid

from werkzeug.utils import secure_filename

logger = logging.getLogger(__name__)


class LocalFileStore:
    """Writes uploads under a single root folder and resolves paths inside it"""

    def __init__(self, root):
        self.root = os.path.abspath(root)
        os.makedirs(self.root, exist_ok=True)

    def _resolve(self, path):
        full_path = path if os.path.isabs(path) else os.path.join(self.root, path)
        full_path = os.path.abspath(full_path)
        if os.path.commonpath([full_path, self.root]) != self.root:
            raise ValueError(f"Path outside upload folder: {path}")
        return full_path

    def write(self, data, filename=None):
        """Store bytes under a unique name and return the absolute path"""
        safe_name = secure_filename(filename or '') or 'upload'
        stored_name = f"{uuid.uuid4().hex}_{safe_name}"
        path = os.path.join(self.root, stored_name)
        with open(path, 'wb') as handle:
            handle.write(data)
        return path

    def read(self, path):
        with open(self._resolve(path), 'rb') as handle:
            return handle.read()

    def exists(self, path):
        try:
            return os.path.isfile(self._resolve(path))
        except ValueError:
            return False

    def stat(self, path):
        return os.stat(self._resolve(path))

    def delete(self, path):
        """Remove a stored file; a missing file is not an error"""
        try:
            os.remove(self._resolve(path))
            logger.info(f"Deleted stored file {path}")
        except FileNotFoundError:
            logger.debug(f"File already removed: {path}")
