import hashlib
import logging

from app.utils.errors import HashUnavailableError

logger = logging.getLogger(__name__)


class HashIdentityChecker:
    """Content-addressed lookup of uploads against the known-bad registry"""

    def __init__(self, file_store, registry):
        self.file_store = file_store
        # Anything with lookup(sha256) -> KnownBadHash | None
        self.registry = registry

    @staticmethod
    def compute_hash(data):
        return hashlib.sha256(data).hexdigest()

    def check(self, file_path):
        try:
            data = self.file_store.read(file_path)
        except (OSError, ValueError) as e:
            logger.error(f"Error generating file hash for {file_path}: {e}")
            raise HashUnavailableError(f"Could not read file for hashing: {e}") from e

        digest = self.compute_hash(data)
        entry = self.registry.lookup(digest)
        if entry is None:
            return {'hash': digest, 'known_bad': False, 'confidence': 0.0}

        logger.warning(f"Known bad hash matched: {digest[:12]} ({entry.source})")
        return {
            'hash': digest,
            'known_bad': True,
            'confidence': entry.confidence if entry.confidence is not None else 1.0,
            'source': entry.source
        }
