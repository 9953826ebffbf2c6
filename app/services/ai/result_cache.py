import hashlib
import logging
import time
from threading import RLock

logger = logging.getLogger(__name__)


class ResultCache:
    """Caches aggregated AI results by file hash with expiry and a size cap"""

    _max_cache_size = 10000
    _cleanup_interval = 900  # Check for expired entries every 15 minutes

    def __init__(self, cache_ttl=3600, clock=time.time):
        self._cache_ttl = cache_ttl
        self._clock = clock
        self._cache = {}
        self._lock = RLock()
        self._last_cleanup_time = clock()
        self.hits = 0
        self.misses = 0

    @staticmethod
    def generate_cache_key(image_bytes):
        return hashlib.sha256(image_bytes).hexdigest()

    def get_cached_result(self, cache_key):
        """Get cached result if it exists and is not expired"""
        if self._cache_ttl <= 0:
            return None

        with self._lock:
            self._periodic_cleanup()

            cached_data = self._cache.get(cache_key)
            if cached_data is None:
                self.misses += 1
                return None

            if self._clock() - cached_data['timestamp'] < self._cache_ttl:
                self.hits += 1
                return cached_data['result']

            del self._cache[cache_key]
            self.misses += 1
            logger.debug(f"Cache EXPIRED for key: {cache_key[:8]}...")
            return None

    def cache_result(self, cache_key, result):
        if self._cache_ttl <= 0:
            return

        with self._lock:
            if len(self._cache) >= self._max_cache_size:
                self._cleanup_expired_entries()

            if len(self._cache) < self._max_cache_size:
                self._cache[cache_key] = {
                    'result': result,
                    'timestamp': self._clock()
                }
            else:
                logger.warning("Cache full, dropping new entry to prevent memory leak")

    def invalidate_cache(self, cache_key=None):
        """Invalidate specific cache entry or all entries"""
        with self._lock:
            if cache_key:
                self._cache.pop(cache_key, None)
            else:
                self._cache.clear()
                logger.info("Cache cleared completely")

    def get_cache_stats(self):
        """Get cache statistics for monitoring"""
        with self._lock:
            now = self._clock()
            expired_count = sum(1 for data in self._cache.values()
                                if now - data['timestamp'] >= self._cache_ttl)
            return {
                'total_entries': len(self._cache),
                'expired_entries': expired_count,
                'valid_entries': len(self._cache) - expired_count,
                'hits': self.hits,
                'misses': self.misses
            }

    def _periodic_cleanup(self):
        now = self._clock()
        if now - self._last_cleanup_time > self._cleanup_interval:
            self._cleanup_expired_entries()
            self._last_cleanup_time = now

    def _cleanup_expired_entries(self):
        now = self._clock()
        expired_keys = [key for key, data in self._cache.items()
                        if now - data['timestamp'] >= self._cache_ttl]

        for key in expired_keys:
            self._cache.pop(key, None)

        if expired_keys:
            logger.info(f"Cleaned up {len(expired_keys)} expired cache entries")
