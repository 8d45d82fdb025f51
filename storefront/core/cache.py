"""
Process-wide catalog cache

In-memory key/value store with a fixed time-based expiry per entry.
Invalidation is best-effort: writes delete keys matching a glob pattern,
anything else stays until it expires.

For deployments with several worker processes each process has its own copy.
"""
import time
import fnmatch
import logging
import threading
from typing import Any, Callable, Dict, Optional, Tuple

from .config import settings

logger = logging.getLogger(__name__)


class CatalogCache:
    """
    TTL cache keyed by deterministic strings.

    Usage:
        products = catalog_cache.fetch("products_index_taxon_id_3", load_products)
        catalog_cache.delete_matched("products_*")
    """

    def __init__(self, default_ttl: int = 3600, clock: Callable[[], float] = time.monotonic):
        # {key: (expires_at, value)}
        self._entries: Dict[str, Tuple[float, Any]] = {}
        self._lock = threading.RLock()
        self._clock = clock
        self.default_ttl = default_ttl
        self._last_cleanup = clock()
        self._cleanup_interval = 60  # seconds

    def _cleanup_expired(self):
        """Drop expired entries, at most once per cleanup interval"""
        now = self._clock()
        if now - self._last_cleanup < self._cleanup_interval:
            return

        for key in [k for k, (expires_at, _) in self._entries.items() if expires_at <= now]:
            del self._entries[key]

        self._last_cleanup = now

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value or None when missing or expired"""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None

            expires_at, value = entry
            if expires_at <= self._clock():
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: Any, ttl: Optional[int] = None):
        ttl = self.default_ttl if ttl is None else ttl
        with self._lock:
            self._cleanup_expired()
            self._entries[key] = (self._clock() + ttl, value)

    def fetch(self, key: str, loader: Callable[[], Any], ttl: Optional[int] = None) -> Any:
        """
        Return the cached value for key, computing and storing it on a miss.

        None results are not cached.
        """
        value = self.get(key)
        if value is not None:
            logger.debug(f"Cache hit: {key}")
            return value

        logger.debug(f"Cache miss: {key}")
        value = loader()
        if value is not None:
            self.set(key, value, ttl)
        return value

    def delete_matched(self, pattern: str) -> int:
        """
        Delete every key matching a glob pattern (e.g. "products_show_*").

        Returns:
            Number of deleted keys
        """
        with self._lock:
            matched = [key for key in self._entries if fnmatch.fnmatchcase(key, pattern)]
            for key in matched:
                del self._entries[key]

        if matched:
            logger.info(f"Cache invalidated {len(matched)} key(s) matching {pattern!r}")
        return len(matched)

    def clear(self):
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def build_cache_key(prefix: str, **params) -> str:
    """
    Deterministic cache key from a prefix and request parameters.

    Parameters are sorted by name so argument order never changes the key;
    None values are rendered as empty strings.

    Example:
        build_cache_key("products_index", taxon_id=3, page=1)
        -> "products_index_page_1_taxon_id_3"
    """
    parts = [prefix]
    for name in sorted(params):
        value = params[name]
        parts.append(f"{name}_{'' if value is None else value}")
    return "_".join(parts)


# Global cache instance
catalog_cache = CatalogCache(default_ttl=settings.CACHE_TTL_SECONDS)
