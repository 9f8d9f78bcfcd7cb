"""
Read-through cache for the booking and reminder read models.

Entries never expire on their own. Payment confirmation is decided by an
admin at an arbitrary time, so every mutating call invalidates the user's
entries explicitly and the next read goes back to the server.
"""

import fnmatch
import logging
import threading
from typing import Any, Callable, Dict, Optional, TypeVar

from kosan.config.settings import Settings, get_settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MISSING = object()


class InMemoryBackend:
    """In-process cache backend"""

    def __init__(self):
        self._cache: Dict[str, Any] = {}
        self._lock = threading.Lock()

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._cache.get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._cache[key] = value

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._cache.pop(key, _MISSING) is not _MISSING

    def exists(self, key: str) -> bool:
        with self._lock:
            return key in self._cache

    def clear(self, pattern: str = "*") -> int:
        with self._lock:
            if pattern == "*":
                count = len(self._cache)
                self._cache.clear()
                return count

            # Simple pattern matching (only supports * wildcard)
            matching_keys = [
                key for key in self._cache.keys()
                if fnmatch.fnmatch(key, pattern)
            ]
            for key in matching_keys:
                del self._cache[key]
            return len(matching_keys)


class CacheManager:
    """Per-user read-through cache keyed as ``<prefix>user:<id>:<resource>``"""

    def __init__(self, backend: Optional[InMemoryBackend] = None, config: Optional[Settings] = None):
        self.backend = backend or InMemoryBackend()
        self._prefix = (config or get_settings()).CACHE_KEY_PREFIX

    def _generate_key(self, *parts: str) -> str:
        key = ":".join(str(part) for part in parts if part)
        return f"{self._prefix}{key}"

    def user_key(self, user_ref: str, resource: str) -> str:
        return self._generate_key("user", user_ref, resource)

    def get_or_load(self, user_ref: str, resource: str, loader: Callable[[], T]) -> T:
        """Return the cached value or call ``loader`` and store its result.

        A loader that raises leaves the cache untouched.
        """
        key = self.user_key(user_ref, resource)
        cached = self.backend.get(key, _MISSING)
        if cached is not _MISSING:
            return cached

        logger.debug("Cache miss", extra={"cache_key": key})
        value = loader()
        self.backend.set(key, value)
        return value

    def peek(self, user_ref: str, resource: str) -> Optional[Any]:
        return self.backend.get(self.user_key(user_ref, resource))

    def invalidate(self, user_ref: str, resource: Optional[str] = None) -> int:
        """Drop one resource, or every resource, cached for a user"""
        if resource is not None:
            removed = int(self.backend.delete(self.user_key(user_ref, resource)))
        else:
            removed = self.backend.clear(self._generate_key("user", user_ref, "*"))
        logger.debug(
            "Cache invalidated",
            extra={"user_ref": user_ref, "resource": resource or "*", "removed": removed},
        )
        return removed
