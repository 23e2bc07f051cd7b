"""TTL cache for provider search results and derived aggregates.

Values are stored as JSON so every backend behaves the same way: what comes
out of the cache is a fresh copy, never a reference to the caller's object.

Backends:
- MemoryCacheStore: process-local, used in development and tests.
- CacheRepositorySQLAlchemy (navigator.repositories): shared across
  instances and restarts.

ResultCache wraps a backend so that a failing backend degrades to a cache
miss (reads) or a no-op (writes) instead of failing the search.
"""

import hashlib
import json
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class CacheTTL:
    """Cache lifetimes per use case, in seconds."""
    SEARCH = 6 * 60 * 60    # Consolidated provider search results
    SIMILAR = 60 * 60       # Peer companies for a seed domain


class CacheKeys:
    """Cache key builders. Keys are namespaced by use case."""

    @staticmethod
    def search(query_hash: str) -> str:
        return f"search:{query_hash}"

    @staticmethod
    def similar(query_hash: str) -> str:
        return f"similar:{query_hash}"


@dataclass
class CacheEntry:
    key: str
    value: str  # JSON-encoded payload
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, frozenset, Mapping)):
        return len(value) == 0
    return False


def _canonicalize(value: Any) -> Any:
    """Reduce a structured query to a canonical JSON-compatible form."""
    if isinstance(value, BaseModel):
        value = value.model_dump()

    if isinstance(value, Mapping):
        canonical: dict[str, Any] = {}
        for key in sorted(value, key=str):
            item = _canonicalize(value[key])
            if _is_empty(item):
                continue
            canonical[str(key)] = item
        return canonical

    if isinstance(value, (set, frozenset)):
        items = [_canonicalize(v) for v in value]
        return sorted(items, key=lambda v: json.dumps(v, sort_keys=True, default=str))

    if isinstance(value, (list, tuple)):
        return [_canonicalize(v) for v in value]

    return value


def hash_filters(structured_query: Mapping[str, Any]) -> str:
    """Build a deterministic cache key fragment for a structured query.

    Insensitive to mapping key order at every nesting level. Keys whose
    value is None, an empty string, or an empty collection are ignored, so
    ``{"a": [1, 2], "b": None}`` and ``{"a": [1, 2]}`` hash the same.
    List order is preserved.

    Args:
        structured_query: Query text and filters as a mapping.

    Returns:
        16-character hex digest.

    Raises:
        TypeError: If structured_query is not a mapping.
    """
    if not isinstance(structured_query, Mapping):
        raise TypeError(
            f"hash_filters expects a mapping, got {type(structured_query).__name__}"
        )

    canonical = _canonicalize(structured_query)
    encoded = json.dumps(canonical, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()[:16]


class CacheStore(ABC):
    """Key-value store with per-entry TTL.

    ``get`` returns None for a missing or expired key, so None itself cannot
    be cached.
    """

    @abstractmethod
    def get(self, key: str) -> Any | None:
        """Return the cached value, or None on miss or expiry."""

    @abstractmethod
    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        """Store a JSON-serializable value, replacing any existing entry."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove an entry. Missing keys are ignored."""

    @abstractmethod
    def scan_by_prefix(self, prefix: str) -> list[Any]:
        """Return all live values whose key starts with ``prefix``."""

    @abstractmethod
    def clear(self) -> None:
        """Remove every entry."""


class MemoryCacheStore(CacheStore):
    """In-process cache store. Expired entries are dropped when read."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._clock = clock

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            self._entries.pop(key, None)
            return None
        return json.loads(entry.value)

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        self._entries[key] = CacheEntry(
            key=key,
            value=json.dumps(value),
            expires_at=self._clock() + ttl_seconds,
        )

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def scan_by_prefix(self, prefix: str) -> list[Any]:
        now = self._clock()
        values: list[Any] = []
        for key, entry in list(self._entries.items()):
            if not key.startswith(prefix):
                continue
            if entry.is_expired(now):
                self._entries.pop(key, None)
                continue
            values.append(json.loads(entry.value))
        return values

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class ResultCache:
    """Cache facade used by the search service.

    Backend errors never reach the caller: a failed read is a miss, a failed
    write or delete is skipped, a failed scan returns nothing.
    """

    def __init__(self, store: CacheStore | None = None) -> None:
        self.store = store if store is not None else MemoryCacheStore()

    def get(self, key: str) -> Any | None:
        try:
            return self.store.get(key)
        except Exception as e:
            logger.warning(f"Cache read failed for {key}, treating as miss: {e}")
            return None

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        try:
            self.store.set(key, value, ttl_seconds)
        except Exception as e:
            logger.warning(f"Cache write failed for {key}, skipping: {e}")

    def delete(self, key: str) -> None:
        try:
            self.store.delete(key)
        except Exception as e:
            logger.warning(f"Cache delete failed for {key}: {e}")

    def scan_by_prefix(self, prefix: str) -> list[Any]:
        try:
            return self.store.scan_by_prefix(prefix)
        except Exception as e:
            logger.warning(f"Cache scan failed for prefix {prefix}: {e}")
            return []

    def clear(self) -> None:
        """Drop every entry. Intended for tests and debugging."""
        self.store.clear()
