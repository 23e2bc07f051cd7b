"""Services package for the company search service."""

from navigator.services.cache import CacheKeys, CacheTTL, MemoryCacheStore, ResultCache, hash_filters
from navigator.services.circuit_breaker import CircuitBreaker, CircuitState, CircuitStatus
from navigator.services.consolidator import consolidate
from navigator.services.domain import is_noise_domain, normalize_domain, root_domain
from navigator.services.search_service import (
    SearchService,
    create_search_service,
    get_search_service,
)

__all__ = [
    "SearchService",
    "create_search_service",
    "get_search_service",
    "CircuitBreaker",
    "CircuitState",
    "CircuitStatus",
    "ResultCache",
    "MemoryCacheStore",
    "CacheKeys",
    "CacheTTL",
    "hash_filters",
    "consolidate",
    "normalize_domain",
    "root_domain",
    "is_noise_domain",
]
