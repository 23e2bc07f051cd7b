"""Multi-provider company search.

A query is fanned out to every configured provider whose circuit is not
open. Provider calls run concurrently and each one is isolated: a provider
that raises is recorded as a failure and contributes nothing, the others
still count. All candidates are then consolidated into one list of companies
unique by normalized domain, filtered by the relevance floor and ranked.

Total provider failure is not an error: the search returns an empty list.
"""

import asyncio
import logging
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel, ValidationError

from navigator.config import Settings
from navigator.models import CompanyCandidate, CompanyRecord
from navigator.services.cache import CacheKeys, CacheTTL, MemoryCacheStore, ResultCache, hash_filters
from navigator.services.circuit_breaker import CircuitBreaker
from navigator.services.consolidator import consolidate
from navigator.services.domain import normalize_domain, root_domain
from navigator.services.providers import ExaProvider, ParallelProvider, ProviderAdapter, SerperProvider

logger = logging.getLogger(__name__)

DEFAULT_SIMILAR_LIMIT = 10


def _as_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    return [str(v).strip() for v in value if v is not None and str(v).strip()]


def build_provider_query(query: str, filters: Mapping[str, Any]) -> str:
    """Fold structured filters into the free-text query sent to providers.

    Example:
        build_provider_query("paving contractors", {"regions": ["Texas"], "employee_min": 50})
        -> "paving contractors in Texas with at least 50 employees"
    """
    parts = [query]

    industries = _as_list(filters.get("industries") or filters.get("industry"))
    if industries:
        parts.append(f"in {', '.join(industries)}")

    regions = _as_list(filters.get("regions") or filters.get("region"))
    if regions:
        parts.append(f"in {', '.join(regions)}")

    employee_min = filters.get("employee_min")
    employee_max = filters.get("employee_max")
    if employee_min is not None and employee_max is not None:
        parts.append(f"with {employee_min}-{employee_max} employees")
    elif employee_min is not None:
        parts.append(f"with at least {employee_min} employees")
    elif employee_max is not None:
        parts.append(f"with up to {employee_max} employees")

    keywords = _as_list(filters.get("keywords"))
    if keywords:
        parts.append(" ".join(keywords))

    return " ".join(parts)


def build_similar_query(
    name: str,
    industry: str | None = None,
    region: str | None = None,
    employee_count: int | None = None,
) -> str:
    """Build the peer-search query for a seed company."""
    query = f"companies similar to {name}"
    if industry:
        query += f" in {industry}"
    if region:
        query += f" in {region}"
    if employee_count:
        query += f" with approximately {employee_count} employees"
    return query


class SearchService:
    """Company search across multiple providers with caching and consolidation.

    Features:
    - Concurrent provider fan-out with per-provider failure isolation
    - Circuit breaker gating per provider
    - Cached consolidated results keyed by query text and filters
    - Domain-based de-duplication with relevance floor and ranking
    """

    def __init__(
        self,
        providers: Sequence[ProviderAdapter],
        circuit_breaker: CircuitBreaker | None = None,
        cache: ResultCache | None = None,
        relevance_floor: float = 0.0,
        search_ttl: float = CacheTTL.SEARCH,
        similar_ttl: float = CacheTTL.SIMILAR,
    ) -> None:
        self.providers = list(providers)
        self.circuit_breaker = circuit_breaker if circuit_breaker is not None else CircuitBreaker()
        self.cache = cache if cache is not None else ResultCache()
        self.relevance_floor = relevance_floor
        self.search_ttl = search_ttl
        self.similar_ttl = similar_ttl

    @property
    def configured_providers(self) -> list[ProviderAdapter]:
        return [p for p in self.providers if p.is_configured]

    @property
    def is_configured(self) -> bool:
        """Check if at least one provider is configured."""
        return bool(self.configured_providers)

    async def close(self) -> None:
        """Close all provider HTTP clients."""
        for provider in self.providers:
            await provider.close()

    def provider_status(self) -> list[dict[str, Any]]:
        """Configuration and circuit state per provider, for status reporting."""
        circuits = self.circuit_breaker.snapshot()
        return [
            {
                "name": provider.name,
                "configured": provider.is_configured,
                "circuit": circuits.get(provider.name, {
                    "status": "closed",
                    "consecutive_failures": 0,
                    "last_failure_at": None,
                    "last_success_at": None,
                }),
            }
            for provider in self.providers
        ]

    async def search(
        self,
        query: str,
        filters: Mapping[str, Any] | BaseModel | None = None,
    ) -> list[CompanyRecord]:
        """Search every eligible provider and return consolidated companies.

        Args:
            query: Free-text company search.
            filters: Structured filters (industries, regions, employee range,
                keywords). Empty values are ignored.

        Returns:
            Companies unique by normalized domain, highest relevance first.
            Empty when no provider produced anything.

        Raises:
            TypeError: If query is not a string or filters is not a mapping.
            ValueError: If query is blank.
        """
        if not isinstance(query, str):
            raise TypeError(f"query must be a string, got {type(query).__name__}")
        if filters is None:
            filters = {}
        elif isinstance(filters, BaseModel):
            filters = filters.model_dump(by_alias=False)
        elif not isinstance(filters, Mapping):
            raise TypeError(f"filters must be a mapping, got {type(filters).__name__}")

        text = " ".join(query.split())
        if not text:
            raise ValueError("Search query cannot be empty")

        cache_key = CacheKeys.search(hash_filters({"query": text.lower(), "filters": filters}))
        cached = self._read_records(cache_key)
        if cached is not None:
            logger.info(f"Returning {len(cached)} cached companies for: {text[:60]}")
            return cached

        eligible: list[ProviderAdapter] = []
        for provider in self.configured_providers:
            if self.circuit_breaker.is_open(provider.name):
                logger.info(f"Skipping {provider.name}: circuit open")
                continue
            eligible.append(provider)

        if not eligible:
            logger.warning(f"No eligible providers for: {text[:60]}")
            return []

        provider_query = build_provider_query(text, filters)
        logger.info(f"Searching {[p.name for p in eligible]} for: {provider_query[:80]}")

        outcomes = await asyncio.gather(
            *(self._call_provider(provider, provider_query) for provider in eligible)
        )

        candidates: list[CompanyCandidate] = []
        any_succeeded = False
        for succeeded, batch in outcomes:
            any_succeeded = any_succeeded or succeeded
            candidates.extend(batch)

        records = consolidate(candidates, self.relevance_floor)

        if any_succeeded:
            self.cache.set(
                cache_key,
                [r.model_dump(mode="json") for r in records],
                self.search_ttl,
            )
        return records

    async def find_similar(
        self,
        domain: str,
        name: str,
        industry: str | None = None,
        region: str | None = None,
        employee_count: int | None = None,
        limit: int = DEFAULT_SIMILAR_LIMIT,
    ) -> list[CompanyRecord]:
        """Find peer companies for a seed company.

        The seed itself, including any of its subdomains, is excluded by
        comparing root domains.
        """
        if not domain or not name:
            raise ValueError("domain and name are required")

        cache_key = CacheKeys.similar(hash_filters({
            "domain": normalize_domain(domain),
            "name": name.strip().lower(),
            "industry": industry,
            "region": region,
            "employee_count": employee_count,
            "limit": limit,
        }))
        cached = self._read_records(cache_key)
        if cached is not None:
            return cached

        query = build_similar_query(name.strip(), industry, region, employee_count)
        records = await self.search(query)

        seed_root = root_domain(domain)
        peers = [r for r in records if root_domain(r.normalized_domain) != seed_root][:limit]

        # An empty list may just mean every provider was down; don't pin it
        if peers:
            self.cache.set(cache_key, [r.model_dump(mode="json") for r in peers], self.similar_ttl)
        return peers

    async def _call_provider(
        self,
        provider: ProviderAdapter,
        query: str,
    ) -> tuple[bool, list[CompanyCandidate]]:
        """Call one provider, recording the outcome on its circuit.

        Returns:
            Tuple of (succeeded, candidates). A failed call yields no candidates.
        """
        try:
            batch = await provider.search(query)
            # Instances are revalidated as well (model_copy skips validation);
            # an invalid field counts as this provider failing
            candidates = [
                CompanyCandidate.model_validate(dict(c) if isinstance(c, CompanyCandidate) else c)
                for c in batch
            ]
        except Exception as e:
            self.circuit_breaker.record_failure(provider.name)
            logger.error(f"{provider.name} search failed: {e!r}")
            return False, []

        self.circuit_breaker.record_success(provider.name)
        logger.info(f"{provider.name} returned {len(candidates)} candidates")
        return True, candidates

    def _read_records(self, cache_key: str) -> list[CompanyRecord] | None:
        cached = self.cache.get(cache_key)
        if cached is None:
            return None
        try:
            return [CompanyRecord.model_validate(r) for r in cached]
        except (TypeError, ValidationError) as e:
            logger.warning(f"Discarding unreadable cache entry {cache_key}: {e}")
            self.cache.delete(cache_key)
            return None


def create_search_service(settings: Settings) -> SearchService:
    """Build a SearchService from settings."""
    providers: list[ProviderAdapter] = [
        ExaProvider(api_key=settings.exa_api_key, timeout=settings.provider_timeout),
        SerperProvider(api_key=settings.serper_api_key, timeout=settings.provider_timeout),
        ParallelProvider(api_key=settings.parallel_api_key, timeout=settings.provider_timeout),
    ]

    if settings.cache_backend == "sql":
        from navigator.db.session import create_cache_engine, create_session_factory
        from navigator.repositories.cache_repository_sqlalchemy import CacheRepositorySQLAlchemy

        engine = create_cache_engine(settings.cache_database_url)
        store = CacheRepositorySQLAlchemy(create_session_factory(engine))
    else:
        store = MemoryCacheStore()

    service = SearchService(
        providers=providers,
        circuit_breaker=CircuitBreaker(
            failure_threshold=settings.failure_threshold,
            open_duration_ms=settings.open_duration_ms,
        ),
        cache=ResultCache(store),
        relevance_floor=settings.relevance_floor,
    )

    logger.info(
        f"SearchService initialized: "
        f"Exa={providers[0].is_configured}, Serper={providers[1].is_configured}, "
        f"Parallel={providers[2].is_configured}, "
        f"cache={settings.cache_backend}, relevance_floor={settings.relevance_floor}"
    )
    return service


# Singleton
_search_service: SearchService | None = None


def get_search_service() -> SearchService:
    """Get the singleton SearchService instance."""
    global _search_service
    if _search_service is None:
        _search_service = create_search_service(Settings.from_env())
    return _search_service
