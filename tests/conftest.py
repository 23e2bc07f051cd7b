"""Pytest fixtures for company search tests.

Provides a controllable clock, fake providers, a search service wired with
in-memory collaborators, and an API test client that uses that service.
"""

import pytest
from fastapi.testclient import TestClient

from navigator.main import app
from navigator.models import CompanyCandidate
from navigator.services.cache import MemoryCacheStore, ResultCache
from navigator.services.circuit_breaker import CircuitBreaker
from navigator.services.providers.base import ProviderAdapter
from navigator.services.search_service import SearchService, get_search_service


class FakeClock:
    """Manually advanced clock, in seconds."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeProvider(ProviderAdapter):
    """Provider returning canned candidates or raising a canned error."""

    def __init__(self, name, candidates=None, error=None, configured=True):
        super().__init__(api_key="test-key" if configured else "")
        self.name = name
        self.candidates = candidates or []
        self.error = error
        self.calls: list[str] = []

    async def search(self, query):
        self.calls.append(query)
        if self.error is not None:
            raise self.error
        return list(self.candidates)


def _build_candidate(domain="acme.com", source_tag="exa", **overrides) -> CompanyCandidate:
    data = {"domain": domain, "name": "Acme Inc", "source_tag": source_tag}
    data.update(overrides)
    return CompanyCandidate(**data)


@pytest.fixture
def make_candidate():
    """Factory for CompanyCandidate objects with sensible defaults."""
    return _build_candidate


@pytest.fixture
def fake_provider():
    """Factory for FakeProvider instances."""
    return FakeProvider


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def breaker(clock):
    return CircuitBreaker(clock=clock)


@pytest.fixture
def cache(clock):
    return ResultCache(MemoryCacheStore(clock=clock))


@pytest.fixture
def search_service(breaker, cache):
    """SearchService with no providers; tests append their own."""
    return SearchService(providers=[], circuit_breaker=breaker, cache=cache)


@pytest.fixture
def client(search_service):
    """Create a test client whose endpoints use the search_service fixture.

    Returns:
        TestClient: A test client instance for making requests to the API.
    """
    app.dependency_overrides[get_search_service] = lambda: search_service
    yield TestClient(app)
    app.dependency_overrides.clear()
