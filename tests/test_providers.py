"""Tests for the Exa, Serper and Parallel provider adapters.

HTTP traffic is served by httpx.MockTransport, so no request leaves the process.
"""

import json

import httpx
import pytest

from navigator.models import CompanyCandidate
from navigator.services.providers import ExaProvider, ParallelProvider, ProviderError, SerperProvider
from navigator.services.providers.exa import EXA_SEARCH_URL, MIN_EXA_RELEVANCE, OVERFETCH
from navigator.services.providers.parallel import (
    PARALLEL_BETA,
    PARALLEL_SEARCH_URL,
    parallel_position_score,
)
from navigator.services.providers.serper import SERPER_SEARCH_URL, clean_title, position_score


def _transport(responses, requests=None):
    """MockTransport replaying ``responses`` in order and recording requests."""
    queue = list(responses)

    def handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        response = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(response, Exception):
            raise response
        # Fresh response per request; httpx closes what it is handed
        return httpx.Response(response.status_code, headers=response.headers, content=response.content)

    return httpx.MockTransport(handler)


class TestProviderConfiguration:
    def test_configured_with_key(self):
        assert ExaProvider(api_key="key").is_configured is True
        assert SerperProvider(api_key="key").is_configured is True
        assert ParallelProvider(api_key="key").is_configured is True

    def test_not_configured_without_key(self):
        assert ExaProvider().is_configured is False
        assert SerperProvider(api_key="").is_configured is False
        assert ParallelProvider().is_configured is False

    def test_names(self):
        assert ExaProvider.name == "exa"
        assert SerperProvider.name == "serper"
        assert ParallelProvider.name == "parallel"

    def test_negative_retries_rejected(self):
        with pytest.raises(ValueError, match="max_retries"):
            ExaProvider(api_key="key", max_retries=-1)


class TestExaProvider:
    """Test Exa request building and result parsing."""

    @pytest.mark.asyncio
    async def test_parses_results(self):
        requests = []
        provider = ExaProvider(
            api_key="exa-key",
            transport=_transport([httpx.Response(200, json={"results": [
                {
                    "url": "https://www.acme.com/about",
                    "title": " Acme Inc ",
                    "highlights": ["Makes anvils.", "Since 1949."],
                    "score": 0.82,
                },
            ]})], requests),
        )

        candidates = await provider.search("anvil manufacturers")
        await provider.close()

        assert len(candidates) == 1
        candidate = candidates[0]
        assert candidate.domain == "https://www.acme.com/about"
        assert candidate.website == "https://www.acme.com/about"
        assert candidate.name == "Acme Inc"
        assert candidate.description == "Makes anvils. Since 1949."
        assert candidate.relevance_score == 0.82
        assert candidate.source_tag == "exa"

        request = requests[0]
        assert str(request.url) == EXA_SEARCH_URL
        assert request.headers["x-api-key"] == "exa-key"
        body = json.loads(request.content)
        assert body["query"] == "anvil manufacturers"
        assert body["category"] == "company"
        assert body["numResults"] == provider.num_results + OVERFETCH

    @pytest.mark.asyncio
    async def test_filters_noise_low_scores_and_malformed(self):
        provider = ExaProvider(
            api_key="exa-key",
            transport=_transport([httpx.Response(200, json={"results": [
                {"url": "https://acme.com", "title": "Acme", "score": 0.5},
                {"url": "https://www.linkedin.com/company/acme", "title": "Acme | LinkedIn", "score": 0.9},
                {"url": "https://weak.com", "title": "Weak", "score": MIN_EXA_RELEVANCE / 2},
                {"url": "https://unscored.com", "title": "Unscored"},
                {"title": "No URL", "score": 0.9},
                "not-a-dict",
            ]})]),
        )

        candidates = await provider.search("anvils")
        await provider.close()

        assert [c.domain for c in candidates] == ["https://acme.com", "https://unscored.com"]
        assert candidates[1].relevance_score is None

    @pytest.mark.asyncio
    async def test_caps_results(self):
        results = [{"url": f"https://company{i}.com", "score": 0.9} for i in range(6)]
        provider = ExaProvider(
            api_key="exa-key",
            num_results=3,
            transport=_transport([httpx.Response(200, json={"results": results})]),
        )

        candidates = await provider.search("anvils")
        await provider.close()

        assert len(candidates) == 3

    @pytest.mark.asyncio
    async def test_string_highlights_ignored(self):
        provider = ExaProvider(
            api_key="exa-key",
            transport=_transport([httpx.Response(200, json={"results": [
                {"url": "https://acme.com", "title": "Acme", "highlights": "Makes anvils", "score": 0.5},
                {"url": "https://globex.com", "title": 42, "highlights": ["Widgets.", 7, None], "score": 0.5},
            ]})]),
        )

        candidates = await provider.search("anvils")
        await provider.close()

        assert candidates[0].description is None
        assert candidates[1].name == ""
        assert candidates[1].description == "Widgets."

    @pytest.mark.asyncio
    async def test_missing_results_raises(self):
        provider = ExaProvider(
            api_key="exa-key",
            transport=_transport([httpx.Response(200, json={"error": "bad request"})]),
        )

        with pytest.raises(ProviderError):
            await provider.search("anvils")
        await provider.close()


class TestProviderHttp:
    """Test retry and error handling shared by all adapters."""

    @pytest.mark.asyncio
    async def test_retries_rate_limit(self):
        requests = []
        provider = ExaProvider(
            api_key="exa-key",
            retry_delay=0,
            transport=_transport([
                httpx.Response(429),
                httpx.Response(200, json={"results": [{"url": "https://acme.com", "score": 0.5}]}),
            ], requests),
        )

        candidates = await provider.search("anvils")
        await provider.close()

        assert len(requests) == 2
        assert len(candidates) == 1

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self):
        requests = []
        provider = ExaProvider(
            api_key="exa-key",
            retry_delay=0,
            transport=_transport([httpx.Response(429)], requests),
        )

        with pytest.raises(httpx.HTTPStatusError):
            await provider.search("anvils")
        await provider.close()

        assert len(requests) == 3

    @pytest.mark.asyncio
    async def test_retries_timeouts(self):
        requests = []
        provider = SerperProvider(
            api_key="serper-key",
            retry_delay=0,
            max_retries=1,
            transport=_transport([httpx.ReadTimeout("timed out")], requests),
        )

        with pytest.raises(httpx.TimeoutException):
            await provider.search("acme")
        await provider.close()

        assert len(requests) == 2

    @pytest.mark.asyncio
    async def test_server_error_not_retried(self):
        requests = []
        provider = ExaProvider(
            api_key="exa-key",
            retry_delay=0,
            transport=_transport([httpx.Response(500)], requests),
        )

        with pytest.raises(httpx.HTTPStatusError):
            await provider.search("anvils")
        await provider.close()

        assert len(requests) == 1

    @pytest.mark.asyncio
    async def test_invalid_json_raises_provider_error(self):
        provider = ExaProvider(
            api_key="exa-key",
            transport=_transport([httpx.Response(200, content=b"<html>oops</html>")]),
        )

        with pytest.raises(ProviderError):
            await provider.search("anvils")
        await provider.close()

    @pytest.mark.asyncio
    async def test_non_object_json_raises_provider_error(self):
        provider = SerperProvider(
            api_key="serper-key",
            transport=_transport([httpx.Response(200, json=[1, 2, 3])]),
        )

        with pytest.raises(ProviderError):
            await provider.search("acme")
        await provider.close()


class TestSerperHelpers:
    def test_clean_title(self):
        assert clean_title("Acme Corp - Wikipedia") == "Acme Corp"
        assert clean_title("Acme Corp | LinkedIn") == "Acme Corp"
        assert clean_title("Acme Corp (NYSE: ACM)") == "Acme Corp"
        assert clean_title("  Acme Corp  ") == "Acme Corp"
        assert clean_title("Acme Corp | Official Site") == "Acme Corp | Official Site"

    def test_position_score(self):
        assert position_score(1) == 1.0
        assert position_score(4) == 0.25
        assert position_score(0) is None
        assert position_score(None) is None
        assert position_score(True) is None


class TestSerperProvider:
    """Test Serper request building, organic parsing and knowledge graph handling."""

    @pytest.mark.asyncio
    async def test_parses_organic_results(self):
        requests = []
        provider = SerperProvider(
            api_key="serper-key",
            transport=_transport([httpx.Response(200, json={"organic": [
                {"title": "Acme Corp (ACM)", "link": "https://acme.com/", "snippet": "Anvils", "position": 1},
                {"title": "Acme - LinkedIn", "link": "https://linkedin.com/company/acme", "position": 2},
                {"title": "Globex", "link": "https://globex.com", "position": 3},
                {"title": "No link", "position": 4},
            ]})], requests),
        )

        candidates = await provider.search("acme")
        await provider.close()

        assert [c.domain for c in candidates] == ["https://acme.com/", "https://globex.com"]
        assert candidates[0].name == "Acme Corp"
        assert candidates[0].description == "Anvils"
        assert candidates[0].relevance_score == 1.0
        assert candidates[1].relevance_score == pytest.approx(1 / 3)
        assert all(c.source_tag == "serper" for c in candidates)

        request = requests[0]
        assert str(request.url) == SERPER_SEARCH_URL
        assert request.headers["x-api-key"] == "serper-key"
        assert json.loads(request.content) == {"q": "acme", "num": provider.num_results}

    @pytest.mark.asyncio
    async def test_knowledge_graph_promotes_matching_result(self):
        provider = SerperProvider(
            api_key="serper-key",
            transport=_transport([httpx.Response(200, json={
                "knowledgeGraph": {
                    "title": "Acme Corporation",
                    "type": "Manufacturer",
                    "website": "https://www.acme.com/",
                    "description": "Anvil maker",
                },
                "organic": [
                    {"title": "Globex", "link": "https://globex.com", "position": 1},
                    {"title": "Acme", "link": "https://acme.com", "position": 2},
                ],
            })]),
        )

        candidates = await provider.search("acme")
        await provider.close()

        assert len(candidates) == 2
        acme = next(c for c in candidates if c.domain == "https://acme.com")
        assert acme.exact_match is True
        assert acme.name == "Acme Corporation"
        assert acme.description == "Anvil maker"
        assert acme.relevance_score == 1.0

    @pytest.mark.asyncio
    async def test_knowledge_graph_adds_missing_company_first(self):
        provider = SerperProvider(
            api_key="serper-key",
            transport=_transport([httpx.Response(200, json={
                "knowledgeGraph": {
                    "title": "Acme Corporation",
                    "type": "Manufacturer",
                    "website": "https://acme.com",
                },
                "organic": [{"title": "Globex", "link": "https://globex.com", "position": 1}],
            })]),
        )

        candidates = await provider.search("acme")
        await provider.close()

        assert [c.domain for c in candidates] == ["https://acme.com", "https://globex.com"]
        assert candidates[0].exact_match is True
        assert candidates[0].industry == "Manufacturer"

    @pytest.mark.asyncio
    async def test_knowledge_graph_noise_website_ignored(self):
        provider = SerperProvider(
            api_key="serper-key",
            transport=_transport([httpx.Response(200, json={
                "knowledgeGraph": {"title": "Acme", "website": "https://www.facebook.com/acme"},
                "organic": [],
            })]),
        )

        candidates = await provider.search("acme")
        await provider.close()

        assert candidates == []

    @pytest.mark.asyncio
    async def test_knowledge_graph_non_string_fields_ignored(self):
        provider = SerperProvider(
            api_key="serper-key",
            transport=_transport([httpx.Response(200, json={
                "knowledgeGraph": {
                    "title": 123,
                    "description": {"text": "Anvil maker"},
                    "website": "https://acme.com",
                },
                "organic": [{"title": "Acme", "link": "https://acme.com", "snippet": "Anvils", "position": 2}],
            })]),
        )

        candidates = await provider.search("acme")
        await provider.close()

        assert len(candidates) == 1
        acme = candidates[0]
        assert acme.name == "Acme"
        assert acme.description == "Anvils"
        assert acme.exact_match is True
        assert acme.relevance_score == 1.0
        assert CompanyCandidate.model_validate(acme.model_dump()) == acme

    @pytest.mark.asyncio
    async def test_knowledge_graph_non_string_title_without_match(self):
        provider = SerperProvider(
            api_key="serper-key",
            transport=_transport([httpx.Response(200, json={
                "knowledgeGraph": {"title": ["Acme"], "type": 5, "website": "https://acme.com"},
                "organic": [{"title": 99, "link": "https://globex.com", "position": 1}],
            })]),
        )

        candidates = await provider.search("acme")
        await provider.close()

        assert [c.domain for c in candidates] == ["https://acme.com", "https://globex.com"]
        assert candidates[0].name == ""
        assert candidates[0].industry is None
        assert candidates[0].exact_match is True
        assert candidates[1].name == ""

    @pytest.mark.asyncio
    async def test_organic_not_a_list_raises(self):
        provider = SerperProvider(
            api_key="serper-key",
            transport=_transport([httpx.Response(200, json={"organic": "nope"})]),
        )

        with pytest.raises(ProviderError):
            await provider.search("acme")
        await provider.close()


class TestParallelProvider:
    """Test Parallel request building, de-duplication and position scoring."""

    def test_position_score(self):
        assert parallel_position_score(0, 4) == 1.0
        assert parallel_position_score(2, 4) == 0.75
        assert parallel_position_score(1, 3) == 0.83
        assert parallel_position_score(0, 0) == 1.0

    @pytest.mark.asyncio
    async def test_parses_results(self):
        requests = []
        provider = ParallelProvider(
            api_key="parallel-key",
            transport=_transport([httpx.Response(200, json={"search_id": "s-1", "results": [
                {"url": "https://www.acme.com/about", "title": " Acme ", "excerpts": ["Makes anvils.", "Since 1949."]},
                {"url": "https://acme.com/contact", "title": "Contact Acme"},
                {"url": "https://www.linkedin.com/company/acme", "title": "Acme | LinkedIn"},
                {"url": "https://globex.com", "excerpts": "not a list"},
                {"url": "https://shop.initech.co.uk", "title": "Initech", "excerpts": ["x" * 600]},
                {"title": "No URL"},
                "not-a-dict",
            ]})], requests),
        )

        candidates = await provider.search("anvil manufacturers")
        await provider.close()

        assert [c.domain for c in candidates] == [
            "https://www.acme.com/about",
            "https://globex.com",
            "https://shop.initech.co.uk",
        ]
        acme, globex, initech = candidates
        assert acme.name == "Acme"
        assert acme.description == "Makes anvils. Since 1949."
        assert acme.website == "https://www.acme.com/about"
        assert globex.name == "https://globex.com"
        assert globex.description is None
        assert len(initech.description) == 500
        assert [c.relevance_score for c in candidates] == [1.0, 0.83, 0.67]
        assert all(c.source_tag == "parallel" for c in candidates)

        request = requests[0]
        assert str(request.url) == PARALLEL_SEARCH_URL
        assert request.headers["x-api-key"] == "parallel-key"
        assert request.headers["parallel-beta"] == PARALLEL_BETA
        body = json.loads(request.content)
        assert body["search_queries"] == ["anvil manufacturers"]
        assert "anvil manufacturers" in body["objective"]
        assert body["max_results"] == provider.num_results + 10
        assert body["excerpts"] == {"max_chars_per_result": 2000}

    @pytest.mark.asyncio
    async def test_caps_results(self):
        results = [{"url": f"https://company{i}.com", "title": f"Company {i}"} for i in range(4)]
        provider = ParallelProvider(
            api_key="parallel-key",
            num_results=2,
            transport=_transport([httpx.Response(200, json={"results": results})]),
        )

        candidates = await provider.search("anvils")
        await provider.close()

        assert [c.name for c in candidates] == ["Company 0", "Company 1"]
        assert [c.relevance_score for c in candidates] == [1.0, 0.75]

    @pytest.mark.asyncio
    async def test_missing_results_raises(self):
        provider = ParallelProvider(
            api_key="parallel-key",
            transport=_transport([httpx.Response(200, json={"warnings": ["quota"]})]),
        )

        with pytest.raises(ProviderError):
            await provider.search("anvils")
        await provider.close()
