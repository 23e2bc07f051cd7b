"""Parallel AI web search provider.

Parallel returns ranked web pages with text excerpts but no relevance score,
so results are scored by position (first 1.0, sliding towards 0.5).
"""

import logging
from typing import Any

from navigator.models import CompanyCandidate
from navigator.services.domain import is_noise_domain, root_domain
from navigator.services.providers.base import ProviderAdapter, ProviderError, text_value

logger = logging.getLogger(__name__)

PARALLEL_SEARCH_URL = "https://api.parallel.ai/v1beta/search"
PARALLEL_BETA = "search-extract-2025-10-10"

DEFAULT_NUM_RESULTS = 25
OVERFETCH = 10
MAX_EXCERPT_CHARS = 2000
MAX_DESCRIPTION_CHARS = 500


def parallel_position_score(index: int, total: int) -> float:
    """Score for the result at ``index`` (0-based) out of ``total`` kept results."""
    return round(1.0 - (index / max(total, 1)) * 0.5, 2)


class ParallelProvider(ProviderAdapter):
    """Company discovery via the Parallel AI search API.

    Example usage:
        provider = ParallelProvider(api_key="...")
        candidates = await provider.search("asphalt paving contractors in Texas")
    """

    name = "parallel"

    def __init__(self, api_key: str = "", num_results: int = DEFAULT_NUM_RESULTS, **kwargs: Any) -> None:
        super().__init__(api_key=api_key, **kwargs)
        self.num_results = num_results

    async def search(self, query: str) -> list[CompanyCandidate]:
        payload = {
            "objective": (
                f"Find companies matching: {query}. "
                "Focus on company websites, not news articles or directories."
            ),
            "search_queries": [query],
            "max_results": self.num_results + OVERFETCH,
            "excerpts": {"max_chars_per_result": MAX_EXCERPT_CHARS},
        }
        data = await self._post_json(
            PARALLEL_SEARCH_URL,
            payload,
            headers={"x-api-key": self.api_key, "parallel-beta": PARALLEL_BETA},
        )

        results = data.get("results")
        if not isinstance(results, list):
            raise ProviderError(self.name, "response is missing the results list")

        kept: list[dict[str, Any]] = []
        seen_roots: set[str] = set()
        for result in results:
            if not isinstance(result, dict):
                continue
            url = text_value(result.get("url"))
            if not url or is_noise_domain(url):
                continue
            root = root_domain(url)
            if not root or root in seen_roots:
                continue
            seen_roots.add(root)
            kept.append(result)
            if len(kept) >= self.num_results:
                break

        candidates = [
            self._to_candidate(result, parallel_position_score(i, len(kept)))
            for i, result in enumerate(kept)
        ]
        logger.info(f"Parallel returned {len(results)} results, kept {len(candidates)}")
        return candidates

    def _to_candidate(self, result: dict[str, Any], score: float) -> CompanyCandidate:
        url = text_value(result.get("url"))

        excerpts = result.get("excerpts")
        if not isinstance(excerpts, list):
            excerpts = []
        description = " ".join(e for e in excerpts if isinstance(e, str))[:MAX_DESCRIPTION_CHARS].strip()

        return CompanyCandidate(
            domain=url,
            name=text_value(result.get("title")) or url,
            description=description or None,
            relevance_score=score,
            source_tag=self.name,
            website=url,
        )
