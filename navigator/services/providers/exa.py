"""Exa web-intelligence search provider.

Uses Exa's dedicated company index. That index does not support domain
exclusion, so social networks and directories are filtered after the fact
and the request over-fetches to compensate.
"""

import logging
from typing import Any

from navigator.models import CompanyCandidate
from navigator.services.domain import is_noise_domain
from navigator.services.providers.base import ProviderAdapter, ProviderError, text_value

logger = logging.getLogger(__name__)

EXA_SEARCH_URL = "https://api.exa.ai/search"

# Minimum Exa relevance score (0-1) to keep a result
MIN_EXA_RELEVANCE = 0.10
DEFAULT_NUM_RESULTS = 25
OVERFETCH = 10


class ExaProvider(ProviderAdapter):
    """Company search via the Exa API.

    Example usage:
        provider = ExaProvider(api_key="...")
        candidates = await provider.search("industrial coatings manufacturers in Germany")
    """

    name = "exa"

    def __init__(self, api_key: str = "", num_results: int = DEFAULT_NUM_RESULTS, **kwargs: Any) -> None:
        super().__init__(api_key=api_key, **kwargs)
        self.num_results = num_results

    async def search(self, query: str) -> list[CompanyCandidate]:
        payload = {
            "query": query,
            "type": "auto",
            "category": "company",
            "numResults": self.num_results + OVERFETCH,
            "contents": {
                "highlights": {
                    "numSentences": 6,
                    "highlightsPerUrl": 6,
                },
            },
        }
        data = await self._post_json(
            EXA_SEARCH_URL,
            payload,
            headers={"x-api-key": self.api_key},
        )

        results = data.get("results")
        if not isinstance(results, list):
            raise ProviderError(self.name, "response is missing the results list")

        candidates: list[CompanyCandidate] = []
        for result in results:
            candidate = self._parse_result(result)
            if candidate is None:
                continue
            if is_noise_domain(candidate.domain):
                continue
            if candidate.relevance_score is not None and candidate.relevance_score < MIN_EXA_RELEVANCE:
                continue
            candidates.append(candidate)

        logger.info(f"Exa returned {len(results)} results, kept {len(candidates[:self.num_results])}")
        return candidates[:self.num_results]

    def _parse_result(self, result: Any) -> CompanyCandidate | None:
        """Map one Exa result to a candidate."""
        if not isinstance(result, dict):
            return None

        url = result.get("url")
        if not url or not isinstance(url, str):
            return None

        highlights = result.get("highlights")
        if not isinstance(highlights, list):
            highlights = []
        description = " ".join(h for h in highlights if isinstance(h, str)).strip()

        score = result.get("score")
        if not isinstance(score, (int, float)) or isinstance(score, bool):
            score = None

        return CompanyCandidate(
            domain=url,
            name=text_value(result.get("title")),
            description=description or None,
            relevance_score=score,
            source_tag=self.name,
            website=url,
        )
