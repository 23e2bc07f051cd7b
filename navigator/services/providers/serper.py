"""Serper (Google search) provider, used for company-name queries.

Serper provides structured Google results:
- Knowledge graph panel (the company itself, when Google recognizes it)
- Organic results (company sites, plus noise filtered out here)
"""

import logging
import re
from typing import Any

from navigator.models import CompanyCandidate
from navigator.services.domain import is_noise_domain, normalize_domain
from navigator.services.providers.base import ProviderAdapter, ProviderError, text_value

logger = logging.getLogger(__name__)

SERPER_SEARCH_URL = "https://google.serper.dev/search"
DEFAULT_NUM_RESULTS = 10

# Knowledge graph matches outrank every organic result
KNOWLEDGE_GRAPH_SCORE = 1.0

_TITLE_SITE_SUFFIX_RE = re.compile(
    r"\s*[-–|]\s*(Wikipedia|LinkedIn|Crunchbase|Bloomberg|Reuters|Glassdoor|ZoomInfo|G2|Forbes|Yahoo Finance).*$",
    re.IGNORECASE,
)
_TRAILING_PARENTHETICAL_RE = re.compile(r"\s*\(.*?\)\s*$")


def clean_title(title: str) -> str:
    """Strip site suffixes like " - Wikipedia" or " | LinkedIn" from a result title."""
    title = _TITLE_SITE_SUFFIX_RE.sub("", title)
    title = _TRAILING_PARENTHETICAL_RE.sub("", title)
    return title.strip()


def position_score(position: Any) -> float | None:
    """Turn a 1-based Google result position into a descending relevance hint."""
    if isinstance(position, bool) or not isinstance(position, int) or position < 1:
        return None
    return 1.0 / position


class SerperProvider(ProviderAdapter):
    """Company search via the Serper Google search API."""

    name = "serper"

    def __init__(self, api_key: str = "", num_results: int = DEFAULT_NUM_RESULTS, **kwargs: Any) -> None:
        super().__init__(api_key=api_key, **kwargs)
        self.num_results = num_results

    async def search(self, query: str) -> list[CompanyCandidate]:
        data = await self._post_json(
            SERPER_SEARCH_URL,
            {"q": query, "num": self.num_results},
            headers={
                "X-API-KEY": self.api_key,
                "Content-Type": "application/json",
            },
        )

        organic = data.get("organic", [])
        if not isinstance(organic, list):
            raise ProviderError(self.name, "organic results are not a list")

        candidates: list[CompanyCandidate] = []
        for result in organic:
            candidate = self._parse_organic_result(result)
            if candidate is not None and not is_noise_domain(candidate.domain):
                candidates.append(candidate)

        knowledge_graph = data.get("knowledgeGraph")
        if isinstance(knowledge_graph, dict):
            candidates = self._apply_knowledge_graph(candidates, knowledge_graph)

        logger.info(f"Serper returned {len(organic)} organic results, kept {len(candidates)}")
        return candidates

    def _parse_organic_result(self, result: Any) -> CompanyCandidate | None:
        if not isinstance(result, dict):
            return None

        link = result.get("link")
        if not link or not isinstance(link, str):
            return None

        return CompanyCandidate(
            domain=link,
            name=clean_title(text_value(result.get("title"))),
            description=text_value(result.get("snippet")) or None,
            relevance_score=position_score(result.get("position")),
            source_tag=self.name,
            website=link,
        )

    def _apply_knowledge_graph(
        self,
        candidates: list[CompanyCandidate],
        kg: dict[str, Any],
    ) -> list[CompanyCandidate]:
        """Promote the knowledge-graph company to an exact match at the front."""
        website = kg.get("website")
        if not website or not isinstance(website, str) or is_noise_domain(website):
            return candidates

        title = text_value(kg.get("title"))
        description = text_value(kg.get("description"))

        kg_domain = normalize_domain(website)
        for i, candidate in enumerate(candidates):
            if normalize_domain(candidate.domain) == kg_domain:
                # Validated, unlike model_copy
                candidates[i] = CompanyCandidate.model_validate({
                    **dict(candidate),
                    "name": title or candidate.name,
                    "description": description or candidate.description,
                    "relevance_score": KNOWLEDGE_GRAPH_SCORE,
                    "exact_match": True,
                })
                return candidates

        return [
            CompanyCandidate(
                domain=website,
                name=title,
                industry=text_value(kg.get("type")) or None,
                description=description or None,
                relevance_score=KNOWLEDGE_GRAPH_SCORE,
                source_tag=self.name,
                website=website,
                exact_match=True,
            ),
            *candidates,
        ]
