"""Pydantic models for the company search service.

CompanyCandidate is what a single provider returns for one company;
CompanyRecord is the consolidated result handed back to API consumers,
one per normalized domain.
"""

from pydantic import BaseModel, ConfigDict, Field


def to_camel(string: str) -> str:
    """Convert snake_case to camelCase."""
    components = string.split("_")
    return components[0] + "".join(word.capitalize() for word in components[1:])


class CompanyCandidate(BaseModel):
    """A company as reported by one provider for one query.

    Attributes:
        domain: Domain or URL exactly as the provider returned it.
        name: Company name (may be empty when the provider only had a URL).
        industry: Industry or vertical, if known.
        region: Geographic region, if known.
        employee_count: Headcount, if known.
        description: Free-text description or search snippet.
        relevance_score: Provider-native relevance. Scales differ between
            providers, so it is only an ordering hint.
        source_tag: Name of the provider that produced this candidate.
        website: Full URL of the page the candidate came from.
        exact_match: True when the provider matched the query to this
            company directly (e.g. a knowledge-graph panel).
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        serialize_by_alias=True,
    )

    domain: str
    name: str = ""
    industry: str | None = None
    region: str | None = None
    employee_count: int | None = Field(default=None, ge=0)
    description: str | None = None
    relevance_score: float | None = None
    source_tag: str = Field(..., min_length=1)
    website: str | None = None
    exact_match: bool = False


class CompanyRecord(BaseModel):
    """A consolidated company, unique by normalized domain within a result set.

    Attributes:
        normalized_domain: Identity key, see navigator.services.domain.
        name: Company name.
        industry: Industry or vertical.
        region: Geographic region.
        employee_count: Headcount.
        description: Description text.
        website: Representative URL.
        sources: Providers that reported this company, first-seen order.
        best_relevance_score: Highest relevance score reported by any source,
            None if no source scored it.
        exact_match: True if any source flagged an exact match.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        serialize_by_alias=True,
    )

    normalized_domain: str = Field(..., min_length=1)
    name: str
    industry: str | None = None
    region: str | None = None
    employee_count: int | None = None
    description: str | None = None
    website: str | None = None
    sources: list[str] = Field(default_factory=list)
    best_relevance_score: float | None = None
    exact_match: bool = False


class SearchFilters(BaseModel):
    """Structured filters accepted alongside a search query."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        serialize_by_alias=True,
    )

    industries: list[str] = Field(default_factory=list)
    regions: list[str] = Field(default_factory=list)
    employee_min: int | None = Field(default=None, ge=0)
    employee_max: int | None = Field(default=None, ge=0)
    keywords: list[str] = Field(default_factory=list)
