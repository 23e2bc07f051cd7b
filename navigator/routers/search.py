"""Search router for company search.

Consumers only ever talk to the SearchService; caching, circuit breaking and
consolidation all happen behind it.
"""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field

from navigator.models import CompanyRecord, SearchFilters, to_camel
from navigator.services.search_service import SearchService, get_search_service

logger = logging.getLogger(__name__)


def _sanitize_for_log(value: str, max_length: int = 100) -> str:
    """Sanitize a string for safe logging to prevent log injection."""
    sanitized = "".join(c if c.isprintable() and c not in "\n\r\t" else " " for c in value)
    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length] + "..."
    return sanitized


router = APIRouter()

SearchServiceDep = Annotated[SearchService, Depends(get_search_service)]


class CompanySearchRequest(BaseModel):
    """Request model for company search.

    Attributes:
        query: Free-text search query.
        filters: Optional structured filters.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    query: str = Field(..., min_length=1, max_length=500, description="Search query string")
    filters: SearchFilters | None = None


class CompanySearchResponse(BaseModel):
    """Response model for company search.

    Attributes:
        results: Consolidated companies, highest relevance first.
        total: Number of results.
        query: Original search query.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        serialize_by_alias=True,
    )

    results: list[CompanyRecord]
    total: int
    query: str


class SimilarCompaniesRequest(BaseModel):
    """Seed company for a peer search."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    domain: str = Field(default="", max_length=255)
    name: str = Field(default="", max_length=200)
    industry: str | None = None
    region: str | None = None
    employee_count: int | None = Field(default=None, ge=0)


class SimilarCompaniesResponse(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        serialize_by_alias=True,
    )

    companies: list[CompanyRecord]


@router.post(
    "/search/companies",
    response_model=CompanySearchResponse,
    status_code=status.HTTP_200_OK,
    summary="Search companies across providers",
    description="Fan a query out to every available provider and return consolidated companies.",
)
async def search_companies(
    request: CompanySearchRequest,
    search_service: SearchServiceDep,
) -> CompanySearchResponse:
    """Search companies across all available providers.

    Raises:
        HTTPException: If the search query is blank.
    """
    query = request.query.strip()
    if not query:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Search query cannot be empty",
        )

    logger.info("Company search: %s", _sanitize_for_log(query))
    results = await search_service.search(query, request.filters)

    return CompanySearchResponse(results=results, total=len(results), query=query)


@router.post(
    "/search/similar",
    response_model=SimilarCompaniesResponse,
    status_code=status.HTTP_200_OK,
    summary="Find companies similar to a seed company",
)
async def search_similar(
    request: SimilarCompaniesRequest,
    search_service: SearchServiceDep,
) -> SimilarCompaniesResponse:
    """Find peer companies, excluding the seed company's own domain."""
    if not request.domain.strip() or not request.name.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="domain and name are required",
        )

    logger.info("Similar search for: %s", _sanitize_for_log(request.domain))
    companies = await search_service.find_similar(
        domain=request.domain,
        name=request.name,
        industry=request.industry,
        region=request.region,
        employee_count=request.employee_count,
    )
    return SimilarCompaniesResponse(companies=companies)


@router.get(
    "/search/status",
    response_model=dict,
    status_code=status.HTTP_200_OK,
    summary="Get search provider status",
    description="Provider configuration and circuit breaker state.",
)
async def get_search_status(search_service: SearchServiceDep) -> dict[str, Any]:
    """Get the current status of the search providers."""
    return {
        "configured": search_service.is_configured,
        "relevanceFloor": search_service.relevance_floor,
        "providers": search_service.provider_status(),
    }
