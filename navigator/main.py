"""FastAPI application for the company search service.

Exposes the multi-provider company search over HTTP. Provider keys and
tuning knobs come from the environment (see navigator.config).
"""

# Load environment variables before any other imports
from dotenv import load_dotenv

load_dotenv()

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from navigator import __version__
from navigator.config import Settings
from navigator.routers import search

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

API_TITLE = "Company Search API"
API_DESCRIPTION = """
Company search for the sales navigator.

A single query is sent to every available data provider in parallel;
results are cached, de-duplicated by company domain and ranked by relevance.
"""


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager.

    Logs which providers are configured on startup and closes provider
    HTTP clients on shutdown.
    """
    from navigator.services import get_search_service

    service = get_search_service()
    for provider in service.provider_status():
        logger.info(f"Provider {provider['name']} configured: {provider['configured']}")
    if not service.is_configured:
        logger.warning("No search providers configured - searches will return no results")
    logger.info("Application startup complete")

    yield

    logger.info("Shutting down application...")
    await get_search_service().close()
    logger.info("Search service closed")


app = FastAPI(
    title=API_TITLE,
    description=API_DESCRIPTION,
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

# CORS_ORIGINS is a comma-separated list; unset means allow all
_cors_origins = Settings.from_env().cors_origins or ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials="*" not in _cors_origins,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=[
        "Content-Type",
        "Authorization",
        "Accept",
        "Origin",
        "X-Requested-With",
    ],
)


@app.get("/", tags=["Root"])
async def root() -> dict[str, Any]:
    """Root endpoint returning API information."""
    return {
        "name": API_TITLE,
        "version": __version__,
        "docs": {
            "swagger": "/docs",
            "redoc": "/redoc",
            "openapi": "/openapi.json",
        },
        "status": "operational",
    }


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint for monitoring and load balancers."""
    return {"status": "healthy"}


app.include_router(search.router, prefix="/api", tags=["search"])
