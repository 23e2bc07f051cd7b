"""Runtime configuration for the company search service.

Values come from environment variables (optionally loaded from a ``.env``
file by ``navigator.main``). Provider API keys arrive already decrypted.
"""

import os
from dataclasses import dataclass, field


DEFAULT_CACHE_DATABASE_URL = "sqlite:///./navigator_cache.db"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _env_list(name: str) -> list[str]:
    raw = os.getenv(name, "")
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass
class Settings:
    """Service settings.

    Attributes:
        exa_api_key: API key for the Exa web-intelligence search provider.
        serper_api_key: API key for the Serper Google search provider.
        parallel_api_key: API key for the Parallel AI web search provider.
        relevance_floor: Minimum relevance score a consolidated company needs
            to be returned. 0 disables filtering.
        failure_threshold: Consecutive provider failures before its circuit opens.
        open_duration_ms: Cooldown before an open circuit allows a trial call.
        provider_timeout: Per-request HTTP timeout for provider adapters, seconds.
        cache_backend: "memory" for a process-local cache, "sql" for the
            shared database-backed cache.
        cache_database_url: SQLAlchemy URL used when cache_backend is "sql".
        cors_origins: Allowed CORS origins; empty means allow all.
    """

    exa_api_key: str = ""
    serper_api_key: str = ""
    parallel_api_key: str = ""
    relevance_floor: float = 0.0
    failure_threshold: int = 3
    open_duration_ms: int = 60_000
    provider_timeout: float = 30.0
    cache_backend: str = "memory"
    cache_database_url: str = DEFAULT_CACHE_DATABASE_URL
    cors_origins: list[str] = field(default_factory=list)

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the current environment."""
        cache_backend = os.getenv("CACHE_BACKEND", "memory").strip().lower() or "memory"
        if cache_backend not in ("memory", "sql"):
            raise ValueError(f"CACHE_BACKEND must be 'memory' or 'sql', got {cache_backend!r}")

        return cls(
            exa_api_key=os.getenv("EXA_API_KEY", ""),
            serper_api_key=os.getenv("SERPER_API_KEY", ""),
            parallel_api_key=os.getenv("PARALLEL_API_KEY", ""),
            relevance_floor=_env_float("SEARCH_RELEVANCE_FLOOR", 0.0),
            failure_threshold=_env_int("CIRCUIT_FAILURE_THRESHOLD", 3),
            open_duration_ms=_env_int("CIRCUIT_OPEN_DURATION_MS", 60_000),
            provider_timeout=_env_float("PROVIDER_TIMEOUT_SECONDS", 30.0),
            cache_backend=cache_backend,
            cache_database_url=os.getenv("CACHE_DATABASE_URL", DEFAULT_CACHE_DATABASE_URL),
            cors_origins=_env_list("CORS_ORIGINS"),
        )
