"""Base class for company search provider adapters.

Each adapter wraps one external data source and exposes a single capability:
``search(query) -> list[CompanyCandidate]``. Adapters may raise on any
failure; the search service records the failure against the provider's
circuit and carries on with the other providers.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from navigator.models import CompanyCandidate

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
MAX_RETRIES = 2
RETRY_BASE_DELAY = 1.0


def text_value(value: Any) -> str:
    """Stripped string from a JSON field, "" for anything that is not a string."""
    if not isinstance(value, str):
        return ""
    return value.strip()


class ProviderError(Exception):
    """Raised when a provider responds with something that cannot be used."""

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class ProviderAdapter(ABC):
    """HTTP-backed search provider.

    Subclasses set ``name`` and implement ``search``. Requests go through a
    lazily created ``httpx.AsyncClient`` whose timeout bounds every call.
    """

    name: str = "provider"

    def __init__(
        self,
        api_key: str = "",
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = MAX_RETRIES,
        retry_delay: float = RETRY_BASE_DELAY,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if max_retries < 0:
            raise ValueError("max_retries cannot be negative")

        self.api_key = api_key
        self._timeout = timeout
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._transport = transport
        self._http_client: httpx.AsyncClient | None = None

    @property
    def is_configured(self) -> bool:
        """Check if the provider has the credentials it needs."""
        return bool(self.api_key)

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._http_client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._http_client and not self._http_client.is_closed:
            await self._http_client.aclose()

    async def _post_json(
        self,
        url: str,
        payload: dict[str, Any],
        headers: dict[str, str],
    ) -> dict[str, Any]:
        """POST a JSON payload and return the decoded JSON object.

        Rate-limit responses (429) and timeouts are retried with exponential
        backoff; any other HTTP error is raised immediately.

        Raises:
            httpx.HTTPError: If the request ultimately fails.
            ProviderError: If the response body is not a JSON object.
        """
        client = await self._get_client()

        for attempt in range(self._max_retries + 1):
            try:
                response = await client.post(url, json=payload, headers=headers)
                response.raise_for_status()
                break
            except httpx.HTTPStatusError as e:
                if e.response.status_code == 429 and attempt < self._max_retries:
                    logger.warning(
                        f"{self.name} rate limited, attempt {attempt + 1}/{self._max_retries + 1}"
                    )
                    await asyncio.sleep(self._retry_delay * 2 ** attempt)
                    continue
                raise
            except httpx.TimeoutException:
                if attempt < self._max_retries:
                    logger.warning(
                        f"{self.name} timeout, attempt {attempt + 1}/{self._max_retries + 1}"
                    )
                    await asyncio.sleep(self._retry_delay * 2 ** attempt)
                    continue
                raise

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError(self.name, f"invalid JSON response: {e}") from e

        if not isinstance(data, dict):
            raise ProviderError(self.name, f"expected a JSON object, got {type(data).__name__}")
        return data

    @abstractmethod
    async def search(self, query: str) -> list[CompanyCandidate]:
        """Search the provider for companies matching ``query``."""
