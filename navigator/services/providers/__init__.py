"""Company search provider adapters."""

from navigator.services.providers.base import ProviderAdapter, ProviderError
from navigator.services.providers.exa import ExaProvider
from navigator.services.providers.parallel import ParallelProvider
from navigator.services.providers.serper import SerperProvider

__all__ = [
    "ProviderAdapter",
    "ProviderError",
    "ExaProvider",
    "ParallelProvider",
    "SerperProvider",
]
