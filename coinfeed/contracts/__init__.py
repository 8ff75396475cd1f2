"""Contracts and protocols for dependency injection"""

from .config import ConfigProtocol
from .providers import (
    AlwaysConnected,
    ConnectivityProbe,
    DetailProvider,
    HistoryProvider,
    ListingProvider,
    NewsProvider,
    ProviderAdapter,
)

__all__ = [
    "ConfigProtocol",
    "AlwaysConnected",
    "ConnectivityProbe",
    "DetailProvider",
    "HistoryProvider",
    "ListingProvider",
    "NewsProvider",
    "ProviderAdapter",
]
