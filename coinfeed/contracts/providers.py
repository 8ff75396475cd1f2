"""
Capability protocols implemented by the upstream adapters.

Each adapter wraps exactly one upstream and one capability. The cascade and the
retry executor only rely on `name` and `retry_policy`; the fetch signature is
capability specific.
"""
from typing import List, Protocol, runtime_checkable, TYPE_CHECKING

if TYPE_CHECKING:
    from coinfeed.models.assets import HistoryPoint, NormalizedAsset
    from coinfeed.models.news import NormalizedNewsArticle
    from coinfeed.utils.retry import RetryPolicy


class ProviderAdapter(Protocol):
    """Attributes every adapter exposes to the cascade."""
    name: str
    retry_policy: "RetryPolicy"


@runtime_checkable
class ListingProvider(Protocol):
    name: str
    retry_policy: "RetryPolicy"

    async def fetch_listing(self, page: int, per_page: int) -> List["NormalizedAsset"]: ...


@runtime_checkable
class DetailProvider(Protocol):
    name: str
    retry_policy: "RetryPolicy"

    async def fetch_detail(self, asset_id: str) -> "NormalizedAsset": ...


@runtime_checkable
class HistoryProvider(Protocol):
    name: str
    retry_policy: "RetryPolicy"

    async def fetch_history(self, asset_id: str, days: int) -> List["HistoryPoint"]: ...


@runtime_checkable
class NewsProvider(Protocol):
    name: str
    retry_policy: "RetryPolicy"

    async def fetch_news(self) -> List["NormalizedNewsArticle"]: ...


class ConnectivityProbe(Protocol):
    """Process-wide "is a network path available" signal."""

    def is_connected(self) -> bool: ...


class AlwaysConnected:
    """Default probe used when the host application does not observe connectivity."""

    def is_connected(self) -> bool:
        return True
