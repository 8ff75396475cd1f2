"""Dataclasses for provider chains and cascade results."""
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Optional, TypeVar, TYPE_CHECKING

if TYPE_CHECKING:
    from coinfeed.contracts.providers import DetailProvider, HistoryProvider, ListingProvider, NewsProvider
    from coinfeed.models.assets import NormalizedAsset

T = TypeVar("T")


@dataclass
class CascadeResult(Generic[T]):
    """Payload of the first successful provider, tagged with its name."""
    payload: T
    provider: str


@dataclass
class ListingResult:
    """Listing page as returned to callers; `provider` names the upstream that served it."""
    assets: List["NormalizedAsset"]
    provider: str
    from_cache: bool = False

    def __len__(self) -> int:
        return len(self.assets)


@dataclass
class ProviderChains:
    """Ordered adapters per capability (runtime objects, not serializable)."""
    listing: List["ListingProvider"] = field(default_factory=list)
    detail: Optional["DetailProvider"] = None
    history: List["HistoryProvider"] = field(default_factory=list)
    news: List["NewsProvider"] = field(default_factory=list)

    @classmethod
    def from_factory_dict(cls, chains: Dict[str, Any]) -> "ProviderChains":
        """Create from ProviderFactory.create_chains() output."""
        return cls(
            listing=list(chains.get('listing', [])),
            detail=chains.get('detail'),
            history=list(chains.get('history', [])),
            news=list(chains.get('news', []))
        )

    def names(self) -> Dict[str, List[str]]:
        return {
            'listing': [adapter.name for adapter in self.listing],
            'detail': [self.detail.name] if self.detail else [],
            'history': [adapter.name for adapter in self.history],
            'news': [adapter.name for adapter in self.news],
        }
