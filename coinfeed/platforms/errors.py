"""
Error taxonomy for upstream adapters and the aggregation façade.

Adapters raise ProviderError subclasses; the retry executor decides from
`retryable` whether another attempt is worthwhile. Only AllProvidersFailed,
AssetNotFound, InvalidRequest and NetworkError(NOT_CONNECTED) cross the
façade boundary.
"""
from enum import Enum
from typing import List, Optional, Tuple


class NetworkErrorKind(str, Enum):
    TIMEOUT = "timeout"
    NOT_CONNECTED = "not_connected"
    TRANSIENT = "transient"


class MarketDataError(Exception):
    """Base class for every error raised by coinfeed."""


class ProviderError(MarketDataError):
    """Failure of a single adapter invocation."""
    retryable = False

    def __init__(self, message: str = "", provider: Optional[str] = None) -> None:
        self.provider = provider
        self.message = message or self.__class__.__name__
        prefix = f"{provider}: " if provider else ""
        super().__init__(f"{prefix}{self.message}")


class InvalidRequest(ProviderError):
    """Request could not be built (bad page, empty id, unbuildable URL)."""


class Unauthorized(ProviderError):
    """Upstream answered 401/403."""


class RateLimited(ProviderError):
    """Upstream answered 429."""
    retryable = True

    def __init__(self, message: str = "", provider: Optional[str] = None,
                 retry_after: Optional[float] = None) -> None:
        self.retry_after = retry_after
        super().__init__(message or "rate limited", provider)


class ServerError(ProviderError):
    """Any other non-2xx status."""

    def __init__(self, status: int, message: str = "", provider: Optional[str] = None) -> None:
        self.status = status
        super().__init__(message or f"HTTP {status}", provider)


class MalformedResponse(ProviderError):
    """Body was not JSON, or JSON of an unexpected shape."""


class NetworkError(ProviderError):
    """Transport failure. Timeouts and transient faults are retried, NOT_CONNECTED is not."""

    def __init__(self, kind: NetworkErrorKind, message: str = "", provider: Optional[str] = None) -> None:
        self.kind = kind
        super().__init__(message or f"network {kind.value}", provider)

    @property
    def retryable(self) -> bool:
        return self.kind != NetworkErrorKind.NOT_CONNECTED


class AssetNotFound(MarketDataError):
    """Detail lookup exhausted the detail provider and the fallback listing."""

    def __init__(self, asset_id: str) -> None:
        self.asset_id = asset_id
        super().__init__(f"asset '{asset_id}' not found by any provider")


class AllProvidersFailed(MarketDataError):
    """Every adapter of a capability failed; `errors` keeps them in cascade order."""

    def __init__(self, capability: str, errors: List[Tuple[str, Exception]]) -> None:
        self.capability = capability
        self.errors = list(errors)
        summary = "; ".join(f"{name}: {type(err).__name__}({err})" for name, err in self.errors)
        super().__init__(f"all {capability} providers failed [{summary or 'no providers configured'}]")

    @property
    def rate_limited(self) -> bool:
        """True when every provider ended with an exhausted rate limit."""
        return bool(self.errors) and all(isinstance(err, RateLimited) for _, err in self.errors)

    @property
    def providers(self) -> List[str]:
        return [name for name, _ in self.errors]


MESSAGE_RATE_LIMITED = "Market data sources are busy right now. Please wait a moment and retry."
MESSAGE_NOT_CONNECTED = "No internet connection. Check your connection and retry."
MESSAGE_ALL_FAILED = "None of the market data sources responded. Please retry."
MESSAGE_GENERIC = "Data failed to load. Please retry."


def user_message(error: BaseException) -> str:
    """Human-readable retry prompt for an error reaching the presentation layer."""
    if isinstance(error, NetworkError) and error.kind == NetworkErrorKind.NOT_CONNECTED:
        return MESSAGE_NOT_CONNECTED
    if isinstance(error, RateLimited):
        return MESSAGE_RATE_LIMITED
    if isinstance(error, AllProvidersFailed):
        return MESSAGE_RATE_LIMITED if error.rate_limited else MESSAGE_ALL_FAILED
    return MESSAGE_GENERIC
