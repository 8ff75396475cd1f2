"""Ordered first-success-wins traversal of provider adapters."""
from typing import Awaitable, Callable, List, Sequence, Tuple, TypeVar

from coinfeed.contracts.providers import ProviderAdapter
from coinfeed.logger.logger import Logger
from coinfeed.managers.provider_types import CascadeResult
from coinfeed.platforms.errors import AllProvidersFailed
from coinfeed.utils.retry import RetryExecutor

A = TypeVar("A", bound=ProviderAdapter)
T = TypeVar("T")


class FallbackCascade:
    """
    Tries adapters strictly one at a time, in the order given.

    Each adapter goes through the retry executor with its own policy. The first
    success stops the walk; failures are recorded and the next adapter is tried.
    Stateless with respect to caching, so it can be reused by every capability.
    """

    def __init__(self, executor: RetryExecutor, logger: Logger) -> None:
        self.executor = executor
        self.logger = logger

    async def resolve(
        self,
        adapters: Sequence[A],
        invoke: Callable[[A], Awaitable[T]],
        capability: str
    ) -> CascadeResult[T]:
        """
        Return the first successful payload tagged with its provider name.

        Args:
            adapters: Adapters in priority order
            invoke: Builds the call for one adapter, e.g. ``lambda a: a.fetch_listing(1, 50)``
            capability: Label used in logs and in AllProvidersFailed

        Raises:
            AllProvidersFailed: every adapter failed; carries the ordered per-provider errors
        """
        errors: List[Tuple[str, Exception]] = []
        for index, adapter in enumerate(adapters):
            self._log_attempt(adapter.name, capability, index, len(adapters))
            try:
                payload = await self.executor.execute(
                    lambda adapter=adapter: invoke(adapter),
                    adapter.retry_policy,
                    provider=adapter.name
                )
            except Exception as e:
                self._log_failure(adapter.name, capability, e)
                errors.append((adapter.name, e))
                continue
            if index:
                self.logger.info(f"{capability} served by fallback provider {adapter.name}")
            return CascadeResult(payload=payload, provider=adapter.name)

        self.logger.error(f"All {capability} providers failed: {', '.join(name for name, _ in errors) or 'none configured'}")
        raise AllProvidersFailed(capability, errors)

    def _log_attempt(self, provider: str, capability: str, index: int, total: int) -> None:
        self.logger.debug(f"Fetching {capability} from {provider} ({index + 1}/{total})")

    def _log_failure(self, provider: str, capability: str, error: Exception) -> None:
        self.logger.warning(f"{provider} failed for {capability}: {type(error).__name__} - {error}")
