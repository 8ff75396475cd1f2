import asyncio
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar, TYPE_CHECKING

from coinfeed.platforms.errors import NetworkError, NetworkErrorKind, ProviderError, RateLimited

if TYPE_CHECKING:
    from coinfeed.contracts.config import ConfigProtocol

T = TypeVar("T")
BackoffFn = Callable[[int], float]


def linear_backoff(step: float) -> BackoffFn:
    """Wait `attempt * step` seconds after the given (1-based) attempt."""
    def backoff(attempt: int) -> float:
        return max(attempt, 0) * step
    backoff.__qualname__ = f"linear_backoff({step})"
    return backoff


def fixed_backoff(seconds: float) -> BackoffFn:
    """Wait the same number of seconds after every attempt."""
    def backoff(_attempt: int) -> float:
        return seconds
    backoff.__qualname__ = f"fixed_backoff({seconds})"
    return backoff


@dataclass(frozen=True)
class RetryPolicy:
    """Retry budget of one adapter.

    `backoff` applies to rate limits only; timeouts and transient network
    faults wait `timeout_delay`. Both share the same `max_attempts` budget.
    """
    max_attempts: int = 2
    per_attempt_timeout: Optional[float] = None
    backoff: BackoffFn = field(default=linear_backoff(2.0))
    timeout_delay: float = 1.0

    def with_overrides(self, overrides: Dict[str, Any]) -> "RetryPolicy":
        """Apply a [retry.<provider>] config section on top of this policy."""
        if not overrides:
            return self
        changes: Dict[str, Any] = {}
        if "max_attempts" in overrides:
            changes["max_attempts"] = max(int(overrides["max_attempts"]), 1)
        if "per_attempt_timeout" in overrides:
            changes["per_attempt_timeout"] = float(overrides["per_attempt_timeout"])
        if "timeout_delay" in overrides:
            changes["timeout_delay"] = float(overrides["timeout_delay"])
        if "backoff_step" in overrides:
            step = float(overrides["backoff_step"])
            mode = str(overrides.get("backoff_mode", "linear")).lower()
            changes["backoff"] = fixed_backoff(step) if mode == "fixed" else linear_backoff(step)
        return replace(self, **changes)

    @classmethod
    def for_provider(cls, provider: str, default: "RetryPolicy",
                     config: Optional["ConfigProtocol"] = None) -> "RetryPolicy":
        if config is None:
            return default
        return default.with_overrides(config.get_retry_override(provider))


class _RetryContext:
    """Tracks one execute() call: attempt counter and logging."""

    def __init__(self, executor: "RetryExecutor", provider: str, policy: RetryPolicy):
        self.logger = executor.logger
        self.sleep = executor.sleep
        self.provider = provider
        self.policy = policy
        self.attempt = 0

    def _attempts_left(self) -> bool:
        return self.attempt < self.policy.max_attempts

    def _delay_for(self, error: ProviderError) -> float:
        if isinstance(error, RateLimited):
            delay = self.policy.backoff(self.attempt)
            if error.retry_after is not None:
                delay = max(delay, error.retry_after)
            return max(delay, 0.0)
        return max(self.policy.timeout_delay, 0.0)

    async def handle_error(self, error: ProviderError) -> bool:
        """Return True when the caller should try again (after waiting)."""
        if not error.retryable:
            self.logger.warning(
                f"{self.provider} - non-retryable {type(error).__name__} on attempt "
                f"{self.attempt}/{self.policy.max_attempts}: {error}"
            )
            return False

        if not self._attempts_left():
            self.logger.error(
                f"{self.provider} - failed after {self.attempt} attempt(s). "
                f"Last error: {type(error).__name__} - {error}"
            )
            return False

        delay = self._delay_for(error)
        label = "Rate limit" if isinstance(error, RateLimited) else "Network issue"
        self.logger.warning(
            f"{self.provider} - {label}. Retry {self.attempt + 1}/{self.policy.max_attempts} "
            f"in {delay:.2f} seconds. Type: {type(error).__name__}, Error: {error}"
        )
        await self.sleep(delay)
        return True


class RetryExecutor:
    """Runs one adapter call with a bounded number of attempts.

    RateLimited waits `policy.backoff(attempt)`, or longer when the upstream sent
    Retry-After; NetworkError(TIMEOUT/TRANSIENT)
    waits `policy.timeout_delay`; everything else, including
    NetworkError(NOT_CONNECTED), fails on the spot. The last error is re-raised
    once the budget is spent.
    """

    def __init__(self, logger: Optional[logging.Logger] = None,
                 sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep) -> None:
        self.logger = logger or logging.getLogger(__name__)
        self.sleep = sleep

    async def execute(self, call: Callable[[], Awaitable[T]], policy: RetryPolicy,
                      provider: str = "provider") -> T:
        context = _RetryContext(self, provider, policy)
        while True:
            context.attempt += 1
            try:
                return await self._run_attempt(call, policy, provider)
            except ProviderError as e:
                if e.provider is None:
                    e.provider = provider
                if not await context.handle_error(e):
                    raise

    @staticmethod
    async def _run_attempt(call: Callable[[], Awaitable[T]], policy: RetryPolicy, provider: str) -> T:
        if policy.per_attempt_timeout is None:
            return await call()
        try:
            return await asyncio.wait_for(call(), timeout=policy.per_attempt_timeout)
        except asyncio.TimeoutError as e:
            raise NetworkError(
                NetworkErrorKind.TIMEOUT,
                f"no response within {policy.per_attempt_timeout:.1f}s",
                provider=provider
            ) from e
