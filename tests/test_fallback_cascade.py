import unittest
from unittest.mock import AsyncMock, MagicMock

from coinfeed.logger.logger import Logger
from coinfeed.managers.fallback_cascade import FallbackCascade
from coinfeed.platforms.errors import AllProvidersFailed, NetworkError, NetworkErrorKind, RateLimited, ServerError
from coinfeed.utils.retry import RetryExecutor, RetryPolicy, fixed_backoff


def make_adapter(name, *results, max_attempts=2):
    adapter = MagicMock()
    adapter.name = name
    adapter.retry_policy = RetryPolicy(max_attempts=max_attempts, backoff=fixed_backoff(0))
    adapter.fetch_listing = AsyncMock(side_effect=list(results))
    return adapter


class TestFallbackCascade(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.logger = MagicMock(spec=Logger)
        self.executor = RetryExecutor(self.logger, sleep=AsyncMock())
        self.cascade = FallbackCascade(self.executor, self.logger)

    async def resolve(self, adapters):
        return await self.cascade.resolve(adapters, lambda adapter: adapter.fetch_listing(1, 50), "listing")

    async def test_first_success_wins(self):
        first = make_adapter("A", ["a"])
        second = make_adapter("B", ["b"])

        result = await self.resolve([first, second])

        self.assertEqual(result.payload, ["a"])
        self.assertEqual(result.provider, "A")
        second.fetch_listing.assert_not_awaited()

    async def test_later_providers_not_invoked_after_success(self):
        adapters = [
            make_adapter("A", ServerError(500)),
            make_adapter("B", NetworkError(NetworkErrorKind.NOT_CONNECTED)),
            make_adapter("C", ["c"]),
            make_adapter("D", ["d"]),
        ]

        result = await self.resolve(adapters)

        self.assertEqual(result.provider, "C")
        for adapter in adapters[:3]:
            adapter.fetch_listing.assert_awaited_once_with(1, 50)
        adapters[3].fetch_listing.assert_not_awaited()

    async def test_rate_limited_provider_exhausts_budget_before_moving_on(self):
        limited = make_adapter("A", RateLimited(), RateLimited(), RateLimited(), max_attempts=3)
        backup = make_adapter("B", ["b"])

        result = await self.resolve([limited, backup])

        self.assertEqual(limited.fetch_listing.await_count, 3)
        self.assertEqual(result.provider, "B")

    async def test_all_failed_carries_ordered_errors(self):
        adapters = [
            make_adapter("A", ServerError(502)),
            make_adapter("B", RateLimited(), RateLimited()),
            make_adapter("C", ValueError("boom")),
        ]

        with self.assertRaises(AllProvidersFailed) as ctx:
            await self.resolve(adapters)

        error = ctx.exception
        self.assertEqual(error.capability, "listing")
        self.assertEqual(error.providers, ["A", "B", "C"])
        self.assertIsInstance(error.errors[0][1], ServerError)
        self.assertIsInstance(error.errors[1][1], RateLimited)
        self.assertIsInstance(error.errors[2][1], ValueError)

    async def test_empty_chain_fails(self):
        with self.assertRaises(AllProvidersFailed) as ctx:
            await self.resolve([])
        self.assertEqual(ctx.exception.errors, [])
