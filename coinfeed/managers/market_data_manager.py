"""Aggregation façade: the single entry point for listing, detail, history and news."""
import asyncio
from dataclasses import replace
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Tuple, TYPE_CHECKING

import aiohttp

from coinfeed.contracts.providers import AlwaysConnected, ConnectivityProbe
from coinfeed.factories.provider_factory import ProviderFactory
from coinfeed.logger.logger import Logger
from coinfeed.managers.cache_store import (
    CAPABILITIES,
    DETAIL,
    HISTORY,
    LISTING,
    NEWS,
    CacheStore,
    detail_key,
    history_key,
    listing_key,
    news_key,
)
from coinfeed.managers.fallback_cascade import FallbackCascade
from coinfeed.managers.provider_types import ListingResult, ProviderChains
from coinfeed.models.assets import HistoryPoint, NormalizedAsset
from coinfeed.models.news import NormalizedNewsArticle, sort_newest_first
from coinfeed.platforms.errors import (
    AllProvidersFailed,
    AssetNotFound,
    InvalidRequest,
    NetworkError,
    NetworkErrorKind,
)
from coinfeed.utils.retry import RetryExecutor

if TYPE_CHECKING:
    from coinfeed.contracts.config import ConfigProtocol

MAX_PER_PAGE = 250


class MarketDataService:
    """
    Aggregates market data from several upstreams behind one interface.

    Responsibilities:
    - Read-through caching per capability (listing, detail, history, news)
    - First-success cascades for listing, detail and history
    - Union of every news provider's articles
    - Best-effort background history refinement of cached detail records

    Owns the shared HTTP session when none is injected. Use as an async
    context manager, or call close() when done.
    """

    def __init__(
        self,
        logger: Logger,
        config: Optional["ConfigProtocol"] = None,
        *,
        session: Optional[aiohttp.ClientSession] = None,
        chains: Optional[ProviderChains] = None,
        cache: Optional[CacheStore] = None,
        executor: Optional[RetryExecutor] = None,
        connectivity: Optional[ConnectivityProbe] = None,
        single_flight: Optional[bool] = None
    ) -> None:
        """
        Initialize the service.

        Args:
            logger: Logger instance
            config: Configuration; the global config is used when omitted
            session: Shared HTTP session; created on start() when omitted
            chains: Adapter chains; built by ProviderFactory on start() when omitted
            cache: Cache store; built from the configured TTLs when omitted
            executor: Retry executor shared by every cascade
            connectivity: Network availability probe, always connected by default
            single_flight: Share one in-flight load between identical concurrent calls
        """
        if config is None:
            from coinfeed.config.loader import config as default_config
            config = default_config
        self.logger = logger
        self.config = config
        self.session = session
        self._owns_session = session is None
        self.chains = chains
        self.cache = cache or CacheStore(
            {
                LISTING: config.LISTING_CACHE_TTL,
                DETAIL: config.DETAIL_CACHE_TTL,
                HISTORY: config.HISTORY_CACHE_TTL,
                NEWS: config.NEWS_CACHE_TTL,
            },
            logger=logger
        )
        self.executor = executor or RetryExecutor(logger)
        self.cascade = FallbackCascade(self.executor, logger)
        self.connectivity = connectivity or AlwaysConnected()
        self.single_flight = config.SINGLE_FLIGHT if single_flight is None else single_flight
        self._inflight: Dict[str, asyncio.Future] = {}
        self._background: Set[asyncio.Task] = set()
        self._is_closed = False

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, _exc_type, _exc_val, _exc_tb):
        await self.close()

    async def start(self) -> None:
        """Create the shared session and the adapter chains if they were not injected."""
        if self.chains is not None:
            return
        if self.session is None:
            connector = aiohttp.TCPConnector(resolver=aiohttp.AsyncResolver())
            self.session = aiohttp.ClientSession(connector=connector)
            self._owns_session = True
        factory = ProviderFactory(self.logger, self.config, self.session)
        self.chains = ProviderChains.from_factory_dict(factory.create_chains())
        self.logger.debug(f"Provider chains: {self.chains.names()}")

    async def close(self) -> None:
        """Cancel background refinements and close the session if this service created it."""
        if self._is_closed:
            return
        self._is_closed = True

        pending = [task for task in self._background if not task.done()]
        if pending:
            self.logger.debug(f"Cancelling {len(pending)} background refinement task(s)")
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
        self._background.clear()

        if self.session and self._owns_session:
            try:
                await self.session.close()
            except Exception as e:
                self.logger.error(f"Error closing market data session: {e}")
            self.session = None
        self.logger.debug("Market data service closed")

    async def drain(self) -> None:
        """Wait for every outstanding background refinement to finish."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def refresh(self, capability: Optional[str] = None) -> int:
        """
        Drop cached entries so the next call goes back to the upstreams.

        Args:
            capability: One of listing, detail, history, news; all when omitted

        Returns:
            Number of cache entries removed
        """
        if capability is not None and capability not in CAPABILITIES:
            raise InvalidRequest(f"unknown capability '{capability}'")
        removed = await self.cache.invalidate(capability)
        self.logger.info(f"Refreshed {capability or 'all'} market data ({removed} cached entries dropped)")
        return removed

    # Listing

    async def fetch_listing(self, page: int = 1, per_page: int = 50) -> ListingResult:
        """
        Fetch one page of assets from the first listing provider that answers.

        Args:
            page: 1-based page number
            per_page: Page size, 1..250

        Returns:
            ListingResult with the assets and the name of the provider that served them

        Raises:
            InvalidRequest: page or per_page out of range
            NetworkError: no network path available (NOT_CONNECTED)
            AllProvidersFailed: every listing provider failed
        """
        if page < 1:
            raise InvalidRequest(f"page must be >= 1, got {page}")
        if not 1 <= per_page <= MAX_PER_PAGE:
            raise InvalidRequest(f"per_page must be between 1 and {MAX_PER_PAGE}, got {per_page}")

        key = listing_key(page, per_page)
        entry = await self.cache.get(key)
        if entry is not None:
            return replace(entry.payload, from_cache=True)

        return await self._load(key, lambda: self._load_listing(key, page, per_page))

    async def _load_listing(self, key: str, page: int, per_page: int) -> ListingResult:
        result = await self.cascade.resolve(
            self.chains.listing,
            lambda adapter: adapter.fetch_listing(page, per_page),
            LISTING
        )
        listing = ListingResult(assets=result.payload, provider=result.provider)
        await self.cache.put(key, listing)
        self.logger.info(f"Listing page {page} ({len(listing)} assets) served by {listing.provider}")
        return listing

    # Detail

    async def fetch_detail(self, asset_id: str) -> NormalizedAsset:
        """
        Fetch one asset with its extended block.

        Falls back to locating the asset in a listing page when the detail
        provider fails; a failed history enrichment still returns the basic record.

        Raises:
            InvalidRequest: empty asset id
            NetworkError: no network path available (NOT_CONNECTED)
            AssetNotFound: neither the detail provider nor the fallback listing knows the asset
            AllProvidersFailed: detail provider and every fallback listing provider failed
        """
        asset_id = self._require_id(asset_id)
        key = detail_key(asset_id)
        entry = await self.cache.get(key)
        if entry is not None:
            return entry.payload

        return await self._load(key, lambda: self._load_detail(key, asset_id))

    async def _load_detail(self, key: str, asset_id: str) -> NormalizedAsset:
        detail = self.chains.detail
        detail_errors: List[Tuple[str, Exception]] = []
        if detail is not None:
            try:
                asset = await self.executor.execute(
                    lambda: detail.fetch_detail(asset_id), detail.retry_policy, provider=detail.name
                )
            except Exception as e:
                self.logger.warning(
                    f"Detail provider {detail.name} failed for {asset_id}, "
                    f"falling back to listing: {type(e).__name__} - {e}"
                )
                detail_errors.append((detail.name, e))
            else:
                await self.cache.put(key, asset)
                self._schedule_refinement(asset_id)
                return asset

        try:
            asset = await self._detail_from_listing(asset_id)
        except AllProvidersFailed as e:
            raise AllProvidersFailed(DETAIL, detail_errors + e.errors) from e
        await self.cache.put(key, asset)
        return asset

    async def _detail_from_listing(self, asset_id: str) -> NormalizedAsset:
        listing = await self.fetch_listing(1, min(self.config.DETAIL_FALLBACK_PAGE_SIZE, MAX_PER_PAGE))
        wanted = asset_id.lower()
        asset = next((candidate for candidate in listing.assets if candidate.id.lower() == wanted), None)
        if asset is None:
            self.logger.warning(f"{asset_id} not found in {listing.provider} listing fallback")
            raise AssetNotFound(asset_id)

        try:
            history = await self._history_cascade(asset.id, self.config.DEFAULT_HISTORY_DAYS)
        except Exception as e:
            self.logger.warning(f"History enrichment failed for {asset_id}, returning basic record: {e}")
            return asset
        return asset.with_history(history)

    def _schedule_refinement(self, asset_id: str) -> None:
        if not self.chains.history:
            return
        task = asyncio.create_task(self._refine_detail(asset_id))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _refine_detail(self, asset_id: str) -> None:
        """Fetch the detailed chart and merge it into the cached detail record."""
        adapter = self.chains.history[0]
        days = self.config.DEFAULT_HISTORY_DAYS
        try:
            history = await self.executor.execute(
                lambda: adapter.fetch_history(asset_id, days), adapter.retry_policy, provider=adapter.name
            )
        except Exception as e:
            self.logger.warning(f"Background history refinement for {asset_id} failed: {type(e).__name__} - {e}")
            return

        merged = await self.cache.merge(detail_key(asset_id), lambda asset: asset.with_history(history))
        if merged:
            self.logger.debug(f"Merged {len(history)} history points from {adapter.name} into {asset_id}")
        else:
            self.logger.debug(f"Detail entry for {asset_id} gone before refinement finished")

    # History

    async def fetch_history(self, asset_id: str, days: Optional[int] = None) -> List[HistoryPoint]:
        """
        Fetch the price history of one asset, ascending by timestamp.

        Args:
            asset_id: Canonical asset id
            days: Span in days, configured default (7) when omitted

        Raises:
            InvalidRequest: empty asset id or days < 1
            NetworkError: no network path available (NOT_CONNECTED)
            AllProvidersFailed: every history provider failed
        """
        asset_id = self._require_id(asset_id)
        days = self.config.DEFAULT_HISTORY_DAYS if days is None else days
        if days < 1:
            raise InvalidRequest(f"days must be >= 1, got {days}")

        key = history_key(asset_id, days)
        entry = await self.cache.get(key)
        if entry is not None:
            return entry.payload

        return await self._load(key, lambda: self._load_history(key, asset_id, days))

    async def _load_history(self, key: str, asset_id: str, days: int) -> List[HistoryPoint]:
        history = await self._history_cascade(asset_id, days)
        await self.cache.put(key, history)
        return history

    async def _history_cascade(self, asset_id: str, days: int) -> List[HistoryPoint]:
        result = await self.cascade.resolve(
            self.chains.history,
            lambda adapter: adapter.fetch_history(asset_id, days),
            HISTORY
        )
        return sorted(result.payload, key=lambda point: point.timestamp)

    # News

    async def fetch_news(self) -> List[NormalizedNewsArticle]:
        """
        Collect articles from every news provider, newest first.

        A single answering provider is enough; only when all of them fail
        is AllProvidersFailed raised.

        Raises:
            NetworkError: no network path available (NOT_CONNECTED)
            AllProvidersFailed: every news provider failed
        """
        key = news_key()
        entry = await self.cache.get(key)
        if entry is not None:
            return entry.payload

        return await self._load(key, lambda: self._load_news(key))

    async def _load_news(self, key: str) -> List[NormalizedNewsArticle]:
        adapters = self.chains.news
        results = await asyncio.gather(
            *(
                self.executor.execute(adapter.fetch_news, adapter.retry_policy, provider=adapter.name)
                for adapter in adapters
            ),
            return_exceptions=True
        )

        articles: List[NormalizedNewsArticle] = []
        errors: List[Tuple[str, Exception]] = []
        for adapter, result in zip(adapters, results):
            if isinstance(result, Exception):
                self.logger.warning(f"{adapter.name} news failed: {type(result).__name__} - {result}")
                errors.append((adapter.name, result))
            elif isinstance(result, BaseException):
                raise result
            else:
                self.logger.debug(f"{adapter.name}: {len(result)} news items")
                articles.extend(result)

        if len(errors) == len(adapters):
            self.logger.error("All news providers failed")
            raise AllProvidersFailed(NEWS, errors)

        articles = sort_newest_first(articles)
        await self.cache.put(key, articles)
        self.logger.info(f"Fetched {len(articles)} news items from {len(adapters) - len(errors)}/{len(adapters)} providers")
        return articles

    # Shared plumbing

    async def _load(self, key: str, loader: Callable[[], Awaitable[Any]]) -> Any:
        """Run a cache-miss load after the connectivity check, shared between callers when single-flight is on."""
        self._ensure_connected()
        await self.start()
        if not self.single_flight:
            return await loader()

        future = self._inflight.get(key)
        if future is None:
            future = asyncio.ensure_future(loader())
            self._inflight[key] = future
            future.add_done_callback(lambda done, key=key: self._forget_inflight(key, done))
        else:
            self.logger.debug(f"Joining in-flight load for {key}")
        return await asyncio.shield(future)

    def _forget_inflight(self, key: str, future: asyncio.Future) -> None:
        if self._inflight.get(key) is future:
            del self._inflight[key]
        if not future.cancelled():
            # mark the exception retrieved when every waiter has gone away
            future.exception()

    def _ensure_connected(self) -> None:
        if not self.connectivity.is_connected():
            self.logger.warning("No network path available, skipping upstream calls")
            raise NetworkError(NetworkErrorKind.NOT_CONNECTED, "no network path available")

    @staticmethod
    def _require_id(asset_id: str) -> str:
        asset_id = (asset_id or "").strip()
        if not asset_id:
            raise InvalidRequest("asset id must not be empty")
        return asset_id
