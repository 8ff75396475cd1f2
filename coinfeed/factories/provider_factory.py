"""Factory for creating upstream adapters based on configuration."""
from typing import Any, Dict, List, Optional, Type, TYPE_CHECKING

import aiohttp

if TYPE_CHECKING:
    from coinfeed.contracts.config import ConfigProtocol

from coinfeed.logger.logger import Logger
from coinfeed.platforms.base import BaseProviderClient, SymbolImageClient
from coinfeed.platforms.binance import BinanceListing
from coinfeed.platforms.coinbase import CoinbaseListing
from coinfeed.platforms.coincap import CoinCapHistory, CoinCapListing
from coinfeed.platforms.coingecko import CoinGeckoDetail, CoinGeckoHistory, CoinGeckoListing
from coinfeed.platforms.coinlore import CoinLoreListing
from coinfeed.platforms.coinpaprika import CoinPaprikaListing
from coinfeed.platforms.coinstats import CoinStatsListing, CoinStatsNews
from coinfeed.platforms.cryptopanic import CryptoPanicNews
from coinfeed.platforms.newsapi import NewsApiNews
from coinfeed.utils.retry import RetryPolicy

LISTING_ADAPTERS: Dict[str, Type[BaseProviderClient]] = {
    "coingecko": CoinGeckoListing,
    "coinstats": CoinStatsListing,
    "coincap": CoinCapListing,
    "coinpaprika": CoinPaprikaListing,
    "binance": BinanceListing,
    "coinlore": CoinLoreListing,
    "coinbase": CoinbaseListing,
}

HISTORY_ADAPTERS: Dict[str, Type[BaseProviderClient]] = {
    "coingecko": CoinGeckoHistory,
    "coincap": CoinCapHistory,
}

NEWS_ADAPTERS: Dict[str, Type[BaseProviderClient]] = {
    "cryptopanic": CryptoPanicNews,
    "newsapi": NewsApiNews,
    "coinstats": CoinStatsNews,
}


class ProviderFactory:
    """
    Factory for creating adapter chains based on configuration.

    Centralizes adapter instantiation: provider order comes from the
    [providers] section, API keys from keys.env and retry overrides from
    [retry.<provider>] sections. Every adapter shares the session it is given.

    Usage:
        factory = ProviderFactory(logger, config, session)
        chains = factory.create_chains()
    """

    def __init__(self, logger: Logger, config: "ConfigProtocol",
                 session: Optional[aiohttp.ClientSession] = None):
        """
        Initialize the provider factory.

        Args:
            logger: Logger instance for logging
            config: ConfigProtocol instance for configuration access
            session: Shared HTTP session handed to every adapter
        """
        self.logger = logger
        self.config = config
        self.session = session

    def _api_key(self, provider: str) -> Optional[str]:
        keys = {
            "coingecko": self.config.COINGECKO_API_KEY,
            "coinstats": self.config.COINSTATS_API_KEY,
            "coincap": self.config.COINCAP_API_KEY,
            "cryptopanic": self.config.CRYPTOPANIC_API_KEY,
            "newsapi": self.config.NEWSAPI_API_KEY,
        }
        return keys.get(provider) or None

    def create_adapter(self, provider: str, adapter_cls: Type[BaseProviderClient]) -> BaseProviderClient:
        """Instantiate one adapter with its key, retry policy and the shared session."""
        policy = RetryPolicy.for_provider(provider, adapter_cls.DEFAULT_RETRY_POLICY, self.config)
        kwargs: Dict[str, Any] = {
            "session": self.session,
            "api_key": self._api_key(provider),
            "retry_policy": policy,
        }
        if issubclass(adapter_cls, SymbolImageClient):
            kwargs["image_cdn"] = self.config.IMAGE_CDN_URL
        return adapter_cls(self.logger, **kwargs)

    def _create_chain(self, capability: str, order: List[str],
                      registry: Dict[str, Type[BaseProviderClient]]) -> List[BaseProviderClient]:
        chain = []
        for provider in order:
            adapter_cls = registry.get(provider)
            if adapter_cls is None:
                self.logger.warning(f"Unknown {capability} provider '{provider}' ignored")
                continue
            chain.append(self.create_adapter(provider, adapter_cls))
        self.logger.debug(f"{capability} chain: {' -> '.join(adapter.name for adapter in chain) or 'empty'}")
        return chain

    def create_listing_chain(self) -> List[BaseProviderClient]:
        return self._create_chain("listing", self.config.LISTING_PROVIDERS, LISTING_ADAPTERS)

    def create_detail_provider(self) -> BaseProviderClient:
        return self.create_adapter("coingecko", CoinGeckoDetail)

    def create_history_chain(self) -> List[BaseProviderClient]:
        return self._create_chain("history", self.config.HISTORY_PROVIDERS, HISTORY_ADAPTERS)

    def create_news_adapters(self) -> List[BaseProviderClient]:
        return self._create_chain("news", self.config.NEWS_PROVIDERS, NEWS_ADAPTERS)

    def create_chains(self) -> Dict[str, Any]:
        """
        Create every capability chain.

        Returns:
            Dict with 'listing', 'detail', 'history' and 'news' entries
        """
        return {
            "listing": self.create_listing_chain(),
            "detail": self.create_detail_provider(),
            "history": self.create_history_chain(),
            "news": self.create_news_adapters(),
        }
