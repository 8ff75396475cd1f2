from unittest.mock import MagicMock

from conftest import make_config
from coinfeed.factories.provider_factory import ProviderFactory
from coinfeed.logger.logger import Logger
from coinfeed.managers.provider_types import ProviderChains
from coinfeed.platforms.coinbase import CoinbaseListing
from coinfeed.platforms.coincap import CoinCapHistory, CoinCapListing
from coinfeed.platforms.coingecko import CoinGeckoDetail, CoinGeckoListing
from coinfeed.platforms.newsapi import NewsApiNews


def test_default_chains_follow_declared_order():
    session = MagicMock()
    factory = ProviderFactory(MagicMock(spec=Logger), make_config(), session)

    chains = ProviderChains.from_factory_dict(factory.create_chains())

    assert chains.names() == {
        "listing": ["CoinGecko", "CoinStats", "CoinCap", "CoinPaprika", "Binance", "CoinLore", "Coinbase"],
        "detail": ["CoinGecko"],
        "history": ["CoinGecko", "CoinCap"],
        "news": ["CryptoPanic", "NewsAPI", "CoinStats"],
    }
    assert isinstance(chains.listing[0], CoinGeckoListing)
    assert isinstance(chains.listing[-1], CoinbaseListing)
    assert isinstance(chains.detail, CoinGeckoDetail)
    assert isinstance(chains.history[1], CoinCapHistory)
    assert all(adapter.session is session for adapter in chains.listing + chains.history + chains.news)


def test_keys_cdn_and_retry_overrides_are_applied():
    config = make_config(
        LISTING_PROVIDERS=["coincap", "coinbase"],
        NEWS_PROVIDERS=["newsapi"],
        COINCAP_API_KEY="cc-key",
        NEWSAPI_API_KEY="news-key",
    )
    config.get_retry_override.side_effect = lambda provider: {"max_attempts": 4} if provider == "coincap" else {}
    factory = ProviderFactory(MagicMock(spec=Logger), config, MagicMock())

    coincap, coinbase = factory.create_listing_chain()
    news, = factory.create_news_adapters()

    assert isinstance(coincap, CoinCapListing)
    assert coincap.api_key == "cc-key"
    assert coincap.retry_policy.max_attempts == 4
    assert coinbase.retry_policy.max_attempts == CoinbaseListing.DEFAULT_RETRY_POLICY.max_attempts
    assert coinbase.image_cdn == "https://cdn.test/icons"
    assert isinstance(news, NewsApiNews)
    assert news._headers() == {"X-Api-Key": "news-key"}


def test_unknown_names_are_skipped():
    logger = MagicMock(spec=Logger)
    factory = ProviderFactory(logger, make_config(HISTORY_PROVIDERS=["coingecko", "bogus"]), MagicMock())

    chain = factory.create_history_chain()

    assert [adapter.name for adapter in chain] == ["CoinGecko"]
    logger.warning.assert_called_once()
