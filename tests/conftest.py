import pytest
from unittest.mock import AsyncMock, MagicMock

from coinfeed.logger.logger import Logger


def make_config(**overrides):
    """MagicMock standing in for ConfigProtocol with the shipped defaults."""
    mock_config = MagicMock()
    mock_config.LOGGER_DEBUG = False
    mock_config.LOG_DIR = "logs"
    mock_config.COINGECKO_API_KEY = None
    mock_config.COINSTATS_API_KEY = None
    mock_config.COINCAP_API_KEY = None
    mock_config.CRYPTOPANIC_API_KEY = None
    mock_config.NEWSAPI_API_KEY = None
    mock_config.LISTING_PROVIDERS = [
        "coingecko", "coinstats", "coincap", "coinpaprika", "binance", "coinlore", "coinbase"
    ]
    mock_config.HISTORY_PROVIDERS = ["coingecko", "coincap"]
    mock_config.NEWS_PROVIDERS = ["cryptopanic", "newsapi", "coinstats"]
    mock_config.LISTING_CACHE_TTL = 60
    mock_config.DETAIL_CACHE_TTL = 120
    mock_config.HISTORY_CACHE_TTL = 300
    mock_config.NEWS_CACHE_TTL = 300
    mock_config.SINGLE_FLIGHT = False
    mock_config.DETAIL_FALLBACK_PAGE_SIZE = 100
    mock_config.DEFAULT_HISTORY_DAYS = 7
    mock_config.IMAGE_CDN_URL = "https://cdn.test/icons"
    mock_config.get_retry_override.return_value = {}
    mock_config.get_config.return_value = {}
    mock_config.get_env.return_value = None
    for key, value in overrides.items():
        setattr(mock_config, key, value)
    return mock_config


def make_session(payload=None, status=200, text="", headers=None):
    """Session mock whose get() yields one canned response, as aiohttp's context manager would."""
    mock_resp = AsyncMock()
    mock_resp.status = status
    mock_resp.headers = headers or {}
    mock_resp.json.return_value = payload
    mock_resp.text.return_value = text

    mock_get_ctx = AsyncMock()
    mock_get_ctx.__aenter__.return_value = mock_resp

    session = MagicMock()
    session.get = MagicMock(return_value=mock_get_ctx)
    return session


def make_failing_session(error):
    """Session mock whose get() raises `error` on entering the response context."""
    mock_get_ctx = AsyncMock()
    mock_get_ctx.__aenter__.side_effect = error
    session = MagicMock()
    session.get = MagicMock(return_value=mock_get_ctx)
    return session


@pytest.fixture
def mock_logger():
    return MagicMock(spec=Logger)


@pytest.fixture
def mock_config():
    return make_config()
