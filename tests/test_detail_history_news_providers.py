import pytest
from unittest.mock import MagicMock

from conftest import make_session
from coinfeed.logger.logger import Logger
from coinfeed.platforms.coincap import CoinCapHistory
from coinfeed.platforms.coingecko import CoinGeckoDetail, CoinGeckoHistory
from coinfeed.platforms.coinstats import CoinStatsNews
from coinfeed.platforms.cryptopanic import CryptoPanicNews
from coinfeed.platforms.errors import InvalidRequest, MalformedResponse, Unauthorized
from coinfeed.platforms.newsapi import NewsApiNews

COINGECKO_COIN = {
    "id": "bitcoin",
    "symbol": "btc",
    "name": "Bitcoin",
    "market_cap_rank": 1,
    "image": {"thumb": "t.png", "small": "s.png", "large": "l.png"},
    "description": {"en": "Peer-to-peer cash."},
    "links": {
        "homepage": ["", "https://bitcoin.org"],
        "twitter_screen_name": "bitcoin",
        "subreddit_url": "https://reddit.com/r/bitcoin",
        "repos_url": {"github": ["https://github.com/bitcoin/bitcoin"]},
    },
    "market_data": {
        "current_price": {"usd": 64000.5, "eur": 59000},
        "market_cap": {"usd": 1.26e12},
        "total_volume": {"usd": 3.1e10},
        "high_24h": {"usd": 65000},
        "low_24h": {"usd": 63000},
        "price_change_24h": -512.25,
        "price_change_percentage_24h": -0.79,
        "ath": {"usd": 73750},
        "ath_change_percentage": {"usd": -13.2},
    },
}


@pytest.fixture
def logger():
    return MagicMock(spec=Logger)


@pytest.mark.asyncio
class TestCoinGeckoDetail:
    async def test_extended_block(self, logger):
        session = make_session(COINGECKO_COIN)
        adapter = CoinGeckoDetail(logger, session=session)

        asset = await adapter.fetch_detail("bitcoin")

        assert (asset.id, asset.symbol, asset.price, asset.change_24h, asset.rank) == \
               ("bitcoin", "BTC", 64000.5, -0.79, 1)
        assert asset.image == "l.png"
        ext = asset.extended
        assert ext.total_volume == 3.1e10
        assert (ext.high_24h, ext.low_24h) == (65000, 63000)
        assert ext.price_change_24h == -512.25
        assert (ext.ath, ext.ath_change_percentage) == (73750, -13.2)
        assert ext.website == "https://bitcoin.org"
        assert ext.twitter == "https://twitter.com/bitcoin"
        assert ext.github == "https://github.com/bitcoin/bitcoin"
        assert ext.description == "Peer-to-peer cash."
        assert ext.history == []

        args, kwargs = session.get.call_args
        assert args[0].endswith("/coins/bitcoin")
        assert kwargs["params"]["market_data"] == "true"
        assert kwargs["params"]["tickers"] == "false"

    async def test_missing_market_data_defaults_to_zero(self, logger):
        adapter = CoinGeckoDetail(logger, session=make_session({"id": "obscure", "name": "Obscure"}))
        asset = await adapter.fetch_detail("obscure")
        assert asset.price == 0.0
        assert asset.extended.ath == 0.0
        assert asset.extended.twitter == ""

    async def test_non_object_links_are_ignored(self, logger):
        payload = {"id": "odd", "name": "Odd", "links": "n/a", "description": ["x"]}
        asset = await CoinGeckoDetail(logger, session=make_session(payload)).fetch_detail("odd")
        assert (asset.extended.website, asset.extended.description) == ("", "")

    async def test_unexpected_detail_field_type_is_malformed(self, logger):
        payload = {"id": "odd", "links": {"subreddit_url": ["a", "b"]}}
        with pytest.raises(MalformedResponse):
            await CoinGeckoDetail(logger, session=make_session(payload)).fetch_detail("odd")

    async def test_empty_id_is_invalid_request(self, logger):
        session = make_session(COINGECKO_COIN)
        with pytest.raises(InvalidRequest):
            await CoinGeckoDetail(logger, session=session).fetch_detail("")
        session.get.assert_not_called()

    async def test_error_body_is_malformed(self, logger):
        adapter = CoinGeckoDetail(logger, session=make_session({"error": "coin not found"}))
        with pytest.raises(MalformedResponse):
            await adapter.fetch_detail("nope")


@pytest.mark.asyncio
class TestHistoryProviders:
    async def test_coingecko_chart_in_seconds_ascending(self, logger):
        payload = {"prices": [[1704153600000, 43000.5], [1704067200000, 42000.0], [None, 1], "junk"]}
        session = make_session(payload)
        points = await CoinGeckoHistory(logger, session=session).fetch_history("bitcoin", 7)

        assert [(p.timestamp, p.price) for p in points] == [(1704067200.0, 42000.0), (1704153600.0, 43000.5)]
        _, kwargs = session.get.call_args
        assert kwargs["params"] == {"vs_currency": "usd", "days": 7}

    async def test_coingecko_chart_without_prices_is_malformed(self, logger):
        with pytest.raises(MalformedResponse):
            await CoinGeckoHistory(logger, session=make_session({"market_caps": []})).fetch_history("bitcoin", 7)

    async def test_coincap_daily_history(self, logger):
        payload = {"data": [
            {"priceUsd": "43000.25", "time": 1704153600000},
            {"priceUsd": "bad", "time": 1704067200000},
        ]}
        session = make_session(payload)
        points = await CoinCapHistory(logger, session=session).fetch_history("bitcoin", 30)

        assert [(p.timestamp, p.price) for p in points] == [(1704067200.0, 0.0), (1704153600.0, 43000.25)]
        args, kwargs = session.get.call_args
        assert args[0].endswith("/assets/bitcoin/history")
        assert kwargs["params"]["interval"] == "d1"
        assert kwargs["params"]["end"] - kwargs["params"]["start"] == 30 * 24 * 60 * 60 * 1000


@pytest.mark.asyncio
class TestNewsProviders:
    async def test_cryptopanic(self, logger):
        payload = {"results": [
            {"id": 123, "title": "BTC up", "url": "https://cp/1", "published_at": "2024-01-02T10:00:00Z",
             "source": {"title": "CoinDesk"}, "metadata": {"description": "Summary", "image": "https://i/1.png"}},
            {"id": 124, "title": "No meta", "url": "https://cp/2", "published_at": "2024-01-02T09:00:00Z",
             "source": {"title": "Decrypt"}},
        ]}
        session = make_session(payload)
        articles = await CryptoPanicNews(logger, session=session, api_key="tok").fetch_news()

        first, second = articles
        assert (first.id, first.source, first.summary, first.image) == ("123", "CoinDesk", "Summary", "https://i/1.png")
        assert (second.summary, second.image) == ("", "")
        _, kwargs = session.get.call_args
        assert kwargs["params"]["auth_token"] == "tok"
        assert kwargs["params"]["currencies"] == "BTC,ETH"

    async def test_newsapi_uses_url_as_id(self, logger):
        payload = {"status": "ok", "articles": [
            {"source": {"id": None, "name": "Reuters"}, "title": "Crypto", "description": None,
             "url": "https://reuters/a", "urlToImage": "https://img/a.png", "publishedAt": "2024-01-03T00:00:00Z"},
            {"source": {"name": "Nobody"}, "title": "No url", "url": None, "publishedAt": "2024-01-03T00:00:00Z"},
        ]}
        session = make_session(payload)
        articles = await NewsApiNews(logger, session=session, api_key="news").fetch_news()

        assert len(articles) == 1
        assert articles[0].id == "https://reuters/a"
        assert articles[0].source == "Reuters"
        assert articles[0].summary == ""
        _, kwargs = session.get.call_args
        assert kwargs["headers"]["X-Api-Key"] == "news"
        assert kwargs["params"]["q"] == "cryptocurrency"

    async def test_newsapi_plain_string_source(self, logger):
        payload = {"articles": [{"url": "https://x/1", "title": "Flat", "source": "Reuters"}]}
        articles = await NewsApiNews(logger, session=make_session(payload)).fetch_news()

        assert [(a.id, a.source) for a in articles] == [("https://x/1", "Reuters")]

    async def test_cryptopanic_non_object_metadata(self, logger):
        payload = {"results": [
            {"id": 7, "title": "Odd", "url": "https://cp/7", "metadata": "n/a", "source": "CoinDesk"},
        ]}
        articles = await CryptoPanicNews(logger, session=make_session(payload)).fetch_news()

        assert (articles[0].summary, articles[0].image, articles[0].source) == ("", "", "CoinDesk")

    async def test_coinstats_iso_feed_date_is_kept(self, logger):
        payload = {"news": [{"id": "iso", "title": "t", "feedDate": "2024-01-05T08:00:00Z"}]}
        articles = await CoinStatsNews(logger, session=make_session(payload)).fetch_news()

        assert articles[0].published_at == "2024-01-05T08:00:00Z"

    async def test_coinstats_feed_date_is_iso(self, logger):
        payload = {"news": [
            {"id": "abc", "title": "ETH", "description": "d", "link": "https://cs/abc",
             "imgURL": "https://cs/abc.png", "source": "CoinStats", "feedDate": 1704067200000},
        ]}
        articles = await CoinStatsNews(logger, session=make_session(payload)).fetch_news()

        assert articles[0].published_at == "2024-01-01T00:00:00Z"
        assert articles[0].url == "https://cs/abc"
        assert articles[0].image == "https://cs/abc.png"

    async def test_missing_credentials_surface_as_unauthorized(self, logger):
        adapter = NewsApiNews(logger, session=make_session(status=401, text="apiKeyMissing"))
        with pytest.raises(Unauthorized):
            await adapter.fetch_news()
