"""
CoinGecko adapters: the metadata-rich primary for listing, the only detail
provider and the detailed-chart history provider.
"""
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from coinfeed.models.assets import AssetExtended, HistoryPoint, NormalizedAsset
from coinfeed.platforms.base import BaseProviderClient
from coinfeed.platforms.errors import MalformedResponse
from coinfeed.utils.parsing import safe_float
from coinfeed.utils.retry import RetryPolicy, linear_backoff


class CoinGeckoClient(BaseProviderClient):
    """Shared request building for every CoinGecko capability."""

    name = "CoinGecko"
    BASE_URL = "https://api.coingecko.com/api/v3"
    DEFAULT_RETRY_POLICY = RetryPolicy(max_attempts=2, backoff=linear_backoff(2.0), timeout_delay=1.0)

    def _headers(self) -> Dict[str, str]:
        return {"x-cg-demo-api-key": self.api_key} if self.api_key else {}


class CoinGeckoListing(CoinGeckoClient):
    MARKETS_URL = f"{CoinGeckoClient.BASE_URL}/coins/markets"
    TIMEOUT = 5.0

    async def fetch_listing(self, page: int, per_page: int) -> List[NormalizedAsset]:
        params = {
            "vs_currency": "usd",
            "order": "market_cap_desc",
            "per_page": per_page,
            "page": page,
            "sparkline": "false",
        }
        data = await self._get_json(self.MARKETS_URL, params=params)
        return self.parse_markets(data)

    def parse_markets(self, data: Any) -> List[NormalizedAsset]:
        rows = self._expect(data, list, "a list of markets")
        return self._build_models(NormalizedAsset, (
            {
                "id": row.get("id"),
                "name": row.get("name"),
                "symbol": str(row.get("symbol") or "").upper(),
                "price": row.get("current_price"),
                "change_24h": row.get("price_change_percentage_24h"),
                "market_cap": row.get("market_cap"),
                "image": row.get("image"),
                "rank": row.get("market_cap_rank"),
            }
            for row in rows if isinstance(row, dict)
        ))


class CoinGeckoDetail(CoinGeckoClient):
    COIN_URL_TEMPLATE = f"{CoinGeckoClient.BASE_URL}/coins/{{coin_id}}"
    TIMEOUT = 8.0

    async def fetch_detail(self, asset_id: str) -> NormalizedAsset:
        url = self.COIN_URL_TEMPLATE.format(coin_id=self._quote_id(asset_id))
        params = {
            "localization": "false",
            "tickers": "false",
            "market_data": "true",
            "community_data": "false",
            "developer_data": "false",
            "sparkline": "false",
        }
        data = await self._get_json(url, params=params)
        return self.parse_coin(data, asset_id)

    def parse_coin(self, data: Any, asset_id: str) -> NormalizedAsset:
        coin = self._expect(data, dict, "a coin object")
        if "error" in coin and "id" not in coin:
            raise MalformedResponse(f"coin lookup failed: {coin.get('error')}", provider=self.name)
        market = coin.get("market_data") or {}
        if not isinstance(market, dict):
            raise MalformedResponse("market_data is not an object", provider=self.name)

        links = self._as_dict(coin.get("links"))
        image = coin.get("image") or {}
        try:
            extended = AssetExtended(
                total_volume=self._usd(market, "total_volume"),
                high_24h=self._usd(market, "high_24h"),
                low_24h=self._usd(market, "low_24h"),
                price_change_24h=market.get("price_change_24h"),
                ath=self._usd(market, "ath"),
                ath_change_percentage=self._usd(market, "ath_change_percentage"),
                description=self._as_dict(coin.get("description")).get("en") or "",
                website=self._first(links.get("homepage")),
                twitter=self._twitter(links.get("twitter_screen_name")),
                reddit=links.get("subreddit_url") or "",
                github=self._first(self._as_dict(links.get("repos_url")).get("github")),
            )
        except ValidationError as e:
            raise MalformedResponse(f"unexpected detail fields: {e.errors()[0].get('msg', e)}", provider=self.name) from e
        assets = self._build_models(NormalizedAsset, [{
            "id": coin.get("id") or asset_id,
            "name": coin.get("name"),
            "symbol": str(coin.get("symbol") or "").upper(),
            "price": self._usd(market, "current_price"),
            "change_24h": market.get("price_change_percentage_24h"),
            "market_cap": self._usd(market, "market_cap"),
            "image": (image.get("large") or image.get("small")) if isinstance(image, dict) else image,
            "rank": coin.get("market_cap_rank") or market.get("market_cap_rank"),
            "extended": extended,
        }])
        if not assets:
            raise MalformedResponse(f"coin '{asset_id}' has no usable id", provider=self.name)
        return assets[0]

    @staticmethod
    def _usd(market: Dict[str, Any], key: str) -> float:
        value = market.get(key)
        if isinstance(value, dict):
            value = value.get("usd")
        return safe_float(value)

    @staticmethod
    def _first(values: Any) -> str:
        if isinstance(values, list):
            return next((str(v) for v in values if v), "")
        return str(values or "")

    @staticmethod
    def _twitter(screen_name: Optional[str]) -> str:
        return f"https://twitter.com/{screen_name}" if screen_name else ""


class CoinGeckoHistory(CoinGeckoClient):
    CHART_URL_TEMPLATE = f"{CoinGeckoClient.BASE_URL}/coins/{{coin_id}}/market_chart"
    TIMEOUT = 10.0

    async def fetch_history(self, asset_id: str, days: int) -> List[HistoryPoint]:
        url = self.CHART_URL_TEMPLATE.format(coin_id=self._quote_id(asset_id))
        data = await self._get_json(url, params={"vs_currency": "usd", "days": days})
        return self.parse_chart(data)

    def parse_chart(self, data: Any) -> List[HistoryPoint]:
        chart = self._expect(data, dict, "a market_chart object")
        prices = self._expect(chart.get("prices"), list, "a prices array")
        points = []
        for pair in prices:
            if not isinstance(pair, (list, tuple)) or len(pair) < 2 or pair[0] is None:
                continue
            points.append(HistoryPoint(timestamp=safe_float(pair[0]) / 1000.0, price=pair[1]))
        return sorted(points, key=lambda point: point.timestamp)
