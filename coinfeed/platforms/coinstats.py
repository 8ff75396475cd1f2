"""CoinStats adapters: general-purpose listing and the news feed."""
from typing import Any, Dict, List

from coinfeed.models.assets import NormalizedAsset
from coinfeed.models.news import NormalizedNewsArticle
from coinfeed.platforms.base import BaseProviderClient
from coinfeed.platforms.errors import MalformedResponse
from coinfeed.utils.parsing import epoch_to_iso
from coinfeed.utils.retry import RetryPolicy, fixed_backoff


class CoinStatsClient(BaseProviderClient):
    name = "CoinStats"
    BASE_URL = "https://openapiv1.coinstats.app"

    def _headers(self) -> Dict[str, str]:
        return {"X-API-KEY": self.api_key} if self.api_key else {}

    def _items(self, data: Any, *keys: str) -> List[Dict[str, Any]]:
        """Rows under the first present key; the API has used both `result` and a named key."""
        body = self._expect(data, dict, "an object")
        for key in keys:
            if key in body:
                rows = self._expect(body[key], list, f"a '{key}' array")
                return [row for row in rows if isinstance(row, dict)]
        raise MalformedResponse(f"expected one of {', '.join(keys)}", provider=self.name)


class CoinStatsListing(CoinStatsClient):
    COINS_URL = f"{CoinStatsClient.BASE_URL}/coins"
    TIMEOUT = 5.0
    DEFAULT_RETRY_POLICY = RetryPolicy(max_attempts=2, backoff=fixed_backoff(0.5), timeout_delay=0.5)

    async def fetch_listing(self, page: int, per_page: int) -> List[NormalizedAsset]:
        data = await self._get_json(self.COINS_URL, params={"page": page, "limit": per_page, "currency": "USD"})
        return self.parse_coins(data, offset=(page - 1) * per_page)

    def parse_coins(self, data: Any, offset: int = 0) -> List[NormalizedAsset]:
        rows = self._items(data, "result", "coins")
        return self._build_models(NormalizedAsset, (
            {
                "id": row.get("id"),
                "name": row.get("name"),
                "symbol": str(row.get("symbol") or "").upper(),
                "price": row.get("price"),
                "change_24h": row.get("priceChange1d"),
                "market_cap": row.get("marketCap"),
                "image": row.get("icon"),
                "rank": row.get("rank") or offset + index + 1,
            }
            for index, row in enumerate(rows)
        ))


class CoinStatsNews(CoinStatsClient):
    NEWS_URL = f"{CoinStatsClient.BASE_URL}/news"
    TIMEOUT = 15.0
    DEFAULT_RETRY_POLICY = RetryPolicy(max_attempts=2, backoff=fixed_backoff(1.0), timeout_delay=1.0)

    async def fetch_news(self) -> List[NormalizedNewsArticle]:
        data = await self._get_json(self.NEWS_URL, params={"limit": 50})
        return self.parse_news(data)

    def parse_news(self, data: Any) -> List[NormalizedNewsArticle]:
        rows = self._items(data, "result", "news")
        return self._build_models(NormalizedNewsArticle, (
            {
                "id": row.get("id") or row.get("link"),
                "title": row.get("title"),
                "summary": row.get("description"),
                "url": row.get("link"),
                "image": row.get("imgURL") or row.get("imgUrl"),
                "source": row.get("source"),
                "published_at": epoch_to_iso(row.get("feedDate")),
            }
            for row in rows
        ))
