"""
CoinCap adapters. Every numeric comes as a JSON string, so all of them go
through safe_float (0 on parse failure). Images come from CoinCap's own icon CDN.
"""
import time
from typing import Any, Dict, List

from coinfeed.models.assets import HistoryPoint, NormalizedAsset
from coinfeed.platforms.base import BaseProviderClient
from coinfeed.utils.parsing import safe_float, safe_int
from coinfeed.utils.retry import RetryPolicy, fixed_backoff, linear_backoff

ICON_URL_TEMPLATE = "https://assets.coincap.io/assets/icons/{symbol}@2x.png"
DAY_MS = 24 * 60 * 60 * 1000


class CoinCapClient(BaseProviderClient):
    name = "CoinCap"
    BASE_URL = "https://api.coincap.io/v2"

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}

    def _data(self, data: Any) -> List[Dict[str, Any]]:
        body = self._expect(data, dict, "an object")
        rows = self._expect(body.get("data"), list, "a 'data' array")
        return [row for row in rows if isinstance(row, dict)]


class CoinCapListing(CoinCapClient):
    ASSETS_URL = f"{CoinCapClient.BASE_URL}/assets"
    TIMEOUT = 5.0
    DEFAULT_RETRY_POLICY = RetryPolicy(max_attempts=2, backoff=fixed_backoff(0.5), timeout_delay=0.5)

    async def fetch_listing(self, page: int, per_page: int) -> List[NormalizedAsset]:
        offset = (page - 1) * per_page
        data = await self._get_json(self.ASSETS_URL, params={"limit": per_page, "offset": offset})
        return self.parse_assets(data, offset=offset)

    def parse_assets(self, data: Any, offset: int = 0) -> List[NormalizedAsset]:
        rows = self._data(data)
        return self._build_models(NormalizedAsset, (
            {
                "id": row.get("id"),
                "name": row.get("name"),
                "symbol": str(row.get("symbol") or "").upper(),
                "price": safe_float(row.get("priceUsd")),
                "change_24h": safe_float(row.get("changePercent24Hr")),
                "market_cap": safe_float(row.get("marketCapUsd")),
                "image": self.icon_url(row.get("symbol")),
                "rank": safe_int(row.get("rank")) or offset + index + 1,
            }
            for index, row in enumerate(rows)
        ))

    @staticmethod
    def icon_url(symbol: Any) -> str:
        symbol = str(symbol or "").lower()
        return ICON_URL_TEMPLATE.format(symbol=symbol) if symbol else ""


class CoinCapHistory(CoinCapClient):
    HISTORY_URL_TEMPLATE = f"{CoinCapClient.BASE_URL}/assets/{{asset_id}}/history"
    TIMEOUT = 10.0
    DEFAULT_RETRY_POLICY = RetryPolicy(max_attempts=2, backoff=linear_backoff(2.0), timeout_delay=1.0)

    async def fetch_history(self, asset_id: str, days: int) -> List[HistoryPoint]:
        url = self.HISTORY_URL_TEMPLATE.format(asset_id=self._quote_id(asset_id))
        end = int(time.time() * 1000)
        params = {"interval": "d1", "start": end - days * DAY_MS, "end": end}
        data = await self._get_json(url, params=params)
        return self.parse_history(data)

    def parse_history(self, data: Any) -> List[HistoryPoint]:
        points = [
            HistoryPoint(timestamp=safe_float(row.get("time")) / 1000.0, price=safe_float(row.get("priceUsd")))
            for row in self._data(data) if row.get("time") is not None
        ]
        return sorted(points, key=lambda point: point.timestamp)
