"""CoinLore listing adapter; numerics arrive as strings and `nameid` is the canonical id."""
from typing import Any, List

from coinfeed.models.assets import NormalizedAsset
from coinfeed.platforms.base import SymbolImageClient
from coinfeed.utils.parsing import safe_float, safe_int
from coinfeed.utils.retry import RetryPolicy, fixed_backoff


class CoinLoreListing(SymbolImageClient):
    name = "CoinLore"
    BASE_URL = "https://api.coinlore.net/api"
    TICKERS_URL = f"{BASE_URL}/tickers/"
    TIMEOUT = 5.0
    DEFAULT_RETRY_POLICY = RetryPolicy(max_attempts=2, backoff=fixed_backoff(0.5), timeout_delay=0.5)

    async def fetch_listing(self, page: int, per_page: int) -> List[NormalizedAsset]:
        start = (page - 1) * per_page
        data = await self._get_json(self.TICKERS_URL, params={"start": start, "limit": per_page})
        return self.parse_tickers(data, offset=start)

    def parse_tickers(self, data: Any, offset: int = 0) -> List[NormalizedAsset]:
        body = self._expect(data, dict, "an object")
        rows = [row for row in self._expect(body.get("data"), list, "a 'data' array") if isinstance(row, dict)]
        return self._build_models(NormalizedAsset, (
            {
                "id": row.get("nameid") or row.get("id"),
                "name": row.get("name"),
                "symbol": str(row.get("symbol") or "").upper(),
                "price": safe_float(row.get("price_usd")),
                "change_24h": safe_float(row.get("percent_change_24h")),
                "market_cap": safe_float(row.get("market_cap_usd")),
                "image": self.image_for(row.get("symbol")),
                "rank": safe_int(row.get("rank")) or offset + index + 1,
            }
            for index, row in enumerate(rows)
        ))
