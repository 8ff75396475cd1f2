"""CoinPaprika listing adapter. The upstream returns its whole universe at once; pages are cut locally."""
import math
from typing import Any, List

from coinfeed.models.assets import NormalizedAsset
from coinfeed.platforms.base import SymbolImageClient
from coinfeed.utils.parsing import safe_int
from coinfeed.utils.retry import RetryPolicy, fixed_backoff


class CoinPaprikaListing(SymbolImageClient):
    name = "CoinPaprika"
    BASE_URL = "https://api.coinpaprika.com/v1"
    TICKERS_URL = f"{BASE_URL}/tickers"
    TIMEOUT = 8.0
    DEFAULT_RETRY_POLICY = RetryPolicy(max_attempts=2, backoff=fixed_backoff(0.5), timeout_delay=0.5)

    async def fetch_listing(self, page: int, per_page: int) -> List[NormalizedAsset]:
        data = await self._get_json(self.TICKERS_URL, params={"quotes": "USD"})
        return self.parse_tickers(data, page, per_page)

    def parse_tickers(self, data: Any, page: int, per_page: int) -> List[NormalizedAsset]:
        rows = [row for row in self._expect(data, list, "a list of tickers") if isinstance(row, dict)]
        rows.sort(key=lambda row: safe_int(row.get("rank")) or math.inf)
        start = (page - 1) * per_page
        window = rows[start:start + per_page]
        return self._build_models(NormalizedAsset, (self._row(row) for row in window))

    def _row(self, row: dict) -> dict:
        usd = self._as_dict(self._as_dict(row.get("quotes")).get("USD"))
        return {
            "id": row.get("id"),
            "name": row.get("name"),
            "symbol": str(row.get("symbol") or "").upper(),
            "price": usd.get("price"),
            "change_24h": usd.get("percent_change_24h"),
            "market_cap": usd.get("market_cap"),
            "image": self.image_for(row.get("symbol")),
            "rank": row.get("rank"),
        }
