"""
Binance 24h ticker adapter.

Narrow schema: only USDT quoted pairs are kept, the base asset stands in for
id, symbol and name, and there is no market cap (reported as 0). Pairs are
ordered by quote volume and ranked sequentially.
"""
from typing import Any, Dict, List

from coinfeed.models.assets import NormalizedAsset
from coinfeed.platforms.base import SymbolImageClient
from coinfeed.utils.parsing import safe_float
from coinfeed.utils.retry import RetryPolicy, fixed_backoff

QUOTE_ASSET = "USDT"
# leveraged tokens and stablecoin pairs that are not assets in their own right
EXCLUDED_SUFFIXES = ("UP", "DOWN", "BULL", "BEAR")
EXCLUDED_BASES = {"USDC", "BUSD", "TUSD", "FDUSD", "USDP", "DAI"}


class BinanceListing(SymbolImageClient):
    name = "Binance"
    BASE_URL = "https://api.binance.com/api/v3"
    TICKER_URL = f"{BASE_URL}/ticker/24hr"
    TIMEOUT = 5.0
    DEFAULT_RETRY_POLICY = RetryPolicy(max_attempts=2, backoff=fixed_backoff(0.5), timeout_delay=0.5)

    async def fetch_listing(self, page: int, per_page: int) -> List[NormalizedAsset]:
        data = await self._get_json(self.TICKER_URL)
        return self.parse_tickers(data, page, per_page)

    def parse_tickers(self, data: Any, page: int, per_page: int) -> List[NormalizedAsset]:
        tickers = self._expect(data, list, "a list of 24h tickers")
        pairs = [ticker for ticker in tickers if isinstance(ticker, dict) and self._base_asset(ticker)]
        pairs.sort(key=lambda ticker: safe_float(ticker.get("quoteVolume")), reverse=True)

        start = (page - 1) * per_page
        window = pairs[start:start + per_page]
        return self._build_models(NormalizedAsset, (
            self._row(ticker, rank=start + index + 1) for index, ticker in enumerate(window)
        ))

    def _row(self, ticker: Dict[str, Any], rank: int) -> Dict[str, Any]:
        base = self._base_asset(ticker)
        return {
            "id": base.lower(),
            "name": base,
            "symbol": base,
            "price": safe_float(ticker.get("lastPrice")),
            "change_24h": safe_float(ticker.get("priceChangePercent")),
            "market_cap": 0.0,
            "image": self.image_for(base),
            "rank": rank,
        }

    @staticmethod
    def _base_asset(ticker: Dict[str, Any]) -> str:
        """Base asset of a USDT pair, or "" for any pair that should be dropped."""
        symbol = str(ticker.get("symbol") or "").upper()
        if not symbol.endswith(QUOTE_ASSET) or len(symbol) <= len(QUOTE_ASSET):
            return ""
        base = symbol[:-len(QUOTE_ASSET)]
        if base in EXCLUDED_BASES or (len(base) > 4 and base.endswith(EXCLUDED_SUFFIXES)):
            return ""
        return base
