"""
Coinbase exchange-rates adapter, the lowest fidelity listing source.

The upstream only knows "how much X does one USD buy", so price is 1 / rate.
There is no change, market cap or rank: change and market cap are 0 and rank
is the position in the order received.
"""
from typing import Any, Dict, List

from coinfeed.models.assets import NormalizedAsset
from coinfeed.platforms.base import SymbolImageClient
from coinfeed.utils.parsing import safe_float
from coinfeed.utils.retry import RetryPolicy, fixed_backoff

# symbol -> (canonical id, display name); rates for anything else are fiat or unknown
KNOWN_ASSETS: Dict[str, tuple] = {
    "BTC": ("bitcoin", "Bitcoin"),
    "ETH": ("ethereum", "Ethereum"),
    "XRP": ("ripple", "XRP"),
    "BCH": ("bitcoin-cash", "Bitcoin Cash"),
    "LTC": ("litecoin", "Litecoin"),
    "ADA": ("cardano", "Cardano"),
    "DOT": ("polkadot", "Polkadot"),
    "BNB": ("binancecoin", "BNB"),
    "XLM": ("stellar", "Stellar"),
    "LINK": ("chainlink", "Chainlink"),
    "DOGE": ("dogecoin", "Dogecoin"),
    "USDC": ("usd-coin", "USDC"),
    "UNI": ("uniswap", "Uniswap"),
    "AAVE": ("aave", "Aave"),
    "SOL": ("solana", "Solana"),
    "USDT": ("tether", "Tether"),
}


class CoinbaseListing(SymbolImageClient):
    name = "Coinbase"
    BASE_URL = "https://api.coinbase.com/v2"
    RATES_URL = f"{BASE_URL}/exchange-rates"
    TIMEOUT = 5.0
    DEFAULT_RETRY_POLICY = RetryPolicy(max_attempts=2, backoff=fixed_backoff(0.5), timeout_delay=0.5)

    async def fetch_listing(self, page: int, per_page: int) -> List[NormalizedAsset]:
        data = await self._get_json(self.RATES_URL, params={"currency": "USD"})
        return self.parse_rates(data, page, per_page)

    def parse_rates(self, data: Any, page: int, per_page: int) -> List[NormalizedAsset]:
        body = self._expect(data, dict, "an object")
        rates = self._expect((self._expect(body.get("data"), dict, "a 'data' object")).get("rates"),
                             dict, "a 'rates' object")

        rows: List[Dict[str, Any]] = []
        for symbol, rate in rates.items():
            symbol = str(symbol).upper()
            rate = safe_float(rate)
            if symbol not in KNOWN_ASSETS or rate <= 0:
                continue
            asset_id, name = KNOWN_ASSETS[symbol]
            rows.append({
                "id": asset_id,
                "name": name,
                "symbol": symbol,
                "price": 1.0 / rate,
                "change_24h": 0.0,
                "market_cap": 0.0,
                "image": self.image_for(symbol),
                "rank": len(rows) + 1,
            })

        start = (page - 1) * per_page
        return self._build_models(NormalizedAsset, rows[start:start + per_page])
