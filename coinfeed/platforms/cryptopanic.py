from typing import Any, Dict, List

from coinfeed.models.news import NormalizedNewsArticle
from coinfeed.platforms.base import BaseProviderClient
from coinfeed.utils.retry import RetryPolicy, fixed_backoff


class CryptoPanicNews(BaseProviderClient):
    """CryptoPanic posts feed. The key travels as the `auth_token` query parameter."""

    name = "CryptoPanic"
    BASE_URL = "https://cryptopanic.com/api/v1"
    POSTS_URL = f"{BASE_URL}/posts/"
    CURRENCIES = "BTC,ETH"
    TIMEOUT = 15.0
    DEFAULT_RETRY_POLICY = RetryPolicy(max_attempts=2, backoff=fixed_backoff(1.0), timeout_delay=1.0)

    async def fetch_news(self) -> List[NormalizedNewsArticle]:
        params = {"currencies": self.CURRENCIES, "public": "true"}
        if self.api_key:
            params["auth_token"] = self.api_key
        data = await self._get_json(self.POSTS_URL, params=params)
        return self.parse_posts(data)

    def parse_posts(self, data: Any) -> List[NormalizedNewsArticle]:
        body = self._expect(data, dict, "an object")
        rows = [row for row in self._expect(body.get("results"), list, "a 'results' array") if isinstance(row, dict)]
        return self._build_models(NormalizedNewsArticle, (self._row(row) for row in rows))

    def _row(self, row: Dict[str, Any]) -> Dict[str, Any]:
        metadata = self._as_dict(row.get("metadata"))
        source = row.get("source")
        return {
            "id": row.get("id") or row.get("url"),
            "title": row.get("title"),
            "summary": metadata.get("description"),
            "url": row.get("url"),
            "image": metadata.get("image"),
            "source": source.get("title") if isinstance(source, dict) else source,
            "published_at": row.get("published_at"),
        }
