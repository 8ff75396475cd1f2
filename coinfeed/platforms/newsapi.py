from typing import Any, Dict, List

from coinfeed.models.news import NormalizedNewsArticle
from coinfeed.platforms.base import BaseProviderClient
from coinfeed.utils.retry import RetryPolicy, fixed_backoff


class NewsApiNews(BaseProviderClient):
    """NewsAPI `everything` search. Articles carry no id, so the article URL is used."""

    name = "NewsAPI"
    BASE_URL = "https://newsapi.org/v2"
    EVERYTHING_URL = f"{BASE_URL}/everything"
    QUERY = "cryptocurrency"
    PAGE_SIZE = 50
    TIMEOUT = 15.0
    DEFAULT_RETRY_POLICY = RetryPolicy(max_attempts=2, backoff=fixed_backoff(1.0), timeout_delay=1.0)

    def _headers(self) -> Dict[str, str]:
        return {"X-Api-Key": self.api_key} if self.api_key else {}

    async def fetch_news(self) -> List[NormalizedNewsArticle]:
        params = {"q": self.QUERY, "sortBy": "publishedAt", "language": "en", "pageSize": self.PAGE_SIZE}
        data = await self._get_json(self.EVERYTHING_URL, params=params)
        return self.parse_articles(data)

    def parse_articles(self, data: Any) -> List[NormalizedNewsArticle]:
        body = self._expect(data, dict, "an object")
        articles = self._expect(body.get("articles"), list, "an 'articles' array")
        return self._build_models(NormalizedNewsArticle, (
            {
                "id": article.get("url"),
                "title": article.get("title"),
                "summary": article.get("description"),
                "url": article.get("url"),
                "image": article.get("urlToImage"),
                "source": self._source_name(article.get("source")),
                "published_at": article.get("publishedAt"),
            }
            for article in articles if isinstance(article, dict)
        ))

    @staticmethod
    def _source_name(source: Any) -> Any:
        return source.get("name") if isinstance(source, dict) else source
