"""Normalized news article model and ordering helpers."""
import math
from typing import Iterable, List, Optional

from pydantic import BaseModel, Field, field_validator

from coinfeed.utils.parsing import parse_timestamp


class NormalizedNewsArticle(BaseModel):
    """News article from any provider. `published_at` is kept as received (ISO-8601)."""
    id: str
    title: str = Field(default="")
    summary: str = Field(default="")
    url: str = Field(default="")
    image: str = Field(default="")
    source: str = Field(default="")
    published_at: str = Field(default="")

    @field_validator("id", mode="before")
    @classmethod
    def _id_not_empty(cls, value) -> str:
        value = "" if value is None else str(value).strip()
        if not value:
            raise ValueError("article id must not be empty")
        return value

    @field_validator("title", "summary", "url", "image", "source", "published_at", mode="before")
    @classmethod
    def _text_or_empty(cls, value):
        return "" if value is None else str(value)

    @property
    def published_timestamp(self) -> Optional[float]:
        """Epoch seconds, or None when `published_at` is not parseable."""
        return parse_timestamp(self.published_at)


def sort_newest_first(articles: Iterable[NormalizedNewsArticle]) -> List[NormalizedNewsArticle]:
    """Sort by publish time descending; unparseable timestamps sort as oldest."""
    def _key(article: NormalizedNewsArticle) -> float:
        timestamp = article.published_timestamp
        return -math.inf if timestamp is None else timestamp

    return sorted(articles, key=_key, reverse=True)
