"""Normalized, provider-agnostic market data models."""
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from coinfeed.utils.parsing import safe_float, safe_int


class HistoryPoint(BaseModel):
    """Single price observation; `timestamp` is epoch seconds."""
    timestamp: float
    price: float = Field(default=0.0)

    @field_validator("price", mode="before")
    @classmethod
    def _non_negative_price(cls, value):
        return max(safe_float(value), 0.0)


class AssetExtended(BaseModel):
    """Extended block, populated only by the detail capability."""
    total_volume: float = Field(default=0.0)
    high_24h: float = Field(default=0.0)
    low_24h: float = Field(default=0.0)
    price_change_24h: float = Field(default=0.0)
    ath: float = Field(default=0.0)
    ath_change_percentage: float = Field(default=0.0)
    description: str = Field(default="")
    website: str = Field(default="")
    twitter: str = Field(default="")
    reddit: str = Field(default="")
    github: str = Field(default="")
    history: List[HistoryPoint] = Field(default_factory=list)

    @field_validator(
        "total_volume", "high_24h", "low_24h", "price_change_24h", "ath", "ath_change_percentage",
        mode="before"
    )
    @classmethod
    def _zero_when_missing(cls, value):
        return safe_float(value)


class NormalizedAsset(BaseModel):
    """A market instrument as seen by callers, whichever provider served it.

    Numeric fields default to 0 when the upstream omits them, so 0 means
    "zero or unknown"; `market_cap` 0 and `rank` 0 always mean unknown.
    """
    id: str
    name: str = Field(default="")
    symbol: str = Field(default="")
    price: float = Field(default=0.0)
    change_24h: float = Field(default=0.0)
    market_cap: float = Field(default=0.0)
    image: str = Field(default="")
    rank: int = Field(default=0)
    extended: Optional[AssetExtended] = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_not_empty(cls, value) -> str:
        value = "" if value is None else str(value).strip()
        if not value:
            raise ValueError("asset id must not be empty")
        return value

    @field_validator("name", "symbol", "image", mode="before")
    @classmethod
    def _text_or_empty(cls, value):
        return "" if value is None else str(value)

    @field_validator("price", "market_cap", mode="before")
    @classmethod
    def _non_negative(cls, value):
        return max(safe_float(value), 0.0)

    @field_validator("change_24h", mode="before")
    @classmethod
    def _signed(cls, value):
        return safe_float(value)

    @field_validator("rank", mode="before")
    @classmethod
    def _rank(cls, value):
        return max(safe_int(value), 0)

    def with_history(self, history: List[HistoryPoint]) -> "NormalizedAsset":
        """Copy of this asset with `history` placed in the extended block."""
        extended = self.extended.model_copy(deep=True) if self.extended else AssetExtended()
        extended.history = list(history)
        return self.model_copy(update={"extended": extended})
