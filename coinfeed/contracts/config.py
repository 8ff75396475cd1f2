"""
Config Protocol - Interface for configuration management.

Defines the contract for configuration access without requiring concrete Config import.
Prevents circular dependencies by using typing.Protocol.
"""

from typing import Any, Dict, List, Protocol


class ConfigProtocol(Protocol):
    """Protocol defining the interface for configuration management."""

    # ===== API Keys =====
    @property
    def COINGECKO_API_KEY(self) -> str | None: ...

    @property
    def COINSTATS_API_KEY(self) -> str | None: ...

    @property
    def COINCAP_API_KEY(self) -> str | None: ...

    @property
    def CRYPTOPANIC_API_KEY(self) -> str | None: ...

    @property
    def NEWSAPI_API_KEY(self) -> str | None: ...

    # ===== Provider Chains =====
    @property
    def LISTING_PROVIDERS(self) -> List[str]: ...

    @property
    def HISTORY_PROVIDERS(self) -> List[str]: ...

    @property
    def NEWS_PROVIDERS(self) -> List[str]: ...

    # ===== Cache =====
    @property
    def LISTING_CACHE_TTL(self) -> float: ...

    @property
    def DETAIL_CACHE_TTL(self) -> float: ...

    @property
    def HISTORY_CACHE_TTL(self) -> float: ...

    @property
    def NEWS_CACHE_TTL(self) -> float: ...

    @property
    def SINGLE_FLIGHT(self) -> bool: ...

    # ===== Market Data =====
    @property
    def DETAIL_FALLBACK_PAGE_SIZE(self) -> int: ...

    @property
    def DEFAULT_HISTORY_DAYS(self) -> int: ...

    @property
    def IMAGE_CDN_URL(self) -> str: ...

    # ===== General =====
    @property
    def LOGGER_DEBUG(self) -> bool: ...

    @property
    def LOG_DIR(self) -> str: ...

    # ===== Methods =====
    def get_env(self, key: str, default: Any = None) -> Any: ...

    def get_config(self, section: str, key: str, default: Any = None) -> Any: ...

    def get_section(self, section: str) -> Dict[str, Any]: ...

    def get_retry_override(self, provider: str) -> Dict[str, Any]: ...
