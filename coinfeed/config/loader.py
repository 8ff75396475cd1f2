"""
Configuration loader for coinfeed.
Loads private API keys from keys.env and public configuration from config.ini.
"""

import configparser
import logging
from pathlib import Path
from typing import Any, Dict, List
from dotenv import dotenv_values

# Root directory holds keys.env, config directory holds config.ini
ROOT_DIR = Path(__file__).parent.parent.parent.resolve()
CONFIG_DIR = ROOT_DIR / "config"
KEYS_ENV_PATH = ROOT_DIR / "keys.env"
CONFIG_INI_PATH = CONFIG_DIR / "config.ini"

DEFAULT_LISTING_PROVIDERS = [
    "coingecko", "coinstats", "coincap", "coinpaprika", "binance", "coinlore", "coinbase"
]
DEFAULT_HISTORY_PROVIDERS = ["coingecko", "coincap"]
DEFAULT_NEWS_PROVIDERS = ["cryptopanic", "newsapi", "coinstats"]


class Config:
    """Configuration class that loads settings from environment and INI files.

    Implements ConfigProtocol for type safety and dependency injection.
    """

    def __init__(self, keys_env_path: Path = KEYS_ENV_PATH, config_ini_path: Path = CONFIG_INI_PATH):
        self.keys_env_path = Path(keys_env_path)
        self.config_ini_path = Path(config_ini_path)
        self._env_vars = {}
        self._config_data = {}
        self._load_environment()
        self._load_ini_config()
        self._validate_providers()

    def _load_environment(self):
        """Load API keys from keys.env using python-dotenv. Every key is optional."""
        if not self.keys_env_path.exists():
            logging.debug("No keys file at %s, running without API keys", self.keys_env_path)
            return

        try:
            env_vars = dotenv_values(self.keys_env_path)
            for key, value in env_vars.items():
                if value:
                    self._env_vars[key] = value.strip()
        except Exception as e:
            raise RuntimeError(f"Error loading environment file {self.keys_env_path}: {e}") from e

    def _load_ini_config(self):
        """Load configuration from config.ini file."""
        if not self.config_ini_path.exists():
            raise FileNotFoundError(
                f"Configuration file not found: {self.config_ini_path}. "
                "Please create config.ini in the config directory."
            )

        try:
            parser = configparser.ConfigParser()
            parser.read(self.config_ini_path, encoding='utf-8')

            for section_name in parser.sections():
                section_data = {}
                for key, value in parser.items(section_name):
                    section_data[key] = self._convert_value(value)
                self._config_data[section_name] = section_data
        except Exception as e:
            raise RuntimeError(f"Error loading configuration file {self.config_ini_path}: {e}") from e

    def _validate_providers(self):
        """Reject unknown provider names in the configured chains."""
        known = {
            "listing": set(DEFAULT_LISTING_PROVIDERS),
            "history": set(DEFAULT_HISTORY_PROVIDERS),
            "news": set(DEFAULT_NEWS_PROVIDERS),
        }
        configured = {
            "listing": self.LISTING_PROVIDERS,
            "history": self.HISTORY_PROVIDERS,
            "news": self.NEWS_PROVIDERS,
        }
        for capability, names in configured.items():
            unknown = [name for name in names if name not in known[capability]]
            if unknown:
                valid_options = ", ".join(f'"{p}"' for p in sorted(known[capability]))
                error_msg = (
                    f"Unknown {capability} provider(s) {unknown} in config.ini.\n"
                    f"Supported values are: {valid_options}."
                )
                logging.critical(error_msg)
                raise ValueError(error_msg)

    @staticmethod
    def _convert_value(value: str) -> Any:
        """Convert string values to appropriate Python types."""
        if value.lower() in ('true', 'yes', 'on'):
            return True
        elif value.lower() in ('false', 'no', 'off'):
            return False
        if value.isdigit():
            return int(value)
        try:
            if '.' in value and ',' not in value:
                return float(value)
        except ValueError:
            pass
        if ',' in value:
            return [item.strip() for item in value.split(',') if item.strip()]
        return value

    @staticmethod
    def _as_list(value: Any) -> List[str]:
        if isinstance(value, list):
            return [str(item).lower() for item in value]
        if isinstance(value, str) and value:
            return [value.strip().lower()]
        return []

    def get_env(self, key: str, default: Any = None) -> Any:
        """Get environment variable."""
        return self._env_vars.get(key, default)

    def get_config(self, section: str, key: str, default: Any = None) -> Any:
        """Get configuration value from INI file."""
        return self._config_data.get(section, {}).get(key, default)

    def get_section(self, section: str) -> Dict[str, Any]:
        """Get entire configuration section."""
        return self._config_data.get(section, {})

    def get_retry_override(self, provider: str) -> Dict[str, Any]:
        """Get the [retry.<provider>] section, empty when the provider keeps its defaults."""
        return self.get_section(f"retry.{provider}")

    # API keys (keys.env)
    @property
    def COINGECKO_API_KEY(self):
        return self.get_env('COINGECKO_API_KEY')

    @property
    def COINSTATS_API_KEY(self):
        return self.get_env('COINSTATS_API_KEY')

    @property
    def COINCAP_API_KEY(self):
        return self.get_env('COINCAP_API_KEY')

    @property
    def CRYPTOPANIC_API_KEY(self):
        return self.get_env('CRYPTOPANIC_API_KEY')

    @property
    def NEWSAPI_API_KEY(self):
        return self.get_env('NEWSAPI_API_KEY')

    # Provider chains
    @property
    def LISTING_PROVIDERS(self) -> List[str]:
        """Listing providers in cascade priority order."""
        return self._as_list(self.get_config('providers', 'listing', DEFAULT_LISTING_PROVIDERS))

    @property
    def HISTORY_PROVIDERS(self) -> List[str]:
        return self._as_list(self.get_config('providers', 'history', DEFAULT_HISTORY_PROVIDERS))

    @property
    def NEWS_PROVIDERS(self) -> List[str]:
        return self._as_list(self.get_config('providers', 'news', DEFAULT_NEWS_PROVIDERS))

    # Cache configuration
    @property
    def LISTING_CACHE_TTL(self) -> float:
        return float(self.get_config('cache', 'listing_ttl', 60))

    @property
    def DETAIL_CACHE_TTL(self) -> float:
        return float(self.get_config('cache', 'detail_ttl', 120))

    @property
    def HISTORY_CACHE_TTL(self) -> float:
        """Seconds to keep history series; 0 disables history caching."""
        return float(self.get_config('cache', 'history_ttl', 300))

    @property
    def NEWS_CACHE_TTL(self) -> float:
        """Seconds to keep the merged news feed; 0 disables news caching."""
        return float(self.get_config('cache', 'news_ttl', 300))

    @property
    def SINGLE_FLIGHT(self) -> bool:
        return bool(self.get_config('cache', 'single_flight', False))

    # Market data defaults
    @property
    def DETAIL_FALLBACK_PAGE_SIZE(self) -> int:
        """Page size of the listing scanned when the detail provider fails."""
        return int(self.get_config('market', 'detail_fallback_page_size', 100))

    @property
    def DEFAULT_HISTORY_DAYS(self) -> int:
        return int(self.get_config('market', 'default_history_days', 7))

    @property
    def IMAGE_CDN_URL(self) -> str:
        cdn = self.get_config(
            'images', 'cdn_url',
            'https://raw.githubusercontent.com/spothq/cryptocurrency-icons/master/128/color'
        )
        return str(cdn).rstrip('/')

    # General configuration
    @property
    def LOGGER_DEBUG(self):
        return self.get_config('debug', 'logger_debug', False)

    @property
    def LOG_DIR(self):
        return self.get_config('directories', 'log_dir', 'logs')

    def reload(self):
        """Reload both keys.env and config.ini files.

        This allows runtime configuration changes without restarting the application.
        """
        logging.info("Reloading configuration files...")
        try:
            self._env_vars = {}
            self._config_data = {}
            self._load_environment()
            self._load_ini_config()
            self._validate_providers()
            logging.info("Configuration reloaded successfully")
        except Exception as e:
            logging.error(f"Error reloading configuration: {e}")
            raise


# Create global config instance
config = Config()
