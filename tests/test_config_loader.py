import pytest

from coinfeed.config.loader import Config

CONFIG_INI = """
[providers]
listing = coincap, coingecko
history = coincap
news = newsapi

[cache]
listing_ttl = 30
detail_ttl = 90
history_ttl = 0
news_ttl = 45.5
single_flight = true

[market]
detail_fallback_page_size = 50
default_history_days = 14

[images]
cdn_url = https://icons.example/128/

[retry.coincap]
max_attempts = 3
backoff_step = 0.5
backoff_mode = fixed

[directories]
log_dir = var/logs
"""


@pytest.fixture
def config_files(tmp_path):
    ini = tmp_path / "config.ini"
    ini.write_text(CONFIG_INI, encoding="utf-8")
    keys = tmp_path / "keys.env"
    keys.write_text("COINGECKO_API_KEY=cg-key\nNEWSAPI_API_KEY= \n", encoding="utf-8")
    return keys, ini


def test_values_are_loaded_and_converted(config_files):
    keys, ini = config_files
    config = Config(keys_env_path=keys, config_ini_path=ini)

    assert config.LISTING_PROVIDERS == ["coincap", "coingecko"]
    assert config.HISTORY_PROVIDERS == ["coincap"]
    assert config.NEWS_PROVIDERS == ["newsapi"]
    assert config.LISTING_CACHE_TTL == 30
    assert config.DETAIL_CACHE_TTL == 90
    assert config.HISTORY_CACHE_TTL == 0
    assert config.NEWS_CACHE_TTL == 45.5
    assert config.SINGLE_FLIGHT is True
    assert config.DETAIL_FALLBACK_PAGE_SIZE == 50
    assert config.DEFAULT_HISTORY_DAYS == 14
    assert config.IMAGE_CDN_URL == "https://icons.example/128"
    assert config.LOG_DIR == "var/logs"


def test_api_keys_are_optional(config_files):
    keys, ini = config_files
    config = Config(keys_env_path=keys, config_ini_path=ini)

    assert config.COINGECKO_API_KEY == "cg-key"
    assert not config.NEWSAPI_API_KEY
    assert not config.CRYPTOPANIC_API_KEY


def test_missing_keys_file_is_fine(config_files, tmp_path):
    _, ini = config_files
    config = Config(keys_env_path=tmp_path / "absent.env", config_ini_path=ini)
    assert not config.COINGECKO_API_KEY


def test_missing_ini_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        Config(keys_env_path=tmp_path / "keys.env", config_ini_path=tmp_path / "missing.ini")


def test_retry_override_section(config_files):
    keys, ini = config_files
    config = Config(keys_env_path=keys, config_ini_path=ini)

    assert config.get_retry_override("coincap") == {"max_attempts": 3, "backoff_step": 0.5, "backoff_mode": "fixed"}
    assert config.get_retry_override("coingecko") == {}


def test_unknown_provider_rejected(tmp_path):
    ini = tmp_path / "config.ini"
    ini.write_text("[providers]\nlisting = coingecko, coinmarketcap\n", encoding="utf-8")
    with pytest.raises(ValueError, match="coinmarketcap"):
        Config(keys_env_path=tmp_path / "keys.env", config_ini_path=ini)


def test_defaults_when_sections_absent(tmp_path):
    ini = tmp_path / "config.ini"
    ini.write_text("[debug]\nlogger_debug = false\n", encoding="utf-8")
    config = Config(keys_env_path=tmp_path / "keys.env", config_ini_path=ini)

    assert config.LISTING_PROVIDERS[0] == "coingecko"
    assert config.LISTING_PROVIDERS[-1] == "coinbase"
    assert config.LISTING_CACHE_TTL == 60
    assert config.DETAIL_CACHE_TTL == 120
    assert config.SINGLE_FLIGHT is False
    assert config.LOGGER_DEBUG is False


def test_reload_picks_up_changes(config_files):
    keys, ini = config_files
    config = Config(keys_env_path=keys, config_ini_path=ini)
    ini.write_text(CONFIG_INI.replace("listing_ttl = 30", "listing_ttl = 15"), encoding="utf-8")

    config.reload()

    assert config.LISTING_CACHE_TTL == 15
