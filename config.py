import os
import logging
from dataclasses import dataclass

import dotenv

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass
class EnrichmentConfig:
    data_file: str = os.path.join("data", "in.json")
    tv_dir: str = "tv"
    cache_file: str = ".language-cache.json"
    max_concurrent: int = 15
    rate_limit_delay: float = 0.2   # seconds between batches
    cache_save_interval: int = 20   # save cache every N writes
    fetch_timeout: float = 8.0      # seconds per request
    fetch_retries: int = 1
    log_level: str = "INFO"


def _env_number(name: str, default, cast):
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw)
    except ValueError:
        logger.warning(f"Invalid value for {name}: {raw!r}, using {default}")
        return default


def load_config() -> EnrichmentConfig:
    """Build configuration from the environment and an optional .env file"""
    dotenv.load_dotenv()
    defaults = EnrichmentConfig()
    return EnrichmentConfig(
        data_file=os.environ.get("LANGUAGE_DATA_FILE", defaults.data_file),
        tv_dir=os.environ.get("LANGUAGE_TV_DIR", defaults.tv_dir),
        cache_file=os.environ.get("LANGUAGE_CACHE_FILE", defaults.cache_file),
        max_concurrent=max(1, _env_number("LANGUAGE_MAX_CONCURRENT", defaults.max_concurrent, int)),
        rate_limit_delay=_env_number("LANGUAGE_RATE_LIMIT_DELAY", defaults.rate_limit_delay, float),
        cache_save_interval=max(1, _env_number("LANGUAGE_CACHE_SAVE_INTERVAL", defaults.cache_save_interval, int)),
        fetch_timeout=_env_number("LANGUAGE_FETCH_TIMEOUT", defaults.fetch_timeout, float),
        fetch_retries=max(0, _env_number("LANGUAGE_FETCH_RETRIES", defaults.fetch_retries, int)),
        log_level=os.environ.get("LANGUAGE_LOG_LEVEL", defaults.log_level).upper(),
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
