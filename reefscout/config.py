"""Application configuration management."""

import os
from functools import lru_cache

from dotenv import load_dotenv

from .schemas import AppConfig

# Environment variable -> AppConfig field
ENV_VARS = {
    'REEFSCOUT_DATA_DIR': 'data_dir',
    'TBA_API_KEY': 'tba_api_key',
    'TBA_API_URL': 'tba_api_url',
    'REEFSCOUT_API_URL': 'api_url',
    'REEFSCOUT_RETRY_ATTEMPTS': 'retry_attempts',
    'REEFSCOUT_RETRY_DELAY': 'retry_delay',
    'REEFSCOUT_TIMEOUT': 'timeout',
    'PORT': 'port',
    'REEFSCOUT_ENV': 'env',
}


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """
    Load configuration from the environment (and a .env file if present).

    Configuration is cached after first load.

    Returns:
        AppConfig object with validated settings

    Raises:
        ValidationError: If an environment value has the wrong type or range

    Example:
        from reefscout.config import get_config
        config = get_config()
        print(f"Storing documents in {config.data_dir}")
    """
    load_dotenv()
    values = {
        field: os.environ[var]
        for var, field in ENV_VARS.items()
        if os.environ.get(var)
    }
    return AppConfig(**values)


def clear_config_cache() -> None:
    """
    Clear the configuration cache.

    Use this after changing environment variables at runtime (tests do).
    """
    get_config.cache_clear()
