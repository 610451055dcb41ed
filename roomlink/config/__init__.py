"""
Configuration for roomlink.

    from roomlink.config import get_config

    client_settings = get_config().client
    logger.info("Using relay", url=client_settings.url, game=client_settings.game_name)
"""

import os
import sys
import threading
from functools import lru_cache

from .models import AppConfig, ClientConfig, LoggingConfig

__all__ = ["AppConfig", "ClientConfig", "LoggingConfig", "get_config", "reset_config"]

_load_lock = threading.Lock()


def _running_under_pytest() -> bool:
    return "pytest" in sys.modules or "PYTEST_CURRENT_TEST" in os.environ


@lru_cache(maxsize=1)
def _load_once() -> AppConfig:
    with _load_lock:
        return AppConfig()


def get_config() -> AppConfig:
    """
    Return the process-wide AppConfig, built from ROOMLINK_*/LOGGING_* variables and .env.

    Under pytest a new instance is built on every call so monkeypatched
    environment variables take effect.

    Raises:
        ValidationError: If a setting fails validation
    """
    if _running_under_pytest():
        return AppConfig()
    return _load_once()


def reset_config() -> None:
    """Forget the cached AppConfig; the next get_config() reloads it."""
    _load_once.cache_clear()
