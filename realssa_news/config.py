##########################################################################################
#
# Script name: config.py
#
# Description: Static tunables and default field policy for the news aggregation engine.
#
##########################################################################################

import os
from dataclasses import dataclass


# ****************************************************************************************
# Global data and configuration
# ****************************************************************************************

USER_AGENT = 'realssa-news-bot/1.0 (+https://realssa.vercel.app)'
ACCEPT_HEADER = 'application/rss+xml, application/atom+xml, application/xml, text/xml, */*'

DEFAULT_FEEDS_FILE = 'config/feeds.yaml'
DEFAULT_OUTPUT_DIR = 'site'

FETCH_TIMEOUT_SECONDS = 30.0
MAX_ITEMS_PER_SOURCE = 30
REFRESH_INTERVAL_SECONDS = 3600.0
MAX_BODY_BYTES = 5 * 1024 * 1024
NOTIFICATION_WINDOW_HOURS = 2.0

DEFAULT_LINK = 'https://realssa.vercel.app'
DEFAULT_DESCRIPTION = 'No description available'
DEFAULT_PUB_DATE = '2024-01-01'
DEFAULT_IMAGE_URL = ''

IMAGE_EXTENSIONS = ('.jpg', '.jpeg', '.png', '.webp', '.gif')


@dataclass(frozen=True)
class EngineConfig:
    fetch_timeout: float = FETCH_TIMEOUT_SECONDS
    max_items_per_source: int = MAX_ITEMS_PER_SOURCE
    refresh_interval: float = REFRESH_INTERVAL_SECONDS
    max_workers: int | None = None
    max_body_bytes: int = MAX_BODY_BYTES
    verify_tls: bool = True

    def __post_init__(self) -> None:
        if self.fetch_timeout <= 0:
            raise ValueError('fetch_timeout must be positive')
        if self.max_items_per_source < 1:
            raise ValueError('max_items_per_source must be at least 1')
        if self.refresh_interval <= 0:
            raise ValueError('refresh_interval must be positive')
        if self.max_workers is not None and self.max_workers < 1:
            raise ValueError('max_workers must be at least 1 when set')


# ****************************************************************************************
# Functions
# ****************************************************************************************


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_int(name: str, default: int | None) -> int | None:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def config_from_env() -> EngineConfig:
    return EngineConfig(
        fetch_timeout=_env_float('FETCH_TIMEOUT_SECONDS', FETCH_TIMEOUT_SECONDS),
        max_items_per_source=_env_int('MAX_ITEMS_PER_SOURCE', MAX_ITEMS_PER_SOURCE),
        refresh_interval=_env_float('REFRESH_INTERVAL_SECONDS', REFRESH_INTERVAL_SECONDS),
        max_workers=_env_int('MAX_WORKERS', None),
        verify_tls=(os.getenv('VERIFY_TLS') or '1').strip().lower() not in {'0', 'false', 'no'},
    )
