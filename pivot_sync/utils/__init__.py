"""Utility modules for shared functionality."""

from .constants import (
    CONFIG_FILENAMES,
    DEFAULT_BATCH_SIZE,
    DEFAULT_DATABASE_PATH,
    DEFAULT_EXCHANGE_COLUMNS,
)
from .retry import retry_on_rate_limit

__all__ = [
    "CONFIG_FILENAMES",
    "DEFAULT_BATCH_SIZE",
    "DEFAULT_DATABASE_PATH",
    "DEFAULT_EXCHANGE_COLUMNS",
    "retry_on_rate_limit",
]
