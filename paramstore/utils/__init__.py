"""Utility modules for paramstore."""

from paramstore.utils.config import StoreConfig
from paramstore.utils.logging import StoreLogger, configure_logging, get_logger

__all__ = ["StoreConfig", "StoreLogger", "get_logger", "configure_logging"]
