"""Logging utilities for paramstore components."""

import logging
import os
import socket
import sys
import threading
from typing import Optional


class StoreLogger:
    """
    Thread-safe logger for parameter store components.

    One instance per component name. Every record carries the host and
    process id so logs from several training processes can be merged.
    """

    _instances: dict = {}
    _lock = threading.Lock()

    def __new__(cls, name: str, *args, **kwargs):
        """Singleton pattern per logger name."""
        with cls._lock:
            if name not in cls._instances:
                instance = super().__new__(cls)
                cls._instances[name] = instance
            return cls._instances[name]

    def __init__(
        self,
        name: str,
        level: int = logging.INFO,
        log_file: Optional[str] = None,
        include_hostname: bool = True
    ):
        """
        Initialize the logger.

        Args:
            name: Logger name (typically component name)
            level: Logging level
            log_file: Optional file path for log output
            include_hostname: Include hostname in log messages
        """
        if hasattr(self, "_initialized"):
            return

        self._initialized = True
        self.name = name
        self.include_hostname = include_hostname

        try:
            self.hostname = socket.gethostname()
        except OSError:
            self.hostname = "unknown"
        self.pid = os.getpid()

        self.logger = logging.getLogger(f"paramstore.{name}")
        self.logger.setLevel(level)
        self.logger.propagate = False
        self.logger.handlers = []

        if include_hostname:
            fmt = f"%(asctime)s | {self.hostname}:{self.pid} | %(name)s | %(levelname)s | %(message)s"
        else:
            fmt = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
        formatter = logging.Formatter(fmt, datefmt="%Y-%m-%d %H:%M:%S")

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        self.logger.addHandler(console_handler)

        if log_file:
            file_handler = logging.FileHandler(log_file)
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            self.logger.addHandler(file_handler)

    def debug(self, msg: str, *args, **kwargs):
        self.logger.debug(msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs):
        self.logger.info(msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        self.logger.warning(msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        self.logger.error(msg, *args, **kwargs)

    def exception(self, msg: str, *args, **kwargs):
        """Log exception with traceback."""
        self.logger.exception(msg, *args, **kwargs)

    def is_enabled_for(self, level: int) -> bool:
        return self.logger.isEnabledFor(level)

    def set_level(self, level: int):
        """Set logging level on the logger and all of its handlers."""
        self.logger.setLevel(level)
        for handler in self.logger.handlers:
            handler.setLevel(level)


def get_logger(name: str, level: int = logging.INFO) -> StoreLogger:
    """
    Get a logger instance for the given component name.

    Args:
        name: Component name (e.g., "parameter_store", "local_ps")
        level: Logging level, only applied on first creation

    Returns:
        StoreLogger instance
    """
    return StoreLogger(name, level=level)


def configure_logging(level: int) -> None:
    """
    Set the level of every paramstore logger created so far.

    Logger instances are shared per component name across the process,
    so this is a process-wide setting.

    Args:
        level: Logging level
    """
    with StoreLogger._lock:
        loggers = list(StoreLogger._instances.values())
    for logger in loggers:
        logger.set_level(level)
