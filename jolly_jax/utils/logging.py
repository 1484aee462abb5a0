"""
Logging utilities for jolly-jax.

Structured console/file logging with ``key=value`` context suffixes, driven
by the ``logging`` section of :class:`~jolly_jax.config.JollyJaxConfig`.
"""

import functools
import logging
import sys
import time
from pathlib import Path
from typing import Optional, Union

from ..config.settings import get_default_config, LogLevel


class ColoredFormatter(logging.Formatter):
    """Colored console formatter for better readability."""

    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[35m',   # Magenta
        'RESET': '\033[0m'
    }

    def format(self, record):
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.COLORS['RESET']}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


class JollyJaxLogger:
    """Logger wrapper that configures itself lazily from the package config."""

    def __init__(self, name: str, config=None):
        self.name = name
        self._config = config
        self.logger = logging.getLogger(name)
        self._configured = False

    @property
    def config(self):
        return self._config or get_default_config()

    def _ensure_configured(self):
        if not self._configured:
            self._configure()
            self._configured = True

    def _configure(self):
        settings = self.config.logging
        level = LogLevel(settings.level).value
        self.logger.setLevel(getattr(logging, level))

        self.logger.handlers.clear()

        if settings.console_logging:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setFormatter(ColoredFormatter(settings.format_string))
            self.logger.addHandler(console_handler)

        if settings.file_logging and settings.log_file:
            settings.log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(settings.log_file)
            file_handler.setFormatter(logging.Formatter(settings.format_string))
            self.logger.addHandler(file_handler)

        # Avoid duplicate messages through the root logger
        self.logger.propagate = False

    def debug(self, message: str, **kwargs):
        self._ensure_configured()
        self.logger.debug(self._format_message(message, **kwargs))

    def info(self, message: str, **kwargs):
        self._ensure_configured()
        self.logger.info(self._format_message(message, **kwargs))

    def warning(self, message: str, **kwargs):
        self._ensure_configured()
        self.logger.warning(self._format_message(message, **kwargs))

    def error(self, message: str, **kwargs):
        self._ensure_configured()
        self.logger.error(self._format_message(message, **kwargs))

    def exception(self, message: str, **kwargs):
        """Log exception with traceback."""
        self._ensure_configured()
        self.logger.exception(self._format_message(message, **kwargs))

    @staticmethod
    def _format_message(message: str, **kwargs) -> str:
        if kwargs:
            context_str = " | ".join(f"{k}={v}" for k, v in kwargs.items())
            return f"{message} | {context_str}"
        return message


_loggers = {}


def get_logger(name: str = "jolly_jax") -> JollyJaxLogger:
    """
    Get a logger instance.

    Args:
        name: Logger name (defaults to 'jolly_jax')

    Returns:
        Lazily configured logger instance
    """
    if name not in _loggers:
        _loggers[name] = JollyJaxLogger(name)
    return _loggers[name]


def setup_logging(
    level: Optional[Union[str, LogLevel]] = None,
    console: Optional[bool] = None,
    file_path: Optional[Union[str, Path]] = None,
    format_string: Optional[str] = None
) -> None:
    """
    Setup global logging configuration.

    Args:
        level: Logging level
        console: Enable console logging
        file_path: Path for file logging
        format_string: Custom format string
    """
    config = get_default_config()

    if level is not None:
        config.logging.level = LogLevel(level.upper() if isinstance(level, str) else level)

    if console is not None:
        config.logging.console_logging = console

    if file_path is not None:
        config.logging.file_logging = True
        config.logging.log_file = Path(file_path)

    if format_string is not None:
        config.logging.format_string = format_string

    # Existing loggers pick the new settings up on their next call
    for logger in _loggers.values():
        logger._configured = False


def log_performance(func):
    """Decorator to log the wall-clock duration of a call."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger = get_logger(func.__module__)
        start_time = time.time()
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            duration = time.time() - start_time
            logger.error(f"{func.__name__} failed after {duration:.2f}s: {e}")
            raise
        logger.info(f"{func.__name__} completed", duration_seconds=round(time.time() - start_time, 3))
        return result
    return wrapper
