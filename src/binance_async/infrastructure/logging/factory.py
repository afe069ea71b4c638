"""
Logging Factory

Creates cached logger instances and installs handlers (console stream, async
file backend) from struct-based configuration. Components receive their
logger as ``self.logger``.

Loggers are cached by name, so every component asking for
``get_logger("rest.manager")`` shares one instance (and one metrics registry).
"""

import logging
import os
import sys
from typing import Dict, Optional, List

from .backends import AsyncFileHandler
from .interfaces import HFTLoggerInterface
from .hft_logger import HFTLogger
from .structs import LoggingConfig

ROOT_LOGGER_NAME = "binance_async"

_CONSOLE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s %(process)d: %(message)s"

_COLORS = {
    logging.DEBUG: "\033[36m",
    logging.INFO: "\033[32m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[35m",
}
_RESET = "\033[0m"


class _ColorFormatter(logging.Formatter):

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        color = _COLORS.get(record.levelno)
        return f"{color}{text}{_RESET}" if color else text


def qualified_name(name: str) -> str:
    """Place ``name`` under the package root logger."""
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return name
    return f"{ROOT_LOGGER_NAME}.{name}"


class LoggerFactory:
    """Logger cache plus the handlers installed by ``configure``."""

    _cached_loggers: Dict[str, HFTLogger] = {}
    _installed_handlers: List[logging.Handler] = []
    _overridden: List[str] = []
    _active_config: Optional[LoggingConfig] = None

    @classmethod
    def create_logger(cls, name: str) -> HFTLoggerInterface:
        """Create (or return cached) logger instance."""
        logger = cls._cached_loggers.get(name)
        if logger is not None:
            return logger

        logger = HFTLogger(name)
        cls._apply_render_settings(logger, cls._active_config)
        cls._cached_loggers[name] = logger
        return logger

    @staticmethod
    def _apply_render_settings(logger: HFTLogger, config: Optional[LoggingConfig]) -> None:
        if config is None:
            return
        if config.console is not None:
            logger.include_context = config.console.include_context
            logger.max_context_length = config.console.max_context_length
        if config.default_context:
            logger.set_context(**config.default_context)

    @classmethod
    def configure(cls, config: LoggingConfig) -> None:
        """
        Install console/file handlers on the package root logger.

        Replaces handlers and level overrides installed by a previous call.
        Handlers configured by the application on other loggers are left alone.
        """
        config.validate()
        root = logging.getLogger(ROOT_LOGGER_NAME)

        for handler in cls._installed_handlers:
            root.removeHandler(handler)
            handler.close()
        cls._installed_handlers = []
        for name in cls._overridden:
            logging.getLogger(name).setLevel(logging.NOTSET)
        cls._overridden = []

        levels = []
        console = config.console
        if console is not None and console.enabled:
            stream = sys.stdout if console.stream == "stdout" else sys.stderr
            handler = logging.StreamHandler(stream)
            formatter_cls = _ColorFormatter if console.color else logging.Formatter
            handler.setFormatter(formatter_cls(_CONSOLE_FORMAT))
            handler.setLevel(console.min_level.upper())
            cls._installed_handlers.append(handler)
            levels.append(handler.level)

        file_config = config.file
        if file_config is not None and file_config.enabled:
            handler = AsyncFileHandler(file_config)
            handler.setFormatter(logging.Formatter(_FILE_FORMAT))
            cls._installed_handlers.append(handler)
            levels.append(handler.level)

        for handler in cls._installed_handlers:
            root.addHandler(handler)
        if levels:
            root.setLevel(min(levels))

        for name, level in config.loggers.items():
            qualified = qualified_name(name)
            logging.getLogger(qualified).setLevel(level.upper())
            cls._overridden.append(qualified)

        cls._active_config = config
        for logger in cls._cached_loggers.values():
            cls._apply_render_settings(logger, config)

    @classmethod
    def override_logger(cls, name: str, min_level: Optional[str] = None,
                        enabled: Optional[bool] = None) -> bool:
        """
        Override one cached logger at runtime.

        Example:
            LoggerFactory.override_logger("binance_async.ws.multiplexer", min_level="ERROR")

        Returns:
            True if logger was found and modified, False otherwise
        """
        name = qualified_name(name)
        if name not in cls._cached_loggers:
            return False

        py_logger = logging.getLogger(name)
        if min_level is not None:
            py_logger.setLevel(min_level.upper())
        if enabled is not None:
            py_logger.disabled = not enabled
        return True

    @classmethod
    def clear_cache(cls) -> None:
        cls._cached_loggers.clear()


def get_logger(name: str) -> HFTLoggerInterface:
    """Get logger instance; names are placed under the package root logger."""
    return LoggerFactory.create_logger(qualified_name(name))


def get_exchange_logger(exchange: str, component: Optional[str] = None) -> HFTLoggerInterface:
    """Get exchange logger with optional component."""
    name = f"{exchange}.{component}" if component else exchange
    return get_logger(name)


def configure_logging(config: Optional[LoggingConfig] = None) -> None:
    """Configure package logging; defaults follow the ENVIRONMENT variable."""
    if config is None:
        environment = os.getenv("ENVIRONMENT", "dev").lower()
        if environment == "prod":
            config = LoggingConfig.default_production()
        elif environment == "test":
            config = LoggingConfig.default_test()
        else:
            config = LoggingConfig.default_development()
    LoggerFactory.configure(config)


async def flush_logging() -> None:
    """Wait until every line buffered by the installed file backend is on disk."""
    for handler in list(LoggerFactory._installed_handlers):
        if isinstance(handler, AsyncFileHandler):
            await handler.aflush()
