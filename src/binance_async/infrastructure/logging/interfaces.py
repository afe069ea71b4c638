"""
Logger Interface

Every component receives an ``HFTLoggerInterface`` as ``self.logger`` (or
creates one with ``get_logger``). Context travels as keyword arguments:

    self.logger.warning("Reconnecting", connection="spot-1", attempt=2, delay=0.8)

Secrets (API secret, signatures) are never passed as context.
"""

from abc import ABC, abstractmethod
from enum import IntEnum
from typing import Dict


class LogLevel(IntEnum):
    """Same numeric values as the standard ``logging`` levels."""
    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50


class HFTLoggerInterface(ABC):
    """Structured text logging plus an in-process metrics registry."""

    @abstractmethod
    def debug(self, msg: str, **context) -> None:
        ...

    @abstractmethod
    def info(self, msg: str, **context) -> None:
        ...

    @abstractmethod
    def warning(self, msg: str, **context) -> None:
        ...

    @abstractmethod
    def error(self, msg: str, **context) -> None:
        ...

    @abstractmethod
    def critical(self, msg: str, **context) -> None:
        ...

    @abstractmethod
    def metric(self, name: str, value: float, **tags) -> None:
        """Set gauge ``name`` to ``value``."""

    @abstractmethod
    def latency(self, operation: str, duration_ms: float, **tags) -> None:
        """Record the duration of ``operation`` as gauge ``<operation>_latency_ms``."""

    @abstractmethod
    def counter(self, name: str, value: int = 1, **tags) -> None:
        """Add ``value`` to counter ``<name>_count``."""

    @abstractmethod
    def set_context(self, **context) -> None:
        """Attach context to every later record of this logger."""

    @abstractmethod
    def get_metrics(self) -> Dict[str, float]:
        """Snapshot of gauges and counters keyed by metric name."""

    @abstractmethod
    def isEnabledFor(self, level: int) -> bool:
        """Standard-library compatible level check."""
