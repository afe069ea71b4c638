"""
Structured Logger Implementation

Records go through the standard ``logging`` module, so handlers installed by
``configure_logging`` (or by the application) receive them. Context kwargs are
rendered after the message:

    Request failed | path=api/v3/order status=429 attempt=1
"""

import logging
import threading
import time
from typing import Dict, Any, Optional

from .interfaces import HFTLoggerInterface, LogLevel


def render_context(context: Dict[str, Any], max_length: Optional[int] = None) -> str:
    rendered = " ".join(f"{key}={value}" for key, value in context.items())
    if max_length is not None and len(rendered) > max_length:
        rendered = rendered[:max_length] + "..."
    return rendered


class HFTLogger(HFTLoggerInterface):
    """
    Logger bound to one standard-library logger of the same name.

    Gauges and counters live in a lock-protected dict and can be read back with
    ``get_metrics``; they are echoed at DEBUG level only.
    """

    def __init__(self, name: str, include_context: bool = True,
                 max_context_length: Optional[int] = None):
        self.name = name
        self.include_context = include_context
        self.max_context_length = max_context_length
        self.context: Dict[str, Any] = {}

        self._metrics: Dict[str, float] = {}
        self._metrics_lock = threading.Lock()
        self._py_logger = logging.getLogger(name)

    def _log(self, level: LogLevel, msg: str, context: Dict[str, Any]) -> None:
        if not self._py_logger.isEnabledFor(level):
            return

        merged = {**self.context, **context}
        exc_info = merged.pop("exc_info", None)
        if self.include_context and merged:
            msg = f"{msg} | {render_context(merged, self.max_context_length)}"
        self._py_logger.log(level, msg, exc_info=exc_info)

    def debug(self, msg: str, **context) -> None:
        self._log(LogLevel.DEBUG, msg, context)

    def info(self, msg: str, **context) -> None:
        self._log(LogLevel.INFO, msg, context)

    def warning(self, msg: str, **context) -> None:
        self._log(LogLevel.WARNING, msg, context)

    def error(self, msg: str, **context) -> None:
        self._log(LogLevel.ERROR, msg, context)

    def critical(self, msg: str, **context) -> None:
        self._log(LogLevel.CRITICAL, msg, context)

    def metric(self, name: str, value: float, **tags) -> None:
        with self._metrics_lock:
            self._metrics[name] = float(value)
        self._log(LogLevel.DEBUG, f"metric {name}={value}", tags)

    def latency(self, operation: str, duration_ms: float, **tags) -> None:
        self.metric(f"{operation}_latency_ms", duration_ms, **tags)

    def counter(self, name: str, value: int = 1, **tags) -> None:
        key = f"{name}_count"
        with self._metrics_lock:
            total = self._metrics.get(key, 0.0) + value
            self._metrics[key] = total
        self._log(LogLevel.DEBUG, f"counter {key}={total:g}", tags)

    def set_context(self, **context) -> None:
        self.context.update(context)

    def get_metrics(self) -> Dict[str, float]:
        with self._metrics_lock:
            return dict(self._metrics)

    def isEnabledFor(self, level: int) -> bool:
        return self._py_logger.isEnabledFor(level)


class LoggingTimer:
    """
    Times a block and records it as ``<operation>_latency_ms``.

        with LoggingTimer(logger, "rest_request", path=path) as timer:
            ...
        elapsed = timer.elapsed_ms
    """

    def __init__(self, logger: HFTLoggerInterface, operation: str, **tags):
        self.logger = logger
        self.operation = operation
        self.tags = tags
        self.start_time: Optional[float] = None
        self.end_time: Optional[float] = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.end_time = time.perf_counter()
        self.logger.latency(self.operation, self.elapsed_ms, **self.tags)
        if exc_type is not None:
            self.logger.debug(f"{self.operation} failed", error_type=exc_type.__name__, **self.tags)

    @property
    def elapsed_ms(self) -> float:
        if self.start_time is None:
            return 0.0
        end_time = self.end_time or time.perf_counter()
        return (end_time - self.start_time) * 1000
