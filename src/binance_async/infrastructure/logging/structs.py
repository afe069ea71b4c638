"""
Logging Configuration Structures

The ``logging`` section of config.yaml, decoded into frozen msgspec structs:

    logging:
      console: {enabled: true, min_level: INFO, color: true}
      file: {enabled: true, path: logs/binance_async.log}
      loggers:
        binance_async.ws: WARNING       # quieten stream reconnect chatter

Invalid values raise ConfigurationError naming the offending setting.
"""

from typing import Any, Dict, Optional

import msgspec
from msgspec import Struct

from binance_async.infrastructure.exceptions.system import ConfigurationError

VALID_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
VALID_ENVIRONMENTS = ("dev", "test", "staging", "prod")
CONSOLE_STREAMS = ("stderr", "stdout")


def check_level(level: str, setting_name: str) -> None:
    if str(level).upper() not in VALID_LEVELS:
        raise ConfigurationError(f"Invalid log level {level!r}, expected one of {VALID_LEVELS}",
                                 setting_name)


class BackendConfig(Struct, frozen=True):
    """Shared handler settings: on/off switch and threshold level."""
    enabled: bool = True
    min_level: str = "INFO"


class ConsoleBackendConfig(BackendConfig, frozen=True):
    """
    Console handler.

    Attributes:
        color: ANSI colors per level (disable when output is not a terminal)
        stream: "stderr" or "stdout"
        include_context: Append ``key=value`` context after the message
        max_context_length: Truncate the rendered context beyond this many characters
    """
    color: bool = True
    stream: str = "stderr"
    include_context: bool = True
    max_context_length: Optional[int] = 1000

    def validate(self) -> None:
        check_level(self.min_level, "logging.console.min_level")
        if self.stream not in CONSOLE_STREAMS:
            raise ConfigurationError(f"stream must be one of {CONSOLE_STREAMS}",
                                     "logging.console.stream")
        if self.max_context_length is not None and self.max_context_length <= 0:
            raise ConfigurationError("max_context_length must be positive",
                                     "logging.console.max_context_length")


class FileBackendConfig(BackendConfig, frozen=True):
    """
    Size-rotated log file written through aiofiles.

    Attributes:
        max_size_mb: Size at which the file is rotated
        backup_count: Rotated files kept (``<path>.1`` is the newest)
        buffer_size: Buffered lines that trigger a write
        flush_interval: Seconds after which buffered lines are written anyway
    """
    path: str = "logs/binance_async.log"
    max_size_mb: int = 100
    backup_count: int = 5
    buffer_size: int = 64
    flush_interval: float = 1.0

    def validate(self) -> None:
        check_level(self.min_level, "logging.file.min_level")
        if not self.path:
            raise ConfigurationError("path is required", "logging.file.path")
        if self.max_size_mb <= 0:
            raise ConfigurationError("max_size_mb must be positive", "logging.file.max_size_mb")
        if self.backup_count < 0:
            raise ConfigurationError("backup_count cannot be negative", "logging.file.backup_count")
        if self.buffer_size <= 0:
            raise ConfigurationError("buffer_size must be positive", "logging.file.buffer_size")
        if self.flush_interval < 0:
            raise ConfigurationError("flush_interval cannot be negative", "logging.file.flush_interval")


class LoggingConfig(Struct, frozen=True):
    """
    Complete logging configuration.

    Attributes:
        environment: dev, test, staging or prod
        console: Console handler, None to leave the console alone
        file: Rotating file handler, None for no file output
        loggers: Per-logger level overrides, e.g. ``{"binance_async.ws": "WARNING"}``
        default_context: Context attached to every record (e.g. ``{"account": "main"}``)
    """
    environment: str = "dev"
    console: Optional[ConsoleBackendConfig] = None
    file: Optional[FileBackendConfig] = None
    loggers: Dict[str, str] = msgspec.field(default_factory=dict)
    default_context: Optional[Dict[str, Any]] = None

    def validate(self) -> None:
        if self.environment not in VALID_ENVIRONMENTS:
            raise ConfigurationError(f"Invalid environment: {self.environment}", "logging.environment")
        if self.console is not None:
            self.console.validate()
        if self.file is not None:
            self.file.validate()
        for name, level in self.loggers.items():
            check_level(level, f"logging.loggers.{name}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoggingConfig":
        """Build from the ``logging`` section of config.yaml."""
        try:
            return msgspec.convert(data, cls, strict=False)
        except msgspec.ValidationError as e:
            raise ConfigurationError(f"Invalid 'logging' settings: {e}", "logging") from e

    @classmethod
    def default_development(cls) -> "LoggingConfig":
        return cls(environment="dev",
                   console=ConsoleBackendConfig(min_level="DEBUG", color=True))

    @classmethod
    def default_test(cls) -> "LoggingConfig":
        """Quiet console without colors; pytest captures the output."""
        return cls(environment="test",
                   console=ConsoleBackendConfig(min_level="WARNING", color=False))

    @classmethod
    def default_production(cls) -> "LoggingConfig":
        return cls(
            environment="prod",
            console=ConsoleBackendConfig(min_level="WARNING", color=False,
                                         max_context_length=500),
            file=FileBackendConfig(path="logs/production.log", max_size_mb=500, backup_count=10),
            loggers={"binance_async.ws": "INFO"},
        )
