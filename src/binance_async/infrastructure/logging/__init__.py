"""
Logging System

Usage:
    from binance_async.infrastructure.logging import get_logger

    logger = get_logger("binance.rest")
    logger.info("Order placed", symbol="BTCUSDT", order_id=12345)
    logger.metric("request_weight_used", 120, endpoint="/api/v3/order")

    with LoggingTimer(logger, "place_order") as timer:
        ...
"""

from .interfaces import HFTLoggerInterface, LogLevel
from .hft_logger import HFTLogger, LoggingTimer
from .backends import AsyncFileHandler
from .factory import (
    LoggerFactory,
    get_logger,
    get_exchange_logger,
    configure_logging,
    flush_logging,
)
from .structs import (
    LoggingConfig,
    ConsoleBackendConfig,
    FileBackendConfig,
)

__all__ = [
    'HFTLoggerInterface',
    'LogLevel',
    'HFTLogger',
    'LoggingTimer',
    'AsyncFileHandler',
    'LoggerFactory',
    'get_logger',
    'get_exchange_logger',
    'configure_logging',
    'flush_logging',
    'LoggingConfig',
    'ConsoleBackendConfig',
    'FileBackendConfig',
]
