"""
Async Binance API client.

    from binance_async import BinanceClient, ExchangeConfig

    async with BinanceClient(ExchangeConfig.from_env()) as client:
        info = await client.general.exchange_info()
"""

from binance_async.config import ConfigManager, ExchangeConfig, ExchangeCredentials
from binance_async.exchanges.binance import BinanceClient
from binance_async.infrastructure.exceptions import (
    BaseExchangeError,
    ConfigurationError,
    DecodeError,
    ExchangeError,
    RateLimited,
    StreamClosed,
    TransportError,
)
from binance_async.infrastructure.decorators import retry_decorator
from binance_async.infrastructure.logging import configure_logging, get_logger

__version__ = "0.1.0"

__all__ = [
    'BinanceClient',
    'ConfigManager',
    'ExchangeConfig',
    'ExchangeCredentials',
    'BaseExchangeError',
    'ConfigurationError',
    'DecodeError',
    'ExchangeError',
    'RateLimited',
    'StreamClosed',
    'TransportError',
    'retry_decorator',
    'configure_logging',
    'get_logger',
]
