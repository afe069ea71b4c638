from typing import Optional

from binance_async.infrastructure.networking.http import RateGovernor, RestManager
from binance_async.infrastructure.logging import HFTLoggerInterface
from ..structs import Empty, ExchangeInformation, ServerTime, Symbol
from .base import Endpoint, RestGroup

PING = Endpoint("/api/v3/ping")
SERVER_TIME = Endpoint("/api/v3/time")
EXCHANGE_INFO = Endpoint("/api/v3/exchangeInfo", weight=20)


class General(RestGroup):
    """
    Connectivity and exchange metadata.

    When a rate governor is supplied, every exchangeInfo response loads the
    advertised ``rateLimits`` into it.
    """

    def __init__(self, transport: RestManager,
                 rate_governor: Optional[RateGovernor] = None,
                 logger: Optional[HFTLoggerInterface] = None):
        super().__init__(transport, logger)
        self._rate_governor = rate_governor

    async def ping(self) -> bool:
        """Test connectivity to the REST API."""
        await self._call(PING, response_type=Empty)
        return True

    async def server_time(self) -> ServerTime:
        return await self._call(SERVER_TIME, response_type=ServerTime)

    async def exchange_info(self, symbols: Optional[list] = None) -> ExchangeInformation:
        """Exchange trading rules and symbol information."""
        params = None
        if symbols:
            params = {"symbols": [s.upper() for s in symbols]}
        info = await self._call(EXCHANGE_INFO, params, ExchangeInformation)
        if self._rate_governor is not None and info.rate_limits:
            self._rate_governor.apply_exchange_limits(info.rate_limits)
        return info

    async def symbol_info(self, symbol: str) -> Optional[Symbol]:
        """Single symbol entry, or None when the exchange does not list it."""
        info = await self._call(EXCHANGE_INFO, {"symbol": symbol.upper()}, ExchangeInformation)
        return info.get_symbol(symbol)
