"""Listen key management for user data streams."""

import asyncio
from typing import Optional

from binance_async.infrastructure.exceptions.exchange import TransportError
from binance_async.infrastructure.logging import HFTLoggerInterface
from binance_async.infrastructure.networking.http import HTTPMethod, RestManager, SecurityType
from ..structs import Empty, UserDataStream
from .base import Endpoint, RestGroup

SPOT_LISTEN_KEY_PATH = "/api/v3/userDataStream"
FUTURES_LISTEN_KEY_PATH = "/fapi/v1/listenKey"

# Listen keys expire after 60 minutes without a keepalive
DEFAULT_KEEPALIVE_INTERVAL = 30 * 60.0


class UserStream(RestGroup):
    """
    Start, keep alive and close listen keys.

    The same operations exist on spot (``/api/v3/userDataStream``) and USD-M
    futures (``/fapi/v1/listenKey``); only the path differs.
    """

    def __init__(self, transport: RestManager, path: str = SPOT_LISTEN_KEY_PATH,
                 logger: Optional[HFTLoggerInterface] = None):
        super().__init__(transport, logger)
        self._start = Endpoint(path, HTTPMethod.POST, SecurityType.API_KEY, weight=2)
        self._keep_alive = Endpoint(path, HTTPMethod.PUT, SecurityType.API_KEY, weight=2)
        self._close = Endpoint(path, HTTPMethod.DELETE, SecurityType.API_KEY, weight=2)

    async def start(self) -> str:
        """Create (or return the active) listen key."""
        result = await self._call(self._start, response_type=UserDataStream)
        self.logger.info("User data stream started")
        return result.listen_key

    async def keep_alive(self, listen_key: str) -> None:
        """Extend the listen key validity by 60 minutes."""
        await self._call(self._keep_alive, {"listenKey": listen_key}, Empty)

    async def close(self, listen_key: str) -> None:
        await self._call(self._close, {"listenKey": listen_key}, Empty)
        self.logger.info("User data stream closed")

    async def keep_alive_loop(self, listen_key: str,
                              interval: float = DEFAULT_KEEPALIVE_INTERVAL) -> None:
        """
        Send a keepalive every ``interval`` seconds until cancelled.

        Transport failures are logged and retried at the next interval; an
        exchange error (expired or unknown listen key) ends the loop.
        """
        while True:
            await asyncio.sleep(interval)
            try:
                await self.keep_alive(listen_key)
                self.logger.debug("Listen key kept alive")
            except TransportError as e:
                self.logger.warning("Listen key keepalive failed", error=str(e))
