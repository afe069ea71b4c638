"""
Binance Client

Composes the REST transports, rate governors and stream multiplexers of one
account into operation groups:

    async with BinanceClient(ExchangeConfig.from_env()) as client:
        book = await client.market.depth("BTCUSDT", limit=5)
        order = await client.account.limit_buy("BTCUSDT", "0.001", "25000")

        trades = await client.streams.trades("BTCUSDT")
        async for trade in trades:
            ...

Everything (credentials, budgets, sessions, sockets) belongs to the client
instance; several clients with different accounts can run side by side.
Optional groups (margin, futures, savings, wallet) are gated by
``ExchangeConfig.features`` and raise ConfigurationError when disabled.
"""

import random
from typing import Optional

import aiohttp

from binance_async.config.structs import ExchangeConfig
from binance_async.infrastructure.exceptions.system import ConfigurationError
from binance_async.infrastructure.logging import flush_logging, get_exchange_logger, HFTLoggerInterface
from binance_async.infrastructure.networking.http import (
    Credentials, FUTURES_DEFAULT_LIMITS, HmacSigner, RateGovernor, RestConfig, RestManager,
    SPOT_DEFAULT_LIMITS,
)
from binance_async.infrastructure.networking.websocket import StreamMultiplexer
from binance_async.infrastructure.networking.websocket.ws_connection import ConnectMethod
from .rest import Account, Futures, General, Margin, Market, Savings, UserStream, Wallet
from .rest.futures import FUTURES_SERVER_TIME_PATH
from .streams import FuturesStreams, Streams


class BinanceClient:
    """Async Binance client: spot, margin, USD-M futures, savings and wallet."""

    def __init__(self,
                 config: Optional[ExchangeConfig] = None,
                 session: Optional[aiohttp.ClientSession] = None,
                 futures_session: Optional[aiohttp.ClientSession] = None,
                 connect_method: Optional[ConnectMethod] = None,
                 rng: Optional[random.Random] = None,
                 logger: Optional[HFTLoggerInterface] = None):
        self.config = config or ExchangeConfig()
        self.config.validate()
        self.logger = logger or get_exchange_logger("binance", "client")

        credentials = Credentials(self.config.credentials.api_key,
                                  self.config.credentials.secret_key or None)
        signer = HmacSigner(credentials) if credentials.has_api_key else None
        apply_limits = self.config.rate_limit.apply_exchange_limits

        # Spot
        self.rate_governor = RateGovernor(SPOT_DEFAULT_LIMITS,
                                          logger=get_exchange_logger("binance", "rate_governor"))
        self.transport = RestManager(
            self._rest_config(self.config.rest_url, "/api/v3/time"),
            signer=signer,
            rate_governor=self.rate_governor,
            session=session,
            logger=get_exchange_logger("binance", "rest"),
        )
        self._general = General(self.transport, self.rate_governor if apply_limits else None)
        self._market = Market(self.transport)
        self._account = Account(self.transport)
        self._user_stream = UserStream(self.transport)
        self._margin = Margin(self.transport)
        self._savings = Savings(self.transport)
        self._wallet = Wallet(self.transport)

        # USD-M futures: separate host, separate budgets
        self.futures_rate_governor = RateGovernor(
            FUTURES_DEFAULT_LIMITS, logger=get_exchange_logger("binance", "futures_rate_governor"))
        self.futures_transport = RestManager(
            self._rest_config(self.config.futures_rest_url, FUTURES_SERVER_TIME_PATH),
            signer=signer,
            rate_governor=self.futures_rate_governor,
            session=futures_session,
            logger=get_exchange_logger("binance", "futures_rest"),
        )
        self._futures = Futures(self.futures_transport,
                                self.futures_rate_governor if apply_limits else None)

        # Streams
        self._stream_multiplexer = StreamMultiplexer(
            self.config.stream_url, self.config.websocket, connect_method=connect_method,
            name="spot", rng=rng, logger=get_exchange_logger("binance", "streams"))
        self._futures_stream_multiplexer = StreamMultiplexer(
            self.config.futures_stream_url, self.config.websocket, connect_method=connect_method,
            name="futures", rng=rng, logger=get_exchange_logger("binance", "futures_streams"))
        self._streams = Streams(self._stream_multiplexer)
        self._futures_streams = FuturesStreams(self._futures_stream_multiplexer)

        self._closed = False
        self.logger.info("Binance client created", testnet=self.config.testnet,
                         private=credentials.has_api_key, api_key=credentials.masked_key())

    def _rest_config(self, base_url: str, server_time_path: str) -> RestConfig:
        network = self.config.network
        return RestConfig(
            base_url=base_url,
            timeout=network.request_timeout,
            connect_timeout=network.connect_timeout,
            max_connections=network.max_connections,
            max_connections_per_host=network.max_connections_per_host,
            keepalive_timeout=network.keepalive_timeout,
            recv_window=self.config.recv_window,
            wait_on_rate_limit=self.config.rate_limit.wait_on_rate_limit,
            max_rate_limit_wait=self.config.rate_limit.max_wait,
            server_time_path=server_time_path,
        )

    def _require(self, feature: str) -> None:
        if not getattr(self.config.features, feature):
            raise ConfigurationError(f"The '{feature}' API group is disabled", f"features.{feature}")

    # Operation groups

    @property
    def general(self) -> General:
        return self._general

    @property
    def market(self) -> Market:
        return self._market

    @property
    def account(self) -> Account:
        return self._account

    @property
    def user_stream(self) -> UserStream:
        return self._user_stream

    @property
    def margin(self) -> Margin:
        self._require("margin")
        return self._margin

    @property
    def futures(self) -> Futures:
        self._require("futures")
        return self._futures

    @property
    def savings(self) -> Savings:
        self._require("savings")
        return self._savings

    @property
    def wallet(self) -> Wallet:
        self._require("wallet")
        return self._wallet

    @property
    def streams(self) -> Streams:
        return self._streams

    @property
    def futures_streams(self) -> FuturesStreams:
        self._require("futures")
        return self._futures_streams

    # Lifecycle

    async def sync_time(self) -> int:
        """Synchronize the spot clock offset (and the futures one when enabled)."""
        offset = await self.transport.sync_time()
        if self.config.features.futures:
            await self.futures_transport.sync_time()
        return offset

    async def close(self) -> None:
        """Close stream connections and HTTP sessions, then flush buffered log lines."""
        if self._closed:
            return
        self._closed = True
        await self._stream_multiplexer.close()
        await self._futures_stream_multiplexer.close()
        await self.transport.close()
        await self.futures_transport.close()
        self.logger.info("Binance client closed")
        await flush_logging()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
