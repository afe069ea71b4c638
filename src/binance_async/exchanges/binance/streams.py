"""
Typed stream subscriptions.

Each builder turns a symbol (and options) into a Binance topic name and
subscribes with a msgspec decoder for the matching event type:

    handle = await client.streams.trades("BTCUSDT")
    async for trade in handle:          # TradeEvent
        ...
"""

from typing import Any, Dict, Optional, Type, Union

import msgspec

from binance_async.infrastructure.networking.websocket import StreamMultiplexer, SubscriptionHandle
from .structs import (
    AggTradeEvent, BookTickerEvent, DayTickerEvent, DepthUpdateEvent, FuturesUserDataEvent,
    KlineEvent, KlineInterval, MarkPriceEvent, MiniTickerEvent, PartialDepthEvent, TradeEvent,
    UserDataEvent,
)

PARTIAL_DEPTH_LEVELS = (5, 10, 20)


def trade_topic(symbol: str) -> str:
    return f"{symbol.lower()}@trade"


def agg_trade_topic(symbol: str) -> str:
    return f"{symbol.lower()}@aggTrade"


def kline_topic(symbol: str, interval: Union[KlineInterval, str]) -> str:
    value = interval.value if isinstance(interval, KlineInterval) else interval
    return f"{symbol.lower()}@kline_{value}"


def diff_depth_topic(symbol: str, fast: bool = False) -> str:
    """Diff depth updates every 1000ms, or 100ms when ``fast``."""
    topic = f"{symbol.lower()}@depth"
    return f"{topic}@100ms" if fast else topic


def partial_depth_topic(symbol: str, levels: int = 20, fast: bool = False) -> str:
    """Top ``levels`` (5, 10 or 20) book snapshot."""
    if levels not in PARTIAL_DEPTH_LEVELS:
        raise ValueError(f"levels must be one of {PARTIAL_DEPTH_LEVELS}, got {levels}")
    topic = f"{symbol.lower()}@depth{levels}"
    return f"{topic}@100ms" if fast else topic


def book_ticker_topic(symbol: str) -> str:
    return f"{symbol.lower()}@bookTicker"


def ticker_topic(symbol: str) -> str:
    return f"{symbol.lower()}@ticker"


def mini_ticker_topic(symbol: str) -> str:
    return f"{symbol.lower()}@miniTicker"


def mark_price_topic(symbol: str, every_second: bool = False) -> str:
    topic = f"{symbol.lower()}@markPrice"
    return f"{topic}@1s" if every_second else topic


class Streams:
    """Spot stream builders bound to one multiplexer."""

    partial_depth_type: Type = PartialDepthEvent
    user_data_type: Any = UserDataEvent

    def __init__(self, multiplexer: StreamMultiplexer):
        self.multiplexer = multiplexer
        self._decoders: Dict[Any, msgspec.json.Decoder] = {}

    def decoder(self, event_type: Any) -> msgspec.json.Decoder:
        """Shared decoder per event type."""
        decoder = self._decoders.get(event_type)
        if decoder is None:
            decoder = msgspec.json.Decoder(event_type, strict=False)
            self._decoders[event_type] = decoder
        return decoder

    async def subscribe(self, topic: str, event_type: Optional[Any] = None) -> SubscriptionHandle:
        """Raw subscription; events are decoded into ``event_type`` or generic JSON."""
        decoder = self.decoder(event_type) if event_type is not None else None
        return await self.multiplexer.subscribe(topic, decoder)

    async def trades(self, symbol: str) -> SubscriptionHandle:
        return await self.subscribe(trade_topic(symbol), TradeEvent)

    async def agg_trades(self, symbol: str) -> SubscriptionHandle:
        return await self.subscribe(agg_trade_topic(symbol), AggTradeEvent)

    async def klines(self, symbol: str, interval: Union[KlineInterval, str]) -> SubscriptionHandle:
        return await self.subscribe(kline_topic(symbol, interval), KlineEvent)

    async def diff_depth(self, symbol: str, fast: bool = False) -> SubscriptionHandle:
        return await self.subscribe(diff_depth_topic(symbol, fast), DepthUpdateEvent)

    async def partial_depth(self, symbol: str, levels: int = 20, fast: bool = False) -> SubscriptionHandle:
        return await self.subscribe(partial_depth_topic(symbol, levels, fast), self.partial_depth_type)

    async def book_ticker(self, symbol: str) -> SubscriptionHandle:
        return await self.subscribe(book_ticker_topic(symbol), BookTickerEvent)

    async def ticker(self, symbol: str) -> SubscriptionHandle:
        return await self.subscribe(ticker_topic(symbol), DayTickerEvent)

    async def mini_ticker(self, symbol: str) -> SubscriptionHandle:
        return await self.subscribe(mini_ticker_topic(symbol), MiniTickerEvent)

    async def user_data(self, listen_key: str) -> SubscriptionHandle:
        """User data events for a listen key (see ``UserStream.start``)."""
        return await self.subscribe(listen_key, self.user_data_type)


class FuturesStreams(Streams):
    """USD-M futures stream builders; partial depth arrives as depthUpdate events."""

    partial_depth_type = DepthUpdateEvent
    user_data_type = FuturesUserDataEvent

    async def mark_price(self, symbol: str, every_second: bool = False) -> SubscriptionHandle:
        return await self.subscribe(mark_price_topic(symbol, every_second), MarkPriceEvent)
