"""Market data structures (public REST endpoints)."""

from decimal import Decimal
from typing import List, Optional

import msgspec

from .general import BinanceStruct


class PriceLevel(msgspec.Struct, array_like=True):
    """``["price", "qty"]`` pair of an order book side."""
    price: Decimal
    qty: Decimal


class OrderBook(BinanceStruct, kw_only=True):
    last_update_id: int
    bids: List[PriceLevel]
    asks: List[PriceLevel]
    # Futures only
    event_time: Optional[int] = msgspec.field(default=None, name="E")
    transaction_time: Optional[int] = msgspec.field(default=None, name="T")

    def best_bid(self) -> Optional[PriceLevel]:
        return self.bids[0] if self.bids else None

    def best_ask(self) -> Optional[PriceLevel]:
        return self.asks[0] if self.asks else None


class Trade(BinanceStruct, kw_only=True):
    """Recent or historical public trade."""
    id: int
    price: Decimal
    qty: Decimal
    quote_qty: Optional[Decimal] = None
    time: int
    is_buyer_maker: bool
    is_best_match: Optional[bool] = None


class AggTrade(msgspec.Struct):
    """Compressed/aggregate trade (single-letter keys on the wire)."""
    agg_id: int = msgspec.field(name="a")
    price: Decimal = msgspec.field(name="p")
    qty: Decimal = msgspec.field(name="q")
    first_id: int = msgspec.field(name="f")
    last_id: int = msgspec.field(name="l")
    time: int = msgspec.field(name="T")
    is_buyer_maker: bool = msgspec.field(name="m")
    is_best_match: Optional[bool] = msgspec.field(default=None, name="M")


class Kline(msgspec.Struct, array_like=True):
    """Candlestick row as returned by /api/v3/klines (positional array)."""
    open_time: int
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: Decimal
    close_time: int
    quote_asset_volume: Decimal
    number_of_trades: int
    taker_buy_base_asset_volume: Decimal
    taker_buy_quote_asset_volume: Decimal
    ignore: str = "0"


class AveragePrice(BinanceStruct, kw_only=True):
    mins: int
    price: Decimal
    close_time: Optional[int] = None


class Ticker24h(BinanceStruct, kw_only=True):
    """24hr rolling window price change statistics."""
    symbol: str
    price_change: Decimal
    price_change_percent: Decimal
    weighted_avg_price: Decimal
    prev_close_price: Optional[Decimal] = None
    last_price: Decimal
    last_qty: Optional[Decimal] = None
    bid_price: Optional[Decimal] = None
    bid_qty: Optional[Decimal] = None
    ask_price: Optional[Decimal] = None
    ask_qty: Optional[Decimal] = None
    open_price: Decimal
    high_price: Decimal
    low_price: Decimal
    volume: Decimal
    quote_volume: Decimal
    open_time: int
    close_time: int
    first_id: int
    last_id: int
    count: int


class SymbolPrice(BinanceStruct, kw_only=True):
    symbol: str
    price: Decimal
    time: Optional[int] = None


class BookTicker(BinanceStruct, kw_only=True):
    """Best bid/ask on the order book."""
    symbol: str
    bid_price: Decimal
    bid_qty: Decimal
    ask_price: Decimal
    ask_qty: Decimal
    time: Optional[int] = None
