"""
Stream event structures.

Binance stream payloads use single-letter keys; every field is mapped to a
readable attribute with ``msgspec.field(name=...)``. Events carrying an
``"e"`` key are tagged structs so the user-data streams can be decoded as a
tagged union.
"""

from decimal import Decimal
from typing import List, Optional, Union

import msgspec

from .enums import (
    ExecutionType, OrderSide, OrderStatus, OrderType, PositionSide,
    TimeInForce, WorkingType,
)
from .market import PriceLevel


# Market data

class TradeEvent(msgspec.Struct, tag_field="e", tag="trade"):
    event_time: int = msgspec.field(name="E")
    symbol: str = msgspec.field(name="s")
    trade_id: int = msgspec.field(name="t")
    price: Decimal = msgspec.field(name="p")
    qty: Decimal = msgspec.field(name="q")
    trade_time: int = msgspec.field(name="T")
    is_buyer_maker: bool = msgspec.field(name="m")


class AggTradeEvent(msgspec.Struct, tag_field="e", tag="aggTrade"):
    event_time: int = msgspec.field(name="E")
    symbol: str = msgspec.field(name="s")
    agg_id: int = msgspec.field(name="a")
    price: Decimal = msgspec.field(name="p")
    qty: Decimal = msgspec.field(name="q")
    first_id: int = msgspec.field(name="f")
    last_id: int = msgspec.field(name="l")
    trade_time: int = msgspec.field(name="T")
    is_buyer_maker: bool = msgspec.field(name="m")


class KlineData(msgspec.Struct):
    start_time: int = msgspec.field(name="t")
    close_time: int = msgspec.field(name="T")
    symbol: str = msgspec.field(name="s")
    interval: str = msgspec.field(name="i")
    first_trade_id: int = msgspec.field(name="f")
    last_trade_id: int = msgspec.field(name="L")
    open: Decimal = msgspec.field(name="o")
    close: Decimal = msgspec.field(name="c")
    high: Decimal = msgspec.field(name="h")
    low: Decimal = msgspec.field(name="l")
    volume: Decimal = msgspec.field(name="v")
    number_of_trades: int = msgspec.field(name="n")
    is_closed: bool = msgspec.field(name="x")
    quote_volume: Decimal = msgspec.field(name="q")
    taker_buy_base_volume: Decimal = msgspec.field(name="V")
    taker_buy_quote_volume: Decimal = msgspec.field(name="Q")


class KlineEvent(msgspec.Struct, tag_field="e", tag="kline"):
    event_time: int = msgspec.field(name="E")
    symbol: str = msgspec.field(name="s")
    kline: KlineData = msgspec.field(name="k")


class DepthUpdateEvent(msgspec.Struct, tag_field="e", tag="depthUpdate"):
    """Diff depth update; futures partial depth streams use this shape too."""
    event_time: int = msgspec.field(name="E")
    symbol: str = msgspec.field(name="s")
    first_update_id: int = msgspec.field(name="U")
    final_update_id: int = msgspec.field(name="u")
    bids: List[PriceLevel] = msgspec.field(name="b")
    asks: List[PriceLevel] = msgspec.field(name="a")
    # Futures only
    transaction_time: Optional[int] = msgspec.field(default=None, name="T")
    prev_final_update_id: Optional[int] = msgspec.field(default=None, name="pu")


class PartialDepthEvent(msgspec.Struct):
    """Spot partial book depth snapshot (``<symbol>@depth<levels>``)."""
    last_update_id: int = msgspec.field(name="lastUpdateId")
    bids: List[PriceLevel] = []
    asks: List[PriceLevel] = []


class BookTickerEvent(msgspec.Struct):
    update_id: int = msgspec.field(name="u")
    symbol: str = msgspec.field(name="s")
    bid_price: Decimal = msgspec.field(name="b")
    bid_qty: Decimal = msgspec.field(name="B")
    ask_price: Decimal = msgspec.field(name="a")
    ask_qty: Decimal = msgspec.field(name="A")
    # Futures only
    event_time: Optional[int] = msgspec.field(default=None, name="E")
    transaction_time: Optional[int] = msgspec.field(default=None, name="T")


class DayTickerEvent(msgspec.Struct, tag_field="e", tag="24hrTicker"):
    event_time: int = msgspec.field(name="E")
    symbol: str = msgspec.field(name="s")
    price_change: Decimal = msgspec.field(name="p")
    price_change_percent: Decimal = msgspec.field(name="P")
    weighted_avg_price: Decimal = msgspec.field(name="w")
    last_price: Decimal = msgspec.field(name="c")
    last_qty: Decimal = msgspec.field(name="Q")
    open_price: Decimal = msgspec.field(name="o")
    high_price: Decimal = msgspec.field(name="h")
    low_price: Decimal = msgspec.field(name="l")
    volume: Decimal = msgspec.field(name="v")
    quote_volume: Decimal = msgspec.field(name="q")
    open_time: int = msgspec.field(name="O")
    close_time: int = msgspec.field(name="C")
    first_trade_id: int = msgspec.field(name="F")
    last_trade_id: int = msgspec.field(name="L")
    trade_count: int = msgspec.field(name="n")
    # Spot only
    prev_close_price: Optional[Decimal] = msgspec.field(default=None, name="x")
    bid_price: Optional[Decimal] = msgspec.field(default=None, name="b")
    bid_qty: Optional[Decimal] = msgspec.field(default=None, name="B")
    ask_price: Optional[Decimal] = msgspec.field(default=None, name="a")
    ask_qty: Optional[Decimal] = msgspec.field(default=None, name="A")


class MiniTickerEvent(msgspec.Struct, tag_field="e", tag="24hrMiniTicker"):
    event_time: int = msgspec.field(name="E")
    symbol: str = msgspec.field(name="s")
    close_price: Decimal = msgspec.field(name="c")
    open_price: Decimal = msgspec.field(name="o")
    high_price: Decimal = msgspec.field(name="h")
    low_price: Decimal = msgspec.field(name="l")
    volume: Decimal = msgspec.field(name="v")
    quote_volume: Decimal = msgspec.field(name="q")


class MarkPriceEvent(msgspec.Struct, tag_field="e", tag="markPriceUpdate"):
    event_time: int = msgspec.field(name="E")
    symbol: str = msgspec.field(name="s")
    mark_price: Decimal = msgspec.field(name="p")
    index_price: Optional[Decimal] = msgspec.field(default=None, name="i")
    estimated_settle_price: Optional[Decimal] = msgspec.field(default=None, name="P")
    funding_rate: Optional[Decimal] = msgspec.field(default=None, name="r")
    next_funding_time: Optional[int] = msgspec.field(default=None, name="T")


# Spot user data

class AccountBalanceUpdate(msgspec.Struct):
    asset: str = msgspec.field(name="a")
    free: Decimal = msgspec.field(name="f")
    locked: Decimal = msgspec.field(name="l")


class OutboundAccountPosition(msgspec.Struct, tag_field="e", tag="outboundAccountPosition"):
    event_time: int = msgspec.field(name="E")
    last_update_time: int = msgspec.field(name="u")
    balances: List[AccountBalanceUpdate] = msgspec.field(name="B")


class BalanceUpdate(msgspec.Struct, tag_field="e", tag="balanceUpdate"):
    event_time: int = msgspec.field(name="E")
    asset: str = msgspec.field(name="a")
    delta: Decimal = msgspec.field(name="d")
    clear_time: int = msgspec.field(name="T")


class ExecutionReport(msgspec.Struct, tag_field="e", tag="executionReport"):
    event_time: int = msgspec.field(name="E")
    symbol: str = msgspec.field(name="s")
    client_order_id: str = msgspec.field(name="c")
    side: OrderSide = msgspec.field(name="S")
    order_type: OrderType = msgspec.field(name="o")
    time_in_force: TimeInForce = msgspec.field(name="f")
    qty: Decimal = msgspec.field(name="q")
    price: Decimal = msgspec.field(name="p")
    stop_price: Decimal = msgspec.field(name="P")
    iceberg_qty: Decimal = msgspec.field(name="F")
    order_list_id: int = msgspec.field(name="g")
    orig_client_order_id: str = msgspec.field(name="C")
    execution_type: ExecutionType = msgspec.field(name="x")
    order_status: OrderStatus = msgspec.field(name="X")
    reject_reason: str = msgspec.field(name="r")
    order_id: int = msgspec.field(name="i")
    last_executed_qty: Decimal = msgspec.field(name="l")
    cumulative_filled_qty: Decimal = msgspec.field(name="z")
    last_executed_price: Decimal = msgspec.field(name="L")
    commission: Optional[Decimal] = msgspec.field(name="n")
    commission_asset: Optional[str] = msgspec.field(name="N")
    transaction_time: int = msgspec.field(name="T")
    trade_id: int = msgspec.field(name="t")
    is_working: bool = msgspec.field(name="w")
    is_maker: bool = msgspec.field(name="m")
    creation_time: int = msgspec.field(name="O")
    cumulative_quote_qty: Decimal = msgspec.field(name="Z")
    last_quote_qty: Decimal = msgspec.field(name="Y")
    quote_order_qty: Decimal = msgspec.field(name="Q")


class ListenKeyExpired(msgspec.Struct, tag_field="e", tag="listenKeyExpired"):
    event_time: int = msgspec.field(name="E")
    listen_key: Optional[str] = msgspec.field(default=None, name="listenKey")


UserDataEvent = Union[OutboundAccountPosition, BalanceUpdate, ExecutionReport, ListenKeyExpired]


# Futures user data

class FuturesBalanceUpdate(msgspec.Struct):
    asset: str = msgspec.field(name="a")
    wallet_balance: Decimal = msgspec.field(name="wb")
    cross_wallet_balance: Decimal = msgspec.field(name="cw")
    balance_change: Optional[Decimal] = msgspec.field(default=None, name="bc")


class FuturesPositionUpdate(msgspec.Struct):
    symbol: str = msgspec.field(name="s")
    position_amount: Decimal = msgspec.field(name="pa")
    entry_price: Decimal = msgspec.field(name="ep")
    accumulated_realized: Decimal = msgspec.field(name="cr")
    unrealized_profit: Decimal = msgspec.field(name="up")
    margin_type: str = msgspec.field(name="mt")  # "isolated" or "cross"
    isolated_wallet: Decimal = msgspec.field(name="iw")
    position_side: PositionSide = msgspec.field(name="ps")
    breakeven_price: Optional[Decimal] = msgspec.field(default=None, name="bep")


class FuturesAccountData(msgspec.Struct):
    reason: str = msgspec.field(name="m")
    balances: List[FuturesBalanceUpdate] = msgspec.field(default_factory=list, name="B")
    positions: List[FuturesPositionUpdate] = msgspec.field(default_factory=list, name="P")


class FuturesAccountUpdate(msgspec.Struct, tag_field="e", tag="ACCOUNT_UPDATE"):
    event_time: int = msgspec.field(name="E")
    transaction_time: int = msgspec.field(name="T")
    account: FuturesAccountData = msgspec.field(name="a")


class FuturesOrderData(msgspec.Struct):
    symbol: str = msgspec.field(name="s")
    client_order_id: str = msgspec.field(name="c")
    side: OrderSide = msgspec.field(name="S")
    order_type: OrderType = msgspec.field(name="o")
    time_in_force: TimeInForce = msgspec.field(name="f")
    qty: Decimal = msgspec.field(name="q")
    price: Decimal = msgspec.field(name="p")
    average_price: Decimal = msgspec.field(name="ap")
    stop_price: Decimal = msgspec.field(name="sp")
    execution_type: ExecutionType = msgspec.field(name="x")
    order_status: OrderStatus = msgspec.field(name="X")
    order_id: int = msgspec.field(name="i")
    last_filled_qty: Decimal = msgspec.field(name="l")
    cumulative_filled_qty: Decimal = msgspec.field(name="z")
    last_filled_price: Decimal = msgspec.field(name="L")
    trade_time: int = msgspec.field(name="T")
    trade_id: int = msgspec.field(name="t")
    is_maker: bool = msgspec.field(name="m")
    is_reduce_only: bool = msgspec.field(name="R")
    position_side: PositionSide = msgspec.field(name="ps")
    realized_profit: Decimal = msgspec.field(name="rp")
    commission: Optional[Decimal] = msgspec.field(default=None, name="n")
    commission_asset: Optional[str] = msgspec.field(default=None, name="N")
    working_type: Optional[WorkingType] = msgspec.field(default=None, name="wt")
    original_order_type: Optional[OrderType] = msgspec.field(default=None, name="ot")
    close_position: bool = msgspec.field(default=False, name="cp")


class FuturesOrderTradeUpdate(msgspec.Struct, tag_field="e", tag="ORDER_TRADE_UPDATE"):
    event_time: int = msgspec.field(name="E")
    transaction_time: int = msgspec.field(name="T")
    order: FuturesOrderData = msgspec.field(name="o")


FuturesUserDataEvent = Union[FuturesAccountUpdate, FuturesOrderTradeUpdate, ListenKeyExpired]
