"""Spot account structures: balances, orders, fills, own trades, listen keys."""

from decimal import Decimal
from typing import List, Optional

import msgspec

from .enums import OrderSide, OrderStatus, OrderType, TimeInForce
from .general import BinanceStruct


class Balance(BinanceStruct, kw_only=True):
    asset: str
    free: Decimal
    locked: Decimal

    @property
    def total(self) -> Decimal:
        return self.free + self.locked


class CommissionRates(BinanceStruct, kw_only=True):
    maker: Decimal
    taker: Decimal
    buyer: Decimal
    seller: Decimal


class AccountInformation(BinanceStruct, kw_only=True):
    maker_commission: int = 0
    taker_commission: int = 0
    buyer_commission: int = 0
    seller_commission: int = 0
    commission_rates: Optional[CommissionRates] = None
    can_trade: bool = True
    can_withdraw: bool = True
    can_deposit: bool = True
    update_time: int = 0
    account_type: str = "SPOT"
    balances: List[Balance] = []
    permissions: List[str] = []
    uid: Optional[int] = None

    def get_balance(self, asset: str) -> Optional[Balance]:
        asset = asset.upper()
        for balance in self.balances:
            if balance.asset == asset:
                return balance
        return None

    def non_zero_balances(self) -> List[Balance]:
        return [b for b in self.balances if b.free or b.locked]


class Fill(BinanceStruct, kw_only=True):
    price: Decimal
    qty: Decimal
    commission: Decimal
    commission_asset: str
    trade_id: Optional[int] = None


class Transaction(BinanceStruct, kw_only=True):
    """
    New order response.

    ACK responses only carry the identifiers; RESULT and FULL add the
    execution fields, FULL adds ``fills``.
    """
    symbol: str
    order_id: int
    order_list_id: int = -1
    client_order_id: str
    transact_time: int
    price: Optional[Decimal] = None
    orig_qty: Optional[Decimal] = None
    executed_qty: Optional[Decimal] = None
    cummulative_quote_qty: Optional[Decimal] = None
    status: Optional[OrderStatus] = None
    time_in_force: Optional[TimeInForce] = None
    order_type: Optional[OrderType] = msgspec.field(default=None, name="type")
    side: Optional[OrderSide] = None
    fills: List[Fill] = []


class Order(BinanceStruct, kw_only=True):
    """Order as returned by order queries."""
    symbol: str
    order_id: int
    order_list_id: int = -1
    client_order_id: str
    price: Decimal
    orig_qty: Decimal
    executed_qty: Decimal
    cummulative_quote_qty: Decimal
    status: OrderStatus
    time_in_force: TimeInForce
    order_type: OrderType = msgspec.field(name="type")
    side: OrderSide
    stop_price: Optional[Decimal] = None
    iceberg_qty: Optional[Decimal] = None
    time: int
    update_time: int
    is_working: bool = True
    orig_quote_order_qty: Optional[Decimal] = None


class OrderCanceled(BinanceStruct, kw_only=True):
    symbol: str
    orig_client_order_id: str
    order_id: int
    order_list_id: int = -1
    client_order_id: str
    price: Optional[Decimal] = None
    orig_qty: Optional[Decimal] = None
    executed_qty: Optional[Decimal] = None
    cummulative_quote_qty: Optional[Decimal] = None
    status: Optional[OrderStatus] = None
    time_in_force: Optional[TimeInForce] = None
    order_type: Optional[OrderType] = msgspec.field(default=None, name="type")
    side: Optional[OrderSide] = None


class TradeHistory(BinanceStruct, kw_only=True):
    """Own trade (/api/v3/myTrades)."""
    symbol: str
    id: int
    order_id: int
    order_list_id: int = -1
    price: Decimal
    qty: Decimal
    quote_qty: Decimal
    commission: Decimal
    commission_asset: str
    time: int
    is_buyer: bool
    is_maker: bool
    is_best_match: bool = True


class UserDataStream(BinanceStruct, kw_only=True):
    listen_key: str
