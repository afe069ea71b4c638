"""Cross margin structures."""

from decimal import Decimal
from typing import List, Optional

import msgspec

from .account import Fill
from .enums import OrderSide, OrderStatus, OrderType, TimeInForce
from .general import BinanceStruct


class TransactionId(BinanceStruct, kw_only=True):
    """Returned by transfer, borrow and repay."""
    tran_id: int
    client_tag: Optional[str] = None


class UserAsset(BinanceStruct, kw_only=True):
    asset: str
    borrowed: Decimal
    free: Decimal
    interest: Decimal
    locked: Decimal
    net_asset: Decimal


class MarginAccountDetails(BinanceStruct, kw_only=True):
    borrow_enabled: bool
    margin_level: Decimal
    total_asset_of_btc: Decimal
    total_liability_of_btc: Decimal
    total_net_asset_of_btc: Decimal
    trade_enabled: bool
    transfer_enabled: bool
    user_assets: List[UserAsset] = []

    def get_asset(self, asset: str) -> Optional[UserAsset]:
        asset = asset.upper()
        for entry in self.user_assets:
            if entry.asset == asset:
                return entry
        return None


class MaxBorrowableAmount(BinanceStruct, kw_only=True):
    amount: Decimal
    borrow_limit: Optional[Decimal] = None


class MarginOrderResult(BinanceStruct, kw_only=True):
    symbol: str
    order_id: int
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
    margin_buy_borrow_amount: Optional[Decimal] = None
    margin_buy_borrow_asset: Optional[str] = None
    is_isolated: Optional[bool] = None
    fills: List[Fill] = []


class MarginOrderState(BinanceStruct, kw_only=True):
    """Open or historical margin order."""
    symbol: str
    order_id: int
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
    is_isolated: Optional[bool] = None
    is_working: bool = True
    time: int
    update_time: int


class MarginOrderCancellation(BinanceStruct, kw_only=True):
    symbol: str
    order_id: int
    orig_client_order_id: Optional[str] = None
    client_order_id: Optional[str] = None
    is_isolated: Optional[bool] = None
    status: Optional[OrderStatus] = None
    executed_qty: Optional[Decimal] = None
