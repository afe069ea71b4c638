"""USD-M futures structures."""

from decimal import Decimal
from typing import Any, Dict, List, Optional

import msgspec

from .enums import OrderSide, OrderStatus, OrderType, PositionSide, TimeInForce, WorkingType
from .general import BinanceStruct, RateLimit


class FuturesSymbol(BinanceStruct, kw_only=True):
    symbol: str
    pair: str
    contract_type: str
    status: str
    base_asset: str
    quote_asset: str
    margin_asset: str
    price_precision: int
    quantity_precision: int
    base_asset_precision: int = 8
    quote_precision: int = 8
    delivery_date: int = 0
    onboard_date: int = 0
    filters: List[Dict[str, Any]] = []
    order_types: List[str] = []
    time_in_force: List[str] = []


class FuturesExchangeInformation(BinanceStruct, kw_only=True):
    timezone: str
    server_time: int
    rate_limits: List[RateLimit] = []
    exchange_filters: List[Dict[str, Any]] = []
    symbols: List[FuturesSymbol] = []

    def get_symbol(self, symbol: str) -> Optional[FuturesSymbol]:
        symbol = symbol.upper()
        for entry in self.symbols:
            if entry.symbol == symbol:
                return entry
        return None


class MarkPrice(BinanceStruct, kw_only=True):
    """premiumIndex entry."""
    symbol: str
    mark_price: Decimal
    index_price: Decimal
    estimated_settle_price: Decimal
    last_funding_rate: Decimal
    next_funding_time: int
    interest_rate: Decimal
    time: int


class FundingRate(BinanceStruct, kw_only=True):
    symbol: str
    funding_time: int
    funding_rate: Decimal
    mark_price: Optional[Decimal] = None


class OpenInterest(BinanceStruct, kw_only=True):
    symbol: str
    open_interest: Decimal
    time: Optional[int] = None


class FuturesAsset(BinanceStruct, kw_only=True):
    asset: str
    wallet_balance: Decimal
    unrealized_profit: Decimal
    margin_balance: Decimal
    maint_margin: Decimal
    initial_margin: Decimal
    position_initial_margin: Decimal
    open_order_initial_margin: Decimal
    cross_wallet_balance: Decimal
    cross_un_pnl: Decimal
    available_balance: Decimal
    max_withdraw_amount: Decimal
    margin_available: Optional[bool] = None
    update_time: int = 0


class FuturesAccountPosition(BinanceStruct, kw_only=True):
    """Position entry of the account endpoint (differs from positionRisk)."""
    symbol: str
    initial_margin: Decimal
    maint_margin: Decimal
    unrealized_profit: Decimal
    position_initial_margin: Decimal
    open_order_initial_margin: Decimal
    leverage: Optional[Decimal] = None
    isolated: Optional[bool] = None
    entry_price: Optional[Decimal] = None
    max_notional: Optional[Decimal] = None
    position_side: PositionSide
    position_amt: Decimal
    update_time: int = 0


class FuturesAccountInformation(BinanceStruct, kw_only=True):
    fee_tier: int = 0
    can_trade: bool = True
    can_deposit: bool = True
    can_withdraw: bool = True
    update_time: int = 0
    multi_assets_margin: bool = False
    total_initial_margin: Decimal
    total_maint_margin: Decimal
    total_wallet_balance: Decimal
    total_unrealized_profit: Decimal
    total_margin_balance: Decimal
    total_position_initial_margin: Decimal
    total_open_order_initial_margin: Decimal
    total_cross_wallet_balance: Decimal
    total_cross_un_pnl: Decimal
    available_balance: Decimal
    max_withdraw_amount: Decimal
    assets: List[FuturesAsset] = []
    positions: List[FuturesAccountPosition] = []

    def get_asset(self, asset: str) -> Optional[FuturesAsset]:
        for entry in self.assets:
            if entry.asset == asset:
                return entry
        return None

    def get_position(self, symbol: str, side: PositionSide = PositionSide.BOTH) -> Optional[FuturesAccountPosition]:
        for position in self.positions:
            if position.symbol == symbol and position.position_side is side:
                return position
        return None


class FuturesBalance(BinanceStruct, kw_only=True):
    account_alias: str
    asset: str
    balance: Decimal
    cross_wallet_balance: Decimal
    cross_un_pnl: Decimal
    available_balance: Decimal
    max_withdraw_amount: Decimal
    margin_available: Optional[bool] = None
    update_time: int = 0


class PositionRisk(BinanceStruct, kw_only=True):
    """positionRisk entry."""
    symbol: str
    position_amt: Decimal
    entry_price: Decimal
    mark_price: Decimal
    un_realized_profit: Decimal
    liquidation_price: Decimal
    leverage: Optional[Decimal] = None
    margin_type: Optional[str] = None
    isolated_margin: Optional[Decimal] = None
    position_side: PositionSide = PositionSide.BOTH
    notional: Optional[Decimal] = None
    update_time: int = 0


class FuturesOrder(BinanceStruct, kw_only=True):
    """Order response for new, query and cancel calls."""
    symbol: str
    order_id: int
    client_order_id: str
    price: Decimal
    avg_price: Optional[Decimal] = None
    orig_qty: Decimal
    executed_qty: Decimal
    cum_qty: Optional[Decimal] = None
    cum_quote: Optional[Decimal] = None
    status: OrderStatus
    time_in_force: TimeInForce
    order_type: OrderType = msgspec.field(name="type")
    orig_type: Optional[OrderType] = None
    side: OrderSide
    position_side: PositionSide = PositionSide.BOTH
    stop_price: Optional[Decimal] = None
    reduce_only: bool = False
    close_position: bool = False
    working_type: Optional[WorkingType] = None
    price_protect: bool = False
    activate_price: Optional[Decimal] = None
    price_rate: Optional[Decimal] = None
    time: Optional[int] = None
    update_time: int = 0


class ChangeLeverageResponse(BinanceStruct, kw_only=True):
    leverage: int
    max_notional_value: Decimal
    symbol: str


class CodeMessage(BinanceStruct, kw_only=True):
    """``{"code": 200, "msg": "success"}`` acknowledgements."""
    code: int
    msg: str
