"""General endpoint structures: server time, exchange info, symbol filters."""

from decimal import Decimal
from typing import Any, Dict, List, Optional, Type, TypeVar

import msgspec

from .enums import OrderType

T = TypeVar("T")


class BinanceStruct(msgspec.Struct, rename="camel", kw_only=True):
    """
    Base for REST payloads: snake_case attributes, camelCase on the wire.

    ``kw_only`` only covers the fields of the class that declares it, so every
    subclass repeats it to mix required fields with defaulted ones.
    """


class Empty(BinanceStruct, kw_only=True):
    """``{}`` responses (ping, test order, listen key keepalive)."""


class ServerTime(BinanceStruct, kw_only=True):
    server_time: int


class RateLimit(BinanceStruct, kw_only=True):
    """One entry of exchangeInfo.rateLimits (REQUEST_WEIGHT, ORDERS, RAW_REQUESTS)."""
    rate_limit_type: str
    interval: str
    interval_num: int = 1
    limit: int


# Symbol filters (decoded on demand from exchangeInfo)

class PriceFilter(BinanceStruct, kw_only=True):
    min_price: Decimal
    max_price: Decimal
    tick_size: Decimal


class PercentPriceFilter(BinanceStruct, kw_only=True):
    multiplier_up: Decimal
    multiplier_down: Decimal
    avg_price_mins: int = 0


class LotSizeFilter(BinanceStruct, kw_only=True):
    min_qty: Decimal
    max_qty: Decimal
    step_size: Decimal


class NotionalFilter(BinanceStruct, kw_only=True):
    """MIN_NOTIONAL (legacy) or NOTIONAL filter."""
    min_notional: Decimal
    apply_to_market: bool = True
    max_notional: Optional[Decimal] = None
    avg_price_mins: int = 0


class MaxNumOrdersFilter(BinanceStruct, kw_only=True):
    max_num_orders: int


class Symbol(BinanceStruct, kw_only=True):
    """Spot symbol entry of exchangeInfo."""
    symbol: str
    status: str
    base_asset: str
    base_asset_precision: int = 8
    quote_asset: str
    quote_precision: int = 8
    quote_asset_precision: int = 8
    base_commission_precision: int = 8
    quote_commission_precision: int = 8
    order_types: List[OrderType] = []
    iceberg_allowed: bool = False
    oco_allowed: bool = False
    quote_order_qty_market_allowed: bool = False
    is_spot_trading_allowed: bool = True
    is_margin_trading_allowed: bool = False
    filters: List[Dict[str, Any]] = []
    permissions: List[str] = []

    def filter(self, filter_type: str, struct_type: Type[T]) -> Optional[T]:
        """Typed view of the first filter with ``filterType == filter_type``."""
        for raw in self.filters:
            if raw.get("filterType") == filter_type:
                data = {k: v for k, v in raw.items() if k != "filterType"}
                return msgspec.convert(data, struct_type, strict=False)
        return None

    def price_filter(self) -> Optional[PriceFilter]:
        return self.filter("PRICE_FILTER", PriceFilter)

    def lot_size(self) -> Optional[LotSizeFilter]:
        return self.filter("LOT_SIZE", LotSizeFilter)

    def market_lot_size(self) -> Optional[LotSizeFilter]:
        return self.filter("MARKET_LOT_SIZE", LotSizeFilter)

    def notional(self) -> Optional[NotionalFilter]:
        return self.filter("NOTIONAL", NotionalFilter) or self.filter("MIN_NOTIONAL", NotionalFilter)


class ExchangeInformation(BinanceStruct, kw_only=True):
    timezone: str
    server_time: int
    rate_limits: List[RateLimit] = []
    exchange_filters: List[Dict[str, Any]] = []
    symbols: List[Symbol] = []

    def get_symbol(self, symbol: str) -> Optional[Symbol]:
        symbol = symbol.upper()
        for entry in self.symbols:
            if entry.symbol == symbol:
                return entry
        return None
