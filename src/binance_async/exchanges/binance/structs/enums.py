from enum import Enum


class OrderSide(Enum):
    """Order side."""
    BUY = "BUY"
    SELL = "SELL"


class OrderType(Enum):
    """Order types for spot, margin and USD-M futures."""
    LIMIT = "LIMIT"
    MARKET = "MARKET"
    STOP_LOSS = "STOP_LOSS"
    STOP_LOSS_LIMIT = "STOP_LOSS_LIMIT"
    TAKE_PROFIT = "TAKE_PROFIT"
    TAKE_PROFIT_LIMIT = "TAKE_PROFIT_LIMIT"
    LIMIT_MAKER = "LIMIT_MAKER"
    # Futures only
    STOP = "STOP"
    STOP_MARKET = "STOP_MARKET"
    TAKE_PROFIT_MARKET = "TAKE_PROFIT_MARKET"
    TRAILING_STOP_MARKET = "TRAILING_STOP_MARKET"


class TimeInForce(Enum):
    """How long an order stays alive."""
    GTC = "GTC"  # Good Till Canceled
    IOC = "IOC"  # Immediate Or Cancel
    FOK = "FOK"  # Fill or Kill
    GTX = "GTX"  # Post only (futures)
    GTD = "GTD"  # Good till date (futures)


class OrderStatus(Enum):
    """Order execution status."""
    NEW = "NEW"
    PARTIALLY_FILLED = "PARTIALLY_FILLED"
    FILLED = "FILLED"
    CANCELED = "CANCELED"
    PENDING_CANCEL = "PENDING_CANCEL"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"
    EXPIRED_IN_MATCH = "EXPIRED_IN_MATCH"

    @property
    def is_open(self) -> bool:
        return self in (OrderStatus.NEW, OrderStatus.PARTIALLY_FILLED)

    @property
    def is_canceled(self) -> bool:
        return self in (OrderStatus.CANCELED, OrderStatus.EXPIRED, OrderStatus.EXPIRED_IN_MATCH)

    @property
    def is_closed(self) -> bool:
        return self is OrderStatus.FILLED or self is OrderStatus.REJECTED or self.is_canceled


class ExecutionType(Enum):
    """executionReport ``x`` field."""
    NEW = "NEW"
    CANCELED = "CANCELED"
    REPLACED = "REPLACED"
    REJECTED = "REJECTED"
    TRADE = "TRADE"
    EXPIRED = "EXPIRED"
    TRADE_PREVENTION = "TRADE_PREVENTION"
    # Futures
    AMENDMENT = "AMENDMENT"
    CALCULATED = "CALCULATED"


class OrderResponseType(Enum):
    """newOrderRespType."""
    ACK = "ACK"
    RESULT = "RESULT"
    FULL = "FULL"


class SideEffectType(Enum):
    """Margin order side effect."""
    NO_SIDE_EFFECT = "NO_SIDE_EFFECT"
    MARGIN_BUY = "MARGIN_BUY"
    AUTO_REPAY = "AUTO_REPAY"


class KlineInterval(Enum):
    """Candlestick intervals accepted by REST and stream endpoints."""
    SECOND_1 = "1s"
    MINUTE_1 = "1m"
    MINUTE_3 = "3m"
    MINUTE_5 = "5m"
    MINUTE_15 = "15m"
    MINUTE_30 = "30m"
    HOUR_1 = "1h"
    HOUR_2 = "2h"
    HOUR_4 = "4h"
    HOUR_6 = "6h"
    HOUR_8 = "8h"
    HOUR_12 = "12h"
    DAY_1 = "1d"
    DAY_3 = "3d"
    WEEK_1 = "1w"
    MONTH_1 = "1M"


class MarginTransferType(Enum):
    """Cross margin transfer direction."""
    SPOT_TO_MARGIN = 1
    MARGIN_TO_SPOT = 2


class PositionSide(Enum):
    BOTH = "BOTH"
    LONG = "LONG"
    SHORT = "SHORT"


class MarginType(Enum):
    ISOLATED = "ISOLATED"
    CROSSED = "CROSSED"


class WorkingType(Enum):
    MARK_PRICE = "MARK_PRICE"
    CONTRACT_PRICE = "CONTRACT_PRICE"


class AccountSnapshotType(Enum):
    SPOT = "SPOT"
    MARGIN = "MARGIN"
    FUTURES = "FUTURES"


class UniversalTransferType(Enum):
    """Subset of universal transfer types between Binance wallets."""
    MAIN_UMFUTURE = "MAIN_UMFUTURE"
    MAIN_CMFUTURE = "MAIN_CMFUTURE"
    MAIN_MARGIN = "MAIN_MARGIN"
    MAIN_FUNDING = "MAIN_FUNDING"
    UMFUTURE_MAIN = "UMFUTURE_MAIN"
    CMFUTURE_MAIN = "CMFUTURE_MAIN"
    MARGIN_MAIN = "MARGIN_MAIN"
    FUNDING_MAIN = "FUNDING_MAIN"
    MARGIN_UMFUTURE = "MARGIN_UMFUTURE"
    UMFUTURE_MARGIN = "UMFUTURE_MARGIN"
    FUNDING_UMFUTURE = "FUNDING_UMFUTURE"
    UMFUTURE_FUNDING = "UMFUTURE_FUNDING"
