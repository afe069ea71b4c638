"""Binance REST and stream payload structures (msgspec)."""

from .enums import (
    AccountSnapshotType, ExecutionType, KlineInterval, MarginTransferType, MarginType,
    OrderResponseType, OrderSide, OrderStatus, OrderType, PositionSide, SideEffectType,
    TimeInForce, UniversalTransferType, WorkingType,
)
from .general import (
    BinanceStruct, Empty, ExchangeInformation, LotSizeFilter, MaxNumOrdersFilter,
    NotionalFilter, PercentPriceFilter, PriceFilter, RateLimit, ServerTime, Symbol,
)
from .market import (
    AggTrade, AveragePrice, BookTicker, Kline, OrderBook, PriceLevel, SymbolPrice,
    Ticker24h, Trade,
)
from .account import (
    AccountInformation, Balance, CommissionRates, Fill, Order, OrderCanceled,
    TradeHistory, Transaction, UserDataStream,
)
from .margin import (
    MarginAccountDetails, MarginOrderCancellation, MarginOrderResult, MarginOrderState,
    MaxBorrowableAmount, TransactionId, UserAsset,
)
from .futures import (
    ChangeLeverageResponse, CodeMessage, FundingRate, FuturesAccountInformation,
    FuturesAccountPosition, FuturesAsset, FuturesBalance, FuturesExchangeInformation,
    FuturesOrder, FuturesSymbol, MarkPrice, OpenInterest, PositionRisk,
)
from .wallet import (
    AccountSnapshot, AccountStatus, ApiTradingStatus, AssetDetail, CoinInfo, CoinNetwork,
    DepositAddress, DepositRecord, SnapshotData, SnapshotVos, SystemStatus, TradeFee,
    UniversalTransferId, WithdrawalRecord,
)
from .events import (
    AccountBalanceUpdate, AggTradeEvent, BalanceUpdate, BookTickerEvent, DayTickerEvent,
    DepthUpdateEvent, ExecutionReport, FuturesAccountData, FuturesAccountUpdate,
    FuturesBalanceUpdate, FuturesOrderData, FuturesOrderTradeUpdate, FuturesPositionUpdate,
    FuturesUserDataEvent, KlineData, KlineEvent, ListenKeyExpired, MarkPriceEvent,
    MiniTickerEvent, OutboundAccountPosition, PartialDepthEvent, TradeEvent, UserDataEvent,
)
