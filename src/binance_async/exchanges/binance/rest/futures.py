"""
USD-M futures endpoints (``/fapi``).

Futures run against their own base URL and transport, with their own rate
budgets. The three groups are bundled by ``Futures``.
"""

from typing import Any, Dict, List, Optional, Union

from binance_async.infrastructure.logging import HFTLoggerInterface
from binance_async.infrastructure.networking.http import (
    HTTPMethod, RateGovernor, RestManager, SecurityType,
)
from ..structs import (
    ChangeLeverageResponse, CodeMessage, Empty, FundingRate, FuturesAccountInformation,
    FuturesBalance, FuturesExchangeInformation, FuturesOrder, Kline, KlineInterval, MarginType,
    MarkPrice, OpenInterest, OrderBook, OrderResponseType, OrderSide, OrderType, PositionRisk,
    PositionSide, ServerTime, TimeInForce, WorkingType,
)
from .account import Number, order_ref
from .base import Endpoint, RestGroup
from .user_stream import FUTURES_LISTEN_KEY_PATH, UserStream

PING = Endpoint("/fapi/v1/ping")
SERVER_TIME = Endpoint("/fapi/v1/time")
EXCHANGE_INFO = Endpoint("/fapi/v1/exchangeInfo", weight=1)

DEPTH = Endpoint("/fapi/v1/depth")
PREMIUM_INDEX = Endpoint("/fapi/v1/premiumIndex", weight=1)
FUNDING_RATE = Endpoint("/fapi/v1/fundingRate", weight=1)
OPEN_INTEREST = Endpoint("/fapi/v1/openInterest", weight=1)
KLINES = Endpoint("/fapi/v1/klines", weight=5)

ACCOUNT = Endpoint("/fapi/v2/account", security=SecurityType.SIGNED, weight=5)
BALANCE = Endpoint("/fapi/v2/balance", security=SecurityType.SIGNED, weight=5)
POSITION_RISK = Endpoint("/fapi/v2/positionRisk", security=SecurityType.SIGNED, weight=5)
NEW_ORDER = Endpoint("/fapi/v1/order", HTTPMethod.POST, SecurityType.SIGNED, weight=1, orders=True)
QUERY_ORDER = Endpoint("/fapi/v1/order", security=SecurityType.SIGNED, weight=1)
CANCEL_ORDER = Endpoint("/fapi/v1/order", HTTPMethod.DELETE, SecurityType.SIGNED, weight=1)
OPEN_ORDERS = Endpoint("/fapi/v1/openOrders", security=SecurityType.SIGNED, weight=1)
CANCEL_ALL_ORDERS = Endpoint("/fapi/v1/allOpenOrders", HTTPMethod.DELETE, SecurityType.SIGNED, weight=1)
LEVERAGE = Endpoint("/fapi/v1/leverage", HTTPMethod.POST, SecurityType.SIGNED, weight=1)
MARGIN_TYPE = Endpoint("/fapi/v1/marginType", HTTPMethod.POST, SecurityType.SIGNED, weight=1)

ALL_OPEN_ORDERS_WEIGHT = 40

FUTURES_SERVER_TIME_PATH = SERVER_TIME.path


def futures_depth_weight(limit: int) -> int:
    if limit <= 50:
        return 2
    if limit <= 100:
        return 5
    if limit <= 500:
        return 10
    return 20


class FuturesGeneral(RestGroup):
    def __init__(self, transport: RestManager,
                 rate_governor: Optional[RateGovernor] = None,
                 logger: Optional[HFTLoggerInterface] = None):
        super().__init__(transport, logger)
        self._rate_governor = rate_governor

    async def ping(self) -> bool:
        await self._call(PING, response_type=Empty)
        return True

    async def server_time(self) -> ServerTime:
        return await self._call(SERVER_TIME, response_type=ServerTime)

    async def exchange_info(self) -> FuturesExchangeInformation:
        info = await self._call(EXCHANGE_INFO, response_type=FuturesExchangeInformation)
        if self._rate_governor is not None and info.rate_limits:
            self._rate_governor.apply_exchange_limits(info.rate_limits)
        return info


class FuturesMarket(RestGroup):
    async def depth(self, symbol: str, limit: int = 100) -> OrderBook:
        return await self._call(DEPTH, {"symbol": symbol.upper(), "limit": limit},
                                OrderBook, weight=futures_depth_weight(limit))

    async def mark_price(self, symbol: str) -> MarkPrice:
        """Mark price and funding rate of one symbol."""
        return await self._call(PREMIUM_INDEX, {"symbol": symbol.upper()}, MarkPrice)

    async def mark_prices(self) -> List[MarkPrice]:
        return await self._call(PREMIUM_INDEX, response_type=List[MarkPrice])

    async def funding_rate(self, symbol: Optional[str] = None, start_time: Optional[int] = None,
                           end_time: Optional[int] = None, limit: Optional[int] = None) -> List[FundingRate]:
        params = {
            "symbol": symbol.upper() if symbol else None,
            "startTime": start_time,
            "endTime": end_time,
            "limit": limit,
        }
        return await self._call(FUNDING_RATE, params, List[FundingRate])

    async def open_interest(self, symbol: str) -> OpenInterest:
        return await self._call(OPEN_INTEREST, {"symbol": symbol.upper()}, OpenInterest)

    async def klines(self, symbol: str, interval: Union[KlineInterval, str],
                     limit: Optional[int] = None, start_time: Optional[int] = None,
                     end_time: Optional[int] = None) -> List[Kline]:
        params = {
            "symbol": symbol.upper(),
            "interval": interval,
            "startTime": start_time,
            "endTime": end_time,
            "limit": limit,
        }
        return await self._call(KLINES, params, List[Kline])


def build_futures_order_params(symbol: str, side: OrderSide, order_type: OrderType,
                               quantity: Optional[Number] = None,
                               price: Optional[Number] = None,
                               time_in_force: Optional[TimeInForce] = None,
                               position_side: Optional[PositionSide] = None,
                               reduce_only: Optional[bool] = None,
                               stop_price: Optional[Number] = None,
                               close_position: Optional[bool] = None,
                               activation_price: Optional[Number] = None,
                               callback_rate: Optional[Number] = None,
                               working_type: Optional[WorkingType] = None,
                               price_protect: Optional[bool] = None,
                               new_client_order_id: Optional[str] = None,
                               new_order_resp_type: Optional[OrderResponseType] = None) -> Dict[str, Any]:
    if order_type in (OrderType.LIMIT, OrderType.STOP, OrderType.TAKE_PROFIT) and price is None:
        raise ValueError(f"Price is required for {order_type.value} orders")
    if order_type in (OrderType.STOP, OrderType.STOP_MARKET, OrderType.TAKE_PROFIT,
                      OrderType.TAKE_PROFIT_MARKET) and stop_price is None:
        raise ValueError(f"Stop price is required for {order_type.value} orders")
    if quantity is None and not close_position:
        raise ValueError("quantity is required unless close_position is set")
    if order_type is OrderType.LIMIT and time_in_force is None:
        time_in_force = TimeInForce.GTC

    return {
        "symbol": symbol.upper(),
        "side": side,
        "positionSide": position_side,
        "type": order_type,
        "timeInForce": time_in_force,
        "quantity": quantity,
        "reduceOnly": reduce_only,
        "price": price,
        "newClientOrderId": new_client_order_id,
        "stopPrice": stop_price,
        "closePosition": close_position,
        "activationPrice": activation_price,
        "callbackRate": callback_rate,
        "workingType": working_type,
        "priceProtect": price_protect,
        "newOrderRespType": new_order_resp_type,
    }


class FuturesAccount(RestGroup):
    async def account_information(self) -> FuturesAccountInformation:
        return await self._call(ACCOUNT, response_type=FuturesAccountInformation)

    async def balance(self) -> List[FuturesBalance]:
        return await self._call(BALANCE, response_type=List[FuturesBalance])

    async def positions(self, symbol: Optional[str] = None) -> List[PositionRisk]:
        params = {"symbol": symbol.upper() if symbol else None}
        return await self._call(POSITION_RISK, params, List[PositionRisk])

    async def place_order(self, symbol: str, side: OrderSide, order_type: OrderType,
                          **kwargs) -> FuturesOrder:
        params = build_futures_order_params(symbol, side, order_type, **kwargs)
        result = await self._call(NEW_ORDER, params, FuturesOrder)
        self.logger.info("Futures order placed", symbol=result.symbol, order_id=result.order_id,
                         side=side.value, type=order_type.value)
        return result

    async def get_order(self, symbol: str, order_id: Optional[int] = None,
                        orig_client_order_id: Optional[str] = None) -> FuturesOrder:
        return await self._call(QUERY_ORDER, order_ref(symbol, order_id, orig_client_order_id),
                                FuturesOrder)

    async def cancel_order(self, symbol: str, order_id: Optional[int] = None,
                           orig_client_order_id: Optional[str] = None) -> FuturesOrder:
        return await self._call(CANCEL_ORDER, order_ref(symbol, order_id, orig_client_order_id),
                                FuturesOrder)

    async def open_orders(self, symbol: Optional[str] = None) -> List[FuturesOrder]:
        if symbol is None:
            return await self._call(OPEN_ORDERS, response_type=List[FuturesOrder],
                                    weight=ALL_OPEN_ORDERS_WEIGHT)
        return await self._call(OPEN_ORDERS, {"symbol": symbol.upper()}, List[FuturesOrder])

    async def cancel_all_open_orders(self, symbol: str) -> CodeMessage:
        return await self._call(CANCEL_ALL_ORDERS, {"symbol": symbol.upper()}, CodeMessage)

    async def change_leverage(self, symbol: str, leverage: int) -> ChangeLeverageResponse:
        return await self._call(LEVERAGE, {"symbol": symbol.upper(), "leverage": leverage},
                                ChangeLeverageResponse)

    async def change_margin_type(self, symbol: str, margin_type: MarginType) -> CodeMessage:
        return await self._call(MARGIN_TYPE, {"symbol": symbol.upper(), "marginType": margin_type},
                                CodeMessage)


class Futures:
    """USD-M futures operation groups sharing one transport."""

    def __init__(self, transport: RestManager,
                 rate_governor: Optional[RateGovernor] = None,
                 logger: Optional[HFTLoggerInterface] = None):
        self.transport = transport
        self.general = FuturesGeneral(transport, rate_governor, logger)
        self.market = FuturesMarket(transport, logger)
        self.account = FuturesAccount(transport, logger)
        self.user_stream = UserStream(transport, FUTURES_LISTEN_KEY_PATH, logger)
