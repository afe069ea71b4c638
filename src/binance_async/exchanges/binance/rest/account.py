"""
Spot account and trading endpoints.

Order placement counts against both REQUEST_WEIGHT and the ORDERS budget.
Test orders are validated by the matching engine but never sent to it, so
they only count against REQUEST_WEIGHT.
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

from binance_async.infrastructure.networking.http import HTTPMethod, SecurityType
from ..structs import (
    AccountInformation, Empty, Order, OrderCanceled, OrderResponseType, OrderSide, OrderType,
    TimeInForce, TradeHistory, Transaction,
)
from .base import Endpoint, RestGroup

Number = Union[Decimal, float, int, str]

ACCOUNT = Endpoint("/api/v3/account", security=SecurityType.SIGNED, weight=20)
NEW_ORDER = Endpoint("/api/v3/order", HTTPMethod.POST, SecurityType.SIGNED, weight=1, orders=True)
TEST_ORDER = Endpoint("/api/v3/order/test", HTTPMethod.POST, SecurityType.SIGNED, weight=1)
QUERY_ORDER = Endpoint("/api/v3/order", security=SecurityType.SIGNED, weight=4)
CANCEL_ORDER = Endpoint("/api/v3/order", HTTPMethod.DELETE, SecurityType.SIGNED, weight=1)
CANCEL_OPEN_ORDERS = Endpoint("/api/v3/openOrders", HTTPMethod.DELETE, SecurityType.SIGNED, weight=1)
OPEN_ORDERS = Endpoint("/api/v3/openOrders", security=SecurityType.SIGNED, weight=6)
ALL_ORDERS = Endpoint("/api/v3/allOrders", security=SecurityType.SIGNED, weight=20)
MY_TRADES = Endpoint("/api/v3/myTrades", security=SecurityType.SIGNED, weight=20)

ALL_OPEN_ORDERS_WEIGHT = 80

_PRICED_TYPES = (OrderType.LIMIT, OrderType.LIMIT_MAKER, OrderType.STOP_LOSS_LIMIT,
                 OrderType.TAKE_PROFIT_LIMIT)
_STOP_TYPES = (OrderType.STOP_LOSS, OrderType.STOP_LOSS_LIMIT, OrderType.TAKE_PROFIT,
               OrderType.TAKE_PROFIT_LIMIT)
_TIF_TYPES = (OrderType.LIMIT, OrderType.STOP_LOSS_LIMIT, OrderType.TAKE_PROFIT_LIMIT)


def build_order_params(symbol: str, side: OrderSide, order_type: OrderType,
                       quantity: Optional[Number] = None,
                       price: Optional[Number] = None,
                       time_in_force: Optional[TimeInForce] = None,
                       quote_order_qty: Optional[Number] = None,
                       stop_price: Optional[Number] = None,
                       new_client_order_id: Optional[str] = None,
                       iceberg_qty: Optional[Number] = None,
                       new_order_resp_type: Optional[OrderResponseType] = None) -> Dict[str, Any]:
    """
    Validate an order and build its parameters in API order.

    Raises:
        ValueError: if a parameter required by ``order_type`` is missing
    """
    if order_type in _PRICED_TYPES and price is None:
        raise ValueError(f"Price is required for {order_type.value} orders")
    if order_type in _STOP_TYPES and stop_price is None:
        raise ValueError(f"Stop price is required for {order_type.value} orders")
    if order_type is OrderType.MARKET:
        if quantity is None and quote_order_qty is None:
            raise ValueError("Either quantity or quote_order_qty is required for MARKET orders")
    elif quantity is None:
        raise ValueError(f"Quantity is required for {order_type.value} orders")

    if order_type in _TIF_TYPES and time_in_force is None:
        time_in_force = TimeInForce.GTC

    return {
        "symbol": symbol.upper(),
        "side": side,
        "type": order_type,
        "timeInForce": time_in_force,
        "quantity": quantity,
        "quoteOrderQty": quote_order_qty,
        "price": price,
        "newClientOrderId": new_client_order_id,
        "stopPrice": stop_price,
        "icebergQty": iceberg_qty,
        "newOrderRespType": new_order_resp_type,
    }


def order_ref(symbol: str, order_id: Optional[int],
              orig_client_order_id: Optional[str]) -> Dict[str, Any]:
    if order_id is None and orig_client_order_id is None:
        raise ValueError("Either order_id or orig_client_order_id is required")
    return {
        "symbol": symbol.upper(),
        "orderId": order_id,
        "origClientOrderId": orig_client_order_id,
    }


class Account(RestGroup):
    """Spot account: balances, orders and own trades."""

    async def account_information(self) -> AccountInformation:
        return await self._call(ACCOUNT, response_type=AccountInformation)

    async def get_balance(self, asset: str):
        """Balance of one asset, or None when the account does not hold it."""
        account = await self.account_information()
        return account.get_balance(asset)

    async def place_order(self, symbol: str, side: OrderSide, order_type: OrderType,
                          **kwargs) -> Transaction:
        """
        Place a new order.

        Keyword arguments are those of ``build_order_params`` (quantity,
        price, time_in_force, quote_order_qty, stop_price,
        new_client_order_id, iceberg_qty, new_order_resp_type).
        """
        params = build_order_params(symbol, side, order_type, **kwargs)
        result = await self._call(NEW_ORDER, params, Transaction)
        self.logger.info("Order placed", symbol=result.symbol, order_id=result.order_id,
                         side=side.value, type=order_type.value)
        return result

    async def test_order(self, symbol: str, side: OrderSide, order_type: OrderType,
                         **kwargs) -> None:
        """Validate an order without sending it to the matching engine."""
        params = build_order_params(symbol, side, order_type, **kwargs)
        await self._call(TEST_ORDER, params, Empty)

    async def limit_buy(self, symbol: str, quantity: Number, price: Number,
                        time_in_force: TimeInForce = TimeInForce.GTC, **kwargs) -> Transaction:
        return await self.place_order(symbol, OrderSide.BUY, OrderType.LIMIT, quantity=quantity,
                                      price=price, time_in_force=time_in_force, **kwargs)

    async def limit_sell(self, symbol: str, quantity: Number, price: Number,
                         time_in_force: TimeInForce = TimeInForce.GTC, **kwargs) -> Transaction:
        return await self.place_order(symbol, OrderSide.SELL, OrderType.LIMIT, quantity=quantity,
                                      price=price, time_in_force=time_in_force, **kwargs)

    async def market_buy(self, symbol: str, quantity: Number, **kwargs) -> Transaction:
        return await self.place_order(symbol, OrderSide.BUY, OrderType.MARKET,
                                      quantity=quantity, **kwargs)

    async def market_sell(self, symbol: str, quantity: Number, **kwargs) -> Transaction:
        return await self.place_order(symbol, OrderSide.SELL, OrderType.MARKET,
                                      quantity=quantity, **kwargs)

    async def market_buy_quote(self, symbol: str, quote_order_qty: Number, **kwargs) -> Transaction:
        """Market buy spending ``quote_order_qty`` of the quote asset."""
        return await self.place_order(symbol, OrderSide.BUY, OrderType.MARKET,
                                      quote_order_qty=quote_order_qty, **kwargs)

    async def get_order(self, symbol: str, order_id: Optional[int] = None,
                        orig_client_order_id: Optional[str] = None) -> Order:
        return await self._call(QUERY_ORDER, order_ref(symbol, order_id, orig_client_order_id), Order)

    async def cancel_order(self, symbol: str, order_id: Optional[int] = None,
                           orig_client_order_id: Optional[str] = None) -> OrderCanceled:
        params = order_ref(symbol, order_id, orig_client_order_id)
        result = await self._call(CANCEL_ORDER, params, OrderCanceled)
        self.logger.info("Order canceled", symbol=result.symbol, order_id=result.order_id)
        return result

    async def cancel_all_open_orders(self, symbol: str) -> List[OrderCanceled]:
        return await self._call(CANCEL_OPEN_ORDERS, {"symbol": symbol.upper()}, List[OrderCanceled])

    async def open_orders(self, symbol: Optional[str] = None) -> List[Order]:
        """Open orders of one symbol, or of every symbol when ``symbol`` is None."""
        if symbol is None:
            return await self._call(OPEN_ORDERS, response_type=List[Order],
                                    weight=ALL_OPEN_ORDERS_WEIGHT)
        return await self._call(OPEN_ORDERS, {"symbol": symbol.upper()}, List[Order])

    async def all_orders(self, symbol: str, order_id: Optional[int] = None,
                         start_time: Optional[int] = None, end_time: Optional[int] = None,
                         limit: Optional[int] = None) -> List[Order]:
        params = {
            "symbol": symbol.upper(),
            "orderId": order_id,
            "startTime": start_time,
            "endTime": end_time,
            "limit": limit,
        }
        return await self._call(ALL_ORDERS, params, List[Order])

    async def my_trades(self, symbol: str, order_id: Optional[int] = None,
                        start_time: Optional[int] = None, end_time: Optional[int] = None,
                        from_id: Optional[int] = None, limit: Optional[int] = None) -> List[TradeHistory]:
        params = {
            "symbol": symbol.upper(),
            "orderId": order_id,
            "startTime": start_time,
            "endTime": end_time,
            "fromId": from_id,
            "limit": limit,
        }
        return await self._call(MY_TRADES, params, List[TradeHistory])
