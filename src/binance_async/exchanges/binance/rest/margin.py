"""Cross/isolated margin endpoints (SAPI)."""

from typing import List, Optional

from binance_async.infrastructure.networking.http import HTTPMethod, SecurityType
from ..structs import (
    MarginAccountDetails, MarginOrderCancellation, MarginOrderResult, MarginOrderState,
    MarginTransferType, MaxBorrowableAmount, OrderSide, OrderType, SideEffectType, TransactionId,
)
from .account import Number, order_ref, build_order_params
from .base import Endpoint, RestGroup

ACCOUNT = Endpoint("/sapi/v1/margin/account", security=SecurityType.SIGNED, weight=10)
TRANSFER = Endpoint("/sapi/v1/margin/transfer", HTTPMethod.POST, SecurityType.SIGNED, weight=600)
LOAN = Endpoint("/sapi/v1/margin/loan", HTTPMethod.POST, SecurityType.SIGNED, weight=3000)
REPAY = Endpoint("/sapi/v1/margin/repay", HTTPMethod.POST, SecurityType.SIGNED, weight=3000)
NEW_ORDER = Endpoint("/sapi/v1/margin/order", HTTPMethod.POST, SecurityType.SIGNED, weight=6, orders=True)
CANCEL_ORDER = Endpoint("/sapi/v1/margin/order", HTTPMethod.DELETE, SecurityType.SIGNED, weight=10)
OPEN_ORDERS = Endpoint("/sapi/v1/margin/openOrders", security=SecurityType.SIGNED, weight=10)
MAX_BORROWABLE = Endpoint("/sapi/v1/margin/maxBorrowable", security=SecurityType.SIGNED, weight=50)


def _isolated(symbol: Optional[str], is_isolated: bool) -> Optional[str]:
    if not is_isolated:
        return None
    if symbol is None:
        raise ValueError("symbol is required for isolated margin")
    return "TRUE"


class Margin(RestGroup):
    """Margin account, transfers, loans and orders."""

    async def account_details(self) -> MarginAccountDetails:
        return await self._call(ACCOUNT, response_type=MarginAccountDetails)

    async def transfer(self, asset: str, amount: Number,
                       transfer_type: MarginTransferType = MarginTransferType.SPOT_TO_MARGIN) -> TransactionId:
        """Move ``amount`` of ``asset`` between the spot and cross margin accounts."""
        params = {"asset": asset.upper(), "amount": amount, "type": transfer_type}
        result = await self._call(TRANSFER, params, TransactionId)
        self.logger.info("Margin transfer", asset=asset, direction=transfer_type.name, tran_id=result.tran_id)
        return result

    async def borrow(self, asset: str, amount: Number, symbol: Optional[str] = None,
                     is_isolated: bool = False) -> TransactionId:
        params = {
            "asset": asset.upper(),
            "isIsolated": _isolated(symbol, is_isolated),
            "symbol": symbol.upper() if symbol else None,
            "amount": amount,
        }
        return await self._call(LOAN, params, TransactionId)

    async def repay(self, asset: str, amount: Number, symbol: Optional[str] = None,
                    is_isolated: bool = False) -> TransactionId:
        params = {
            "asset": asset.upper(),
            "isIsolated": _isolated(symbol, is_isolated),
            "symbol": symbol.upper() if symbol else None,
            "amount": amount,
        }
        return await self._call(REPAY, params, TransactionId)

    async def place_order(self, symbol: str, side: OrderSide, order_type: OrderType,
                          side_effect_type: Optional[SideEffectType] = None,
                          is_isolated: bool = False, **kwargs) -> MarginOrderResult:
        """Place a margin order; keyword arguments as for spot orders."""
        params = build_order_params(symbol, side, order_type, **kwargs)
        params["isIsolated"] = _isolated(symbol, is_isolated)
        params["sideEffectType"] = side_effect_type
        result = await self._call(NEW_ORDER, params, MarginOrderResult)
        self.logger.info("Margin order placed", symbol=result.symbol, order_id=result.order_id)
        return result

    async def cancel_order(self, symbol: str, order_id: Optional[int] = None,
                           orig_client_order_id: Optional[str] = None,
                           is_isolated: bool = False) -> MarginOrderCancellation:
        params = order_ref(symbol, order_id, orig_client_order_id)
        params["isIsolated"] = _isolated(symbol, is_isolated)
        return await self._call(CANCEL_ORDER, params, MarginOrderCancellation)

    async def open_orders(self, symbol: Optional[str] = None,
                          is_isolated: bool = False) -> List[MarginOrderState]:
        params = {
            "symbol": symbol.upper() if symbol else None,
            "isIsolated": _isolated(symbol, is_isolated),
        }
        return await self._call(OPEN_ORDERS, params, List[MarginOrderState])

    async def max_borrowable(self, asset: str, isolated_symbol: Optional[str] = None) -> MaxBorrowableAmount:
        params = {"asset": asset.upper(), "isolatedSymbol": isolated_symbol}
        return await self._call(MAX_BORROWABLE, params, MaxBorrowableAmount)
