"""Wallet endpoints (SAPI): status, capital history, fees, transfers, snapshots."""

from typing import List, Optional

from binance_async.infrastructure.networking.http import HTTPMethod, SecurityType
from ..structs import (
    AccountSnapshot, AccountSnapshotType, AccountStatus, ApiTradingStatus, DepositRecord,
    SystemStatus, TradeFee, UniversalTransferId, UniversalTransferType, WithdrawalRecord,
)
from .account import Number
from .base import Endpoint, RestGroup

SYSTEM_STATUS = Endpoint("/sapi/v1/system/status")
ACCOUNT_STATUS = Endpoint("/sapi/v1/account/status", security=SecurityType.SIGNED, weight=1)
API_TRADING_STATUS = Endpoint("/sapi/v1/account/apiTradingStatus", security=SecurityType.SIGNED, weight=1)
DEPOSIT_HISTORY = Endpoint("/sapi/v1/capital/deposit/hisrec", security=SecurityType.SIGNED, weight=1)
WITHDRAW_HISTORY = Endpoint("/sapi/v1/capital/withdraw/history", security=SecurityType.SIGNED, weight=1)
TRADE_FEE = Endpoint("/sapi/v1/asset/tradeFee", security=SecurityType.SIGNED, weight=1)
UNIVERSAL_TRANSFER = Endpoint("/sapi/v1/asset/transfer", HTTPMethod.POST, SecurityType.SIGNED, weight=900)
ACCOUNT_SNAPSHOT = Endpoint("/sapi/v1/accountSnapshot", security=SecurityType.SIGNED, weight=2400)


class Wallet(RestGroup):

    async def system_status(self) -> SystemStatus:
        return await self._call(SYSTEM_STATUS, response_type=SystemStatus)

    async def account_status(self) -> AccountStatus:
        return await self._call(ACCOUNT_STATUS, response_type=AccountStatus)

    async def api_trading_status(self) -> ApiTradingStatus:
        return await self._call(API_TRADING_STATUS, response_type=ApiTradingStatus)

    async def deposit_history(self, coin: Optional[str] = None, status: Optional[int] = None,
                              start_time: Optional[int] = None, end_time: Optional[int] = None,
                              offset: Optional[int] = None, limit: Optional[int] = None) -> List[DepositRecord]:
        params = {
            "coin": coin.upper() if coin else None,
            "status": status,
            "startTime": start_time,
            "endTime": end_time,
            "offset": offset,
            "limit": limit,
        }
        return await self._call(DEPOSIT_HISTORY, params, List[DepositRecord])

    async def withdraw_history(self, coin: Optional[str] = None, withdraw_order_id: Optional[str] = None,
                               status: Optional[int] = None, start_time: Optional[int] = None,
                               end_time: Optional[int] = None, offset: Optional[int] = None,
                               limit: Optional[int] = None) -> List[WithdrawalRecord]:
        params = {
            "coin": coin.upper() if coin else None,
            "withdrawOrderId": withdraw_order_id,
            "status": status,
            "startTime": start_time,
            "endTime": end_time,
            "offset": offset,
            "limit": limit,
        }
        return await self._call(WITHDRAW_HISTORY, params, List[WithdrawalRecord])

    async def trade_fee(self, symbol: Optional[str] = None) -> List[TradeFee]:
        params = {"symbol": symbol.upper() if symbol else None}
        return await self._call(TRADE_FEE, params, List[TradeFee])

    async def universal_transfer(self, transfer_type: UniversalTransferType, asset: str,
                                 amount: Number) -> UniversalTransferId:
        params = {"type": transfer_type, "asset": asset.upper(), "amount": amount}
        result = await self._call(UNIVERSAL_TRANSFER, params, UniversalTransferId)
        self.logger.info("Universal transfer", type=transfer_type.value, asset=asset, tran_id=result.tran_id)
        return result

    async def account_snapshot(self, snapshot_type: AccountSnapshotType = AccountSnapshotType.SPOT,
                               start_time: Optional[int] = None, end_time: Optional[int] = None,
                               limit: Optional[int] = None) -> AccountSnapshot:
        params = {
            "type": snapshot_type,
            "startTime": start_time,
            "endTime": end_time,
            "limit": limit,
        }
        return await self._call(ACCOUNT_SNAPSHOT, params, AccountSnapshot)
