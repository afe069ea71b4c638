from typing import Dict, List, Optional

from binance_async.infrastructure.networking.http import SecurityType
from ..structs import AssetDetail, CoinInfo, DepositAddress
from .base import Endpoint, RestGroup

ALL_COINS = Endpoint("/sapi/v1/capital/config/getall", security=SecurityType.SIGNED, weight=10)
ASSET_DETAIL = Endpoint("/sapi/v1/asset/assetDetail", security=SecurityType.SIGNED, weight=1)
DEPOSIT_ADDRESS = Endpoint("/sapi/v1/capital/deposit/address", security=SecurityType.SIGNED, weight=10)


class Savings(RestGroup):
    """Coin configuration, asset details and deposit addresses."""

    async def all_coins(self) -> List[CoinInfo]:
        return await self._call(ALL_COINS, response_type=List[CoinInfo])

    async def asset_detail(self, asset: Optional[str] = None) -> Dict[str, AssetDetail]:
        """Withdraw/deposit details keyed by asset."""
        params = {"asset": asset.upper() if asset else None}
        return await self._call(ASSET_DETAIL, params, Dict[str, AssetDetail])

    async def deposit_address(self, coin: str, network: Optional[str] = None) -> DepositAddress:
        params = {"coin": coin.upper(), "network": network}
        return await self._call(DEPOSIT_ADDRESS, params, DepositAddress)
