"""Wallet and savings (capital) structures."""

from decimal import Decimal
from typing import Any, Dict, List, Optional

import msgspec

from .account import Balance
from .general import BinanceStruct


class CoinNetwork(BinanceStruct, kw_only=True):
    network: str
    coin: str
    name: str = ""
    is_default: bool = False
    deposit_enable: bool = False
    withdraw_enable: bool = False
    deposit_desc: Optional[str] = None
    withdraw_desc: Optional[str] = None
    special_tips: Optional[str] = None
    address_regex: str = ""
    memo_regex: str = ""
    min_confirm: int = 0
    un_lock_confirm: int = 0
    reset_address_status: bool = False
    withdraw_fee: Decimal = Decimal(0)
    withdraw_min: Decimal = Decimal(0)
    withdraw_max: Optional[Decimal] = None
    withdraw_integer_multiple: Optional[Decimal] = None
    same_address: bool = False


class CoinInfo(BinanceStruct, kw_only=True):
    """Entry of /sapi/v1/capital/config/getall."""
    coin: str
    name: str = ""
    deposit_all_enable: bool = False
    withdraw_all_enable: bool = False
    free: Decimal = Decimal(0)
    freeze: Decimal = Decimal(0)
    ipoable: Decimal = Decimal(0)
    ipoing: Decimal = Decimal(0)
    is_legal_money: bool = False
    locked: Decimal = Decimal(0)
    storage: Decimal = Decimal(0)
    trading: bool = False
    withdrawing: Decimal = Decimal(0)
    network_list: List[CoinNetwork] = []

    def default_network(self) -> Optional[CoinNetwork]:
        for network in self.network_list:
            if network.is_default:
                return network
        return None


class AssetDetail(BinanceStruct, kw_only=True):
    min_withdraw_amount: Decimal
    deposit_status: bool
    withdraw_fee: Decimal
    withdraw_status: bool
    deposit_tip: Optional[str] = None


class DepositAddress(BinanceStruct, kw_only=True):
    coin: str
    address: str
    tag: str = ""
    url: str = ""


class SystemStatus(BinanceStruct, kw_only=True):
    """0: normal, 1: system maintenance."""
    status: int
    msg: str

    @property
    def is_normal(self) -> bool:
        return self.status == 0


class AccountStatus(BinanceStruct, kw_only=True):
    data: str


class ApiTradingStatus(BinanceStruct, kw_only=True):
    data: Dict[str, Any]


class DepositRecord(BinanceStruct, kw_only=True):
    coin: str
    amount: Decimal
    network: str
    status: int
    address: str
    address_tag: Optional[str] = None
    tx_id: str
    insert_time: Optional[int] = None
    transfer_type: int = 0
    confirm_times: Optional[str] = None
    unlock_confirm: int = 0
    wallet_type: Optional[int] = None


class WithdrawalRecord(BinanceStruct, kw_only=True):
    id: str
    coin: str
    amount: Decimal
    address: str
    network: str
    status: int
    transaction_fee: Decimal
    apply_time: str
    transfer_type: int = 0
    withdraw_order_id: Optional[str] = None
    confirm_no: Optional[int] = None
    info: Optional[str] = None
    tx_id: Optional[str] = None


class TradeFee(BinanceStruct, kw_only=True):
    symbol: str
    maker_commission: Decimal
    taker_commission: Decimal


class UniversalTransferId(BinanceStruct, kw_only=True):
    tran_id: int


class SnapshotData(BinanceStruct, kw_only=True):
    balances: List[Balance] = []
    total_asset_of_btc: Optional[Decimal] = None


class SnapshotVos(BinanceStruct, kw_only=True):
    snapshot_type: str = msgspec.field(default="", name="type")
    update_time: int
    data: SnapshotData


class AccountSnapshot(BinanceStruct, kw_only=True):
    code: int
    msg: str
    snapshot_vos: List[SnapshotVos] = []
