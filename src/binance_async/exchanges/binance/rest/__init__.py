from .base import Endpoint, RestGroup
from .general import General
from .market import Market
from .account import Account, build_order_params
from .user_stream import UserStream, SPOT_LISTEN_KEY_PATH, FUTURES_LISTEN_KEY_PATH
from .margin import Margin
from .futures import (
    Futures, FuturesAccount, FuturesGeneral, FuturesMarket, FUTURES_SERVER_TIME_PATH,
    build_futures_order_params,
)
from .savings import Savings
from .wallet import Wallet

__all__ = [
    'Endpoint',
    'RestGroup',
    'General',
    'Market',
    'Account',
    'build_order_params',
    'UserStream',
    'SPOT_LISTEN_KEY_PATH',
    'FUTURES_LISTEN_KEY_PATH',
    'Margin',
    'Futures',
    'FuturesAccount',
    'FuturesGeneral',
    'FuturesMarket',
    'FUTURES_SERVER_TIME_PATH',
    'build_futures_order_params',
    'Savings',
    'Wallet',
]
