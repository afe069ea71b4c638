from .structs import HTTPMethod, SecurityType, RestConfig, SignedRequest, RequestMetrics
from .signer import Credentials, HmacSigner, ParamsLike, encode_params, decode_params, normalize_params
from .rate_governor import (
    RateGovernor, RateLimitKind, RatePermit, RateWait, BudgetSnapshot,
    SPOT_DEFAULT_LIMITS, FUTURES_DEFAULT_LIMITS,
)
from .exception_handler import BinanceExceptionHandler, ERROR_CODE_MAPPING
from .rest_manager import RestManager, API_KEY_HEADER

__all__ = [
    'HTTPMethod',
    'SecurityType',
    'RestConfig',
    'SignedRequest',
    'RequestMetrics',
    'Credentials',
    'HmacSigner',
    'ParamsLike',
    'encode_params',
    'decode_params',
    'normalize_params',
    'RateGovernor',
    'RateLimitKind',
    'RatePermit',
    'RateWait',
    'BudgetSnapshot',
    'SPOT_DEFAULT_LIMITS',
    'FUTURES_DEFAULT_LIMITS',
    'BinanceExceptionHandler',
    'ERROR_CODE_MAPPING',
    'RestManager',
    'API_KEY_HEADER',
]
