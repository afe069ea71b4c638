from .exchange import (
    BaseExchangeError,
    TransportError,
    DecodeError,
    RateLimited,
    StreamClosed,
    ExchangeError,
    ExchangeServerError,
    RateLimitExchangeError,
    TooManyRequestsError,
    TooManyOrdersError,
    AuthenticationError,
    UnauthorizedError,
    InvalidApiKeyError,
    SignatureError,
    RecvWindowError,
    InvalidParameterError,
    InvalidSymbolError,
    NewOrderRejectedError,
    CancelRejectedError,
    OrderNotFoundError,
    InsufficientBalanceError,
)
from .system import ConfigurationError

__all__ = [
    'BaseExchangeError',
    'TransportError',
    'DecodeError',
    'RateLimited',
    'StreamClosed',
    'ExchangeError',
    'ExchangeServerError',
    'RateLimitExchangeError',
    'TooManyRequestsError',
    'TooManyOrdersError',
    'AuthenticationError',
    'UnauthorizedError',
    'InvalidApiKeyError',
    'SignatureError',
    'RecvWindowError',
    'InvalidParameterError',
    'InvalidSymbolError',
    'NewOrderRejectedError',
    'CancelRejectedError',
    'OrderNotFoundError',
    'InsufficientBalanceError',
    'ConfigurationError',
]
