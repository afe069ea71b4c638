from typing import Mapping, Optional

import msgspec

from binance_async.infrastructure.exceptions.exchange import (
    ExchangeError, ExchangeServerError, TooManyRequestsError, TooManyOrdersError,
    UnauthorizedError, InvalidApiKeyError, SignatureError, RecvWindowError,
    InvalidParameterError, InvalidSymbolError, NewOrderRejectedError,
    CancelRejectedError, OrderNotFoundError, InsufficientBalanceError,
    RateLimitExchangeError,
)
from binance_async.infrastructure.logging import get_logger, HFTLoggerInterface


class ErrorEnvelope(msgspec.Struct):
    """Binance error body: {"code": -1121, "msg": "Invalid symbol."}"""
    code: int
    msg: str = ""


ERROR_CODE_MAPPING = {
    -1002: UnauthorizedError,          # Not authorized
    -1003: TooManyRequestsError,       # Too much request weight used
    -1015: TooManyOrdersError,         # Too many new orders
    -1021: RecvWindowError,            # Timestamp outside recvWindow
    -1022: SignatureError,             # Signature not valid
    -1100: InvalidParameterError,      # Illegal characters in parameter
    -1101: InvalidParameterError,      # Too many parameters
    -1102: InvalidParameterError,      # Mandatory parameter missing
    -1103: InvalidParameterError,      # Unknown parameter
    -1104: InvalidParameterError,      # Unread parameters
    -1105: InvalidParameterError,      # Parameter empty
    -1106: InvalidParameterError,      # Parameter not required
    -1111: InvalidParameterError,      # Precision over maximum
    -1121: InvalidSymbolError,         # Invalid symbol
    -1130: InvalidParameterError,      # Invalid data sent for a parameter
    -2010: NewOrderRejectedError,      # New order rejected
    -2011: CancelRejectedError,        # Cancel rejected
    -2013: OrderNotFoundError,         # Order does not exist
    -2014: InvalidApiKeyError,         # API-key format invalid
    -2015: InvalidApiKeyError,         # Invalid API-key, IP, or permissions
    -2018: InsufficientBalanceError,   # Balance is insufficient
    -2019: InsufficientBalanceError,   # Margin is insufficient
}


def _retry_after(headers: Optional[Mapping[str, str]]) -> Optional[float]:
    if not headers:
        return None
    value = headers.get("Retry-After")
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


class BinanceExceptionHandler:
    """Maps HTTP error responses to typed ExchangeError instances."""

    def __init__(self, logger: Optional[HFTLoggerInterface] = None):
        self.logger = logger or get_logger("rest.exception_handler")

    def handle_error(self, status_code: int, body: bytes,
                     headers: Optional[Mapping[str, str]] = None) -> ExchangeError:
        """
        Convert an error response to an exception (returned, not raised).

        Args:
            status_code: HTTP status code from the response
            body: Raw response body
            headers: Response headers (Retry-After is attached to rate limit errors)

        Returns:
            ExchangeError subclass selected by exchange code; code and message
            are preserved verbatim. Bodies without an envelope use the HTTP
            status as code.
        """
        try:
            envelope = msgspec.json.decode(body, type=ErrorEnvelope)
        except msgspec.DecodeError:
            text = body.decode("utf-8", errors="replace")[:200] if body else ""
            self.logger.debug("Error response without exchange envelope",
                              status=status_code, body=text)
            return self._from_status(status_code, text or f"HTTP {status_code}", headers)

        error_class = ERROR_CODE_MAPPING.get(envelope.code)
        if error_class is None:
            error_class = ExchangeServerError if status_code >= 500 else ExchangeError

        if issubclass(error_class, RateLimitExchangeError):
            return error_class(envelope.code, envelope.msg, status_code,
                               retry_after=_retry_after(headers))
        return error_class(envelope.code, envelope.msg, status_code)

    @staticmethod
    def _from_status(status_code: int, message: str,
                     headers: Optional[Mapping[str, str]]) -> ExchangeError:
        if status_code in (418, 429):
            return RateLimitExchangeError(status_code, message, status_code,
                                          retry_after=_retry_after(headers))
        if status_code >= 500:
            return ExchangeServerError(status_code, message, status_code)
        return ExchangeError(status_code, message, status_code)
