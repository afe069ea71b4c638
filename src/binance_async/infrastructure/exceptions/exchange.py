from typing import Optional


class BaseExchangeError(Exception):
    """Root of every failure raised by the client."""
    pass


# Network level (no HTTP response was obtained)
class TransportError(BaseExchangeError):
    """Connection, DNS, TLS or timeout failure before a response was received."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        self.message = message
        self.cause = cause
        super().__init__(message)


class DecodeError(BaseExchangeError):
    """Response body is not valid JSON or does not match the expected shape."""

    def __init__(self, message: str, body: Optional[bytes] = None) -> None:
        self.message = message
        self.body = body
        super().__init__(message)


class RateLimited(BaseExchangeError):
    """Local request budget exhausted; no request was sent."""

    def __init__(self, retry_after: float, kind: Optional[str] = None) -> None:
        self.retry_after = retry_after
        self.kind = kind
        super().__init__(f"Rate limit budget exhausted for {kind or 'request'}, retry after {retry_after:.3f}s")


class StreamClosed(BaseExchangeError):
    """Subscription terminated because its connection failed permanently."""

    def __init__(self, topic: str, reason: str = "connection failed") -> None:
        self.topic = topic
        self.reason = reason
        super().__init__(f"Stream {topic} closed: {reason}")


# Exchange level (the server replied with an error envelope)
class ExchangeError(BaseExchangeError):
    """Exchange returned an error response. Code and message are kept verbatim."""

    def __init__(self, code: int, message: str, status_code: Optional[int] = None) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        super().__init__(f"[{code}] {message}")

    def __str__(self):
        if self.status_code is not None:
            return f"HTTP {self.status_code}: [{self.code}] {self.message}"
        return f"[{self.code}] {self.message}"


class ExchangeServerError(ExchangeError):
    """Server-side errors (5xx) without a recognised exchange code."""
    pass


# Rate limiting reported by the exchange
class RateLimitExchangeError(ExchangeError):
    """Exchange-side rate limit rejection."""

    def __init__(self, code: int, message: str, status_code: Optional[int] = None,
                 retry_after: Optional[float] = None) -> None:
        super().__init__(code, message, status_code)
        self.retry_after = retry_after


class TooManyRequestsError(RateLimitExchangeError):
    """-1003: request weight exceeded."""
    pass


class TooManyOrdersError(RateLimitExchangeError):
    """-1015: order rate exceeded."""
    pass


# Authentication
class AuthenticationError(ExchangeError):
    """API key, signature or permission issues."""
    pass


class UnauthorizedError(AuthenticationError):
    """-1002: not authorized to execute this request."""
    pass


class InvalidApiKeyError(AuthenticationError):
    """Invalid API key, IP or permissions for action."""
    pass


class SignatureError(AuthenticationError):
    """-1022: signature for this request is not valid."""
    pass


class RecvWindowError(ExchangeError):
    """-1021: timestamp outside of recvWindow."""
    pass


# Business logic
class InvalidParameterError(ExchangeError):
    """Malformed or missing request parameters."""
    pass


class InvalidSymbolError(InvalidParameterError):
    """-1121: invalid symbol."""
    pass


class NewOrderRejectedError(ExchangeError):
    """-2010: new order rejected."""
    pass


class CancelRejectedError(ExchangeError):
    """-2011: cancel rejected."""
    pass


class OrderNotFoundError(ExchangeError):
    """-2013: order does not exist."""
    pass


class InsufficientBalanceError(ExchangeError):
    """Balance or margin insufficient."""
    pass
