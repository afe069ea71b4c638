"""
Request signing.

Binance signs the URL-encoded parameter string exactly as it is sent, in the
order the parameters are supplied (never sorted):

    symbol=LTCBTC&side=BUY&type=LIMIT&timestamp=1499827319559&recvWindow=5000

The HMAC-SHA256 of that string, hex encoded, is appended as the trailing
``signature`` parameter.
"""

import hashlib
import hmac
from decimal import Decimal
from enum import Enum
from typing import Any, List, Mapping, Optional, Sequence, Tuple, Union
from urllib.parse import parse_qsl, urlencode

import msgspec

from binance_async.infrastructure.exceptions.system import ConfigurationError
from .structs import HTTPMethod, SignedRequest

ParamsLike = Union[Mapping[str, Any], Sequence[Tuple[str, Any]]]


class Credentials:
    """
    API key and secret for one client instance.

    Read-only after construction; ``repr`` shows a masked key and never the secret.
    """
    __slots__ = ("_api_key", "_secret")

    def __init__(self, api_key: str, secret: Union[str, bytes, None] = None):
        if isinstance(secret, str):
            secret = secret.encode("utf-8")
        object.__setattr__(self, "_api_key", api_key or "")
        object.__setattr__(self, "_secret", secret or b"")

    def __setattr__(self, name, value):
        raise AttributeError("Credentials are immutable")

    @property
    def api_key(self) -> str:
        return self._api_key

    @property
    def secret(self) -> bytes:
        return self._secret

    @property
    def has_api_key(self) -> bool:
        return bool(self._api_key)

    @property
    def has_secret(self) -> bool:
        return bool(self._secret)

    def masked_key(self) -> str:
        if not self._api_key:
            return "<none>"
        if len(self._api_key) > 8:
            return f"{self._api_key[:4]}...{self._api_key[-4:]}"
        return "***"

    def __repr__(self) -> str:
        return f"Credentials(api_key={self.masked_key()!r}, secret=***)"

    __str__ = __repr__

    def __reduce__(self):
        raise TypeError("Credentials cannot be serialized")


def render_value(value: Any) -> str:
    """Render one parameter value the way the API expects it."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return render_value(value.value)
    if isinstance(value, Decimal):
        return format(value, "f")
    if isinstance(value, float):
        return format(Decimal(repr(value)), "f")
    if isinstance(value, (list, tuple)):
        # e.g. symbols=["BTCUSDT","BNBUSDT"]
        return msgspec.json.encode(list(value)).decode("utf-8")
    return str(value)


def normalize_params(params: Optional[ParamsLike]) -> List[Tuple[str, str]]:
    """Ordered (name, rendered value) pairs; ``None`` values are skipped."""
    if not params:
        return []
    items = params.items() if isinstance(params, Mapping) else params
    return [(str(key), render_value(value)) for key, value in items if value is not None]


def encode_params(params: Optional[ParamsLike]) -> str:
    """Canonical URL-encoded parameter string in caller-supplied order."""
    return urlencode(normalize_params(params))


def decode_params(encoded: str) -> List[Tuple[str, str]]:
    """Inverse of ``encode_params``: recovers the ordered pairs."""
    return parse_qsl(encoded, keep_blank_values=True, strict_parsing=False)


class HmacSigner:
    """HMAC-SHA256 signer bound to one set of credentials."""

    def __init__(self, credentials: Credentials):
        self._credentials = credentials

    @property
    def api_key(self) -> str:
        return self._credentials.api_key

    def _require_secret(self) -> bytes:
        if not self._credentials.has_secret:
            raise ConfigurationError("Signed endpoint requires a secret key", "secret_key")
        return self._credentials.secret

    def sign_payload(self, payload: str) -> str:
        """Hex HMAC-SHA256 of an already encoded payload."""
        secret = self._require_secret()
        return hmac.new(secret, payload.encode("utf-8"), hashlib.sha256).hexdigest()

    def sign(self, params: Optional[ParamsLike]) -> str:
        """Hex HMAC-SHA256 of the canonical encoding of ``params``."""
        return self.sign_payload(encode_params(params))

    def build_signed_request(self, method: HTTPMethod, path: str,
                             params: Optional[ParamsLike],
                             timestamp: int, recv_window: int) -> SignedRequest:
        """Attach timestamp/recvWindow after the caller parameters and sign."""
        ordered = normalize_params(params)
        ordered = [(k, v) for k, v in ordered if k not in ("timestamp", "recvWindow", "signature")]
        ordered.append(("timestamp", str(timestamp)))
        ordered.append(("recvWindow", str(recv_window)))
        signature = self.sign_payload(urlencode(ordered))
        return SignedRequest(
            method=method,
            path=path,
            params=ordered,
            timestamp=timestamp,
            recv_window=recv_window,
            signature=signature,
        )
