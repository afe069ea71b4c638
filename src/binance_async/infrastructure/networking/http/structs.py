from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple
from urllib.parse import urlencode

import msgspec


class HTTPMethod(Enum):
    """HTTP methods used by the exchange API."""
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"

    @property
    def uses_body(self) -> bool:
        """POST/PUT carry parameters form-encoded in the body, GET/DELETE in the query."""
        return self in (HTTPMethod.POST, HTTPMethod.PUT)


class SecurityType(Enum):
    """Endpoint security classes."""
    NONE = "NONE"
    API_KEY = "API_KEY"      # X-MBX-APIKEY header only (market data, listen keys)
    SIGNED = "SIGNED"        # header + timestamp/recvWindow/signature


class RestConfig(msgspec.Struct, frozen=True):
    """Transport settings resolved from NetworkConfig for one base URL."""
    base_url: str
    timeout: float = 10.0
    connect_timeout: float = 5.0
    max_connections: int = 100
    max_connections_per_host: int = 30
    keepalive_timeout: float = 60.0
    recv_window: int = 5000
    wait_on_rate_limit: bool = False
    max_rate_limit_wait: float = 60.0
    server_time_path: str = "/api/v3/time"
    headers: Optional[Dict[str, str]] = None  # Custom headers to add/override


class SignedRequest(msgspec.Struct, frozen=True):
    """
    One signed call, built inside the transport and discarded after sending.

    ``params`` holds the caller parameters followed by ``timestamp`` and
    ``recvWindow`` in the exact order they were signed.
    """
    method: HTTPMethod
    path: str
    params: List[Tuple[str, str]]
    timestamp: int
    recv_window: int
    signature: str

    @property
    def encoded_params(self) -> str:
        """Canonical string the signature was computed over."""
        return urlencode(self.params)

    @property
    def with_signature(self) -> str:
        """Final parameter string with the trailing ``signature`` parameter."""
        encoded = self.encoded_params
        suffix = urlencode([("signature", self.signature)])
        return f"{encoded}&{suffix}" if encoded else suffix


@dataclass
class RequestMetrics:
    """Request counters kept by the transport."""
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    rate_limited_locally: int = 0
    exchange_errors: int = 0
    transport_errors: int = 0
    avg_latency_ms: float = 0.0
