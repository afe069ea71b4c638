"""
REST Transport Manager

Turns logical calls into HTTP requests against one Binance base URL:

    rate governor reserve -> (sign) -> place params -> send -> classify -> record usage -> release

Three call shapes exist: public (no credentials), user-data (API key header
only, used for listen keys) and signed (API key header plus timestamp,
recvWindow and trailing signature). The transport never retries on its own;
see ``infrastructure.decorators.retry`` for an opt-in helper.
"""

import asyncio
import time
from typing import Any, Dict, List, Optional, Tuple, Type

import aiohttp
import msgspec
from yarl import URL

from binance_async.infrastructure.exceptions.exchange import (
    DecodeError, RateLimited, TransportError,
)
from binance_async.infrastructure.exceptions.system import ConfigurationError
from binance_async.infrastructure.logging import get_logger, HFTLoggerInterface, LoggingTimer
from .exception_handler import BinanceExceptionHandler
from .rate_governor import RateGovernor, RateLimitKind, RatePermit
from .signer import HmacSigner, ParamsLike, encode_params, normalize_params
from .structs import HTTPMethod, RequestMetrics, RestConfig

API_KEY_HEADER = "X-MBX-APIKEY"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


class ServerTime(msgspec.Struct):
    serverTime: int


class RestManager:
    """
    Async REST transport for one base URL.

    The aiohttp session is created lazily on first use; an existing session
    (or any object with a compatible ``request`` method) may be injected and
    is then left open on ``close``.
    """

    def __init__(self,
                 config: RestConfig,
                 signer: Optional[HmacSigner] = None,
                 rate_governor: Optional[RateGovernor] = None,
                 exception_handler: Optional[BinanceExceptionHandler] = None,
                 session: Optional[aiohttp.ClientSession] = None,
                 logger: Optional[HFTLoggerInterface] = None):
        self.config = config
        self.signer = signer
        self.rate_governor = rate_governor or RateGovernor()
        self.logger = logger or get_logger("rest.manager")
        self.exception_handler = exception_handler or BinanceExceptionHandler(self.logger)

        # Session management
        self._session = session
        self._owns_session = session is None
        self._session_lock = asyncio.Lock()

        # Server clock offset in ms, set by sync_time()
        self._time_offset_ms = 0

        self._metrics = RequestMetrics()

    async def __aenter__(self):
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    @property
    def base_url(self) -> str:
        return self.config.base_url.rstrip("/")

    @property
    def time_offset_ms(self) -> int:
        return self._time_offset_ms

    async def _ensure_session(self):
        """Create the aiohttp session with connector limits and timeouts."""
        if self._session is not None and not getattr(self._session, "closed", False):
            return self._session

        async with self._session_lock:
            if self._session is None or getattr(self._session, "closed", False):
                connector = aiohttp.TCPConnector(
                    limit=self.config.max_connections,
                    limit_per_host=self.config.max_connections_per_host,
                    ttl_dns_cache=300,
                    keepalive_timeout=self.config.keepalive_timeout,
                )
                timeout = aiohttp.ClientTimeout(
                    total=self.config.timeout,
                    connect=self.config.connect_timeout,
                    sock_connect=self.config.connect_timeout,
                )
                default_headers = {
                    'Accept': 'application/json',
                    'User-Agent': 'binance-async/1.0',
                }
                if self.config.headers:
                    default_headers.update(self.config.headers)

                self._session = aiohttp.ClientSession(
                    connector=connector,
                    timeout=timeout,
                    json_serialize=lambda obj: msgspec.json.encode(obj).decode('utf-8'),
                    headers=default_headers,
                )
                self._owns_session = True
        return self._session

    def now_ms(self) -> int:
        """Local time in ms adjusted by the server clock offset."""
        return int(time.time() * 1000) + self._time_offset_ms

    # Public API

    async def request_public(self, path: str, params: Optional[ParamsLike] = None,
                             method: HTTPMethod = HTTPMethod.GET, weight: int = 1,
                             response_type: Optional[Type] = None) -> Any:
        """Unauthenticated call (market data, server time, exchange info)."""
        return await self._request(method, path, normalize_params(params), weight=weight,
                                   response_type=response_type, api_key=False, signed=False)

    async def request_user_data(self, path: str, params: Optional[ParamsLike] = None,
                                method: HTTPMethod = HTTPMethod.POST, weight: int = 1,
                                response_type: Optional[Type] = None) -> Any:
        """API-key-only call (listen key start/keepalive/close, historical trades)."""
        return await self._request(method, path, normalize_params(params), weight=weight,
                                   response_type=response_type, api_key=True, signed=False)

    async def request_signed(self, path: str, params: Optional[ParamsLike] = None,
                             body: Optional[ParamsLike] = None,
                             method: HTTPMethod = HTTPMethod.GET, weight: int = 1,
                             response_type: Optional[Type] = None,
                             order_count: bool = False) -> Any:
        """
        Signed call.

        ``body`` is merged after ``params``; placement of the signed string
        (query vs form body) is decided by the HTTP method only.
        """
        ordered = normalize_params(params) + normalize_params(body)
        return await self._request(method, path, ordered, weight=weight,
                                   response_type=response_type, api_key=True, signed=True,
                                   order_count=order_count)

    async def sync_time(self) -> int:
        """Fetch server time and store the clock offset. Returns the offset in ms."""
        local_before = int(time.time() * 1000)
        result = await self.request_public(self.config.server_time_path, response_type=ServerTime)
        local_after = int(time.time() * 1000)
        self._time_offset_ms = result.serverTime - (local_before + local_after) // 2
        self.logger.info("Server time synchronized", offset_ms=self._time_offset_ms)
        return self._time_offset_ms

    # Core

    async def _acquire(self, kind: RateLimitKind, weight: int) -> RatePermit:
        while True:
            decision = self.rate_governor.reserve(kind, weight)
            if isinstance(decision, RatePermit):
                return decision
            if not self.config.wait_on_rate_limit:
                self._metrics.rate_limited_locally += 1
                self.logger.counter("rate_limited_local", kind=kind.value)
                raise RateLimited(decision.retry_after, kind.value)
            delay = min(max(decision.retry_after, 0.001), self.config.max_rate_limit_wait)
            self.logger.debug("Waiting for rate budget", kind=kind.value, delay=delay)
            await asyncio.sleep(delay)

    async def _request(self, method: HTTPMethod, path: str, params: List[Tuple[str, str]],
                       weight: int, response_type: Optional[Type], api_key: bool, signed: bool,
                       order_count: bool = False) -> Any:
        headers: Dict[str, str] = {}
        if api_key or signed:
            if self.signer is None or not self.signer.api_key:
                raise ConfigurationError(f"{path} requires an API key", "api_key")
            headers[API_KEY_HEADER] = self.signer.api_key

        permits: List[RatePermit] = []
        sent = False
        try:
            # Step 1: admission
            permits.append(await self._acquire(RateLimitKind.REQUEST_WEIGHT, weight))
            if order_count:
                permits.append(await self._acquire(RateLimitKind.ORDERS, 1))
            permits.append(await self._acquire(RateLimitKind.RAW_REQUESTS, 1))

            # Step 2: signing, fresh timestamp for every call
            if signed:
                signed_request = self.signer.build_signed_request(
                    method, path, params, self.now_ms(), self.config.recv_window
                )
                payload = signed_request.with_signature
            else:
                payload = encode_params(params)

            # Step 3: placement
            url = f"{self.base_url}{path}"
            data = None
            if method.uses_body:
                if payload:
                    data = payload
                    headers["Content-Type"] = FORM_CONTENT_TYPE
            elif payload:
                url = f"{url}?{payload}"

            # Step 4-5: send and classify
            sent = True
            return await self._execute(method, url, data, headers, response_type, path)
        finally:
            for permit in permits:
                self.rate_governor.release(permit, sent)

    async def _execute(self, method: HTTPMethod, url: str, data: Optional[str],
                       headers: Dict[str, str], response_type: Optional[Type], path: str) -> Any:
        session = await self._ensure_session()
        self._metrics.total_requests += 1

        with LoggingTimer(self.logger, "rest_request", path=path) as timer:
            try:
                async with session.request(method.value, URL(url, encoded=True),
                                           data=data, headers=headers) as response:
                    status = response.status
                    response_headers = response.headers
                    body = await response.read()
            except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
                self._metrics.failed_requests += 1
                self._metrics.transport_errors += 1
                self.logger.warning("Transport failure", method=method.value, path=path,
                                    error_type=type(e).__name__, error=str(e))
                raise TransportError(f"{method.value} {path} failed: {type(e).__name__}: {e}", e) from e

        self._update_latency(timer.elapsed_ms)
        self._record_usage(response_headers)

        if status >= 400:
            self._metrics.failed_requests += 1
            self._metrics.exchange_errors += 1
            error = self.exception_handler.handle_error(status, body, response_headers)
            self.logger.warning("Exchange error", method=method.value, path=path,
                                status=status, code=error.code, message=error.message)
            raise error

        self._metrics.successful_requests += 1
        return self._decode(body, response_type, path)

    def _record_usage(self, headers) -> None:
        """Forward usage headers and Retry-After to the governor."""
        if headers is None:
            return
        self.rate_governor.record_headers(headers)
        retry_after = headers.get("Retry-After")
        if retry_after is not None:
            try:
                self.rate_governor.penalize(float(retry_after))
            except ValueError:
                self.logger.debug("Ignoring malformed Retry-After", value=retry_after)

    def _decode(self, body: bytes, response_type: Optional[Type], path: str) -> Any:
        if not body:
            if response_type is None:
                return None
            raise DecodeError(f"Empty response body for {path}", body)
        try:
            if response_type is None:
                return msgspec.json.decode(body)
            return msgspec.json.decode(body, type=response_type, strict=False)
        except msgspec.DecodeError as e:
            self.logger.warning("Response decode failed", path=path, error=str(e))
            self.logger.counter("rest_decode_errors", path=path)
            raise DecodeError(f"Cannot decode response for {path}: {e}", body) from e

    def _update_latency(self, latency_ms: float) -> None:
        n = self._metrics.total_requests
        self._metrics.avg_latency_ms += (latency_ms - self._metrics.avg_latency_ms) / max(n, 1)

    def get_metrics(self) -> RequestMetrics:
        """Get current request counters."""
        return self._metrics

    async def close(self):
        """Close the session if this transport created it."""
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None
        self.logger.debug("RestManager closed", base_url=self.base_url)
