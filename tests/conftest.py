"""
Shared fixtures: in-memory HTTP session and WebSocket doubles.

Nothing here touches the network. ``FakeSession`` records every request and
replays queued responses; ``FakeConnector`` hands out ``FakeWebSocket``
instances whose inbound frames are pushed by the test.
"""

import asyncio
from collections import deque
from typing import Any, Deque, Dict, List, Optional, Union

import msgspec
import pytest

from binance_async.config.structs import WebSocketConfig
from binance_async.infrastructure.logging import LoggingConfig, configure_logging
from binance_async.infrastructure.networking.http import (
    Credentials, HmacSigner, RateGovernor, RestConfig, RestManager,
)


configure_logging(LoggingConfig.default_test())


# HTTP

class FakeResponse:
    def __init__(self, status: int = 200, body: Union[bytes, str, Any] = b"{}",
                 headers: Optional[Dict[str, str]] = None):
        if isinstance(body, str):
            body = body.encode("utf-8")
        elif not isinstance(body, bytes):
            body = msgspec.json.encode(body)
        self.status = status
        self.body = body
        self.headers = headers or {}

    async def read(self) -> bytes:
        return self.body

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return False


class RecordedRequest:
    def __init__(self, method: str, url: str, data: Optional[str], headers: Dict[str, str]):
        self.method = method
        self.url = url
        self.data = data
        self.headers = headers

    @property
    def path(self) -> str:
        return self.url.split("://", 1)[-1].split("/", 1)[-1].split("?", 1)[0]

    @property
    def query(self) -> str:
        return self.url.split("?", 1)[1] if "?" in self.url else ""


class FakeSession:
    """Stands in for aiohttp.ClientSession; responses are served FIFO."""

    def __init__(self):
        self.requests: List[RecordedRequest] = []
        self._responses: Deque[Union[FakeResponse, BaseException]] = deque()
        self.closed = False

    def add(self, status: int = 200, body: Any = b"{}", headers: Optional[Dict[str, str]] = None):
        self._responses.append(FakeResponse(status, body, headers))
        return self

    def fail(self, error: BaseException):
        self._responses.append(error)
        return self

    def request(self, method: str, url, data=None, headers=None):
        self.requests.append(RecordedRequest(method, str(url), data, dict(headers or {})))
        if not self._responses:
            return FakeResponse(200, b"{}")
        item = self._responses.popleft()
        if isinstance(item, BaseException):
            raise item
        return item

    async def close(self):
        self.closed = True

    @property
    def last(self) -> RecordedRequest:
        return self.requests[-1]


# WebSocket

class FakeWebSocket:
    """Minimal websockets client protocol: recv/send/ping/close."""

    def __init__(self, auto_pong: bool = True):
        self.incoming: "asyncio.Queue[Any]" = asyncio.Queue()
        self.sent: List[str] = []
        self.auto_pong = auto_pong
        self.pings = 0
        self.closed = False

    def push(self, message: Any) -> None:
        """Queue an inbound frame (dicts are JSON encoded)."""
        if isinstance(message, (dict, list)):
            message = msgspec.json.encode(message).decode("utf-8")
        self.incoming.put_nowait(message)

    def push_event(self, topic: str, data: Dict[str, Any]) -> None:
        self.push({"stream": topic, "data": data})

    def drop(self, error: Optional[BaseException] = None) -> None:
        """Make the next recv() fail as a broken connection would."""
        self.incoming.put_nowait(error or ConnectionResetError("connection reset by peer"))

    async def recv(self):
        item = await self.incoming.get()
        if isinstance(item, BaseException):
            raise item
        return item

    async def send(self, message: str) -> None:
        self.sent.append(message)

    async def ping(self):
        self.pings += 1
        waiter = asyncio.get_running_loop().create_future()
        if self.auto_pong:
            waiter.set_result(0.001)
        return waiter

    async def close(self) -> None:
        self.closed = True

    @property
    def control_messages(self) -> List[Dict[str, Any]]:
        """Decoded outbound SUBSCRIBE/UNSUBSCRIBE requests."""
        result = []
        for message in self.sent:
            decoded = msgspec.json.decode(message)
            if "method" in decoded:
                result.append(decoded)
        return result

    def subscribed_topics(self) -> List[str]:
        topics = []
        for message in self.control_messages:
            if message["method"] == "SUBSCRIBE":
                topics.extend(message["params"])
        return topics


class FakeConnector:
    """
    ``connect_method`` double. Each call returns the next scripted socket;
    ``fail_next(n)`` makes the next ``n`` attempts raise OSError.
    """

    def __init__(self, auto_pong: bool = True):
        self.auto_pong = auto_pong
        self.sockets: List[FakeWebSocket] = []
        self.attempts = 0
        self.urls: List[str] = []
        self._failures = 0
        self.fail_forever = False

    def fail_next(self, count: int) -> None:
        self._failures += count

    async def __call__(self, url: str) -> FakeWebSocket:
        self.attempts += 1
        self.urls.append(url)
        if self.fail_forever or self._failures > 0:
            if self._failures > 0:
                self._failures -= 1
            raise OSError("connection refused")
        socket = FakeWebSocket(auto_pong=self.auto_pong)
        self.sockets.append(socket)
        return socket

    @property
    def current(self) -> FakeWebSocket:
        return self.sockets[-1]


async def wait_until(predicate, timeout: float = 2.0, interval: float = 0.005) -> None:
    """Poll ``predicate`` on the event loop until it holds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met within timeout")
        await asyncio.sleep(interval)


# Fixtures

API_KEY = "vmPUZE6mv9SD5VNHk4HlWFsOr6aKE2zvsw0MuIgwCIPy6utIco14y7Ju91duEh8A"
SECRET_KEY = "NhqPtmdSJYdKjVHjA7PZj4Mge3R5YNiP1e3UZjInClVN65XAbvqqM6A7H5fATj0j"


@pytest.fixture
def credentials():
    return Credentials(API_KEY, SECRET_KEY)


@pytest.fixture
def signer(credentials):
    return HmacSigner(credentials)


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def governor():
    return RateGovernor()


@pytest.fixture
def transport(fake_session, signer, governor):
    config = RestConfig(base_url="https://api.binance.com")
    return RestManager(config, signer=signer, rate_governor=governor, session=fake_session)


@pytest.fixture
def connector():
    return FakeConnector()


@pytest.fixture
def ws_config():
    return WebSocketConfig(
        connect_timeout=1.0,
        ping_interval=5.0,
        ping_timeout=1.0,
        close_timeout=0.1,
        max_reconnect_attempts=3,
        reconnect_delay=0.01,
        reconnect_backoff=1.0,
        max_reconnect_delay=0.01,
        reconnect_jitter=0.0,
        buffer_capacity=100,
    )
