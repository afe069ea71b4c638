import asyncio
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Optional, Tuple

import msgspec


class ConnectionState(Enum):
    """Stream connection states"""
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"
    RECONNECTING = "reconnecting"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ConnectionState.CLOSED, ConnectionState.FAILED)


class ConnectionStatus(msgspec.Struct, frozen=True):
    """State of one physical socket; ``attempt``/``next_delay`` describe RECONNECTING."""
    state: ConnectionState
    attempt: int = 0
    next_delay: Optional[float] = None


class SubscriptionState(Enum):
    PENDING = "pending"
    ACTIVE = "active"
    RESUBSCRIBING = "resubscribing"
    CLOSED = "closed"


class SubscriptionAction(IntEnum):
    """Commands accepted by a connection's run loop."""
    SUBSCRIBE = 1
    UNSUBSCRIBE = 2
    SHUTDOWN = 3

    @property
    def method(self) -> str:
        return self.name


@dataclass
class StreamCommand:
    """Control message for the connection loop, acknowledged through ``done``."""
    action: SubscriptionAction
    topics: Tuple[str, ...] = ()
    done: Optional[asyncio.Future] = field(default=None, repr=False)

    def resolve(self, error: Optional[BaseException] = None) -> None:
        if self.done is None or self.done.done():
            return
        if error is None:
            self.done.set_result(None)
        else:
            self.done.set_exception(error)


class StreamErrorReply(msgspec.Struct):
    code: int = 0
    msg: str = ""


class StreamFrame(msgspec.Struct):
    """
    Any inbound frame on the combined-stream endpoint:

        {"stream": "btcusdt@trade", "data": {...}}      event
        {"result": null, "id": 1}                       control acknowledgement
        {"error": {"code": 2, "msg": "..."}, "id": 1}   control error
        {"ping": 1700000000000}                         application heartbeat
    """
    stream: Optional[str] = None
    data: msgspec.Raw = msgspec.field(default_factory=msgspec.Raw)
    id: Optional[int] = None
    error: Optional[StreamErrorReply] = None
    ping: Optional[int] = None


class ControlMessage(msgspec.Struct):
    """Outbound SUBSCRIBE / UNSUBSCRIBE request."""
    method: str
    params: list
    id: int


class PongMessage(msgspec.Struct):
    pong: int


@dataclass
class ConnectionMetrics:
    """Per-connection counters."""
    connects: int = 0
    reconnects: int = 0
    frames_received: int = 0
    events_routed: int = 0
    malformed_frames: int = 0
    heartbeat_timeouts: int = 0


def raw_present(raw: msgspec.Raw) -> bool:
    """True when a Raw field was present in the decoded frame."""
    return memoryview(raw).nbytes > 0
