"""
Subscription handles.

A handle is the consumer side of one topic subscription: a bounded buffer
filled by the multiplexer's read path and drained by the caller through
``recv()`` or ``async for``. When the buffer is full the oldest event is
dropped and ``dropped`` is incremented, so a slow consumer never stalls the
shared socket.
"""

import asyncio
import itertools
from collections import deque
from typing import Any, Deque, Optional, TYPE_CHECKING

import msgspec

from binance_async.infrastructure.exceptions.exchange import StreamClosed
from binance_async.infrastructure.logging import HFTLoggerInterface
from .structs import SubscriptionState

if TYPE_CHECKING:
    from .ws_manager import StreamMultiplexer

_handle_ids = itertools.count(1)


class SubscriptionHandle:
    """Caller-owned view of one topic. The multiplexer only keeps a weak reference."""

    def __init__(self, topic: str, capacity: int,
                 decoder: Optional[msgspec.json.Decoder],
                 multiplexer: "StreamMultiplexer",
                 logger: HFTLoggerInterface):
        self.topic = topic
        self.handle_id = next(_handle_ids)
        self.dropped = 0
        self.decode_errors = 0

        self._state = SubscriptionState.PENDING
        self._buffer: Deque[Any] = deque(maxlen=capacity)
        self._decoder = decoder
        self._multiplexer = multiplexer
        self.logger = logger

        self._wakeup = asyncio.Event()
        self._terminal: Optional[StreamClosed] = None
        self._terminal_raised = False
        self._finalizer = None

    @property
    def state(self) -> SubscriptionState:
        return self._state

    @property
    def capacity(self) -> int:
        return self._buffer.maxlen

    @property
    def pending(self) -> int:
        """Number of buffered, undelivered events."""
        return len(self._buffer)

    @property
    def closed(self) -> bool:
        return self._state is SubscriptionState.CLOSED

    # Multiplexer side

    def _activate(self) -> None:
        if self._state in (SubscriptionState.PENDING, SubscriptionState.RESUBSCRIBING):
            self._state = SubscriptionState.ACTIVE

    def _suspend(self) -> None:
        if self._state is SubscriptionState.ACTIVE:
            self._state = SubscriptionState.RESUBSCRIBING

    def _deliver(self, payload: msgspec.Raw) -> bool:
        """Decode and buffer one event. Returns False when it was not accepted."""
        if self._state is not SubscriptionState.ACTIVE:
            return False

        try:
            if self._decoder is None:
                event = msgspec.json.decode(payload)
            else:
                event = self._decoder.decode(payload)
        except msgspec.DecodeError as e:
            self.decode_errors += 1
            self.logger.warning("Dropping undecodable event", topic=self.topic, error=str(e))
            self.logger.counter("ws_event_decode_errors", topic=self.topic)
            return False

        if len(self._buffer) == self._buffer.maxlen:
            self.dropped += 1
            self.logger.counter("ws_events_dropped", topic=self.topic)
        self._buffer.append(event)
        self._wakeup.set()
        return True

    def _close(self, error: Optional[StreamClosed] = None) -> None:
        """Stop delivery. ``error`` is surfaced once after buffered events drain."""
        if self._state is SubscriptionState.CLOSED:
            return
        self._state = SubscriptionState.CLOSED
        self._terminal = error
        self._wakeup.set()

    # Caller side

    async def recv(self) -> Any:
        """
        Next event in receive order.

        Raises:
            StreamClosed: once the handle is closed and its buffer is empty.
                A connection failure is reported with its own reason the first
                time; later calls report a plain closed subscription.
        """
        while True:
            if self._buffer:
                return self._buffer.popleft()
            if self._state is SubscriptionState.CLOSED:
                if self._terminal is not None and not self._terminal_raised:
                    self._terminal_raised = True
                    raise self._terminal
                raise StreamClosed(self.topic, "subscription closed")
            self._wakeup.clear()
            await self._wakeup.wait()

    def __aiter__(self):
        return self

    async def __anext__(self) -> Any:
        try:
            return await self.recv()
        except StreamClosed as e:
            if e is self._terminal:
                raise
            raise StopAsyncIteration

    async def close(self) -> None:
        """Unsubscribe this consumer; awaits the upstream UNSUBSCRIBE when it was the last one."""
        await self._multiplexer.unsubscribe(self)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def __repr__(self) -> str:
        return (f"SubscriptionHandle(topic={self.topic!r}, state={self._state.value}, "
                f"pending={len(self._buffer)}, dropped={self.dropped})")
