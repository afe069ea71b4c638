"""
Stream Multiplexer

Maps topic subscriptions onto a small number of StreamConnections:

- one upstream subscription per topic, fanned out to every handle on it
- topics packed onto connections up to ``max_topics_per_connection``
- a connection whose last topic is released is shut down
- a connection that ends without being asked to (FAILED, or CLOSED from
  outside) closes each of its handles with StreamClosed exactly once

Routing state is only touched from the event loop thread: connection
callbacks are synchronous and subscribe/unsubscribe bookkeeping is
serialized by an asyncio lock. A new topic's route is registered under the
lock; its SUBSCRIBE is awaited after the lock is released.
"""

import asyncio
import random
import weakref
from typing import Dict, List, Optional

import msgspec

from binance_async.config.structs import WebSocketConfig
from binance_async.infrastructure.exceptions.exchange import StreamClosed
from binance_async.infrastructure.logging import get_logger, HFTLoggerInterface
from binance_async.infrastructure.utils.task_utils import TaskManager
from .structs import ConnectionState, ConnectionStatus
from .subscription import SubscriptionHandle
from .ws_connection import StreamConnection, ConnectMethod


class _TopicRoute:
    """Routing entry for one upstream topic."""
    __slots__ = ("connection", "handles", "active")

    def __init__(self, connection: StreamConnection):
        self.connection = connection
        self.handles: Dict[int, "weakref.ReferenceType[SubscriptionHandle]"] = {}
        self.active = False

    def live_handles(self) -> List[SubscriptionHandle]:
        result = []
        for ref in list(self.handles.values()):
            handle = ref()
            if handle is not None:
                result.append(handle)
        return result


class StreamMultiplexer:
    """
    Subscription front-end for one stream base URL.

    Usage:
        mux = StreamMultiplexer("wss://stream.binance.com:9443", WebSocketConfig())
        handle = await mux.subscribe("btcusdt@trade", msgspec.json.Decoder(TradeEvent))
        async for event in handle:
            ...
        await mux.close()
    """

    def __init__(self,
                 base_url: str,
                 config: WebSocketConfig,
                 connect_method: Optional[ConnectMethod] = None,
                 name: str = "spot",
                 rng: Optional[random.Random] = None,
                 logger: Optional[HFTLoggerInterface] = None):
        self.url = f"{base_url.rstrip('/')}/stream"
        self.config = config
        self.name = name
        self._connect_method = connect_method
        self._rng = rng
        self.logger = logger or get_logger("ws.multiplexer")

        self._routes: Dict[str, _TopicRoute] = {}
        self._connections: List[StreamConnection] = []
        self._lock = asyncio.Lock()
        self._task_manager = TaskManager(f"ws.{name}", self.logger)
        self._connection_seq = 0
        self._closed = False

    # Introspection

    @property
    def connections(self) -> List[StreamConnection]:
        return list(self._connections)

    @property
    def topics(self) -> List[str]:
        return list(self._routes)

    def connection_for(self, topic: str) -> Optional[StreamConnection]:
        route = self._routes.get(topic)
        return route.connection if route else None

    def handle_count(self, topic: str) -> int:
        route = self._routes.get(topic)
        return len(route.live_handles()) if route else 0

    # Public API

    async def subscribe(self, topic: str,
                        decoder: Optional[msgspec.json.Decoder] = None) -> SubscriptionHandle:
        """
        Subscribe to ``topic``. Idempotent per topic: further handles share the
        upstream subscription and each receives its own copy of every event.
        """
        if self._closed:
            raise StreamClosed(topic, "multiplexer closed")

        async with self._lock:
            handle = SubscriptionHandle(topic, self.config.buffer_capacity, decoder, self, self.logger)
            route = self._routes.get(topic)

            if route is not None:
                self._attach(route, handle)
                if route.active:
                    handle._activate()
                self.logger.debug("Joined existing subscription", topic=topic,
                                  handles=len(route.handles))
                return handle

            connection = self._pick_connection()
            route = _TopicRoute(connection)
            self._routes[topic] = route
            self._attach(route, handle)

        # The route is visible to other callers while the command is in flight
        try:
            await connection.subscribe([topic])
        except StreamClosed as e:
            if self._routes.get(topic) is route:
                del self._routes[topic]
                for joined in route.live_handles():
                    joined._close(e)
            handle._close(e)
            raise

        self.logger.info("Subscribed", topic=topic, connection=connection.name,
                         state=handle.state.value)
        return handle

    async def unsubscribe(self, handle: SubscriptionHandle) -> None:
        """
        Remove one consumer. Delivery to it stops immediately; when it was the
        topic's last handle the UNSUBSCRIBE is sent (and awaited) and an empty
        connection is shut down.
        """
        handle._close(None)
        if handle._finalizer is not None:
            handle._finalizer.detach()
        async with self._lock:
            await self._release(handle.topic, handle.handle_id)

    async def close(self) -> None:
        """Close every handle and shut down every connection."""
        if self._closed:
            return
        self._closed = True
        async with self._lock:
            for route in self._routes.values():
                for handle in route.live_handles():
                    handle._close(None)
            self._routes.clear()
            connections, self._connections = self._connections, []
            for connection in connections:
                await connection.shutdown()
        await self._task_manager.shutdown()
        self.logger.info("Stream multiplexer closed", name=self.name)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    # Internals

    def _attach(self, route: _TopicRoute, handle: SubscriptionHandle) -> None:
        route.handles[handle.handle_id] = weakref.ref(handle)
        handle._finalizer = weakref.finalize(handle, self._on_handle_collected,
                                             handle.topic, handle.handle_id)

    def _pick_connection(self) -> StreamConnection:
        limit = self.config.max_topics_per_connection
        for connection in self._connections:
            if connection.terminated:
                continue
            load = sum(1 for route in self._routes.values() if route.connection is connection)
            if load < limit:
                return connection

        self._connection_seq += 1
        connection = StreamConnection(
            self.url,
            self.config,
            on_event=self._on_event,
            on_status=self._on_status,
            on_topics_active=self._on_topics_active,
            connect_method=self._connect_method,
            name=f"{self.name}-{self._connection_seq}",
            rng=self._rng,
        )
        self._connections.append(connection)
        connection.start()
        return connection

    async def _release(self, topic: str, handle_id: int) -> None:
        route = self._routes.get(topic)
        if route is None:
            return
        route.handles.pop(handle_id, None)
        if route.live_handles():
            return

        # Last consumer gone
        del self._routes[topic]
        connection = route.connection
        await connection.unsubscribe([topic])
        self.logger.info("Unsubscribed", topic=topic, connection=connection.name)

        if not any(r.connection is connection for r in self._routes.values()):
            if connection in self._connections:
                self._connections.remove(connection)
            await connection.shutdown()
            self.logger.debug("Idle connection shut down", connection=connection.name)

    def _on_handle_collected(self, topic: str, handle_id: int) -> None:
        """weakref finalizer: a handle was dropped without unsubscribing."""
        if self._closed:
            return
        try:
            self._task_manager.create_task(self._release_collected(topic, handle_id),
                                           name=f"release.{topic}")
        except RuntimeError:
            # No running loop (interpreter shutdown)
            route = self._routes.get(topic)
            if route is not None:
                route.handles.pop(handle_id, None)

    async def _release_collected(self, topic: str, handle_id: int) -> None:
        self.logger.debug("Releasing dropped subscription handle", topic=topic)
        async with self._lock:
            await self._release(topic, handle_id)

    # Connection callbacks (synchronous, run on the connection's loop)

    def _on_event(self, topic: str, payload: msgspec.Raw) -> None:
        route = self._routes.get(topic)
        if route is None:
            return
        for handle in route.live_handles():
            handle._deliver(payload)

    def _on_topics_active(self, connection: StreamConnection, topics: List[str]) -> None:
        for topic in topics:
            route = self._routes.get(topic)
            if route is None or route.connection is not connection:
                continue
            route.active = True
            for handle in route.live_handles():
                handle._activate()

    def _on_status(self, connection: StreamConnection, status: ConnectionStatus) -> None:
        if status.state in (ConnectionState.RECONNECTING, ConnectionState.CONNECTING):
            for route in self._routes.values():
                if route.connection is connection and route.active:
                    route.active = False
                    for handle in route.live_handles():
                        handle._suspend()
            if status.state is ConnectionState.RECONNECTING:
                self.logger.warning("Stream connection reconnecting", connection=connection.name,
                                    attempt=status.attempt, delay=status.next_delay)

        elif status.state is ConnectionState.FAILED:
            self._fail_connection(connection, "connection failed")

        elif status.state is ConnectionState.CLOSED and connection in self._connections:
            # Connections shut down by the multiplexer are unlisted first
            self._fail_connection(connection, "connection closed")

    def _fail_connection(self, connection: StreamConnection, reason: str) -> None:
        failed_topics = [t for t, r in self._routes.items() if r.connection is connection]
        for topic in failed_topics:
            route = self._routes.pop(topic)
            for handle in route.live_handles():
                handle._close(StreamClosed(topic, reason))
        if connection in self._connections:
            self._connections.remove(connection)
        self.logger.error("Stream connection lost", connection=connection.name,
                          reason=reason, topics=len(failed_topics))
