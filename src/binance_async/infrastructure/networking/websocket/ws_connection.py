"""
Stream Connection

One physical WebSocket to the combined-stream endpoint and the state machine
that keeps it alive:

    CONNECTING -> OPEN -> CLOSING -> CLOSED
                   |
                   +--> RECONNECTING -> CONNECTING ...      (drop, missed pong)
                                |
                                +--> FAILED                 (attempts exhausted,
                                                             loop error)

The socket, the state and the topic set belong to the run loop alone.
``subscribe``/``unsubscribe``/``shutdown`` are commands put on a queue and
acknowledged through futures; they are served while connected and during
backoff. After every (re)connect the whole topic set is replayed as fresh
SUBSCRIBE messages.

Inbound frames are routed to ``on_event(topic, payload)`` synchronously and in
receive order, so per-connection ordering is preserved end to end.
"""

import asyncio
import random
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Sequence

import msgspec
import websockets

from binance_async.config.structs import WebSocketConfig
from binance_async.infrastructure.exceptions.exchange import StreamClosed
from binance_async.infrastructure.logging import get_logger, HFTLoggerInterface
from binance_async.infrastructure.utils.task_utils import safe_close_connection
from .backoff import compute_backoff_delay
from .structs import (
    ConnectionMetrics, ConnectionState, ConnectionStatus, ControlMessage, PongMessage,
    StreamCommand, StreamFrame, SubscriptionAction, raw_present,
)

EventCallback = Callable[[str, msgspec.Raw], None]
StatusCallback = Callable[["StreamConnection", ConnectionStatus], None]
TopicsCallback = Callable[["StreamConnection", List[str]], None]
ConnectMethod = Callable[[str], Awaitable[Any]]


class HeartbeatTimeout(Exception):
    """No pong arrived within ping_timeout."""


async def default_connect(url: str, config: WebSocketConfig):
    """Open a socket with client keepalive disabled; the connection loop pings itself."""
    return await websockets.connect(
        url,
        ping_interval=None,
        close_timeout=config.close_timeout,
        max_size=config.max_message_size,
        open_timeout=config.connect_timeout,
    )


class StreamConnection:
    """
    Resilient combined-stream connection.

    Args:
        url: Full combined-stream URL (``<ws_base>/stream``)
        config: Reconnect, heartbeat and batching settings
        on_event: Called with (topic, raw payload) for each data frame
        on_status: Called on every state transition
        on_topics_active: Called with topics whose SUBSCRIBE went out on the current socket
        connect_method: Coroutine function ``(url) -> websocket``
        rng: Random source for backoff jitter
    """

    def __init__(self,
                 url: str,
                 config: WebSocketConfig,
                 on_event: EventCallback,
                 on_status: Optional[StatusCallback] = None,
                 on_topics_active: Optional[TopicsCallback] = None,
                 connect_method: Optional[ConnectMethod] = None,
                 name: str = "stream",
                 rng: Optional[random.Random] = None,
                 logger: Optional[HFTLoggerInterface] = None):
        self.url = url
        self.config = config
        self.name = name
        self._on_event = on_event
        self._on_status = on_status
        self._on_topics_active = on_topics_active
        self._connect_method = connect_method or (lambda u: default_connect(u, config))
        self._rng = rng

        self.logger = logger or get_logger("ws.connection")
        self.metrics = ConnectionMetrics()

        # Owned by the run loop
        self._topics: Dict[str, None] = {}
        self._websocket = None
        self._request_id = 0

        self._status = ConnectionStatus(ConnectionState.CLOSED)
        self._commands: "asyncio.Queue[StreamCommand]" = asyncio.Queue()
        self._shutdown_waiters: List[StreamCommand] = []
        self._task: Optional[asyncio.Task] = None
        self._terminated = False
        self._opened = False

    # Introspection

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def state(self) -> ConnectionState:
        return self._status.state

    @property
    def topics(self) -> List[str]:
        """Current topic set in subscription order (replayed on reconnect)."""
        return list(self._topics)

    @property
    def terminated(self) -> bool:
        return self._terminated

    # Lifecycle

    def start(self) -> None:
        if self._task is not None:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name=f"ws.{self.name}")

    async def wait_closed(self) -> ConnectionStatus:
        """Wait for the run loop to end; returns the final status (CLOSED or FAILED)."""
        if self._task is not None:
            await asyncio.shield(self._task)
        return self._status

    async def subscribe(self, topics: Iterable[str]) -> None:
        await self._submit(SubscriptionAction.SUBSCRIBE, topics)

    async def unsubscribe(self, topics: Iterable[str]) -> None:
        await self._submit(SubscriptionAction.UNSUBSCRIBE, topics)

    async def shutdown(self) -> None:
        """Graceful close; resolves once the loop reached CLOSED."""
        if self._task is None:
            self._terminated = True
            self._set_status(ConnectionState.CLOSED)
            return
        await self._submit(SubscriptionAction.SHUTDOWN, ())

    async def _submit(self, action: SubscriptionAction, topics: Iterable[str]) -> None:
        topics = tuple(topics)
        if self._terminated:
            if action is SubscriptionAction.SUBSCRIBE:
                raise StreamClosed(",".join(topics), f"connection {self.state.value}")
            return
        command = StreamCommand(action, topics, asyncio.get_running_loop().create_future())
        self._commands.put_nowait(command)
        await command.done

    # State

    def _set_status(self, state: ConnectionState, attempt: int = 0,
                    next_delay: Optional[float] = None) -> None:
        previous = self._status
        self._status = ConnectionStatus(state, attempt, next_delay)
        if previous.state is not state:
            self.logger.info("Connection state changed", connection=self.name,
                             previous_state=previous.state.name, new_state=state.name,
                             attempt=attempt)
        if self._on_status is not None:
            self._on_status(self, self._status)

    def _next_id(self) -> int:
        self._request_id += 1
        return self._request_id

    # Run loop

    async def _run(self) -> None:
        attempt = 0
        try:
            while True:
                self._set_status(ConnectionState.CONNECTING, attempt)
                self._opened = False
                try:
                    shutdown = await self._connect_and_serve()
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    self._log_drop(e, attempt)
                else:
                    if shutdown:
                        await self._close_gracefully()
                        return
                finally:
                    websocket, self._websocket = self._websocket, None
                    if websocket is not None:
                        await safe_close_connection(websocket, self.config.close_timeout, self.logger)

                # A successful open resets the consecutive attempt counter
                if self._opened:
                    attempt = 0

                if attempt >= self.config.max_reconnect_attempts:
                    self.logger.error("Reconnect attempts exhausted", connection=self.name,
                                      attempts=attempt, topics=len(self._topics))
                    self.logger.counter("ws_connection_failures")
                    self._set_status(ConnectionState.FAILED, attempt)
                    return

                attempt += 1
                self.metrics.reconnects += 1
                delay = compute_backoff_delay(
                    attempt,
                    self.config.reconnect_delay,
                    self.config.reconnect_backoff,
                    self.config.max_reconnect_delay,
                    self.config.reconnect_jitter,
                    self._rng,
                )
                self._set_status(ConnectionState.RECONNECTING, attempt, delay)
                self.logger.counter("ws_reconnect_attempts")

                if await self._wait_backoff(delay):
                    self._set_status(ConnectionState.CLOSING)
                    self._set_status(ConnectionState.CLOSED)
                    return
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.logger.error("Connection loop crashed", connection=self.name,
                              error_type=type(e).__name__, error=str(e), attempt=attempt,
                              exc_info=True)
            self.logger.counter("ws_connection_failures")
            self._set_status(ConnectionState.FAILED, attempt)
        finally:
            self._terminate()

    async def _connect_and_serve(self) -> bool:
        """Connect, replay topics and serve until shutdown (True) or a drop (raises)."""
        self._websocket = await asyncio.wait_for(self._connect_method(self.url),
                                                 timeout=self.config.connect_timeout)
        self.metrics.connects += 1
        self._opened = True
        self._request_id = 0
        self._set_status(ConnectionState.OPEN)

        await self._replay_topics()
        return await self._serve()

    async def _replay_topics(self) -> None:
        topics = list(self._topics)
        if not topics:
            return
        await self._send_control(SubscriptionAction.SUBSCRIBE, topics)
        self.logger.info("Topics subscribed", connection=self.name, count=len(topics))
        if self._on_topics_active is not None:
            self._on_topics_active(self, topics)

    async def _serve(self) -> bool:
        loop = asyncio.get_running_loop()
        websocket = self._websocket

        recv_task = loop.create_task(websocket.recv())
        cmd_task = loop.create_task(self._commands.get())
        pong_waiter: Optional[Awaitable] = None
        pong_deadline = 0.0
        next_ping = loop.time() + self.config.ping_interval

        try:
            while True:
                now = loop.time()
                timeout = (pong_deadline if pong_waiter is not None else next_ping) - now
                waitset = {recv_task, cmd_task}
                if pong_waiter is not None:
                    waitset.add(pong_waiter)

                done, _ = await asyncio.wait(waitset, timeout=max(timeout, 0.0),
                                             return_when=asyncio.FIRST_COMPLETED)

                if cmd_task in done:
                    command = cmd_task.result()
                    cmd_task = loop.create_task(self._commands.get())
                    if await self._apply_online(command):
                        return True

                if recv_task in done:
                    message = recv_task.result()
                    recv_task = loop.create_task(websocket.recv())
                    await self._handle_message(message)

                if pong_waiter is not None and pong_waiter in done:
                    pong_waiter.result()
                    pong_waiter = None
                    next_ping = loop.time() + self.config.ping_interval

                now = loop.time()
                if pong_waiter is not None and now >= pong_deadline:
                    self.metrics.heartbeat_timeouts += 1
                    raise HeartbeatTimeout(f"no pong within {self.config.ping_timeout}s")
                if pong_waiter is None and now >= next_ping:
                    pong_waiter = asyncio.ensure_future(await websocket.ping())
                    pong_deadline = now + self.config.ping_timeout
        finally:
            for task in (recv_task, cmd_task, pong_waiter):
                if task is not None and not task.done():
                    task.cancel()
            if cmd_task.done() and not cmd_task.cancelled():
                # Taken from the queue but never served
                self._requeue(cmd_task.result())

    def _requeue(self, command: StreamCommand) -> None:
        pending = [command]
        while not self._commands.empty():
            pending.append(self._commands.get_nowait())
        for item in pending:
            self._commands.put_nowait(item)

    async def _apply_online(self, command: StreamCommand) -> bool:
        """Serve one command on an open socket. Returns True on shutdown."""
        if command.action is SubscriptionAction.SHUTDOWN:
            self._shutdown_waiters.append(command)
            return True

        if command.action is SubscriptionAction.SUBSCRIBE:
            new_topics = [t for t in command.topics if t not in self._topics]
            for topic in new_topics:
                self._topics[topic] = None
            # Acknowledge first: the topics are in the replay set even if the send fails
            command.resolve()
            if new_topics:
                await self._send_control(SubscriptionAction.SUBSCRIBE, new_topics)
                if self._on_topics_active is not None:
                    self._on_topics_active(self, new_topics)
            return False

        removed = [t for t in command.topics if t in self._topics]
        for topic in removed:
            del self._topics[topic]
        try:
            if removed:
                await self._send_control(SubscriptionAction.UNSUBSCRIBE, removed)
        finally:
            command.resolve()
        return False

    def _apply_offline(self, command: StreamCommand) -> bool:
        """Serve one command while no socket is open. Returns True on shutdown."""
        if command.action is SubscriptionAction.SHUTDOWN:
            self._shutdown_waiters.append(command)
            return True
        if command.action is SubscriptionAction.SUBSCRIBE:
            for topic in command.topics:
                self._topics.setdefault(topic, None)
        else:
            for topic in command.topics:
                self._topics.pop(topic, None)
        command.resolve()
        return False

    async def _wait_backoff(self, delay: float) -> bool:
        """Sleep ``delay`` while serving commands. Returns True on shutdown."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + delay
        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                return False
            try:
                command = await asyncio.wait_for(self._commands.get(), timeout=remaining)
            except asyncio.TimeoutError:
                return False
            if self._apply_offline(command):
                return True

    async def _send_control(self, action: SubscriptionAction, topics: Sequence[str]) -> None:
        batch_size = self.config.subscribe_batch_size
        for start in range(0, len(topics), batch_size):
            message = ControlMessage(method=action.method,
                                     params=list(topics[start:start + batch_size]),
                                     id=self._next_id())
            await self._websocket.send(msgspec.json.encode(message).decode("utf-8"))

    async def _handle_message(self, message: Any) -> None:
        self.metrics.frames_received += 1
        try:
            frame = msgspec.json.decode(message, type=StreamFrame)
        except msgspec.DecodeError as e:
            self._drop_malformed(message, str(e))
            return

        if frame.stream is not None:
            if not raw_present(frame.data):
                self._drop_malformed(message, "stream frame without data")
                return
            self.metrics.events_routed += 1
            try:
                self._on_event(frame.stream, frame.data)
            except Exception as e:
                self.logger.error("Event routing failed", connection=self.name, topic=frame.stream,
                                  error_type=type(e).__name__, error=str(e))
            return

        if frame.ping is not None:
            await self._websocket.send(msgspec.json.encode(PongMessage(pong=frame.ping)).decode("utf-8"))
            return

        if frame.error is not None:
            self.logger.warning("Control request rejected", connection=self.name,
                                request_id=frame.id, code=frame.error.code, message=frame.error.msg)
            return

        if frame.id is not None:
            self.logger.debug("Control request acknowledged", connection=self.name, request_id=frame.id)
            return

        self._drop_malformed(message, "unrecognised frame")

    def _drop_malformed(self, message: Any, reason: str) -> None:
        self.metrics.malformed_frames += 1
        preview = message[:200] if isinstance(message, (str, bytes)) else repr(message)[:200]
        self.logger.warning("Dropping malformed frame", connection=self.name, reason=reason,
                            frame=preview)
        self.logger.counter("ws_malformed_frames")

    def _log_drop(self, error: BaseException, attempt: int) -> None:
        self.logger.warning("Connection dropped", connection=self.name,
                            error_type=type(error).__name__, error=str(error),
                            attempt=attempt, topics=len(self._topics))

    async def _close_gracefully(self) -> None:
        self._set_status(ConnectionState.CLOSING)
        websocket, self._websocket = self._websocket, None
        await safe_close_connection(websocket, self.config.close_timeout, self.logger)
        self._set_status(ConnectionState.CLOSED)

    def _terminate(self) -> None:
        """Runs once when the loop ends: settle every outstanding command."""
        self._terminated = True
        state = self._status.state
        if not state.is_terminal:
            # Cancelled from outside
            self._set_status(ConnectionState.CLOSED)
            state = ConnectionState.CLOSED

        for command in self._shutdown_waiters:
            command.resolve()
        self._shutdown_waiters.clear()

        while not self._commands.empty():
            command = self._commands.get_nowait()
            if command.action is SubscriptionAction.SUBSCRIBE:
                command.resolve(StreamClosed(",".join(command.topics), f"connection {state.value}"))
            else:
                command.resolve()

    def __repr__(self) -> str:
        return f"StreamConnection(name={self.name!r}, state={self.state.value}, topics={len(self._topics)})"
