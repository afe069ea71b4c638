"""
Stream Multiplexer Tests

Fan-out, backpressure, topic packing, handle lifetime and failure surfacing
of StreamMultiplexer over fake sockets.
"""

import asyncio
import gc

import msgspec
import pytest

from binance_async.exchanges.binance.structs import TradeEvent
from binance_async.infrastructure.exceptions import StreamClosed
from binance_async.infrastructure.networking.websocket import (
    ConnectionState, ConnectionStatus, StreamMultiplexer, SubscriptionState,
)
from binance_async.infrastructure.networking.websocket import ws_connection

from conftest import FakeConnector, wait_until

BASE_URL = "wss://stream.binance.com:9443"
TRADE = {"e": "trade", "E": 1700000000001, "s": "BTCUSDT", "t": 12345, "p": "50000.10",
         "q": "0.010", "T": 1700000000000, "m": True, "M": True}


def make_multiplexer(config, connector):
    return StreamMultiplexer(BASE_URL, config, connect_method=connector, name="spot")


async def active_handle(mux, topic, decoder=None):
    handle = await mux.subscribe(topic, decoder)
    await wait_until(lambda: handle.state is SubscriptionState.ACTIVE)
    return handle


class TestFanOut:

    @pytest.mark.asyncio
    async def test_single_upstream_subscription_per_topic(self, ws_config, connector):
        mux = make_multiplexer(ws_config, connector)
        first = await active_handle(mux, "btcusdt@trade")
        second = await mux.subscribe("btcusdt@trade")

        assert second.state is SubscriptionState.ACTIVE
        assert connector.urls == [f"{BASE_URL}/stream"]
        assert connector.current.subscribed_topics() == ["btcusdt@trade"]
        assert mux.handle_count("btcusdt@trade") == 2

        connector.current.push_event("btcusdt@trade", {"t": 1})
        connector.current.push_event("btcusdt@trade", {"t": 2})

        for handle in (first, second):
            events = [await asyncio.wait_for(handle.recv(), 1.0) for _ in range(2)]
            assert [e["t"] for e in events] == [1, 2]
        await mux.close()

    @pytest.mark.asyncio
    async def test_events_are_routed_by_topic(self, ws_config, connector):
        mux = make_multiplexer(ws_config, connector)
        trades = await active_handle(mux, "btcusdt@trade")
        depth = await active_handle(mux, "btcusdt@depth")

        connector.current.push_event("btcusdt@depth", {"u": 7})
        connector.current.push_event("btcusdt@trade", {"t": 8})
        connector.current.push_event("unknown@trade", {"t": 9})

        assert await asyncio.wait_for(depth.recv(), 1.0) == {"u": 7}
        assert await asyncio.wait_for(trades.recv(), 1.0) == {"t": 8}
        await wait_until(lambda: connector.current.incoming.empty())
        assert trades.pending == 0
        await mux.close()

    @pytest.mark.asyncio
    async def test_typed_decoder(self, ws_config, connector):
        mux = make_multiplexer(ws_config, connector)
        handle = await active_handle(mux, "btcusdt@trade", msgspec.json.Decoder(TradeEvent))

        connector.current.push_event("btcusdt@trade", {"e": "trade", "bogus": True})
        connector.current.push_event("btcusdt@trade", TRADE)

        event = await asyncio.wait_for(handle.recv(), 1.0)
        assert isinstance(event, TradeEvent)
        assert event.trade_id == 12345
        assert str(event.price) == "50000.10"
        assert handle.decode_errors == 1
        await mux.close()


class TestBackpressure:

    @pytest.mark.asyncio
    async def test_full_buffer_drops_oldest(self, ws_config, connector):
        config = msgspec.structs.replace(ws_config, buffer_capacity=3)
        mux = make_multiplexer(config, connector)
        slow = await active_handle(mux, "btcusdt@trade")
        fast = await mux.subscribe("btcusdt@trade")

        for i in range(5):
            connector.current.push_event("btcusdt@trade", {"t": i})
        await wait_until(lambda: slow.dropped == 2)

        assert slow.pending == 3
        assert [await slow.recv() for _ in range(3)] == [{"t": 2}, {"t": 3}, {"t": 4}]
        # Every handle has its own buffer
        assert fast.dropped == 2
        await mux.close()

    @pytest.mark.asyncio
    async def test_slow_topic_does_not_hold_back_fast_topic(self, ws_config, connector):
        config = msgspec.structs.replace(ws_config, buffer_capacity=3)
        mux = make_multiplexer(config, connector)
        slow = await active_handle(mux, "btcusdt@trade")
        fast = await active_handle(mux, "ethusdt@trade")
        assert mux.connection_for("btcusdt@trade") is mux.connection_for("ethusdt@trade")

        received = []

        async def drain():
            while len(received) < 10:
                received.append(await fast.recv())

        reader = asyncio.get_running_loop().create_task(drain())
        for i in range(10):
            connector.current.push_event("btcusdt@trade", {"t": i})
            connector.current.push_event("ethusdt@trade", {"t": i})
            await wait_until(lambda: len(received) > i)
        await asyncio.wait_for(reader, 1.0)

        assert [event["t"] for event in received] == list(range(10))
        assert fast.dropped == 0
        assert slow.dropped == 7
        assert [await slow.recv() for _ in range(3)] == [{"t": 7}, {"t": 8}, {"t": 9}]
        await mux.close()

    @pytest.mark.asyncio
    async def test_suspended_route_does_not_buffer(self, ws_config, connector):
        mux = make_multiplexer(ws_config, connector)
        handle = await active_handle(mux, "btcusdt@trade")
        connection = mux.connection_for("btcusdt@trade")

        mux._on_status(connection, ConnectionStatus(ConnectionState.RECONNECTING, 1, 0.01))
        assert handle.state is SubscriptionState.RESUBSCRIBING
        mux._on_event("btcusdt@trade", msgspec.Raw(b'{"t":1}'))
        assert handle.pending == 0
        assert handle.dropped == 0

        mux._on_topics_active(connection, ["btcusdt@trade"])
        assert handle.state is SubscriptionState.ACTIVE
        mux._on_event("btcusdt@trade", msgspec.Raw(b'{"t":2}'))
        assert await asyncio.wait_for(handle.recv(), 1.0) == {"t": 2}
        await mux.close()


class TestActivation:

    @pytest.mark.asyncio
    async def test_active_once_subscribe_is_sent(self, ws_config, connector):
        mux = make_multiplexer(ws_config, connector)
        handle = await mux.subscribe("btcusdt@trade")
        await wait_until(lambda: handle.state is SubscriptionState.ACTIVE)

        # No {"result": null, "id": 1} acknowledgement was pushed
        assert connector.current.subscribed_topics() == ["btcusdt@trade"]
        assert connector.current.incoming.empty()
        await mux.close()

    @pytest.mark.asyncio
    async def test_pending_until_socket_opens(self, ws_config, connector):
        config = msgspec.structs.replace(ws_config, reconnect_delay=0.2, max_reconnect_delay=0.2)
        connector.fail_next(1)
        mux = make_multiplexer(config, connector)
        handle = await mux.subscribe("btcusdt@trade")

        assert handle.state is SubscriptionState.PENDING
        await wait_until(lambda: handle.state is SubscriptionState.ACTIVE)
        assert connector.current.subscribed_topics() == ["btcusdt@trade"]
        await mux.close()


class TestUnsubscribe:

    @pytest.mark.asyncio
    async def test_last_handle_unsubscribes_and_closes_connection(self, ws_config, connector):
        mux = make_multiplexer(ws_config, connector)
        first = await active_handle(mux, "btcusdt@trade")
        second = await mux.subscribe("btcusdt@trade")
        socket = connector.current

        await first.close()
        assert first.closed
        assert [m["method"] for m in socket.control_messages] == ["SUBSCRIBE"]
        assert mux.topics == ["btcusdt@trade"]

        await second.close()
        assert [m["method"] for m in socket.control_messages] == ["SUBSCRIBE", "UNSUBSCRIBE"]
        assert mux.topics == []
        assert mux.connections == []
        await wait_until(lambda: socket.closed)
        await mux.close()

    @pytest.mark.asyncio
    async def test_closed_handle_stops_receiving(self, ws_config, connector):
        mux = make_multiplexer(ws_config, connector)
        keep = await active_handle(mux, "btcusdt@trade")
        gone = await mux.subscribe("btcusdt@trade")
        await gone.close()

        connector.current.push_event("btcusdt@trade", {"t": 1})
        assert await asyncio.wait_for(keep.recv(), 1.0) == {"t": 1}
        assert gone.pending == 0
        with pytest.raises(StreamClosed):
            await gone.recv()
        await mux.close()

    @pytest.mark.asyncio
    async def test_async_context_manager(self, ws_config, connector):
        mux = make_multiplexer(ws_config, connector)
        async with await mux.subscribe("btcusdt@trade") as handle:
            await wait_until(lambda: handle.state is SubscriptionState.ACTIVE)
        assert handle.closed
        assert mux.topics == []
        await mux.close()

    @pytest.mark.asyncio
    async def test_dropped_handle_is_released(self, ws_config, connector):
        mux = make_multiplexer(ws_config, connector)
        handle = await active_handle(mux, "btcusdt@trade")
        socket = connector.current

        del handle
        gc.collect()

        await wait_until(lambda: mux.topics == [])
        await wait_until(lambda: "UNSUBSCRIBE" in [m["method"] for m in socket.control_messages])
        await wait_until(lambda: mux.connections == [])
        await mux.close()


class TestPacking:

    @pytest.mark.asyncio
    async def test_topics_spill_to_new_connection(self, ws_config, connector):
        config = msgspec.structs.replace(ws_config, max_topics_per_connection=2)
        mux = make_multiplexer(config, connector)
        handles = [await active_handle(mux, f"sym{i}usdt@trade") for i in range(3)]

        assert len(mux.connections) == 2
        assert len(connector.sockets) == 2
        first, second = mux.connections
        assert mux.connection_for("sym0usdt@trade") is first
        assert mux.connection_for("sym1usdt@trade") is first
        assert mux.connection_for("sym2usdt@trade") is second
        assert connector.sockets[1].subscribed_topics() == ["sym2usdt@trade"]

        connector.sockets[1].push_event("sym2usdt@trade", {"t": 3})
        assert await asyncio.wait_for(handles[2].recv(), 1.0) == {"t": 3}
        await mux.close()


class TestConnectionLoss:

    @pytest.mark.asyncio
    async def test_handles_survive_reconnect(self, ws_config, connector):
        mux = make_multiplexer(ws_config, connector)
        handle = await active_handle(mux, "btcusdt@trade")

        connector.current.drop()
        await wait_until(lambda: len(connector.sockets) == 2)
        await wait_until(lambda: handle.state is SubscriptionState.ACTIVE)

        assert connector.current.subscribed_topics() == ["btcusdt@trade"]
        connector.current.push_event("btcusdt@trade", {"t": 99})
        assert await asyncio.wait_for(handle.recv(), 1.0) == {"t": 99}
        await mux.close()

    @pytest.mark.asyncio
    async def test_failed_connection_closes_handles_once(self, ws_config, connector):
        mux = make_multiplexer(ws_config, connector)
        first = await active_handle(mux, "btcusdt@trade")
        second = await active_handle(mux, "ethusdt@trade")

        connector.current.push_event("btcusdt@trade", {"t": 1})
        connector.current.push_event("btcusdt@trade", {"t": 2})
        await wait_until(lambda: first.pending == 2)

        connector.fail_forever = True
        connector.current.drop()
        await wait_until(lambda: first.closed and second.closed)
        assert mux.connections == []
        assert mux.topics == []

        received = []
        with pytest.raises(StreamClosed) as exc_info:
            async for event in first:
                received.append(event)
        assert received == [{"t": 1}, {"t": 2}]
        assert exc_info.value.reason == "connection failed"
        assert exc_info.value.topic == "btcusdt@trade"

        # Later iteration ends quietly
        assert [event async for event in first] == []

        with pytest.raises(StreamClosed) as exc_info:
            await second.recv()
        assert exc_info.value.reason == "connection failed"
        with pytest.raises(StreamClosed) as exc_info:
            await second.recv()
        assert exc_info.value.reason == "subscription closed"
        await mux.close()

    @pytest.mark.asyncio
    async def test_subscribe_after_failure_opens_new_connection(self, ws_config, connector):
        mux = make_multiplexer(ws_config, connector)
        handle = await active_handle(mux, "btcusdt@trade")

        connector.fail_forever = True
        connector.current.drop()
        await wait_until(lambda: handle.closed)

        connector.fail_forever = False
        fresh = await active_handle(mux, "btcusdt@trade")
        assert len(mux.connections) == 1
        assert mux.connections[0].state is ConnectionState.OPEN
        connector.current.push_event("btcusdt@trade", {"t": 5})
        assert await asyncio.wait_for(fresh.recv(), 1.0) == {"t": 5}
        await mux.close()

    @pytest.mark.asyncio
    async def test_loop_error_closes_handles(self, ws_config, connector, monkeypatch):
        mux = make_multiplexer(ws_config, connector)
        handle = await active_handle(mux, "btcusdt@trade")

        def broken_backoff(*args, **kwargs):
            raise OverflowError("numerical result out of range")

        monkeypatch.setattr(ws_connection, "compute_backoff_delay", broken_backoff)
        connector.current.drop()

        with pytest.raises(StreamClosed) as exc_info:
            await asyncio.wait_for(handle.recv(), 1.0)
        assert exc_info.value.reason == "connection failed"
        assert mux.connections == []
        assert mux.topics == []
        await mux.close()

    @pytest.mark.asyncio
    async def test_outside_close_closes_handles(self, ws_config, connector):
        mux = make_multiplexer(ws_config, connector)
        handle = await active_handle(mux, "btcusdt@trade")

        await mux.connections[0].shutdown()

        with pytest.raises(StreamClosed) as exc_info:
            await asyncio.wait_for(handle.recv(), 1.0)
        assert exc_info.value.reason == "connection closed"
        assert mux.connections == []
        await mux.close()

    @pytest.mark.asyncio
    async def test_requested_shutdown_is_not_a_failure(self, ws_config, connector):
        config = msgspec.structs.replace(ws_config, max_topics_per_connection=1)
        mux = make_multiplexer(config, connector)
        handle = await active_handle(mux, "btcusdt@trade")
        other = await active_handle(mux, "ethusdt@trade")
        first_connection = mux.connection_for("btcusdt@trade")

        await handle.close()
        assert first_connection.state is ConnectionState.CLOSED
        assert mux.connections == [mux.connection_for("ethusdt@trade")]

        connector.sockets[1].push_event("ethusdt@trade", {"t": 1})
        assert await asyncio.wait_for(other.recv(), 1.0) == {"t": 1}
        assert not other.closed
        await mux.close()


class SlowHandshakeConnector(FakeConnector):
    """Delays the handshake of the ``slow_call``-th connection."""

    def __init__(self, slow_call: int, delay: float):
        super().__init__()
        self.slow_call = slow_call
        self.delay = delay
        self.calls = 0

    async def __call__(self, url: str):
        self.calls += 1
        if self.calls == self.slow_call:
            await asyncio.sleep(self.delay)
        return await super().__call__(url)


class TestLocking:

    @pytest.mark.asyncio
    async def test_slow_handshake_does_not_block_unsubscribe(self, ws_config):
        config = msgspec.structs.replace(ws_config, max_topics_per_connection=1)
        connector = SlowHandshakeConnector(slow_call=2, delay=0.6)
        mux = make_multiplexer(config, connector)
        first = await active_handle(mux, "btcusdt@trade")

        loop = asyncio.get_running_loop()
        pending = loop.create_task(mux.subscribe("ethusdt@trade"))
        await wait_until(lambda: connector.calls == 2)

        started = loop.time()
        await asyncio.wait_for(first.close(), 1.0)
        assert loop.time() - started < 0.3
        assert not pending.done()
        assert mux.topics == ["ethusdt@trade"]

        second = await asyncio.wait_for(pending, 2.0)
        await wait_until(lambda: second.state is SubscriptionState.ACTIVE)
        assert connector.sockets[1].subscribed_topics() == ["ethusdt@trade"]
        await mux.close()

    @pytest.mark.asyncio
    async def test_joining_handle_shares_failed_subscribe(self, ws_config, connector):
        config = msgspec.structs.replace(ws_config, max_reconnect_attempts=0)
        connector.fail_forever = True
        mux = make_multiplexer(config, connector)

        results = await asyncio.gather(mux.subscribe("btcusdt@trade"),
                                       mux.subscribe("btcusdt@trade"),
                                       return_exceptions=True)

        assert any(isinstance(result, StreamClosed) for result in results)
        for result in results:
            if not isinstance(result, StreamClosed):
                assert result.closed
        assert mux.topics == []
        await mux.close()


class TestClose:

    @pytest.mark.asyncio
    async def test_close_ends_iteration_and_rejects_subscribe(self, ws_config, connector):
        mux = make_multiplexer(ws_config, connector)
        handle = await active_handle(mux, "btcusdt@trade")

        await mux.close()
        assert [event async for event in handle] == []
        assert connector.current.closed
        with pytest.raises(StreamClosed):
            await mux.subscribe("btcusdt@trade")

    @pytest.mark.asyncio
    async def test_clients_do_not_share_state(self, ws_config, connector):
        a = make_multiplexer(ws_config, connector)
        b = make_multiplexer(ws_config, connector)
        handle = await active_handle(a, "btcusdt@trade")
        assert a.topics == [handle.topic]
        assert b.topics == []
        assert b.connections == []
        await a.close()
        await b.close()
