"""
REST Operation Group Tests

Endpoint paths, HTTP methods, security classes, parameter order and request
weights of the spot, margin, wallet, savings and futures groups.
"""

from decimal import Decimal
from unittest.mock import AsyncMock, patch
from urllib.parse import parse_qsl

import aiohttp
import pytest

from binance_async.exchanges.binance.rest import (
    Account, Futures, General, Margin, Market, Savings, UserStream, Wallet,
    build_futures_order_params, build_order_params,
)
from binance_async.exchanges.binance.structs import (
    KlineInterval, MarginTransferType, OrderSide, OrderStatus, OrderType, PositionSide,
    TimeInForce, UniversalTransferType,
)
from binance_async.infrastructure.exceptions import (
    ExchangeError, NewOrderRejectedError, TransportError,
)
from binance_async.infrastructure.networking.http import (
    API_KEY_HEADER, FUTURES_DEFAULT_LIMITS, RateGovernor, RateLimitKind, RestConfig, RestManager,
)

from conftest import FakeSession

ORDER_ACK = {"symbol": "BTCUSDT", "orderId": 28, "orderListId": -1,
             "clientOrderId": "6gCrw2kRUAF9CvJDGP16IP", "transactTime": 1507725176595}

FUTURES_ORDER = {
    "symbol": "BTCUSDT", "orderId": 22542179, "clientOrderId": "testOrder", "price": "0",
    "avgPrice": "0.00000", "origQty": "10", "executedQty": "0", "cumQty": "0",
    "cumQuote": "0", "status": "NEW", "timeInForce": "GTC", "type": "TRAILING_STOP_MARKET",
    "origType": "TRAILING_STOP_MARKET", "side": "SELL", "positionSide": "SHORT",
    "stopPrice": "9300", "reduceOnly": False, "closePosition": False,
    "workingType": "CONTRACT_PRICE", "priceProtect": False, "activatePrice": "9020",
    "priceRate": "0.3", "updateTime": 1566818724722,
}


@pytest.fixture
def weights(transport, monkeypatch):
    """(kind, weight) of weight and order admissions; the per-request RAW_REQUESTS one is skipped."""
    calls = []
    original = transport._acquire

    async def recording(kind, weight):
        if kind is not RateLimitKind.RAW_REQUESTS:
            calls.append((kind, weight))
        return await original(kind, weight)

    monkeypatch.setattr(transport, "_acquire", recording)
    return calls


def keys(query):
    return [k for k, _ in parse_qsl(query)]


class TestGeneral:

    @pytest.mark.asyncio
    async def test_ping(self, transport, fake_session, weights):
        assert await General(transport).ping() is True
        assert fake_session.last.method == "GET"
        assert fake_session.last.path == "api/v3/ping"
        assert weights == [(RateLimitKind.REQUEST_WEIGHT, 1)]

    @pytest.mark.asyncio
    async def test_exchange_info_loads_rate_limits(self, transport, fake_session, governor, weights):
        fake_session.add(body={
            "timezone": "UTC", "serverTime": 1700000000000,
            "rateLimits": [
                {"rateLimitType": "REQUEST_WEIGHT", "interval": "MINUTE", "intervalNum": 1, "limit": 1200},
                {"rateLimitType": "ORDERS", "interval": "SECOND", "intervalNum": 10, "limit": 50},
            ],
            "symbols": [],
        })
        info = await General(transport, governor).exchange_info(["btcusdt", "ethusdt"])

        assert info.timezone == "UTC"
        assert dict(parse_qsl(fake_session.last.query)) == {"symbols": '["BTCUSDT","ETHUSDT"]'}
        assert weights == [(RateLimitKind.REQUEST_WEIGHT, 20)]
        limits = {(s.kind, s.window): s.limit for s in governor.snapshot()}
        assert limits[(RateLimitKind.REQUEST_WEIGHT, 60.0)] == 1200
        assert limits[(RateLimitKind.ORDERS, 10.0)] == 50
        assert (RateLimitKind.ORDERS, 86400.0) not in limits

    @pytest.mark.asyncio
    async def test_symbol_info_missing(self, transport, fake_session):
        fake_session.add(body={"timezone": "UTC", "serverTime": 1, "symbols": []})
        assert await General(transport).symbol_info("nosuch") is None
        assert fake_session.last.query == "symbol=NOSUCH"


class TestMarket:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("limit,weight", [(5, 5), (100, 5), (500, 25), (1000, 50), (5000, 250)])
    async def test_depth_weight_scales_with_limit(self, transport, fake_session, weights, limit, weight):
        fake_session.add(body={"lastUpdateId": 1, "bids": [["1.0", "2.0"]], "asks": []})
        book = await Market(transport).depth("btcusdt", limit=limit)

        assert book.bids[0].qty == Decimal("2.0")
        assert fake_session.last.query == f"symbol=BTCUSDT&limit={limit}"
        assert weights == [(RateLimitKind.REQUEST_WEIGHT, weight)]

    @pytest.mark.asyncio
    async def test_klines(self, transport, fake_session):
        fake_session.add(body=[[1499040000000, "1", "2", "0.5", "1.5", "100", 1499644799999,
                                "150", 10, "50", "75", "0"]])
        klines = await Market(transport).klines("BTCUSDT", KlineInterval.HOUR_1, limit=1)

        assert klines[0].high == Decimal("2")
        assert fake_session.last.query == "symbol=BTCUSDT&interval=1h&limit=1"

    @pytest.mark.asyncio
    async def test_historical_trades_sends_api_key(self, transport, fake_session):
        fake_session.add(body=[])
        await Market(transport).historical_trades("BTCUSDT", limit=10)

        request = fake_session.last
        assert request.method == "GET"
        assert API_KEY_HEADER in request.headers
        assert "signature" not in request.query

    @pytest.mark.asyncio
    async def test_all_tickers_weight(self, transport, fake_session, weights):
        fake_session.add(body=[])
        await Market(transport).all_tickers_24h()
        assert fake_session.last.query == ""
        assert weights == [(RateLimitKind.REQUEST_WEIGHT, 80)]


class TestOrderParams:

    def test_limit_order_in_api_order(self):
        params = build_order_params("btcusdt", OrderSide.BUY, OrderType.LIMIT,
                                    quantity="0.1", price="50000")
        assert [k for k, v in params.items() if v is not None] == [
            "symbol", "side", "type", "timeInForce", "quantity", "price",
        ]
        assert params["symbol"] == "BTCUSDT"
        assert params["timeInForce"] is TimeInForce.GTC

    def test_market_order_by_quote_quantity(self):
        params = build_order_params("BTCUSDT", OrderSide.BUY, OrderType.MARKET, quote_order_qty=100)
        assert params["quoteOrderQty"] == 100
        assert params["timeInForce"] is None

    @pytest.mark.parametrize("order_type,kwargs", [
        (OrderType.LIMIT, {"quantity": 1}),
        (OrderType.LIMIT, {"price": 1}),
        (OrderType.MARKET, {}),
        (OrderType.STOP_LOSS, {"quantity": 1}),
        (OrderType.STOP_LOSS_LIMIT, {"quantity": 1, "price": 1}),
    ])
    def test_missing_required_parameter(self, order_type, kwargs):
        with pytest.raises(ValueError):
            build_order_params("BTCUSDT", OrderSide.SELL, order_type, **kwargs)

    def test_futures_order_params(self):
        params = build_futures_order_params("btcusdt", OrderSide.SELL, OrderType.STOP_MARKET,
                                            stop_price=9300, close_position=True,
                                            position_side=PositionSide.LONG)
        assert [k for k, v in params.items() if v is not None] == [
            "symbol", "side", "positionSide", "type", "stopPrice", "closePosition",
        ]

    @pytest.mark.parametrize("order_type,kwargs", [
        (OrderType.LIMIT, {"quantity": 1}),
        (OrderType.STOP_MARKET, {"quantity": 1}),
        (OrderType.MARKET, {}),
    ])
    def test_futures_missing_required_parameter(self, order_type, kwargs):
        with pytest.raises(ValueError):
            build_futures_order_params("BTCUSDT", OrderSide.BUY, order_type, **kwargs)


class TestAccount:

    @pytest.mark.asyncio
    async def test_limit_buy(self, transport, fake_session, weights):
        fake_session.add(body=ORDER_ACK)
        result = await Account(transport).limit_buy("btcusdt", Decimal("0.10"), "50000.5")

        assert result.order_id == 28
        request = fake_session.last
        assert request.method == "POST"
        assert request.path == "api/v3/order"
        assert keys(request.data) == ["symbol", "side", "type", "timeInForce", "quantity",
                                      "price", "timestamp", "recvWindow", "signature"]
        body = dict(parse_qsl(request.data))
        assert body["quantity"] == "0.10"
        assert body["type"] == "LIMIT"
        assert weights == [(RateLimitKind.REQUEST_WEIGHT, 1), (RateLimitKind.ORDERS, 1)]

    @pytest.mark.asyncio
    async def test_test_order_does_not_count_orders(self, transport, fake_session, weights):
        await Account(transport).test_order("BTCUSDT", OrderSide.SELL, OrderType.MARKET, quantity=1)
        assert fake_session.last.path == "api/v3/order/test"
        assert weights == [(RateLimitKind.REQUEST_WEIGHT, 1)]

    @pytest.mark.asyncio
    async def test_rejected_order(self, transport, fake_session):
        fake_session.add(400, {"code": -2010, "msg": "Account has insufficient balance for requested action."})
        with pytest.raises(NewOrderRejectedError) as exc_info:
            await Account(transport).market_sell("BTCUSDT", 1)
        assert exc_info.value.code == -2010

    @pytest.mark.asyncio
    async def test_validation_happens_before_io(self, transport, fake_session):
        with pytest.raises(ValueError):
            await Account(transport).place_order("BTCUSDT", OrderSide.BUY, OrderType.LIMIT, quantity=1)
        with pytest.raises(ValueError):
            await Account(transport).cancel_order("BTCUSDT")
        assert fake_session.requests == []

    @pytest.mark.asyncio
    async def test_cancel_order_uses_query(self, transport, fake_session):
        fake_session.add(body={"symbol": "BTCUSDT", "origClientOrderId": "abc", "orderId": 5,
                               "clientOrderId": "cancel1", "status": "CANCELED"})
        result = await Account(transport).cancel_order("btcusdt", order_id=5)

        assert result.status is OrderStatus.CANCELED
        assert fake_session.last.method == "DELETE"
        assert keys(fake_session.last.query)[:2] == ["symbol", "orderId"]

    @pytest.mark.asyncio
    async def test_open_orders_weight(self, transport, fake_session, weights):
        fake_session.add(body=[]).add(body=[])
        account = Account(transport)
        await account.open_orders()
        await account.open_orders("BTCUSDT")
        assert weights == [(RateLimitKind.REQUEST_WEIGHT, 80), (RateLimitKind.REQUEST_WEIGHT, 6)]

    @pytest.mark.asyncio
    async def test_get_balance(self, transport, fake_session):
        fake_session.add(body={"balances": [{"asset": "BTC", "free": "1.5", "locked": "0.5"}]})
        balance = await Account(transport).get_balance("btc")
        assert balance.total == Decimal("2.0")


class TestUserStream:

    @pytest.mark.asyncio
    async def test_listen_key_lifecycle(self, transport, fake_session):
        stream = UserStream(transport)
        fake_session.add(body={"listenKey": "pqia91ma19a5s61cv6a81va65sdf19v8a65a1a5s61cv6a81va65sdf19v8a65a1"})
        listen_key = await stream.start()
        await stream.keep_alive(listen_key)
        await stream.close(listen_key)

        methods = [(r.method, r.path) for r in fake_session.requests]
        assert methods == [("POST", "api/v3/userDataStream"), ("PUT", "api/v3/userDataStream"),
                           ("DELETE", "api/v3/userDataStream")]
        start, keep_alive, close = fake_session.requests
        assert start.data is None
        assert dict(parse_qsl(keep_alive.data)) == {"listenKey": listen_key}
        assert close.query == f"listenKey={listen_key}"
        for request in fake_session.requests:
            assert request.headers[API_KEY_HEADER]
            assert "signature" not in (request.data or "") + request.query

    @pytest.mark.asyncio
    async def test_keep_alive_loop(self, transport, fake_session):
        fake_session.fail(aiohttp.ClientConnectionError("reset"))
        fake_session.add(body={})
        fake_session.add(400, {"code": -1125, "msg": "This listen key does not exist."})

        with patch("binance_async.exchanges.binance.rest.user_stream.asyncio.sleep",
                   new_callable=AsyncMock) as sleep:
            with pytest.raises(ExchangeError):
                await UserStream(transport).keep_alive_loop("key", interval=60.0)

        assert sleep.await_count == 3
        sleep.assert_awaited_with(60.0)
        assert len(fake_session.requests) == 3

    @pytest.mark.asyncio
    async def test_transport_errors_surface_from_single_calls(self, transport, fake_session):
        fake_session.fail(aiohttp.ClientConnectionError("reset"))
        with pytest.raises(TransportError):
            await UserStream(transport).keep_alive("key")


class TestMargin:

    @pytest.mark.asyncio
    async def test_isolated_borrow(self, transport, fake_session):
        fake_session.add(body={"tranId": 100000001})
        result = await Margin(transport).borrow("btc", "1.5", symbol="BTCUSDT", is_isolated=True)

        assert result.tran_id == 100000001
        assert fake_session.last.path == "sapi/v1/margin/loan"
        body = parse_qsl(fake_session.last.data)
        assert body[:4] == [("asset", "BTC"), ("isIsolated", "TRUE"), ("symbol", "BTCUSDT"),
                            ("amount", "1.5")]

    @pytest.mark.asyncio
    async def test_isolated_requires_symbol(self, transport, fake_session):
        with pytest.raises(ValueError):
            await Margin(transport).repay("BTC", 1, is_isolated=True)
        assert fake_session.requests == []

    @pytest.mark.asyncio
    async def test_transfer(self, transport, fake_session, weights):
        fake_session.add(body={"tranId": 7})
        await Margin(transport).transfer("usdt", 10, MarginTransferType.MARGIN_TO_SPOT)
        body = dict(parse_qsl(fake_session.last.data))
        assert body["type"] == "2"
        assert weights == [(RateLimitKind.REQUEST_WEIGHT, 600)]

    @pytest.mark.asyncio
    async def test_cross_order_omits_isolated_flag(self, transport, fake_session, weights):
        fake_session.add(body=ORDER_ACK)
        await Margin(transport).place_order("BTCUSDT", OrderSide.BUY, OrderType.MARKET, quantity=1)

        body = dict(parse_qsl(fake_session.last.data))
        assert "isIsolated" not in body
        assert fake_session.last.path == "sapi/v1/margin/order"
        assert (RateLimitKind.ORDERS, 1) in weights


class TestWalletAndSavings:

    @pytest.mark.asyncio
    async def test_system_status_is_public(self, transport, fake_session):
        fake_session.add(body={"status": 0, "msg": "normal"})
        status = await Wallet(transport).system_status()
        assert status.msg == "normal"
        assert API_KEY_HEADER not in fake_session.last.headers

    @pytest.mark.asyncio
    async def test_universal_transfer(self, transport, fake_session, weights):
        fake_session.add(body={"tranId": 13526853623})
        result = await Wallet(transport).universal_transfer(UniversalTransferType.MAIN_UMFUTURE,
                                                            "usdt", "25.5")
        assert result.tran_id == 13526853623
        assert parse_qsl(fake_session.last.data)[:3] == [("type", "MAIN_UMFUTURE"),
                                                         ("asset", "USDT"), ("amount", "25.5")]
        assert weights == [(RateLimitKind.REQUEST_WEIGHT, 900)]

    @pytest.mark.asyncio
    async def test_asset_detail(self, transport, fake_session):
        fake_session.add(body={"CTR": {"minWithdrawAmount": "70.00000000", "depositStatus": False,
                                       "withdrawFee": 35, "withdrawStatus": True,
                                       "depositTip": "Delisted, Deposit Suspended"}})
        details = await Savings(transport).asset_detail()

        assert details["CTR"].withdraw_fee == Decimal("35")
        assert details["CTR"].deposit_status is False
        assert keys(fake_session.last.query) == ["timestamp", "recvWindow", "signature"]


class TestFutures:

    @pytest.fixture
    def futures(self, signer):
        session = FakeSession()
        transport = RestManager(
            RestConfig(base_url="https://fapi.binance.com", server_time_path="/fapi/v1/time"),
            signer=signer, rate_governor=RateGovernor(FUTURES_DEFAULT_LIMITS), session=session,
        )
        return Futures(transport, transport.rate_governor), session

    @pytest.mark.asyncio
    async def test_place_order(self, futures):
        group, session = futures
        session.add(body=FUTURES_ORDER)
        order = await group.account.place_order("btcusdt", OrderSide.SELL,
                                                OrderType.TRAILING_STOP_MARKET, quantity=10,
                                                activation_price=9020, callback_rate="0.3",
                                                position_side=PositionSide.SHORT)

        assert order.order_type is OrderType.TRAILING_STOP_MARKET
        assert order.position_side is PositionSide.SHORT
        request = session.last
        assert request.url == "https://fapi.binance.com/fapi/v1/order"
        assert keys(request.data)[:6] == ["symbol", "side", "positionSide", "type", "quantity",
                                          "activationPrice"]

    @pytest.mark.asyncio
    async def test_depth_weight(self, futures):
        group, session = futures
        governor = group.transport.rate_governor
        session.add(body={"lastUpdateId": 1, "E": 1, "T": 1, "bids": [], "asks": []})
        weights = []
        original = governor.reserve

        def recording(kind, weight=1):
            if kind is RateLimitKind.REQUEST_WEIGHT:
                weights.append(weight)
            return original(kind, weight)

        governor.reserve = recording
        book = await group.market.depth("BTCUSDT", limit=1000)
        assert weights == [20]
        assert book.transaction_time == 1

    @pytest.mark.asyncio
    async def test_listen_key_path(self, futures):
        group, session = futures
        session.add(body={"listenKey": "abc"})
        assert await group.user_stream.start() == "abc"
        assert session.last.path == "fapi/v1/listenKey"

    @pytest.mark.asyncio
    async def test_sync_time_uses_futures_path(self, futures):
        group, session = futures
        session.add(body={"serverTime": 1700000000000})
        await group.transport.sync_time()
        assert session.last.path == "fapi/v1/time"
