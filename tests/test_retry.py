"""Retry decorator tests."""

from unittest.mock import AsyncMock, patch

import pytest

from binance_async.infrastructure.decorators import retry_decorator, retry_with_backoff
from binance_async.infrastructure.exceptions import (
    DecodeError, ExchangeError, RateLimited, TooManyRequestsError, TransportError,
)


@pytest.fixture
def sleep():
    with patch("binance_async.infrastructure.decorators.retry.asyncio.sleep",
               new_callable=AsyncMock) as mocked:
        yield mocked


class TestRetryDecorator:

    @pytest.mark.asyncio
    async def test_transport_error_is_retried(self, sleep):
        call = AsyncMock(side_effect=[TransportError("reset"), TransportError("reset"), "ok"])

        @retry_decorator(max_attempts=3, base_delay=0.1)
        async def fetch():
            return await call()

        assert await fetch() == "ok"
        assert call.await_count == 3
        assert [c.args[0] for c in sleep.await_args_list] == [0.1, 0.2]

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self, sleep):
        call = AsyncMock(side_effect=TransportError("down"))

        @retry_decorator(max_attempts=2)
        async def fetch():
            return await call()

        with pytest.raises(TransportError):
            await fetch()
        assert call.await_count == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        ExchangeError(-1121, "Invalid symbol."),
        TooManyRequestsError(-1003, "Too much request weight used.", 429, retry_after=1.0),
        DecodeError("bad body"),
    ])
    async def test_exchange_and_decode_errors_are_not_retried(self, sleep, error):
        call = AsyncMock(side_effect=error)

        @retry_decorator(max_attempts=5)
        async def fetch():
            return await call()

        with pytest.raises(type(error)):
            await fetch()
        assert call.await_count == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rate_limited_waits_retry_after(self, sleep):
        call = AsyncMock(side_effect=[RateLimited(1.5, "REQUEST_WEIGHT"), "ok"])

        @retry_decorator(max_attempts=3, max_delay=10.0)
        async def fetch():
            return await call()

        assert await fetch() == "ok"
        sleep.assert_awaited_once_with(1.5)

    @pytest.mark.asyncio
    async def test_rate_limited_wait_is_capped(self, sleep):
        call = AsyncMock(side_effect=[RateLimited(30.0), "ok"])

        @retry_decorator(max_attempts=3, max_delay=2.0)
        async def fetch():
            return await call()

        await fetch()
        sleep.assert_awaited_once_with(2.0)

    @pytest.mark.asyncio
    async def test_rate_limited_not_retried_when_disabled(self, sleep):
        call = AsyncMock(side_effect=RateLimited(1.0))

        @retry_decorator(max_attempts=3, retry_rate_limited=False)
        async def fetch():
            return await call()

        with pytest.raises(RateLimited):
            await fetch()
        assert call.await_count == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("backoff,expected", [
        ("exponential", [0.5, 1.0, 2.0]),
        ("linear", [0.5, 1.0, 1.5]),
        ("fixed", [0.5, 0.5, 0.5]),
    ])
    async def test_backoff_strategies(self, sleep, backoff, expected):
        call = AsyncMock(side_effect=[TransportError("x")] * 3 + ["ok"])

        @retry_decorator(max_attempts=4, backoff=backoff, base_delay=0.5, max_delay=10.0)
        async def fetch():
            return await call()

        await fetch()
        assert [c.args[0] for c in sleep.await_args_list] == expected

    @pytest.mark.asyncio
    async def test_retry_with_backoff_defaults(self, sleep):
        call = AsyncMock(side_effect=[TransportError("x"), "ok"])

        @retry_with_backoff(attempts=2, initial_delay=0.25)
        async def fetch():
            return await call()

        assert await fetch() == "ok"
        sleep.assert_awaited_once_with(0.25)

    def test_invalid_attempts(self):
        with pytest.raises(ValueError):
            retry_decorator(max_attempts=0)

    def test_wraps_preserves_name(self):
        @retry_decorator()
        async def fetch_depth():
            return None

        assert fetch_depth.__name__ == "fetch_depth"
