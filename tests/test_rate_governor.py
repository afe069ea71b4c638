"""
Rate Governor Tests

Budget admission, window roll-over, server-reported usage and exchangeInfo
limits, driven by a manual clock.
"""

import threading

import pytest

from binance_async.exchanges.binance.structs import RateLimit
from binance_async.infrastructure.networking.http import (
    RateGovernor, RateLimitKind, RatePermit, RateWait,
)


class ManualClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def small_governor(clock):
    return RateGovernor([(RateLimitKind.REQUEST_WEIGHT, 60.0, 10)], clock=clock)


def budget(governor, kind, window):
    for snapshot in governor.snapshot():
        if snapshot.kind is kind and snapshot.window == window:
            return snapshot
    raise KeyError((kind, window))


class TestReservation:

    def test_permit_counts_in_flight_until_released(self, small_governor):
        permit = small_governor.reserve(RateLimitKind.REQUEST_WEIGHT, 4)
        assert isinstance(permit, RatePermit)
        assert budget(small_governor, RateLimitKind.REQUEST_WEIGHT, 60.0).in_flight == 4

        small_governor.release(permit)
        assert budget(small_governor, RateLimitKind.REQUEST_WEIGHT, 60.0).in_flight == 0

    def test_reservation_beyond_limit_is_refused(self, small_governor, clock):
        small_governor.reserve(RateLimitKind.REQUEST_WEIGHT, 8)
        decision = small_governor.reserve(RateLimitKind.REQUEST_WEIGHT, 3)

        assert isinstance(decision, RateWait)
        # Window [960, 1020): 20 seconds left at t=1000
        assert decision.retry_after == pytest.approx(20.0)

    def test_exact_fit_is_admitted(self, small_governor):
        assert isinstance(small_governor.reserve("REQUEST_WEIGHT", 10), RatePermit)
        assert isinstance(small_governor.reserve("REQUEST_WEIGHT", 1), RateWait)

    def test_window_rolls_over(self, small_governor, clock):
        small_governor.record(RateLimitKind.REQUEST_WEIGHT, 10, window=60.0)
        assert isinstance(small_governor.reserve(RateLimitKind.REQUEST_WEIGHT, 1), RateWait)

        clock.advance(20.0)
        assert isinstance(small_governor.reserve(RateLimitKind.REQUEST_WEIGHT, 1), RatePermit)
        assert budget(small_governor, RateLimitKind.REQUEST_WEIGHT, 60.0).used == 0

    def test_every_window_of_a_kind_must_admit(self, clock):
        governor = RateGovernor([
            (RateLimitKind.ORDERS, 10.0, 2),
            (RateLimitKind.ORDERS, 86400.0, 100),
        ], clock=clock)
        governor.record(RateLimitKind.ORDERS, 100, window=86400.0)

        decision = governor.reserve(RateLimitKind.ORDERS, 1)
        assert isinstance(decision, RateWait)
        assert decision.retry_after > 10.0

    def test_kinds_are_independent(self, clock):
        governor = RateGovernor([
            (RateLimitKind.REQUEST_WEIGHT, 60.0, 10),
            (RateLimitKind.ORDERS, 10.0, 1),
        ], clock=clock)
        governor.record(RateLimitKind.ORDERS, 1, window=10.0)

        assert isinstance(governor.reserve(RateLimitKind.ORDERS, 1), RateWait)
        assert isinstance(governor.reserve(RateLimitKind.REQUEST_WEIGHT, 5), RatePermit)

    def test_untracked_kind_is_unlimited(self, small_governor):
        assert isinstance(small_governor.reserve(RateLimitKind.RAW_REQUESTS, 10 ** 6), RatePermit)

    def test_sent_raw_requests_are_counted_locally(self, clock):
        governor = RateGovernor([
            (RateLimitKind.REQUEST_WEIGHT, 60.0, 100),
            (RateLimitKind.RAW_REQUESTS, 300.0, 2),
        ], clock=clock)

        for _ in range(2):
            governor.release(governor.reserve(RateLimitKind.RAW_REQUESTS, 1), sent=True)
        assert budget(governor, RateLimitKind.RAW_REQUESTS, 300.0).used == 2
        assert isinstance(governor.reserve(RateLimitKind.RAW_REQUESTS, 1), RateWait)

        # Window [900, 1200): rolls over 200 seconds later
        clock.advance(200.0)
        assert isinstance(governor.reserve(RateLimitKind.RAW_REQUESTS, 1), RatePermit)

    def test_unsent_raw_request_is_not_counted(self, clock):
        governor = RateGovernor([(RateLimitKind.RAW_REQUESTS, 300.0, 5)], clock=clock)
        governor.release(governor.reserve(RateLimitKind.RAW_REQUESTS, 1))
        state = budget(governor, RateLimitKind.RAW_REQUESTS, 300.0)
        assert state.used == 0
        assert state.in_flight == 0

    def test_header_reported_kinds_are_not_counted_on_release(self, small_governor):
        permit = small_governor.reserve(RateLimitKind.REQUEST_WEIGHT, 4)
        small_governor.release(permit, sent=True)
        assert budget(small_governor, RateLimitKind.REQUEST_WEIGHT, 60.0).used == 0


class TestServerUsage:

    def test_recorded_usage_never_regresses_within_window(self, small_governor):
        small_governor.record(RateLimitKind.REQUEST_WEIGHT, 7, window=60.0)
        small_governor.record(RateLimitKind.REQUEST_WEIGHT, 3, window=60.0)
        assert budget(small_governor, RateLimitKind.REQUEST_WEIGHT, 60.0).used == 7

    def test_new_window_accepts_lower_value(self, small_governor, clock):
        small_governor.record(RateLimitKind.REQUEST_WEIGHT, 7, window=60.0)
        clock.advance(60.0)
        small_governor.record(RateLimitKind.REQUEST_WEIGHT, 2, window=60.0)
        assert budget(small_governor, RateLimitKind.REQUEST_WEIGHT, 60.0).used == 2

    def test_headers_create_unknown_windows(self, small_governor):
        small_governor.record_headers({
            "X-MBX-USED-WEIGHT-1M": "5",
            "X-MBX-ORDER-COUNT-1D": "12",
            "X-MBX-USED-WEIGHT-1S": "oops",
            "Content-Type": "application/json",
        })
        assert budget(small_governor, RateLimitKind.REQUEST_WEIGHT, 60.0).used == 5
        orders = budget(small_governor, RateLimitKind.ORDERS, 86400.0)
        assert orders.used == 12
        assert orders.limit is None
        with pytest.raises(KeyError):
            budget(small_governor, RateLimitKind.REQUEST_WEIGHT, 1.0)

    def test_penalty_blocks_every_kind(self, small_governor, clock):
        small_governor.penalize(30.0)

        decision = small_governor.reserve(RateLimitKind.ORDERS, 1)
        assert isinstance(decision, RateWait)
        assert decision.retry_after == pytest.approx(30.0)

        clock.advance(31.0)
        assert isinstance(small_governor.reserve(RateLimitKind.REQUEST_WEIGHT, 1), RatePermit)
        assert small_governor.penalty_remaining == 0.0

    def test_shorter_penalty_does_not_shorten_existing_one(self, small_governor):
        small_governor.penalize(30.0)
        small_governor.penalize(5.0)
        assert small_governor.penalty_remaining == pytest.approx(30.0)


class TestExchangeLimits:

    def test_structs_replace_windows_of_advertised_kinds(self, clock):
        governor = RateGovernor(clock=clock)
        governor.apply_exchange_limits([
            RateLimit(rate_limit_type="REQUEST_WEIGHT", interval="MINUTE", interval_num=1, limit=1200),
            RateLimit(rate_limit_type="ORDERS", interval="SECOND", interval_num=10, limit=50),
        ])

        windows = {(s.kind, s.window): s.limit for s in governor.snapshot()}
        assert windows[(RateLimitKind.REQUEST_WEIGHT, 60.0)] == 1200
        assert windows[(RateLimitKind.ORDERS, 10.0)] == 50
        # The daily order window was not advertised, so it is gone
        assert (RateLimitKind.ORDERS, 86400.0) not in windows
        # RAW_REQUESTS was not advertised at all and keeps its default
        assert windows[(RateLimitKind.RAW_REQUESTS, 300.0)] == 61000

    def test_mappings_and_unknown_types(self, clock):
        governor = RateGovernor([], clock=clock)
        governor.apply_exchange_limits([
            {"rateLimitType": "REQUEST_WEIGHT", "interval": "MINUTE", "intervalNum": 1, "limit": 2400},
            {"rateLimitType": "CONNECTIONS", "interval": "MINUTE", "intervalNum": 5, "limit": 300},
        ])
        assert [(s.kind, s.window, s.limit) for s in governor.snapshot()] == [
            (RateLimitKind.REQUEST_WEIGHT, 60.0, 2400),
        ]

    def test_surviving_window_keeps_its_counter(self, small_governor):
        small_governor.record(RateLimitKind.REQUEST_WEIGHT, 9, window=60.0)
        small_governor.apply_exchange_limits([
            {"rateLimitType": "REQUEST_WEIGHT", "interval": "MINUTE", "limit": 20},
        ])
        state = budget(small_governor, RateLimitKind.REQUEST_WEIGHT, 60.0)
        assert state.used == 9
        assert state.limit == 20


class TestConcurrency:

    def test_parallel_reservations_never_exceed_limit(self, clock):
        governor = RateGovernor([(RateLimitKind.REQUEST_WEIGHT, 60.0, 500)], clock=clock)
        admitted = []
        lock = threading.Lock()

        def worker():
            for _ in range(100):
                if isinstance(governor.reserve(RateLimitKind.REQUEST_WEIGHT, 1), RatePermit):
                    with lock:
                        admitted.append(1)

        threads = [threading.Thread(target=worker) for _ in range(10)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(admitted) == 500
        assert budget(governor, RateLimitKind.REQUEST_WEIGHT, 60.0).in_flight == 500
