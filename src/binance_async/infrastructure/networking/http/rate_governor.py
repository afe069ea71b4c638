"""
Rate Governor

Tracks request budgets communicated by the exchange (``exchangeInfo.rateLimits``
and the ``X-MBX-USED-WEIGHT-*`` / ``X-MBX-ORDER-COUNT-*`` response headers) and
refuses to send requests that would exceed them. It never invents limits of
its own beyond the documented defaults used before exchangeInfo is loaded.

Budgets are keyed by ``(kind, window seconds)``; windows are aligned to the
wall clock the same way the exchange counts them (e.g. minute boundaries).
"""

import math
import re
import threading
import time
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

import msgspec

from binance_async.infrastructure.logging import get_logger, HFTLoggerInterface


class RateLimitKind(str, Enum):
    """Binance ``rateLimitType`` values."""
    REQUEST_WEIGHT = "REQUEST_WEIGHT"
    ORDERS = "ORDERS"
    RAW_REQUESTS = "RAW_REQUESTS"


INTERVAL_SECONDS = {
    "SECOND": 1,
    "MINUTE": 60,
    "HOUR": 3600,
    "DAY": 86400,
}

_HEADER_UNIT_SECONDS = {"S": 1, "M": 60, "H": 3600, "D": 86400}
_USAGE_HEADER = re.compile(r"^x-mbx-(used-weight|order-count)-(\d+)([smhd])$", re.IGNORECASE)
_HEADER_KIND = {
    "used-weight": RateLimitKind.REQUEST_WEIGHT,
    "order-count": RateLimitKind.ORDERS,
}
# No usage header reports these; sent requests are counted locally
_LOCALLY_COUNTED = frozenset({RateLimitKind.RAW_REQUESTS})

# (kind, window seconds, limit)
SPOT_DEFAULT_LIMITS: Tuple[Tuple[RateLimitKind, float, int], ...] = (
    (RateLimitKind.REQUEST_WEIGHT, 60.0, 6000),
    (RateLimitKind.ORDERS, 10.0, 100),
    (RateLimitKind.ORDERS, 86400.0, 200000),
    (RateLimitKind.RAW_REQUESTS, 300.0, 61000),
)

FUTURES_DEFAULT_LIMITS: Tuple[Tuple[RateLimitKind, float, int], ...] = (
    (RateLimitKind.REQUEST_WEIGHT, 60.0, 2400),
    (RateLimitKind.ORDERS, 60.0, 1200),
    (RateLimitKind.ORDERS, 10.0, 300),
)


class RatePermit(msgspec.Struct, frozen=True):
    """Successful reservation; hand back to ``release`` once the response arrived."""
    kind: RateLimitKind
    weight: int
    windows: Tuple[float, ...]


class RateWait(msgspec.Struct, frozen=True):
    """Refused reservation."""
    kind: RateLimitKind
    retry_after: float


class BudgetSnapshot(msgspec.Struct, frozen=True):
    kind: RateLimitKind
    window: float
    window_start: float
    used: int
    in_flight: int
    limit: Optional[int]


class RateBudget:
    """Counter for one (kind, window) pair. Mutated only under ``lock``."""

    __slots__ = ("kind", "window", "limit", "used", "in_flight", "window_start", "lock")

    def __init__(self, kind: RateLimitKind, window: float, limit: Optional[int], now: float):
        self.kind = kind
        self.window = window
        self.limit = limit
        self.used = 0
        self.in_flight = 0
        self.window_start = self._aligned(now)
        self.lock = threading.Lock()

    def _aligned(self, now: float) -> float:
        return math.floor(now / self.window) * self.window

    def roll(self, now: float) -> None:
        start = self._aligned(now)
        if start > self.window_start:
            self.window_start = start
            self.used = 0

    def remaining_time(self, now: float) -> float:
        return max(0.0, self.window_start + self.window - now)

    def would_exceed(self, weight: int) -> bool:
        if self.limit is None:
            return False
        return self.used + self.in_flight + weight > self.limit

    def snapshot(self) -> BudgetSnapshot:
        return BudgetSnapshot(
            kind=self.kind,
            window=self.window,
            window_start=self.window_start,
            used=self.used,
            in_flight=self.in_flight,
            limit=self.limit,
        )


class RateGovernor:
    """
    Non-blocking admission control for REST requests.

    Thread-safe: every budget carries its own lock; multi-window checks take
    the locks of one kind in ascending window order.
    """

    def __init__(self, default_limits: Iterable[Tuple[RateLimitKind, float, int]] = SPOT_DEFAULT_LIMITS,
                 clock: Callable[[], float] = time.time,
                 logger: Optional[HFTLoggerInterface] = None):
        self._clock = clock
        self.logger = logger or get_logger("rest.rate_governor")

        self._budgets: Dict[Tuple[RateLimitKind, float], RateBudget] = {}
        self._registry_lock = threading.Lock()

        self._penalty_until = 0.0
        self._penalty_lock = threading.Lock()

        now = self._clock()
        for kind, window, limit in default_limits:
            self._budgets[(RateLimitKind(kind), float(window))] = RateBudget(
                RateLimitKind(kind), float(window), limit, now
            )

    def _budgets_for(self, kind: RateLimitKind) -> List[RateBudget]:
        with self._registry_lock:
            budgets = [b for (k, _), b in self._budgets.items() if k == kind]
        budgets.sort(key=lambda b: b.window)
        return budgets

    def _get_or_create(self, kind: RateLimitKind, window: float, limit: Optional[int]) -> RateBudget:
        key = (kind, float(window))
        with self._registry_lock:
            budget = self._budgets.get(key)
            if budget is None:
                budget = RateBudget(kind, float(window), limit, self._clock())
                self._budgets[key] = budget
            return budget

    def reserve(self, kind: Union[RateLimitKind, str], weight: int = 1) -> Union[RatePermit, RateWait]:
        """
        Try to reserve ``weight`` against every window tracked for ``kind``.

        Returns a RatePermit (weight now counted as in flight) or a RateWait
        carrying the longest time until a blocking window rolls over.
        """
        kind = RateLimitKind(kind)
        now = self._clock()

        with self._penalty_lock:
            penalty = self._penalty_until - now
        if penalty > 0:
            return RateWait(kind=kind, retry_after=penalty)

        budgets = self._budgets_for(kind)
        for budget in budgets:
            budget.lock.acquire()
        try:
            retry_after = 0.0
            blocked = False
            for budget in budgets:
                budget.roll(now)
                if budget.would_exceed(weight):
                    blocked = True
                    retry_after = max(retry_after, budget.remaining_time(now))

            if blocked:
                return RateWait(kind=kind, retry_after=retry_after)

            for budget in budgets:
                budget.in_flight += weight
            return RatePermit(kind=kind, weight=weight, windows=tuple(b.window for b in budgets))
        finally:
            for budget in reversed(budgets):
                budget.lock.release()

    def release(self, permit: RatePermit, sent: bool = False) -> None:
        """
        Drop the in-flight weight of a permit.

        ``sent`` marks a request that reached the wire. RAW_REQUESTS has no
        usage header, so a sent request is added to its ``used`` counter here.
        """
        count_locally = sent and permit.kind in _LOCALLY_COUNTED
        now = self._clock()
        for window in permit.windows:
            with self._registry_lock:
                budget = self._budgets.get((permit.kind, window))
            if budget is None:
                continue
            with budget.lock:
                budget.in_flight = max(0, budget.in_flight - permit.weight)
                if count_locally:
                    budget.roll(now)
                    budget.used += permit.weight

    def record(self, kind: Union[RateLimitKind, str], used: int,
               limit: Optional[int] = None, window: float = 60.0) -> None:
        """
        Apply a server-reported usage value.

        Within one window the value never regresses, so late responses
        carrying older counts cannot undo newer ones. A new window resets
        the counter to the reported value.
        """
        kind = RateLimitKind(kind)
        budget = self._get_or_create(kind, window, limit)
        now = self._clock()
        with budget.lock:
            budget.roll(now)
            budget.used = max(budget.used, int(used))
            if limit is not None:
                budget.limit = int(limit)

    def penalize(self, retry_after: float) -> None:
        """Honour a server-issued Retry-After: all reservations wait until it elapses."""
        if retry_after <= 0:
            return
        until = self._clock() + retry_after
        with self._penalty_lock:
            if until > self._penalty_until:
                self._penalty_until = until
        self.logger.warning("Server requested backoff", retry_after=retry_after)
        self.logger.counter("rate_limit_penalties")

    def record_headers(self, headers: Mapping[str, str]) -> None:
        """Parse X-MBX-USED-WEIGHT-<n><unit> / X-MBX-ORDER-COUNT-<n><unit> headers."""
        for name, value in headers.items():
            match = _USAGE_HEADER.match(name)
            if match is None:
                continue
            kind = _HEADER_KIND[match.group(1).lower()]
            window = int(match.group(2)) * _HEADER_UNIT_SECONDS[match.group(3).upper()]
            try:
                used = int(value)
            except (TypeError, ValueError):
                self.logger.debug("Ignoring malformed usage header", header=name, value=value)
                continue
            self.record(kind, used, window=float(window))

    def apply_exchange_limits(self, rate_limits: Iterable[Any]) -> None:
        """
        Load limits advertised by exchangeInfo.

        Accepts RateLimit structs or plain mappings with ``rateLimitType``,
        ``interval``, ``intervalNum`` and ``limit``. For every advertised kind
        the set of windows is replaced; counters of windows that survive are kept.
        """
        advertised: Dict[RateLimitKind, List[Tuple[float, int]]] = {}
        for item in rate_limits:
            if isinstance(item, Mapping):
                kind_name = item["rateLimitType"]
                interval = item["interval"]
                interval_num = item.get("intervalNum", 1)
                limit = item["limit"]
            else:
                kind_name = item.rate_limit_type
                interval = item.interval
                interval_num = item.interval_num
                limit = item.limit
            try:
                kind = RateLimitKind(kind_name)
            except ValueError:
                self.logger.debug("Ignoring unknown rate limit type", rate_limit_type=kind_name)
                continue
            window = float(INTERVAL_SECONDS[str(interval).upper()] * int(interval_num))
            advertised.setdefault(kind, []).append((window, int(limit)))

        now = self._clock()
        with self._registry_lock:
            for kind, windows in advertised.items():
                stale = [key for key in self._budgets if key[0] == kind
                         and key[1] not in {w for w, _ in windows}]
                for key in stale:
                    del self._budgets[key]
                for window, limit in windows:
                    budget = self._budgets.get((kind, window))
                    if budget is None:
                        self._budgets[(kind, window)] = RateBudget(kind, window, limit, now)
                    else:
                        with budget.lock:
                            budget.limit = limit

        self.logger.info("Applied exchange rate limits",
                         limits={k.value: v for k, v in advertised.items()})

    def snapshot(self) -> List[BudgetSnapshot]:
        """Read-only view of all budgets, ordered by kind and window."""
        with self._registry_lock:
            budgets = list(self._budgets.values())
        result = []
        now = self._clock()
        for budget in budgets:
            with budget.lock:
                budget.roll(now)
                result.append(budget.snapshot())
        result.sort(key=lambda s: (s.kind.value, s.window))
        return result

    @property
    def penalty_remaining(self) -> float:
        with self._penalty_lock:
            return max(0.0, self._penalty_until - self._clock())
