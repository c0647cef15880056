"""
TradeDesk - Circuit Breaker Registry

Per-dependency failure isolation. Each named external dependency gets a
breaker that moves through closed -> open -> half-open -> closed:

    closed     calls pass through; counts accumulate over a rolling window
    open       calls fail fast with BreakerOpenError until the cooldown ends
    half-open  a bounded number of trial calls decide between closed and open

Breakers are created lazily by a CircuitBreakerRegistry, which is an
explicit handle constructed once per process and passed to call sites.
"""

from __future__ import annotations

import asyncio
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, TypeVar

from tradedesk import metrics
from tradedesk.config import CircuitBreakerConfig
from tradedesk.exceptions import BreakerOpenError, TooManyRequestsError
from tradedesk.logging import get_logger

logger = get_logger(__name__, component="circuit_breaker")

T = TypeVar("T")

StateChangeCallback = Callable[[str, "CircuitState", "CircuitState"], None]

# Breaker names for external services
BREAKER_LLM = "llm"
BREAKER_FUNDAMENTALS = "fundamentals"
BREAKER_NEWS = "news"
BREAKER_MARKET_DATA = "market_data"


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "closed"
    HALF_OPEN = "half_open"
    OPEN = "open"

    @property
    def gauge_value(self) -> int:
        """Numeric encoding used by the state gauge."""
        return {"closed": 0, "half_open": 1, "open": 2}[self.value]


@dataclass
class BreakerCounts:
    """Request counts for the current breaker generation."""

    requests: int = 0
    total_successes: int = 0
    total_failures: int = 0
    consecutive_successes: int = 0
    consecutive_failures: int = 0

    def on_request(self) -> None:
        self.requests += 1

    def on_success(self) -> None:
        self.total_successes += 1
        self.consecutive_successes += 1
        self.consecutive_failures = 0

    def on_failure(self) -> None:
        self.total_failures += 1
        self.consecutive_failures += 1
        self.consecutive_successes = 0

    def clear(self) -> None:
        self.requests = 0
        self.total_successes = 0
        self.total_failures = 0
        self.consecutive_successes = 0
        self.consecutive_failures = 0

    @property
    def failure_ratio(self) -> float:
        if self.requests == 0:
            return 0.0
        return self.total_failures / self.requests


@dataclass
class BreakerStatus:
    """Point-in-time snapshot of one breaker."""

    name: str
    state: CircuitState
    requests: int
    total_successes: int
    total_failures: int
    consecutive_successes: int
    consecutive_failures: int

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["state"] = self.state.value
        return data


class CircuitBreaker:
    """
    Circuit breaker for one named dependency.

    Every admitted call belongs to a generation; a generation ends on each
    state change and when the closed-state window expires. Results that
    arrive for an old generation are ignored, so a slow call started before
    a trip cannot close the breaker again.
    """

    def __init__(
        self,
        name: str,
        config: CircuitBreakerConfig | None = None,
        on_state_change: StateChangeCallback | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self.config = config or CircuitBreakerConfig()
        self._on_state_change = on_state_change
        self._clock = clock
        self._lock = threading.Lock()
        self._transitions: list[tuple[CircuitState, CircuitState]] = []
        self._state = CircuitState.CLOSED
        self._counts = BreakerCounts()
        self._generation = 0
        self._expiry = 0.0
        self._new_generation(self._clock())

    @property
    def state(self) -> CircuitState:
        """Current state, applying any expired timeout first."""
        with self._locked():
            state, _ = self._current_state(self._clock())
            return state

    @property
    def counts(self) -> BreakerCounts:
        """Copy of the counts for the current generation."""
        with self._locked():
            self._current_state(self._clock())
            return BreakerCounts(**asdict(self._counts))

    def ready_to_trip(self, counts: BreakerCounts) -> bool:
        return (
            counts.requests >= self.config.min_requests
            and counts.failure_ratio >= self.config.failure_ratio
        )

    async def call(self, fn: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """
        Run ``fn`` through the breaker.

        Raises:
            BreakerOpenError: The breaker is open; ``fn`` was not called.
            TooManyRequestsError: The half-open trial budget is spent.
        """
        generation = self._before_request()
        try:
            result = await fn(*args, **kwargs)
        except asyncio.CancelledError:
            # Cancellation says nothing about the dependency's health
            raise
        except Exception:
            self._after_request(generation, success=False)
            raise
        self._after_request(generation, success=True)
        return result

    def _before_request(self) -> int:
        with self._locked():
            state, generation = self._current_state(self._clock())
            if state == CircuitState.OPEN:
                logger.warning("circuit_breaker_rejected", breaker=self.name, state=state.value)
                raise BreakerOpenError(self.name)
            if (
                state == CircuitState.HALF_OPEN
                and self._counts.requests >= self.config.max_requests
            ):
                logger.warning("circuit_breaker_rejected", breaker=self.name, state=state.value)
                raise TooManyRequestsError(self.name)
            self._counts.on_request()
            return generation

    def _after_request(self, before: int, success: bool) -> None:
        with self._locked():
            now = self._clock()
            state, generation = self._current_state(now)
            if generation != before:
                return
            if success:
                self._on_success(state, now)
            else:
                self._on_failure(state, now)

    def _on_success(self, state: CircuitState, now: float) -> None:
        self._counts.on_success()
        if (
            state == CircuitState.HALF_OPEN
            and self._counts.consecutive_successes >= self.config.max_requests
        ):
            self._set_state(CircuitState.CLOSED, now)

    def _on_failure(self, state: CircuitState, now: float) -> None:
        self._counts.on_failure()
        if state == CircuitState.CLOSED:
            if self.ready_to_trip(self._counts):
                self._set_state(CircuitState.OPEN, now)
        elif state == CircuitState.HALF_OPEN:
            self._set_state(CircuitState.OPEN, now)

    @contextmanager
    def _locked(self) -> Iterator[None]:
        """Hold the lock, then report queued state changes once it is released."""
        pending: list[tuple[CircuitState, CircuitState]] = []
        try:
            with self._lock:
                try:
                    yield
                finally:
                    pending, self._transitions = self._transitions, []
        finally:
            if self._on_state_change is not None:
                for previous, current in pending:
                    self._on_state_change(self.name, previous, current)

    # Must be called with the lock held
    def _current_state(self, now: float) -> tuple[CircuitState, int]:
        if self._state == CircuitState.CLOSED:
            if self._expiry and self._expiry <= now:
                self._new_generation(now)
        elif self._state == CircuitState.OPEN:
            if self._expiry <= now:
                self._set_state(CircuitState.HALF_OPEN, now)
        return self._state, self._generation

    def _set_state(self, state: CircuitState, now: float) -> None:
        if self._state == state:
            return
        self._transitions.append((self._state, state))
        self._state = state
        self._new_generation(now)

    def _new_generation(self, now: float) -> None:
        self._generation += 1
        self._counts.clear()
        if self._state == CircuitState.CLOSED:
            self._expiry = now + self.config.interval if self.config.interval > 0 else 0.0
        elif self._state == CircuitState.OPEN:
            self._expiry = now + self.config.timeout
        else:
            self._expiry = 0.0


def report_state_change(name: str, previous: CircuitState, current: CircuitState) -> None:
    """Log a breaker transition and publish it to metrics."""
    logger.warning(
        "circuit_breaker_state_change",
        breaker=name,
        from_state=previous.value,
        to_state=current.value,
    )
    metrics.set_circuit_breaker_state(name, current.gauge_value)
    if current == CircuitState.OPEN:
        metrics.record_circuit_breaker_trip(name)


class CircuitBreakerRegistry:
    """
    Lazily-populated map of named circuit breakers.

    Usage:
        registry = CircuitBreakerRegistry(settings.breaker)
        text = await registry.call(BREAKER_LLM, llm.ainvoke, messages)
    """

    def __init__(
        self,
        config: CircuitBreakerConfig | None = None,
        on_state_change: StateChangeCallback | None = report_state_change,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or CircuitBreakerConfig()
        self._on_state_change = on_state_change
        self._clock = clock
        self._lock = threading.Lock()
        self._breakers: dict[str, CircuitBreaker] = {}

    def get_breaker(self, name: str) -> CircuitBreaker:
        """Return the breaker for ``name``, creating it on first use."""
        breaker = self._breakers.get(name)
        if breaker is not None:
            return breaker

        with self._lock:
            # Another caller may have created it while we waited
            breaker = self._breakers.get(name)
            if breaker is None:
                breaker = CircuitBreaker(
                    name,
                    self.config,
                    on_state_change=self._on_state_change,
                    clock=self._clock,
                )
                self._breakers[name] = breaker
                logger.debug("circuit_breaker_created", breaker=name)
            return breaker

    async def call(
        self,
        name: str,
        fn: Callable[..., Awaitable[T]],
        *args: Any,
        **kwargs: Any,
    ) -> T:
        """Run ``fn`` through the breaker named ``name``."""
        return await self.get_breaker(name).call(fn, *args, **kwargs)

    def status(self) -> dict[str, BreakerStatus]:
        """Snapshot of every breaker created so far."""
        with self._lock:
            breakers = list(self._breakers.values())

        status: dict[str, BreakerStatus] = {}
        for breaker in breakers:
            state = breaker.state
            counts = breaker.counts
            status[breaker.name] = BreakerStatus(
                name=breaker.name,
                state=state,
                requests=counts.requests,
                total_successes=counts.total_successes,
                total_failures=counts.total_failures,
                consecutive_successes=counts.consecutive_successes,
                consecutive_failures=counts.consecutive_failures,
            )
        return status

    def __contains__(self, name: str) -> bool:
        return name in self._breakers

    def __len__(self) -> int:
        return len(self._breakers)
