"""
TradeDesk - Prometheus Metrics

Counters, histograms and gauges for analysis requests, agents,
recommendations, external calls and circuit breakers. Purely a side
channel: nothing in the core reads these back.
"""

from __future__ import annotations

import time
from types import TracebackType

from prometheus_client import Counter, Gauge, Histogram

DURATION_BUCKETS = [0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, 30]
SCORE_BUCKETS = [-100, -75, -50, -25, 0, 25, 50, 75, 100]
CONFIDENCE_BUCKETS = [0, 10, 20, 30, 40, 50, 60, 70, 80, 90, 100]

# Analysis
analysis_requests_total = Counter(
    "tradedesk_analysis_requests_total",
    "Total number of symbol analysis requests",
    ["symbol"],
)

analysis_errors_total = Counter(
    "tradedesk_analysis_errors_total",
    "Analysis requests that failed",
    ["symbol", "reason"],
)

analysis_duration_seconds = Histogram(
    "tradedesk_analysis_duration_seconds",
    "End-to-end analysis latency",
    ["symbol", "status"],
    buckets=DURATION_BUCKETS,
)

# Agents
agent_duration_seconds = Histogram(
    "tradedesk_agent_duration_seconds",
    "Per-agent analysis latency",
    ["agent_type"],
    buckets=DURATION_BUCKETS,
)

agent_errors_total = Counter(
    "tradedesk_agent_errors_total",
    "Agent analysis failures by category",
    ["agent_type", "category"],
)

agent_scores = Histogram(
    "tradedesk_agent_scores",
    "Scores reported by agents",
    ["agent_type"],
    buckets=SCORE_BUCKETS,
)

# Recommendations
recommendation_actions_total = Counter(
    "tradedesk_recommendation_actions_total",
    "Recommendations produced by action",
    ["action"],
)

recommendation_scores = Histogram(
    "tradedesk_recommendation_scores",
    "Final recommendation scores",
    ["action"],
    buckets=SCORE_BUCKETS,
)

recommendation_confidence = Histogram(
    "tradedesk_recommendation_confidence",
    "Final recommendation confidence",
    ["action"],
    buckets=CONFIDENCE_BUCKETS,
)

# External calls
external_requests_total = Counter(
    "tradedesk_external_requests_total",
    "Calls made to external services",
    ["service", "operation"],
)

external_errors_total = Counter(
    "tradedesk_external_errors_total",
    "Failed calls to external services",
    ["service", "operation", "category"],
)

external_duration_seconds = Histogram(
    "tradedesk_external_duration_seconds",
    "External call latency",
    ["service", "operation"],
    buckets=DURATION_BUCKETS,
)

# Circuit breakers
circuit_breaker_state = Gauge(
    "tradedesk_circuit_breaker_state",
    "Circuit breaker state (0=closed, 1=half-open, 2=open)",
    ["breaker"],
)

circuit_breaker_trips_total = Counter(
    "tradedesk_circuit_breaker_trips_total",
    "Transitions into the open state",
    ["breaker"],
)


class Timer:
    """Context manager measuring elapsed wall time in seconds."""

    def __init__(self) -> None:
        self._start = time.perf_counter()
        self.elapsed = 0.0

    def __enter__(self) -> Timer:
        self._start = time.perf_counter()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.stop()

    def stop(self) -> float:
        self.elapsed = time.perf_counter() - self._start
        return self.elapsed


def record_analysis_request(symbol: str) -> None:
    analysis_requests_total.labels(symbol=symbol).inc()


def observe_analysis(symbol: str, status: str, seconds: float) -> None:
    analysis_duration_seconds.labels(symbol=symbol, status=status).observe(seconds)


def record_analysis_error(symbol: str, reason: str) -> None:
    analysis_errors_total.labels(symbol=symbol, reason=reason).inc()


def observe_agent(agent_type: str, seconds: float) -> None:
    agent_duration_seconds.labels(agent_type=agent_type).observe(seconds)


def record_agent_error(agent_type: str, category: str) -> None:
    agent_errors_total.labels(agent_type=agent_type, category=category).inc()


def record_agent_score(agent_type: str, score: float) -> None:
    agent_scores.labels(agent_type=agent_type).observe(score)


def record_recommendation(action: str, score: float, confidence: float) -> None:
    recommendation_actions_total.labels(action=action).inc()
    recommendation_scores.labels(action=action).observe(score)
    recommendation_confidence.labels(action=action).observe(confidence)


def record_external_request(service: str, operation: str) -> None:
    external_requests_total.labels(service=service, operation=operation).inc()


def record_external_error(service: str, operation: str, category: str) -> None:
    external_errors_total.labels(service=service, operation=operation, category=category).inc()


def observe_external(service: str, operation: str, seconds: float) -> None:
    external_duration_seconds.labels(service=service, operation=operation).observe(seconds)


def set_circuit_breaker_state(name: str, state: int) -> None:
    circuit_breaker_state.labels(breaker=name).set(state)


def record_circuit_breaker_trip(name: str) -> None:
    circuit_breaker_trips_total.labels(breaker=name).inc()


__all__ = [
    "Timer",
    "record_analysis_request",
    "observe_analysis",
    "record_analysis_error",
    "observe_agent",
    "record_agent_error",
    "record_agent_score",
    "record_recommendation",
    "record_external_request",
    "record_external_error",
    "observe_external",
    "set_circuit_breaker_state",
    "record_circuit_breaker_trip",
]
