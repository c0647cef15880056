"""
TradeDesk - Resilience Layer

Circuit breakers and retry-with-backoff for calls to external dependencies.
"""

from tradedesk.resilience.circuit_breaker import (
    BREAKER_FUNDAMENTALS,
    BREAKER_LLM,
    BREAKER_MARKET_DATA,
    BREAKER_NEWS,
    BreakerCounts,
    BreakerStatus,
    CircuitBreaker,
    CircuitBreakerRegistry,
    CircuitState,
)
from tradedesk.resilience.retry import with_retry

__all__ = [
    "BREAKER_FUNDAMENTALS",
    "BREAKER_LLM",
    "BREAKER_MARKET_DATA",
    "BREAKER_NEWS",
    "BreakerCounts",
    "BreakerStatus",
    "CircuitBreaker",
    "CircuitBreakerRegistry",
    "CircuitState",
    "with_retry",
]
