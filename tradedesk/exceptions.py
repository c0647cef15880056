"""
TradeDesk - Exception Hierarchy

Request-level failures raised by the orchestrator and short-circuit
failures raised by the resilience layer.
"""

from __future__ import annotations


class TradeDeskError(Exception):
    """Base class for all TradeDesk errors."""


# =============================================================================
# Request-level errors (escape AgentOrchestrator.analyze_symbol)
# =============================================================================

class AnalysisError(TradeDeskError):
    """Base for errors that fail a whole analysis request."""

    def __init__(self, symbol: str, message: str) -> None:
        self.symbol = symbol
        super().__init__(message)


class NoAgentsAvailableError(AnalysisError):
    """Raised when no agent passed its availability check."""

    def __init__(self, symbol: str) -> None:
        super().__init__(symbol, f"no agents available to analyze {symbol}")


class AllAgentsFailedError(AnalysisError):
    """Raised when every available agent failed."""

    def __init__(self, symbol: str, failures: int = 0) -> None:
        self.failures = failures
        super().__init__(symbol, f"all agents failed to analyze {symbol}")


class PersistenceError(AnalysisError):
    """Raised when a synthesized recommendation could not be recorded."""

    def __init__(self, symbol: str, cause: BaseException) -> None:
        self.cause = cause
        super().__init__(symbol, f"failed to save recommendation for {symbol}: {cause}")


# =============================================================================
# Resilience errors
# =============================================================================

class CircuitBreakerError(TradeDeskError):
    """Raised when a breaker short-circuits a call."""

    def __init__(self, name: str, message: str) -> None:
        self.name = name
        super().__init__(message)


class BreakerOpenError(CircuitBreakerError):
    """The named breaker is open; the call was not attempted."""

    def __init__(self, name: str) -> None:
        super().__init__(name, f"service {name} unavailable: circuit breaker open")


class TooManyRequestsError(CircuitBreakerError):
    """The named breaker is half-open and its trial budget is spent."""

    def __init__(self, name: str) -> None:
        super().__init__(
            name,
            f"service {name} unavailable: too many requests in half-open state",
        )


class RetryExhaustedError(TradeDeskError):
    """Raised when every retry attempt failed."""

    def __init__(self, attempts: int, last_error: BaseException | None) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"failed after {attempts} attempts: {last_error}")


def categorize_error(error: BaseException | None) -> str:
    """Bucket an error into a metrics label."""
    if error is None:
        return "none"
    if isinstance(error, RetryExhaustedError) and error.last_error is not None:
        return categorize_error(error.last_error)
    if isinstance(error, TimeoutError):
        return "timeout"
    if isinstance(error, CircuitBreakerError):
        return "circuit_breaker"

    message = str(error).lower()
    if "timeout" in message or "timed out" in message or "deadline" in message:
        return "timeout"
    if "circuit breaker" in message:
        return "circuit_breaker"
    if "rate limit" in message or "too many requests" in message:
        return "rate_limit"
    if isinstance(error, ConnectionError) or "connection" in message or "network" in message:
        return "network"
    return "other"
