"""
TradeDesk - Data Models

Pydantic models for all data entities in the system.
"""

import math
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_score(score: float) -> float:
    """Clamp a score to [-100, 100]. NaN is neutral (0)."""
    if math.isnan(score):
        return 0.0
    return max(-100.0, min(100.0, score))


def normalize_confidence(confidence: float) -> float:
    """Clamp a confidence to [0, 100]. NaN counts as no confidence."""
    if math.isnan(confidence):
        return 0.0
    return max(0.0, min(100.0, confidence))


class AgentType(str, Enum):
    """Analysis agent categories."""

    FUNDAMENTAL = "fundamental"
    NEWS = "news"
    TECHNICAL = "technical"
    MANAGER = "manager"


class RecommendationAction(str, Enum):
    """Trading action of a recommendation."""

    BUY = "buy"
    HOLD = "hold"
    SELL = "sell"


class RecommendationStatus(str, Enum):
    """Recommendation lifecycle status (owned by the approval workflow)."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    EXECUTED = "executed"


class AgentRunStatus(str, Enum):
    """Status of a single agent execution."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class PositionSide(str, Enum):
    """Side of an open position."""

    LONG = "long"
    SHORT = "short"


# =============================================================================
# Agent Models
# =============================================================================

class AgentMetadata(BaseModel):
    """Describes an agent's capabilities and external dependencies."""

    description: str
    version: str
    required_services: list[str] = Field(default_factory=list)


class Analysis(BaseModel):
    """
    One agent's opinion on one symbol.

    Score is in [-100, 100] (bearish to bullish) and confidence in [0, 100];
    producers are not required to clamp either.
    """

    symbol: str
    agent_type: AgentType
    score: float
    confidence: float
    reasoning: str = ""
    data: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=_utcnow)


class AgentRun(BaseModel):
    """Audit trail entry for one agent execution."""

    id: UUID = Field(default_factory=uuid4)
    agent_type: AgentType
    symbol: str = ""
    status: AgentRunStatus = AgentRunStatus.RUNNING
    input_data: dict[str, Any] = Field(default_factory=dict)
    output_data: dict[str, Any] = Field(default_factory=dict)
    error_message: str = ""
    duration_ms: int = 0
    started_at: datetime = Field(default_factory=_utcnow)
    completed_at: datetime | None = None

    def complete(self, output: dict[str, Any]) -> None:
        """Mark the run as completed with its output."""
        self._finish(AgentRunStatus.COMPLETED)
        self.output_data = output

    def fail(self, error: BaseException | str) -> None:
        """Mark the run as failed."""
        self._finish(AgentRunStatus.FAILED)
        self.error_message = str(error)

    def _finish(self, status: AgentRunStatus) -> None:
        now = _utcnow()
        self.completed_at = now
        self.status = status
        self.duration_ms = int((now - self.started_at).total_seconds() * 1000)


# =============================================================================
# Recommendation Models
# =============================================================================

class MissingAgentInfo(BaseModel):
    """An agent that was unavailable or failed during a request."""

    agent_type: AgentType
    reason: str


class Recommendation(BaseModel):
    """Synthesized trading decision for a symbol."""

    id: UUID = Field(default_factory=uuid4)
    symbol: str
    action: RecommendationAction
    quantity: Decimal = Decimal("0")
    target_price: Decimal | None = None
    confidence: float = Field(ge=0.0, le=100.0)
    reasoning: str = ""
    fundamental_score: float = 0.0
    sentiment_score: float = 0.0
    technical_score: float = 0.0
    data_completeness: float = Field(default=0.0, ge=0.0, le=100.0)
    missing_agents: list[MissingAgentInfo] = Field(default_factory=list)
    status: RecommendationStatus = RecommendationStatus.PENDING
    approved_at: datetime | None = None
    rejected_at: datetime | None = None
    executed_trade_id: UUID | None = None
    created_at: datetime = Field(default_factory=_utcnow)

    @property
    def is_partial(self) -> bool:
        """True when at least one agent did not contribute."""
        return bool(self.missing_agents)

    def approve(self) -> None:
        self.approved_at = _utcnow()
        self.status = RecommendationStatus.APPROVED

    def reject(self) -> None:
        self.rejected_at = _utcnow()
        self.status = RecommendationStatus.REJECTED

    def mark_executed(self, trade_id: UUID) -> None:
        self.executed_trade_id = trade_id
        self.status = RecommendationStatus.EXECUTED


# =============================================================================
# Account Models
# =============================================================================

class Account(BaseModel):
    """Trading account snapshot used for position sizing."""

    id: str = ""
    currency: str = "USD"
    buying_power: Decimal = Decimal("0")
    cash: Decimal = Decimal("0")
    portfolio_value: Decimal = Decimal("0")
    equity: Decimal = Decimal("0")
    trading_blocked: bool = False
    account_blocked: bool = False


class Position(BaseModel):
    """Open position in a symbol."""

    symbol: str
    quantity: Decimal
    avg_entry_price: Decimal = Decimal("0")
    current_price: Decimal = Decimal("0")
    side: PositionSide = PositionSide.LONG

    @property
    def unrealized_pl(self) -> Decimal:
        """Unrealized profit/loss at the current price."""
        if self.current_price == 0:
            return Decimal("0")
        diff = self.current_price - self.avg_entry_price
        if self.side == PositionSide.SHORT:
            diff = -diff
        return diff * self.quantity


class Quote(BaseModel):
    """Latest quote for a symbol."""

    symbol: str
    bid: Decimal = Decimal("0")
    ask: Decimal = Decimal("0")
    last: Decimal = Decimal("0")
    timestamp: datetime = Field(default_factory=_utcnow)

    @property
    def price(self) -> Decimal:
        """Last trade price, falling back to the bid/ask midpoint."""
        if self.last != 0:
            return self.last
        if self.bid != 0 and self.ask != 0:
            return (self.bid + self.ask) / 2
        return Decimal("0")
