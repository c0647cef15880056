"""
TradeDesk - Recommendation Repository

Persistence contract used by the orchestrator, and a process-local
implementation for development and tests.

The orchestrator treats agent-run writes as an audit trail (best effort)
and the recommendation write as the point of delivery: a recommendation
that cannot be recorded is not returned to the caller.
"""

from __future__ import annotations

import asyncio
from typing import Protocol, runtime_checkable
from uuid import UUID

from tradedesk.logging import get_logger
from tradedesk.models import AgentRun, Recommendation

logger = get_logger(__name__, component="repository")


@runtime_checkable
class RecommendationRepository(Protocol):
    """Persistence operations needed by the orchestrator."""

    async def create_agent_run(self, run: AgentRun) -> None: ...

    async def update_agent_run(self, run: AgentRun) -> None: ...

    async def create_recommendation(self, recommendation: Recommendation) -> None: ...


class InMemoryRepository:
    """
    Dictionary-backed repository.

    Stores copies so later mutation by callers does not change what was
    recorded.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._agent_runs: dict[UUID, AgentRun] = {}
        self._recommendations: dict[UUID, Recommendation] = {}

    async def create_agent_run(self, run: AgentRun) -> None:
        async with self._lock:
            self._agent_runs[run.id] = run.model_copy(deep=True)

    async def update_agent_run(self, run: AgentRun) -> None:
        async with self._lock:
            if run.id not in self._agent_runs:
                raise KeyError(f"agent run {run.id} not found")
            self._agent_runs[run.id] = run.model_copy(deep=True)

    async def create_recommendation(self, recommendation: Recommendation) -> None:
        async with self._lock:
            self._recommendations[recommendation.id] = recommendation.model_copy(deep=True)
        logger.info(
            "recommendation_saved",
            recommendation_id=str(recommendation.id),
            symbol=recommendation.symbol,
            action=recommendation.action.value,
        )

    # ─── Queries ──────────────────────────────────────────────────────────────

    def get_recommendation(self, recommendation_id: UUID) -> Recommendation | None:
        return self._recommendations.get(recommendation_id)

    def list_recommendations(self, symbol: str | None = None) -> list[Recommendation]:
        """Recommendations in creation order, optionally filtered by symbol."""
        recs = sorted(self._recommendations.values(), key=lambda r: r.created_at)
        if symbol is not None:
            recs = [r for r in recs if r.symbol == symbol]
        return recs

    def list_agent_runs(self, symbol: str | None = None) -> list[AgentRun]:
        runs = sorted(self._agent_runs.values(), key=lambda r: r.started_at)
        if symbol is not None:
            runs = [r for r in runs if r.symbol == symbol]
        return runs
