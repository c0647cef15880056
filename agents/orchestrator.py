"""
TradeDesk - Agent Orchestrator

Runs every available analysis agent concurrently for a symbol, tolerates
individual agent failures and hands the surviving analyses to the
synthesizer. The resulting recommendation is persisted before it is
returned.

Request outcomes:
    - all agents respond           full-confidence recommendation
    - some agents missing          recommendation with a confidence penalty
    - no agent available           NoAgentsAvailableError
    - every available agent fails  AllAgentsFailedError
    - recommendation not recorded  PersistenceError
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass

from agents.base import AccountProvider, Agent
from agents.position_sizer import DefaultPositionSizer, PositionSizer
from agents.strategy import ActionStrategy, strategy_from_config
from agents.synthesizer import AgentWeights, RecommendationSynthesizer
from tradedesk import metrics
from tradedesk.config import Settings, get_settings
from tradedesk.exceptions import (
    AllAgentsFailedError,
    NoAgentsAvailableError,
    PersistenceError,
    categorize_error,
)
from tradedesk.logging import analysis_context, get_logger
from tradedesk.models import AgentRun, Analysis, MissingAgentInfo, Recommendation
from tradedesk.storage import RecommendationRepository

logger = get_logger(__name__, component="orchestrator")


@dataclass
class AgentResult:
    """Outcome of one agent's analysis attempt."""

    agent: Agent
    analysis: Analysis | None = None
    error: BaseException | None = None
    latency_ms: float = 0.0

    @property
    def success(self) -> bool:
        return self.analysis is not None


class AgentOrchestrator:
    """
    Fans a symbol out to analysis agents and synthesizes a recommendation.

    Provides:
        - Availability filtering via each agent's cached health probe
        - Concurrent execution with a per-agent timeout
        - Graceful degradation when some agents fail
        - Agent-run audit trail and Prometheus metrics
    """

    def __init__(
        self,
        repository: RecommendationRepository,
        account_provider: AccountProvider | None = None,
        strategy: ActionStrategy | None = None,
        position_sizer: PositionSizer | None = None,
        settings: Settings | None = None,
        agents: list[Agent] | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository
        self._agents: list[Agent] = list(agents or [])
        self._synthesizer = RecommendationSynthesizer(
            strategy=strategy or strategy_from_config(self._settings.agent),
            position_sizer=position_sizer
            or DefaultPositionSizer(self._settings.position_sizing),
            weights=AgentWeights.from_config(self._settings.agent),
            account_provider=account_provider,
            config=self._settings.agent,
        )

    # ─── Agent registry ───────────────────────────────────────────────────────

    def register_agent(self, agent: Agent) -> None:
        self._agents.append(agent)
        logger.info("agent_registered", agent=agent.name, agent_type=agent.agent_type.value)

    @property
    def agents(self) -> list[Agent]:
        return list(self._agents)

    @property
    def strategy(self) -> ActionStrategy:
        return self._synthesizer.strategy

    @strategy.setter
    def strategy(self, strategy: ActionStrategy) -> None:
        self._synthesizer.strategy = strategy

    @property
    def synthesizer(self) -> RecommendationSynthesizer:
        return self._synthesizer

    # ─── Analysis ─────────────────────────────────────────────────────────────

    async def analyze_symbol(
        self,
        symbol: str,
        agents: list[Agent] | None = None,
    ) -> Recommendation:
        """
        Run the full multi-agent analysis pipeline.

        Args:
            symbol: Ticker to analyze
            agents: Agents to consult (defaults to the registered agents)

        Returns:
            The persisted Recommendation

        Raises:
            NoAgentsAvailableError: No agent passed its availability check
            AllAgentsFailedError: Every available agent failed
            PersistenceError: The recommendation could not be saved
        """
        agents = self._agents if agents is None else agents
        with analysis_context(symbol):
            return await self._analyze(symbol, agents)

    async def _analyze(self, symbol: str, agents: list[Agent]) -> Recommendation:
        timer = metrics.Timer()
        metrics.record_analysis_request(symbol)
        logger.info("analysis_started", symbol=symbol, agents=len(agents))

        available, unavailable = await self._partition_available(agents)

        if not available:
            self._record_failure(symbol, "no_agents_available", timer)
            raise NoAgentsAvailableError(symbol)

        results = await asyncio.gather(
            *(self._run_agent(agent, symbol) for agent in available)
        )

        analyses: list[Analysis] = []
        failed: list[MissingAgentInfo] = []
        for result in results:
            if result.success:
                analyses.append(result.analysis)
            else:
                failed.append(
                    MissingAgentInfo(
                        agent_type=result.agent.agent_type,
                        reason=f"{result.agent.name} failed: {result.error}",
                    )
                )

        if not analyses:
            self._record_failure(symbol, "all_agents_failed", timer)
            raise AllAgentsFailedError(symbol, failures=len(failed))

        missing = unavailable + failed
        synthesis = self._synthesizer.aggregate(analyses, missing)
        recommendation = await self._synthesizer.build_recommendation(symbol, synthesis)

        try:
            await self._repository.create_recommendation(recommendation)
        except Exception as e:
            self._record_failure(symbol, "db_save_failed", timer)
            logger.error("recommendation_save_failed", symbol=symbol, error=str(e))
            raise PersistenceError(symbol, e) from e

        elapsed = timer.stop()
        metrics.observe_analysis(symbol, "success", elapsed)
        metrics.record_recommendation(
            recommendation.action.value,
            synthesis.final_score,
            recommendation.confidence,
        )

        logger.info(
            "analysis_complete",
            symbol=symbol,
            action=recommendation.action.value,
            score=round(synthesis.final_score, 2),
            confidence=round(recommendation.confidence, 2),
            quantity=str(recommendation.quantity),
            completeness=round(recommendation.data_completeness, 2),
            missing=len(missing),
            latency_ms=round(elapsed * 1000, 1),
        )

        return recommendation

    async def _partition_available(
        self, agents: list[Agent]
    ) -> tuple[list[Agent], list[MissingAgentInfo]]:
        """Split agents by their availability probe, preserving order."""
        checks = await asyncio.gather(*(self._check_available(agent) for agent in agents))

        available: list[Agent] = []
        unavailable: list[MissingAgentInfo] = []
        for agent, is_up in zip(agents, checks):
            if is_up:
                available.append(agent)
                continue
            services = agent.metadata.required_services
            unavailable.append(
                MissingAgentInfo(
                    agent_type=agent.agent_type,
                    reason=f"{agent.name} unavailable: dependency unhealthy ({', '.join(services)})",
                )
            )
            logger.warning(
                "agent_unavailable",
                agent=agent.name,
                required_services=services,
            )
        return available, unavailable

    async def _check_available(self, agent: Agent) -> bool:
        try:
            return await agent.is_available()
        except Exception as e:
            logger.warning("availability_check_failed", agent=agent.name, error=str(e))
            return False

    async def _run_agent(self, agent: Agent, symbol: str) -> AgentResult:
        """Run one agent under its own timeout; never raises Exception."""
        agent_type = agent.agent_type.value
        timeout = self._settings.agent.timeout_seconds

        run = AgentRun(agent_type=agent.agent_type, symbol=symbol)
        await self._audit(self._repository.create_agent_run, run)

        analysis: Analysis | None = None
        error: BaseException | None = None
        start = time.perf_counter()
        try:
            analysis = await asyncio.wait_for(agent.analyze(symbol), timeout=timeout)
        except asyncio.TimeoutError:
            error = TimeoutError(f"analysis timed out after {timeout:g}s")
        except Exception as e:
            error = e
        if analysis is None and error is None:
            error = ValueError("agent returned no analysis")
        elapsed = time.perf_counter() - start
        metrics.observe_agent(agent_type, elapsed)

        if analysis is None:
            category = categorize_error(error)
            run.fail(error)
            metrics.record_agent_error(agent_type, category)
            logger.warning(
                "agent_analysis_failed",
                agent=agent.name,
                symbol=symbol,
                category=category,
                error=str(error),
            )
            result = AgentResult(agent=agent, error=error, latency_ms=elapsed * 1000)
        else:
            run.complete(
                {
                    "score": analysis.score,
                    "confidence": analysis.confidence,
                    "reasoning": analysis.reasoning,
                }
            )
            metrics.record_agent_score(agent_type, analysis.score)
            logger.info(
                "agent_analysis_complete",
                agent=agent.name,
                symbol=symbol,
                score=analysis.score,
                confidence=analysis.confidence,
                latency_ms=round(elapsed * 1000, 1),
            )
            result = AgentResult(agent=agent, analysis=analysis, latency_ms=elapsed * 1000)

        await self._audit(self._repository.update_agent_run, run)
        return result

    async def _audit(self, write, run: AgentRun) -> None:
        """Best-effort audit trail write."""
        try:
            await write(run)
        except Exception as e:
            logger.warning(
                "agent_run_write_failed",
                run_id=str(run.id),
                agent_type=run.agent_type.value,
                error=str(e),
            )

    def _record_failure(self, symbol: str, reason: str, timer: metrics.Timer) -> None:
        metrics.observe_analysis(symbol, "error", timer.stop())
        metrics.record_analysis_error(symbol, reason)
        logger.error("analysis_failed", symbol=symbol, reason=reason)
