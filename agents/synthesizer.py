"""
TradeDesk - Recommendation Synthesizer

Fuses per-agent analyses into a single recommendation:

    final score   confidence-weighted mean of agent scores, using
                  per-category weights
    confidence    mean agent confidence, reduced by a fixed percentage
                  per missing agent (capped)
    action        decided by the configured ActionStrategy
    quantity      decided by the PositionSizer from live account data

Aggregation (``aggregate``) is pure; only position sizing touches the
account provider.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from agents.base import AccountProvider
from agents.position_sizer import DefaultPositionSizer, PositionSizer
from agents.strategy import ActionStrategy, DefaultStrategy
from tradedesk.config import AgentConfig
from tradedesk.logging import get_logger
from tradedesk.models import (
    AgentType,
    Analysis,
    MissingAgentInfo,
    Recommendation,
    RecommendationAction,
    RecommendationStatus,
    normalize_confidence,
    normalize_score,
)

logger = get_logger(__name__, component="synthesizer")


@dataclass(frozen=True)
class AgentWeights:
    """Synthesis weight per agent category. Unweighted categories count 0."""

    fundamental: float = 0.4
    news: float = 0.3
    technical: float = 0.3

    @classmethod
    def from_config(cls, config: AgentConfig) -> AgentWeights:
        return cls(
            fundamental=config.weight_fundamental,
            news=config.weight_news,
            technical=config.weight_technical,
        )

    def for_type(self, agent_type: AgentType) -> float:
        if agent_type == AgentType.FUNDAMENTAL:
            return self.fundamental
        if agent_type == AgentType.NEWS:
            return self.news
        if agent_type == AgentType.TECHNICAL:
            return self.technical
        return 0.0


@dataclass
class Synthesis:
    """Result of aggregating one request's analyses."""

    final_score: float
    fundamental_score: float
    sentiment_score: float
    technical_score: float
    average_confidence: float
    adjusted_confidence: float
    penalty_percent: float
    data_completeness: float
    action: RecommendationAction
    reasoning: str
    missing_agents: list[MissingAgentInfo] = field(default_factory=list)


def format_missing_agents(types: list[str]) -> str:
    """Join agent types as ``a``, ``a and b`` or ``a, b, and c``."""
    if not types:
        return ""
    if len(types) == 1:
        return types[0]
    if len(types) == 2:
        return f"{types[0]} and {types[1]}"
    return ", ".join(types[:-1]) + ", and " + types[-1]


def missing_agent_penalty(missing: int, per_agent: float = 15.0, cap: float = 45.0) -> float:
    """Confidence reduction in percent for ``missing`` absent agents."""
    return min(cap, per_agent * missing)


class RecommendationSynthesizer:
    """Builds a Recommendation from valid analyses and missing-agent info."""

    def __init__(
        self,
        strategy: ActionStrategy | None = None,
        position_sizer: PositionSizer | None = None,
        weights: AgentWeights | None = None,
        account_provider: AccountProvider | None = None,
        config: AgentConfig | None = None,
    ) -> None:
        self.strategy = strategy or DefaultStrategy()
        self.position_sizer = position_sizer or DefaultPositionSizer()
        self.config = config or AgentConfig()
        self.weights = weights or AgentWeights.from_config(self.config)
        self.account_provider = account_provider

    def aggregate(
        self,
        analyses: list[Analysis],
        missing_agents: list[MissingAgentInfo],
    ) -> Synthesis:
        """Score, confidence, action and reasoning for one request."""
        if not analyses:
            raise ValueError("cannot synthesize a recommendation from zero analyses")

        weighted_score = 0.0
        total_weight = 0.0
        category_scores = {
            AgentType.FUNDAMENTAL: 0.0,
            AgentType.NEWS: 0.0,
            AgentType.TECHNICAL: 0.0,
        }
        reasonings: list[str] = []

        for analysis in analyses:
            score = normalize_score(analysis.score)
            confidence = normalize_confidence(analysis.confidence)
            effective_weight = self.weights.for_type(analysis.agent_type) * (confidence / 100)
            weighted_score += score * effective_weight
            total_weight += effective_weight
            if analysis.agent_type in category_scores:
                category_scores[analysis.agent_type] = score
            reasonings.append(f"[{analysis.agent_type.value}] {analysis.reasoning}")

        final_score = weighted_score / total_weight if total_weight > 0 else 0.0

        average_confidence = sum(
            normalize_confidence(a.confidence) for a in analyses
        ) / len(analyses)
        expected = self.config.expected_agent_count
        data_completeness = min(100.0, len(analyses) / expected * 100)

        penalty = 0.0
        if missing_agents:
            penalty = missing_agent_penalty(
                len(missing_agents),
                per_agent=self.config.missing_agent_penalty,
                cap=self.config.max_missing_penalty,
            )
        adjusted_confidence = average_confidence * (1 - penalty / 100)

        action = self.strategy.determine_action(final_score, adjusted_confidence)

        fundamental = category_scores[AgentType.FUNDAMENTAL]
        sentiment = category_scores[AgentType.NEWS]
        technical = category_scores[AgentType.TECHNICAL]

        if missing_agents:
            missing_types = format_missing_agents([m.agent_type.value for m in missing_agents])
            reasoning = (
                f"Based on analysis from {len(analyses)} of {expected} agents "
                f"({missing_types} unavailable). "
            )
        else:
            reasoning = f"Based on analysis from {len(analyses)} agents. "

        reasoning += (
            f"Scores - Fundamental: {fundamental:.0f}, Sentiment: {sentiment:.0f}, "
            f"Technical: {technical:.0f}. Overall score: {final_score:.1f}. "
        )
        if missing_agents:
            reasoning += "Note: Confidence reduced due to incomplete data. "
        for r in reasonings:
            reasoning += r + " "

        return Synthesis(
            final_score=final_score,
            fundamental_score=fundamental,
            sentiment_score=sentiment,
            technical_score=technical,
            average_confidence=average_confidence,
            adjusted_confidence=adjusted_confidence,
            penalty_percent=penalty,
            data_completeness=data_completeness,
            action=action,
            reasoning=reasoning,
            missing_agents=list(missing_agents),
        )

    async def synthesize(
        self,
        symbol: str,
        analyses: list[Analysis],
        missing_agents: list[MissingAgentInfo],
    ) -> Recommendation:
        """Aggregate and size a recommendation for ``symbol``."""
        return await self.build_recommendation(symbol, self.aggregate(analyses, missing_agents))

    async def build_recommendation(self, symbol: str, synthesis: Synthesis) -> Recommendation:
        quantity = await self.calculate_position_size(
            symbol, synthesis.action, synthesis.adjusted_confidence
        )

        return Recommendation(
            symbol=symbol,
            action=synthesis.action,
            quantity=quantity,
            confidence=normalize_confidence(synthesis.adjusted_confidence),
            reasoning=synthesis.reasoning,
            fundamental_score=synthesis.fundamental_score,
            sentiment_score=synthesis.sentiment_score,
            technical_score=synthesis.technical_score,
            data_completeness=synthesis.data_completeness,
            missing_agents=synthesis.missing_agents,
            status=RecommendationStatus.PENDING,
        )

    async def calculate_position_size(
        self,
        symbol: str,
        action: RecommendationAction,
        confidence: float,
    ) -> Decimal:
        """
        Size the order, falling back to the minimum lot when account data
        cannot be fetched.
        """
        if action == RecommendationAction.HOLD:
            return Decimal("0")

        fallback = self.position_sizer.min_shares
        if self.account_provider is None:
            return fallback

        try:
            account = await self.account_provider.get_account()
        except Exception as e:
            logger.warning("account_lookup_failed", symbol=symbol, error=str(e))
            return fallback

        try:
            quote = await self.account_provider.get_quote(symbol)
        except Exception as e:
            logger.warning("quote_lookup_failed", symbol=symbol, error=str(e))
            return fallback

        try:
            position = await self.account_provider.get_position(symbol)
        except Exception as e:
            logger.debug("position_lookup_failed", symbol=symbol, error=str(e))
            position = None

        try:
            return self.position_sizer.calculate_quantity(
                account, quote.price, action, confidence, position
            )
        except Exception as e:
            logger.warning("position_sizing_failed", symbol=symbol, error=str(e))
            return fallback
