"""Tests for agents.synthesizer."""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from agents.strategy import ConservativeStrategy
from agents.synthesizer import (
    AgentWeights,
    RecommendationSynthesizer,
    format_missing_agents,
    missing_agent_penalty,
)
from tests.conftest import FakeAccountProvider
from tradedesk.config import AgentConfig
from tradedesk.models import (
    AgentType,
    Analysis,
    MissingAgentInfo,
    Position,
    RecommendationAction,
    RecommendationStatus,
)


def analysis(agent_type, score, confidence, reasoning="view"):
    return Analysis(
        symbol="AAPL",
        agent_type=agent_type,
        score=score,
        confidence=confidence,
        reasoning=reasoning,
    )


def missing(agent_type, reason="unavailable"):
    return MissingAgentInfo(agent_type=agent_type, reason=reason)


FULL = [
    analysis(AgentType.FUNDAMENTAL, 60, 80),
    analysis(AgentType.NEWS, 50, 70),
    analysis(AgentType.TECHNICAL, 40, 75),
]


class TestAgentWeights:
    def test_from_config(self):
        weights = AgentWeights.from_config(AgentConfig(weight_news=0.5))
        assert weights.for_type(AgentType.NEWS) == 0.5
        assert weights.for_type(AgentType.FUNDAMENTAL) == 0.4

    def test_unweighted_type_is_zero(self):
        assert AgentWeights().for_type(AgentType.MANAGER) == 0.0


class TestHelpers:
    @pytest.mark.parametrize(
        "types,expected",
        [
            ([], ""),
            (["news"], "news"),
            (["news", "technical"], "news and technical"),
            (["fundamental", "news", "technical"], "fundamental, news, and technical"),
        ],
    )
    def test_format_missing_agents(self, types, expected):
        assert format_missing_agents(types) == expected

    @pytest.mark.parametrize("count,penalty", [(0, 0), (1, 15), (2, 30), (3, 45), (5, 45)])
    def test_missing_agent_penalty(self, count, penalty):
        assert missing_agent_penalty(count) == penalty


class TestAggregate:
    """Test pure score and confidence aggregation."""

    def test_full_analysis(self):
        """Three agents at 60/50/40 should produce a BUY with full completeness."""
        synthesis = RecommendationSynthesizer().aggregate(FULL, [])

        # (60*0.32 + 50*0.21 + 40*0.225) / 0.755
        assert synthesis.final_score == pytest.approx(38.7 / 0.755)
        assert synthesis.action == RecommendationAction.BUY
        assert synthesis.data_completeness == 100.0
        assert synthesis.average_confidence == pytest.approx(75.0)
        assert synthesis.adjusted_confidence == pytest.approx(75.0)
        assert synthesis.fundamental_score == 60
        assert synthesis.sentiment_score == 50
        assert synthesis.technical_score == 40
        assert synthesis.reasoning.startswith("Based on analysis from 3 agents. ")
        assert "[fundamental] view" in synthesis.reasoning
        assert "Note:" not in synthesis.reasoning

    def test_partial_analysis(self):
        """One of three agents should cut confidence by 30%."""
        synthesis = RecommendationSynthesizer().aggregate(
            [analysis(AgentType.FUNDAMENTAL, 50, 80)],
            [missing(AgentType.NEWS), missing(AgentType.TECHNICAL)],
        )

        assert synthesis.data_completeness == pytest.approx(100 / 3)
        assert synthesis.penalty_percent == 30.0
        assert synthesis.adjusted_confidence == pytest.approx(56.0)
        assert len(synthesis.missing_agents) == 2
        assert synthesis.reasoning.startswith(
            "Based on analysis from 1 of 3 agents (news and technical unavailable). "
        )
        assert "Note: Confidence reduced due to incomplete data." in synthesis.reasoning

    def test_penalty_capped(self):
        synthesis = RecommendationSynthesizer().aggregate(
            [analysis(AgentType.FUNDAMENTAL, 50, 100)],
            [missing(AgentType.NEWS)] * 4,
        )
        assert synthesis.penalty_percent == 45.0
        assert synthesis.adjusted_confidence == pytest.approx(55.0)

    def test_zero_confidence_gives_zero_score(self):
        synthesis = RecommendationSynthesizer().aggregate(
            [analysis(AgentType.NEWS, 90, 0)], []
        )
        assert synthesis.final_score == 0.0
        assert synthesis.action == RecommendationAction.HOLD

    def test_zero_weight_agent_contributes_no_score(self):
        synthesis = RecommendationSynthesizer().aggregate(
            [analysis(AgentType.MANAGER, 90, 90)], []
        )
        assert synthesis.final_score == 0.0

    def test_out_of_range_inputs_clamped(self):
        synthesis = RecommendationSynthesizer().aggregate(
            [analysis(AgentType.TECHNICAL, 250, 180)], []
        )
        assert synthesis.final_score == 100.0
        assert synthesis.average_confidence == 100.0
        assert synthesis.technical_score == 100.0

    def test_completeness_capped(self):
        synthesis = RecommendationSynthesizer().aggregate(FULL + FULL, [])
        assert synthesis.data_completeness == 100.0

    def test_strategy_applied_to_adjusted_confidence(self):
        """Conservative strategy should hold when penalized confidence drops below 60."""
        synthesizer = RecommendationSynthesizer(strategy=ConservativeStrategy())
        synthesis = synthesizer.aggregate(
            [analysis(AgentType.FUNDAMENTAL, 80, 80)],
            [missing(AgentType.NEWS), missing(AgentType.TECHNICAL)],
        )
        assert synthesis.action == RecommendationAction.HOLD

    def test_empty_analyses_rejected(self):
        with pytest.raises(ValueError):
            RecommendationSynthesizer().aggregate([], [])


class TestSynthesize:
    """Test recommendation building and position sizing fallbacks."""

    @pytest.mark.asyncio
    async def test_sized_buy(self):
        """100k * 10% * (0.5 + 75/200) at $100 -> 87 shares."""
        synthesizer = RecommendationSynthesizer(account_provider=FakeAccountProvider())
        rec = await synthesizer.synthesize("AAPL", FULL, [])

        assert rec.symbol == "AAPL"
        assert rec.action == RecommendationAction.BUY
        assert rec.quantity == Decimal("87")
        assert rec.status == RecommendationStatus.PENDING
        assert rec.confidence == pytest.approx(75.0)
        assert rec.data_completeness == 100.0

    @pytest.mark.asyncio
    async def test_hold_is_zero_without_provider(self):
        synthesizer = RecommendationSynthesizer()
        rec = await synthesizer.synthesize("AAPL", [analysis(AgentType.NEWS, 0, 50)], [])
        assert rec.action == RecommendationAction.HOLD
        assert rec.quantity == Decimal("0")

    @pytest.mark.asyncio
    async def test_no_provider_uses_minimum(self):
        rec = await RecommendationSynthesizer().synthesize("AAPL", FULL, [])
        assert rec.quantity == Decimal("1")

    @pytest.mark.asyncio
    async def test_account_failure_uses_minimum(self):
        provider = FakeAccountProvider(account_error=ConnectionError("broker down"))
        synthesizer = RecommendationSynthesizer(account_provider=provider)
        rec = await synthesizer.synthesize("AAPL", FULL, [])
        assert rec.quantity == Decimal("1")

    @pytest.mark.asyncio
    async def test_quote_failure_uses_minimum(self):
        provider = FakeAccountProvider(quote_error=ConnectionError("no quote"))
        synthesizer = RecommendationSynthesizer(account_provider=provider)
        rec = await synthesizer.synthesize("AAPL", FULL, [])
        assert rec.quantity == Decimal("1")

    @pytest.mark.asyncio
    async def test_position_failure_treated_as_no_position(self):
        provider = FakeAccountProvider(
            position=Position(symbol="AAPL", quantity=Decimal("40")),
            position_error=LookupError("no position"),
        )
        synthesizer = RecommendationSynthesizer(account_provider=provider)
        rec = await synthesizer.synthesize("AAPL", [analysis(AgentType.NEWS, -80, 90)], [])
        assert rec.action == RecommendationAction.SELL
        assert rec.quantity == Decimal("1")

    @pytest.mark.asyncio
    async def test_sell_liquidates_existing_position(self):
        provider = FakeAccountProvider(position=Position(symbol="AAPL", quantity=Decimal("40")))
        synthesizer = RecommendationSynthesizer(account_provider=provider)
        rec = await synthesizer.synthesize("AAPL", [analysis(AgentType.NEWS, -80, 90)], [])
        assert rec.quantity == Decimal("40")

    @pytest.mark.asyncio
    async def test_sizer_failure_uses_minimum(self):
        sizer = MagicMock()
        sizer.min_shares = Decimal("3")
        sizer.calculate_quantity.side_effect = ArithmeticError("bad math")
        synthesizer = RecommendationSynthesizer(
            position_sizer=sizer, account_provider=FakeAccountProvider()
        )
        rec = await synthesizer.synthesize("AAPL", FULL, [])
        assert rec.quantity == Decimal("3")
