"""Tests for tradedesk.storage.repository."""

from decimal import Decimal

import pytest

from tradedesk.models import AgentRun, AgentType, Recommendation, RecommendationAction
from tradedesk.storage import InMemoryRepository, RecommendationRepository


def make_recommendation(symbol="AAPL"):
    return Recommendation(
        symbol=symbol,
        action=RecommendationAction.BUY,
        quantity=Decimal("5"),
        confidence=70.0,
    )


class TestInMemoryRepository:
    """Test the process-local repository."""

    def test_satisfies_contract(self, repository):
        assert isinstance(repository, RecommendationRepository)

    @pytest.mark.asyncio
    async def test_recommendation_round_trip(self, repository):
        rec = make_recommendation()
        await repository.create_recommendation(rec)
        assert repository.get_recommendation(rec.id) == rec

    @pytest.mark.asyncio
    async def test_stored_copy_isolated(self, repository):
        rec = make_recommendation()
        await repository.create_recommendation(rec)
        rec.approve()
        assert repository.get_recommendation(rec.id).approved_at is None

    @pytest.mark.asyncio
    async def test_list_filters_by_symbol(self, repository):
        await repository.create_recommendation(make_recommendation("AAPL"))
        await repository.create_recommendation(make_recommendation("MSFT"))
        assert [r.symbol for r in repository.list_recommendations("MSFT")] == ["MSFT"]
        assert len(repository.list_recommendations()) == 2

    @pytest.mark.asyncio
    async def test_agent_run_update(self, repository):
        run = AgentRun(agent_type=AgentType.NEWS, symbol="AAPL")
        await repository.create_agent_run(run)
        run.complete({"score": 5})
        await repository.update_agent_run(run)

        stored = repository.list_agent_runs("AAPL")
        assert len(stored) == 1
        assert stored[0].output_data == {"score": 5}

    @pytest.mark.asyncio
    async def test_update_unknown_run(self):
        repository = InMemoryRepository()
        with pytest.raises(KeyError):
            await repository.update_agent_run(AgentRun(agent_type=AgentType.NEWS))
