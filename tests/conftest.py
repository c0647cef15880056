"""Shared fixtures and fakes for the test suite."""

from __future__ import annotations

import asyncio
from decimal import Decimal

import pytest

from tradedesk.config import Settings
from tradedesk.models import (
    Account,
    AgentMetadata,
    AgentType,
    Analysis,
    Position,
    Quote,
)
from tradedesk.storage import InMemoryRepository


class FakeAgent:
    """Configurable Agent implementation."""

    def __init__(
        self,
        agent_type: AgentType,
        score: float = 0.0,
        confidence: float = 100.0,
        *,
        name: str | None = None,
        available: bool | BaseException = True,
        error: BaseException | None = None,
        delay: float = 0.0,
        required_services: tuple[str, ...] = ("data",),
    ) -> None:
        self._agent_type = agent_type
        self._name = name or f"{agent_type.value} agent"
        self.score = score
        self.confidence = confidence
        self.available = available
        self.error = error
        self.delay = delay
        self.required_services = required_services
        self.analyze_calls = 0

    @property
    def name(self) -> str:
        return self._name

    @property
    def agent_type(self) -> AgentType:
        return self._agent_type

    @property
    def metadata(self) -> AgentMetadata:
        return AgentMetadata(
            description="test agent",
            version="0.0.1",
            required_services=list(self.required_services),
        )

    async def analyze(self, symbol: str) -> Analysis:
        self.analyze_calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return Analysis(
            symbol=symbol,
            agent_type=self._agent_type,
            score=self.score,
            confidence=self.confidence,
            reasoning=f"{self._agent_type.value} view",
        )

    async def is_available(self) -> bool:
        if isinstance(self.available, BaseException):
            raise self.available
        return self.available


class FakeAccountProvider:
    """AccountProvider returning canned data or raising configured errors."""

    def __init__(
        self,
        account: Account | None = None,
        price: Decimal = Decimal("100"),
        position: Position | None = None,
        account_error: BaseException | None = None,
        quote_error: BaseException | None = None,
        position_error: BaseException | None = None,
    ) -> None:
        self.account = account or Account(
            buying_power=Decimal("50000"),
            cash=Decimal("50000"),
            portfolio_value=Decimal("100000"),
            equity=Decimal("100000"),
        )
        self.price = price
        self.position = position
        self.account_error = account_error
        self.quote_error = quote_error
        self.position_error = position_error

    async def get_account(self) -> Account:
        if self.account_error is not None:
            raise self.account_error
        return self.account

    async def get_position(self, symbol: str) -> Position | None:
        if self.position_error is not None:
            raise self.position_error
        return self.position

    async def get_quote(self, symbol: str) -> Quote:
        if self.quote_error is not None:
            raise self.quote_error
        return Quote(symbol=symbol, last=self.price)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def repository() -> InMemoryRepository:
    return InMemoryRepository()


@pytest.fixture
def account_provider() -> FakeAccountProvider:
    return FakeAccountProvider()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def three_agents() -> list[FakeAgent]:
    return [
        FakeAgent(AgentType.FUNDAMENTAL, 60, 80),
        FakeAgent(AgentType.NEWS, 50, 70),
        FakeAgent(AgentType.TECHNICAL, 40, 75),
    ]
