"""
TradeDesk - Agent Contracts

Capability contracts consumed by the orchestrator. Any object exposing
these members qualifies; no base class is required.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from tradedesk.models import Account, AgentMetadata, AgentType, Analysis, Position, Quote


@runtime_checkable
class Agent(Protocol):
    """An independent analysis provider."""

    @property
    def name(self) -> str: ...

    @property
    def agent_type(self) -> AgentType: ...

    @property
    def metadata(self) -> AgentMetadata: ...

    async def analyze(self, symbol: str) -> Analysis: ...

    async def is_available(self) -> bool: ...


@runtime_checkable
class AccountProvider(Protocol):
    """Account, position and quote lookups for position sizing."""

    async def get_account(self) -> Account: ...

    async def get_position(self, symbol: str) -> Position | None: ...

    async def get_quote(self, symbol: str) -> Quote: ...


class LLMService(Protocol):
    """Single-turn prompt completion."""

    async def invoke_with_prompt(self, system_prompt: str, user_prompt: str) -> str: ...


# =============================================================================
# Data sources used by the reference analysts
# =============================================================================

class FundamentalsSource(Protocol):
    async def get_fundamentals(self, symbol: str) -> dict[str, Any]: ...


class NewsSource(Protocol):
    async def get_news(self, symbol: str, limit: int) -> list[dict[str, Any]]: ...


class PriceHistorySource(Protocol):
    async def get_daily_closes(
        self, symbol: str, start: datetime, end: datetime
    ) -> list[float]: ...
