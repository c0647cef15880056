"""
TradeDesk - LLM Analyst Base

Shared plumbing for the reference analysts: cached health probes,
breaker-guarded data fetches and decoding of the LLM reply into an
Analysis.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, TypeVar

from agents.base import LLMService
from agents.health_cache import HealthCache
from agents.llm import RawResponse, parse_llm_response
from tradedesk.config import get_settings
from tradedesk.logging import get_agent_logger
from tradedesk.models import (
    AgentMetadata,
    AgentType,
    Analysis,
    normalize_confidence,
    normalize_score,
)
from tradedesk.resilience import CircuitBreakerRegistry

T = TypeVar("T")

RAW_RESPONSE_CONFIDENCE = 50.0


class BaseAnalyst(ABC):
    """Abstract base class for LLM-driven analysis agents."""

    name: str = "base"
    agent_type: AgentType
    description: str = ""
    version: str = "1.0.0"
    required_services: tuple[str, ...] = ()
    system_prompt: str = ""
    # List fields copied from a structured reply into Analysis.data
    response_fields: tuple[str, ...] = ()
    breaker_name: str = ""
    health_probe_symbol: str = "AAPL"

    def __init__(
        self,
        llm: LLMService,
        registry: CircuitBreakerRegistry | None = None,
        health_cache_ttl: float | None = None,
    ) -> None:
        if health_cache_ttl is None:
            health_cache_ttl = get_settings().agent.health_cache_ttl_seconds
        self.llm = llm
        self.registry = registry
        self._health_cache = HealthCache(health_cache_ttl)
        self.logger = get_agent_logger(self.agent_type.value)

    @property
    def metadata(self) -> AgentMetadata:
        return AgentMetadata(
            description=self.description,
            version=self.version,
            required_services=list(self.required_services),
        )

    async def is_available(self) -> bool:
        """Probe the data source, memoized for the health cache TTL."""
        available, valid = self._health_cache.get()
        if valid:
            return available

        try:
            await self.probe()
            available = True
        except Exception as e:
            self.logger.warning("health_probe_failed", agent=self.name, error=str(e))
            available = False

        self._health_cache.set(available)
        return available

    def invalidate_health_cache(self) -> None:
        self._health_cache.invalidate()

    @abstractmethod
    async def analyze(self, symbol: str) -> Analysis:
        """Produce this agent's opinion on ``symbol``."""

    @abstractmethod
    async def probe(self) -> None:
        """Cheap live call against the data source; raises when unhealthy."""

    async def _fetch(self, fn: Callable[..., Awaitable[T]], *args: Any) -> T:
        """Call a data source, through its breaker when a registry is set."""
        if self.registry is None or not self.breaker_name:
            return await fn(*args)
        return await self.registry.call(self.breaker_name, fn, *args)

    async def _ask(self, symbol: str, user_prompt: str, data: dict[str, Any]) -> Analysis:
        """Send the prompt to the LLM and turn the reply into an Analysis."""
        text = await self.llm.invoke_with_prompt(self.system_prompt, user_prompt)
        response = parse_llm_response(text)

        if isinstance(response, RawResponse):
            self.logger.info("llm_reply_unstructured", agent=self.name, symbol=symbol)
            return Analysis(
                symbol=symbol,
                agent_type=self.agent_type,
                score=0.0,
                confidence=RAW_RESPONSE_CONFIDENCE,
                reasoning=response.text,
                data={"raw_response": response.text, **data},
            )

        fields = {key: response.list_field(key) for key in self.response_fields}
        return Analysis(
            symbol=symbol,
            agent_type=self.agent_type,
            score=normalize_score(response.score),
            confidence=normalize_confidence(response.confidence),
            reasoning=response.reasoning,
            data={**fields, **data},
        )
