"""
TradeDesk - Fundamental Analyst Agent

Scores a company from its valuation and risk fundamentals (P/E, EPS,
market cap, 52-week range, beta, dividend yield) using LLM reasoning.
"""

from __future__ import annotations

from typing import Any

from agents.analyst import BaseAnalyst
from agents.base import FundamentalsSource, LLMService
from tradedesk.models import AgentType, Analysis
from tradedesk.resilience import BREAKER_FUNDAMENTALS, CircuitBreakerRegistry


FUNDAMENTAL_ANALYST_PROMPT = """You are a financial analyst specializing in fundamental analysis.
Your job is to analyze company fundamentals and provide a recommendation.

You will be given fundamental data for a stock including:
- P/E ratio, EPS, market cap
- 52-week high/low
- Beta (volatility measure)
- Dividend yield

Based on this data, provide your analysis in the following JSON format:
{
  "score": <number from -100 to 100, negative=bearish, positive=bullish>,
  "confidence": <number from 0 to 100>,
  "reasoning": "<brief explanation of your analysis>",
  "key_factors": ["<factor1>", "<factor2>", "<factor3>"]
}

Be objective and data-driven in your analysis."""


def _fmt(value: Any, fmt: str = "") -> str:
    if value is None:
        return "N/A"
    if fmt:
        try:
            return format(float(value), fmt)
        except (TypeError, ValueError):
            return str(value)
    return str(value)


def build_fundamental_prompt(symbol: str, fundamentals: dict[str, Any]) -> str:
    dividend_yield = fundamentals.get("dividend_yield")
    if dividend_yield is not None:
        dividend_yield = float(dividend_yield) * 100

    return f"""Analyze the following fundamental data for {symbol}:

P/E Ratio: {_fmt(fundamentals.get("pe_ratio"), ".2f")}
EPS: {_fmt(fundamentals.get("eps"))}
Market Cap: {_fmt(fundamentals.get("market_cap"))}
52-Week High: {_fmt(fundamentals.get("week52_high"))}
52-Week Low: {_fmt(fundamentals.get("week52_low"))}
Beta: {_fmt(fundamentals.get("beta"), ".2f")}
Dividend Yield: {_fmt(dividend_yield, ".2f")}%

Provide your analysis."""


class FundamentalAnalyst(BaseAnalyst):
    """Company fundamentals analyst."""

    name = "Fundamental Analyst"
    agent_type = AgentType.FUNDAMENTAL
    description = "Analyzes company valuation and financial fundamentals"
    required_services = ("llm", "fundamentals")
    system_prompt = FUNDAMENTAL_ANALYST_PROMPT
    response_fields = ("key_factors",)
    breaker_name = BREAKER_FUNDAMENTALS

    def __init__(
        self,
        llm: LLMService,
        source: FundamentalsSource,
        registry: CircuitBreakerRegistry | None = None,
        health_cache_ttl: float | None = None,
    ) -> None:
        super().__init__(llm, registry=registry, health_cache_ttl=health_cache_ttl)
        self.source = source

    async def analyze(self, symbol: str) -> Analysis:
        fundamentals = await self._fetch(self.source.get_fundamentals, symbol)
        prompt = build_fundamental_prompt(symbol, fundamentals)
        return await self._ask(symbol, prompt, {"fundamentals": fundamentals})

    async def probe(self) -> None:
        await self._fetch(self.source.get_fundamentals, self.health_probe_symbol)
