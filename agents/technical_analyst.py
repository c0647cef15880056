"""
TradeDesk - Technical Analyst Agent

Computes RSI, moving averages and MACD from daily closes and asks the
LLM to interpret them as a short-term directional signal.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Sequence

import numpy as np

from agents.analyst import BaseAnalyst
from agents.base import LLMService, PriceHistorySource
from tradedesk.config import get_settings
from tradedesk.models import AgentType, Analysis
from tradedesk.resilience import BREAKER_MARKET_DATA, CircuitBreakerRegistry

MIN_BARS = 50
INSUFFICIENT_HISTORY_CONFIDENCE = 20.0


TECHNICAL_ANALYST_PROMPT = """You are a financial analyst specializing in technical analysis.
Your job is to analyze price action and technical indicators to predict short-term price movements.

You will be given technical indicators including:
- RSI (Relative Strength Index): <30 oversold, >70 overbought
- MACD (Moving Average Convergence Divergence) and Signal line
- SMA (Simple Moving Averages): 20-day and 50-day
- Recent price action

Based on these indicators, provide your analysis in the following JSON format:
{
  "score": <number from -100 to 100, negative=bearish, positive=bullish>,
  "confidence": <number from 0 to 100>,
  "reasoning": "<brief explanation of your technical analysis>",
  "signals": ["<signal1>", "<signal2>", "<signal3>"]
}

Consider:
- RSI divergences and overbought/oversold conditions
- MACD crossovers and histogram trends
- Price relative to moving averages (support/resistance)
- Overall trend direction

Be objective and focus on actionable technical signals."""


# =============================================================================
# Indicators
# =============================================================================

def compute_rsi(prices: Sequence[float], period: int = 14) -> float:
    """Simple-average RSI over the last ``period`` changes; 50 when too short."""
    if len(prices) < period + 1:
        return 50.0

    changes = np.diff(np.asarray(prices[-(period + 1):], dtype=float))
    avg_gain = changes[changes > 0].sum() / period
    avg_loss = -changes[changes < 0].sum() / period

    if avg_loss == 0:
        return 100.0

    rs = avg_gain / avg_loss
    return float(100 - 100 / (1 + rs))


def compute_sma(prices: Sequence[float], period: int) -> float:
    """Mean of the last ``period`` prices; 0 when too short."""
    if len(prices) < period:
        return 0.0
    return float(np.mean(np.asarray(prices[-period:], dtype=float)))


def compute_ema_series(prices: Sequence[float], period: int) -> np.ndarray:
    """
    EMA of ``prices`` seeded with the SMA of the first ``period`` values.

    Positions before the seed carry the raw price. Series shorter than
    ``period`` are returned unchanged.
    """
    values = np.asarray(prices, dtype=float)
    if len(values) < period:
        return values.copy()

    ema = values.copy()
    multiplier = 2.0 / (period + 1)
    ema[period - 1] = values[:period].mean()
    for i in range(period, len(values)):
        ema[i] = (values[i] - ema[i - 1]) * multiplier + ema[i - 1]
    return ema


def compute_ema(prices: Sequence[float], period: int) -> float:
    """Latest EMA value; 0 for an empty series."""
    if len(prices) == 0:
        return 0.0
    return float(compute_ema_series(prices, period)[-1])


def compute_macd(
    prices: Sequence[float],
    fast: int = 12,
    slow: int = 26,
    signal: int = 9,
) -> dict[str, float]:
    """MACD line, signal line and histogram at the latest bar."""
    if len(prices) == 0:
        return {"macd": 0.0, "macd_signal": 0.0, "macd_histogram": 0.0}

    macd_line = compute_ema_series(prices, fast) - compute_ema_series(prices, slow)
    signal_line = compute_ema_series(macd_line, signal)
    macd = float(macd_line[-1])
    macd_signal = float(signal_line[-1])
    return {
        "macd": macd,
        "macd_signal": macd_signal,
        "macd_histogram": macd - macd_signal,
    }


def compute_indicators(prices: Sequence[float]) -> dict[str, float]:
    """Every indicator the technical prompt needs."""
    values = np.asarray(prices, dtype=float)
    indicators = {
        "rsi": compute_rsi(prices, 14),
        "sma20": compute_sma(prices, 20),
        "sma50": compute_sma(prices, 50),
        "high": float(values.max()),
        "low": float(values.min()),
    }
    indicators.update(compute_macd(prices))
    return indicators


def _pct_from(price: float, average: float) -> float:
    if average == 0:
        return 0.0
    return (price / average - 1) * 100


def build_technical_prompt(symbol: str, price: float, indicators: dict[str, float]) -> str:
    return f"""Analyze the following technical indicators for {symbol}:

Current Price: ${price:.2f}
Period High: ${indicators["high"]:.2f}
Period Low: ${indicators["low"]:.2f}

RSI (14-period): {indicators["rsi"]:.2f}
MACD: {indicators["macd"]:.4f}
MACD Signal: {indicators["macd_signal"]:.4f}
MACD Histogram: {indicators["macd_histogram"]:.4f}

SMA 20: ${indicators["sma20"]:.2f}
SMA 50: ${indicators["sma50"]:.2f}

Price vs SMA20: {_pct_from(price, indicators["sma20"]):.2f}%
Price vs SMA50: {_pct_from(price, indicators["sma50"]):.2f}%

Provide your technical analysis."""


# =============================================================================
# Agent
# =============================================================================

class TechnicalAnalyst(BaseAnalyst):
    """Price action and indicator analyst."""

    name = "Technical Analyst"
    agent_type = AgentType.TECHNICAL
    description = "Analyzes price history with RSI, moving averages and MACD"
    required_services = ("llm", "market_data")
    system_prompt = TECHNICAL_ANALYST_PROMPT
    response_fields = ("signals",)
    breaker_name = BREAKER_MARKET_DATA

    def __init__(
        self,
        llm: LLMService,
        source: PriceHistorySource,
        registry: CircuitBreakerRegistry | None = None,
        health_cache_ttl: float | None = None,
        lookback_days: int | None = None,
    ) -> None:
        super().__init__(llm, registry=registry, health_cache_ttl=health_cache_ttl)
        self.source = source
        if lookback_days is None:
            lookback_days = get_settings().agent.technical_lookback_days
        self.lookback_days = lookback_days

    async def analyze(self, symbol: str) -> Analysis:
        end = datetime.now(timezone.utc)
        start = end - timedelta(days=self.lookback_days)
        closes = await self._fetch(self.source.get_daily_closes, symbol, start, end)

        if len(closes) < MIN_BARS:
            return Analysis(
                symbol=symbol,
                agent_type=self.agent_type,
                score=0.0,
                confidence=INSUFFICIENT_HISTORY_CONFIDENCE,
                reasoning="Insufficient price history for technical analysis",
                data={"bars_count": len(closes)},
            )

        indicators = compute_indicators(closes)
        prompt = build_technical_prompt(symbol, float(closes[-1]), indicators)
        data: dict[str, Any] = {"indicators": indicators, "bars_count": len(closes)}
        return await self._ask(symbol, prompt, data)

    async def probe(self) -> None:
        end = datetime.now(timezone.utc)
        await self._fetch(
            self.source.get_daily_closes,
            self.health_probe_symbol,
            end - timedelta(days=5),
            end,
        )
