"""
TradeDesk - Multi-Agent Analysis Package

Independent analysts fanned out concurrently by the orchestrator:
    - FundamentalAnalyst:  Valuation and financial fundamentals
    - NewsAnalyst:         News sentiment reasoning
    - TechnicalAnalyst:    RSI, moving averages and MACD

Usage:
    from agents import AgentOrchestrator
    recommendation = await orchestrator.analyze_symbol("AAPL")
"""

from agents.fundamental_analyst import FundamentalAnalyst
from agents.health_cache import HealthCache
from agents.llm import ChatModelLLM, RawResponse, StructuredResponse, parse_llm_response
from agents.news_analyst import NewsAnalyst
from agents.orchestrator import AgentOrchestrator, AgentResult
from agents.position_sizer import DefaultPositionSizer
from agents.strategy import (
    AggressiveStrategy,
    ConservativeStrategy,
    CustomStrategy,
    DefaultStrategy,
    strategy_from_name,
)
from agents.synthesizer import AgentWeights, RecommendationSynthesizer
from agents.technical_analyst import TechnicalAnalyst

__all__ = [
    "AgentOrchestrator",
    "AgentResult",
    "AgentWeights",
    "AggressiveStrategy",
    "ChatModelLLM",
    "ConservativeStrategy",
    "CustomStrategy",
    "DefaultPositionSizer",
    "DefaultStrategy",
    "FundamentalAnalyst",
    "HealthCache",
    "NewsAnalyst",
    "RawResponse",
    "RecommendationSynthesizer",
    "StructuredResponse",
    "TechnicalAnalyst",
    "parse_llm_response",
    "strategy_from_name",
]
