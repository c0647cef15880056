"""
TradeDesk - News Sentiment Analyst Agent

Reads recent headlines for a symbol and asks the LLM for the overall
market sentiment they imply.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from agents.analyst import BaseAnalyst
from agents.base import LLMService, NewsSource
from tradedesk.models import AgentType, Analysis
from tradedesk.resilience import BREAKER_NEWS, CircuitBreakerRegistry

NEWS_ARTICLE_LIMIT = 15
NO_NEWS_CONFIDENCE = 20.0


NEWS_ANALYST_PROMPT = """You are a financial analyst specializing in news sentiment analysis.
Your job is to analyze recent news articles about a stock and determine market sentiment.

You will be given a list of recent news headlines and descriptions.

Based on this news, provide your analysis in the following JSON format:
{
  "score": <number from -100 to 100, negative=bearish/negative sentiment, positive=bullish/positive sentiment>,
  "confidence": <number from 0 to 100>,
  "reasoning": "<brief explanation of the overall sentiment>",
  "key_themes": ["<theme1>", "<theme2>", "<theme3>"],
  "notable_articles": ["<headline1>", "<headline2>"]
}

Consider:
- Positive news: earnings beats, product launches, partnerships, analyst upgrades
- Negative news: earnings misses, lawsuits, management changes, analyst downgrades
- Neutral news: routine announcements, industry trends

Be objective and focus on how the news might impact stock price."""


def _published(value: Any) -> str:
    if isinstance(value, datetime):
        return f"{value:%b} {value.day}, {value.year}"
    return str(value) if value else "unknown"


def build_news_prompt(symbol: str, articles: list[dict[str, Any]]) -> str:
    lines = [f"Analyze the following recent news about {symbol}:", ""]
    for i, article in enumerate(articles, start=1):
        lines.append(f"{i}. **{article.get('title', '')}**")
        if article.get("description"):
            lines.append(f"   {article['description']}")
        lines.append(
            f"   Source: {article.get('source', 'unknown')} | "
            f"Published: {_published(article.get('published_at'))}"
        )
        lines.append("")
    lines.append("Provide your sentiment analysis.")
    return "\n".join(lines)


class NewsAnalyst(BaseAnalyst):
    """News sentiment analyst."""

    name = "News Sentiment Analyst"
    agent_type = AgentType.NEWS
    description = "Analyzes recent news sentiment for a symbol"
    required_services = ("llm", "news")
    system_prompt = NEWS_ANALYST_PROMPT
    response_fields = ("key_themes", "notable_articles")
    breaker_name = BREAKER_NEWS

    def __init__(
        self,
        llm: LLMService,
        source: NewsSource,
        registry: CircuitBreakerRegistry | None = None,
        health_cache_ttl: float | None = None,
        article_limit: int = NEWS_ARTICLE_LIMIT,
    ) -> None:
        super().__init__(llm, registry=registry, health_cache_ttl=health_cache_ttl)
        self.source = source
        self.article_limit = article_limit

    async def analyze(self, symbol: str) -> Analysis:
        articles = await self._fetch(self.source.get_news, symbol, self.article_limit)

        if not articles:
            return Analysis(
                symbol=symbol,
                agent_type=self.agent_type,
                score=0.0,
                confidence=NO_NEWS_CONFIDENCE,
                reasoning="No recent news found for this symbol",
                data={"articles_count": 0},
            )

        prompt = build_news_prompt(symbol, articles)
        return await self._ask(symbol, prompt, {"articles_count": len(articles)})

    async def probe(self) -> None:
        await self._fetch(self.source.get_news, self.health_probe_symbol, 1)
