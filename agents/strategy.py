"""
TradeDesk - Action Strategies

Pure policies mapping an aggregate (score, confidence) pair to a trading
action. All variants use strict inequality, so a score exactly at a
threshold is a HOLD.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from tradedesk.config import AgentConfig
from tradedesk.models import RecommendationAction


@runtime_checkable
class ActionStrategy(Protocol):
    """Converts a score and confidence into a recommendation action."""

    name: str

    def determine_action(self, score: float, confidence: float) -> RecommendationAction: ...


class ThresholdStrategy:
    """Buy above ``buy_threshold``, sell below ``sell_threshold``, else hold."""

    name = "threshold"

    def __init__(
        self,
        buy_threshold: float,
        sell_threshold: float,
        min_confidence: float = 0.0,
    ) -> None:
        self.buy_threshold = buy_threshold
        self.sell_threshold = sell_threshold
        self.min_confidence = min_confidence

    def determine_action(self, score: float, confidence: float) -> RecommendationAction:
        if self.min_confidence > 0 and confidence < self.min_confidence:
            return RecommendationAction.HOLD
        if score > self.buy_threshold:
            return RecommendationAction.BUY
        if score < self.sell_threshold:
            return RecommendationAction.SELL
        return RecommendationAction.HOLD

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(buy={self.buy_threshold}, "
            f"sell={self.sell_threshold}, min_confidence={self.min_confidence})"
        )


class DefaultStrategy(ThresholdStrategy):
    """Standard ±25 thresholds, no confidence gate."""

    name = "default"

    def __init__(self) -> None:
        super().__init__(buy_threshold=25, sell_threshold=-25)


class ConservativeStrategy(ThresholdStrategy):
    """±35 thresholds; anything under the confidence gate is a HOLD."""

    name = "conservative"

    def __init__(self, min_confidence: float = 60) -> None:
        super().__init__(buy_threshold=35, sell_threshold=-35, min_confidence=min_confidence)


class AggressiveStrategy(ThresholdStrategy):
    """±15 thresholds for more active trading."""

    name = "aggressive"

    def __init__(self) -> None:
        super().__init__(buy_threshold=15, sell_threshold=-15)


class CustomStrategy(ThresholdStrategy):
    """Caller-supplied thresholds; ``min_confidence`` of 0 disables the gate."""

    name = "custom"


_NAMED_STRATEGIES: dict[str, type[ThresholdStrategy]] = {
    DefaultStrategy.name: DefaultStrategy,
    ConservativeStrategy.name: ConservativeStrategy,
    AggressiveStrategy.name: AggressiveStrategy,
}


def strategy_from_name(name: str) -> ActionStrategy:
    """Look up a preset strategy by name; unknown names get the default."""
    return _NAMED_STRATEGIES.get(name.strip().lower(), DefaultStrategy)()


def strategy_from_config(config: AgentConfig) -> ActionStrategy:
    """Build the configured strategy, including custom thresholds."""
    if config.strategy == CustomStrategy.name:
        return CustomStrategy(
            buy_threshold=config.buy_threshold,
            sell_threshold=config.sell_threshold,
            min_confidence=config.min_confidence,
        )
    return strategy_from_name(config.strategy)
