"""
TradeDesk - Position Sizer

Turns an action and confidence into an order quantity using the account
snapshot, the current price and any existing position.
"""

from __future__ import annotations

from decimal import ROUND_FLOOR, Decimal
from typing import Protocol

from tradedesk.config import PositionSizingConfig
from tradedesk.models import Account, Position, RecommendationAction


class PositionSizer(Protocol):
    """Calculates the number of shares to trade."""

    @property
    def min_shares(self) -> Decimal: ...

    def calculate_quantity(
        self,
        account: Account,
        current_price: Decimal,
        action: RecommendationAction,
        confidence: float,
        existing_position: Position | None = None,
    ) -> Decimal: ...


def confidence_factor(confidence: float) -> float:
    """Map confidence 0..100 onto a position multiplier of 0.5..1.0."""
    return 0.5 + confidence / 200.0


class DefaultPositionSizer:
    """
    Sizes positions as a share of portfolio value.

    - HOLD trades nothing.
    - SELL liquidates an existing long position, else the minimum lot.
    - BUY takes ``max_percent`` of portfolio value (equity when portfolio
      value is unknown), optionally scaled by confidence, limited by buying
      power and clamped to [min_shares, max_shares].
    """

    def __init__(self, config: PositionSizingConfig | None = None) -> None:
        self.config = config or PositionSizingConfig()

    @property
    def min_shares(self) -> Decimal:
        return Decimal(self.config.min_shares)

    def calculate_quantity(
        self,
        account: Account,
        current_price: Decimal,
        action: RecommendationAction,
        confidence: float,
        existing_position: Position | None = None,
    ) -> Decimal:
        if action == RecommendationAction.HOLD:
            return Decimal("0")

        if current_price <= 0:
            return self.min_shares

        if action == RecommendationAction.SELL:
            if existing_position is not None and existing_position.quantity > 0:
                return existing_position.quantity
            return self.min_shares

        base_value = account.portfolio_value
        if base_value <= 0:
            base_value = account.equity
        if base_value <= 0:
            return self.min_shares

        max_position_value = base_value * Decimal(str(self.config.max_percent))

        if self.config.use_confidence_scaling:
            max_position_value *= Decimal(str(confidence_factor(confidence)))

        if account.buying_power < max_position_value:
            max_position_value = account.buying_power

        shares = (max_position_value / current_price).to_integral_value(rounding=ROUND_FLOOR)

        if shares < self.min_shares:
            shares = self.min_shares
        if self.config.max_shares > 0 and shares > self.config.max_shares:
            shares = Decimal(self.config.max_shares)

        return shares
