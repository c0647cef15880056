"""
TradeDesk - Storage Package

Persistence contract for agent runs and recommendations.
"""

from tradedesk.storage.repository import InMemoryRepository, RecommendationRepository

__all__ = ["InMemoryRepository", "RecommendationRepository"]
