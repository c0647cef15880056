"""
TradeDesk - Core Package

Multi-agent trading recommendation engine: fans a symbol out to
independent analysis agents and synthesizes one sized recommendation.
"""

__version__ = "0.1.0"
__author__ = "TradeDesk Team"

from tradedesk.config import settings, get_settings

__all__ = ["settings", "get_settings", "__version__"]
