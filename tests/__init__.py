"""Test suite for TradeDesk."""
