"""
TradeDesk - Core Configuration Module

Centralized configuration management using Pydantic Settings.
Every tuning constant of the orchestration core (weights, thresholds,
penalties, breaker and retry settings) lives here.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AgentConfig(BaseSettings):
    """Agent orchestration and synthesis configuration."""

    model_config = SettingsConfigDict(env_prefix="AGENT_")

    timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Per-agent analysis timeout",
    )
    weight_fundamental: float = Field(default=0.4, ge=0.0, le=1.0)
    weight_news: float = Field(default=0.3, ge=0.0, le=1.0)
    weight_technical: float = Field(default=0.3, ge=0.0, le=1.0)

    strategy: str = Field(
        default="default",
        description="Action strategy: default, conservative, aggressive or custom",
    )
    buy_threshold: float = Field(default=25.0, description="Custom strategy buy threshold")
    sell_threshold: float = Field(default=-25.0, description="Custom strategy sell threshold")
    min_confidence: float = Field(
        default=0.0,
        ge=0.0,
        le=100.0,
        description="Custom strategy confidence gate (0 disables)",
    )

    health_cache_ttl_seconds: float = Field(
        default=30.0,
        ge=0.0,
        description="TTL for cached agent availability probes (0 disables caching)",
    )
    missing_agent_penalty: float = Field(
        default=15.0,
        ge=0.0,
        description="Confidence reduction in percent per missing agent",
    )
    max_missing_penalty: float = Field(
        default=45.0,
        ge=0.0,
        le=100.0,
        description="Cap on the total missing-agent confidence reduction",
    )
    expected_agent_count: int = Field(
        default=3,
        gt=0,
        description="Number of agent categories a complete analysis covers",
    )
    technical_lookback_days: int = Field(default=100, gt=0)

    @field_validator("strategy", mode="before")
    @classmethod
    def normalize_strategy(cls, v: str) -> str:
        return v.strip().lower() if isinstance(v, str) else v


class PositionSizingConfig(BaseSettings):
    """Position sizing configuration."""

    model_config = SettingsConfigDict(env_prefix="POSITION_")

    max_percent: float = Field(
        default=0.10,
        ge=0.01,
        le=1.0,
        description="Maximum share of portfolio value for a single position",
    )
    risk_percent: float = Field(
        default=0.02,
        ge=0.001,
        le=0.1,
        description="Base share of portfolio risked per trade",
    )
    min_shares: int = Field(default=1, ge=0, description="Minimum lot size")
    max_shares: int = Field(default=0, ge=0, description="Maximum shares (0 = unlimited)")
    use_confidence_scaling: bool = Field(default=True)


class CircuitBreakerConfig(BaseSettings):
    """Circuit breaker configuration for external dependencies."""

    model_config = SettingsConfigDict(env_prefix="BREAKER_")

    max_requests: int = Field(
        default=5,
        gt=0,
        description="Trial calls admitted while half-open",
    )
    interval: float = Field(
        default=60.0,
        ge=0.0,
        description="Rolling window for closed-state counts in seconds (0 = never clear)",
    )
    timeout: float = Field(
        default=30.0,
        ge=0.0,
        description="Open-state cooldown before half-open in seconds",
    )
    min_requests: int = Field(default=5, gt=0, description="Requests before tripping is considered")
    failure_ratio: float = Field(default=0.5, gt=0.0, le=1.0)


class RetryConfig(BaseSettings):
    """Retry-with-backoff configuration."""

    model_config = SettingsConfigDict(env_prefix="RETRY_")

    max_retries: int = Field(default=3, ge=0, description="Retries after the first attempt")
    initial_backoff: float = Field(default=0.1, ge=0.0, description="First backoff in seconds")
    max_backoff: float = Field(default=5.0, ge=0.0, description="Backoff cap in seconds")


class LLMConfig(BaseSettings):
    """LLM gateway configuration."""

    model_config = SettingsConfigDict(env_prefix="LLM_")

    model: str = Field(default="llama-3.3-70b-versatile", description="Chat model name")
    temperature: float = Field(default=0.1, ge=0.0, le=2.0)


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    env: Literal["development", "staging", "production"] = Field(
        default="development",
        alias="TRADEDESK_ENV",
    )
    debug: bool = Field(default=True, alias="TRADEDESK_DEBUG")
    log_level: str = Field(default="INFO", alias="TRADEDESK_LOG_LEVEL")

    # Sub-configurations
    agent: AgentConfig = Field(default_factory=AgentConfig)
    position_sizing: PositionSizingConfig = Field(default_factory=PositionSizingConfig)
    breaker: CircuitBreakerConfig = Field(default_factory=CircuitBreakerConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)

    @property
    def is_local(self) -> bool:
        """Check if running in local development mode."""
        return self.env == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience alias
settings = get_settings()
