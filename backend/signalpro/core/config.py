"""
Application Configuration

All settings loaded from environment variables.
"""

from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings from environment variables."""

    # Application
    app_name: str = "SignalPro Backend"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: str = "development"
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # SQLite (local persistence)
    sqlite_path: Optional[str] = None  # Defaults to ./data/signalpro.db

    # Redis
    redis_url: str = "redis://localhost:6379"
    candle_cache_ttl_seconds: int = 300

    # CORS (Frontend URL)
    allowed_origins: list[str] = ["http://localhost:3000"]

    # Market data (Upstox)
    enable_live_data: bool = False
    upstox_access_token: Optional[str] = None
    upstox_base_url: str = "https://api.upstox.com/v3"
    upstox_quote_url: str = "https://api.upstox.com/v2"
    market_data_timeout_seconds: float = 15.0

    # Candle history per analysis profile
    swing_history_days: int = 250  # trading days of daily candles
    intraday_history_days: int = 2  # trading days of 1-minute candles
    min_candles: int = 20

    # LLM advisory
    advisory_enabled: bool = True
    advisory_timeout_seconds: float = 20.0
    anthropic_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    gemini_api_key: Optional[str] = None
    llm_primary_provider: str = "openai"  # Options: gemini, anthropic, openai
    llm_anthropic_model: str = "claude-3-5-sonnet-latest"
    llm_openai_model: str = "gpt-4o-mini"
    llm_gemini_model: str = "gemini-1.5-flash"

    # ATR multipliers (stop wider than target for gap-prone NSE stocks)
    atr_stop_loss_multiplier: float = 2.0
    atr_take_profit_multiplier: float = 1.5

    # Freshness gate (seconds)
    swing_cache_max_age_seconds: int = 4 * 60 * 60
    intraday_cache_max_age_seconds: int = 300

    # Position sizing
    capital_base: float = 100_000.0
    max_investment_per_trade: float = 50_000.0

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
