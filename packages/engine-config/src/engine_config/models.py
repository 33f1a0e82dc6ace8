"""Pydantic models for application configuration with validation."""

from typing import Literal, Optional
from pydantic import BaseModel, Field, field_validator


class RecallAPIConfig(BaseModel):
    """Recall Network API adapter configuration."""

    base_url: Optional[str] = Field(
        default=None,
        description="Recall API base URL (RECALL_API_URL environment variable takes precedence)"
    )
    request_timeout_seconds: float = Field(
        default=10.0,
        ge=1.0,
        le=120.0,
        description="Timeout for a single Recall API request"
    )
    max_retries: int = Field(
        default=5,
        ge=0,
        le=10,
        description="Retries for network errors, HTTP 429 and idempotent 5xx responses"
    )
    retry_backoff_base_seconds: float = Field(
        default=0.1,
        ge=0.0,
        le=10.0,
        description="Exponential backoff base: delay = base * 2**attempt"
    )
    retry_max_delay_seconds: float = Field(
        default=10.0,
        ge=0.0,
        le=120.0,
        description="Upper bound for a single backoff delay"
    )
    price_cache_ttl_seconds: int = Field(
        default=30,
        ge=0,
        le=300,
        description="How long price data is cached before refresh"
    )
    default_price_chain: str = Field(
        default="eth",
        description="Chain used to price symbols when no chain hint is given"
    )

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: Optional[str]) -> Optional[str]:
        return v.rstrip("/") if v else v


class TradingConfig(BaseModel):
    """Trading policy constants and pacing delays."""

    bridge_asset: str = Field(
        default="USDC",
        description="Stable token used as the intermediate hop for sells and consolidation"
    )
    liquidation_priority: float = Field(
        default=50.0,
        ge=0.0,
        description="Fixed priority of full-liquidation sells for zero-weight holdings"
    )
    sub_trade_delay_seconds: float = Field(
        default=3.0,
        ge=0.0,
        le=60.0,
        description="Wait between sub-trades in the rebalancing loop"
    )
    iteration_delay_seconds: float = Field(
        default=2.0,
        ge=0.0,
        le=60.0,
        description="Pause between rebalancing iterations"
    )
    bootstrap_delay_seconds: float = Field(
        default=3.0,
        ge=0.0,
        le=60.0,
        description="Wait after selling a non-target holding to fund buys"
    )
    consolidation_trade_delay_seconds: float = Field(
        default=2.0,
        ge=0.0,
        le=60.0,
        description="Wait after each successful consolidation sub-trade"
    )
    consolidation_move_delay_seconds: float = Field(
        default=2.0,
        ge=0.0,
        le=60.0,
        description="Wait between consolidation moves"
    )
    consolidation_position_fraction: float = Field(
        default=0.20,
        gt=0.0,
        le=1.0,
        description="Max share of a consolidation move sold in one sub-trade"
    )
    consolidation_portfolio_fraction: float = Field(
        default=0.25,
        gt=0.0,
        le=1.0,
        description="Max share of portfolio value sold in one consolidation sub-trade"
    )


class ConsolidationConfig(BaseModel):
    """Consolidation chain selection settings."""

    chain_preference_bonus: float = Field(
        default=1000.0,
        ge=0.0,
        description="Chain score bonus per target token, divided by (rank + 1) in its preference list"
    )


class ReportConfig(BaseModel):
    """Report recommendation thresholds."""

    drift_warning_threshold: float = Field(
        default=0.01,
        ge=0.0,
        le=1.0,
        description="Final max drift above which the report says the portfolio is still drifting"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(
        default="INFO",
        description="Root log level"
    )
    format: Literal["text", "json"] = Field(
        default="text",
        description="Log line format"
    )
    log_dir: Optional[str] = Field(
        default=None,
        description="Directory for the daily rotated log file; stdout only when unset"
    )
    backup_count: int = Field(
        default=365,
        ge=1,
        le=3650,
        description="Days of rotated log files to keep"
    )

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        if v.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid log level '{v}'")
        return v.upper()


class AppConfig(BaseModel):
    """Root application configuration."""

    recall: RecallAPIConfig = Field(
        default_factory=RecallAPIConfig,
        description="Recall API adapter settings"
    )
    trading: TradingConfig = Field(
        default_factory=TradingConfig,
        description="Trading policy and pacing"
    )
    consolidation: ConsolidationConfig = Field(
        default_factory=ConsolidationConfig,
        description="Consolidation chain selection"
    )
    report: ReportConfig = Field(
        default_factory=ReportConfig,
        description="Report settings"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging settings"
    )
