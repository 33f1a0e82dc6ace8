"""Application configuration management for the Recall portfolio rebalancer."""

from .models import (
    AppConfig,
    RecallAPIConfig,
    TradingConfig,
    ConsolidationConfig,
    ReportConfig,
    LoggingConfig,
)
from .loader import load_config, get_config

__all__ = [
    "AppConfig",
    "RecallAPIConfig",
    "TradingConfig",
    "ConsolidationConfig",
    "ReportConfig",
    "LoggingConfig",
    "load_config",
    "get_config",
]
