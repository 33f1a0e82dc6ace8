"""Configuration loader with validation and singleton access."""

import logging
import yaml
from pathlib import Path
from typing import Optional

from .models import AppConfig

logger = logging.getLogger(__name__)

# Global config singleton
_config: Optional[AppConfig] = None


def load_config(config_path: str | Path) -> AppConfig:
    """
    Load and validate configuration from YAML file.

    Args:
        config_path: Path to config.yaml file

    Returns:
        Validated AppConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config validation fails
        yaml.YAMLError: If YAML parsing fails
    """
    global _config

    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    logger.info(f"Loading configuration from: {config_path}")

    with open(config_path, 'r') as f:
        raw_config = yaml.safe_load(f)

    if raw_config is None:
        raw_config = {}

    try:
        _config = AppConfig(**raw_config)
    except Exception as e:
        logger.error(f"Configuration validation failed: {e}")
        raise ValueError(f"Invalid configuration: {e}") from e

    # Log loaded configuration for audit trail
    logger.info("Configuration loaded successfully:")
    logger.info(f"  Recall API base URL: {_config.recall.base_url or '(from RECALL_API_URL)'}")
    logger.info(f"  Recall request timeout: {_config.recall.request_timeout_seconds}s")
    logger.info(f"  Recall max retries: {_config.recall.max_retries}")
    logger.info(f"  Price cache TTL: {_config.recall.price_cache_ttl_seconds}s")
    logger.info(f"  Bridge asset: {_config.trading.bridge_asset}")
    logger.info(f"  Liquidation priority: {_config.trading.liquidation_priority}")
    logger.info(f"  Sub-trade delay: {_config.trading.sub_trade_delay_seconds}s")
    logger.info(f"  Iteration delay: {_config.trading.iteration_delay_seconds}s")
    logger.info(f"  Consolidation split: {_config.trading.consolidation_position_fraction * 100}% of move, "
                f"{_config.trading.consolidation_portfolio_fraction * 100}% of portfolio")
    logger.info(f"  Chain preference bonus: {_config.consolidation.chain_preference_bonus}")
    logger.info(f"  Drift warning threshold: {_config.report.drift_warning_threshold * 100}%")

    return _config


def get_config() -> AppConfig:
    """
    Get the current loaded configuration.

    Returns:
        Current AppConfig instance

    Raises:
        RuntimeError: If config hasn't been loaded yet
    """
    if _config is None:
        raise RuntimeError(
            "Configuration not loaded. Call load_config() first."
        )
    return _config
