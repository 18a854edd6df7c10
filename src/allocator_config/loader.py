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

    if not isinstance(raw_config, dict):
        raise ValueError(f"Invalid configuration: top level of {config_path} must be a mapping")

    try:
        _config = AppConfig(**raw_config)
    except Exception as e:
        logger.error(f"Configuration validation failed: {e}")
        raise ValueError(f"Invalid configuration: {e}") from e

    # Log loaded configuration for audit trail
    rules = _config.default_rules
    logger.info("Configuration loaded successfully:")
    logger.info(f"  Log level: {_config.logging.level} ({_config.logging.format})")
    logger.info(f"  Contribution bounds: {_config.contribution.minimum_amount:,.2f} - {_config.contribution.maximum_amount:,.2f}")
    logger.info(f"  Strict pricing: {_config.pricing.strict_mode}")
    logger.info(f"  Default rules: {rules.name}")
    logger.info(f"    Minimum discount: {rules.minimum_discount}% (allow no discount: {rules.allow_no_discount})")
    logger.info(f"    Imbalance tolerance: {rules.imbalance_tolerance}pp")
    logger.info(f"    Weights: imbalance {rules.imbalance_weight} / discount {rules.discount_weight}")
    logger.info(f"    Max funds: {rules.max_funds}")
    logger.info(f"    Mode: {'sequential' if rules.sequential_allocation else 'proportional'}")

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


def is_config_loaded() -> bool:
    """Whether load_config() has populated the singleton."""
    return _config is not None


def reset_config() -> None:
    """Drop the loaded configuration."""
    global _config
    _config = None
