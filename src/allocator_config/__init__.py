"""Application configuration management for the contribution allocator."""

from .models import (
    AppConfig,
    LoggingConfig,
    ContributionConfig,
    PricingConfig,
    DefaultRulesConfig,
)
from .loader import load_config, get_config, is_config_loaded, reset_config

__all__ = [
    "AppConfig",
    "LoggingConfig",
    "ContributionConfig",
    "PricingConfig",
    "DefaultRulesConfig",
    "load_config",
    "get_config",
    "is_config_loaded",
    "reset_config",
]
