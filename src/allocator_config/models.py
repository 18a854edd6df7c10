"""Pydantic models for application configuration with validation."""

from typing import Literal, Optional
from pydantic import BaseModel, Field, model_validator


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Root log level"
    )
    format: Literal["text", "json"] = Field(
        default="text",
        description="Output format for log records"
    )
    log_dir: Optional[str] = Field(
        default=None,
        description="Directory for the daily rotated log file. Console only when unset"
    )
    backup_count: int = Field(
        default=30,
        ge=1,
        le=365,
        description="Number of rotated log files to keep"
    )


class ContributionConfig(BaseModel):
    """Bounds applied to the contribution amount before the engine runs."""

    minimum_amount: float = Field(
        default=50.0,
        gt=0.0,
        description="Smallest contribution accepted, in currency units"
    )
    maximum_amount: float = Field(
        default=1_000_000.0,
        gt=0.0,
        description="Largest contribution accepted, in currency units"
    )

    @model_validator(mode="after")
    def validate_range(self) -> "ContributionConfig":
        """Minimum must not exceed maximum."""
        if self.minimum_amount > self.maximum_amount:
            raise ValueError(
                f"minimum_amount ({self.minimum_amount}) exceeds maximum_amount ({self.maximum_amount})"
            )
        return self


class PricingConfig(BaseModel):
    """Handling of model funds with unusable prices."""

    strict_mode: bool = Field(
        default=False,
        description="Fail the whole run on a pricing anomaly instead of excluding the fund"
    )


class DefaultRulesConfig(BaseModel):
    """Rule set materialized when no active rule set is configured."""

    name: str = Field(
        default="Default rules",
        min_length=1,
        max_length=255,
        description="Display name of the default rule set"
    )
    minimum_discount: float = Field(
        default=0.0,
        ge=0.0,
        le=100.0,
        description="Minimum discount to ceiling price (%) for a fund to be eligible"
    )
    allow_no_discount: bool = Field(
        default=True,
        description="Accept funds at or above their ceiling price"
    )
    imbalance_tolerance: float = Field(
        default=2.0,
        ge=0.0,
        le=50.0,
        description="Deviation band (percentage points) treated as balanced"
    )
    imbalance_weight: int = Field(
        default=60,
        ge=0,
        le=100,
        description="Weight of the imbalance axis in the composite score"
    )
    discount_weight: int = Field(
        default=40,
        ge=0,
        le=100,
        description="Weight of the discount axis in the composite score"
    )
    max_funds: int = Field(
        default=5,
        ge=1,
        le=20,
        description="Maximum number of funds recommended per run"
    )
    sequential_allocation: bool = Field(
        default=False,
        description="Fill funds one at a time in rank order instead of proportionally"
    )

    @model_validator(mode="after")
    def validate_weights(self) -> "DefaultRulesConfig":
        """Weights must sum to exactly 100."""
        total = self.imbalance_weight + self.discount_weight
        if total != 100:
            raise ValueError(
                f"imbalance_weight + discount_weight must equal 100, got {total}"
            )
        return self


class AppConfig(BaseModel):
    """Root application configuration."""

    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging settings"
    )
    contribution: ContributionConfig = Field(
        default_factory=ContributionConfig,
        description="Contribution amount bounds"
    )
    pricing: PricingConfig = Field(
        default_factory=PricingConfig,
        description="Pricing anomaly handling"
    )
    default_rules: DefaultRulesConfig = Field(
        default_factory=DefaultRulesConfig,
        description="Rule set used when none is active"
    )
