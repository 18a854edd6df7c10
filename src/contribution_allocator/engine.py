"""Contribution allocation: validate, screen prices, prioritize, allocate"""

from decimal import Decimal, InvalidOperation
from typing import List, Optional, Tuple
import logging

from allocator_config import AppConfig, get_config, is_config_loaded
from .allocation import AllocationEngine
from .exceptions import ConfigurationError, InputValidationError, PricingAnomalyError
from .models import (
    AllocationResult,
    HoldingsSnapshot,
    ModelFund,
    PricingAnomaly,
    RuleSet,
)
from .prioritization import PrioritizationEngine

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def resolve_config(config: Optional[AppConfig] = None) -> AppConfig:
    """Explicit config, else the loaded singleton, else defaults"""
    if config is not None:
        return config
    if is_config_loaded():
        return get_config()
    return AppConfig()


def default_rule_set(config: Optional[AppConfig] = None) -> RuleSet:
    """Rule set a caller must materialize when no active rule set exists"""
    defaults = resolve_config(config).default_rules
    return RuleSet(
        name=defaults.name,
        description="Materialized because no active rule set is configured",
        minimum_discount=Decimal(str(defaults.minimum_discount)),
        allow_no_discount=defaults.allow_no_discount,
        imbalance_tolerance=Decimal(str(defaults.imbalance_tolerance)),
        imbalance_weight=defaults.imbalance_weight,
        discount_weight=defaults.discount_weight,
        max_funds=defaults.max_funds,
        sequential_allocation=defaults.sequential_allocation,
    )


def to_decimal(value, field: str) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise InputValidationError(field, f"must be a number, got {value!r}")
    if isinstance(value, Decimal):
        return value
    try:
        # str() keeps floats at their shortest repr instead of binary expansion
        return Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError) as e:
        raise InputValidationError(field, f"must be a number, got {value!r}") from e


class ContributionEngine:
    """Recommend how to split a cash contribution across model portfolio funds"""

    def __init__(self, config: Optional[AppConfig] = None, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self.config = resolve_config(config)
        self.prioritization = PrioritizationEngine(logger=self.logger)
        self.allocation = AllocationEngine(logger=self.logger)

    def invoke(self, holdings: HoldingsSnapshot, model_funds: List[ModelFund], rules: RuleSet,
               cash_amount, strict_pricing: Optional[bool] = None) -> AllocationResult:
        """
        Run one allocation.

        Raises ConfigurationError or InputValidationError before any scoring,
        and PricingAnomalyError when strict pricing is on and a fund has a
        non-positive price. "No eligible fund" is not an error: the result
        has no lines and the whole amount as remainder.
        """
        self._validate_rules(rules)
        cash = self._validate_cash(cash_amount)
        self._validate_holdings(holdings)
        self._validate_model_funds(model_funds)

        strict = self.config.pricing.strict_mode if strict_pricing is None else strict_pricing
        priced_funds, anomalies = self._screen_prices(model_funds)
        if anomalies and strict:
            raise PricingAnomalyError(anomalies)

        self.logger.info(
            f"Allocating {cash:,.2f} for portfolio {holdings.portfolio_id}: "
            f"{len(holdings.positions)} positions, {len(priced_funds)} model funds, rules '{rules.name}'"
        )

        prioritization = self.prioritization.prioritize(holdings, priced_funds, rules)
        plan = self.allocation.allocate(prioritization.selected, cash, rules)

        warnings = [f"{a.ticker} excluded: {a.reason}" for a in anomalies]
        if not prioritization.selected:
            warnings.append("No model fund is eligible for this contribution")

        self._fill_post_contribution(plan.lines, holdings, plan.total_invested)

        return AllocationResult(
            lines=plan.lines,
            cash_amount=cash,
            total_invested=plan.total_invested,
            funds_recommended=len(plan.lines),
            remainder=plan.remainder,
            balance_achieved=plan.balance_achieved,
            candidates=prioritization.candidates,
            waiting=prioritization.waiting,
            above_target=prioritization.above_target,
            anomalies=anomalies,
            warnings=warnings,
            rules_applied=rules,
        )

    def _validate_rules(self, rules: Optional[RuleSet]):
        if rules is None:
            raise ConfigurationError(["rule set is required; materialize the default rule set instead of passing None"])
        errors = rules.validation_errors()
        if errors:
            for error in errors:
                self.logger.error(f"Rule set '{rules.name}' rejected: {error}")
            raise ConfigurationError(errors)

    def _validate_cash(self, cash_amount) -> Decimal:
        cash = to_decimal(cash_amount, "cash_amount")
        if not cash.is_finite():
            raise InputValidationError("cash_amount", f"must be finite, got {cash}")
        if cash <= ZERO:
            raise InputValidationError("cash_amount", f"must be greater than zero, got {cash}")
        return cash

    def _validate_holdings(self, holdings: Optional[HoldingsSnapshot]):
        if holdings is None:
            raise InputValidationError("holdings", "holdings snapshot is required")
        if holdings.total_value is not None and (not holdings.total_value.is_finite() or holdings.total_value < ZERO):
            raise InputValidationError("holdings.total_value", f"must be a non-negative number, got {holdings.total_value}")
        for i, position in enumerate(holdings.positions):
            if not position.ticker:
                raise InputValidationError(f"holdings.positions[{i}].ticker", "must not be empty")
            for name in ("quantity", "current_value"):
                value = getattr(position, name)
                if not value.is_finite() or value < ZERO:
                    raise InputValidationError(
                        f"holdings.positions[{i}].{name}", f"must be a non-negative number, got {value}"
                    )

    def _validate_model_funds(self, model_funds: Optional[List[ModelFund]]):
        if not model_funds:
            raise InputValidationError("model_funds", "model portfolio has no funds")
        seen = set()
        for i, fund in enumerate(model_funds):
            if not fund.ticker:
                raise InputValidationError(f"model_funds[{i}].ticker", "must not be empty")
            if fund.ticker in seen:
                raise InputValidationError(f"model_funds[{i}].ticker", f"duplicate ticker {fund.ticker}")
            seen.add(fund.ticker)
            if not fund.target_percent.is_finite() or not ZERO <= fund.target_percent <= HUNDRED:
                raise InputValidationError(
                    f"model_funds[{i}].target_percent", f"must be between 0 and 100, got {fund.target_percent}"
                )

    def _screen_prices(self, model_funds: List[ModelFund]) -> Tuple[List[ModelFund], List[PricingAnomaly]]:
        """Split funds into usable ones and pricing anomalies"""
        priced = []
        anomalies = []

        for fund in model_funds:
            reasons = []
            if not fund.current_price.is_finite() or fund.current_price <= ZERO:
                reasons.append(f"current price {fund.current_price} is not positive")
            if not fund.ceiling_price.is_finite() or fund.ceiling_price <= ZERO:
                reasons.append(f"ceiling price {fund.ceiling_price} is not positive")

            if reasons:
                anomaly = PricingAnomaly(
                    ticker=fund.ticker,
                    current_price=fund.current_price,
                    ceiling_price=fund.ceiling_price,
                    reason="; ".join(reasons),
                )
                self.logger.warning(f"Pricing anomaly for {fund.ticker}: {anomaly.reason}")
                anomalies.append(anomaly)
            else:
                priced.append(fund)

        return priced, anomalies

    @staticmethod
    def _fill_post_contribution(lines, holdings: HoldingsSnapshot, total_invested: Decimal):
        """Weight of each purchased fund once the whole contribution is invested"""
        new_total = holdings.portfolio_value + total_invested
        if new_total <= ZERO:
            return
        values = holdings.value_by_ticker()
        for line in lines:
            line.post_contribution_percent = (values.get(line.ticker, ZERO) + line.amount) / new_total * HUNDRED
