"""Contribution advisor: gathers snapshots, runs the engine, records the audit trail"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
import logging
import uuid

from allocator_config import AppConfig
from .context import RunContext, clear_current_run, set_current_run
from .engine import ContributionEngine, default_rule_set, resolve_config, to_decimal
from .exceptions import InputValidationError, NoActiveModelPortfolioError
from .models import AllocationResult, AuditRecord
from .providers import HoldingsProvider, ModelPortfolioProvider, ResultConsumer, RuleSetProvider


class ContributionAdvisor:
    """Caller-side orchestration around ContributionEngine"""

    def __init__(self, holdings_provider: HoldingsProvider, model_provider: ModelPortfolioProvider,
                 rules_provider: RuleSetProvider, result_consumer: Optional[ResultConsumer] = None,
                 config: Optional[AppConfig] = None, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self.config = resolve_config(config)
        self.holdings_provider = holdings_provider
        self.model_provider = model_provider
        self.rules_provider = rules_provider
        self.result_consumer = result_consumer
        self.engine = ContributionEngine(config=self.config, logger=self.logger)

    def recommend(self, user_id: str, portfolio_id: str, cash_amount) -> AllocationResult:
        """
        Produce a contribution recommendation for one of the user's portfolios.

        Raises InputValidationError when the amount is outside the configured
        bounds, PortfolioNotFoundError from the holdings provider,
        NoActiveModelPortfolioError when no model portfolio is active, and
        anything the engine raises.
        """
        run = RunContext(run_id=str(uuid.uuid4()), user_id=user_id, portfolio_id=portfolio_id)
        set_current_run(run)

        try:
            cash = self._check_contribution_bounds(cash_amount)

            holdings = self.holdings_provider.get_holdings(portfolio_id, user_id)

            model_funds = self.model_provider.get_active_model_funds()
            if not model_funds:
                self.logger.error("No active model portfolio; cannot recommend a contribution")
                raise NoActiveModelPortfolioError()

            rules = self.rules_provider.get_active_rule_set()
            rules_defaulted = rules is None
            if rules_defaulted:
                rules = default_rule_set(self.config)
                self.logger.info(f"No active rule set configured; using '{rules.name}'")

            result = self.engine.invoke(holdings, model_funds, rules, cash)

            self._log_plan(result)

            if self.result_consumer is not None:
                self.result_consumer.record(AuditRecord(
                    record_id=run.run_id,
                    user_id=user_id,
                    portfolio_id=portfolio_id,
                    cash_amount=cash,
                    holdings=holdings,
                    model_funds=model_funds,
                    rules=rules,
                    rules_defaulted=rules_defaulted,
                    result=result,
                    created_at=datetime.now(timezone.utc),
                ))

            return result
        finally:
            clear_current_run()

    def _check_contribution_bounds(self, cash_amount) -> Decimal:
        cash = to_decimal(cash_amount, "cash_amount")
        bounds = self.config.contribution
        minimum = Decimal(str(bounds.minimum_amount))
        maximum = Decimal(str(bounds.maximum_amount))
        if not cash.is_finite() or cash < minimum or cash > maximum:
            raise InputValidationError(
                "cash_amount", f"must be between {minimum:,.2f} and {maximum:,.2f}, got {cash}"
            )
        return cash

    def _log_plan(self, result: AllocationResult):
        if not result.lines:
            self.logger.info(f"No purchases recommended; {result.remainder:,.2f} left unallocated")
            return

        self.logger.info(f"Recommended purchases ({len(result.lines)} funds):")
        for line in result.lines:
            self.logger.info(
                f"  #{line.rank} Buy {line.quantity} shares of {line.ticker} @ {line.price:,.2f} "
                f"= {line.amount:,.2f} ({line.current_percent:.1f}% -> {line.post_contribution_percent:.1f}%, "
                f"target {line.target_percent:.1f}%)"
            )
        self.logger.info(
            f"Total invested {result.total_invested:,.2f}, remainder {result.remainder:,.2f}, "
            f"balance achieved: {result.balance_achieved}"
        )
        for waiting in result.waiting:
            self.logger.info(f"  Waiting for discount: {waiting.ticker} ({waiting.discount_percent:+.2f}%)")
