"""Pytest configuration and shared fixtures."""
import logging
from decimal import Decimal

import pytest

from allocator_config import AppConfig, reset_config
from contribution_allocator import HoldingsSnapshot, ModelFund, Position, RuleSet
from contribution_allocator.context import clear_current_run


@pytest.fixture(autouse=True)
def _isolate_global_state():
    """Reset the config singleton, run context and root logger around every test."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    reset_config()
    clear_current_run()
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    reset_config()
    clear_current_run()


@pytest.fixture
def app_config():
    """Default application configuration."""
    return AppConfig()


@pytest.fixture
def make_rules():
    """Factory for rule sets starting from the documented defaults."""
    def _make(**overrides):
        values = dict(
            name="Test rules",
            minimum_discount=Decimal("0"),
            allow_no_discount=True,
            imbalance_tolerance=Decimal("2"),
            imbalance_weight=60,
            discount_weight=40,
            max_funds=5,
            sequential_allocation=False,
        )
        values.update(overrides)
        return RuleSet(**values)
    return _make


@pytest.fixture
def make_fund():
    """Factory for model funds."""
    def _make(ticker, price, ceiling, target, **extra):
        return ModelFund(
            ticker=ticker,
            segment=extra.pop("segment", "LOGISTICS"),
            current_price=Decimal(str(price)),
            ceiling_price=Decimal(str(ceiling)),
            target_percent=Decimal(str(target)),
            **extra,
        )
    return _make


@pytest.fixture
def make_holdings():
    """Factory for holdings snapshots from {ticker: current_value}."""
    def _make(values=None, portfolio_id="portfolio-1", total_value=None):
        positions = [
            Position(ticker=ticker, quantity=Decimal("1"), average_cost=Decimal(str(value)),
                     current_value=Decimal(str(value)))
            for ticker, value in (values or {}).items()
        ]
        return HoldingsSnapshot(
            portfolio_id=portfolio_id,
            positions=positions,
            total_value=None if total_value is None else Decimal(str(total_value)),
        )
    return _make
