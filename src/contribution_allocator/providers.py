from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional
import logging
import yaml

from .exceptions import InputValidationError, PortfolioNotFoundError
from .models import AuditRecord, HoldingsSnapshot, ModelFund, RuleSet

logger = logging.getLogger(__name__)


class HoldingsProvider(ABC):
    """Source of user holdings"""

    @abstractmethod
    def get_holdings(self, portfolio_id: str, user_id: str) -> HoldingsSnapshot:
        """Return the snapshot for a portfolio the user owns, else raise PortfolioNotFoundError"""
        pass


class ModelPortfolioProvider(ABC):
    """Source of the active model portfolio"""

    @abstractmethod
    def get_active_model_funds(self) -> Optional[List[ModelFund]]:
        """Funds of the single active model portfolio; None or empty when there is none"""
        pass


class RuleSetProvider(ABC):
    """Source of the active allocation rule set"""

    @abstractmethod
    def get_active_rule_set(self) -> Optional[RuleSet]:
        """The active rule set, or None when none is configured"""
        pass


class ResultConsumer(ABC):
    """Receives the audit record of every completed run"""

    @abstractmethod
    def record(self, record: AuditRecord):
        pass


class YamlRequestSource(HoldingsProvider, ModelPortfolioProvider, RuleSetProvider):
    """
    Serve holdings, model funds and an optional rule set from one YAML document.

    Expected layout:

        user_id: u1                # optional, checked against the requesting user
        holdings:
          portfolio_id: p1
          total_value: 1000        # optional
          positions:
            - {ticker: ABCD11, quantity: 10, average_cost: 95, current_value: 1000}
        model_funds:
          - {ticker: ABCD11, segment: LOGISTICS, current_price: 100,
             ceiling_price: 120, target_percent: 50, signal: BUY}
        rules:                     # optional
          minimum_discount: 0
          ...
    """

    def __init__(self, data: Dict[str, Any], source: str = "<memory>"):
        if not isinstance(data, dict):
            raise InputValidationError("request", f"{source} must contain a mapping")
        self.source = source
        self.owner = data.get("user_id")

        try:
            self.holdings = HoldingsSnapshot(**(data.get("holdings") or {}))
            self.model_funds = [ModelFund(**item) for item in data.get("model_funds") or []]
            rules = data.get("rules")
            self.rules = RuleSet(**rules) if rules else None
        except (TypeError, ValueError) as e:
            raise InputValidationError("request", f"{source}: {e}") from e

    @classmethod
    def from_file(cls, path: str | Path) -> "YamlRequestSource":
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Request file not found: {path}")

        logger.info(f"Loading contribution request from: {path}")
        with open(path, 'r') as f:
            data = yaml.safe_load(f)

        return cls(data or {}, source=str(path))

    def get_holdings(self, portfolio_id: str, user_id: str) -> HoldingsSnapshot:
        if self.holdings.portfolio_id != portfolio_id:
            raise PortfolioNotFoundError(portfolio_id, user_id)
        if self.owner is not None and str(self.owner) != str(user_id):
            raise PortfolioNotFoundError(portfolio_id, user_id)
        return self.holdings

    def get_active_model_funds(self) -> Optional[List[ModelFund]]:
        return self.model_funds

    def get_active_rule_set(self) -> Optional[RuleSet]:
        return self.rules


class InMemoryAuditLog(ResultConsumer):
    """Keeps audit records in insertion order"""

    def __init__(self):
        self.records: List[AuditRecord] = []

    def record(self, record: AuditRecord):
        self.records.append(record)
        logger.debug(f"Recorded audit {record.record_id} for portfolio {record.portfolio_id}")

    def latest(self) -> Optional[AuditRecord]:
        return self.records[-1] if self.records else None
