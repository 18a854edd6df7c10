from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field

ALGORITHM_VERSION = "1.0.0"


class Signal(str, Enum):
    """Recommendation signal attached to a model fund"""
    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


class FundStatus(str, Enum):
    """Outcome of prioritization for one model fund"""
    BUY_NOW = "BUY_NOW"
    WAIT_FOR_DISCOUNT = "WAIT_FOR_DISCOUNT"
    DO_NOT_INVEST = "DO_NOT_INVEST"


# Snapshot models
class Position(BaseModel):
    """One fund currently held by the user"""
    model_config = ConfigDict(frozen=True)

    ticker: str
    quantity: Decimal
    average_cost: Decimal = Decimal("0")
    current_value: Decimal


class HoldingsSnapshot(BaseModel):
    """User holdings at the time of the request"""
    model_config = ConfigDict(frozen=True)

    portfolio_id: str
    positions: List[Position] = Field(default_factory=list)
    total_value: Optional[Decimal] = None  # Falls back to the sum of position values

    @property
    def portfolio_value(self) -> Decimal:
        if self.total_value is not None:
            return self.total_value
        return sum((p.current_value for p in self.positions), Decimal("0"))

    def value_by_ticker(self) -> Dict[str, Decimal]:
        values: Dict[str, Decimal] = {}
        for position in self.positions:
            values[position.ticker] = values.get(position.ticker, Decimal("0")) + position.current_value
        return values


class ModelFund(BaseModel):
    """One fund of the active model portfolio"""
    model_config = ConfigDict(frozen=True)

    ticker: str
    name: str = ""
    segment: str = "OTHER"
    current_price: Decimal
    average_price: Decimal = Decimal("0")
    ceiling_price: Decimal
    target_percent: Decimal  # 0-100
    signal: Signal = Signal.BUY


class RuleSet(BaseModel):
    """Configuration consumed by one allocation run"""
    model_config = ConfigDict(frozen=True)

    name: str = "Default rules"
    description: str = ""
    minimum_discount: Decimal
    allow_no_discount: bool
    imbalance_tolerance: Decimal
    imbalance_weight: int
    discount_weight: int
    max_funds: int
    sequential_allocation: bool

    def validation_errors(self) -> List[str]:
        """Structural problems that make this rule set unusable"""
        errors = []
        if self.imbalance_weight + self.discount_weight != 100:
            errors.append(
                f"imbalance_weight + discount_weight must equal 100, "
                f"got {self.imbalance_weight} + {self.discount_weight} = "
                f"{self.imbalance_weight + self.discount_weight}"
            )
        for field, weight in (("imbalance_weight", self.imbalance_weight),
                              ("discount_weight", self.discount_weight)):
            if not 0 <= weight <= 100:
                errors.append(f"{field} must be between 0 and 100, got {weight}")
        if not 1 <= self.max_funds <= 20:
            errors.append(f"max_funds must be between 1 and 20, got {self.max_funds}")
        if not 0 <= self.imbalance_tolerance <= 50:
            errors.append(f"imbalance_tolerance must be between 0 and 50, got {self.imbalance_tolerance}")
        if not 0 <= self.minimum_discount <= 100:
            errors.append(f"minimum_discount must be between 0 and 100, got {self.minimum_discount}")
        return errors


# Derived models
class CandidateScore(BaseModel):
    """Per-fund scoring for one run"""
    ticker: str
    segment: str
    current_price: Decimal
    current_percent: Decimal
    target_percent: Decimal
    deviation: Decimal  # target - actual, positive = underweight
    imbalance_score: Decimal  # deviation after tolerance clamp and overweight floor
    discount_percent: Decimal
    discount_score: Decimal  # discount floored at zero
    eligible: bool
    status: FundStatus
    composite_score: Decimal = Decimal("0")
    rank: Optional[int] = None  # 1-based among selected funds
    rationale: str = ""


class AllocationLine(BaseModel):
    """Whole-share purchase recommended for one fund"""
    ticker: str
    rank: int
    quantity: int
    price: Decimal
    amount: Decimal
    current_percent: Decimal
    target_percent: Decimal
    post_contribution_percent: Decimal = Decimal("0")


class PricingAnomaly(BaseModel):
    """Model fund excluded because its prices are unusable"""
    ticker: str
    current_price: Decimal
    ceiling_price: Decimal
    reason: str


class AllocationResult(BaseModel):
    """Output of one allocation run.

    balance_achieved is structural: True when the remainder cannot buy one more
    share of the cheapest selected fund. It says nothing about how close the
    portfolio ends up to its target weights.
    """
    lines: List[AllocationLine] = Field(default_factory=list)
    cash_amount: Decimal
    total_invested: Decimal = Decimal("0")
    funds_recommended: int = 0
    remainder: Decimal
    balance_achieved: bool = True
    candidates: List[CandidateScore] = Field(default_factory=list)
    waiting: List[CandidateScore] = Field(default_factory=list)
    above_target: List[CandidateScore] = Field(default_factory=list)
    anomalies: List[PricingAnomaly] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    rules_applied: RuleSet
    algorithm_version: str = ALGORITHM_VERSION


class AuditRecord(BaseModel):
    """Input snapshot plus output of one run, handed to the result consumer"""
    record_id: str
    user_id: str
    portfolio_id: str
    cash_amount: Decimal
    holdings: HoldingsSnapshot
    model_funds: List[ModelFund]
    rules: RuleSet
    rules_defaulted: bool = False
    result: AllocationResult
    created_at: datetime
