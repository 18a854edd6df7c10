from .engine import ContributionEngine, default_rule_set
from .advisor import ContributionAdvisor
from .imbalance import ImbalanceScorer, ImbalanceScore
from .discount import DiscountScorer, DiscountScore
from .prioritization import PrioritizationEngine, Prioritization
from .allocation import AllocationEngine, AllocationPlan
from .models import (
    # Snapshot models
    Position,
    HoldingsSnapshot,
    ModelFund,
    RuleSet,
    Signal,
    # Derived models
    FundStatus,
    CandidateScore,
    AllocationLine,
    AllocationResult,
    PricingAnomaly,
    AuditRecord,
    ALGORITHM_VERSION,
)
from .exceptions import (
    EngineError,
    ConfigurationError,
    InputValidationError,
    PricingAnomalyError,
    PreconditionError,
    PortfolioNotFoundError,
    NoActiveModelPortfolioError,
)
from .providers import (
    HoldingsProvider,
    ModelPortfolioProvider,
    RuleSetProvider,
    ResultConsumer,
    YamlRequestSource,
    InMemoryAuditLog,
)

__version__ = "1.0.0"

__all__ = [
    "ContributionEngine",
    "ContributionAdvisor",
    "default_rule_set",
    "ImbalanceScorer",
    "ImbalanceScore",
    "DiscountScorer",
    "DiscountScore",
    "PrioritizationEngine",
    "Prioritization",
    "AllocationEngine",
    "AllocationPlan",
    "Position",
    "HoldingsSnapshot",
    "ModelFund",
    "RuleSet",
    "Signal",
    "FundStatus",
    "CandidateScore",
    "AllocationLine",
    "AllocationResult",
    "PricingAnomaly",
    "AuditRecord",
    "ALGORITHM_VERSION",
    "EngineError",
    "ConfigurationError",
    "InputValidationError",
    "PricingAnomalyError",
    "PreconditionError",
    "PortfolioNotFoundError",
    "NoActiveModelPortfolioError",
    "HoldingsProvider",
    "ModelPortfolioProvider",
    "RuleSetProvider",
    "ResultConsumer",
    "YamlRequestSource",
    "InMemoryAuditLog",
    "__version__",
]
