from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .models import PricingAnomaly


class EngineError(Exception):
    """Base class for errors raised by the allocation engine"""
    pass


class ConfigurationError(EngineError):
    """Raised when a rule set fails structural validation"""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("Invalid rule set: " + "; ".join(self.errors))


class InputValidationError(EngineError):
    """Raised when a request input is malformed"""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class PricingAnomalyError(EngineError):
    """Raised in strict mode when a model fund has unusable prices"""

    def __init__(self, anomalies: List['PricingAnomaly']):
        self.anomalies = list(anomalies)
        tickers = ", ".join(a.ticker for a in self.anomalies)
        super().__init__(f"Pricing anomalies in model portfolio: {tickers}")


class PreconditionError(EngineError):
    """Raised when a collaborator cannot provide what a run needs"""
    pass


class PortfolioNotFoundError(PreconditionError):
    """Raised when a portfolio is missing or not owned by the requesting user"""

    def __init__(self, portfolio_id: str, user_id: Optional[str] = None):
        self.portfolio_id = portfolio_id
        self.user_id = user_id
        super().__init__(f"Portfolio {portfolio_id} not found")


class NoActiveModelPortfolioError(PreconditionError):
    """Raised when no model portfolio is active"""

    def __init__(self):
        super().__init__("No active model portfolio")
