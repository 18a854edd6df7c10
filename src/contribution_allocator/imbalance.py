"""Distance between current and target allocation per model fund"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Optional
import logging

from .models import HoldingsSnapshot, ModelFund

ZERO = Decimal("0")
HUNDRED = Decimal("100")


@dataclass(frozen=True)
class ImbalanceScore:
    ticker: str
    current_percent: Decimal
    target_percent: Decimal
    deviation: Decimal  # target - current, in percentage points
    urgency: Decimal  # deviation with tolerance band and overweight clamped to zero
    overweight: bool  # above target by more than the tolerance band


class ImbalanceScorer:
    """Score how far each model fund sits below its target weight"""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def score(self, holdings: HoldingsSnapshot, model_funds: List[ModelFund],
              tolerance: Decimal) -> Dict[str, ImbalanceScore]:
        """
        Compute actual weight and deviation for every model fund.

        The portfolio value includes positions outside the model portfolio;
        those positions are otherwise ignored. A fund the user does not hold
        has a current weight of zero and a deviation equal to its target.
        """
        total_value = holdings.portfolio_value
        values = holdings.value_by_ticker()
        scores = {}

        for fund in model_funds:
            held_value = values.get(fund.ticker, ZERO)
            if total_value > ZERO:
                current_percent = held_value / total_value * HUNDRED
            else:
                current_percent = ZERO

            deviation = fund.target_percent - current_percent
            urgency = self.urgency(deviation, tolerance)

            scores[fund.ticker] = ImbalanceScore(
                ticker=fund.ticker,
                current_percent=current_percent,
                target_percent=fund.target_percent,
                deviation=deviation,
                urgency=urgency,
                overweight=deviation < -tolerance,
            )
            self.logger.debug(
                f"Imbalance {fund.ticker}: current={current_percent:.2f}% "
                f"target={fund.target_percent:.2f}% deviation={deviation:+.2f}pp urgency={urgency:.2f}"
            )

        ignored = sorted(set(values) - {f.ticker for f in model_funds})
        if ignored:
            self.logger.debug(f"Holdings outside the model portfolio ignored: {', '.join(ignored)}")

        return scores

    @staticmethod
    def urgency(deviation: Decimal, tolerance: Decimal) -> Decimal:
        """Deviation inside the tolerance band, or overweight, carries no urgency"""
        if abs(deviation) <= tolerance:
            return ZERO
        return max(deviation, ZERO)
