"""Price discipline: discount to ceiling price and the eligibility gate"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional
import logging

from .models import ModelFund, RuleSet

ZERO = Decimal("0")
HUNDRED = Decimal("100")


@dataclass(frozen=True)
class DiscountScore:
    ticker: str
    discount_percent: Decimal  # positive = below ceiling
    score: Decimal  # discount floored at zero
    eligible: bool


class DiscountScorer:
    """Score how far each fund trades below its ceiling price"""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    @staticmethod
    def discount_percent(current_price: Decimal, ceiling_price: Decimal) -> Decimal:
        """(ceiling - current) / ceiling * 100, sign unbounded"""
        return (ceiling_price - current_price) / ceiling_price * HUNDRED

    def score(self, fund: ModelFund, rules: RuleSet) -> DiscountScore:
        discount = self.discount_percent(fund.current_price, fund.ceiling_price)
        eligible = rules.allow_no_discount or discount >= rules.minimum_discount

        if not eligible:
            self.logger.debug(
                f"Discount gate rejected {fund.ticker}: {discount:.2f}% < minimum {rules.minimum_discount}%"
            )

        return DiscountScore(
            ticker=fund.ticker,
            discount_percent=discount,
            score=max(discount, ZERO),
            eligible=eligible,
        )
