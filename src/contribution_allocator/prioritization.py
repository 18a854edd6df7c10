"""Rank model funds for a contribution by imbalance and discount"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional
import logging

from .discount import DiscountScore, DiscountScorer
from .imbalance import ImbalanceScore, ImbalanceScorer
from .models import CandidateScore, FundStatus, HoldingsSnapshot, ModelFund, RuleSet, Signal

HUNDRED = Decimal("100")


@dataclass
class Prioritization:
    selected: List[CandidateScore] = field(default_factory=list)  # ranked, capped
    candidates: List[CandidateScore] = field(default_factory=list)  # every scored fund
    waiting: List[CandidateScore] = field(default_factory=list)
    above_target: List[CandidateScore] = field(default_factory=list)


class PrioritizationEngine:
    """Filter ineligible funds, combine both scores and apply the fund cap"""

    def __init__(self, imbalance_scorer: Optional[ImbalanceScorer] = None,
                 discount_scorer: Optional[DiscountScorer] = None,
                 logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self.imbalance_scorer = imbalance_scorer or ImbalanceScorer(logger=self.logger)
        self.discount_scorer = discount_scorer or DiscountScorer(logger=self.logger)

    def prioritize(self, holdings: HoldingsSnapshot, model_funds: List[ModelFund],
                   rules: RuleSet) -> Prioritization:
        """
        Rank funds for purchase.

        Ineligible funds (non-BUY signal or failing the discount gate) are
        removed before ranking. Eligible funds are ordered by composite score
        descending, ties broken by ticker ascending, and truncated to
        rules.max_funds. A selected fund may carry a zero score.
        """
        imbalances = self.imbalance_scorer.score(holdings, model_funds, rules.imbalance_tolerance)

        eligible: List[CandidateScore] = []
        rejected: List[CandidateScore] = []

        for fund in model_funds:
            imbalance = imbalances[fund.ticker]
            discount = self.discount_scorer.score(fund, rules)

            if fund.signal != Signal.BUY:
                self.logger.debug(f"Excluding {fund.ticker}: signal is {fund.signal.value}")
                rejected.append(self._build_candidate(
                    fund, imbalance, discount, rules, eligible=False,
                    status=FundStatus.DO_NOT_INVEST,
                ))
            elif not discount.eligible:
                status = FundStatus.WAIT_FOR_DISCOUNT if imbalance.urgency > 0 else FundStatus.DO_NOT_INVEST
                rejected.append(self._build_candidate(
                    fund, imbalance, discount, rules, eligible=False, status=status,
                ))
            else:
                eligible.append(self._build_candidate(
                    fund, imbalance, discount, rules, eligible=True,
                    status=FundStatus.BUY_NOW,
                ))

        eligible.sort(key=lambda c: (-c.composite_score, c.ticker))

        selected = eligible[:rules.max_funds]
        for rank, candidate in enumerate(selected, start=1):
            candidate.rank = rank
            candidate.rationale = self._rationale(candidate)

        for candidate in eligible[rules.max_funds:]:
            candidate.status = FundStatus.DO_NOT_INVEST
            candidate.rationale = (
                f"{candidate.ticker} is eligible but ranked below the limit of "
                f"{rules.max_funds} funds per contribution."
            )

        rejected.sort(key=lambda c: c.ticker)
        waiting = sorted(
            (c for c in rejected if c.status == FundStatus.WAIT_FOR_DISCOUNT),
            key=lambda c: (-c.imbalance_score, c.ticker),
        )
        above_target = [c for c in eligible + rejected if c.deviation < -rules.imbalance_tolerance]
        above_target.sort(key=lambda c: c.ticker)

        self.logger.info(
            f"Prioritized {len(model_funds)} funds: {len(eligible)} eligible, "
            f"{len(selected)} selected (cap {rules.max_funds}), {len(waiting)} waiting for discount, "
            f"{len(rejected) - len(waiting)} not investable"
        )
        for candidate in selected:
            self.logger.debug(
                f"  #{candidate.rank} {candidate.ticker}: score={candidate.composite_score:.4f} "
                f"(imbalance {candidate.imbalance_score:.2f}pp, discount {candidate.discount_score:.2f}%)"
            )

        return Prioritization(
            selected=selected,
            candidates=eligible + rejected,
            waiting=waiting,
            above_target=above_target,
        )

    @staticmethod
    def composite_score(imbalance_score: Decimal, discount_score: Decimal, rules: RuleSet) -> Decimal:
        return (imbalance_score * rules.imbalance_weight + discount_score * rules.discount_weight) / HUNDRED

    def _build_candidate(self, fund: ModelFund, imbalance: ImbalanceScore, discount: DiscountScore,
                         rules: RuleSet, eligible: bool, status: FundStatus) -> CandidateScore:
        candidate = CandidateScore(
            ticker=fund.ticker,
            segment=fund.segment,
            current_price=fund.current_price,
            current_percent=imbalance.current_percent,
            target_percent=imbalance.target_percent,
            deviation=imbalance.deviation,
            imbalance_score=imbalance.urgency,
            discount_percent=discount.discount_percent,
            discount_score=discount.score,
            eligible=eligible,
            status=status,
            composite_score=self.composite_score(imbalance.urgency, discount.score, rules) if eligible else Decimal("0"),
        )
        if not eligible:
            candidate.rationale = self._rationale(candidate, signal=fund.signal)
        return candidate

    @staticmethod
    def _rationale(candidate: CandidateScore, signal: Signal = Signal.BUY) -> str:
        """One sentence explaining the fund's status"""
        if candidate.imbalance_score > 0:
            position = (f"below target ({candidate.current_percent:.1f}% vs. "
                        f"{candidate.target_percent:.1f}%)")
        elif candidate.deviation < 0:
            position = (f"above target ({candidate.current_percent:.1f}% vs. "
                        f"{candidate.target_percent:.1f}%)")
        else:
            position = f"within tolerance of target ({candidate.current_percent:.1f}%)"

        if candidate.discount_percent > 0:
            price = f"trades {candidate.discount_percent:.2f}% below its ceiling price"
        elif candidate.discount_percent < 0:
            price = f"trades {abs(candidate.discount_percent):.2f}% above its ceiling price"
        else:
            price = "trades at its ceiling price"

        if signal != Signal.BUY:
            return f"{candidate.ticker} carries a {signal.value} signal. Not a contribution candidate."
        if candidate.status == FundStatus.BUY_NOW:
            return f"{candidate.ticker} is {position} and {price}. Priority #{candidate.rank} for this contribution."
        if candidate.status == FundStatus.WAIT_FOR_DISCOUNT:
            return f"{candidate.ticker} is {position}, but {price}. Wait for a discount."
        return f"{candidate.ticker} is {position} and {price}. Does not meet the minimum discount."
