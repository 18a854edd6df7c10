"""Split a contribution into whole-share purchases across ranked funds"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional
import logging

from .models import AllocationLine, CandidateScore, RuleSet

ZERO = Decimal("0")


@dataclass
class AllocationPlan:
    lines: List[AllocationLine] = field(default_factory=list)
    total_invested: Decimal = ZERO
    remainder: Decimal = ZERO
    balance_achieved: bool = True


class AllocationEngine:
    """Distribute cash sequentially or proportionally over the selected funds"""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def allocate(self, selected: List[CandidateScore], cash_amount: Decimal,
                 rules: RuleSet) -> AllocationPlan:
        """
        Build the purchase plan for the ranked, capped candidate list.

        balance_achieved is True when the remainder cannot buy a single share
        of the cheapest selected fund (or nothing was selected). It is a
        statement about leftover cash, not about distance to target weights.
        """
        if not selected:
            self.logger.info("No eligible funds to allocate; full amount left as remainder")
            return AllocationPlan(remainder=cash_amount, balance_achieved=True)

        if rules.sequential_allocation:
            quantities = self._allocate_sequential(selected, cash_amount)
        else:
            quantities = self._allocate_proportional(selected, cash_amount)

        lines = []
        for candidate in selected:
            quantity = quantities.get(candidate.ticker, 0)
            if quantity < 1:
                continue
            lines.append(AllocationLine(
                ticker=candidate.ticker,
                rank=candidate.rank,
                quantity=quantity,
                price=candidate.current_price,
                amount=candidate.current_price * quantity,
                current_percent=candidate.current_percent,
                target_percent=candidate.target_percent,
            ))

        total_invested = sum((line.amount for line in lines), ZERO)
        remainder = cash_amount - total_invested
        cheapest = min(c.current_price for c in selected)

        self.logger.info(
            f"Allocated {total_invested:,.2f} of {cash_amount:,.2f} across {len(lines)} funds "
            f"({'sequential' if rules.sequential_allocation else 'proportional'}), remainder {remainder:,.2f}"
        )

        return AllocationPlan(
            lines=lines,
            total_invested=total_invested,
            remainder=remainder,
            balance_achieved=remainder < cheapest,
        )

    def _allocate_sequential(self, selected: List[CandidateScore], cash_amount: Decimal) -> Dict[str, int]:
        """Buy as many shares as possible of each fund in rank order, skipping unaffordable ones"""
        remaining = cash_amount
        quantities = {}

        for candidate in selected:
            quantity = int(remaining // candidate.current_price)
            if quantity < 1:
                self.logger.debug(
                    f"  Skipping #{candidate.rank} {candidate.ticker}: price {candidate.current_price:,.2f} "
                    f"exceeds remaining {remaining:,.2f}"
                )
                continue

            quantities[candidate.ticker] = quantity
            remaining -= candidate.current_price * quantity
            self.logger.debug(
                f"  #{candidate.rank} {candidate.ticker}: {quantity} @ {candidate.current_price:,.2f}, "
                f"remaining {remaining:,.2f}"
            )

        return quantities

    def _allocate_proportional(self, selected: List[CandidateScore], cash_amount: Decimal) -> Dict[str, int]:
        """
        Split cash by normalized composite score, then hand out the pooled
        leftover one share at a time in rank order.
        """
        total_score = sum((max(c.composite_score, ZERO) for c in selected), ZERO)
        if total_score > ZERO:
            targets = {c.ticker: cash_amount * max(c.composite_score, ZERO) / total_score for c in selected}
        else:
            self.logger.debug("All composite scores are zero; falling back to equal weighting")
            targets = {c.ticker: cash_amount / len(selected) for c in selected}

        remaining = cash_amount
        quantities = {}
        for candidate in selected:
            target = targets[candidate.ticker]
            # Capped by remaining cash so rounding in the weights can never overspend
            quantity = min(int(target // candidate.current_price), int(remaining // candidate.current_price))
            quantities[candidate.ticker] = quantity
            remaining -= candidate.current_price * quantity
            self.logger.debug(
                f"  #{candidate.rank} {candidate.ticker}: target {target:,.2f} -> {quantity} @ "
                f"{candidate.current_price:,.2f}"
            )

        # remaining is the pooled leftover of every fund's target spend
        self.logger.debug(f"  Redistributing pooled leftover {remaining:,.2f}")
        bought = True
        while bought:
            bought = False
            for candidate in selected:
                if candidate.current_price <= remaining:
                    quantities[candidate.ticker] += 1
                    remaining -= candidate.current_price
                    bought = True
                    self.logger.debug(
                        f"  Leftover share of {candidate.ticker} @ {candidate.current_price:,.2f}, "
                        f"pool {remaining:,.2f}"
                    )

        return quantities
