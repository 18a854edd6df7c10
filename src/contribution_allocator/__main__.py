"""
Print a contribution recommendation for a YAML request file (dry run, nothing is executed).

    python -m contribution_allocator request.yaml --amount 1000 [--config config.yaml] [--json]
"""

import argparse
import logging
import sys
from typing import List, Optional

from allocator_config import AppConfig, load_config
from .advisor import ContributionAdvisor
from .exceptions import EngineError
from .logger import configure_root_logger
from .models import AllocationResult
from .providers import InMemoryAuditLog, YamlRequestSource

logger = logging.getLogger("contribution_allocator.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="contribution-allocator",
        description="Recommend how to split a cash contribution across the model portfolio",
    )
    parser.add_argument("request", help="YAML file with holdings, model_funds and optional rules")
    parser.add_argument("--amount", required=True, help="Cash amount to allocate")
    parser.add_argument("--config", help="Path to config.yaml")
    parser.add_argument("--user", help="Requesting user id (defaults to the request's user_id)")
    parser.add_argument("--portfolio", help="Portfolio id (defaults to the request's holdings.portfolio_id)")
    parser.add_argument("--json", action="store_true", help="Print the full result as JSON")
    return parser


def format_summary(result: AllocationResult) -> str:
    rows = []
    if result.lines:
        rows.append(f"{'#':>2}  {'Ticker':<8} {'Qty':>6} {'Price':>12} {'Amount':>14} {'After %':>8}")
        for line in result.lines:
            rows.append(
                f"{line.rank:>2}  {line.ticker:<8} {line.quantity:>6} {line.price:>12,.2f} "
                f"{line.amount:>14,.2f} {line.post_contribution_percent:>7.2f}%"
            )
    else:
        rows.append("No purchases recommended.")
    rows.append(f"Total invested: {result.total_invested:,.2f}")
    rows.append(f"Remainder:      {result.remainder:,.2f}")
    rows.append(f"Balance achieved: {'yes' if result.balance_achieved else 'no'}")
    if result.waiting:
        rows.append("Waiting for discount: " + ", ".join(c.ticker for c in result.waiting))
    for warning in result.warnings:
        rows.append(f"Warning: {warning}")
    return "\n".join(rows)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    config = load_config(args.config) if args.config else AppConfig()
    configure_root_logger(config)

    try:
        source = YamlRequestSource.from_file(args.request)
        user_id = args.user or str(source.owner or "local")
        portfolio_id = args.portfolio or source.holdings.portfolio_id

        advisor = ContributionAdvisor(
            holdings_provider=source,
            model_provider=source,
            rules_provider=source,
            result_consumer=InMemoryAuditLog(),
            config=config,
        )
        result = advisor.recommend(user_id, portfolio_id, args.amount)
    except EngineError as e:
        logger.error(f"Recommendation failed: {e}")
        return 2

    if args.json:
        print(result.model_dump_json(indent=2))
    else:
        print(format_summary(result))
    return 0


if __name__ == "__main__":
    sys.exit(main())
