"""Command line entry-point printing the billed total for a window of months."""

from __future__ import annotations

import argparse
import logging
from typing import Optional

from ..database import session_scope
from ..services import (
    AggregationUnavailableError,
    CostQueryError,
    PeriodError,
    SubscriptionService,
    build_cost_query,
)

LOGGER = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_UNAVAILABLE = 1
EXIT_INVALID_INPUT = 2


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Print the total billed across subscriptions active inside a window of months."
    )
    parser.add_argument("--from", dest="window_start", required=True, help="First month (MM-YYYY).")
    parser.add_argument("--to", dest="window_end", required=True, help="Last month (MM-YYYY).")
    parser.add_argument("--user-id", help="Only count subscriptions owned by this UUID.")
    parser.add_argument("--service-name", help="Only count this service (case-insensitive).")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    args = _parse_args(argv)
    _configure_logging(args.verbose)

    try:
        cost_query = build_cost_query(
            args.window_start,
            args.window_end,
            owner_id=args.user_id,
            service_name=args.service_name,
        )
    except (PeriodError, CostQueryError) as exc:
        LOGGER.error("Invalid report parameters: %s", exc)
        return EXIT_INVALID_INPUT

    try:
        with session_scope() as db:
            total = SubscriptionService.total_cost(db, cost_query)
    except AggregationUnavailableError as exc:
        LOGGER.error("%s", exc)
        return EXIT_UNAVAILABLE

    LOGGER.info(
        "Total billed between %s and %s: %s",
        cost_query.window_start,
        cost_query.window_end,
        total,
    )
    print(total)
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
