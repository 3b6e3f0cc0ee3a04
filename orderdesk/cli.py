from __future__ import annotations

import argparse
import json

from orderdesk.core.errors import PricingError
from orderdesk.core.logging import configure_logging
from orderdesk.core.money import d
from orderdesk.demo import seed_default_rates
from orderdesk.domain.orders.aggregates import OrderAggregate
from orderdesk.domain.pricing.engine import PricingEngine
from orderdesk.domain.pricing.fx import MidRateTable
from orderdesk.persistence.pg import init_db, session_scope
from orderdesk.persistence.rate_book import SqlRateBook
from orderdesk.reconciliation.allocation import distribute_down_payment


def _parse_order(text: str) -> OrderAggregate:
    if "=" not in text:
        raise argparse.ArgumentTypeError(f"expected ORDER_ID=AMOUNT, got {text!r}")
    order_id, amount = text.split("=", 1)
    return OrderAggregate(order_id=order_id, customer_id="cli", total_amount=d(amount, order_id))


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Orderdesk pricing core CLI")
    top = parser.add_subparsers(dest="command", required=True)

    quote = top.add_parser("quote", help="Calculate shipping cost and commission")
    quote.add_argument("country")
    quote.add_argument("category")
    quote.add_argument("weight", type=d)
    quote.add_argument("order_value", type=d)
    quote.add_argument("--currency", default=None, help="Output currency (default: the rate's own)")

    top.add_parser("seed-rates", help="Seed the default shipping rate table when it is empty")

    allocate = top.add_parser("allocate", help="Preview a down payment split across orders")
    allocate.add_argument("total_down_payment", type=d)
    allocate.add_argument("orders", nargs="+", type=_parse_order, metavar="ORDER_ID=AMOUNT")

    return parser


def _quote(args: argparse.Namespace) -> int:
    init_db()
    with session_scope() as session:
        engine = PricingEngine(SqlRateBook(session), converter=MidRateTable.from_settings())
        calculation = engine.calculate_shipping(
            args.country,
            args.category,
            args.weight,
            args.order_value,
            currency=args.currency,
        )
    print(json.dumps(calculation.to_public_dict(), indent=2))
    return 0


def _seed(_: argparse.Namespace) -> int:
    init_db()
    with session_scope() as session:
        result = seed_default_rates(session)
    print(json.dumps(result, indent=2))
    return 0


def _allocate(args: argparse.Namespace) -> int:
    # No timestamps here, so orders are taken in order_id order.
    result = distribute_down_payment(args.orders, args.total_down_payment)
    print(
        json.dumps(
            {
                "requested": str(result.requested),
                "applied": str(result.applied),
                "capped": result.capped,
                "warnings": result.warnings,
                "allocations": [
                    {
                        "order_id": a.order_id,
                        "down_payment": str(a.down_payment),
                        "remaining_balance": str(a.remaining_balance),
                    }
                    for a in result.allocations
                ],
            },
            indent=2,
        )
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    configure_logging()
    parser = _build_parser()
    args = parser.parse_args(argv)

    handlers = {"quote": _quote, "seed-rates": _seed, "allocate": _allocate}
    try:
        return handlers[args.command](args)
    except PricingError as exc:
        parser.exit(1, f"error: {exc}\n")
    return 2
