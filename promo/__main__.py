"""Command line entry point for browsing and buying boosts."""

from __future__ import annotations

import argparse
import asyncio
import logging

import logfire

from promo.boosts import (
    BoostService,
    CreditChannel,
    Customer,
    ExternalChannel,
    PromotionWorkflow,
    WalletChannel,
)
from promo.boosts.ledgers import utc_now
from promo.boosts.ui import boost_line, channel_label, format_price, tier_line
from promo.common.errors import PromoError
from promo.config import settings

logfire.configure(
    token=settings.logfire_token,
    service_name=settings.app_name,
    environment=settings.environment,
    send_to_logfire="if-token-present",
)

if settings.environment == "dev":
    logfire.instrument_httpx(capture_all=True)
logfire.instrument_pydantic(record="failure")

logging.basicConfig(
    level=logging.WARNING,
    format="[%(asctime)s][%(name)s][%(levelname)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    handlers=[
        logfire.LogfireLoggingHandler(),
    ],
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="promo", description=__doc__)
    parser.add_argument("--token", help="Bearer token (defaults to API_TOKEN)")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("tiers", help="List promotion types and prices")
    commands.add_parser("credits", help="Show subscription credits")
    commands.add_parser("wallet", help="Show wallet balance")
    commands.add_parser("boosts", help="List active and expired boosts")

    buy = commands.add_parser("buy", help="Boost a listing")
    buy.add_argument("listing_id")
    buy.add_argument("--type", dest="boost_type", default="featured")
    buy.add_argument("--days", type=int, default=None)
    buy.add_argument(
        "--pay",
        default=None,
        help="credit, wallet or a payment service id (default: credit if available)",
    )
    buy.add_argument("--user", dest="user_id", help="User id for external payments")
    buy.add_argument("--phone", help="Phone number for external payments")

    reboost = commands.add_parser("reboost", help="Boost the listing of an earlier boost")
    reboost.add_argument("boost_id")
    reboost.add_argument("--days", type=int, default=None)
    reboost.add_argument("--pay", default=None)

    verify = commands.add_parser("verify", help="Check an external payment")
    verify.add_argument("transaction_id")
    return parser


def pick_channel(choice: str | None, workflow: PromotionWorkflow) -> None:
    if choice is None:
        return
    match choice:
        case "credit":
            workflow.select_channel(CreditChannel())
        case "wallet":
            workflow.select_channel(WalletChannel())
        case provider_id:
            workflow.select_channel(ExternalChannel(provider_id))


async def purchase(workflow: PromotionWorkflow, args: argparse.Namespace) -> int:
    if args.days is not None:
        workflow.choose_duration(args.days)

    price = await workflow.calculate_price()
    if price is None:
        print(f"Error: {workflow.message}")
        return 1
    print(f"Price: {format_price(price, settings.currency)}")
    print("Pay with:")
    for channel in workflow.channels:
        print(f"  - {channel_label(channel)} [{channel.payment_method}]")

    pick_channel(args.pay, workflow)
    outcome = await workflow.submit()
    if outcome is None:
        return 1
    if not outcome.ok:
        print(f"Error: {outcome.message}")
        return 1
    if outcome.redirect_url:
        print(f"Complete the payment at: {outcome.redirect_url}")
        if outcome.transaction_id:
            print(f"Then run: promo verify {outcome.transaction_id}")
        return 0
    print(f"Boost {outcome.boost.id} active until {outcome.boost.expires_at:%Y-%m-%d %H:%M}")
    return 0


async def run(args: argparse.Namespace) -> int:
    customer = None
    if getattr(args, "user_id", None):
        customer = Customer(user_id=args.user_id, phone=args.phone)

    async with BoostService.from_settings(customer=customer, token=args.token) as service:
        match args.command:
            case "tiers":
                for tier in await service.catalog.list_tiers():
                    print(tier_line(tier, settings.currency))
            case "credits":
                credits = await service.credits.get()
                plan = credits.plan_name or "no plan"
                print(
                    f"{plan}: {credits.remaining_credits} of {credits.total_credits} "
                    "featured boost credits left"
                )
            case "wallet":
                wallet = await service.wallet.get()
                print(format_price(wallet.balance, wallet.currency))
            case "boosts":
                now = utc_now()
                partition = await service.boosts.partition(now)
                print(f"Active ({len(partition.active)}):")
                for boost in partition.active:
                    print(f"  {boost_line(boost, now)}")
                print(f"Expired ({len(partition.expired)}):")
                for boost in partition.expired:
                    print(f"  {boost_line(boost, now)} [{boost.id}]")
            case "buy":
                workflow = service.start(args.listing_id, boost_type=args.boost_type)
                return await purchase(workflow, args)
            case "reboost":
                workflow = await service.reboost(args.boost_id)
                return await purchase(workflow, args)
            case "verify":
                record = await service.confirm_return(args.transaction_id)
                print(f"{record.transaction_id}: {record.status}")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return asyncio.run(run(args))
    except PromoError as e:
        print(f"Error: {e.user_message}")
        return 1


if __name__ == "__main__":
    try:
        raise SystemExit(main())
    except KeyboardInterrupt:
        logging.info("Stopped.")
    except Exception:
        logfire.fatal("App crashed", _exc_info=True)
        raise
