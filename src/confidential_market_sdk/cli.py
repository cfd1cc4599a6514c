"""Command line access to the prediction market."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

from .display import MASKED_VALUE, describe_error, event_status, format_private_value
from .errors import MarketSDKError

logger = logging.getLogger(__name__)


def _iso(ts: int) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


def _yes_no(value: str) -> bool:
    lowered = value.lower()
    if lowered not in ("yes", "no"):
        raise argparse.ArgumentTypeError("expected 'yes' or 'no'")
    return lowered == "yes"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="confidential-market", description=__doc__)
    parser.add_argument("--network", default=os.getenv("MARKET_NETWORK", "sepolia"))
    parser.add_argument("--contract", help="Prediction market contract address")
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("create-event", help="Create a prediction event")
    p.add_argument("--description", required=True)
    p.add_argument("--start-time", type=int, required=True, help="Unix timestamp")
    p.add_argument("--end-time", type=int, required=True, help="Unix timestamp")
    p.add_argument("--price-yes", type=int, required=True, help="Wei")
    p.add_argument("--price-no", type=int, required=True, help="Wei")

    p = sub.add_parser("place-bet", help="Place an encrypted bet")
    p.add_argument("--event-id", type=int, required=True)
    p.add_argument("--shares", type=int, required=True)
    p.add_argument("--direction", type=_yes_no, required=True, help="yes or no")
    p.add_argument("--payment", type=int, required=True, help="Wei")

    p = sub.add_parser("resolve-event", help="Resolve an event")
    p.add_argument("--event-id", type=int, required=True)
    p.add_argument("--outcome", type=_yes_no, required=True, help="yes or no")

    p = sub.add_parser("claim-rewards", help="Claim rewards for a resolved event")
    p.add_argument("--event-id", type=int, required=True)

    p = sub.add_parser("rewards", help="Show rewards waiting to be claimed")
    p.add_argument("--event-id", type=int, nargs="*", help="Defaults to every event")

    p = sub.add_parser("get-event", help="Show an event")
    p.add_argument("--event-id", type=int, required=True)

    p = sub.add_parser("get-user-bet", help="Show and decrypt your bet on an event")
    p.add_argument("--event-id", type=int, required=True)

    sub.add_parser("list-events", help="List all events")
    sub.add_parser("last-error", help="Decrypt your last contract error")
    return parser


def _print_event(event: Any, indent: str = "") -> None:
    print(f"{indent}Description: {event.description}")
    print(f"{indent}Start: {_iso(event.start_time)}")
    print(f"{indent}End: {_iso(event.end_time)}")
    print(f"{indent}Status: {event_status(event.start_time, event.end_time, event.is_resolved)}")
    print(f"{indent}YES price: {event.price_yes} wei")
    print(f"{indent}NO price: {event.price_no} wei")
    if event.is_resolved:
        print(f"{indent}Outcome: {'YES' if event.outcome else 'NO'}")
    print(f"{indent}Pool: {format_private_value(event.total_pool_eth, 'amount')}")


async def dispatch(args: argparse.Namespace, client: Any) -> int:
    command = args.command
    if command == "create-event":
        tx = await client.create_prediction_event(
            args.description, args.start_time, args.end_time, args.price_yes, args.price_no
        )
        count = await client.get_event_count()
        print(f"Event created: id {count - 1} (tx {tx})")
    elif command == "place-bet":
        tx = await client.place_encrypted_bet(args.event_id, args.shares, args.direction, args.payment)
        print(f"Bet placed (tx {tx})")
    elif command == "resolve-event":
        tx = await client.resolve_event(args.event_id, args.outcome)
        print(f"Event resolved (tx {tx})")
    elif command == "claim-rewards":
        tx = await client.claim_rewards(args.event_id)
        print(f"Rewards claimed (tx {tx})")
    elif command == "rewards":
        event_ids = args.event_id
        if not event_ids:
            event_ids = range(await client.get_event_count())
        rewards = await client.get_user_rewards(event_ids)
        if not rewards:
            print("No pending rewards")
        for reward in rewards:
            print(f"Event {reward.event_id}: {format_private_value(reward.pending_amount, 'amount')}")
    elif command == "get-event":
        event = await client.get_prediction_event(args.event_id)
        print(f"Event {event.id}:")
        _print_event(event, "  ")
    elif command == "list-events":
        count = await client.get_event_count()
        print(f"Total events: {count}")
        for event_id in range(count):
            event = await client.get_prediction_event(event_id)
            print(f"Event {event_id}:")
            _print_event(event, "  ")
    elif command == "get-user-bet":
        bet = await client.get_user_bet(args.event_id)
        print(f"Has placed bet: {bet.has_placed_bet}")
        if not bet.has_placed_bet:
            return 0
        try:
            revealed = await client.reveal_user_bet(args.event_id)
        except MarketSDKError as e:
            print(f"Could not decrypt bet: {e}")
            for label in ("Amount", "Shares", "Direction"):
                print(f"{label}: {MASKED_VALUE}")
            print(f"Encrypted amount handle: {bet.encrypted_amount}")
            print(f"Encrypted shares handle: {bet.encrypted_shares}")
            print(f"Encrypted direction handle: {bet.is_yes_bet}")
            return 1
        print(f"Amount: {format_private_value(revealed.amount, 'amount')}")
        print(f"Shares: {format_private_value(revealed.shares, 'shares')}")
        print(f"Direction: {format_private_value(revealed.is_yes, 'direction')}")
    elif command == "last-error":
        code, timestamp = await client.reveal_last_error()
        print(f"Last error: {describe_error(code)} (at {_iso(timestamp) if timestamp else 'never'})")
    return 0


async def _run(args: argparse.Namespace) -> int:
    from dataclasses import replace

    from web3 import Web3

    from .client.wallet import LocalAccountWallet
    from .config import NETWORKS, Settings
    from .contract import PredictionMarketClient
    from .session import FheSession

    if args.network not in NETWORKS:
        print(f"Unknown network: {args.network}", file=sys.stderr)
        return 2
    settings = Settings.from_env(NETWORKS[args.network])
    if args.contract:
        settings = replace(settings, contract_address=args.contract)

    private_key = os.getenv("MARKET_PRIVATE_KEY")
    wallet = LocalAccountWallet(private_key) if private_key else None
    w3 = Web3(Web3.HTTPProvider(settings.rpc_url, request_kwargs={"timeout": settings.timeout}))
    session = FheSession(settings, web3=w3)
    try:
        if args.command in ("place-bet", "get-user-bet", "last-error"):
            await session.initialize()
        client = PredictionMarketClient(w3, session, wallet)
        return await dispatch(args, client)
    finally:
        session.close()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return asyncio.run(_run(args))
    except MarketSDKError as e:
        logger.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
