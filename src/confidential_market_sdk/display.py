"""Helpers for presenting market state and private values."""

from __future__ import annotations

import time

from web3 import Web3

MASKED_VALUE = "***"

ERROR_MESSAGES = {
    0: "No error",
    1: "Betting is not active for this event",
    2: "Insufficient payment for the bet",
    3: "You have already placed a bet on this event",
    4: "Event has not been resolved yet",
    5: "No winnings available to claim",
}


def event_status(start_time: int, end_time: int, is_resolved: bool, now: int | None = None) -> str:
    now = int(time.time()) if now is None else now
    if is_resolved:
        return "resolved"
    if now < start_time:
        return "upcoming"
    if now <= end_time:
        return "active"
    return "ended"


def is_event_active(start_time: int, end_time: int, is_resolved: bool, now: int | None = None) -> bool:
    return event_status(start_time, end_time, is_resolved, now) == "active"


def describe_error(code: int) -> str:
    return ERROR_MESSAGES.get(code, f"Unknown error ({code})")


def format_private_value(value: int | bool | None, kind: str) -> str:
    """Render a decrypted value; ``None`` means it was never revealed.

    Callers show ``MASKED_VALUE`` while a value is still encrypted or its
    decryption failed; nothing here substitutes a default.
    """
    if value is None:
        return "N/A"
    if kind == "amount":
        return f"{Web3.from_wei(int(value), 'ether')} ETH"
    if kind == "direction":
        return "YES" if value else "NO"
    return str(int(value))
