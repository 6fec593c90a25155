"""
Common helpers for identifiers and money.
"""

import secrets
import string
import time
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

CENT = Decimal("0.01")

# largest value a Numeric(15, 2) money column holds
MAX_AMOUNT = Decimal("9999999999999.99")

_BASE36 = string.digits + string.ascii_uppercase


def _random_base36(length: int) -> str:
    return "".join(secrets.choice(_BASE36) for _ in range(length))


def _timestamp_ms(now: Optional[float] = None) -> int:
    return int((time.time() if now is None else now) * 1000)


def generate_reference_number(now: Optional[float] = None) -> str:
    """
    Reference number shared by both legs of a transfer: TXN-<ms>-<9 chars>.
    """
    return f"TXN-{_timestamp_ms(now)}-{_random_base36(9)}"


def generate_account_number(now: Optional[float] = None) -> str:
    """
    Account number in the ACC-<ms>-<6 chars> format.
    """
    return f"ACC-{_timestamp_ms(now)}-{_random_base36(6)}"


def to_cents(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def format_currency(amount: Decimal, currency: str = "USD") -> str:
    """
    Format amount as currency string
    """
    if currency == "USD":
        return f"${amount:,.2f}"
    return f"{currency} {amount:,.2f}"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive timestamps (SQLite hands them back without an offset)."""
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value
