"""
Per-account transfer limits and velocity checks.

The guard is read-only: it looks at the sender's outgoing ledger legs and
either returns or raises TransferLimitError, so the engine can run it with the
rest of its validation before any balance moves.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional

from backoffice.exceptions import TransferLimitError
from backoffice.logging_config import get_logger
from backoffice.models import (
    Account,
    AccountType,
    EntryType,
    Transaction,
    TransactionStatus,
    TransactionType,
)
from backoffice.store.base import AccountStore
from backoffice.utils import as_utc, format_currency, utc_now

logger = get_logger("backoffice.transfers.limits")

VELOCITY_WINDOW = timedelta(minutes=1)


@dataclass(frozen=True)
class TransferLimits:
    single_transaction_limit: Decimal
    daily_transfer_limit: Decimal
    monthly_limit: Decimal
    velocity_limit: int  # outgoing transactions per minute


BASIC_LIMITS = TransferLimits(
    single_transaction_limit=Decimal("5000"),
    daily_transfer_limit=Decimal("5000"),
    monthly_limit=Decimal("50000"),
    velocity_limit=5,
)

BUSINESS_LIMITS = TransferLimits(
    single_transaction_limit=Decimal("100000"),
    daily_transfer_limit=Decimal("100000"),
    monthly_limit=Decimal("1000000"),
    velocity_limit=20,
)

DEFAULT_LIMITS: Dict[AccountType, TransferLimits] = {
    AccountType.CHECKING: BASIC_LIMITS,
    AccountType.SAVINGS: BASIC_LIMITS,
    AccountType.BUSINESS: BUSINESS_LIMITS,
}


def _debits(transactions: Iterable[Transaction]) -> List[Transaction]:
    return [
        t for t in transactions if t.entry_type == EntryType.DEBIT and t.status != TransactionStatus.FAILED
    ]


def _since(transactions: Iterable[Transaction], start: datetime) -> List[Transaction]:
    return [t for t in transactions if as_utc(t.created_at) >= start]


def _total(transactions: Iterable[Transaction]) -> Decimal:
    return sum((abs(t.amount) for t in transactions), Decimal("0"))


class TransferLimitGuard:
    """Single, daily, monthly and per-minute caps on what an account may send."""

    def __init__(
        self,
        store: AccountStore,
        limits: Optional[Dict[AccountType, TransferLimits]] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.limits = limits or DEFAULT_LIMITS
        self.clock = clock

    def limits_for(self, account: Account) -> TransferLimits:
        return self.limits.get(account.account_type, BASIC_LIMITS)

    async def check(self, account: Account, amount: Decimal) -> None:
        """Raise TransferLimitError when sending ``amount`` would break one of the account's limits."""
        limits = self.limits_for(account)
        now = as_utc(self.clock())
        month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        minute_start = now - VELOCITY_WINDOW

        sent = _debits(
            await self.store.list_transactions_since(account.account_id, min(month_start, minute_start))
        )

        if len(_since(sent, minute_start)) >= limits.velocity_limit:
            self._reject(account, f"Too many transactions. Maximum {limits.velocity_limit} per minute.")

        if amount > limits.single_transaction_limit:
            self._reject(account, f"Single transaction limit is {format_currency(limits.single_transaction_limit)}")

        today = _total(t for t in _since(sent, day_start) if t.transaction_type == TransactionType.TRANSFER)
        if today + amount > limits.daily_transfer_limit:
            self._reject(
                account,
                f"Daily transfer limit is {format_currency(limits.daily_transfer_limit)}. "
                f"You've already used {format_currency(today)} today.",
            )

        this_month = _total(_since(sent, month_start))
        if this_month + amount > limits.monthly_limit:
            self._reject(
                account,
                f"Monthly limit is {format_currency(limits.monthly_limit)}. "
                f"You've already used {format_currency(this_month)} this month.",
            )

    def _reject(self, account: Account, message: str) -> None:
        logger.warning("Transfer rejected - limit from=%s: %s", account.account_number, message)
        raise TransferLimitError(message)
