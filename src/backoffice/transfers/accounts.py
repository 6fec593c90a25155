"""Account lookups and account opening used alongside transfers."""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Optional
from uuid import UUID, uuid4

from backoffice.exceptions import AccountNotFoundError, InvalidAmountError
from backoffice.logging_config import get_logger
from backoffice.models import (
    Account,
    AccountStatus,
    AccountType,
    EntryType,
    Transaction,
    TransactionStatus,
    TransactionType,
    User,
)
from backoffice.store.base import AccountStore
from backoffice.utils import (
    MAX_AMOUNT,
    format_currency,
    generate_account_number,
    generate_reference_number,
    to_cents,
)

logger = get_logger("backoffice.transfers.accounts")


@dataclass
class RecipientInfo:
    """What a sender may see about a recipient before transferring."""

    account_number: str
    account_type: str
    recipient_name: str


async def lookup_recipient(store: AccountStore, account_number: str) -> Optional[RecipientInfo]:
    """Find an active account by number, exposing only its holder's name."""
    number = (account_number or "").strip()
    if not number:
        return None
    account = await store.get_account_by_number(number)
    if account is None or not account.is_active:
        logger.info("Recipient lookup miss account_number=%s", number)
        return None
    user = await store.get_user(account.user_id)
    return RecipientInfo(
        account_number=account.account_number,
        account_type=account.account_type.value,
        recipient_name=(user.full_name if user and user.full_name else "Unknown"),
    )


def _parse_deposit(initial_deposit: Any) -> Decimal:
    try:
        value = Decimal(str(initial_deposit if initial_deposit is not None else 0).strip())
    except (InvalidOperation, ValueError):
        raise InvalidAmountError("Initial deposit must be a number")
    if not value.is_finite() or value < 0:
        raise InvalidAmountError("Initial deposit cannot be negative")
    if value > MAX_AMOUNT:
        raise InvalidAmountError(f"Initial deposit cannot exceed {format_currency(MAX_AMOUNT)}")
    return to_cents(value)


async def open_account(
    store: AccountStore,
    user_id: Optional[UUID] = None,
    full_name: Optional[str] = None,
    email: Optional[str] = None,
    account_type: AccountType = AccountType.CHECKING,
    initial_deposit: Any = 0,
    currency: str = "USD",
) -> Account:
    """
    Open an account for an existing holder, or for a new holder when no user_id is given.

    A positive initial deposit is recorded as a completed deposit transaction.
    """
    deposit = _parse_deposit(initial_deposit)

    if user_id is None:
        user = await store.create_user(User(user_id=uuid4(), full_name=full_name, email=email))
        logger.info("Created account holder user_id=%s", user.user_id)
    else:
        user = await store.get_user(user_id)
        if user is None:
            raise AccountNotFoundError("Account holder not found")

    account = await store.create_account(
        Account(
            account_id=uuid4(),
            user_id=user.user_id,
            account_number=generate_account_number(),
            balance=deposit,
            status=AccountStatus.ACTIVE,
            account_type=AccountType(account_type),
            currency=currency,
        )
    )
    logger.info(
        "Opened account %s for user_id=%s initial_deposit=%s",
        account.account_number,
        user.user_id,
        deposit,
    )

    if deposit > 0:
        await store.insert_transaction(
            Transaction(
                transaction_id=uuid4(),
                account_id=account.account_id,
                transaction_type=TransactionType.DEPOSIT,
                entry_type=EntryType.CREDIT,
                amount=deposit,
                balance_after=deposit,
                status=TransactionStatus.COMPLETED,
                reference_number=generate_reference_number(),
                description="Initial deposit",
            )
        )
    return account
