"""
Funds transfer between two accounts.

The engine orchestrates a transfer over an AccountStore whose calls are each
atomic but which offers no cross-row transaction:

1. validate the amount, resolve both accounts, check funds and limits (no side effects)
2. debit the sender with a conditional write, re-validating on a lost race
3. credit the recipient; if that cannot be done, credit the sender back
4. write the two ledger legs under one reference number

Anything that cannot be undone automatically (a failed credit-back, a missing
ledger leg) is logged and queued as a ReconciliationItem for manual review.
"""

from dataclasses import dataclass, replace
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Tuple
from uuid import UUID, uuid4

from backoffice.exceptions import (
    AccountNotFoundError,
    BelowMinimumError,
    InsufficientFundsError,
    InvalidAmountError,
    PersistenceError,
    SameAccountError,
    StorageError,
)
from backoffice.logging_config import get_logger
from backoffice.models import (
    Account,
    EntryType,
    ReconciliationItem,
    ReconciliationReason,
    Transaction,
    TransactionStatus,
    TransactionType,
)
from backoffice.store.base import AccountStore
from backoffice.transfers.limits import TransferLimitGuard
from backoffice.utils import MAX_AMOUNT, format_currency, generate_reference_number, to_cents

logger = get_logger("backoffice.transfers.engine")


@dataclass
class SenderRef:
    """Who is sending: an owner (customer portal) or an account number (staff portals)."""

    user_id: Optional[UUID] = None
    account_number: Optional[str] = None

    def __post_init__(self):
        if (self.user_id is None) == (self.account_number is None):
            raise ValueError("SenderRef needs exactly one of user_id or account_number")


@dataclass
class TransferResult:
    reference_number: str
    amount: Decimal
    sender_account_number: str
    recipient_account_number: str
    sender_new_balance: Decimal
    recipient_new_balance: Decimal
    recipient_name: Optional[str] = None


@dataclass
class _Parties:
    sender: Account
    recipient: Account
    sender_name: Optional[str]
    recipient_name: Optional[str]


class TransferEngine:
    def __init__(
        self,
        store: AccountStore,
        min_amount: Decimal = Decimal("1.00"),
        conflict_retries: int = 3,
        limit_guard: Optional[TransferLimitGuard] = None,
    ):
        self.store = store
        self.min_amount = min_amount
        self.conflict_retries = conflict_retries
        self.limit_guard = limit_guard

    def parse_amount(self, amount: Any) -> Decimal:
        """Validate a requested amount and return it in cents."""
        if amount is None or isinstance(amount, bool):
            raise InvalidAmountError()
        try:
            value = amount if isinstance(amount, Decimal) else Decimal(str(amount).strip())
        except (InvalidOperation, ValueError, TypeError):
            raise InvalidAmountError()
        if not value.is_finite() or value <= 0:
            raise InvalidAmountError()
        if value < self.min_amount:
            raise BelowMinimumError(f"Minimum transfer amount is {format_currency(self.min_amount)}")
        if value > MAX_AMOUNT:
            raise InvalidAmountError(f"Transfer amount cannot exceed {format_currency(MAX_AMOUNT)}")
        return to_cents(value)

    async def _resolve_sender(self, sender: SenderRef) -> Account:
        if sender.user_id is not None:
            account = await self.store.get_account_by_owner(sender.user_id)
        else:
            account = await self.store.get_account_by_number(sender.account_number.strip())
        if account is None or not account.is_active:
            raise AccountNotFoundError("Sender account not found")
        return account

    async def _display_name(self, account: Account) -> Optional[str]:
        user = await self.store.get_user(account.user_id)
        return user.full_name if user else None

    async def _validate(self, sender: SenderRef, recipient_account_number: str, amount: Decimal) -> _Parties:
        sender_account = await self._resolve_sender(sender)

        if sender_account.balance < amount:
            logger.warning(
                "Transfer rejected - insufficient funds from=%s balance=%s amount=%s",
                sender_account.account_number,
                sender_account.balance,
                amount,
            )
            raise InsufficientFundsError()

        recipient_number = (recipient_account_number or "").strip()
        recipient_account = await self.store.get_account_by_number(recipient_number) if recipient_number else None
        if recipient_account is None or not recipient_account.is_active:
            raise AccountNotFoundError("Recipient account not found")

        if sender_account.account_id == recipient_account.account_id:
            raise SameAccountError()

        if self.limit_guard is not None:
            await self.limit_guard.check(sender_account, amount)

        return _Parties(
            sender=sender_account,
            recipient=recipient_account,
            sender_name=await self._display_name(sender_account),
            recipient_name=await self._display_name(recipient_account),
        )

    async def _debit_sender(
        self, sender: SenderRef, recipient_account_number: str, amount: Decimal, reference: str
    ) -> Tuple[_Parties, Decimal]:
        """Validate and debit, starting over whenever another writer moved the sender balance first."""
        for attempt in range(self.conflict_retries + 1):
            parties = await self._validate(sender, recipient_account_number, amount)
            new_balance = to_cents(parties.sender.balance - amount)
            try:
                applied = await self.store.update_account_balance(
                    parties.sender.account_id, new_balance, expected_balance=parties.sender.balance
                )
            except StorageError as e:
                logger.exception("Transfer %s aborted - sender balance write failed: %s", reference, e)
                raise PersistenceError()
            if applied:
                return parties, new_balance
            logger.warning(
                "Transfer %s - sender %s balance changed concurrently (attempt %s)",
                reference,
                parties.sender.account_number,
                attempt + 1,
            )
        logger.error("Transfer %s aborted - sender balance kept changing", reference)
        raise PersistenceError()

    async def _adjust_with_retries(self, account: Account, delta: Decimal) -> Decimal:
        """
        Add ``delta`` to an account balance with compare-and-swap, re-reading on conflicts.

        Raises StorageError when the write fails or the retries run out.
        """
        current = account
        for _ in range(self.conflict_retries + 1):
            new_balance = to_cents(current.balance + delta)
            if await self.store.update_account_balance(
                current.account_id, new_balance, expected_balance=current.balance
            ):
                return new_balance
            current = await self.store.get_account(current.account_id)
            if current is None:
                raise StorageError(f"Account {account.account_id} disappeared")
        raise StorageError(f"Account {account.account_id} balance kept changing")

    async def _queue_for_reconciliation(
        self,
        reference: str,
        reason: ReconciliationReason,
        account_id: Optional[UUID],
        details: dict,
    ) -> None:
        item = ReconciliationItem(
            item_id=uuid4(),
            reference_number=reference,
            reason=reason,
            account_id=account_id,
            details=details,
        )
        try:
            await self.store.record_reconciliation(item)
        except StorageError as e:
            logger.exception(
                "Could not queue reconciliation item ref=%s reason=%s details=%s: %s",
                reference,
                reason.value,
                details,
                e,
            )

    async def _compensate_sender(
        self, parties: _Parties, amount: Decimal, sender_new: Decimal, reference: str
    ) -> None:
        debited = replace(parties.sender, balance=sender_new)
        try:
            restored = await self._adjust_with_retries(debited, amount)
            logger.info(
                "Transfer %s compensated - sender %s restored to %s",
                reference,
                parties.sender.account_number,
                restored,
            )
        except StorageError as e:
            logger.error(
                "Transfer %s compensation FAILED - sender %s was debited %s and not restored: %s",
                reference,
                parties.sender.account_number,
                amount,
                e,
            )
            await self._queue_for_reconciliation(
                reference,
                ReconciliationReason.COMPENSATION_FAILED,
                parties.sender.account_id,
                {
                    "sender_account": parties.sender.account_number,
                    "recipient_account": parties.recipient.account_number,
                    "amount": str(amount),
                    "sender_original_balance": str(parties.sender.balance),
                },
            )

    async def _credit_recipient(
        self, parties: _Parties, amount: Decimal, sender_new: Decimal, reference: str
    ) -> Decimal:
        try:
            return await self._adjust_with_retries(parties.recipient, amount)
        except StorageError as e:
            logger.exception("Transfer %s - recipient balance write failed: %s", reference, e)
            await self._compensate_sender(parties, amount, sender_new, reference)
            raise PersistenceError()

    async def _write_leg(self, leg: Transaction) -> None:
        try:
            await self.store.insert_transaction(leg)
        except StorageError as e:
            logger.exception(
                "Transfer %s - %s ledger leg for account %s not written: %s",
                leg.reference_number,
                leg.entry_type.value,
                leg.account_id,
                e,
            )
            await self._queue_for_reconciliation(
                leg.reference_number,
                ReconciliationReason.LEDGER_LEG_MISSING,
                leg.account_id,
                {
                    "entry_type": leg.entry_type.value,
                    "amount": str(leg.amount),
                    "balance_after": str(leg.balance_after),
                    "description": leg.description,
                },
            )

    async def _record_ledger(
        self,
        parties: _Parties,
        amount: Decimal,
        reference: str,
        sender_new: Decimal,
        recipient_new: Decimal,
        description: Optional[str],
    ) -> None:
        suffix = f": {description}" if description else ""
        recipient_label = parties.recipient_name or parties.recipient.account_number
        sender_label = parties.sender_name or parties.sender.account_number

        outgoing = Transaction(
            transaction_id=uuid4(),
            account_id=parties.sender.account_id,
            transaction_type=TransactionType.TRANSFER,
            entry_type=EntryType.DEBIT,
            amount=amount,
            balance_after=sender_new,
            status=TransactionStatus.COMPLETED,
            reference_number=reference,
            description=f"Transfer to {recipient_label}{suffix}",
            counterparty_account_id=parties.recipient.account_id,
            metadata={
                "recipient_account": parties.recipient.account_number,
                "recipient_name": parties.recipient_name or "Unknown",
            },
        )
        incoming = Transaction(
            transaction_id=uuid4(),
            account_id=parties.recipient.account_id,
            transaction_type=TransactionType.TRANSFER,
            entry_type=EntryType.CREDIT,
            amount=amount,
            balance_after=recipient_new,
            status=TransactionStatus.COMPLETED,
            reference_number=reference,
            description=f"Transfer from {sender_label}{suffix}",
            counterparty_account_id=parties.sender.account_id,
            metadata={
                "sender_account": parties.sender.account_number,
                "sender_name": parties.sender_name or "Unknown",
            },
        )
        await self._write_leg(outgoing)
        await self._write_leg(incoming)

    async def execute_transfer(
        self,
        sender: SenderRef,
        recipient_account_number: str,
        amount: Any,
        description: Optional[str] = None,
    ) -> TransferResult:
        """
        Move ``amount`` from the sender's account to ``recipient_account_number``.

        Raises a TransferError subclass; validation failures leave every balance
        untouched.
        """
        logger.info(
            "Transfer request sender=%s to=%s amount=%s",
            sender.user_id or sender.account_number,
            recipient_account_number,
            amount,
        )
        transfer_amount = self.parse_amount(amount)
        reference = generate_reference_number()

        try:
            parties, sender_new = await self._debit_sender(
                sender, recipient_account_number, transfer_amount, reference
            )
        except StorageError as e:
            logger.exception("Transfer %s aborted - account lookup failed: %s", reference, e)
            raise PersistenceError()

        recipient_new = await self._credit_recipient(parties, transfer_amount, sender_new, reference)
        await self._record_ledger(parties, transfer_amount, reference, sender_new, recipient_new, description)

        logger.info(
            "Transfer success ref=%s from=%s to=%s amount=%s",
            reference,
            parties.sender.account_number,
            parties.recipient.account_number,
            transfer_amount,
        )
        return TransferResult(
            reference_number=reference,
            amount=transfer_amount,
            sender_account_number=parties.sender.account_number,
            recipient_account_number=parties.recipient.account_number,
            sender_new_balance=sender_new,
            recipient_new_balance=recipient_new,
            recipient_name=parties.recipient_name,
        )
