from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.db import models as orm
from backoffice.exceptions import StorageError
from backoffice.logging_config import get_logger
from backoffice.models import (
    Account,
    AccountStatus,
    AccountType,
    EntryType,
    ReconciliationItem,
    ReconciliationReason,
    Transaction,
    TransactionStatus,
    TransactionType,
    User,
    UserRole,
)
from backoffice.utils import as_utc, utc_now

logger = get_logger("backoffice.store.sql")


def _aware(value):
    return as_utc(value) if value is not None else None


def _to_user(u: orm.User) -> User:
    return User(
        user_id=u.user_id,
        full_name=u.full_name,
        email=u.email,
        role=UserRole(u.role or UserRole.CUSTOMER.value),
        kyc_status=u.kyc_status or "pending",
        status=u.status or "active",
        created_at=_aware(u.created_at),
    )


def _to_account(a: orm.Account) -> Account:
    return Account(
        account_id=a.account_id,
        user_id=a.user_id,
        account_number=a.account_number,
        balance=Decimal(a.balance if a.balance is not None else 0),
        status=AccountStatus(a.status or AccountStatus.ACTIVE.value),
        account_type=AccountType(a.account_type or AccountType.CHECKING.value),
        currency=a.currency or "USD",
        created_at=_aware(a.created_at),
        updated_at=_aware(a.updated_at),
    )


def _to_tx(t: orm.Transaction) -> Transaction:
    return Transaction(
        transaction_id=t.transaction_id,
        account_id=t.account_id,
        transaction_type=TransactionType(t.transaction_type),
        entry_type=EntryType(t.entry_type),
        amount=Decimal(t.amount),
        balance_after=Decimal(t.balance_after),
        status=TransactionStatus(t.status),
        reference_number=t.reference_number,
        description=t.description or "",
        counterparty_account_id=t.counterparty_account_id,
        metadata=dict(t.metadata_json or {}),
        created_at=_aware(t.created_at),
    )


def _to_item(r: orm.ReconciliationItem) -> ReconciliationItem:
    return ReconciliationItem(
        item_id=r.item_id,
        reference_number=r.reference_number,
        reason=ReconciliationReason(r.reason),
        account_id=r.account_id,
        details=dict(r.details or {}),
        status=r.status or "open",
        created_at=_aware(r.created_at),
    )


class SqlAlchemyAccountStore:
    """
    Account store over an async SQLAlchemy session.

    Every write is committed on its own so a single call is atomic; balance
    writes are compare-and-swap UPDATEs guarded by the expected balance.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _first(self, stmt):
        try:
            # balances may have moved under another session since the last read
            res = await self.db.execute(stmt.execution_options(populate_existing=True))
            return res.scalars().first()
        except SQLAlchemyError as e:
            logger.exception("Read failed: %s", e)
            raise StorageError("Database read failed") from e

    async def _commit(self, what: str) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.exception("Commit failed (%s): %s", what, e)
            raise StorageError(f"Database write failed: {what}") from e

    async def get_user(self, user_id: UUID) -> Optional[User]:
        u = await self._first(select(orm.User).where(orm.User.user_id == user_id))
        return _to_user(u) if u else None

    async def get_account(self, account_id: UUID) -> Optional[Account]:
        a = await self._first(select(orm.Account).where(orm.Account.account_id == account_id))
        return _to_account(a) if a else None

    async def get_account_by_owner(self, user_id: UUID) -> Optional[Account]:
        stmt = (
            select(orm.Account)
            .where(orm.Account.user_id == user_id)
            .where(orm.Account.status == AccountStatus.ACTIVE.value)
            .order_by(orm.Account.created_at.asc())
            .limit(1)
        )
        a = await self._first(stmt)
        return _to_account(a) if a else None

    async def get_account_by_number(self, account_number: str) -> Optional[Account]:
        a = await self._first(
            select(orm.Account).where(orm.Account.account_number == account_number.strip())
        )
        return _to_account(a) if a else None

    async def update_account_balance(
        self, account_id: UUID, new_balance: Decimal, expected_balance: Decimal
    ) -> bool:
        stmt = (
            update(orm.Account)
            .where(orm.Account.account_id == account_id)
            .where(orm.Account.balance == expected_balance)
            .values(balance=new_balance, updated_at=utc_now())
        )
        try:
            res = await self.db.execute(stmt)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.exception("Balance update failed account_id=%s: %s", account_id, e)
            raise StorageError("Database write failed: account balance") from e
        await self._commit("account balance")
        return res.rowcount == 1

    async def insert_transaction(self, transaction: Transaction) -> Transaction:
        if transaction.created_at is None:
            transaction.created_at = utc_now()
        self.db.add(
            orm.Transaction(
                transaction_id=transaction.transaction_id,
                reference_number=transaction.reference_number,
                account_id=transaction.account_id,
                counterparty_account_id=transaction.counterparty_account_id,
                entry_type=transaction.entry_type.value,
                transaction_type=transaction.transaction_type.value,
                amount=transaction.amount,
                balance_after=transaction.balance_after,
                status=transaction.status.value,
                description=transaction.description,
                metadata_json=transaction.metadata or None,
                created_at=transaction.created_at,
            )
        )
        await self._commit("transaction record")
        return transaction

    async def list_transactions(self, account_id: UUID, limit: int = 20) -> List[Transaction]:
        stmt = (
            select(orm.Transaction)
            .where(orm.Transaction.account_id == account_id)
            .order_by(
                orm.Transaction.created_at.desc().nulls_last(),
                orm.Transaction.transaction_id.desc(),
            )
            .limit(limit)
        )
        try:
            res = await self.db.execute(stmt)
        except SQLAlchemyError as e:
            logger.exception("Transaction listing failed account_id=%s: %s", account_id, e)
            raise StorageError("Database read failed") from e
        return [_to_tx(t) for t in res.scalars().all()]

    async def list_transactions_since(self, account_id: UUID, since: datetime) -> List[Transaction]:
        stmt = (
            select(orm.Transaction)
            .where(orm.Transaction.account_id == account_id)
            .where(orm.Transaction.created_at >= since)
            .order_by(orm.Transaction.created_at.asc())
        )
        try:
            res = await self.db.execute(stmt)
        except SQLAlchemyError as e:
            logger.exception("Transaction listing failed account_id=%s: %s", account_id, e)
            raise StorageError("Database read failed") from e
        return [_to_tx(t) for t in res.scalars().all()]

    async def create_user(self, user: User) -> User:
        now = utc_now()
        if user.created_at is None:
            user.created_at = now
        self.db.add(
            orm.User(
                user_id=user.user_id,
                full_name=user.full_name,
                email=user.email,
                role=user.role.value,
                kyc_status=user.kyc_status,
                status=user.status,
                created_at=user.created_at,
                updated_at=now,
            )
        )
        await self._commit("user")
        return user

    async def create_account(self, account: Account) -> Account:
        now = utc_now()
        if account.created_at is None:
            account.created_at = now
        self.db.add(
            orm.Account(
                account_id=account.account_id,
                account_number=account.account_number,
                user_id=account.user_id,
                account_type=account.account_type.value,
                currency=account.currency,
                balance=account.balance,
                status=account.status.value,
                created_at=account.created_at,
                updated_at=now,
            )
        )
        await self._commit("account")
        return account

    async def record_reconciliation(self, item: ReconciliationItem) -> ReconciliationItem:
        if item.created_at is None:
            item.created_at = utc_now()
        self.db.add(
            orm.ReconciliationItem(
                item_id=item.item_id,
                reference_number=item.reference_number,
                reason=item.reason.value,
                account_id=item.account_id,
                details=item.details,
                status=item.status,
                created_at=item.created_at,
            )
        )
        await self._commit("reconciliation item")
        return item

    async def list_reconciliation(self, status: Optional[str] = "open") -> List[ReconciliationItem]:
        stmt = select(orm.ReconciliationItem).order_by(orm.ReconciliationItem.created_at.asc())
        if status is not None:
            stmt = stmt.where(orm.ReconciliationItem.status == status)
        try:
            res = await self.db.execute(stmt)
        except SQLAlchemyError as e:
            logger.exception("Reconciliation listing failed: %s", e)
            raise StorageError("Database read failed") from e
        return [_to_item(r) for r in res.scalars().all()]
