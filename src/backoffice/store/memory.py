"""In-memory account store for demos and tests."""

import asyncio
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from backoffice.exceptions import StorageError
from backoffice.models import Account, ReconciliationItem, Transaction, User
from backoffice.utils import as_utc, utc_now


@dataclass
class InMemoryAccountStore:
    """Dict-backed store with the same conditional-write contract as the SQL store."""

    users: Dict[UUID, User] = field(default_factory=dict)
    accounts: Dict[UUID, Account] = field(default_factory=dict)
    transactions: List[Transaction] = field(default_factory=list)
    reconciliation_items: List[ReconciliationItem] = field(default_factory=list)

    # Relationship indexes
    _user_accounts: Dict[UUID, List[UUID]] = field(default_factory=dict)
    _accounts_by_number: Dict[str, UUID] = field(default_factory=dict)
    _account_transactions: Dict[UUID, List[int]] = field(default_factory=dict)
    _locks: Dict[UUID, asyncio.Lock] = field(default_factory=dict)

    def _lock_for(self, account_id: UUID) -> asyncio.Lock:
        if account_id not in self._locks:
            self._locks[account_id] = asyncio.Lock()
        return self._locks[account_id]

    async def get_user(self, user_id: UUID) -> Optional[User]:
        user = self.users.get(user_id)
        return replace(user) if user else None

    async def get_account(self, account_id: UUID) -> Optional[Account]:
        account = self.accounts.get(account_id)
        return replace(account) if account else None

    async def get_account_by_owner(self, user_id: UUID) -> Optional[Account]:
        for account_id in self._user_accounts.get(user_id, []):
            account = self.accounts[account_id]
            if account.is_active:
                return replace(account)
        return None

    async def get_account_by_number(self, account_number: str) -> Optional[Account]:
        account_id = self._accounts_by_number.get(account_number)
        return await self.get_account(account_id) if account_id else None

    async def update_account_balance(
        self, account_id: UUID, new_balance: Decimal, expected_balance: Decimal
    ) -> bool:
        if account_id not in self.accounts:
            raise StorageError(f"Account {account_id} not found")
        async with self._lock_for(account_id):
            account = self.accounts[account_id]
            if account.balance != expected_balance:
                return False
            account.balance = new_balance
            account.updated_at = utc_now()
            return True

    async def insert_transaction(self, transaction: Transaction) -> Transaction:
        if transaction.account_id not in self.accounts:
            raise StorageError(f"Account {transaction.account_id} not found")

        if transaction.created_at is None:
            transaction.created_at = utc_now()
        idx = len(self.transactions)
        self.transactions.append(transaction)
        self._account_transactions[transaction.account_id].append(idx)
        return transaction

    async def list_transactions(self, account_id: UUID, limit: int = 20) -> List[Transaction]:
        indices = self._account_transactions.get(account_id, [])
        return [self.transactions[i] for i in reversed(indices)][:limit]

    async def list_transactions_since(self, account_id: UUID, since: datetime) -> List[Transaction]:
        since = as_utc(since)
        legs = (self.transactions[i] for i in self._account_transactions.get(account_id, []))
        return [t for t in legs if t.created_at is not None and as_utc(t.created_at) >= since]

    async def create_user(self, user: User) -> User:
        if user.created_at is None:
            user.created_at = utc_now()
        self.users[user.user_id] = user
        self._user_accounts.setdefault(user.user_id, [])
        return user

    async def create_account(self, account: Account) -> Account:
        if account.user_id not in self.users:
            raise StorageError(f"User {account.user_id} not found")
        if account.account_number in self._accounts_by_number:
            raise StorageError(f"Account number {account.account_number} already exists")

        if account.created_at is None:
            account.created_at = utc_now()
        self.accounts[account.account_id] = account
        self._accounts_by_number[account.account_number] = account.account_id
        self._user_accounts[account.user_id].append(account.account_id)
        self._account_transactions[account.account_id] = []
        return replace(account)

    async def record_reconciliation(self, item: ReconciliationItem) -> ReconciliationItem:
        if item.created_at is None:
            item.created_at = utc_now()
        self.reconciliation_items.append(item)
        return item

    async def list_reconciliation(self, status: Optional[str] = "open") -> List[ReconciliationItem]:
        return [i for i in self.reconciliation_items if status is None or i.status == status]

