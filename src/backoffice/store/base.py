"""Storage collaborator used by the transfer engine."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Protocol
from uuid import UUID

from backoffice.models import Account, ReconciliationItem, Transaction, User


class AccountStore(Protocol):
    """
    Account and ledger persistence.

    Each call is atomic on its own; nothing spans two calls. Balance writes are
    conditional so that a concurrent writer cannot be silently overwritten.
    """

    async def get_user(self, user_id: UUID) -> Optional[User]: ...

    async def get_account(self, account_id: UUID) -> Optional[Account]: ...

    async def get_account_by_owner(self, user_id: UUID) -> Optional[Account]:
        """Oldest active account of the owner."""
        ...

    async def get_account_by_number(self, account_number: str) -> Optional[Account]: ...

    async def update_account_balance(
        self, account_id: UUID, new_balance: Decimal, expected_balance: Decimal
    ) -> bool:
        """
        Set the balance only while it still equals ``expected_balance``.

        Returns False when another writer got there first. Raises StorageError
        when the write cannot be performed.
        """
        ...

    async def insert_transaction(self, transaction: Transaction) -> Transaction: ...

    async def list_transactions(self, account_id: UUID, limit: int = 20) -> List[Transaction]: ...

    async def list_transactions_since(self, account_id: UUID, since: datetime) -> List[Transaction]:
        """Legs of the account created at or after ``since``, oldest first."""
        ...

    async def create_user(self, user: User) -> User: ...

    async def create_account(self, account: Account) -> Account: ...

    async def record_reconciliation(self, item: ReconciliationItem) -> ReconciliationItem: ...

    async def list_reconciliation(self, status: Optional[str] = "open") -> List[ReconciliationItem]: ...
