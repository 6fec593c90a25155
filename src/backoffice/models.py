"""Domain records shared by the stores, the transfer engine and the API."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID


class AccountStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    FROZEN = "frozen"


class AccountType(str, Enum):
    CHECKING = "checking"
    SAVINGS = "savings"
    BUSINESS = "business"


class TransactionType(str, Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    TRANSFER = "transfer"
    PAYMENT = "payment"


class EntryType(str, Enum):
    DEBIT = "debit"
    CREDIT = "credit"


class TransactionStatus(str, Enum):
    COMPLETED = "completed"
    PENDING = "pending"
    FAILED = "failed"


class UserRole(str, Enum):
    CUSTOMER = "customer"
    TELLER = "teller"
    ADMIN = "admin"


class ReconciliationReason(str, Enum):
    COMPENSATION_FAILED = "compensation_failed"
    LEDGER_LEG_MISSING = "ledger_leg_missing"


@dataclass
class User:
    """Account owner."""

    user_id: UUID
    full_name: Optional[str] = None
    email: Optional[str] = None
    role: UserRole = UserRole.CUSTOMER
    kyc_status: str = "pending"
    status: str = "active"
    created_at: Optional[datetime] = None


@dataclass
class Account:
    """Bank account. Balance only changes through validated debits/credits."""

    account_id: UUID
    user_id: UUID
    account_number: str  # ACC-<timestamp>-<random>
    balance: Decimal
    status: AccountStatus = AccountStatus.ACTIVE
    account_type: AccountType = AccountType.CHECKING
    currency: str = "USD"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status == AccountStatus.ACTIVE


@dataclass
class Transaction:
    """One ledger leg. Immutable once written."""

    transaction_id: UUID
    account_id: UUID
    transaction_type: TransactionType
    entry_type: EntryType
    amount: Decimal
    balance_after: Decimal
    status: TransactionStatus
    reference_number: str
    description: str = ""
    counterparty_account_id: Optional[UUID] = None
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None

    @property
    def signed_amount(self) -> Decimal:
        """Effect of this leg on its own account's balance."""
        return self.amount if self.entry_type == EntryType.CREDIT else -self.amount


@dataclass
class ReconciliationItem:
    """A partially applied transfer that needs manual review."""

    item_id: UUID
    reference_number: str
    reason: ReconciliationReason
    account_id: Optional[UUID] = None
    details: dict[str, Any] = field(default_factory=dict)
    status: str = "open"
    created_at: Optional[datetime] = None
