from typing import Any, Dict, List, Optional
from uuid import UUID
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from backoffice.analytics.schemas import (
    CustomerSnapshot,
    DailyCount,
    DailyVolume,
    FraudAlert,
    MonthlyVolume,
    TransactionSample,
)
from backoffice.models import AccountType

# amounts are validated by the transfer engine so bad values get its error messages
RawAmount = Any


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class AccountOut(BaseModel):
    account_id: UUID
    account_number: str
    user_id: UUID
    account_type: str
    currency: str
    balance: float
    status: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class TransactionOut(BaseModel):
    transaction_id: UUID
    reference_number: str
    account_id: UUID
    entry_type: str
    transaction_type: str
    amount: float
    balance_after: Optional[float] = None
    status: str
    description: Optional[str] = None
    counterparty_account_id: Optional[UUID] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[str] = None


class ReconciliationOut(BaseModel):
    item_id: UUID
    reference_number: str
    reason: str
    account_id: Optional[UUID] = None
    details: Dict[str, Any] = Field(default_factory=dict)
    status: str
    created_at: Optional[str] = None


class CustomerTransferIn(CamelModel):
    user_id: UUID = Field(..., alias="userId")
    recipient_account_number: str = Field(..., alias="recipientAccountNumber", examples=["ACC-1700000000000-AB12CD"])
    amount: RawAmount = Field(..., examples=[100.00])
    description: Optional[str] = None


class AdminTransferIn(CamelModel):
    sender_account_number: str = Field(..., alias="senderAccountNumber")
    recipient_account_number: str = Field(..., alias="recipientAccountNumber")
    amount: RawAmount = Field(..., examples=[100.00])
    description: Optional[str] = None


class TransferBalances(BaseModel):
    sender: float
    recipient: float


class TransferOut(CamelModel):
    success: bool = True
    message: str = "Transfer completed successfully"
    reference_number: str = Field(..., alias="referenceNumber")
    amount: float
    recipient: str
    recipient_account: str = Field(..., alias="recipientAccount")
    balances: TransferBalances


class RecipientLookupOut(CamelModel):
    found: bool
    message: Optional[str] = None
    account_number: Optional[str] = Field(None, alias="accountNumber")
    account_type: Optional[str] = Field(None, alias="accountType")
    recipient_name: Optional[str] = Field(None, alias="recipientName")


class OpenAccountIn(CamelModel):
    user_id: Optional[UUID] = Field(None, alias="userId")
    full_name: Optional[str] = Field(None, alias="fullName")
    email: Optional[str] = None
    account_type: AccountType = Field(AccountType.CHECKING, alias="accountType")
    initial_deposit: RawAmount = Field(0, alias="initialDeposit")
    currency: str = "USD"


class ActivityIn(BaseModel):
    transactions: List[TransactionSample] = Field(default_factory=list)
    history: List[DailyCount] = Field(default_factory=list)


class AnomaliesIn(BaseModel):
    days: List[DailyVolume] = Field(default_factory=list)


class ForecastIn(BaseModel):
    months: List[MonthlyVolume] = Field(default_factory=list)


class ChurnIn(CamelModel):
    customers: List[CustomerSnapshot] = Field(default_factory=list)
    recent_transactions: Dict[str, List[TransactionSample]] = Field(default_factory=dict, alias="recentTransactions")
    as_of: datetime = Field(..., alias="asOf")


class RecommendationsIn(BaseModel):
    transactions: List[TransactionSample] = Field(default_factory=list)
    customers: List[CustomerSnapshot] = Field(default_factory=list)


class FraudScoreIn(CamelModel):
    transaction: TransactionSample
    customer: CustomerSnapshot
    recent_transactions: List[TransactionSample] = Field(default_factory=list, alias="recentTransactions")
    as_of: datetime = Field(..., alias="asOf")


class SuspiciousActivityIn(CamelModel):
    customer: CustomerSnapshot
    transactions: List[TransactionSample] = Field(default_factory=list)
    as_of: datetime = Field(..., alias="asOf")


class RiskScoreIn(CamelModel):
    customer: CustomerSnapshot
    transactions: List[TransactionSample] = Field(default_factory=list)
    fraud_alerts: List[FraudAlert] = Field(default_factory=list, alias="fraudAlerts")
    as_of: datetime = Field(..., alias="asOf")


class RiskScoreOut(CamelModel):
    customer_id: str = Field(..., alias="customerId")
    risk_score: int = Field(..., alias="riskScore", ge=0, le=100)
