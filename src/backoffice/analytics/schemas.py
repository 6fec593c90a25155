from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Literal, Optional, Type, TypeVar

from pydantic import BaseModel, Field

InsightType = Literal["prediction", "anomaly", "forecast", "recommendation"]
Severity = Literal["info", "warning", "critical"]
AlertSeverity = Literal["low", "medium", "high", "critical"]
AlertType = Literal["unusual_transaction", "multiple_failed_logins", "suspicious_activity"]
AlertStatus = Literal["new", "investigating", "resolved", "false_positive"]


class Insight(BaseModel):
    type: InsightType
    title: str
    description: str
    severity: Severity = "info"
    confidence: float = Field(..., ge=0, le=100)
    metadata: Dict[str, Any] = Field(default_factory=dict)


class DailyCount(BaseModel):
    date: date
    count: float = 0


class DailyVolume(BaseModel):
    date: date
    count: float = 0
    amount: float = 0


class MonthlyVolume(BaseModel):
    month: str  # YYYY-MM
    transactions: float = 0
    revenue: float = 0


class TransactionSample(BaseModel):
    """A raw transaction reduced to what the heuristics look at."""

    date: datetime
    amount: float = 0
    account_id: Optional[str] = None
    transaction_id: Optional[str] = None
    type: str = "transfer"  # deposit | withdrawal | transfer | payment
    entry_type: Optional[str] = None  # debit | credit, when known
    balance_after: Optional[float] = None
    location: Optional[str] = None


class CustomerSnapshot(BaseModel):
    customer_id: str
    name: str
    balance: float = 0
    kyc_status: str = "pending"
    created_at: Optional[datetime] = None
    failed_login_attempts: int = 0


class FraudAlert(BaseModel):
    type: AlertType
    severity: AlertSeverity
    customer_id: str
    customer_name: str = ""
    description: str
    status: AlertStatus = "new"
    transaction_id: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class FraudCheck(BaseModel):
    """Score of a single transaction and the alert it raised, if any."""

    is_fraud: bool
    score: int = Field(..., ge=0)
    reasons: List[str] = Field(default_factory=list)
    severity: AlertSeverity = "low"
    alerts: List[FraudAlert] = Field(default_factory=list)


M = TypeVar("M", bound=BaseModel)


def coerce_all(model: Type[M], items: Optional[Iterable[Any]]) -> List[M]:
    """Validate dicts into ``model``; instances pass through untouched."""
    if not items:
        return []
    return [item if isinstance(item, model) else model.model_validate(item) for item in items]
