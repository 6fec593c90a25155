"""
Rule-based fraud scoring for single transactions and whole accounts.

Each rule adds a fixed weight to a score; the score maps to a severity and,
past FRAUD_THRESHOLD, to an alert for the fraud desk. Like the insights these
functions are pure: time comes in through ``as_of`` and alerts carry no id or
detection timestamp, so the caller stamps them when it stores them.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, List, Optional

from backoffice.analytics.schemas import (
    AlertSeverity,
    CustomerSnapshot,
    FraudAlert,
    FraudCheck,
    TransactionSample,
    coerce_all,
)

# calculate_fraud_score
FRAUD_THRESHOLD = 40
AMOUNT_MULTIPLE = 5
NO_HISTORY_BALANCE_SHARE = 0.1
NEW_ACCOUNT_DAYS = 7
NEW_ACCOUNT_WITHDRAWAL = 5000.0
VELOCITY_WINDOW = timedelta(hours=1)
VELOCITY_MAX = 5
UNUSUAL_HOURS = range(3, 6)  # 3 AM - 5 AM inclusive
ROUND_AMOUNT_MIN = 10000.0
ROUND_AMOUNT_STEP = 1000
DEPLETION_SHARE = 0.1
FAILED_LOGIN_MAX = 3

# check_failed_logins
FAILED_LOGIN_ALERT = 5
FAILED_LOGIN_CRITICAL = 10

# analyze_suspicious_activity
STRUCTURING_LOW = 9000.0
STRUCTURING_HIGH = 10000.0
STRUCTURING_COUNT = 3
TURNOVER_WINDOW = timedelta(days=7)
TURNOVER_IN = 50000.0
TURNOVER_OUT = 45000.0
MAX_LOCATIONS = 10


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _account_age_days(customer: CustomerSnapshot, as_of: datetime) -> Optional[float]:
    if customer.created_at is None:
        return None
    return (as_of - _naive_utc(customer.created_at)).total_seconds() / 86400


def _severity(score: int) -> AlertSeverity:
    if score >= 75:
        return "critical"
    if score >= 50:
        return "high"
    if score >= 25:
        return "medium"
    return "low"


def calculate_fraud_score(
    transaction: Any,
    customer: Any,
    recent_transactions: Optional[Iterable[Any]],
    as_of: datetime,
) -> FraudCheck:
    """
    Score one transaction against the customer's profile and recent history.

    Rules and weights:
      - amount over 5x the recent average (10% of balance without history): 25
      - withdrawal over $5,000 from an account younger than 7 days: 30
      - more than 5 recent transactions within the last hour: 20
      - timestamp between 3 AM and 5 AM: 10
      - round amount of $10,000 or more: 15
      - withdrawal leaving less than 10% of the balance: 20
      - more than 3 failed logins: 15

    A score of 40 or more marks the transaction as fraud and raises an
    ``unusual_transaction`` alert.
    """
    [tx] = coerce_all(TransactionSample, [transaction])
    [cust] = coerce_all(CustomerSnapshot, [customer])
    recent = coerce_all(TransactionSample, recent_transactions)
    as_of = _naive_utc(as_of)

    score = 0
    reasons: List[str] = []

    if recent:
        avg_amount = sum(t.amount for t in recent) / len(recent)
    else:
        avg_amount = cust.balance * NO_HISTORY_BALANCE_SHARE
    if tx.amount > avg_amount * AMOUNT_MULTIPLE:
        score += 25
        reasons.append("Transaction amount is 5x higher than average")

    age_days = _account_age_days(cust, as_of)
    if (
        age_days is not None
        and age_days < NEW_ACCOUNT_DAYS
        and tx.type == "withdrawal"
        and tx.amount > NEW_ACCOUNT_WITHDRAWAL
    ):
        score += 30
        reasons.append("Large withdrawal from new account (< 7 days old)")

    last_hour = [t for t in recent if as_of - _naive_utc(t.date) < VELOCITY_WINDOW]
    if len(last_hour) > VELOCITY_MAX:
        score += 20
        reasons.append("High transaction velocity (>5 transactions in 1 hour)")

    # wall-clock hour as recorded, not converted
    if tx.date.hour in UNUSUAL_HOURS:
        score += 10
        reasons.append("Transaction during unusual hours (3 AM - 5 AM)")

    if tx.amount >= ROUND_AMOUNT_MIN and tx.amount % ROUND_AMOUNT_STEP == 0:
        score += 15
        reasons.append("Large round number transaction")

    if (
        tx.type == "withdrawal"
        and tx.balance_after is not None
        and tx.balance_after < cust.balance * DEPLETION_SHARE
    ):
        score += 20
        reasons.append("Sudden balance depletion (>90% withdrawn)")

    if cust.failed_login_attempts > FAILED_LOGIN_MAX:
        score += 15
        reasons.append("Multiple recent failed login attempts")

    severity = _severity(score)
    is_fraud = score >= FRAUD_THRESHOLD
    alerts: List[FraudAlert] = []
    if is_fraud:
        alerts.append(
            FraudAlert(
                type="unusual_transaction",
                severity=severity,
                customer_id=cust.customer_id,
                customer_name=cust.name,
                transaction_id=tx.transaction_id,
                description=f"Suspicious transaction detected: {', '.join(reasons)}",
                metadata={"score": score, "amount": tx.amount, "type": tx.type},
            )
        )

    return FraudCheck(is_fraud=is_fraud, score=score, reasons=reasons, severity=severity, alerts=alerts)


def check_failed_logins(
    customer_id: str,
    failed_attempts: int,
    time_window: int = 3600,
    customer_name: str = "",
) -> Optional[FraudAlert]:
    """Alert once a customer reaches 5 failed logins in ``time_window`` seconds."""
    if failed_attempts < FAILED_LOGIN_ALERT:
        return None
    return FraudAlert(
        type="multiple_failed_logins",
        severity="critical" if failed_attempts >= FAILED_LOGIN_CRITICAL else "high",
        customer_id=customer_id,
        customer_name=customer_name,
        description=f"{failed_attempts} failed login attempts detected",
        metadata={"failedAttempts": failed_attempts, "timeWindow": time_window},
    )


def _is_inflow(tx: TransactionSample) -> bool:
    if tx.entry_type:
        return tx.entry_type == "credit"
    return tx.type in ("deposit", "transfer")


def _is_outflow(tx: TransactionSample) -> bool:
    if tx.entry_type:
        return tx.entry_type == "debit"
    return tx.type == "withdrawal"


def analyze_suspicious_activity(
    customer: Any,
    transactions: Optional[Iterable[Any]],
    as_of: datetime,
) -> List[FraudAlert]:
    """Account-level patterns: structuring, rapid turnover and scattered locations."""
    [cust] = coerce_all(CustomerSnapshot, [customer])
    txs = coerce_all(TransactionSample, transactions)
    as_of = _naive_utc(as_of)
    alerts: List[FraudAlert] = []

    near_threshold = [t for t in txs if STRUCTURING_LOW <= t.amount < STRUCTURING_HIGH]
    if len(near_threshold) >= STRUCTURING_COUNT:
        alerts.append(
            FraudAlert(
                type="suspicious_activity",
                severity="high",
                customer_id=cust.customer_id,
                customer_name=cust.name,
                description="Possible structuring detected: Multiple transactions just under $10,000 threshold",
                metadata={"transactionCount": len(near_threshold), "pattern": "structuring"},
            )
        )

    last_week = [t for t in txs if as_of - _naive_utc(t.date) < TURNOVER_WINDOW]
    total_in = sum(t.amount for t in last_week if _is_inflow(t))
    total_out = sum(t.amount for t in last_week if _is_outflow(t))
    if total_in > TURNOVER_IN and total_out > TURNOVER_OUT:
        alerts.append(
            FraudAlert(
                type="suspicious_activity",
                severity="medium",
                customer_id=cust.customer_id,
                customer_name=cust.name,
                description="Rapid account turnover detected: High volume of deposits and withdrawals",
                metadata={"totalIn": total_in, "totalOut": total_out, "period": "7days"},
            )
        )

    locations = {t.location for t in txs if t.location}
    if len(locations) > MAX_LOCATIONS:
        alerts.append(
            FraudAlert(
                type="suspicious_activity",
                severity="medium",
                customer_id=cust.customer_id,
                customer_name=cust.name,
                description=f"Transactions from {len(locations)} different locations",
                metadata={"locationCount": len(locations)},
            )
        )

    return alerts


def calculate_risk_score(
    customer: Any,
    transactions: Optional[Iterable[Any]],
    fraud_alerts: Optional[Iterable[Any]],
    as_of: datetime,
) -> int:
    """Customer risk on a 0-100 scale from account age, KYC, logins, open alerts and volume."""
    [cust] = coerce_all(CustomerSnapshot, [customer])
    txs = coerce_all(TransactionSample, transactions)
    alerts = coerce_all(FraudAlert, fraud_alerts)
    score = 0

    age_days = _account_age_days(cust, _naive_utc(as_of))
    if age_days is not None:
        if age_days < 30:
            score += 20
        elif age_days < 90:
            score += 10

    if cust.kyc_status == "pending":
        score += 30
    elif cust.kyc_status == "rejected":
        score += 50
    elif cust.kyc_status == "verified":
        score -= 10

    score += cust.failed_login_attempts * 5
    score += sum(1 for a in alerts if a.status == "new") * 15

    avg_amount = sum(t.amount for t in txs) / len(txs) if txs else 0.0
    if avg_amount > 10000:
        score += 15
    if len(txs) > 100:
        score += 10

    return min(max(score, 0), 100)
