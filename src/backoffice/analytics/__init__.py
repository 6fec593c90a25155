"""Heuristic analytics and fraud scoring over transaction aggregates."""

from backoffice.analytics.fraud import (
    analyze_suspicious_activity,
    calculate_fraud_score,
    calculate_risk_score,
    check_failed_logins,
)
from backoffice.analytics.insights import (
    detect_churn_risk,
    detect_volume_anomalies,
    forecast_transaction_volume,
    generate_recommendations,
    predict_user_activity,
)
from backoffice.analytics.schemas import (
    CustomerSnapshot,
    DailyCount,
    DailyVolume,
    FraudAlert,
    FraudCheck,
    Insight,
    MonthlyVolume,
    TransactionSample,
)

__all__ = [
    "CustomerSnapshot",
    "DailyCount",
    "DailyVolume",
    "FraudAlert",
    "FraudCheck",
    "Insight",
    "MonthlyVolume",
    "TransactionSample",
    "analyze_suspicious_activity",
    "calculate_fraud_score",
    "calculate_risk_score",
    "check_failed_logins",
    "detect_churn_risk",
    "detect_volume_anomalies",
    "forecast_transaction_volume",
    "generate_recommendations",
    "predict_user_activity",
]
