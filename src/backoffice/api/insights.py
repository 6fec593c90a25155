from typing import List

from fastapi import APIRouter

from backoffice.analytics import (
    FraudAlert,
    FraudCheck,
    Insight,
    analyze_suspicious_activity,
    calculate_fraud_score,
    calculate_risk_score,
    detect_churn_risk,
    detect_volume_anomalies,
    forecast_transaction_volume,
    generate_recommendations,
    predict_user_activity,
)
from .schemas import (
    ActivityIn,
    AnomaliesIn,
    ChurnIn,
    ForecastIn,
    FraudScoreIn,
    RecommendationsIn,
    RiskScoreIn,
    RiskScoreOut,
    SuspiciousActivityIn,
)

router = APIRouter(prefix="/insights", tags=["insights"])


@router.post("/activity", response_model=Insight)
async def activity(payload: ActivityIn):
    return predict_user_activity(payload.transactions, payload.history)


@router.post("/anomalies", response_model=List[Insight])
async def anomalies(payload: AnomaliesIn):
    return detect_volume_anomalies(payload.days)


@router.post("/forecast", response_model=Insight)
async def forecast(payload: ForecastIn):
    return forecast_transaction_volume(payload.months)


@router.post("/churn", response_model=List[Insight])
async def churn(payload: ChurnIn):
    return detect_churn_risk(payload.customers, payload.recent_transactions, payload.as_of)


@router.post("/recommendations", response_model=List[Insight])
async def recommendations(payload: RecommendationsIn):
    return generate_recommendations(payload.transactions, payload.customers)


@router.post("/fraud-score", response_model=FraudCheck)
async def fraud_score(payload: FraudScoreIn):
    return calculate_fraud_score(
        payload.transaction, payload.customer, payload.recent_transactions, payload.as_of
    )


@router.post("/suspicious-activity", response_model=List[FraudAlert])
async def suspicious_activity(payload: SuspiciousActivityIn):
    return analyze_suspicious_activity(payload.customer, payload.transactions, payload.as_of)


@router.post("/risk-score", response_model=RiskScoreOut)
async def risk_score(payload: RiskScoreIn):
    score = calculate_risk_score(payload.customer, payload.transactions, payload.fraud_alerts, payload.as_of)
    return RiskScoreOut(customer_id=payload.customer.customer_id, risk_score=score)
