"""
Heuristic insights over transaction aggregates.

Predictions, volume anomalies and forecasts for the admin dashboard. Every
function is pure: same input, same Insight. Confidence values are presentation
heuristics, not statistical confidence intervals.

Empty or degenerate input never raises; the caller gets a conservative
Insight (or an empty list from the anomaly detector).
"""

from collections import Counter
from datetime import datetime, timedelta
from typing import Any, Iterable, List, Mapping, Optional, Sequence

import numpy as np

from backoffice.analytics.schemas import (
    CustomerSnapshot,
    DailyCount,
    DailyVolume,
    Insight,
    MonthlyVolume,
    TransactionSample,
    coerce_all,
)

# predict_user_activity
BASELINE_CONFIDENCE = 60.0
MAX_CONFIDENCE = 95.0
TREND_THRESHOLD = 0.05
RECENCY_WINDOW_DAYS = 7
MAX_RECENCY_BONUS = 5.0

# detect_volume_anomalies
MIN_ANOMALY_DAYS = 7
ANOMALY_Z = 2.0
CRITICAL_Z = 3.0
CRITICAL_DEVIATION = 3.0  # 300% away from the mean

# forecast_transaction_volume
MIN_FORECAST_MONTHS = 3
FORECAST_BASE_CONFIDENCE = 10.0
FORECAST_FIT_WEIGHT = 75.0

# churn / recommendations
CHURN_HIGH_BALANCE = 10000.0
CHURN_DECLINE_BALANCE = 5000.0
KYC_BACKLOG_SHARE = 0.2


def _finite(values: Sequence[float]) -> np.ndarray:
    arr = np.asarray(values, dtype=float)
    return arr[np.isfinite(arr)]


def _stable_prediction(current_avg: float, history_days: int) -> Insight:
    return Insight(
        type="prediction",
        title="User Activity Forecast",
        description="Not enough history to establish a trend; activity expected to stay stable",
        severity="info",
        confidence=BASELINE_CONFIDENCE,
        metadata={
            "growthRate": 0.0,
            "trend": "stable",
            "currentAverage": current_avg,
            "predictedWeekly": round(current_avg * 7, 2),
            "historyDays": history_days,
        },
    )


def predict_user_activity(
    transactions: Optional[Iterable[Any]],
    historical_daily_counts: Optional[Iterable[Any]],
) -> Insight:
    """
    Forecast next week's activity from the trend of daily transaction counts.

    Growth rate is the relative change between the first and last day;
    confidence grows with the amount of history and with how much of the
    supplied activity is recent, capped at 95.
    """
    txs = coerce_all(TransactionSample, transactions)
    history = [h for h in coerce_all(DailyCount, historical_daily_counts) if np.isfinite(h.count)]
    current_avg = len(txs) / 30

    if len(history) < 2:
        return _stable_prediction(current_avg, len(history))

    first, last = history[0], history[-1]
    growth_rate = (last.count - first.count) / max(first.count, 1)
    predicted_weekly = max(0.0, current_avg * 7 * (1 + growth_rate))
    if not (np.isfinite(growth_rate) and np.isfinite(predicted_weekly)):
        return _stable_prediction(current_avg, len(history))
    if growth_rate > TREND_THRESHOLD:
        trend = "increasing"
    elif growth_rate < -TREND_THRESHOLD:
        trend = "decreasing"
    else:
        trend = "stable"

    recency_bonus = 0.0
    if txs:
        window_start = datetime.combine(last.date, datetime.min.time()) - timedelta(days=RECENCY_WINDOW_DAYS)
        recent = sum(1 for t in txs if t.date.replace(tzinfo=None) > window_start)
        recency_bonus = MAX_RECENCY_BONUS * recent / len(txs)

    confidence = min(MAX_CONFIDENCE, BASELINE_CONFIDENCE + len(history) / 30 * 10 + recency_bonus)
    direction = "up" if growth_rate >= 0 else "down"

    return Insight(
        type="prediction",
        title="User Activity Forecast",
        description=(
            f"Predicted {round(predicted_weekly)} transactions in the next 7 days "
            f"({direction} {abs(growth_rate) * 100:.0f}% over the last {len(history)} days)"
        ),
        severity="info",
        confidence=round(confidence, 2),
        metadata={
            "growthRate": growth_rate,
            "trend": trend,
            "currentAverage": current_avg,
            "predictedWeekly": round(predicted_weekly, 2),
            "historyDays": len(history),
        },
    )


def _anomaly_severity(z_score: float, deviation: float) -> str:
    if abs(z_score) > CRITICAL_Z or abs(deviation) > CRITICAL_DEVIATION:
        return "critical"
    return "warning"


def detect_volume_anomalies(daily_transactions: Optional[Iterable[Any]]) -> List[Insight]:
    """
    Flag days whose transaction count lies more than two standard deviations from the mean.

    Needs at least a week of data. Flags are returned in input order.
    """
    days = coerce_all(DailyVolume, daily_transactions)
    if len(days) < MIN_ANOMALY_DAYS:
        return []

    counts = _finite([d.count for d in days])
    if counts.size < MIN_ANOMALY_DAYS:
        return []
    with np.errstate(over="ignore", invalid="ignore"):
        mean = float(np.mean(counts))
        std_dev = float(np.std(counts))  # population
    # overflowing sums leave nothing meaningful to compare against
    if not (np.isfinite(mean) and np.isfinite(std_dev)) or std_dev == 0:
        return []

    insights: List[Insight] = []
    for day in days:
        if not np.isfinite(day.count):
            continue
        z_score = (day.count - mean) / std_dev
        if not abs(z_score) > ANOMALY_Z:
            continue
        deviation = (day.count - mean) / mean if mean else 0.0
        insights.append(
            Insight(
                type="anomaly",
                title="Transaction Volume Anomaly Detected",
                description=(
                    f"{day.date.isoformat()}: {day.count:g} transactions "
                    f"({'+' if deviation > 0 else ''}{deviation * 100:.1f}% from average, "
                    f"{abs(z_score):.1f} standard deviations)"
                ),
                severity=_anomaly_severity(z_score, deviation),
                confidence=round(min(MAX_CONFIDENCE, 70 + abs(z_score) * 10), 2),
                metadata={
                    "date": day.date.isoformat(),
                    "count": day.count,
                    "amount": day.amount,
                    "mean": mean,
                    "stdDev": std_dev,
                    "zScore": z_score,
                    "deviationPct": deviation * 100,
                },
            )
        )
    return insights


def _linear_fit(values: np.ndarray):
    """Least-squares line over 0..n-1; returns slope, intercept and R²."""
    x = np.arange(values.size, dtype=float)
    slope, intercept = np.polyfit(x, values, 1)
    fitted = slope * x + intercept
    ss_tot = float(np.sum((values - values.mean()) ** 2))
    if ss_tot == 0:
        r_squared = 1.0
    else:
        r_squared = 1.0 - float(np.sum((values - fitted) ** 2)) / ss_tot
    return float(slope), float(intercept), min(1.0, max(0.0, r_squared))


def _insufficient_forecast() -> Insight:
    return Insight(
        type="forecast",
        title="Insufficient Data for Forecast",
        description=f"Need at least {MIN_FORECAST_MONTHS} months of usable data for forecasting",
        severity="info",
        confidence=0,
        metadata={},
    )


def forecast_transaction_volume(monthly_data: Optional[Iterable[Any]]) -> Insight:
    """
    Project next month's transactions and revenue from a linear trend.

    Confidence reflects how much of the historical variance the transactions
    trend explains, between 10 and 85.
    """
    months = coerce_all(MonthlyVolume, monthly_data)
    months = [m for m in months if np.isfinite(m.transactions) and np.isfinite(m.revenue)]
    if len(months) < MIN_FORECAST_MONTHS:
        return _insufficient_forecast()

    transactions = np.array([m.transactions for m in months], dtype=float)
    revenue = np.array([m.revenue for m in months], dtype=float)
    n = len(months)

    try:
        with np.errstate(over="ignore", invalid="ignore"):
            tx_slope, tx_intercept, r_squared = _linear_fit(transactions)
            rev_slope, rev_intercept, _ = _linear_fit(revenue)
            forecast_tx = max(0.0, tx_slope * n + tx_intercept)
            forecast_rev = max(0.0, rev_slope * n + rev_intercept)
    except np.linalg.LinAlgError:
        return _insufficient_forecast()
    if not np.all(np.isfinite([forecast_tx, forecast_rev, r_squared, tx_slope, rev_slope])):
        return _insufficient_forecast()

    last_tx = float(transactions[-1])
    growth_rate = (forecast_tx - last_tx) / last_tx * 100 if last_tx else 0.0
    confidence = round(FORECAST_BASE_CONFIDENCE + FORECAST_FIT_WEIGHT * r_squared, 2)

    return Insight(
        type="forecast",
        title="Next Month Transaction Forecast",
        description=(
            f"Forecasted {round(forecast_tx):,} transactions generating "
            f"${round(forecast_rev):,} revenue ({'+' if growth_rate >= 0 else ''}{growth_rate:.1f}% vs last month)"
        ),
        severity="warning" if growth_rate < -10 else "info",
        confidence=confidence,
        metadata={
            "forecastedTransactions": round(forecast_tx),
            "forecastedRevenue": round(forecast_rev, 2),
            "growthRate": growth_rate,
            "transactionsSlope": tx_slope,
            "revenueSlope": rev_slope,
            "rSquared": r_squared,
            "basedOnMonths": n,
        },
    )


def detect_churn_risk(
    customers: Iterable[Any],
    recent_transactions: Mapping[str, Iterable[Any]],
    as_of: datetime,
) -> List[Insight]:
    """Spot valuable customers who went quiet or whose activity halved."""
    insights: List[Insight] = []
    as_of = as_of.replace(tzinfo=None)

    for customer in coerce_all(CustomerSnapshot, customers):
        txs = coerce_all(TransactionSample, recent_transactions.get(customer.customer_id, []))
        ages = [(as_of - t.date.replace(tzinfo=None)).days for t in txs]
        last_30 = sum(1 for a in ages if 0 <= a < 30)
        prev_30 = sum(1 for a in ages if 30 <= a < 60)

        if last_30 == 0 and customer.balance > CHURN_HIGH_BALANCE:
            insights.append(
                Insight(
                    type="recommendation",
                    title="High-Value Customer Churn Risk",
                    description=f"{customer.name} (Balance: ${customer.balance:,.2f}) has no activity in 30 days",
                    severity="warning",
                    confidence=75,
                    metadata={
                        "customerId": customer.customer_id,
                        "customerName": customer.name,
                        "balance": customer.balance,
                        "daysWithoutActivity": 30,
                    },
                )
            )

        if prev_30 > 0 and last_30 < prev_30 * 0.5 and customer.balance > CHURN_DECLINE_BALANCE:
            decline = (prev_30 - last_30) / prev_30 * 100
            insights.append(
                Insight(
                    type="recommendation",
                    title="Customer Activity Declining",
                    description=(
                        f"{customer.name}'s activity dropped {decline:.0f}% "
                        f"(from {prev_30} to {last_30} transactions)"
                    ),
                    severity="warning",
                    confidence=70,
                    metadata={
                        "customerId": customer.customer_id,
                        "customerName": customer.name,
                        "previousPeriod": prev_30,
                        "currentPeriod": last_30,
                        "declinePercent": round(decline, 1),
                    },
                )
            )
    return insights


def generate_recommendations(transactions: Iterable[Any], customers: Iterable[Any]) -> List[Insight]:
    """Operational recommendations: busiest hour of the day and KYC backlog."""
    insights: List[Insight] = []
    txs = coerce_all(TransactionSample, transactions)
    people = coerce_all(CustomerSnapshot, customers)

    hours = Counter(t.date.hour for t in txs)
    if hours:
        # ties resolve to the earliest hour
        peak_hour, peak_count = min(hours.items(), key=lambda kv: (-kv[1], kv[0]))
        insights.append(
            Insight(
                type="recommendation",
                title="Optimize Peak Hour Performance",
                description=(
                    f"Peak transaction hour is {peak_hour}:00 with {peak_count} transactions. "
                    "Consider increasing capacity during this time."
                ),
                severity="info",
                confidence=85,
                metadata={"peakHour": peak_hour, "transactionCount": peak_count},
            )
        )

    pending = sum(1 for c in people if c.kyc_status == "pending")
    if people and pending > len(people) * KYC_BACKLOG_SHARE:
        share = pending / len(people) * 100
        insights.append(
            Insight(
                type="recommendation",
                title="High KYC Verification Backlog",
                description=(
                    f"{pending} customers ({share:.0f}%) are pending KYC verification. "
                    "Consider allocating more resources."
                ),
                severity="warning",
                confidence=90,
                metadata={
                    "pendingCount": pending,
                    "totalCount": len(people),
                    "percentage": round(share, 1),
                },
            )
        )
    return insights
