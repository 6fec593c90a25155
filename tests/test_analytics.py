"""Tests for the heuristic insights."""

from datetime import date, datetime, timedelta

import pytest

from backoffice.analytics import (
    DailyCount,
    Insight,
    detect_churn_risk,
    detect_volume_anomalies,
    forecast_transaction_volume,
    generate_recommendations,
    predict_user_activity,
)


def daily(counts, start=date(2024, 1, 1)):
    return [
        {"date": (start + timedelta(days=i)).isoformat(), "count": c, "amount": c * 100}
        for i, c in enumerate(counts)
    ]


def history(counts, start=date(2024, 1, 1)):
    return [{"date": (start + timedelta(days=i)).isoformat(), "count": c} for i, c in enumerate(counts)]


def month_rows(values):
    return [
        {"month": f"2024-{i + 1:02d}", "transactions": v, "revenue": v * 100}
        for i, v in enumerate(values)
    ]


def sample_transactions(n, day=datetime(2024, 1, 3, 12, 0)):
    return [{"date": day.isoformat(), "amount": 100} for _ in range(n)]


class TestPredictUserActivity:
    def test_output_shape(self) -> None:
        result = predict_user_activity(sample_transactions(30), history([5, 7, 9]))
        assert isinstance(result, Insight)
        assert result.type == "prediction"
        assert result.title == "User Activity Forecast"
        assert 0 < result.confidence <= 95
        assert "growthRate" in result.metadata
        assert "trend" in result.metadata

    @pytest.mark.parametrize("hist", [[], None, history([8])])
    def test_short_history_is_baseline(self, hist) -> None:
        result = predict_user_activity([], hist)
        assert result.confidence >= 60
        assert result.metadata["trend"] == "stable"
        assert result.metadata["growthRate"] == 0

    def test_increasing(self) -> None:
        result = predict_user_activity(sample_transactions(30), history([5, 10, 15]))
        assert result.metadata["trend"] == "increasing"
        assert result.metadata["growthRate"] > 0
        assert result.metadata["growthRate"] == pytest.approx(2.0)

    def test_decreasing(self) -> None:
        result = predict_user_activity(sample_transactions(30), history([15, 10, 5]))
        assert result.metadata["trend"] == "decreasing"
        assert result.metadata["growthRate"] < 0

    def test_flat_is_stable(self) -> None:
        result = predict_user_activity([], history([20, 25, 20, 20.5]))
        assert result.metadata["trend"] == "stable"

    def test_zero_first_count_does_not_divide_by_zero(self) -> None:
        result = predict_user_activity([], history([0, 3]))
        assert result.metadata["growthRate"] == pytest.approx(3.0)

    def test_confidence_capped_at_95(self) -> None:
        result = predict_user_activity(sample_transactions(10), history(list(range(1, 400))))
        assert result.confidence == 95

    def test_recent_activity_raises_confidence(self) -> None:
        hist = history([5, 6, 7])  # ends 2024-01-03
        stale = predict_user_activity(sample_transactions(10, datetime(2023, 6, 1)), hist)
        fresh = predict_user_activity(sample_transactions(10, datetime(2024, 1, 2)), hist)
        assert fresh.confidence > stale.confidence

    def test_accepts_models(self) -> None:
        hist = [DailyCount(date=date(2024, 1, 1), count=1), DailyCount(date=date(2024, 1, 2), count=4)]
        assert predict_user_activity([], hist).metadata["trend"] == "increasing"


class TestDetectVolumeAnomalies:
    @pytest.mark.parametrize("n", [0, 1, 6])
    def test_needs_a_week(self, n) -> None:
        assert detect_volume_anomalies(daily([10] * (n - 1) + [500] if n else [])) == []

    def test_none_input(self) -> None:
        assert detect_volume_anomalies(None) == []

    def test_spike_is_flagged(self) -> None:
        result = detect_volume_anomalies(daily([10, 12, 11, 13, 12, 11, 50, 12]))
        assert len(result) == 1
        assert result[0].type == "anomaly"
        assert result[0].metadata["date"] == "2024-01-07"
        assert result[0].severity in ("warning", "critical")

    def test_z_score_above_two(self) -> None:
        [anomaly] = detect_volume_anomalies(daily([10] * 6 + [50]))
        assert anomaly.metadata["count"] == 50
        assert abs(anomaly.metadata["zScore"]) > 2
        assert anomaly.severity == "warning"
        assert "2024-01-07" in anomaly.description

    def test_large_spike_is_critical(self) -> None:
        [anomaly] = detect_volume_anomalies(daily([10] * 6 + [100]))
        assert abs(anomaly.metadata["zScore"]) > 2
        assert anomaly.severity == "critical"

    def test_high_z_score_is_critical(self) -> None:
        result = detect_volume_anomalies(daily([10] * 19 + [12] + [60]))
        [anomaly] = result
        assert abs(anomaly.metadata["zScore"]) > 3
        assert anomaly.severity == "critical"

    def test_constant_series_has_no_anomalies(self) -> None:
        assert detect_volume_anomalies(daily([10] * 14)) == []

    def test_order_follows_input(self) -> None:
        counts = [100] + [10] * 20 + [100]
        result = detect_volume_anomalies(daily(counts))
        assert [a.metadata["date"] for a in result] == ["2024-01-01", "2024-01-22"]

    def test_drop_is_flagged(self) -> None:
        [anomaly] = detect_volume_anomalies(daily([50] * 10 + [0]))
        assert anomaly.metadata["zScore"] < -2

    def test_confidence_bounds(self) -> None:
        for anomaly in detect_volume_anomalies(daily([10] * 30 + [400])):
            assert 70 < anomaly.confidence <= 95


class TestForecastTransactionVolume:
    @pytest.mark.parametrize("values", [[], [100], [100, 120]])
    def test_insufficient_data(self, values) -> None:
        result = forecast_transaction_volume(month_rows(values))
        assert result.type == "forecast"
        assert "Insufficient Data" in result.title
        assert result.confidence == 0
        assert result.metadata == {}

    def test_linear_growth(self) -> None:
        result = forecast_transaction_volume(month_rows([100, 120, 140]))
        assert result.type == "forecast"
        assert result.confidence > 0
        assert result.metadata["forecastedTransactions"] == 160
        assert result.metadata["forecastedRevenue"] == pytest.approx(16000)
        assert result.metadata["rSquared"] == pytest.approx(1.0)
        assert result.confidence == pytest.approx(85)

    def test_noisy_series_lower_confidence(self) -> None:
        clean = forecast_transaction_volume(month_rows([100, 120, 140, 160]))
        noisy = forecast_transaction_volume(month_rows([100, 180, 90, 170]))
        assert 0 < noisy.confidence < clean.confidence < 100

    def test_flat_series(self) -> None:
        result = forecast_transaction_volume(month_rows([50, 50, 50]))
        assert result.metadata["forecastedTransactions"] == 50
        assert result.confidence > 0

    def test_decline_warns(self) -> None:
        result = forecast_transaction_volume(month_rows([300, 200, 100]))
        assert result.severity == "warning"
        assert result.metadata["forecastedTransactions"] == 0


class TestDegenerateInput:
    """Overflowing or non-finite aggregates produce conservative insights, never errors."""

    def test_infinite_history_count_is_ignored(self) -> None:
        txs = [{"date": "2024-01-02T10:00:00"}]
        hist = [{"date": "2024-01-01", "count": 10}, {"date": "2024-01-02", "count": float("inf")}]
        result = predict_user_activity(txs, hist)
        assert result.confidence == 60
        assert result.metadata["trend"] == "stable"
        assert result.metadata["historyDays"] == 1

    def test_overflowing_growth_falls_back_to_stable(self) -> None:
        txs = [{"date": "2024-01-02T10:00:00"}]
        hist = [{"date": "2024-01-01", "count": 1e308}, {"date": "2024-01-02", "count": -1e308}]
        result = predict_user_activity(txs, hist)
        assert result.metadata["growthRate"] == 0
        assert result.metadata["trend"] == "stable"

    def test_overflowing_counts_flag_nothing(self) -> None:
        assert detect_volume_anomalies(daily([1e308] * 6 + [1.0])) == []

    def test_nan_counts_are_skipped(self) -> None:
        result = detect_volume_anomalies(daily([10] * 6 + [float("nan"), 100]))
        assert [a.metadata["count"] for a in result] == [100]

    def test_overflowing_months_do_not_raise(self) -> None:
        months = [
            {"month": "2024-01", "transactions": 1e308, "revenue": 100},
            {"month": "2024-02", "transactions": 1e308, "revenue": 100},
            {"month": "2024-03", "transactions": 1.0, "revenue": 100},
        ]
        result = forecast_transaction_volume(months)
        assert result.type == "forecast"
        assert 0 <= result.confidence <= 85


class TestPurity:
    def test_same_input_same_output(self) -> None:
        hist = history([3, 5, 8, 13])
        txs = sample_transactions(12)
        days = daily([10] * 6 + [80])
        months = month_rows([10, 30, 20, 40])

        assert predict_user_activity(txs, hist) == predict_user_activity(txs, hist)
        assert detect_volume_anomalies(days) == detect_volume_anomalies(days)
        assert forecast_transaction_volume(months) == forecast_transaction_volume(months)


class TestChurnAndRecommendations:
    as_of = datetime(2024, 3, 1)

    def test_inactive_high_balance_customer(self) -> None:
        customers = [
            {"customer_id": "c1", "name": "Rich Quiet", "balance": 25000},
            {"customer_id": "c2", "name": "Small Quiet", "balance": 900},
        ]
        [insight] = detect_churn_risk(customers, {}, self.as_of)
        assert insight.title == "High-Value Customer Churn Risk"
        assert insight.metadata["customerId"] == "c1"
        assert insight.confidence == 75

    def test_declining_customer(self) -> None:
        recent = [{"date": (self.as_of - timedelta(days=5)).isoformat()}]
        older = [{"date": (self.as_of - timedelta(days=40 + i)).isoformat()} for i in range(6)]
        customers = [{"customer_id": "c1", "name": "Fading", "balance": 6000}]
        [insight] = detect_churn_risk(customers, {"c1": recent + older}, self.as_of)
        assert insight.title == "Customer Activity Declining"
        assert insight.metadata["previousPeriod"] == 6
        assert insight.metadata["currentPeriod"] == 1

    def test_peak_hour_and_kyc_backlog(self) -> None:
        txs = [{"date": datetime(2024, 1, 1, h).isoformat()} for h in (9, 14, 14, 14, 9)]
        customers = [
            {"customer_id": "a", "name": "A", "kyc_status": "pending"},
            {"customer_id": "b", "name": "B", "kyc_status": "verified"},
        ]
        peak, kyc = generate_recommendations(txs, customers)
        assert peak.metadata == {"peakHour": 14, "transactionCount": 3}
        assert kyc.metadata["pendingCount"] == 1
        assert kyc.severity == "warning"

    def test_no_data_no_recommendations(self) -> None:
        assert generate_recommendations([], []) == []
