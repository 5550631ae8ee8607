"""Tests for validating parsed model replies."""

from decimal import Decimal

import pytest

from kasku_core.forecaster import build_statistical_forecast
from kasku_core.models import ConfidenceLabel, ForecastSource
from kasku_core.normalizer import normalize_forecast_response, normalize_insight_response
from kasku_core.results import Invalid, Parsed


@pytest.fixture
def baseline(steady_history):
    return build_statistical_forecast(steady_history)


class TestNormalizeInsightResponse:
    """Test suite for normalize_insight_response."""

    def test_complete_reply(self):
        outcome = normalize_insight_response(
            {
                "summary": '<p onclick="x">Kondisi <strong>baik</strong></p>',
                "recommendations": ["Satu", "<b>Dua</b>", "Tiga"],
                "trend_analysis": "<p>Stabil</p><script>x()</script>",
                "key_numbers": [
                    {"label": "Saldo", "value": "Rp 4.000.000", "insight": "aman"},
                ],
            }
        )

        assert isinstance(outcome, Parsed)
        result = outcome.value
        assert result.summary == "<p>Kondisi <strong>baik</strong></p>"
        assert result.recommendations == ["Satu", "<b>Dua</b>", "Tiga"]
        assert result.trend_analysis == "<p>Stabil</p>"
        assert result.key_numbers[0].label == "Saldo"

    def test_recommendations_from_newline_string(self):
        outcome = normalize_insight_response(
            {
                "summary": "Ringkas",
                "recommendations": "Hemat\n\nCatat\nTabung\n",
                "trend_analysis": "Naik",
            }
        )
        assert outcome.value.recommendations == ["Hemat", "Catat", "Tabung"]

    def test_at_most_six_recommendations(self):
        outcome = normalize_insight_response(
            {
                "summary": "Ringkas",
                "recommendations": [f"Saran {i}" for i in range(10)],
                "trend_analysis": "Naik",
            }
        )
        assert len(outcome.value.recommendations) == 6

    def test_missing_trend_and_recommendations_are_filled(self):
        outcome = normalize_insight_response(
            {"summary": "<p>Satu. Dua! Tiga? Empat.</p>", "trend_analysis": "<p>Tren</p>"}
        )

        assert outcome.value.recommendations == ["<p>Tren</p>", "Satu", "Dua"]

    def test_trend_falls_back_to_summary(self):
        outcome = normalize_insight_response(
            {"summary": "<p>Pengeluaran naik.</p>", "recommendations": ["a", "b", "c"]}
        )
        assert outcome.value.trend_analysis == "<p>Pengeluaran naik.</p>"

    def test_empty_summary_is_invalid(self):
        outcome = normalize_insight_response(
            {"summary": "<script>x</script>", "recommendations": ["a"], "trend_analysis": "b"}
        )
        assert isinstance(outcome, Invalid)
        assert outcome.reason == "summary is empty"

    def test_non_string_summary_is_invalid(self):
        outcome = normalize_insight_response({"summary": 123, "trend_analysis": "b"})
        assert outcome.reason == "summary is empty"

    @pytest.mark.parametrize("payload", [None, [], "teks"])
    def test_not_an_object(self, payload):
        assert isinstance(normalize_insight_response(payload), Invalid)

    def test_key_number_aliases(self):
        outcome = normalize_insight_response(
            {
                "summary": "Ringkas",
                "recommendations": ["a", "b", "c"],
                "trend_analysis": "t",
                "key_numbers": [
                    {"metric": "Rasio", "amount": "60%", "note": "wajar"},
                    {"name": "Kosong", "value": ""},
                    {"label": "", "value": 0, "name": "Nol"},
                    "bukan objek",
                ],
            }
        )

        numbers = outcome.value.key_numbers
        assert len(numbers) == 1
        assert (numbers[0].label, numbers[0].value, numbers[0].insight) == ("Rasio", "60%", "wajar")

    def test_key_numbers_capped_at_eight(self):
        outcome = normalize_insight_response(
            {
                "summary": "Ringkas",
                "recommendations": ["a"],
                "trend_analysis": "t",
                "key_numbers": [{"label": f"L{i}", "value": str(i + 1)} for i in range(12)],
            }
        )
        assert len(outcome.value.key_numbers) == 8


class TestNormalizeForecastResponse:
    """Test suite for overlaying a forecast reply on the baseline."""

    def test_overlay(self, baseline):
        outcome = normalize_forecast_response(
            {
                "predictedIncome": "11000000",
                "predicted_expense": -5,
                "income_range": [12000000, 9000000],
                "balance_range_min": -100,
                "balance_range_max": "abc",
                "confidence": 120,
                "insight": "<b>Naik</b> $5",
                "action_items": "a\nb\nc\nd\ne",
            },
            baseline,
            model="openai/gpt-4o-mini",
        )

        assert isinstance(outcome, Parsed)
        result = outcome.value
        assert result.predicted_income == Decimal("11000000")
        assert result.predicted_expense == Decimal("0")
        assert result.predicted_balance == Decimal("11000000")
        assert (result.income_range.min, result.income_range.max) == (
            Decimal("9000000"),
            Decimal("12000000"),
        )
        assert (result.balance_range.min, result.balance_range.max) == (
            Decimal("-100"),
            Decimal("4320000"),
        )
        assert result.confidence == 95
        assert result.confidence_label == ConfidenceLabel.HIGH
        assert result.insight == "Naik Rp 5"
        assert result.action_items == ["a", "b", "c", "d"]
        assert result.source == ForecastSource.AI_STATISTICAL
        assert result.model == "openai/gpt-4o-mini"

    def test_empty_reply_keeps_baseline_values(self, baseline):
        result = normalize_forecast_response({}, baseline).value

        assert result.predicted_income == baseline.predicted_income
        assert result.predicted_expense == baseline.predicted_expense
        assert result.expense_range == baseline.expense_range
        assert result.insight == baseline.insight
        assert result.action_items == baseline.action_items
        assert result.next_month_label == baseline.next_month_label
        assert result.history_points == baseline.history_points
        assert result.source == ForecastSource.AI_STATISTICAL

    def test_low_confidence_is_clamped(self, baseline):
        result = normalize_forecast_response({"confidence": "10"}, baseline).value

        assert result.confidence == 35
        assert result.confidence_label == ConfidenceLabel.LOW

    def test_dict_range_and_negative_clamp(self, baseline):
        result = normalize_forecast_response(
            {"expenseRange": {"min": -50, "max": 700}}, baseline
        ).value

        assert (result.expense_range.min, result.expense_range.max) == (Decimal("0"), Decimal("700"))

    def test_explicit_balance(self, baseline):
        result = normalize_forecast_response(
            {"predicted_balance": "-250000.4"}, baseline
        ).value
        assert result.predicted_balance == Decimal("-250000")

    def test_blank_action_items_keep_baseline(self, baseline):
        result = normalize_forecast_response({"action_items": ["", "  ", "<script>x</script>"]}, baseline).value
        assert result.action_items == baseline.action_items

    def test_baseline_is_not_mutated(self, baseline):
        normalize_forecast_response({"predicted_income": 1}, baseline)
        assert baseline.source == ForecastSource.STATISTICAL
        assert baseline.predicted_income == Decimal("10000000")

    def test_not_an_object(self, baseline):
        outcome = normalize_forecast_response(["x"], baseline)
        assert isinstance(outcome, Invalid)

    @pytest.mark.parametrize(
        "payload,field",
        [
            ({"predicted_income": 1e40, "confidence": 80}, "predicted_income"),
            ({"confidence": 1e40}, "confidence"),
            ({"predictedBalance": "-1e30"}, "predicted_balance"),
            ({"expense_range": [0, 10**40]}, "expense_range"),
            ({"incomeRange": {"min": 1, "max": "1e25"}}, "income_range"),
            ({"balance_range_max": 10**5000}, "balance_range_max"),
        ],
    )
    def test_out_of_range_numbers_are_invalid(self, baseline, payload, field):
        outcome = normalize_forecast_response(payload, baseline)

        assert isinstance(outcome, Invalid)
        assert outcome.reason == f"{field} is out of range"

    def test_large_but_plausible_numbers_are_kept(self, baseline):
        result = normalize_forecast_response(
            {"predicted_income": 9e17, "confidence": 90}, baseline
        ).value

        assert result.predicted_income == Decimal("900000000000000000")
        assert result.confidence == 90
