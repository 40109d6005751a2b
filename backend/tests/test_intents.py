"""Tests for local intent classification."""

import pytest
from pydantic import ValidationError

from cashbook.schemas.assistant import IntentKind, Metric, QueryIntent
from cashbook.services.assistant.intents import INTENT_RULES, classify, is_metric_keyword_present


class TestIntentRules:
    """The ordered rule list decides the intent kind."""

    @pytest.mark.parametrize(
        "text",
        [
            "full details",
            "mar full details",
            "full details budget category breakdown",
            "complete report for shop",
            "show me everything",
        ],
    )
    def test_full_wins(self, text):
        assert classify(text) == QueryIntent(kind=IntentKind.FULL)

    @pytest.mark.parametrize("text", ["recent transactions", "latest entries", "show last few", "last transactions in mar"])
    def test_recent(self, text):
        assert classify(text).kind == IntentKind.RECENT

    @pytest.mark.parametrize("text", ["budget", "forecast this month", "spending prediction", "what is my plan"])
    def test_budget(self, text):
        assert classify(text).kind == IntentKind.BUDGET

    def test_recent_beats_budget(self):
        assert classify("recent budget items").kind == IntentKind.RECENT

    @pytest.mark.parametrize(
        "text,metric",
        [
            ("top category this month", Metric.OUTFLOW),
            ("category breakdown", Metric.OUTFLOW),
            ("category wise income", Metric.INFLOW),
            ("top category for inflow", Metric.INFLOW),
            ("category of income and expense", Metric.OUTFLOW),
        ],
    )
    def test_category_direction(self, text, metric):
        assert classify(text) == QueryIntent(kind=IntentKind.CATEGORY, metric=metric)

    @pytest.mark.parametrize(
        "text,metric",
        [
            ("daily trend", Metric.OUTFLOW),
            ("inflow chart last 7 days", Metric.INFLOW),
            ("spent graph", Metric.OUTFLOW),
        ],
    )
    def test_trend_direction(self, text, metric):
        assert classify(text) == QueryIntent(kind=IntentKind.TREND, metric=metric)

    @pytest.mark.parametrize(
        "text",
        ["how many transactions", "how many transactions?", "number of transactions in mar", "transaction count", "total transactions"],
    )
    def test_count(self, text):
        assert classify(text) == QueryIntent(kind=IntentKind.COUNT)

    def test_first_rule_is_full(self):
        assert INTENT_RULES[0].kind == IntentKind.FULL


class TestMetricPrecedence:
    @pytest.mark.parametrize(
        "text,metric",
        [
            ("balance", Metric.BALANCE),
            ("balance and net profit", Metric.BALANCE),
            ("net this month", Metric.NET),
            ("profit with income and expense", Metric.NET),
            ("spent last 7 days", Metric.OUTFLOW),
            ("how much did i pay, paid or debit", Metric.OUTFLOW),
            ("mar inflow", Metric.INFLOW),
            ("money received", Metric.INFLOW),
            ("inflow and outflow", Metric.TOTALS),
            ("income vs spend", Metric.TOTALS),
            ("how am i doing", Metric.SUMMARY),
        ],
    )
    def test_metric(self, text, metric):
        assert classify(text) == QueryIntent(kind=IntentKind.METRIC, metric=metric)

    def test_deterministic(self):
        for text in ("mar inflow", "top category", "balance", "hello world"):
            assert classify(text) == classify(text)


class TestQueryIntentValidation:
    def test_metric_kind_requires_metric(self):
        with pytest.raises(ValidationError):
            QueryIntent(kind=IntentKind.METRIC)

    def test_directional_kinds_default_to_outflow(self):
        assert QueryIntent(kind=IntentKind.CATEGORY).metric == Metric.OUTFLOW
        assert QueryIntent(kind=IntentKind.TREND).metric == Metric.OUTFLOW

    def test_directional_kinds_reject_other_metrics(self):
        with pytest.raises(ValidationError):
            QueryIntent(kind=IntentKind.TREND, metric=Metric.NET)

    def test_other_kinds_reject_metric(self):
        with pytest.raises(ValidationError):
            QueryIntent(kind=IntentKind.RECENT, metric=Metric.BALANCE)


def test_metric_keyword_present():
    assert is_metric_keyword_present("mar inflow?")
    assert is_metric_keyword_present("spend")
    assert not is_metric_keyword_present("how many transactions")
