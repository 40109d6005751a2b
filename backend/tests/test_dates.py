"""Tests for date range resolution."""

from datetime import date, timedelta

import pytest

from cashbook.services.assistant.dates import (
    clamp_range,
    days_in_month,
    default_range,
    inclusive_days,
    parse_iso_date,
    resolve_range,
)

TODAY = date(2024, 3, 20)


class TestLastNDays:
    def test_every_n_in_range(self):
        for n in range(1, 367):
            rng = resolve_range(f"spent last {n} days", TODAY)
            assert rng.end_date == TODAY
            assert inclusive_days(rng.start_date, rng.end_date) == n
            assert rng.is_explicit

    def test_singular_day(self):
        rng = resolve_range("last 1 day", TODAY)
        assert rng.start_date == rng.end_date == TODAY

    def test_zero_clamps_to_one(self):
        rng = resolve_range("last 0 days", TODAY)
        assert rng.start_date == rng.end_date == TODAY

    def test_above_max_clamps_to_366(self):
        rng = resolve_range("last 999 days", TODAY)
        assert inclusive_days(rng.start_date, rng.end_date) == 366


class TestExplicitDates:
    def test_two_dates(self):
        rng = resolve_range("spent from 2024-03-01 to 2024-03-10", TODAY)
        assert (rng.start_date, rng.end_date) == (date(2024, 3, 1), date(2024, 3, 10))
        assert rng.is_explicit

    def test_swapped_dates_are_ordered(self):
        rng = resolve_range("2024-03-10 to 2024-03-01", TODAY)
        assert (rng.start_date, rng.end_date) == (date(2024, 3, 1), date(2024, 3, 10))

    def test_single_date(self):
        rng = resolve_range("inflow on 2024-02-29", TODAY)
        assert rng.start_date == rng.end_date == date(2024, 2, 29)

    def test_long_span_clamped_back_from_later_date(self):
        rng = resolve_range("2020-01-01 to 2024-03-20", TODAY)
        assert rng.end_date == date(2024, 3, 20)
        assert inclusive_days(rng.start_date, rng.end_date) == 366

    @pytest.mark.parametrize("text", ["inflow 2024-13-45", "2024-02-30 to 2024-03-01"])
    def test_malformed_dates_fall_back_to_default(self, text):
        rng = resolve_range(text, TODAY)
        assert rng == default_range(TODAY)
        assert not rng.is_explicit

    def test_dates_beat_other_phrases(self):
        rng = resolve_range("today vs 2024-01-01", TODAY)
        assert rng.start_date == rng.end_date == date(2024, 1, 1)


class TestPhrases:
    @pytest.mark.parametrize(
        "text,start,end",
        [
            ("spent today", TODAY, TODAY),
            ("spent yesterday", date(2024, 3, 19), date(2024, 3, 19)),
            ("last 7 inflow", date(2024, 3, 14), TODAY),
            ("past week", date(2024, 3, 14), TODAY),
            ("last week spend", date(2024, 3, 14), TODAY),
            ("last 30 outflow", date(2024, 2, 20), TODAY),
            ("past month", date(2024, 2, 20), TODAY),
            ("this month", date(2024, 3, 1), TODAY),
            ("last month", date(2024, 2, 1), date(2024, 2, 29)),
        ],
    )
    def test_phrase(self, text, start, end):
        rng = resolve_range(text, TODAY)
        assert (rng.start_date, rng.end_date) == (start, end)
        assert rng.is_explicit

    def test_today_beats_last_month(self):
        rng = resolve_range("today and last month", TODAY)
        assert rng.start_date == rng.end_date == TODAY

    def test_last_month_in_january(self):
        rng = resolve_range("last month", date(2024, 1, 15))
        assert (rng.start_date, rng.end_date) == (date(2023, 12, 1), date(2023, 12, 31))

    def test_default(self):
        rng = resolve_range("how am i doing", TODAY)
        assert (rng.start_date, rng.end_date) == (date(2024, 2, 20), TODAY)
        assert not rng.is_explicit


class TestHelpers:
    def test_inclusive_days_minimum_one(self):
        assert inclusive_days(TODAY, TODAY) == 1
        assert inclusive_days(TODAY, TODAY - timedelta(days=5)) == 1

    def test_clamp_range_orders_and_caps(self):
        start, end = clamp_range(date(2024, 3, 10), date(2024, 3, 1))
        assert (start, end) == (date(2024, 3, 1), date(2024, 3, 10))
        start, end = clamp_range(date(2024, 1, 1), date(2024, 1, 31), max_days=10)
        assert (start, end) == (date(2024, 1, 22), date(2024, 1, 31))

    def test_days_in_month(self):
        assert days_in_month(date(2024, 2, 10)) == 29
        assert days_in_month(date(2023, 2, 10)) == 28
        assert days_in_month(date(2024, 4, 30)) == 30

    def test_parse_iso_date(self):
        assert parse_iso_date("2024-03-05") == date(2024, 3, 5)
        assert parse_iso_date("2024-03-05T10:00:00Z") == date(2024, 3, 5)
        assert parse_iso_date("2024-02-30") is None
        assert parse_iso_date("soon") is None
        assert parse_iso_date(None) is None
