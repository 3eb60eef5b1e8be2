"""Tests for expected occurrence dates of recurring expenses."""

from datetime import date

import pytest

from ledger_sync.errors import ValidationError
from ledger_sync.models import RecurrenceInterval
from ledger_sync.services.occurrences import clamp_day, expected_dates
from tests.factories import RecurringExpenseFactory


class TestClampDay:
    def test_day_past_month_end_is_clamped(self):
        assert clamp_day(2024, 2, 31) == date(2024, 2, 29)
        assert clamp_day(2023, 2, 31) == date(2023, 2, 28)
        assert clamp_day(2024, 4, 31) == date(2024, 4, 30)

    def test_day_in_range_is_kept(self):
        assert clamp_day(2024, 3, 15) == date(2024, 3, 15)

    def test_out_of_range_day_is_bounded(self):
        assert clamp_day(2024, 3, 0) == date(2024, 3, 1)


class TestExpectedDates:
    def test_monthly_single_date(self):
        definition = RecurringExpenseFactory.build(day_of_month=31)

        assert expected_dates(definition, 2024, 2) == [date(2024, 2, 29)]
        assert expected_dates(definition, 2024, 3) == [date(2024, 3, 31)]

    def test_weekly_counts_follow_start_weekday(self):
        """GIVEN a weekly definition starting on Monday 2024-01-01
        WHEN expanding January and February
        THEN January has five Mondays and February four"""
        definition = RecurringExpenseFactory.build(
            interval=RecurrenceInterval.WEEKLY, start_date=date(2024, 1, 1)
        )

        january = expected_dates(definition, 2024, 1)
        february = expected_dates(definition, 2024, 2)

        assert january == [date(2024, 1, d) for d in (1, 8, 15, 22, 29)]
        assert february == [date(2024, 2, d) for d in (5, 12, 19, 26)]

    def test_weekly_starting_mid_month(self):
        definition = RecurringExpenseFactory.build(
            interval=RecurrenceInterval.WEEKLY, start_date=date(2024, 1, 20)
        )

        assert expected_dates(definition, 2024, 1) == [date(2024, 1, 20), date(2024, 1, 27)]

    def test_weekly_before_start_is_empty(self):
        definition = RecurringExpenseFactory.build(
            interval=RecurrenceInterval.WEEKLY, start_date=date(2024, 3, 1)
        )

        assert expected_dates(definition, 2024, 2) == []

    def test_quarterly_every_third_month_from_start(self):
        definition = RecurringExpenseFactory.build(
            interval=RecurrenceInterval.QUARTERLY, start_date=date(2024, 1, 1), day_of_month=10
        )

        assert expected_dates(definition, 2024, 1) == [date(2024, 1, 10)]
        assert expected_dates(definition, 2024, 4) == [date(2024, 4, 10)]
        assert expected_dates(definition, 2024, 5) == []
        assert expected_dates(definition, 2025, 1) == [date(2025, 1, 10)]
        assert expected_dates(definition, 2023, 10) == []

    def test_yearly_only_in_start_month(self):
        definition = RecurringExpenseFactory.build(
            interval=RecurrenceInterval.YEARLY, start_date=date(2023, 2, 1), day_of_month=29
        )

        assert expected_dates(definition, 2024, 2) == [date(2024, 2, 29)]
        assert expected_dates(definition, 2025, 2) == [date(2025, 2, 28)]
        assert expected_dates(definition, 2024, 3) == []

    def test_unknown_interval_is_rejected(self):
        definition = RecurringExpenseFactory.build(interval="fortnightly")

        with pytest.raises(ValidationError):
            expected_dates(definition, 2024, 1)
