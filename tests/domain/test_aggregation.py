"""
Tests for the pure sales and tax rollups.

Verifies:
- Bucket sets are fully populated, including empty periods
- Results do not depend on input order
- Percent change never divides by zero
- Quarterly figures are the fold of the monthly figures
"""

import random
from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from pos_kernel.domain.aggregation import (
    DateWindow,
    InvoiceSnapshot,
    daily_breakdown,
    fold_quarters,
    month_window,
    monthly_tax_breakdown,
    percent_change,
    period_comparison,
    previous_month_window,
    previous_week_window,
    quarter_of,
    quarterly_tax_breakdown,
    tax_totals,
    week_window,
    weekly_breakdown,
)

# Wednesday
REFERENCE = date(2024, 3, 13)


def snapshot(day: date, subtotal: str, hour: int = 12) -> InvoiceSnapshot:
    sub = Decimal(subtotal)
    tax = (sub * Decimal("0.075")).quantize(Decimal("0.01"))
    return InvoiceSnapshot(
        invoice_id=uuid4(),
        created_at=datetime(day.year, day.month, day.day, hour, tzinfo=timezone.utc),
        subtotal=sub,
        tax=tax,
        total=sub + tax,
    )


class TestWindows:
    def test_week_window_is_monday_to_sunday(self):
        window = week_window(REFERENCE)
        assert window == DateWindow(start=date(2024, 3, 11), end=date(2024, 3, 17))

    def test_sunday_belongs_to_preceding_monday(self):
        assert week_window(date(2024, 3, 17)).start == date(2024, 3, 11)

    def test_previous_week(self):
        assert previous_week_window(REFERENCE).start == date(2024, 3, 4)

    def test_month_window_leap_february(self):
        window = month_window(date(2024, 2, 10))
        assert window.end == date(2024, 2, 29)

    def test_previous_month_crosses_year(self):
        window = previous_month_window(date(2024, 1, 31))
        assert window == DateWindow(start=date(2023, 12, 1), end=date(2023, 12, 31))


class TestPercentChange:
    """percent_change() edge cases."""

    def test_both_zero(self):
        assert percent_change(Decimal("0"), Decimal("0")) == Decimal("0")

    def test_previous_zero(self):
        assert percent_change(Decimal("50"), Decimal("0")) == Decimal("100.00")

    def test_increase(self):
        assert percent_change(Decimal("150"), Decimal("100")) == Decimal("50.00")

    def test_decrease_rounded(self):
        assert percent_change(Decimal("2"), Decimal("3")) == Decimal("-33.33")


class TestDailyBreakdown:
    def test_no_invoices_yields_seven_zero_buckets(self):
        buckets = daily_breakdown([], REFERENCE)
        assert [b.label for b in buckets] == [
            "Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun",
        ]
        assert all(b.total == Decimal("0") and b.count == 0 for b in buckets)
        assert buckets[0].day == date(2024, 3, 11)

    def test_sales_land_on_their_weekday(self):
        invoices = [
            snapshot(date(2024, 3, 11), "1000.00"),
            snapshot(date(2024, 3, 13), "3000.00"),
            snapshot(date(2024, 3, 13), "1000.00", hour=23),
            snapshot(date(2024, 3, 10), "999.00"),
        ]
        buckets = {b.label: b for b in daily_breakdown(invoices, REFERENCE)}
        assert buckets["Mon"].total == Decimal("1075.00")
        assert buckets["Wed"].total == Decimal("4300.00")
        assert buckets["Wed"].count == 2
        assert buckets["Sun"].count == 0

    def test_to_dict_uses_label_as_date(self):
        bucket = daily_breakdown([], REFERENCE)[2]
        assert bucket.to_dict()["date"] == "Wed"
        assert bucket.to_dict()["total"] == "0.00"


class TestWeeklyBreakdown:
    def test_oldest_first_with_zero_weeks(self):
        invoices = [snapshot(date(2024, 2, 28), "1000.00")]
        buckets = weekly_breakdown(invoices, 4, REFERENCE)
        assert [b.week_key for b in buckets] == [
            "2024-W08", "2024-W09", "2024-W10", "2024-W11",
        ]
        assert buckets[-1].week_label == "Week 11"
        assert [b.count for b in buckets] == [0, 1, 0, 0]

    def test_sales_outside_window_ignored(self):
        invoices = [snapshot(date(2023, 1, 2), "1000.00")]
        buckets = weekly_breakdown(invoices, 13, REFERENCE)
        assert len(buckets) == 13
        assert sum(b.count for b in buckets) == 0

    def test_window_must_be_positive(self):
        with pytest.raises(ValueError):
            weekly_breakdown([], 0, REFERENCE)


class TestTaxBreakdown:
    def test_twelve_months_sales_is_subtotal(self):
        invoices = [
            snapshot(date(2024, 1, 5), "1000.00"),
            snapshot(date(2024, 1, 20), "2000.00"),
            snapshot(date(2024, 5, 1), "400.00"),
            snapshot(date(2023, 12, 31), "9999.00"),
        ]
        months = monthly_tax_breakdown(invoices, 2024)
        assert len(months) == 12
        assert months[0].label == "Jan"
        assert months[0].sales == Decimal("3000.00")
        assert months[0].tax == Decimal("225.00")
        assert months[0].invoice_count == 2
        assert months[4].sales == Decimal("400.00")
        assert months[11].invoice_count == 0

    def test_quarters_fold_months(self):
        invoices = [
            snapshot(date(2024, 3, 31), "1000.00", hour=23),
            snapshot(date(2024, 4, 1), "2000.00", hour=0),
            snapshot(date(2024, 12, 1), "500.00"),
        ]
        quarters = quarterly_tax_breakdown(invoices, 2024)
        assert [q.label for q in quarters] == ["Q1", "Q2", "Q3", "Q4"]
        assert quarters[0].sales == Decimal("1000.00")
        assert quarters[1].sales == Decimal("2000.00")
        assert quarters[2].invoice_count == 0
        assert quarters[3].tax == Decimal("37.50")

        months = monthly_tax_breakdown(invoices, 2024)
        assert fold_quarters(months) == quarters
        assert sum(q.tax for q in quarters) == tax_totals(months).total_tax

    @pytest.mark.parametrize(
        "month, quarter", [(1, 1), (3, 1), (4, 2), (6, 2), (7, 3), (10, 4), (12, 4)]
    )
    def test_quarter_of(self, month, quarter):
        assert quarter_of(month) == quarter

    def test_totals(self):
        invoices = [
            snapshot(date(2024, 2, 1), "1000.00"),
            snapshot(date(2024, 8, 1), "3000.00"),
        ]
        totals = tax_totals(monthly_tax_breakdown(invoices, 2024))
        assert totals.total_sales == Decimal("4000.00")
        assert totals.total_tax == Decimal("300.00")
        assert totals.total_invoices == 2


class TestPeriodComparison:
    def test_week_over_week(self):
        invoices = [
            snapshot(date(2024, 3, 5), "1000.00"),
            snapshot(date(2024, 3, 12), "2000.00"),
        ]
        result = period_comparison(
            invoices, week_window(REFERENCE), previous_week_window(REFERENCE)
        )
        assert result.current_total == Decimal("2150.00")
        assert result.previous_total == Decimal("1075.00")
        assert result.percent_change == Decimal("100.00")

    def test_empty_periods(self):
        result = period_comparison(
            [], month_window(REFERENCE), previous_month_window(REFERENCE)
        )
        assert result.percent_change == Decimal("0")


class TestOrderIndependence:
    """Same invoices in any order give identical results."""

    def test_reordered_input(self):
        invoices = [
            snapshot(date(2024, month, day), f"{month * 100 + day}.00")
            for month in (1, 2, 3)
            for day in (1, 11, 13)
        ]
        shuffled = list(invoices)
        random.Random(7).shuffle(shuffled)

        assert daily_breakdown(invoices, REFERENCE) == daily_breakdown(shuffled, REFERENCE)
        assert weekly_breakdown(invoices, 13, REFERENCE) == weekly_breakdown(
            shuffled, 13, REFERENCE
        )
        assert monthly_tax_breakdown(invoices, 2024) == monthly_tax_breakdown(shuffled, 2024)

    def test_repeated_calls_identical(self):
        invoices = [snapshot(date(2024, 3, 12), "1000.00")]
        assert daily_breakdown(invoices, REFERENCE) == daily_breakdown(invoices, REFERENCE)
