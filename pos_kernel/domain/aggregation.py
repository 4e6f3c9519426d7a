"""
Pure sales and tax rollups over committed invoices.

These functions fold invoice snapshots into time-bucketed totals for the
dashboard, the sales analysis charts and the tax report.  ZERO I/O. ZERO
side effects.

All monetary values are Decimal. All inputs/outputs are frozen dataclasses.

Functions in this module follow the pos_kernel/domain/ purity convention:
- No database access
- No clock access ("now" is always a parameter)
- Deterministic: same inputs always produce same outputs, in any input order
- Every bucket set is fully populated; empty periods yield zero buckets

Dates are UTC calendar dates.  Weeks are ISO weeks (Monday first).
"""

from __future__ import annotations

import calendar
import dataclasses
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Iterable, Sequence
from uuid import UUID

from pos_kernel.db.types import ZERO, round_money

WEEKDAY_LABELS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
MONTH_LABELS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)
HUNDRED = Decimal("100")

# =========================================================================
# Inputs and buckets
# =========================================================================


@dataclasses.dataclass(frozen=True)
class InvoiceSnapshot:
    """
    The financial fields of one invoice needed for rollups.

    Selectors convert Invoice rows to snapshots before calling any function
    here.
    """

    invoice_id: UUID
    created_at: datetime
    subtotal: Decimal
    tax: Decimal
    total: Decimal

    @property
    def sale_date(self) -> date:
        created = self.created_at
        if created.tzinfo is not None:
            created = created.astimezone(timezone.utc)
        return created.date()


@dataclasses.dataclass(frozen=True)
class DateWindow:
    """Inclusive calendar-date range."""

    start: date
    end: date

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


@dataclasses.dataclass(frozen=True)
class DayBucket:
    day: date
    label: str
    total: Decimal
    count: int

    def to_dict(self) -> dict:
        return {
            "date": self.label,
            "day": self.day.isoformat(),
            "total": str(self.total),
            "count": self.count,
        }


@dataclasses.dataclass(frozen=True)
class WeekBucket:
    week_key: str
    week_label: str
    week_start: date
    total: Decimal
    count: int

    def to_dict(self) -> dict:
        return {
            "week": self.week_key,
            "date": self.week_label,
            "week_start": self.week_start.isoformat(),
            "total": str(self.total),
            "count": self.count,
        }


@dataclasses.dataclass(frozen=True)
class MonthBucket:
    month: int
    label: str
    tax: Decimal
    sales: Decimal
    invoice_count: int

    def to_dict(self) -> dict:
        return {
            "month": self.label,
            "tax": str(self.tax),
            "sales": str(self.sales),
            "invoice_count": self.invoice_count,
        }


@dataclasses.dataclass(frozen=True)
class QuarterBucket:
    quarter: int
    label: str
    tax: Decimal
    sales: Decimal
    invoice_count: int

    def to_dict(self) -> dict:
        return {
            "quarter": self.label,
            "tax": str(self.tax),
            "sales": str(self.sales),
            "invoice_count": self.invoice_count,
        }


@dataclasses.dataclass(frozen=True)
class PeriodComparison:
    current_total: Decimal
    previous_total: Decimal
    percent_change: Decimal

    def to_dict(self) -> dict:
        return {
            "current_total": str(self.current_total),
            "previous_total": str(self.previous_total),
            "percent_change": str(self.percent_change),
        }


@dataclasses.dataclass(frozen=True)
class TaxTotals:
    total_tax: Decimal
    total_sales: Decimal
    total_invoices: int

    def to_dict(self) -> dict:
        return {
            "total_tax": str(self.total_tax),
            "total_sales": str(self.total_sales),
            "total_invoices": self.total_invoices,
        }


# =========================================================================
# Windows
# =========================================================================


def week_window(reference_date: date) -> DateWindow:
    """Monday..Sunday of the ISO week containing reference_date."""
    monday = reference_date - timedelta(days=reference_date.weekday())
    return DateWindow(start=monday, end=monday + timedelta(days=6))


def previous_week_window(reference_date: date) -> DateWindow:
    return week_window(reference_date - timedelta(days=7))


def month_window(reference_date: date) -> DateWindow:
    """First..last day of the calendar month containing reference_date."""
    last_day = calendar.monthrange(reference_date.year, reference_date.month)[1]
    return DateWindow(
        start=reference_date.replace(day=1),
        end=reference_date.replace(day=last_day),
    )


def previous_month_window(reference_date: date) -> DateWindow:
    first = reference_date.replace(day=1)
    return month_window(first - timedelta(days=1))


# =========================================================================
# Helpers
# =========================================================================


def _sum_totals(invoices: Iterable[InvoiceSnapshot]) -> Decimal:
    return sum((inv.total for inv in invoices), ZERO)


def _in_window(
    invoices: Iterable[InvoiceSnapshot], window: DateWindow
) -> list[InvoiceSnapshot]:
    return [inv for inv in invoices if window.contains(inv.sale_date)]


def percent_change(current: Decimal, previous: Decimal) -> Decimal:
    """
    Relative change from previous to current, in percent.

    0 when both are zero, 100 when only previous is zero; never divides by
    zero.
    """
    if previous == 0:
        return round_money(HUNDRED) if current > 0 else ZERO
    return round_money((current - previous) / previous * HUNDRED)


# =========================================================================
# Rollups
# =========================================================================


def daily_breakdown(
    invoices: Sequence[InvoiceSnapshot],
    reference_date: date,
) -> tuple[DayBucket, ...]:
    """
    Seven buckets, Mon..Sun, for the ISO week containing reference_date.

    Every weekday is present even when it has no sales.
    """
    window = week_window(reference_date)
    totals = {label: ZERO for label in WEEKDAY_LABELS}
    counts = {label: 0 for label in WEEKDAY_LABELS}

    for inv in _in_window(invoices, window):
        label = WEEKDAY_LABELS[inv.sale_date.weekday()]
        totals[label] += inv.total
        counts[label] += 1

    return tuple(
        DayBucket(
            day=window.start + timedelta(days=offset),
            label=label,
            total=totals[label],
            count=counts[label],
        )
        for offset, label in enumerate(WEEKDAY_LABELS)
    )


def _week_key(monday: date) -> tuple[str, str]:
    iso_year, iso_week, _ = monday.isocalendar()
    return f"{iso_year}-W{iso_week:02d}", f"Week {iso_week:02d}"


def weekly_breakdown(
    invoices: Sequence[InvoiceSnapshot],
    window_weeks: int,
    reference_date: date,
) -> tuple[WeekBucket, ...]:
    """
    One bucket per ISO week, oldest first, ending with the week containing
    reference_date.  Weeks without sales are included with zero totals.
    """
    if window_weeks < 1:
        raise ValueError(f"window_weeks must be >= 1, got {window_weeks}")

    current_monday = week_window(reference_date).start
    mondays = [
        current_monday - timedelta(weeks=back)
        for back in range(window_weeks - 1, -1, -1)
    ]
    totals = {monday: ZERO for monday in mondays}
    counts = {monday: 0 for monday in mondays}

    for inv in invoices:
        monday = week_window(inv.sale_date).start
        if monday in totals:
            totals[monday] += inv.total
            counts[monday] += 1

    buckets = []
    for monday in mondays:
        key, label = _week_key(monday)
        buckets.append(WeekBucket(
            week_key=key,
            week_label=label,
            week_start=monday,
            total=totals[monday],
            count=counts[monday],
        ))
    return tuple(buckets)


def monthly_tax_breakdown(
    invoices: Sequence[InvoiceSnapshot],
    year: int,
) -> tuple[MonthBucket, ...]:
    """Twelve buckets, Jan..Dec.  sales is the pre-tax subtotal."""
    tax = {month: ZERO for month in range(1, 13)}
    sales = {month: ZERO for month in range(1, 13)}
    counts = {month: 0 for month in range(1, 13)}

    for inv in invoices:
        day = inv.sale_date
        if day.year != year:
            continue
        tax[day.month] += inv.tax
        sales[day.month] += inv.subtotal
        counts[day.month] += 1

    return tuple(
        MonthBucket(
            month=month,
            label=MONTH_LABELS[month - 1],
            tax=tax[month],
            sales=sales[month],
            invoice_count=counts[month],
        )
        for month in range(1, 13)
    )


def quarter_of(month: int) -> int:
    return (month + 2) // 3


def fold_quarters(months: Sequence[MonthBucket]) -> tuple[QuarterBucket, ...]:
    """Fold monthly buckets into Q1..Q4."""
    tax = {q: ZERO for q in range(1, 5)}
    sales = {q: ZERO for q in range(1, 5)}
    counts = {q: 0 for q in range(1, 5)}

    for bucket in months:
        q = quarter_of(bucket.month)
        tax[q] += bucket.tax
        sales[q] += bucket.sales
        counts[q] += bucket.invoice_count

    return tuple(
        QuarterBucket(
            quarter=q,
            label=f"Q{q}",
            tax=tax[q],
            sales=sales[q],
            invoice_count=counts[q],
        )
        for q in range(1, 5)
    )


def quarterly_tax_breakdown(
    invoices: Sequence[InvoiceSnapshot],
    year: int,
) -> tuple[QuarterBucket, ...]:
    return fold_quarters(monthly_tax_breakdown(invoices, year))


def tax_totals(months: Sequence[MonthBucket]) -> TaxTotals:
    return TaxTotals(
        total_tax=sum((b.tax for b in months), ZERO),
        total_sales=sum((b.sales for b in months), ZERO),
        total_invoices=sum(b.invoice_count for b in months),
    )


def period_comparison(
    invoices: Sequence[InvoiceSnapshot],
    current_window: DateWindow,
    previous_window: DateWindow,
) -> PeriodComparison:
    current = _sum_totals(_in_window(invoices, current_window))
    previous = _sum_totals(_in_window(invoices, previous_window))
    return PeriodComparison(
        current_total=current,
        previous_total=previous,
        percent_change=percent_change(current, previous),
    )
