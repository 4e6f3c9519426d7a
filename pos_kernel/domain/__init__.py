"""
Pure domain layer.

This module contains pure data transfer objects and domain logic
with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O

Time enters only through an injected Clock.  All domain objects are
immutable and deterministic.
"""

from pos_kernel.domain.aggregation import (
    DateWindow,
    DayBucket,
    InvoiceSnapshot,
    MonthBucket,
    PeriodComparison,
    QuarterBucket,
    TaxTotals,
    WeekBucket,
    daily_breakdown,
    monthly_tax_breakdown,
    period_comparison,
    quarterly_tax_breakdown,
    weekly_breakdown,
)
from pos_kernel.domain.assembly import (
    InvoiceAssembler,
    InvoiceDraft,
    StockReservation,
    generate_invoice_number,
)
from pos_kernel.domain.cart import (
    CUSTOM_ITEM_ID,
    CatalogLineItem,
    CustomLineItem,
    LineItem,
    SaleMetadata,
    parse_cart,
    parse_metadata,
)
from pos_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from pos_kernel.domain.dtos import (
    AnalysisReport,
    DashboardStats,
    InvoiceFilter,
    InvoiceRecord,
    LowStockProduct,
    ProductRecord,
    TaxReport,
)
from pos_kernel.domain.values import Totals, compute_totals, parse_money, parse_quantity

__all__ = [
    "AnalysisReport",
    "CUSTOM_ITEM_ID",
    "CatalogLineItem",
    "Clock",
    "CustomLineItem",
    "DashboardStats",
    "DateWindow",
    "DayBucket",
    "DeterministicClock",
    "InvoiceAssembler",
    "InvoiceDraft",
    "InvoiceFilter",
    "InvoiceRecord",
    "InvoiceSnapshot",
    "LineItem",
    "LowStockProduct",
    "MonthBucket",
    "PeriodComparison",
    "ProductRecord",
    "QuarterBucket",
    "SaleMetadata",
    "StockReservation",
    "SystemClock",
    "TaxReport",
    "TaxTotals",
    "Totals",
    "WeekBucket",
    "compute_totals",
    "daily_breakdown",
    "generate_invoice_number",
    "monthly_tax_breakdown",
    "parse_cart",
    "parse_metadata",
    "parse_money",
    "parse_quantity",
    "period_comparison",
    "quarterly_tax_breakdown",
    "weekly_breakdown",
]
