"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Defines the immutable records that cross the kernel boundary: products
    and invoices as read back from storage, the invoice list filter, and the
    dashboard, analysis and tax report shapes.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    from_model() class methods exist as boundary converters but are only
    invoked from the service and selector layers.

Invariants enforced:
    - Domain logic accepts/returns DTOs, never ORM entities.
    - to_dict() renders money as fixed-point strings, never floats.

Data flow:
    cart -> InvoiceDraft -> Invoice (ORM) -> InvoiceRecord -> InvoiceSnapshot
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any
from uuid import UUID

from pos_kernel.domain.aggregation import (
    DayBucket,
    InvoiceSnapshot,
    MonthBucket,
    PeriodComparison,
    QuarterBucket,
    TaxTotals,
    WeekBucket,
)
from pos_kernel.domain.cart import LineItem, SaleMetadata, line_item_from_dict

if TYPE_CHECKING:
    from pos_kernel.models.invoice import Invoice as InvoiceModel
    from pos_kernel.models.product import Product as ProductModel


@dataclass(frozen=True)
class ProductRecord:
    """A catalog product as stored."""

    id: UUID
    owner_id: str
    name: str
    price: Decimal
    stock: int
    category: str
    created_at: datetime

    @classmethod
    def from_model(cls, model: ProductModel) -> ProductRecord:
        return cls(
            id=model.id,
            owner_id=model.owner_id,
            name=model.name,
            price=model.price,
            stock=model.stock,
            category=model.category,
            created_at=model.created_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "name": self.name,
            "price": str(self.price),
            "stock": self.stock,
            "category": self.category,
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class LowStockProduct:
    id: UUID
    name: str
    stock: int
    category: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "name": self.name,
            "stock": self.stock,
            "category": self.category,
        }


@dataclass(frozen=True)
class InvoiceRecord:
    """A committed invoice as stored.  Immutable by construction."""

    id: UUID
    owner_id: str
    invoice_number: str
    metadata: SaleMetadata
    line_items: tuple[LineItem, ...]
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    tax_rate: Decimal
    created_at: datetime

    @classmethod
    def from_model(cls, model: InvoiceModel) -> InvoiceRecord:
        return cls(
            id=model.id,
            owner_id=model.owner_id,
            invoice_number=model.invoice_number,
            metadata=SaleMetadata(
                company_name=model.company_name,
                customer_name=model.customer_name,
                issuer_name=model.issuer_name,
                company_address=model.company_address,
                company_phone=model.company_phone,
            ),
            line_items=tuple(line_item_from_dict(raw) for raw in model.line_items),
            subtotal=model.subtotal,
            tax=model.tax,
            total=model.total,
            tax_rate=model.tax_rate,
            created_at=model.created_at,
        )

    def to_snapshot(self) -> InvoiceSnapshot:
        return InvoiceSnapshot(
            invoice_id=self.id,
            created_at=self.created_at,
            subtotal=self.subtotal,
            tax=self.tax,
            total=self.total,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "invoice_number": self.invoice_number,
            **self.metadata.to_dict(),
            "products": [item.to_dict() for item in self.line_items],
            "subtotal": str(self.subtotal),
            "tax": str(self.tax),
            "total": str(self.total),
            "tax_rate": str(self.tax_rate),
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class InvoiceFilter:
    """
    Invoice list filter.

    date_to is inclusive of the whole day.  year selects one UTC calendar
    year.  limit caps the number of rows (newest first).
    """

    date_from: date | None = None
    date_to: date | None = None
    year: int | None = None
    limit: int | None = None

    def __post_init__(self):
        if self.limit is not None and self.limit < 1:
            raise ValueError(f"limit must be positive, got {self.limit}")
        if (
            self.date_from is not None
            and self.date_to is not None
            and self.date_from > self.date_to
        ):
            raise ValueError(
                f"date_from {self.date_from} is after date_to {self.date_to}"
            )


@dataclass(frozen=True)
class DashboardStats:
    total_sales: Decimal
    total_invoices: int
    total_products: int
    low_stock_count: int
    low_stock_products: tuple[LowStockProduct, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_sales": str(self.total_sales),
            "total_invoices": self.total_invoices,
            "total_products": self.total_products,
            "low_stock_count": self.low_stock_count,
            "low_stock_products": [p.to_dict() for p in self.low_stock_products],
        }


@dataclass(frozen=True)
class AnalysisReport:
    """Sales analysis: this week by day, the recent window by week, and comparisons."""

    reference_date: date
    weekly: tuple[DayBucket, ...]
    monthly: tuple[WeekBucket, ...]
    week_comparison: PeriodComparison
    month_comparison: PeriodComparison

    @property
    def this_week_total(self) -> Decimal:
        return self.week_comparison.current_total

    @property
    def last_week_total(self) -> Decimal:
        return self.week_comparison.previous_total

    @property
    def this_month_total(self) -> Decimal:
        return self.month_comparison.current_total

    @property
    def last_month_total(self) -> Decimal:
        return self.month_comparison.previous_total

    def to_dict(self) -> dict[str, Any]:
        return {
            "reference_date": self.reference_date.isoformat(),
            "weekly_data": [b.to_dict() for b in self.weekly],
            "monthly_data": [b.to_dict() for b in self.monthly],
            "this_week_total": str(self.this_week_total),
            "last_week_total": str(self.last_week_total),
            "this_month_total": str(self.this_month_total),
            "last_month_total": str(self.last_month_total),
            "week_change_percent": str(self.week_comparison.percent_change),
            "month_change_percent": str(self.month_comparison.percent_change),
        }


@dataclass(frozen=True)
class TaxReport:
    selected_year: int
    monthly: tuple[MonthBucket, ...]
    quarterly: tuple[QuarterBucket, ...]
    totals: TaxTotals
    available_years: tuple[int, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "monthly_data": [b.to_dict() for b in self.monthly],
            "quarterly_data": [b.to_dict() for b in self.quarterly],
            **self.totals.to_dict(),
            "available_years": list(self.available_years),
            "selected_year": self.selected_year,
        }
