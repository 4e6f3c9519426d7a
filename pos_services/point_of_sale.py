"""
pos_services.point_of_sale -- The point-of-sale facade.

Responsibility:
    The external interface of the system.  Wires settings, a session factory
    and a clock into kernel services and selectors, and exposes the sale,
    dashboard, analysis, tax report and housekeeping operations.  Each call
    runs on its own session.

Architecture position:
    Services -- composition over the kernel.  This is the only place where
    pos_config values reach kernel constructors.

Invariants enforced:
    - One session per call; read calls never commit, write calls commit on
      success and roll back on error (sessionmaker.begin()).
    - "Now" always comes from the injected clock, or from the caller.
    - The owner id is trusted; it scopes every query.

Usage:
    from pos_services import PointOfSale

    pos = PointOfSale.from_config()
    result = pos.submit_sale("owner-1", cart, metadata)
    stats = pos.get_dashboard_stats("owner-1")
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Mapping, Sequence
from uuid import UUID

from sqlalchemy.orm import Session, sessionmaker

from pos_config import PosSettings, get_active_config
from pos_kernel.db.engine import create_tables, get_session_factory, init_engine_from_url
from pos_kernel.db.immutability import register_immutability_listeners
from pos_kernel.domain.aggregation import (
    daily_breakdown,
    month_window,
    monthly_tax_breakdown,
    period_comparison,
    previous_month_window,
    previous_week_window,
    quarterly_tax_breakdown,
    tax_totals,
    week_window,
    weekly_breakdown,
)
from pos_kernel.domain.assembly import InvoiceAssembler
from pos_kernel.domain.cart import SaleMetadata
from pos_kernel.domain.clock import Clock, SystemClock
from pos_kernel.domain.dtos import (
    AnalysisReport,
    DashboardStats,
    InvoiceFilter,
    InvoiceRecord,
    ProductRecord,
    TaxReport,
)
from pos_kernel.logging_config import configure_logging, get_logger
from pos_kernel.selectors.invoice_selector import InvoiceSelector
from pos_kernel.selectors.product_selector import ProductSelector
from pos_kernel.services.catalog_service import CatalogService
from pos_kernel.services.invoice_store import InvoiceStore
from pos_kernel.services.sale_coordinator import SaleCoordinator, SaleResult

logger = get_logger("services.point_of_sale")


class PointOfSale:
    """
    Facade over the POS kernel for one deployment.

    Contract:
        Every public method takes the owner id first and returns DTOs
        (never ORM models).  Kernel exceptions propagate from the
        housekeeping operations; submit_sale never raises for expected
        failures.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        settings: PosSettings | None = None,
        clock: Clock | None = None,
    ):
        self._session_factory = session_factory
        self._settings = settings or PosSettings()
        self._clock = clock or SystemClock()
        self._assembler = InvoiceAssembler(
            tax_rate=self._settings.tax_rate,
            clock=self._clock,
            number_prefix=self._settings.invoice_number_prefix,
            number_digits=self._settings.invoice_number_digits,
        )

    @classmethod
    def from_config(
        cls,
        config_path: Path | str | None = None,
        clock: Clock | None = None,
    ) -> PointOfSale:
        """Build a facade from a YAML configuration set and initialize its database."""
        settings = get_active_config(config_path)
        configure_logging(level=settings.log_level)
        init_engine_from_url(
            settings.database.url,
            echo=settings.database.echo,
            pool_size=settings.database.pool_size,
            max_overflow=settings.database.max_overflow,
        )
        create_tables()
        register_immutability_listeners()
        return cls(get_session_factory(), settings=settings, clock=clock)

    @property
    def settings(self) -> PosSettings:
        return self._settings

    @property
    def clock(self) -> Clock:
        return self._clock

    # ------------------------------------------------------------------
    # Sales
    # ------------------------------------------------------------------

    def submit_sale(
        self,
        owner_id: str,
        cart: Sequence[Any],
        metadata: Mapping[str, Any] | SaleMetadata,
        invoice_number: str | None = None,
    ) -> SaleResult:
        with self._session_factory() as session:
            coordinator = SaleCoordinator(session, self._assembler, self._clock)
            return coordinator.submit_sale(owner_id, cart, metadata, invoice_number)

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    def get_dashboard_stats(self, owner_id: str) -> DashboardStats:
        threshold = self._settings.low_stock_threshold
        with self._session_factory() as session:
            products = ProductSelector(session)
            total_sales, total_invoices = InvoiceSelector(session).sales_summary(owner_id)
            return DashboardStats(
                total_sales=total_sales,
                total_invoices=total_invoices,
                total_products=products.count_products(owner_id),
                low_stock_count=products.count_low_stock(owner_id, threshold),
                low_stock_products=tuple(
                    products.low_stock_products(
                        owner_id, threshold, self._settings.low_stock_limit
                    )
                ),
            )

    def get_analysis(
        self,
        owner_id: str,
        now: datetime | None = None,
    ) -> AnalysisReport:
        """
        This week by day, the configured window by week, and this/last week
        and month totals.  ``now`` defaults to the injected clock.
        """
        moment = now or self._clock.now_utc()
        if moment.tzinfo is not None:
            moment = moment.astimezone(timezone.utc)
        reference = moment.date()

        window_weeks = self._settings.analysis_window_weeks
        this_week = week_window(reference)
        last_week = previous_week_window(reference)
        this_month = month_window(reference)
        last_month = previous_month_window(reference)
        earliest = min(
            this_week.start - timedelta(weeks=window_weeks - 1),
            last_week.start,
            last_month.start,
        )
        latest = max(this_week.end, this_month.end)

        with self._session_factory() as session:
            invoices = InvoiceSelector(session).snapshots(
                owner_id, date_from=earliest, date_to=latest
            )

        return AnalysisReport(
            reference_date=reference,
            weekly=daily_breakdown(invoices, reference),
            monthly=weekly_breakdown(invoices, window_weeks, reference),
            week_comparison=period_comparison(invoices, this_week, last_week),
            month_comparison=period_comparison(invoices, this_month, last_month),
        )

    def get_tax_report(self, owner_id: str, year: int | None = None) -> TaxReport:
        """Monthly and quarterly tax for ``year`` (default: the clock's current year)."""
        selected_year = year if year is not None else self._clock.today().year
        with self._session_factory() as session:
            selector = InvoiceSelector(session)
            invoices = selector.snapshots(owner_id, year=selected_year)
            years = selector.available_years(owner_id)

        months = monthly_tax_breakdown(invoices, selected_year)
        return TaxReport(
            selected_year=selected_year,
            monthly=months,
            quarterly=quarterly_tax_breakdown(invoices, selected_year),
            totals=tax_totals(months),
            available_years=tuple(years) or (self._clock.today().year,),
        )

    # ------------------------------------------------------------------
    # Housekeeping
    # ------------------------------------------------------------------

    def list_invoices(
        self,
        owner_id: str,
        date_from: date | None = None,
        date_to: date | None = None,
        year: int | None = None,
        limit: int | None = None,
    ) -> list[InvoiceRecord]:
        filters = InvoiceFilter(
            date_from=date_from, date_to=date_to, year=year, limit=limit
        )
        with self._session_factory() as session:
            return InvoiceSelector(session).list_by_owner(owner_id, filters)

    def delete_invoice(self, owner_id: str, invoice_id: UUID | str) -> None:
        with self._session_factory.begin() as session:
            InvoiceStore(session).delete(owner_id, invoice_id)

    def list_products(self, owner_id: str) -> list[ProductRecord]:
        with self._session_factory() as session:
            return ProductSelector(session).list_products(owner_id)

    def restock(self, owner_id: str, product_id: UUID | str, quantity: int) -> int:
        """Add ``quantity`` units to a product; returns the new stock."""
        with self._session_factory.begin() as session:
            new_stock = CatalogService(session).release_stock(
                owner_id, product_id, quantity
            )
        logger.info(
            "product_restocked",
            extra={"product_id": str(product_id), "quantity": quantity, "stock": new_stock},
        )
        return new_stock
