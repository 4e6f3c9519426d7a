"""Services for the POS kernel (write side)."""

from pos_kernel.services.catalog_service import CatalogService
from pos_kernel.services.invoice_store import InvoiceStore
from pos_kernel.services.sale_coordinator import (
    SaleCoordinator,
    SalePhase,
    SaleResult,
    SaleStatus,
    StockNotice,
)

__all__ = [
    "CatalogService",
    "InvoiceStore",
    "SaleCoordinator",
    "SalePhase",
    "SaleResult",
    "SaleStatus",
    "StockNotice",
]
