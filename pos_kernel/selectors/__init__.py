"""Selectors for the POS kernel (read side)."""

from pos_kernel.selectors.invoice_selector import InvoiceSelector
from pos_kernel.selectors.product_selector import ProductSelector

__all__ = [
    "InvoiceSelector",
    "ProductSelector",
]
