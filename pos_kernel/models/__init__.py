"""ORM models. Importing this package registers every table on Base.metadata."""

from pos_kernel.models.invoice import Invoice
from pos_kernel.models.product import Product

__all__ = [
    "Invoice",
    "Product",
]
