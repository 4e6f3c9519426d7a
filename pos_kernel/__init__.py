"""
POS Kernel - point-of-sale invoicing core

A write-once invoicing system with:
- Atomic, owner-scoped stock reservation
- Fixed-point money with a single rounding rule
- Immutable invoices whose totals reconcile with their line items
- Pure, clock-injected sales and tax rollups
"""

__version__ = "0.1.0"
