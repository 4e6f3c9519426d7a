"""
ORM-Level Immutability Enforcement for invoices.

===============================================================================
WHY THIS EXISTS
===============================================================================

An invoice is the receipt the customer walked away with.  Its line items and
totals must reconcile forever, so once persisted it may be deleted by its
owner but never edited.  The kernel has no update path for invoices; this
listener catches anything that tries to add one through the ORM.

    session.flush()
         |
         v
    [before_update event] --> _check_invoice_immutability() --> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity    | When Immutable      | Why
----------|---------------------|------------------------------------------
Invoice   | ALWAYS (from insert)| Printed receipt must match stored record
Product   | never (stock moves) | Guarded instead by CHECK (stock >= 0)

Deletion of an invoice is an explicit owner action and is allowed.

===============================================================================
USAGE
===============================================================================

Called once during application startup:

    from pos_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()

To temporarily disable (TESTS ONLY - never in production):

    from pos_kernel.db.immutability import unregister_immutability_listeners
    unregister_immutability_listeners()
===============================================================================
"""

from sqlalchemy import event

from pos_kernel.exceptions import ImmutabilityViolationError
from pos_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _check_invoice_immutability(mapper, connection, target):
    """Prevent any updates to persisted Invoice records."""
    from pos_kernel.models.invoice import Invoice

    if not isinstance(target, Invoice):
        return

    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "Invoice",
            "entity_id": str(target.id),
            "operation": "UPDATE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type="Invoice",
        entity_id=str(target.id),
        reason="Invoices are write-once and cannot be modified",
    )


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners.

    Call this after all models are imported but before any database
    operations begin.  Safe to call more than once.
    """
    from pos_kernel.models.invoice import Invoice

    if not event.contains(Invoice, "before_update", _check_invoice_immutability):
        event.listen(Invoice, "before_update", _check_invoice_immutability)


def _safe_remove_listener(target, event_name, listener_fn):
    """Remove an event listener, ignoring it if not registered."""
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests where you need to intentionally
    violate immutability rules to verify detection.
    """
    from pos_kernel.models.invoice import Invoice

    _safe_remove_listener(Invoice, "before_update", _check_invoice_immutability)
