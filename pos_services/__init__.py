"""
pos_services -- Package init and public API.

Responsibility:
    Composition over the POS kernel: the PointOfSale facade is the canonical
    import surface for external consumers (HTTP handlers, CLIs, tests).

Architecture position:
    Services -- above pos_kernel and pos_config.

    Dependency direction (enforced by tests/architecture/test_kernel_boundary.py):
        pos_services/ -> pos_kernel/   (allowed)
        pos_services/ -> pos_config/   (allowed)
        pos_kernel/   -> pos_services/ (FORBIDDEN)
        pos_kernel/   -> pos_config/   (FORBIDDEN)
"""

from pos_services.point_of_sale import PointOfSale

__all__ = [
    "PointOfSale",
]
