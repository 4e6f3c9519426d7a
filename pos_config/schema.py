"""
PosSettings schema.

The typed form of a configuration set.  YAML is parsed into these frozen
dataclasses by the loader; __post_init__ rejects values the kernel cannot
honour.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from decimal import Decimal


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseSettings:
    """Connection settings handed to pos_kernel.db.engine.init_engine_from_url."""

    url: str = "sqlite:///pos.db"
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10

    def __post_init__(self):
        if not self.url:
            raise ValueError("database.url must not be empty")
        if self.pool_size < 1:
            raise ValueError(f"database.pool_size must be >= 1, got {self.pool_size}")
        if self.max_overflow < 0:
            raise ValueError(
                f"database.max_overflow must be >= 0, got {self.max_overflow}"
            )


# ---------------------------------------------------------------------------
# Point of sale
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PosSettings:
    """
    Runtime settings for one point-of-sale deployment.

    Field defaults match the shipped ``sets/default.yaml``.
    """

    config_id: str = "default"
    version: int = 1

    # Sales
    tax_rate: Decimal = Decimal("0.075")
    invoice_number_prefix: str = "INV-"
    invoice_number_digits: int = 8

    # Dashboard
    low_stock_threshold: int = 10
    low_stock_limit: int = 10

    # Analysis
    analysis_window_weeks: int = 13

    # Logging
    log_level: str = "INFO"

    database: DatabaseSettings = field(default_factory=DatabaseSettings)

    checksum: str = ""

    def __post_init__(self):
        if not isinstance(self.tax_rate, Decimal):
            raise ValueError(f"tax_rate must be a Decimal, got {type(self.tax_rate).__name__}")
        if not (Decimal("0") <= self.tax_rate < Decimal("1")):
            raise ValueError(f"tax_rate must be in [0, 1), got {self.tax_rate}")
        if not 1 <= self.invoice_number_digits <= 13:
            raise ValueError(
                "invoice_number.digits must be between 1 and 13, "
                f"got {self.invoice_number_digits}"
            )
        if self.low_stock_threshold < 0:
            raise ValueError(
                f"low_stock.threshold must be >= 0, got {self.low_stock_threshold}"
            )
        if self.low_stock_limit < 1:
            raise ValueError(f"low_stock.limit must be >= 1, got {self.low_stock_limit}")
        if self.analysis_window_weeks < 1:
            raise ValueError(
                f"analysis.window_weeks must be >= 1, got {self.analysis_window_weeks}"
            )
        if self.log_level.upper() not in logging.getLevelNamesMapping():
            raise ValueError(f"logging.level is not a known level, got {self.log_level!r}")
