"""
Configuration Loader (``pos_config.loader``).

Responsibility
--------------
Loads a YAML configuration set and parses it into a ``PosSettings``
instance.  Runtime callers go through ``pos_config.get_active_config()``
instead of calling this module directly.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* The tax rate is read as an exact Decimal from its string form.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Out-of-range or unparseable values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from pos_config.schema import DatabaseSettings, PosSettings


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping")
    return data


def _parse_decimal(value: Any, key: str) -> Decimal:
    if isinstance(value, bool):
        raise ValueError(f"{key} must be a number, got {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"{key} must be a number, got {value!r}") from None


def parse_database(data: dict[str, Any]) -> DatabaseSettings:
    defaults = DatabaseSettings()
    return DatabaseSettings(
        url=str(data.get("url", defaults.url)),
        echo=bool(data.get("echo", defaults.echo)),
        pool_size=int(data.get("pool_size", defaults.pool_size)),
        max_overflow=int(data.get("max_overflow", defaults.max_overflow)),
    )


def parse_settings(data: dict[str, Any], checksum: str = "") -> PosSettings:
    """Parse a configuration mapping into PosSettings; absent keys take defaults."""
    defaults = PosSettings()
    numbering = data.get("invoice_number") or {}
    low_stock = data.get("low_stock") or {}
    analysis = data.get("analysis") or {}
    log = data.get("logging") or {}

    return PosSettings(
        config_id=str(data.get("config_id", defaults.config_id)),
        version=int(data.get("version", defaults.version)),
        tax_rate=_parse_decimal(data.get("tax_rate", defaults.tax_rate), "tax_rate"),
        invoice_number_prefix=str(numbering.get("prefix", defaults.invoice_number_prefix)),
        invoice_number_digits=int(numbering.get("digits", defaults.invoice_number_digits)),
        low_stock_threshold=int(low_stock.get("threshold", defaults.low_stock_threshold)),
        low_stock_limit=int(low_stock.get("limit", defaults.low_stock_limit)),
        analysis_window_weeks=int(
            analysis.get("window_weeks", defaults.analysis_window_weeks)
        ),
        log_level=str(log.get("level", defaults.log_level)).upper(),
        database=parse_database(data.get("database") or {}),
        checksum=checksum,
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def load_settings(path: Path) -> PosSettings:
    data = load_yaml_file(path)
    return parse_settings(data, checksum=compute_checksum(data))
