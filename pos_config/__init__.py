"""
pos_config -- single public entrypoint for point-of-sale configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration files
    directly.

Architecture position:
    Configuration -- YAML-driven settings.  This package sits above
    ``pos_kernel`` and below ``pos_services``.  The kernel MUST NEVER import
    from ``pos_config``; ``pos_services`` passes the values it needs
    (tax rate, thresholds) into kernel constructors.

Invariants enforced:
    - Single entrypoint: all runtime config flows through ``get_active_config()``.
    - Deterministic: the same YAML always yields the same settings and checksum.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``ValueError`` -- a value is missing its required shape or range.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``POS_CONFIG_TRACE`` log entry with the config id, version, checksum
    and tax rate, tying every invoice back to the settings that priced it.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pos_config.loader import load_settings
from pos_config.schema import DatabaseSettings, PosSettings

_logger = logging.getLogger("pos_kernel.config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(config_path: Path | str | None = None) -> PosSettings:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: Override path to a YAML configuration set.
            Defaults to pos_config/sets/default.yaml.

    Raises:
        FileNotFoundError: If the configuration file does not exist.
        ValueError: If configuration validation fails.
    """
    path = Path(config_path) if config_path is not None else _DEFAULT_CONFIG_PATH
    settings = load_settings(path)

    _logger.info(
        "POS_CONFIG_TRACE",
        extra={
            "trace_type": "POS_CONFIG_TRACE",
            "config_id": settings.config_id,
            "config_version": settings.version,
            "checksum": settings.checksum,
            "tax_rate": str(settings.tax_rate),
            "source": str(path),
        },
    )
    return settings


__all__ = [
    "DatabaseSettings",
    "PosSettings",
    "get_active_config",
]
