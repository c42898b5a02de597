"""
inventory_config -- single public entrypoint for reconciliation configuration.

Responsibility:
    Provides the way to obtain configuration at runtime through
    ``get_active_config()``.  Services receive the returned
    ``ReconciliationConfigSet``; they do not read YAML themselves.

Architecture position:
    Configuration -- sits above ``inventory_modules`` (whose config
    dataclasses it populates) and below ``inventory_services``.  The kernel
    and engines never import from here.

Failure modes:
    - ``FileNotFoundError`` -- the requested configuration file is missing.
    - ``ValueError`` / ``KeyError`` -- schema validation failures.

Audit relevance:
    Every successful ``get_active_config()`` call emits an
    ``INVENTORY_CONFIG_TRACE`` log entry with the config id, version and
    checksum, tying each document transition to the configuration that
    governed it.
"""

from __future__ import annotations

from pathlib import Path

from inventory_config.loader import load_config_set
from inventory_config.schema import ReconciliationConfigSet, ReferenceNumberFormat
from inventory_kernel.logging_config import get_logger

_logger = get_logger("config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults" / "reconciliation.yaml"


def get_active_config(path: Path | str | None = None) -> ReconciliationConfigSet:
    """Load and validate the configuration at ``path`` (or the shipped default).

    Does not cache: callers hold the returned set for as long as they need it.
    """
    config_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    config_set = load_config_set(config_path)

    _logger.info(
        "INVENTORY_CONFIG_TRACE",
        extra={
            "trace_type": "INVENTORY_CONFIG_TRACE",
            "config_set_id": config_set.config_id,
            "config_set_version": config_set.version,
            "checksum": config_set.checksum,
            "source": str(config_path),
        },
    )
    return config_set


__all__ = [
    "DEFAULT_CONFIG_PATH",
    "ReconciliationConfigSet",
    "ReferenceNumberFormat",
    "get_active_config",
]
