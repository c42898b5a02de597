"""
Configuration Loader (``inventory_config.loader``).

Responsibility
--------------
Loads the reconciliation YAML file and parses it into a
``ReconciliationConfigSet``.  Runtime callers go through
``inventory_config.get_active_config()`` rather than calling this
directly.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; unknown keys in a module section are rejected, not ignored.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the parsed
  source for change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from inventory_config.schema import ReconciliationConfigSet, ReferenceNumberFormat
from inventory_modules.physical_inventory.config import PhysicalInventoryConfig
from inventory_modules.stock_adjustment.config import StockAdjustmentConfig


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at the top level")
    return data


def _section(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise ValueError(f"'{key}' must be a mapping, got {type(value).__name__}")
    return value


def parse_config_set(data: dict[str, Any]) -> ReconciliationConfigSet:
    """
    Parse a ``ReconciliationConfigSet`` from a dict.

    Raises:
        KeyError: if ``config_id`` or ``version`` is missing.
        ValueError: on invalid values (propagated from the config classes).
        TypeError: on unknown keys inside a module section.
    """
    refs = _section(data, "reference_numbers")
    display = _section(data, "display")
    return ReconciliationConfigSet(
        config_id=str(data["config_id"]),
        version=int(data["version"]),
        physical_inventory=PhysicalInventoryConfig.from_dict(
            _section(data, "physical_inventory")
        ),
        stock_adjustment=StockAdjustmentConfig.from_dict(
            _section(data, "stock_adjustment")
        ),
        reference_numbers=ReferenceNumberFormat(
            date_format=refs.get("date_format", "%Y%m%d"),
            sequence_width=int(refs.get("sequence_width", 4)),
        ),
        display_decimal_places=display.get("decimal_places"),
        checksum=compute_checksum(data),
    )


def load_config_set(path: Path) -> ReconciliationConfigSet:
    return parse_config_set(load_yaml_file(path))


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
