"""
Reconciliation Configuration Schema.

Settings shared by the Physical Inventory and Stock Adjustment modules.
Each module extends ``ReconciliationModuleConfig`` with its own defaults.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import ClassVar, Self

from inventory_kernel.logging_config import get_logger

logger = get_logger("modules.reconciliation.config")

# Fields a document can be required to carry: the document-level fields
# plus every header field of either document type.
DOCUMENT_FIELDS = frozenset({"store_id", "currency_id", "document_date"})

_PREFIX_PATTERN = re.compile(r"^[A-Z][A-Z0-9]{0,9}$")


@dataclass
class ReconciliationModuleConfig:
    """
    Configuration common to both reconciliation document types.

        config = PhysicalInventoryConfig(
            reference_prefix="CNT",
            batch_number_pattern=r"^B\\d{6}$",
        )
    """

    reference_prefix: str = "DOC"
    required_header_fields: tuple[str, ...] = ("store_id", "currency_id", "document_date")

    # Batch numbers are free text unless a format is configured
    batch_number_pattern: str | None = None
    require_batch_number: bool = False

    # Check that referenced reasons exist and point the right way
    check_reason_types: bool = True

    allowed_header_fields: ClassVar[frozenset[str]] = DOCUMENT_FIELDS

    def __post_init__(self):
        if not _PREFIX_PATTERN.match(self.reference_prefix or ""):
            raise ValueError(
                "reference_prefix must be 1-10 uppercase letters/digits "
                f"starting with a letter, got '{self.reference_prefix}'"
            )

        self.required_header_fields = tuple(self.required_header_fields)
        unknown = set(self.required_header_fields) - set(self.allowed_header_fields)
        if unknown:
            raise ValueError(
                f"required_header_fields contains unknown fields: {sorted(unknown)}"
            )

        if self.batch_number_pattern is not None:
            try:
                re.compile(self.batch_number_pattern)
            except re.error as e:
                raise ValueError(
                    f"batch_number_pattern is not a valid regex: {e}"
                ) from e

        logger.info(
            "reconciliation_config_initialized",
            extra={
                "config_type": type(self).__name__,
                "reference_prefix": self.reference_prefix,
                "required_header_fields": list(self.required_header_fields),
                "batch_number_pattern": self.batch_number_pattern,
            },
        )

    def batch_number_matches(self, batch_number: str) -> bool:
        if self.batch_number_pattern is None:
            return True
        return re.fullmatch(self.batch_number_pattern, batch_number) is not None

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with the module defaults."""
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Create config from dictionary (e.g., loaded from YAML)."""
        logger.info(
            "reconciliation_config_loading_from_dict",
            extra={"config_type": cls.__name__, "keys": sorted(data.keys())},
        )
        return cls(**data)
