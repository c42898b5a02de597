"""
Reference number assignment.

Documents carry ``"Pending"`` until first submitted, then
``{prefix}-{date}-{sequence}`` such as ``SA-20240315-0007``.  Sequences
restart per prefix and date.  The sequence value comes from a
``next_sequence`` callable keyed by ``{prefix}-{date}``; document storage
supplies one backed by its counter rows so every service sharing the
store draws from the same sequence.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from datetime import date

from inventory_config.schema import ReferenceNumberFormat
from inventory_kernel.logging_config import get_logger

logger = get_logger("services.reference_numbers")

SequenceAllocator = Callable[[str], int]


class InMemorySequences:
    """Process-local counters, one per key."""

    def __init__(self) -> None:
        self._values: dict[str, int] = {}
        self._lock = threading.Lock()

    def next_value(self, key: str) -> int:
        with self._lock:
            value = self._values.get(key, 0) + 1
            self._values[key] = value
        return value


class ReferenceNumberGenerator:
    """Formats reference numbers around an allocated sequence value."""

    def __init__(
        self,
        number_format: ReferenceNumberFormat | None = None,
        next_sequence: SequenceAllocator | None = None,
    ):
        self._format = number_format or ReferenceNumberFormat()
        self._next_sequence = next_sequence or InMemorySequences().next_value

    def key_for(self, prefix: str, on: date) -> str:
        return f"{prefix}-{on.strftime(self._format.date_format)}"

    def next_reference(self, prefix: str, on: date) -> str:
        key = self.key_for(prefix, on)
        sequence = self._next_sequence(key)
        reference = f"{key}-{sequence:0{self._format.sequence_width}d}"
        logger.info(
            "reference_number_assigned",
            extra={"reference_number": reference},
        )
        return reference
