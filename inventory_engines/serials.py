"""
inventory_engines.serials -- Serial number uniqueness validator.

Responsibility:
    Decide whether a serial number collides with any other serial in the
    same document, either at another position on the same line or on any
    other line.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    ``validate_serial`` backs the advisory check while a line is edited;
    ``ensure_unique_serials`` is the authoritative check at submit.

Invariants enforced:
    - Blank serials (empty or whitespace) are untracked and always valid.
    - Comparison is on the stripped value.
    - Batch numbers are not checked here; they carry no uniqueness rule.

Failure modes:
    - ``ensure_unique_serials`` raises DuplicateSerialNumberError naming the
      first later occurrence of a repeated serial.
    - ``validate_serial`` raises IndexError for a line index outside the
      document.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum

from inventory_engines.tracer import traced_engine
from inventory_kernel.exceptions import DuplicateSerialNumberError

LineSerials = Sequence[Sequence[str]]


class SerialStatus(str, Enum):
    VALID = "valid"
    DUPLICATE = "duplicate"


@dataclass(frozen=True)
class SerialConflict:
    """A serial at (line_index, serial_index) already used at the first position."""

    serial_number: str
    line_index: int
    serial_index: int
    first_line_index: int
    first_serial_index: int


def normalize_serial(value: str | None) -> str:
    return (value or "").strip()


def parse_serial_numbers(raw: str | Iterable[str] | None) -> tuple[str, ...]:
    """
    Normalize serial input to a tuple of non-blank, stripped serials.

    Accepts a sequence or a single comma-separated string, the form
    spreadsheet imports deliver.
    """
    if raw is None:
        return ()
    items = raw.split(",") if isinstance(raw, str) else raw
    return tuple(s for s in (normalize_serial(item) for item in items) if s)


@traced_engine(
    "serials", "1.0",
    fingerprint_fields=("line_index", "serial_index", "value"),
)
def validate_serial(
    line_serials: LineSerials,
    line_index: int,
    serial_index: int,
    value: str,
) -> SerialStatus:
    """
    Check ``value`` as if it sat at ``serial_index`` on ``line_index``.

    The position itself is skipped, so validating a cell against the
    document that already contains it does not flag it against itself.
    """
    if not 0 <= line_index < len(line_serials):
        raise IndexError(f"line index {line_index} out of range")

    candidate = normalize_serial(value)
    if not candidate:
        return SerialStatus.VALID

    for li, serials in enumerate(line_serials):
        for si, other in enumerate(serials):
            if li == line_index and si == serial_index:
                continue
            if normalize_serial(other) == candidate:
                return SerialStatus.DUPLICATE
    return SerialStatus.VALID


def find_serial_conflicts(line_serials: LineSerials) -> tuple[SerialConflict, ...]:
    """Every occurrence of a serial after its first, in document order."""
    first_seen: dict[str, tuple[int, int]] = {}
    conflicts: list[SerialConflict] = []
    for li, serials in enumerate(line_serials):
        for si, raw in enumerate(serials):
            serial = normalize_serial(raw)
            if not serial:
                continue
            if serial in first_seen:
                first_li, first_si = first_seen[serial]
                conflicts.append(
                    SerialConflict(serial, li, si, first_li, first_si)
                )
            else:
                first_seen[serial] = (li, si)
    return tuple(conflicts)


def ensure_unique_serials(line_serials: LineSerials) -> None:
    """Raise DuplicateSerialNumberError for the first repeated serial."""
    conflicts = find_serial_conflicts(line_serials)
    if conflicts:
        c = conflicts[0]
        raise DuplicateSerialNumberError(
            serial_number=c.serial_number,
            line_index=c.line_index,
            serial_index=c.serial_index,
            other_line_index=c.first_line_index,
        )
