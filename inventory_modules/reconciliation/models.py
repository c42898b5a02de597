"""
Reconciliation Domain Models (``inventory_modules.reconciliation.models``).

Responsibility
--------------
Frozen value objects shared by Physical Inventory and Stock Adjustment:
the document aggregate, its lines, audit stamps, derived (computed) line
values and the stock movements released on approval.

Architecture
------------
Layer: **Modules** -- pure domain data structures.  All dataclasses are
``frozen=True``.  The aggregate is changed by building a new instance
(``dataclasses.replace``), never by mutation, so a failed transition can
never leave a half-applied document behind.

Invariants
----------
- Quantities and costs are ``Decimal``; numeric input is normalized on
  construction.
- A document owns its lines exclusively; products, stores, currencies,
  reasons and accounts are referenced by id only.
- ``reference_number`` is ``"Pending"`` until the first submit.
- ``exchange_rate`` is ``None`` while the document is editable and a
  positive ``Decimal`` once frozen by submit.
- ``version`` increases by one on every change to the aggregate.

Failure Modes
-------------
- ``ValidationError`` when a numeric field cannot be read as a number.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar
from uuid import UUID, uuid4

from inventory_engines.adjustment import AdjustmentWarning
from inventory_engines.valuation import VarianceSummary
from inventory_kernel.domain.values import Unavailable, to_decimal
from inventory_kernel.exceptions import ValidationError

PENDING_REFERENCE = "Pending"


class DocumentType(str, Enum):
    PHYSICAL_INVENTORY = "physical_inventory"
    STOCK_ADJUSTMENT = "stock_adjustment"


class DocumentStatus(str, Enum):
    """Lifecycle states shared by both document types."""
    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"
    RETURNED_FOR_CORRECTION = "returned_for_correction"
    VARIANCE_ACCEPTED = "variance_accepted"  # Physical Inventory only


EDITABLE_STATUSES = frozenset(
    {DocumentStatus.DRAFT, DocumentStatus.RETURNED_FOR_CORRECTION}
)


class MovementDirection(str, Enum):
    IN = "in"
    OUT = "out"


@dataclass(frozen=True)
class AuditStamp:
    """Who did something, and when."""
    actor_id: UUID
    at: datetime


@dataclass(frozen=True)
class DocumentHeader:
    """
    Base class for the type-specific header of a document.

    Subclasses add reason and account references.  ``to_dict``/``from_dict``
    round-trip the header through JSON-compatible primitives for storage.
    """

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            data[f.name] = value.value if isinstance(value, Enum) else value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DocumentHeader:
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass(frozen=True)
class ReconciliationLine:
    """
    One product line of a reconciliation document.

    ``target_quantity`` is the counted quantity on a Physical Inventory and
    the requested adjustment amount on a Stock Adjustment.  When an approver
    sets ``approved_quantity`` it replaces ``target_quantity`` for all
    computations.
    """
    product_id: str
    baseline_quantity: Decimal
    target_quantity: Decimal
    unit_cost: Decimal = Decimal("0")
    serial_numbers: tuple[str, ...] = ()
    batch_number: str | None = None
    expiry_date: date | None = None
    notes: str | None = None
    unit_average_cost: Decimal | None = None
    approved_quantity: Decimal | None = None
    line_id: UUID = field(default_factory=uuid4)

    _DECIMAL_FIELDS: ClassVar[tuple[str, ...]] = (
        "baseline_quantity",
        "target_quantity",
        "unit_cost",
    )
    _OPTIONAL_DECIMAL_FIELDS: ClassVar[tuple[str, ...]] = (
        "unit_average_cost",
        "approved_quantity",
    )

    def __post_init__(self) -> None:
        if not self.product_id:
            raise ValidationError("product_id is required", field="product_id")
        for name in self._DECIMAL_FIELDS:
            object.__setattr__(self, name, to_decimal(getattr(self, name), name))
        for name in self._OPTIONAL_DECIMAL_FIELDS:
            value = getattr(self, name)
            if value is not None:
                object.__setattr__(self, name, to_decimal(value, name))
        if not isinstance(self.serial_numbers, tuple):
            object.__setattr__(self, "serial_numbers", tuple(self.serial_numbers))
        if self.batch_number is not None and not isinstance(self.batch_number, str):
            raise ValidationError("batch_number must be text", field="batch_number")
        if self.batch_number is not None and not self.batch_number.strip():
            object.__setattr__(self, "batch_number", None)

    @property
    def effective_target(self) -> Decimal:
        if self.approved_quantity is not None:
            return self.approved_quantity
        return self.target_quantity

    @property
    def cost_basis(self) -> Decimal:
        """Cost used for variance value: average cost when known."""
        if self.unit_average_cost is not None:
            return self.unit_average_cost
        return self.unit_cost


@dataclass(frozen=True)
class DerivedLine:
    """Computed values for one line.  Never stored as independent truth."""
    line_id: UUID
    product_id: str
    adjustment_in: Decimal
    adjustment_out: Decimal
    new_stock: Decimal
    delta_quantity: Decimal
    valued_quantity: Decimal
    line_total: Decimal
    equivalent_line_total: Decimal | Unavailable
    delta_value: Decimal
    warnings: tuple[AdjustmentWarning, ...] = ()

    @property
    def direction(self) -> MovementDirection | None:
        if self.adjustment_in > 0:
            return MovementDirection.IN
        if self.adjustment_out > 0:
            return MovementDirection.OUT
        return None


@dataclass(frozen=True)
class StockMovement:
    """A posted stock/value movement handed to the stock ledger."""
    document_id: UUID
    reference_number: str
    line_id: UUID
    product_id: str
    store_id: str
    direction: MovementDirection
    quantity: Decimal
    unit_cost: Decimal
    value: Decimal
    equivalent_value: Decimal
    reason_id: str | None
    account_id: str | None
    corresponding_account_id: str | None
    batch_number: str | None = None
    serial_numbers: tuple[str, ...] = ()
    expiry_date: date | None = None


@dataclass(frozen=True)
class ReconciliationDocument:
    """
    Physical Inventory or Stock Adjustment aggregate.

    Contract: immutable; every lifecycle operation returns a new instance.
    """
    document_type: DocumentType
    store_id: str
    currency_id: str
    document_date: date
    header: DocumentHeader
    created: AuditStamp
    lines: tuple[ReconciliationLine, ...] = ()
    status: DocumentStatus = DocumentStatus.DRAFT
    reference_number: str = PENDING_REFERENCE
    exchange_rate: Decimal | None = None
    notes: str | None = None
    updated: AuditStamp | None = None
    submitted: AuditStamp | None = None
    approved: AuditStamp | None = None
    rejected: AuditStamp | None = None
    returned: AuditStamp | None = None
    variance_accepted: AuditStamp | None = None
    rejection_reason: str | None = None
    return_reason: str | None = None
    approval_notes: str | None = None
    variance: VarianceSummary | None = None
    variance_notes: str | None = None
    version: int = 1
    revision: int = 1
    id: UUID = field(default_factory=uuid4)

    def __post_init__(self) -> None:
        object.__setattr__(self, "document_type", DocumentType(self.document_type))
        object.__setattr__(self, "status", DocumentStatus(self.status))
        if not isinstance(self.lines, tuple):
            object.__setattr__(self, "lines", tuple(self.lines))

    @property
    def is_editable(self) -> bool:
        return self.status in EDITABLE_STATUSES

    @property
    def is_rate_frozen(self) -> bool:
        return self.exchange_rate is not None

    @property
    def line_serials(self) -> tuple[tuple[str, ...], ...]:
        return tuple(line.serial_numbers for line in self.lines)

    def line_index(self, line_id: UUID) -> int:
        for index, line in enumerate(self.lines):
            if line.line_id == line_id:
                return index
        raise KeyError(f"Line {line_id} is not on document {self.id}")

    def evolve(self, **changes: Any) -> ReconciliationDocument:
        """New instance with ``changes`` applied and the version bumped."""
        return replace(self, version=self.version + 1, **changes)
