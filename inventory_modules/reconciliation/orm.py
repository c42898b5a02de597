"""
Module: inventory_modules.reconciliation.orm
Responsibility: SQLAlchemy ORM persistence models for reconciliation
    documents.  Maps the frozen ReconciliationDocument aggregate and its
    lines to two tables.

Architecture position: Modules > Reconciliation > ORM.  Inherits from
    TrackedBase (inventory_kernel.db.base).  Products, stores, currencies,
    reasons and accounts are referenced via String columns with NO foreign
    keys; they belong to other modules.

Invariants enforced:
    - Quantities, costs and rates use Decimal (Numeric(38,9)) -- NEVER float.
    - Enum fields stored as String(50).
    - The type-specific header and the variance summary are stored as JSON.
    - An issued reference number belongs to one document only (partial
      unique index excluding "Pending").
    - Lines are owned by their document (delete-orphan cascade) and keep
      their order through ``position``.

Failure modes:
    - IntegrityError on duplicate document or line id, or on an issued
      reference number already held by another document.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, Date, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inventory_kernel.db.base import TrackedBase

# Only issued numbers are unique; every unsubmitted document is "Pending"
_ISSUED = "reference_number <> 'Pending'"

_STAMPS = ("submitted", "approved", "rejected", "returned", "variance_accepted")


def _aware(value: datetime | None) -> datetime | None:
    """SQLite drops tzinfo; stored timestamps are always UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


# =============================================================================
# ReconciliationDocumentModel
# =============================================================================

class ReconciliationDocumentModel(TrackedBase):
    """
    ORM model for Physical Inventory and Stock Adjustment documents.

    Maps to: inventory_modules.reconciliation.models.ReconciliationDocument.
    """

    __tablename__ = "reconciliation_documents"

    __table_args__ = (
        Index("idx_recon_doc_type_status", "document_type", "status"),
        Index("idx_recon_doc_store", "store_id"),
        Index(
            "uq_recon_doc_reference",
            "reference_number",
            unique=True,
            postgresql_where=text(_ISSUED),
            sqlite_where=text(_ISSUED),
        ),
    )

    document_type: Mapped[str] = mapped_column(String(50))
    status: Mapped[str] = mapped_column(String(50), default="draft")
    reference_number: Mapped[str] = mapped_column(String(50), default="Pending")

    store_id: Mapped[str] = mapped_column(String(100))
    currency_id: Mapped[str] = mapped_column(String(100))
    document_date: Mapped[date] = mapped_column(Date)
    exchange_rate: Mapped[Decimal | None] = mapped_column(nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    header: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)

    # Lifecycle stamps; the row-level updated_at is maintained by the database
    last_edited_by_id: Mapped[UUID | None] = mapped_column(nullable=True)
    last_edited_at: Mapped[datetime | None] = mapped_column(nullable=True)
    submitted_by_id: Mapped[UUID | None] = mapped_column(nullable=True)
    submitted_at: Mapped[datetime | None] = mapped_column(nullable=True)
    approved_by_id: Mapped[UUID | None] = mapped_column(nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    rejected_by_id: Mapped[UUID | None] = mapped_column(nullable=True)
    rejected_at: Mapped[datetime | None] = mapped_column(nullable=True)
    returned_by_id: Mapped[UUID | None] = mapped_column(nullable=True)
    returned_at: Mapped[datetime | None] = mapped_column(nullable=True)
    variance_accepted_by_id: Mapped[UUID | None] = mapped_column(nullable=True)
    variance_accepted_at: Mapped[datetime | None] = mapped_column(nullable=True)

    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    return_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    approval_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    variance: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    variance_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    version: Mapped[int] = mapped_column(Integer, default=1)
    revision: Mapped[int] = mapped_column(Integer, default=1)

    lines: Mapped[list[ReconciliationLineModel]] = relationship(
        back_populates="document",
        cascade="all, delete-orphan",
        order_by="ReconciliationLineModel.position",
    )

    def to_dto(self):
        """Convert ORM model to the frozen ReconciliationDocument."""
        from inventory_engines.valuation import VarianceSummary
        from inventory_modules import policy_type_for
        from inventory_modules.reconciliation.models import (
            AuditStamp,
            DocumentType,
            ReconciliationDocument,
        )

        document_type = DocumentType(self.document_type)
        header_type = policy_type_for(document_type).header_type
        stamps = {}
        for name in _STAMPS:
            actor_id = getattr(self, f"{name}_by_id")
            stamps[name] = (
                AuditStamp(actor_id, _aware(getattr(self, f"{name}_at")))
                if actor_id is not None
                else None
            )
        updated = (
            AuditStamp(self.last_edited_by_id, _aware(self.last_edited_at))
            if self.last_edited_by_id is not None
            else None
        )

        return ReconciliationDocument(
            id=self.id,
            document_type=document_type,
            store_id=self.store_id,
            currency_id=self.currency_id,
            document_date=self.document_date,
            header=header_type.from_dict(self.header or {}),
            created=AuditStamp(self.created_by_id, _aware(self.created_at)),
            lines=tuple(line.to_dto() for line in self.lines),
            status=self.status,
            reference_number=self.reference_number,
            exchange_rate=self.exchange_rate,
            notes=self.notes,
            updated=updated,
            rejection_reason=self.rejection_reason,
            return_reason=self.return_reason,
            approval_notes=self.approval_notes,
            variance=VarianceSummary.from_dict(self.variance) if self.variance else None,
            variance_notes=self.variance_notes,
            version=self.version,
            revision=self.revision,
            **stamps,
        )

    @classmethod
    def from_dto(cls, dto) -> ReconciliationDocumentModel:
        """Create ORM model from the frozen ReconciliationDocument."""
        model = cls(
            id=dto.id,
            created_by_id=dto.created.actor_id,
            created_at=dto.created.at,
        )
        model.apply_dto(dto)
        return model

    def apply_dto(self, dto) -> None:
        """Overwrite every mutable column (and the lines) from ``dto``."""
        self.document_type = dto.document_type.value
        self.status = dto.status.value
        self.reference_number = dto.reference_number
        self.store_id = dto.store_id
        self.currency_id = dto.currency_id
        self.document_date = dto.document_date
        self.exchange_rate = dto.exchange_rate
        self.notes = dto.notes
        self.header = dto.header.to_dict()
        for name in _STAMPS:
            stamp = getattr(dto, name)
            setattr(self, f"{name}_by_id", stamp.actor_id if stamp else None)
            setattr(self, f"{name}_at", stamp.at if stamp else None)
        if dto.updated is not None:
            self.last_edited_by_id = dto.updated.actor_id
            self.last_edited_at = dto.updated.at
            self.updated_by_id = dto.updated.actor_id
        self.rejection_reason = dto.rejection_reason
        self.return_reason = dto.return_reason
        self.approval_notes = dto.approval_notes
        self.variance = dto.variance.to_dict() if dto.variance else None
        self.variance_notes = dto.variance_notes
        self.version = dto.version
        self.revision = dto.revision

        existing = {line.id: line for line in self.lines}
        lines = []
        for position, line in enumerate(dto.lines):
            model = existing.get(line.line_id)
            if model is None:
                model = ReconciliationLineModel(
                    id=line.line_id, created_by_id=self.created_by_id
                )
            model.apply_dto(line, position)
            lines.append(model)
        self.lines = lines

    def __repr__(self) -> str:
        return (
            f"<ReconciliationDocumentModel {self.id} type={self.document_type} "
            f"status={self.status} v{self.version}>"
        )


# =============================================================================
# ReconciliationLineModel
# =============================================================================

class ReconciliationLineModel(TrackedBase):
    """
    ORM model for a reconciliation document line.

    Maps to: inventory_modules.reconciliation.models.ReconciliationLine.
    """

    __tablename__ = "reconciliation_lines"

    __table_args__ = (
        Index("idx_recon_line_document", "document_id", "position"),
        Index("idx_recon_line_product", "product_id"),
    )

    document_id: Mapped[UUID] = mapped_column(
        ForeignKey("reconciliation_documents.id", ondelete="CASCADE")
    )
    position: Mapped[int] = mapped_column(Integer)

    product_id: Mapped[str] = mapped_column(String(100))
    baseline_quantity: Mapped[Decimal] = mapped_column()
    target_quantity: Mapped[Decimal] = mapped_column()
    unit_cost: Mapped[Decimal] = mapped_column()
    unit_average_cost: Mapped[Decimal | None] = mapped_column(nullable=True)
    approved_quantity: Mapped[Decimal | None] = mapped_column(nullable=True)

    serial_numbers: Mapped[list[str]] = mapped_column(JSON, default=list)
    batch_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    expiry_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    document: Mapped[ReconciliationDocumentModel] = relationship(
        back_populates="lines"
    )

    def to_dto(self):
        """Convert ORM model to the frozen ReconciliationLine."""
        from inventory_modules.reconciliation.models import ReconciliationLine

        return ReconciliationLine(
            line_id=self.id,
            product_id=self.product_id,
            baseline_quantity=self.baseline_quantity,
            target_quantity=self.target_quantity,
            unit_cost=self.unit_cost,
            serial_numbers=tuple(self.serial_numbers or ()),
            batch_number=self.batch_number,
            expiry_date=self.expiry_date,
            notes=self.notes,
            unit_average_cost=self.unit_average_cost,
            approved_quantity=self.approved_quantity,
        )

    def apply_dto(self, dto, position: int) -> None:
        self.position = position
        self.product_id = dto.product_id
        self.baseline_quantity = dto.baseline_quantity
        self.target_quantity = dto.target_quantity
        self.unit_cost = dto.unit_cost
        self.unit_average_cost = dto.unit_average_cost
        self.approved_quantity = dto.approved_quantity
        self.serial_numbers = list(dto.serial_numbers)
        self.batch_number = dto.batch_number
        self.expiry_date = dto.expiry_date
        self.notes = dto.notes

    def __repr__(self) -> str:
        return (
            f"<ReconciliationLineModel {self.id} product={self.product_id} "
            f"pos={self.position}>"
        )
