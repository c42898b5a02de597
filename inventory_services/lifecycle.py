"""
inventory_services.lifecycle -- Reconciliation document lifecycle.

Responsibility:
    Applies edits and lifecycle transitions to a ReconciliationDocument and
    returns the new aggregate.  Edits recompute derived values explicitly
    (mutate, then recompute); transitions go through the WorkflowExecutor
    and then apply their side effects: audit stamps, reasons, frozen
    exchange rate, reference number, approved quantities, variance.

Architecture position:
    Services layer.  Stateless apart from its collaborators (clock,
    reference number source, executor).  Persistence and per-document
    serialization belong to ``ReconciliationDocumentService``.

Invariants enforced:
    - Lines and header change only in editable states (draft,
      returned_for_correction); any other attempt raises
      InvalidStateTransitionError with action "edit".
    - Submit is all-or-nothing: guard, rate and reference number are all
      resolved before the new aggregate is built.
    - The exchange rate is frozen at submit and released whenever the
      document becomes editable again.
    - Every change increments ``version``.

Failure modes:
    - ValidationError / DuplicateSerialNumberError from the submit guard.
    - CurrencyRateUnavailableError when no rate exists at submit.
    - InvalidStateTransitionError for illegal actions or edits.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, fields, replace
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from inventory_config import ReconciliationConfigSet, get_active_config
from inventory_engines.exchange import RateTable, require_exchange_rate, resolve_exchange_rate
from inventory_engines.serials import SerialStatus, validate_serial
from inventory_engines.valuation import DocumentValuation
from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.currency import round_for_display
from inventory_kernel.domain.directories import ProductStockLookup, ReferenceDirectory
from inventory_kernel.domain.values import UNAVAILABLE, Unavailable, to_decimal
from inventory_kernel.exceptions import InvalidStateTransitionError, ValidationError
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_modules import policy_for
from inventory_modules.reconciliation.models import (
    PENDING_REFERENCE,
    AuditStamp,
    DerivedLine,
    DocumentHeader,
    DocumentStatus,
    DocumentType,
    ReconciliationDocument,
    ReconciliationLine,
    StockMovement,
)
from inventory_modules.reconciliation.policy import ReconciliationPolicy
from inventory_services.reference_numbers import ReferenceNumberGenerator
from inventory_services.workflow_executor import TransitionResult, WorkflowExecutor

logger = get_logger("services.lifecycle")

DOCUMENT_LEVEL_FIELDS = frozenset({"store_id", "currency_id", "document_date", "notes"})

# Set only through approve()
_PROTECTED_LINE_FIELDS = frozenset({"line_id", "approved_quantity"})


@dataclass(frozen=True)
class EditOutcome:
    """An edited document plus advisory warnings (never blocking)."""

    document: ReconciliationDocument
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class DocumentPreview:
    """Derived values of a document at one moment."""

    document_id: UUID
    exchange_rate: Decimal | Unavailable
    rate_frozen: bool
    lines: tuple[DerivedLine, ...]
    valuation: DocumentValuation
    decimal_places: int | None = None

    def display_totals(
        self,
        currency_code: str | None = None,
        decimal_places: int | None = None,
    ) -> dict[str, str]:
        """Document totals rounded for presentation.

        Precision comes from the argument, then the configured display
        places, then the currency table.
        """
        places = decimal_places if decimal_places is not None else self.decimal_places

        def fmt(value: Decimal | Unavailable) -> str:
            if value is UNAVAILABLE:
                return "unavailable"
            return str(round_for_display(value, currency_code, places))

        return {
            "total_value": fmt(self.valuation.total_value),
            "total_equivalent_value": fmt(self.valuation.total_equivalent_value),
        }


class DocumentLifecycle:
    """Edits and transitions for Physical Inventory and Stock Adjustment documents."""

    def __init__(
        self,
        config: ReconciliationConfigSet | None = None,
        clock: Clock | None = None,
        reference_numbers: ReferenceNumberGenerator | None = None,
        workflow_executor: WorkflowExecutor | None = None,
    ):
        self._config = config or get_active_config()
        self._clock = clock or SystemClock()
        self._references = reference_numbers or ReferenceNumberGenerator(
            self._config.reference_numbers
        )
        self._executor = workflow_executor or WorkflowExecutor()
        self._policies: dict[DocumentType, ReconciliationPolicy] = {
            t: policy_for(t, self._config.module_config(t)) for t in DocumentType
        }

    @property
    def config(self) -> ReconciliationConfigSet:
        return self._config

    def policy(self, document_type: DocumentType | str) -> ReconciliationPolicy:
        return self._policies[DocumentType(document_type)]

    def available_actions(self, document: ReconciliationDocument) -> tuple[str, ...]:
        workflow = self.policy(document.document_type).workflow
        return workflow.actions_from(document.status.value)

    # ------------------------------------------------------------------
    # Creation and editing
    # ------------------------------------------------------------------

    def create(
        self,
        document_type: DocumentType | str,
        *,
        store_id: str,
        currency_id: str,
        document_date: date,
        actor_id: UUID,
        header: DocumentHeader | Mapping[str, Any] | None = None,
        lines: Iterable[ReconciliationLine] = (),
        notes: str | None = None,
    ) -> ReconciliationDocument:
        policy = self.policy(document_type)
        document = ReconciliationDocument(
            document_type=policy.document_type,
            store_id=store_id,
            currency_id=currency_id,
            document_date=document_date,
            header=self._coerce_header(policy, header),
            created=self._stamp(actor_id),
            lines=tuple(lines),
            notes=notes,
        )
        for index, line in enumerate(document.lines):
            policy.validate_line(line, index)

        logger.info(
            "document_created",
            extra={
                "document_id": str(document.id),
                "document_type": document.document_type.value,
                "line_count": len(document.lines),
            },
        )
        return document

    def update_header(
        self,
        document: ReconciliationDocument,
        actor_id: UUID,
        **changes: Any,
    ) -> ReconciliationDocument:
        """Change document-level fields and/or type-specific header fields."""
        self._require_editable(document)
        policy = self.policy(document.document_type)

        document_changes = {k: v for k, v in changes.items() if k in DOCUMENT_LEVEL_FIELDS}
        header_changes = {k: v for k, v in changes.items() if k not in DOCUMENT_LEVEL_FIELDS}
        header_fields = {f.name for f in fields(policy.header_type)}
        unknown = set(header_changes) - header_fields
        if unknown:
            raise ValidationError(
                f"Unknown header fields: {sorted(unknown)}", field=sorted(unknown)[0]
            )
        header = (
            replace(document.header, **header_changes) if header_changes else document.header
        )
        return self._edited(document, actor_id, header=header, **document_changes)

    def add_line(
        self,
        document: ReconciliationDocument,
        actor_id: UUID,
        *,
        product_id: str,
        target_quantity: Any,
        unit_cost: Any = Decimal("0"),
        baseline_quantity: Any = None,
        stock_lookup: ProductStockLookup | None = None,
        serial_numbers: Iterable[str] = (),
        batch_number: str | None = None,
        expiry_date: date | None = None,
        notes: str | None = None,
        unit_average_cost: Any = None,
    ) -> EditOutcome:
        """Append a line; the baseline comes from ``stock_lookup`` when omitted."""
        self._require_editable(document)
        line = ReconciliationLine(
            product_id=product_id,
            baseline_quantity=self.resolve_baseline(
                document, product_id, baseline_quantity, stock_lookup
            ),
            target_quantity=target_quantity,
            unit_cost=unit_cost,
            serial_numbers=tuple(serial_numbers),
            batch_number=batch_number,
            expiry_date=expiry_date,
            notes=notes,
            unit_average_cost=unit_average_cost,
        )
        updated = self.append_lines(document, actor_id, (line,))
        return EditOutcome(updated, self.edit_warnings(updated, len(updated.lines) - 1))

    def append_lines(
        self,
        document: ReconciliationDocument,
        actor_id: UUID,
        lines: Iterable[ReconciliationLine],
    ) -> ReconciliationDocument:
        """Append already-built lines in one change."""
        self._require_editable(document)
        policy = self.policy(document.document_type)
        new_lines = tuple(lines)
        offset = len(document.lines)
        for i, line in enumerate(new_lines):
            policy.validate_line(line, offset + i)
        if not new_lines:
            return document
        logger.info(
            "document_lines_added",
            extra={"document_id": str(document.id), "added": len(new_lines)},
        )
        return self._edited(document, actor_id, lines=document.lines + new_lines)

    def update_line(
        self,
        document: ReconciliationDocument,
        actor_id: UUID,
        line_id: UUID,
        **changes: Any,
    ) -> EditOutcome:
        self._require_editable(document)
        protected = set(changes) & _PROTECTED_LINE_FIELDS
        if protected:
            raise ValidationError(
                f"Fields cannot be edited: {sorted(protected)}",
                field=sorted(protected)[0],
            )
        index = self._line_index(document, line_id)
        try:
            line = replace(document.lines[index], **changes)
        except TypeError as e:
            raise ValidationError(f"Invalid line change: {e}", line_index=index) from e
        self.policy(document.document_type).validate_line(line, index)

        lines = document.lines[:index] + (line,) + document.lines[index + 1:]
        updated = self._edited(document, actor_id, lines=lines)
        return EditOutcome(updated, self.edit_warnings(updated, index))

    def remove_line(
        self,
        document: ReconciliationDocument,
        actor_id: UUID,
        line_id: UUID,
    ) -> ReconciliationDocument:
        self._require_editable(document)
        index = self._line_index(document, line_id)
        lines = document.lines[:index] + document.lines[index + 1:]
        return self._edited(document, actor_id, lines=lines)

    def resolve_baseline(
        self,
        document: ReconciliationDocument,
        product_id: str,
        baseline_quantity: Any,
        stock_lookup: ProductStockLookup | None,
    ) -> Decimal:
        if baseline_quantity is not None:
            return to_decimal(baseline_quantity, "baseline_quantity")
        level = (
            stock_lookup.get_stock_level(product_id, document.store_id)
            if stock_lookup is not None
            else None
        )
        if level is None:
            raise ValidationError(
                f"Stock level of product {product_id!r} in store "
                f"{document.store_id!r} is unknown",
                field="baseline_quantity",
            )
        return to_decimal(level, "baseline_quantity")

    def check_serial(
        self,
        document: ReconciliationDocument,
        line_index: int,
        serial_index: int,
        value: str,
    ) -> SerialStatus:
        """Advisory edit-time check of one serial cell."""
        return validate_serial(document.line_serials, line_index, serial_index, value)

    def edit_warnings(
        self, document: ReconciliationDocument, line_index: int
    ) -> tuple[str, ...]:
        """Duplicate serials and over-deductions on one line."""
        line = document.lines[line_index]
        warnings: list[str] = []
        for serial_index, serial in enumerate(line.serial_numbers):
            status = validate_serial(document.line_serials, line_index, serial_index, serial)
            if status is SerialStatus.DUPLICATE:
                warnings.append(
                    f"Serial number {serial.strip()!r} on item {line_index + 1} "
                    "is already used in this document"
                )
        derived = self.policy(document.document_type).derive_line(
            line, document.header, UNAVAILABLE
        )
        warnings.extend(w.message for w in derived.warnings)
        return tuple(warnings)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def preview(
        self,
        document: ReconciliationDocument,
        default_currency_id: str | None = None,
        rate_table: RateTable = (),
    ) -> DocumentPreview:
        """
        Derived lines and totals.

        A frozen rate is always used once set; otherwise the rate is
        resolved from the supplied table on every call.
        """
        policy = self.policy(document.document_type)
        if document.exchange_rate is not None:
            rate: Decimal | Unavailable = document.exchange_rate
        elif default_currency_id is not None:
            rate = resolve_exchange_rate(document.currency_id, default_currency_id, rate_table)
        else:
            rate = UNAVAILABLE
        derived = policy.derive_lines(document, rate)
        return DocumentPreview(
            document_id=document.id,
            exchange_rate=rate,
            rate_frozen=document.exchange_rate is not None,
            lines=derived,
            valuation=policy.value_document(document, rate),
            decimal_places=self._config.display_decimal_places,
        )

    def movements(self, document: ReconciliationDocument) -> tuple[StockMovement, ...]:
        return self.policy(document.document_type).build_movements(document)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def submit(
        self,
        document: ReconciliationDocument,
        actor_id: UUID,
        *,
        default_currency_id: str,
        rate_table: RateTable,
        reasons: ReferenceDirectory | None = None,
    ) -> ReconciliationDocument:
        return self._submit(document, actor_id, "submit", default_currency_id, rate_table, reasons)

    def resubmit(
        self,
        document: ReconciliationDocument,
        actor_id: UUID,
        *,
        default_currency_id: str,
        rate_table: RateTable,
        reasons: ReferenceDirectory | None = None,
    ) -> ReconciliationDocument:
        """Submit a rejected document again as its next revision."""
        return self._submit(document, actor_id, "resubmit", default_currency_id, rate_table, reasons)

    def approve(
        self,
        document: ReconciliationDocument,
        actor_id: UUID,
        approved_quantities: Mapping[UUID, Any] | None = None,
        notes: str | None = None,
    ) -> ReconciliationDocument:
        """Approve, optionally lowering per-line quantities."""
        self._require_action(document, "approve")
        lines = self._apply_approved_quantities(document, approved_quantities or {})
        candidate = replace(document, lines=lines)
        policy = self.policy(document.document_type)
        self._transition(candidate, "approve", {"policy": policy, "document": candidate})

        stamp = self._stamp(actor_id)
        approved = document.evolve(
            lines=lines,
            status=DocumentStatus.APPROVED,
            approved=stamp,
            updated=stamp,
            approval_notes=notes,
        )
        self._log_transition("document_approved", approved, actor_id)
        return approved

    def reject(
        self,
        document: ReconciliationDocument,
        actor_id: UUID,
        reason: str,
    ) -> ReconciliationDocument:
        self._transition(document, "reject", {"reason": reason})
        stamp = self._stamp(actor_id)
        rejected = document.evolve(
            status=DocumentStatus.REJECTED,
            rejected=stamp,
            updated=stamp,
            rejection_reason=reason.strip(),
        )
        self._log_transition("document_rejected", rejected, actor_id)
        return rejected

    def return_for_correction(
        self,
        document: ReconciliationDocument,
        actor_id: UUID,
        reason: str,
    ) -> ReconciliationDocument:
        """Send back for editing; the rate and approval overrides are released."""
        self._transition(document, "return_for_correction", {"reason": reason})
        stamp = self._stamp(actor_id)
        returned = document.evolve(
            status=DocumentStatus.RETURNED_FOR_CORRECTION,
            returned=stamp,
            updated=stamp,
            return_reason=reason.strip(),
            exchange_rate=None,
            lines=self._clear_approvals(document.lines),
        )
        self._log_transition("document_returned", returned, actor_id)
        return returned

    def reopen(self, document: ReconciliationDocument, actor_id: UUID) -> ReconciliationDocument:
        """Move a returned document back to draft."""
        self._transition(document, "reopen")
        reopened = document.evolve(
            status=DocumentStatus.DRAFT,
            updated=self._stamp(actor_id),
        )
        self._log_transition("document_reopened", reopened, actor_id)
        return reopened

    def revise(self, document: ReconciliationDocument, actor_id: UUID) -> ReconciliationDocument:
        """Open a rejected document as a new draft revision."""
        self._transition(document, "revise")
        revised = document.evolve(
            status=DocumentStatus.DRAFT,
            updated=self._stamp(actor_id),
            exchange_rate=None,
            lines=self._clear_approvals(document.lines),
            revision=document.revision + 1,
        )
        self._log_transition("document_revised", revised, actor_id)
        return revised

    def accept_variance(
        self,
        document: ReconciliationDocument,
        actor_id: UUID,
        notes: str | None = None,
    ) -> ReconciliationDocument:
        """Record the net value of an approved count; quantities are untouched."""
        policy = self.policy(document.document_type)
        self._transition(document, "accept_variance")
        stamp = self._stamp(actor_id)
        accepted = document.evolve(
            status=DocumentStatus.VARIANCE_ACCEPTED,
            variance_accepted=stamp,
            updated=stamp,
            variance=policy.summarize_variance(document),
            variance_notes=notes,
        )
        self._log_transition("document_variance_accepted", accepted, actor_id)
        return accepted

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _submit(
        self,
        document: ReconciliationDocument,
        actor_id: UUID,
        action: str,
        default_currency_id: str,
        rate_table: RateTable,
        reasons: ReferenceDirectory | None,
    ) -> ReconciliationDocument:
        policy = self.policy(document.document_type)
        result = self._transition(
            document,
            action,
            {"policy": policy, "document": document, "reasons": reasons},
        )

        rate = document.exchange_rate
        if result.transition.freezes_rate:
            rate = require_exchange_rate(document.currency_id, default_currency_id, rate_table)

        reference_number = document.reference_number
        if reference_number == PENDING_REFERENCE:
            reference_number = self._references.next_reference(
                policy.config.reference_prefix, self._clock.today()
            )

        stamp = self._stamp(actor_id)
        submitted = document.evolve(
            status=DocumentStatus.SUBMITTED,
            exchange_rate=rate,
            reference_number=reference_number,
            submitted=stamp,
            updated=stamp,
            revision=document.revision + (1 if action == "resubmit" else 0),
        )
        self._log_transition(
            "document_submitted",
            submitted,
            actor_id,
            exchange_rate=str(rate),
            reference_number=reference_number,
        )
        return submitted

    def _transition(
        self,
        document: ReconciliationDocument,
        action: str,
        context: Mapping[str, Any] | None = None,
    ) -> TransitionResult:
        workflow = self.policy(document.document_type).workflow
        with LogContext.bind(
            document_id=str(document.id),
            document_type=document.document_type.value,
            reference_number=(
                None if document.reference_number == PENDING_REFERENCE else document.reference_number
            ),
        ):
            return self._executor.execute_transition(
                workflow, document.id, document.status.value, action, context
            )

    def _apply_approved_quantities(
        self,
        document: ReconciliationDocument,
        approved_quantities: Mapping[UUID, Any],
    ) -> tuple[ReconciliationLine, ...]:
        known = {line.line_id for line in document.lines}
        unknown = [line_id for line_id in approved_quantities if line_id not in known]
        if unknown:
            raise ValidationError(
                f"Approved quantity given for unknown line {unknown[0]}",
                field="approved_quantity",
            )
        return tuple(
            replace(
                line,
                approved_quantity=to_decimal(
                    approved_quantities[line.line_id], "approved_quantity"
                ),
            )
            if line.line_id in approved_quantities
            else line
            for line in document.lines
        )

    @staticmethod
    def _clear_approvals(
        lines: tuple[ReconciliationLine, ...],
    ) -> tuple[ReconciliationLine, ...]:
        return tuple(
            replace(line, approved_quantity=None) if line.approved_quantity is not None else line
            for line in lines
        )

    def _require_editable(self, document: ReconciliationDocument) -> None:
        workflow = self.policy(document.document_type).workflow
        if not workflow.is_editable(document.status.value):
            raise InvalidStateTransitionError(str(document.id), document.status.value, "edit")

    def _require_action(self, document: ReconciliationDocument, action: str) -> None:
        """Fail on an illegal action before any input is examined."""
        workflow = self.policy(document.document_type).workflow
        if workflow.find_transition(document.status.value, action) is None:
            raise InvalidStateTransitionError(str(document.id), document.status.value, action)

    @staticmethod
    def _line_index(document: ReconciliationDocument, line_id: UUID) -> int:
        try:
            return document.line_index(line_id)
        except KeyError as e:
            raise ValidationError(
                f"Line {line_id} is not on this document", field="line_id"
            ) from e

    def _edited(
        self,
        document: ReconciliationDocument,
        actor_id: UUID,
        **changes: Any,
    ) -> ReconciliationDocument:
        return document.evolve(updated=self._stamp(actor_id), **changes)

    def _stamp(self, actor_id: UUID) -> AuditStamp:
        return AuditStamp(actor_id=actor_id, at=self._clock.now())

    @staticmethod
    def _coerce_header(
        policy: ReconciliationPolicy,
        header: DocumentHeader | Mapping[str, Any] | None,
    ) -> DocumentHeader:
        if header is None:
            return policy.header_type()
        if isinstance(header, Mapping):
            return policy.header_type.from_dict(dict(header))
        if not isinstance(header, policy.header_type):
            raise ValidationError(
                f"{policy.document_type.value} requires a "
                f"{policy.header_type.__name__}, got {type(header).__name__}",
                field="header",
            )
        return header

    @staticmethod
    def _log_transition(
        event: str,
        document: ReconciliationDocument,
        actor_id: UUID,
        **extra: Any,
    ) -> None:
        logger.info(
            event,
            extra={
                "document_id": str(document.id),
                "document_type": document.document_type.value,
                "status": document.status.value,
                "version": document.version,
                "revision": document.revision,
                "actor_id": str(actor_id),
                **extra,
            },
        )
