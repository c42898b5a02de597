"""
Bulk line import.

Merges candidate rows (typically parsed from a spreadsheet) into an
editable document.  Each row is checked on its own; good rows are added
in a single edit and bad rows come back as ``ImportIssue`` records
instead of aborting the whole import.  A row is flagged when it:

* repeats a product/batch already on the document or earlier in the batch
  (``DUPLICATE_LINE``),
* carries a serial already used on the document or earlier in the batch
  (``DUPLICATE_SERIAL``),
* has a malformed or negative number, a batch or serial that is not text
  or a number, or fails the line rules of the document type (``INVALID_VALUE``),
* names a product the stock lookup does not know (``UNKNOWN_PRODUCT``),
* has no baseline and no lookup to supply one (``MISSING_BASELINE``).
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from inventory_engines.serials import normalize_serial, parse_serial_numbers
from inventory_kernel.domain.directories import ProductStockLookup
from inventory_kernel.domain.values import to_decimal
from inventory_kernel.exceptions import ValidationError
from inventory_kernel.logging_config import get_logger
from inventory_modules.reconciliation.models import (
    ReconciliationDocument,
    ReconciliationLine,
)
from inventory_services.lifecycle import DocumentLifecycle

logger = get_logger("services.import")


class ImportIssueCode(str, Enum):
    DUPLICATE_LINE = "DUPLICATE_LINE"
    DUPLICATE_SERIAL = "DUPLICATE_SERIAL"
    INVALID_VALUE = "INVALID_VALUE"
    UNKNOWN_PRODUCT = "UNKNOWN_PRODUCT"
    MISSING_BASELINE = "MISSING_BASELINE"


@dataclass(frozen=True)
class ImportCandidate:
    """One raw row.  Values are converted when the row is merged."""

    product_id: str
    target_quantity: Any
    unit_cost: Any = "0"
    baseline_quantity: Any = None
    serial_numbers: str | Iterable[str] | None = None
    batch_number: str | int | None = None
    expiry_date: date | str | None = None
    notes: str | None = None
    unit_average_cost: Any = None

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> ImportCandidate:
        return cls(
            product_id=str(row.get("product_id") or "").strip(),
            target_quantity=row.get("target_quantity"),
            unit_cost=row.get("unit_cost", "0"),
            baseline_quantity=row.get("baseline_quantity"),
            serial_numbers=row.get("serial_numbers"),
            batch_number=row.get("batch_number"),
            expiry_date=row.get("expiry_date"),
            notes=row.get("notes"),
            unit_average_cost=row.get("unit_average_cost"),
        )


@dataclass(frozen=True)
class ImportIssue:
    row_index: int
    code: ImportIssueCode
    message: str
    field: str | None = None


@dataclass(frozen=True)
class ImportResult:
    document: ReconciliationDocument
    accepted: tuple[ReconciliationLine, ...] = ()
    issues: tuple[ImportIssue, ...] = field(default_factory=tuple)

    @property
    def has_issues(self) -> bool:
        return bool(self.issues)


class _RowRejected(Exception):
    def __init__(self, issue: ImportIssue):
        super().__init__(issue.message)
        self.issue = issue


def _line_key(product_id: str, batch_number: str | None) -> tuple[str, str | None]:
    batch = batch_number.strip() if batch_number else None
    return product_id, batch or None


def _to_text(value: Any, field_name: str) -> str | None:
    """Spreadsheet cells deliver codes like batch numbers as numbers."""
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (int, Decimal)) and not isinstance(value, bool):
        return str(value)
    raise ValidationError(
        f"{field_name} must be text, got {type(value).__name__}", field=field_name
    )


def _to_serials(value: Any) -> str | list[str] | None:
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, Iterable):
        return [_to_text(item, "serial_numbers") or "" for item in value]
    return _to_text(value, "serial_numbers")


def _to_date(value: Any) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if value is None or isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text)
    except ValueError as e:
        raise ValidationError(
            f"expiry_date must be a date (YYYY-MM-DD), got {value!r}", field="expiry_date"
        ) from e


class BulkImportService:
    """Partial-success merge of candidate rows into a document."""

    def __init__(self, lifecycle: DocumentLifecycle):
        self._lifecycle = lifecycle

    def merge(
        self,
        document: ReconciliationDocument,
        candidates: Iterable[ImportCandidate | Mapping[str, Any]],
        actor_id: UUID,
        stock_lookup: ProductStockLookup | None = None,
    ) -> ImportResult:
        """
        Validate each row and append the accepted ones in one edit.

        Rows are processed in order, so the first of two conflicting rows
        wins.  When nothing is accepted the document is returned unchanged.

        Raises:
            InvalidStateTransitionError: the document is not editable.
        """
        policy = self._lifecycle.policy(document.document_type)
        line_keys = {
            _line_key(line.product_id, line.batch_number) for line in document.lines
        }
        serials = {
            normalize_serial(s)
            for line in document.lines
            for s in line.serial_numbers
            if normalize_serial(s)
        }

        accepted: list[ReconciliationLine] = []
        issues: list[ImportIssue] = []
        for row_index, raw in enumerate(candidates):
            candidate = raw if isinstance(raw, ImportCandidate) else ImportCandidate.from_mapping(raw)
            try:
                line = self._build_line(document, candidate, row_index, stock_lookup)
                key = _line_key(line.product_id, line.batch_number)
                if key in line_keys:
                    raise _RowRejected(ImportIssue(
                        row_index,
                        ImportIssueCode.DUPLICATE_LINE,
                        f"Product {line.product_id!r} (batch {key[1]!r}) is already on the document",
                        "product_id",
                    ))
                row_serials = self._check_serials(line, row_index, serials)
                try:
                    policy.validate_line(line, len(document.lines) + len(accepted))
                except ValidationError as e:
                    raise _RowRejected(ImportIssue(
                        row_index, ImportIssueCode.INVALID_VALUE, e.message, e.field
                    )) from e
            except _RowRejected as rejected:
                issues.append(rejected.issue)
                continue

            line_keys.add(key)
            serials.update(row_serials)
            accepted.append(line)

        updated = self._lifecycle.append_lines(document, actor_id, accepted)
        logger.info(
            "bulk_import_merged",
            extra={
                "document_id": str(document.id),
                "accepted": len(accepted),
                "flagged": len(issues),
            },
        )
        return ImportResult(updated, tuple(accepted), tuple(issues))

    def _build_line(
        self,
        document: ReconciliationDocument,
        candidate: ImportCandidate,
        row_index: int,
        stock_lookup: ProductStockLookup | None,
    ) -> ReconciliationLine:
        product_id = (candidate.product_id or "").strip()
        if not product_id:
            raise _RowRejected(ImportIssue(
                row_index, ImportIssueCode.INVALID_VALUE, "Product is required", "product_id"
            ))

        if candidate.baseline_quantity is not None:
            baseline = candidate.baseline_quantity
        elif stock_lookup is None:
            raise _RowRejected(ImportIssue(
                row_index,
                ImportIssueCode.MISSING_BASELINE,
                f"No baseline quantity for product {product_id!r}",
                "baseline_quantity",
            ))
        else:
            baseline = stock_lookup.get_stock_level(product_id, document.store_id)
            if baseline is None:
                raise _RowRejected(ImportIssue(
                    row_index,
                    ImportIssueCode.UNKNOWN_PRODUCT,
                    f"Product {product_id!r} has no stock record in store {document.store_id!r}",
                    "product_id",
                ))

        try:
            return ReconciliationLine(
                product_id=product_id,
                baseline_quantity=to_decimal(baseline, "baseline_quantity"),
                target_quantity=to_decimal(candidate.target_quantity, "target_quantity"),
                unit_cost=to_decimal(candidate.unit_cost, "unit_cost"),
                serial_numbers=parse_serial_numbers(_to_serials(candidate.serial_numbers)),
                batch_number=_to_text(candidate.batch_number, "batch_number"),
                expiry_date=_to_date(candidate.expiry_date),
                notes=candidate.notes,
                unit_average_cost=candidate.unit_average_cost,
            )
        except ValidationError as e:
            raise _RowRejected(ImportIssue(
                row_index, ImportIssueCode.INVALID_VALUE, e.message, e.field
            )) from e

    @staticmethod
    def _check_serials(
        line: ReconciliationLine,
        row_index: int,
        taken: set[str],
    ) -> set[str]:
        row_serials: set[str] = set()
        for serial in line.serial_numbers:
            value = normalize_serial(serial)
            if not value:
                continue
            if value in taken or value in row_serials:
                raise _RowRejected(ImportIssue(
                    row_index,
                    ImportIssueCode.DUPLICATE_SERIAL,
                    f"Serial number {value!r} is already used",
                    "serial_numbers",
                ))
            row_serials.add(value)
        return row_serials
