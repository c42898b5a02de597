"""
ReconciliationDocumentService -- concurrent access to stored documents.

Responsibility:
    Loads a document, applies one DocumentLifecycle operation to it and
    stores the result.  Operations on the same document are serialized;
    operations on different documents run in parallel.

Architecture position:
    Services layer -- the outer entry point.  Composes a DocumentRepository,
    a DocumentLifecycle and a BulkImportService.

Invariants enforced:
    - Every mutating call names the status it expects the document to be
      in; a mismatch (for example an approve racing a reject) fails with
      ConcurrentModificationError and leaves the document untouched.
    - An optional ``expected_version`` pins the exact state the caller saw.
    - The repository write is version-checked, so a second process sharing
      the database cannot overwrite a newer state either.
    - Each mutation runs in one repository unit of work: a reference number
      allocated by a submit is stored with the submitted document or
      released with it.
    - ``preview`` and ``get`` take no lock and see a consistent snapshot
      (documents are immutable values).

Failure modes:
    - ConcurrentModificationError: status or version precondition failed.
    - DocumentNotFoundError: unknown id.
    - Anything the lifecycle raises, with nothing stored.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable, Iterator, Mapping
from contextlib import contextmanager
from datetime import date
from typing import Any, TypeVar
from uuid import UUID

from inventory_config import get_active_config
from inventory_engines.exchange import RateTable
from inventory_kernel.domain.directories import ProductStockLookup, ReferenceDirectory
from inventory_kernel.exceptions import ConcurrentModificationError
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_modules.reconciliation.models import (
    DocumentStatus,
    DocumentType,
    ReconciliationDocument,
    StockMovement,
)
from inventory_services.import_service import BulkImportService, ImportCandidate, ImportResult
from inventory_services.lifecycle import DocumentLifecycle, DocumentPreview, EditOutcome
from inventory_services.reference_numbers import ReferenceNumberGenerator
from inventory_services.repository import DocumentRepository

logger = get_logger("services.documents")

T = TypeVar("T")


class DocumentLockRegistry:
    """
    One lock per document id while the document is in use.

    Entries are reference-counted: the last holder (or waiter) to leave
    removes the lock, so the registry only holds documents currently being
    worked on.
    """

    def __init__(self) -> None:
        self._locks: dict[UUID, threading.Lock] = {}
        self._users: dict[UUID, int] = {}
        self._guard = threading.Lock()

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, document_id: UUID) -> Iterator[None]:
        with self._guard:
            lock = self._locks.get(document_id)
            if lock is None:
                lock = self._locks[document_id] = threading.Lock()
            self._users[document_id] = self._users.get(document_id, 0) + 1
        try:
            with lock:
                yield
        finally:
            with self._guard:
                self._users[document_id] -= 1
                if not self._users[document_id]:
                    del self._users[document_id]
                    del self._locks[document_id]


class ReconciliationDocumentService:
    """
    Serialized, precondition-checked operations on stored documents.

    Without a ``lifecycle`` the service builds one whose reference numbers
    come from ``repository.next_sequence``.  A lifecycle passed in keeps
    its own reference source.
    """

    def __init__(
        self,
        repository: DocumentRepository,
        lifecycle: DocumentLifecycle | None = None,
        locks: DocumentLockRegistry | None = None,
    ):
        self._repository = repository
        if lifecycle is None:
            config = get_active_config()
            lifecycle = DocumentLifecycle(
                config=config,
                reference_numbers=ReferenceNumberGenerator(
                    config.reference_numbers,
                    next_sequence=repository.next_sequence,
                ),
            )
        self._lifecycle = lifecycle
        self._importer = BulkImportService(lifecycle)
        self._locks = locks or DocumentLockRegistry()

    @property
    def lifecycle(self) -> DocumentLifecycle:
        return self._lifecycle

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, document_id: UUID) -> ReconciliationDocument:
        return self._repository.get(document_id)

    def preview(
        self,
        document_id: UUID,
        default_currency_id: str | None = None,
        rate_table: RateTable = (),
    ) -> DocumentPreview:
        document = self._repository.get(document_id)
        return self._lifecycle.preview(document, default_currency_id, rate_table)

    def movements(self, document_id: UUID) -> tuple[StockMovement, ...]:
        return self._lifecycle.movements(self._repository.get(document_id))

    # ------------------------------------------------------------------
    # Creation and edits
    # ------------------------------------------------------------------

    def create(
        self,
        document_type: DocumentType | str,
        *,
        store_id: str,
        currency_id: str,
        document_date: date,
        actor_id: UUID,
        header: Any = None,
        notes: str | None = None,
    ) -> ReconciliationDocument:
        document = self._lifecycle.create(
            document_type,
            store_id=store_id,
            currency_id=currency_id,
            document_date=document_date,
            actor_id=actor_id,
            header=header,
            notes=notes,
        )
        self._repository.add(document)
        return document

    def update_header(
        self,
        document_id: UUID,
        actor_id: UUID,
        *,
        expected_status: DocumentStatus | str,
        expected_version: int | None = None,
        **changes: Any,
    ) -> ReconciliationDocument:
        return self._mutate(
            document_id, expected_status, expected_version,
            lambda doc: self._lifecycle.update_header(doc, actor_id, **changes),
        )

    def add_line(
        self,
        document_id: UUID,
        actor_id: UUID,
        *,
        expected_status: DocumentStatus | str,
        expected_version: int | None = None,
        **line: Any,
    ) -> EditOutcome:
        return self._mutate(
            document_id, expected_status, expected_version,
            lambda doc: self._lifecycle.add_line(doc, actor_id, **line),
        )

    def update_line(
        self,
        document_id: UUID,
        actor_id: UUID,
        line_id: UUID,
        *,
        expected_status: DocumentStatus | str,
        expected_version: int | None = None,
        **changes: Any,
    ) -> EditOutcome:
        return self._mutate(
            document_id, expected_status, expected_version,
            lambda doc: self._lifecycle.update_line(doc, actor_id, line_id, **changes),
        )

    def remove_line(
        self,
        document_id: UUID,
        actor_id: UUID,
        line_id: UUID,
        *,
        expected_status: DocumentStatus | str,
        expected_version: int | None = None,
    ) -> ReconciliationDocument:
        return self._mutate(
            document_id, expected_status, expected_version,
            lambda doc: self._lifecycle.remove_line(doc, actor_id, line_id),
        )

    def import_lines(
        self,
        document_id: UUID,
        actor_id: UUID,
        candidates: Iterable[ImportCandidate | Mapping[str, Any]],
        *,
        expected_status: DocumentStatus | str,
        expected_version: int | None = None,
        stock_lookup: ProductStockLookup | None = None,
    ) -> ImportResult:
        return self._mutate(
            document_id, expected_status, expected_version,
            lambda doc: self._importer.merge(doc, candidates, actor_id, stock_lookup),
        )

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def submit(
        self,
        document_id: UUID,
        actor_id: UUID,
        *,
        expected_status: DocumentStatus | str,
        default_currency_id: str,
        rate_table: RateTable,
        reasons: ReferenceDirectory | None = None,
        expected_version: int | None = None,
    ) -> ReconciliationDocument:
        rates = tuple(rate_table)
        return self._mutate(
            document_id, expected_status, expected_version,
            lambda doc: self._lifecycle.submit(
                doc, actor_id,
                default_currency_id=default_currency_id,
                rate_table=rates,
                reasons=reasons,
            ),
        )

    def resubmit(
        self,
        document_id: UUID,
        actor_id: UUID,
        *,
        expected_status: DocumentStatus | str,
        default_currency_id: str,
        rate_table: RateTable,
        reasons: ReferenceDirectory | None = None,
        expected_version: int | None = None,
    ) -> ReconciliationDocument:
        rates = tuple(rate_table)
        return self._mutate(
            document_id, expected_status, expected_version,
            lambda doc: self._lifecycle.resubmit(
                doc, actor_id,
                default_currency_id=default_currency_id,
                rate_table=rates,
                reasons=reasons,
            ),
        )

    def approve(
        self,
        document_id: UUID,
        actor_id: UUID,
        *,
        expected_status: DocumentStatus | str,
        approved_quantities: Mapping[UUID, Any] | None = None,
        notes: str | None = None,
        expected_version: int | None = None,
    ) -> ReconciliationDocument:
        return self._mutate(
            document_id, expected_status, expected_version,
            lambda doc: self._lifecycle.approve(doc, actor_id, approved_quantities, notes),
        )

    def reject(
        self,
        document_id: UUID,
        actor_id: UUID,
        reason: str,
        *,
        expected_status: DocumentStatus | str,
        expected_version: int | None = None,
    ) -> ReconciliationDocument:
        return self._mutate(
            document_id, expected_status, expected_version,
            lambda doc: self._lifecycle.reject(doc, actor_id, reason),
        )

    def return_for_correction(
        self,
        document_id: UUID,
        actor_id: UUID,
        reason: str,
        *,
        expected_status: DocumentStatus | str,
        expected_version: int | None = None,
    ) -> ReconciliationDocument:
        return self._mutate(
            document_id, expected_status, expected_version,
            lambda doc: self._lifecycle.return_for_correction(doc, actor_id, reason),
        )

    def reopen(
        self,
        document_id: UUID,
        actor_id: UUID,
        *,
        expected_status: DocumentStatus | str,
        expected_version: int | None = None,
    ) -> ReconciliationDocument:
        return self._mutate(
            document_id, expected_status, expected_version,
            lambda doc: self._lifecycle.reopen(doc, actor_id),
        )

    def revise(
        self,
        document_id: UUID,
        actor_id: UUID,
        *,
        expected_status: DocumentStatus | str,
        expected_version: int | None = None,
    ) -> ReconciliationDocument:
        return self._mutate(
            document_id, expected_status, expected_version,
            lambda doc: self._lifecycle.revise(doc, actor_id),
        )

    def accept_variance(
        self,
        document_id: UUID,
        actor_id: UUID,
        *,
        expected_status: DocumentStatus | str,
        notes: str | None = None,
        expected_version: int | None = None,
    ) -> ReconciliationDocument:
        return self._mutate(
            document_id, expected_status, expected_version,
            lambda doc: self._lifecycle.accept_variance(doc, actor_id, notes),
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _mutate(
        self,
        document_id: UUID,
        expected_status: DocumentStatus | str,
        expected_version: int | None,
        operation: Callable[[ReconciliationDocument], T],
    ) -> T:
        expected_status = DocumentStatus(expected_status)
        unit = self._repository.unit_of_work()
        with self._locks.hold(document_id), unit, LogContext.bind(document_id=str(document_id)):
            current = self._repository.get(document_id)
            if current.status is not expected_status:
                logger.warning(
                    "document_status_precondition_failed",
                    extra={
                        "expected_status": expected_status.value,
                        "actual_status": current.status.value,
                    },
                )
                raise ConcurrentModificationError(
                    str(document_id), expected_status.value, current.status.value
                )
            if expected_version is not None and current.version != expected_version:
                raise ConcurrentModificationError(
                    str(document_id),
                    f"version {expected_version}",
                    f"version {current.version}",
                )

            result = operation(current)
            updated = result if isinstance(result, ReconciliationDocument) else result.document
            if updated is not current:
                self._repository.save(updated, expected_version=current.version)
            return result
