"""
Document repositories -- versioned storage of reconciliation documents.

Responsibility:
    Load and store ReconciliationDocument aggregates and allocate the
    reference-number sequences for them.  ``save`` is a compare-and-set on
    ``version``: a write based on a stale read is refused with
    ConcurrentModificationError instead of silently overwriting the newer
    state.

Architecture position:
    Services layer -- imperative shell.  ``InMemoryDocumentRepository``
    serves tests and single-process embedding; ``SqlDocumentRepository``
    persists through the ORM models in
    ``inventory_modules.reconciliation.orm``.

Invariants enforced:
    - Calls made inside ``unit_of_work()`` share one transaction.  A
      sequence value allocated for a submit is committed together with the
      submitted document, or not at all.
    - Every repository sharing a store draws sequences from the same
      counters; two services never issue the same reference number.

Failure modes:
    - DocumentNotFoundError: unknown document id.
    - ConcurrentModificationError: stored version differs from the
      version the caller read.
    - ValidationError: ``add`` of an id that already exists.
    - IntegrityError (SQL only): a reference number already held by
      another stored document.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager
from typing import Protocol
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from inventory_kernel.db.sequence import SequenceService
from inventory_kernel.exceptions import (
    ConcurrentModificationError,
    DocumentNotFoundError,
    ValidationError,
)
from inventory_kernel.logging_config import get_logger
from inventory_modules.reconciliation.models import ReconciliationDocument
from inventory_modules.reconciliation.orm import ReconciliationDocumentModel
from inventory_services.reference_numbers import InMemorySequences

logger = get_logger("services.repository")


class DocumentRepository(Protocol):
    """Storage contract used by ReconciliationDocumentService."""

    def get(self, document_id: UUID) -> ReconciliationDocument:
        ...

    def add(self, document: ReconciliationDocument) -> None:
        ...

    def save(self, document: ReconciliationDocument, expected_version: int) -> None:
        """Replace the stored document if it is still at ``expected_version``."""
        ...

    def next_sequence(self, key: str) -> int:
        """Allocate the next reference sequence value under ``key``."""
        ...

    def unit_of_work(self) -> AbstractContextManager[None]:
        """Group the calls made inside the block into one transaction."""
        ...


def _version_conflict(document_id: UUID, expected: int, actual: int) -> ConcurrentModificationError:
    logger.warning(
        "document_version_conflict",
        extra={
            "document_id": str(document_id),
            "expected_version": expected,
            "actual_version": actual,
        },
    )
    return ConcurrentModificationError(
        str(document_id), f"version {expected}", f"version {actual}"
    )


class InMemoryDocumentRepository:
    """
    Thread-safe dict-backed repository.

    There is no rollback: a sequence value allocated by a submit that then
    fails stays used, leaving a gap.
    """

    def __init__(self) -> None:
        self._documents: dict[UUID, ReconciliationDocument] = {}
        self._sequences = InMemorySequences()
        self._lock = threading.Lock()

    def get(self, document_id: UUID) -> ReconciliationDocument:
        with self._lock:
            document = self._documents.get(document_id)
        if document is None:
            raise DocumentNotFoundError(str(document_id))
        return document

    def add(self, document: ReconciliationDocument) -> None:
        with self._lock:
            if document.id in self._documents:
                raise ValidationError(
                    f"Document {document.id} already exists", field="id"
                )
            self._documents[document.id] = document

    def save(self, document: ReconciliationDocument, expected_version: int) -> None:
        with self._lock:
            stored = self._documents.get(document.id)
            if stored is None:
                raise DocumentNotFoundError(str(document.id))
            if stored.version != expected_version:
                raise _version_conflict(document.id, expected_version, stored.version)
            self._documents[document.id] = document

    def next_sequence(self, key: str) -> int:
        return self._sequences.next_value(key)

    @contextmanager
    def unit_of_work(self) -> Iterator[None]:
        yield

    def __len__(self) -> int:
        return len(self._documents)


class SqlDocumentRepository:
    """
    ORM-backed repository.

    Outside ``unit_of_work()`` each call runs in its own session and
    transaction.  Inside it, the calls made by the current thread share
    one session, committed when the block exits cleanly.  ``save`` locks
    the document row (``SELECT ... FOR UPDATE``) before comparing
    versions, and ``next_sequence`` locks the counter row, so writers in
    other processes serialize on the database.
    """

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory
        self._local = threading.local()

    @contextmanager
    def unit_of_work(self) -> Iterator[None]:
        if getattr(self._local, "session", None) is not None:
            yield
            return
        with self._session_factory() as session:
            self._local.session = session
            try:
                yield
                session.commit()
            except Exception:
                session.rollback()
                raise
            finally:
                self._local.session = None

    @contextmanager
    def _session(self) -> Iterator[Session]:
        with self.unit_of_work():
            yield self._local.session

    def get(self, document_id: UUID) -> ReconciliationDocument:
        with self._session() as session:
            model = session.get(ReconciliationDocumentModel, document_id)
            if model is None:
                raise DocumentNotFoundError(str(document_id))
            return model.to_dto()

    def add(self, document: ReconciliationDocument) -> None:
        with self._session() as session:
            if session.get(ReconciliationDocumentModel, document.id) is not None:
                raise ValidationError(
                    f"Document {document.id} already exists", field="id"
                )
            session.add(ReconciliationDocumentModel.from_dto(document))
            session.flush()
        logger.debug(
            "document_stored",
            extra={"document_id": str(document.id), "version": document.version},
        )

    def save(self, document: ReconciliationDocument, expected_version: int) -> None:
        with self._session() as session:
            model = session.execute(
                select(ReconciliationDocumentModel)
                .where(ReconciliationDocumentModel.id == document.id)
                .with_for_update()
                .execution_options(populate_existing=True)
            ).scalar_one_or_none()
            if model is None:
                raise DocumentNotFoundError(str(document.id))
            if model.version != expected_version:
                raise _version_conflict(document.id, expected_version, model.version)
            model.apply_dto(document)
            session.flush()
        logger.debug(
            "document_stored",
            extra={"document_id": str(document.id), "version": document.version},
        )

    def next_sequence(self, key: str) -> int:
        with self._session() as session:
            return SequenceService(session).next_value(key)
