"""
Tests for the document repositories.

Both implementations share one contract (get/add/save with version
compare-and-set, sequence allocation, unit of work); every contract test runs
against the in-memory repository and the SQLite-backed ORM repository.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError

from inventory_kernel.exceptions import (
    ConcurrentModificationError,
    DocumentNotFoundError,
    ValidationError,
)
from inventory_modules.reconciliation.models import DocumentStatus, DocumentType
from inventory_services.repository import InMemoryDocumentRepository, SqlDocumentRepository
from tests.builders import EUR, USD, build_document, make_line, sa_header


@pytest.fixture(params=["memory", "sql"])
def repository(request):
    if request.param == "memory":
        return InMemoryDocumentRepository()
    return SqlDocumentRepository(request.getfixturevalue("session_factory"))


@pytest.fixture
def draft(make_document):
    return make_document(
        currency_id=EUR,
        lines=[
            make_line(
                serial_numbers=("SN1", "SN2"),
                batch_number="B001",
                expiry_date=date(2025, 6, 30),
                unit_average_cost=Decimal("2.40"),
                notes="shelf 3",
            ),
            make_line("gadget", baseline="4", target="1", unit_cost="3"),
        ],
        notes="Quarterly count",
    )


class TestRoundTrip:
    def test_draft(self, repository, draft):
        repository.add(draft)

        assert repository.get(draft.id) == draft

    def test_line_values(self, repository, draft):
        repository.add(draft)

        widget, gadget = repository.get(draft.id).lines
        assert widget.serial_numbers == ("SN1", "SN2")
        assert widget.expiry_date == date(2025, 6, 30)
        assert widget.unit_average_cost == Decimal("2.40")
        assert widget.line_id == draft.lines[0].line_id
        assert gadget.unit_cost == Decimal("3")

    def test_full_lifecycle(self, repository, lifecycle, draft, actor_id, approver_id, rate_table):
        repository.add(draft)
        submitted = lifecycle.submit(draft, actor_id, default_currency_id=USD, rate_table=rate_table)
        repository.save(submitted, expected_version=draft.version)
        approved = lifecycle.approve(
            submitted, approver_id, {submitted.lines[1].line_id: "0"}, notes="ok"
        )
        repository.save(approved, expected_version=submitted.version)
        accepted = lifecycle.accept_variance(approved, approver_id)
        repository.save(accepted, expected_version=approved.version)

        loaded = repository.get(draft.id)

        assert loaded == accepted
        assert loaded.status is DocumentStatus.VARIANCE_ACCEPTED
        assert loaded.exchange_rate == Decimal("1.10")
        assert loaded.lines[1].approved_quantity == Decimal("0")
        assert loaded.variance == accepted.variance
        assert loaded.approved.actor_id == approver_id

    def test_stock_adjustment_header(self, repository, make_document):
        document = make_document(
            DocumentType.STOCK_ADJUSTMENT,
            lines=[make_line(target="2")],
            header=sa_header(source_document_type="damage_report", source_document_number="DR-7"),
        )
        repository.add(document)

        loaded = repository.get(document.id)

        assert loaded.header == document.header
        assert loaded.header.source_document_number == "DR-7"

    def test_removed_line_is_deleted(self, repository, lifecycle, draft, actor_id):
        repository.add(draft)
        edited = lifecycle.remove_line(draft, actor_id, draft.lines[0].line_id)

        repository.save(edited, expected_version=draft.version)

        assert [line.product_id for line in repository.get(draft.id).lines] == ["gadget"]

    def test_line_order_kept(self, repository, lifecycle, draft, actor_id):
        repository.add(draft)
        edited = lifecycle.add_line(
            draft, actor_id, product_id="gizmo", target_quantity=1, baseline_quantity=0
        ).document

        repository.save(edited, expected_version=draft.version)

        loaded = repository.get(draft.id)
        assert [line.product_id for line in loaded.lines] == ["widget", "gadget", "gizmo"]


class TestContract:
    def test_get_unknown(self, repository):
        with pytest.raises(DocumentNotFoundError):
            repository.get(uuid4())

    def test_add_twice(self, repository, draft):
        repository.add(draft)

        with pytest.raises(ValidationError) as exc_info:
            repository.add(draft)

        assert exc_info.value.field == "id"

    def test_save_unknown(self, repository, draft):
        with pytest.raises(DocumentNotFoundError):
            repository.save(draft, expected_version=1)

    def test_stale_save_refused(self, repository, lifecycle, draft, actor_id):
        repository.add(draft)
        first = lifecycle.update_header(draft, actor_id, notes="first")
        second = lifecycle.update_header(draft, actor_id, notes="second")
        repository.save(first, expected_version=draft.version)

        with pytest.raises(ConcurrentModificationError) as exc_info:
            repository.save(second, expected_version=draft.version)

        assert exc_info.value.expected == "version 1"
        assert exc_info.value.actual == "version 2"
        assert repository.get(draft.id).notes == "first"

    def test_next_sequence_per_key(self, repository):
        assert [repository.next_sequence("PI-20240101") for _ in range(3)] == [1, 2, 3]
        assert repository.next_sequence("SA-20240101") == 1

    def test_unit_of_work_groups_calls(self, repository, lifecycle, draft, actor_id):
        repository.add(draft)
        edited = lifecycle.update_header(draft, actor_id, notes="edited")

        with repository.unit_of_work():
            sequence = repository.next_sequence("PI-20240101")
            repository.save(edited, expected_version=draft.version)

        assert sequence == 1
        assert repository.get(draft.id).notes == "edited"


class TestSqlStore:
    def test_sequences_shared_between_repositories(self, session_factory):
        first = SqlDocumentRepository(session_factory)
        second = SqlDocumentRepository(session_factory)

        values = [
            first.next_sequence("PI-20240101"),
            second.next_sequence("PI-20240101"),
            first.next_sequence("PI-20240101"),
        ]

        assert values == [1, 2, 3]

    def test_failed_unit_of_work_returns_sequence(self, session_factory, lifecycle, draft, actor_id):
        repository = SqlDocumentRepository(session_factory)
        repository.add(draft)
        assert repository.next_sequence("PI-20240101") == 1
        edited = lifecycle.update_header(draft, actor_id, notes="lost")

        with pytest.raises(RuntimeError):
            with repository.unit_of_work():
                assert repository.next_sequence("PI-20240101") == 2
                repository.save(edited, expected_version=draft.version)
                raise RuntimeError("abort")

        assert repository.get(draft.id).notes == draft.notes
        assert repository.get(draft.id).version == draft.version
        assert repository.next_sequence("PI-20240101") == 2

    def test_issued_reference_number_is_unique(self, session_factory):
        repository = SqlDocumentRepository(session_factory)
        repository.add(build_document(reference_number="PI-20240101-0001", status=DocumentStatus.SUBMITTED))

        with pytest.raises(IntegrityError):
            repository.add(
                build_document(reference_number="PI-20240101-0001", status=DocumentStatus.SUBMITTED)
            )

    def test_pending_reference_shared(self, session_factory):
        repository = SqlDocumentRepository(session_factory)
        first, second = build_document(), build_document()

        repository.add(first)
        repository.add(second)

        assert repository.get(second.id).reference_number == "Pending"
