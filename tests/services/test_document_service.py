"""
Tests for ReconciliationDocumentService (single-threaded behaviour).

Covers:
- Create, edit, submit, approve through stored documents
- expected_status / expected_version preconditions
- Failed operations leave the stored document untouched
- Reference numbers shared by services on one store
- Per-document locks released once no caller holds them
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from inventory_kernel.exceptions import (
    ConcurrentModificationError,
    DocumentNotFoundError,
    ValidationError,
)
from inventory_modules.reconciliation.models import DocumentStatus, DocumentType
from inventory_services import (
    DocumentLifecycle,
    DocumentLockRegistry,
    ImportCandidate,
    InMemoryDocumentRepository,
    ReconciliationDocumentService,
    ReferenceNumberGenerator,
    SqlDocumentRepository,
)
from tests.builders import EUR, STORE_ID, USD, pi_header

DRAFT = DocumentStatus.DRAFT
SUBMITTED = DocumentStatus.SUBMITTED


@pytest.fixture
def repository():
    return InMemoryDocumentRepository()


@pytest.fixture
def service(repository, lifecycle):
    return ReconciliationDocumentService(repository, lifecycle)


@pytest.fixture
def create(service, actor_id):
    def _create(currency_id=EUR):
        return service.create(
            DocumentType.PHYSICAL_INVENTORY,
            store_id=STORE_ID,
            currency_id=currency_id,
            document_date=date(2024, 1, 1),
            actor_id=actor_id,
            header=pi_header(),
        )

    return _create


@pytest.fixture
def with_line(service, create, actor_id, directory):
    document = create()
    service.add_line(
        document.id, actor_id, expected_status=DRAFT,
        product_id="widget", target_quantity="12", unit_cost="2.50", stock_lookup=directory,
    )
    return document.id


class TestFlow:
    def test_create_stores_document(self, service, repository, create):
        document = create()

        assert service.get(document.id) == document
        assert len(repository) == 1

    def test_edit_submit_approve(self, service, with_line, actor_id, approver_id, rate_table, directory):
        submitted = service.submit(
            with_line, actor_id, expected_status=DRAFT,
            default_currency_id=USD, rate_table=rate_table, reasons=directory,
        )
        approved = service.approve(with_line, approver_id, expected_status=SUBMITTED)

        assert submitted.reference_number == "PI-20240101-0001"
        assert service.get(with_line) == approved
        (movement,) = service.movements(with_line)
        assert movement.quantity == Decimal("2")

    def test_preview_by_id(self, service, with_line, rate_table):
        preview = service.preview(with_line, USD, rate_table)

        assert preview.valuation.total_equivalent_value == Decimal("33.0000")
        assert preview.rate_frozen is False

    def test_edit_outcome_returned(self, service, with_line, actor_id):
        outcome = service.add_line(
            with_line, actor_id, expected_status=DRAFT,
            product_id="gadget", target_quantity=1, baseline_quantity=4,
        )

        assert len(outcome.document.lines) == 2
        assert service.get(with_line) == outcome.document

    def test_import_lines(self, service, with_line, actor_id, directory):
        result = service.import_lines(
            with_line, actor_id,
            [ImportCandidate("gadget", "5"), ImportCandidate("widget", "1")],
            expected_status=DRAFT, stock_lookup=directory,
        )

        assert len(result.issues) == 1
        assert len(service.get(with_line).lines) == 2

    def test_return_reopen_revise_path(self, service, with_line, actor_id, approver_id, rate_table):
        service.submit(with_line, actor_id, expected_status=DRAFT, default_currency_id=USD, rate_table=rate_table)
        service.return_for_correction(with_line, approver_id, "Recount", expected_status=SUBMITTED)
        service.reopen(with_line, actor_id, expected_status=DocumentStatus.RETURNED_FOR_CORRECTION)
        service.submit(with_line, actor_id, expected_status=DRAFT, default_currency_id=USD, rate_table=rate_table)
        service.reject(with_line, approver_id, "Wrong date", expected_status=SUBMITTED)
        service.revise(with_line, actor_id, expected_status=DocumentStatus.REJECTED)
        service.update_header(with_line, actor_id, expected_status=DRAFT, document_date=date(2024, 1, 2))
        resubmitted = service.submit(
            with_line, actor_id, expected_status=DRAFT, default_currency_id=USD, rate_table=rate_table
        )

        assert resubmitted.revision == 2
        assert resubmitted.reference_number == "PI-20240101-0001"
        assert resubmitted.document_date == date(2024, 1, 2)

    def test_accept_variance(self, service, with_line, actor_id, approver_id, rate_table):
        service.submit(with_line, actor_id, expected_status=DRAFT, default_currency_id=USD, rate_table=rate_table)
        service.approve(with_line, approver_id, expected_status=SUBMITTED)

        accepted = service.accept_variance(
            with_line, approver_id, expected_status=DocumentStatus.APPROVED, notes="ok"
        )

        assert accepted.variance.total_delta_value == Decimal("5.00")

    def test_unknown_document(self, service, actor_id):
        with pytest.raises(DocumentNotFoundError):
            service.reopen(uuid4(), actor_id, expected_status=DRAFT)


class TestPreconditions:
    def test_status_mismatch(self, service, with_line, approver_id, captured_logs):
        with pytest.raises(ConcurrentModificationError) as exc_info:
            service.approve(with_line, approver_id, expected_status=SUBMITTED)

        assert exc_info.value.expected == "submitted"
        assert exc_info.value.actual == "draft"
        assert any(
            r["message"] == "document_status_precondition_failed" for r in captured_logs()
        )

    def test_status_given_as_string(self, service, with_line, actor_id):
        document = service.update_header(with_line, actor_id, expected_status="draft", notes="x")

        assert document.notes == "x"

    def test_version_mismatch(self, service, with_line, actor_id):
        stale = service.get(with_line).version - 1

        with pytest.raises(ConcurrentModificationError):
            service.update_header(
                with_line, actor_id, expected_status=DRAFT, expected_version=stale, notes="x"
            )

    def test_version_match(self, service, with_line, actor_id):
        current = service.get(with_line).version

        document = service.update_header(
            with_line, actor_id, expected_status=DRAFT, expected_version=current, notes="x"
        )

        assert document.version == current + 1

    def test_failed_operation_stores_nothing(self, service, create, actor_id, rate_table):
        document = create()

        with pytest.raises(ValidationError):
            service.submit(
                document.id, actor_id, expected_status=DRAFT,
                default_currency_id=USD, rate_table=rate_table,
            )

        assert service.get(document.id) == document

    def test_unchanged_result_not_saved(self, service, repository, create, actor_id):
        document = create()

        result = service.import_lines(document.id, actor_id, [], expected_status=DRAFT)

        assert result.document is document
        assert repository.get(document.id).version == document.version


class TestSharedStore:
    @pytest.fixture
    def submit_new(self, actor_id):
        def _submit_new(service):
            document = service.create(
                DocumentType.PHYSICAL_INVENTORY, store_id=STORE_ID, currency_id=USD,
                document_date=date(2024, 1, 1), actor_id=actor_id, header=pi_header(),
            )
            service.add_line(
                document.id, actor_id, expected_status=DRAFT,
                product_id="widget", target_quantity=3, baseline_quantity=1,
            )
            return service.submit(
                document.id, actor_id, expected_status=DRAFT, default_currency_id=USD, rate_table=()
            ).reference_number

        return _submit_new

    def test_services_on_one_database_issue_distinct_references(self, session_factory, submit_new):
        first = ReconciliationDocumentService(SqlDocumentRepository(session_factory))
        second = ReconciliationDocumentService(SqlDocumentRepository(session_factory))

        references = [submit_new(first), submit_new(second), submit_new(first)]

        assert len(set(references)) == 3
        assert [r.rsplit("-", 1)[1] for r in references] == ["0001", "0002", "0003"]

    def test_services_on_one_repository_issue_distinct_references(self, repository, submit_new):
        first = ReconciliationDocumentService(repository)
        second = ReconciliationDocumentService(repository)

        references = [submit_new(first), submit_new(second), submit_new(first)]

        assert len(set(references)) == 3

    def test_lifecycle_built_on_repository_sequences(
        self, repository, config_set, clock, submit_new
    ):
        def service():
            lifecycle = DocumentLifecycle(
                config=config_set,
                clock=clock,
                reference_numbers=ReferenceNumberGenerator(
                    config_set.reference_numbers, next_sequence=repository.next_sequence
                ),
            )
            return ReconciliationDocumentService(repository, lifecycle)

        references = [submit_new(service()), submit_new(service())]

        assert references == ["PI-20240101-0001", "PI-20240101-0002"]


class TestLockRegistry:
    def test_released_locks_are_dropped(self, repository, lifecycle, actor_id):
        locks = DocumentLockRegistry()
        service = ReconciliationDocumentService(repository, lifecycle, locks)

        for _ in range(50):
            document = service.create(
                DocumentType.PHYSICAL_INVENTORY, store_id=STORE_ID, currency_id=USD,
                document_date=date(2024, 1, 1), actor_id=actor_id, header=pi_header(),
            )
            service.update_header(document.id, actor_id, expected_status=DRAFT, notes="counted")

        assert len(locks) == 0

    def test_lock_dropped_after_failure(self, service, create, actor_id):
        document = create()

        with pytest.raises(ConcurrentModificationError):
            service.update_header(document.id, actor_id, expected_status=SUBMITTED, notes="x")

        assert len(service._locks) == 0

    def test_entry_kept_while_held(self):
        locks = DocumentLockRegistry()
        document_id = uuid4()

        with locks.hold(document_id):
            assert len(locks) == 1

        assert len(locks) == 0


class TestDefaultLifecycle:
    def test_default_lifecycle(self, repository, actor_id):
        service = ReconciliationDocumentService(repository)

        document = service.create(
            DocumentType.PHYSICAL_INVENTORY, store_id=STORE_ID, currency_id=USD,
            document_date=date(2024, 1, 1), actor_id=actor_id, header=pi_header(),
        )

        assert service.lifecycle.config.config_id == "default"
        assert service.get(document.id).status is DRAFT
