"""Services for reconciliation documents (write side)."""

from inventory_services.document_service import (
    DocumentLockRegistry,
    ReconciliationDocumentService,
)
from inventory_services.import_service import (
    BulkImportService,
    ImportCandidate,
    ImportIssue,
    ImportIssueCode,
    ImportResult,
)
from inventory_services.lifecycle import DocumentLifecycle, DocumentPreview, EditOutcome
from inventory_services.reference_numbers import ReferenceNumberGenerator
from inventory_services.repository import (
    DocumentRepository,
    InMemoryDocumentRepository,
    SqlDocumentRepository,
)
from inventory_services.workflow_executor import (
    GuardExecutor,
    TransitionResult,
    WorkflowExecutor,
)

__all__ = [
    "BulkImportService",
    "DocumentLifecycle",
    "DocumentLockRegistry",
    "DocumentPreview",
    "DocumentRepository",
    "EditOutcome",
    "GuardExecutor",
    "ImportCandidate",
    "ImportIssue",
    "ImportIssueCode",
    "ImportResult",
    "InMemoryDocumentRepository",
    "ReconciliationDocumentService",
    "ReferenceNumberGenerator",
    "SqlDocumentRepository",
    "TransitionResult",
    "WorkflowExecutor",
]
