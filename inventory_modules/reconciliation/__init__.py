"""
Reconciliation (``inventory_modules.reconciliation``).

The document aggregate, line models, shared guards, configuration base and
policy interface used by both reconciliation document types.
"""

from inventory_modules.reconciliation.config import ReconciliationModuleConfig
from inventory_modules.reconciliation.models import (
    EDITABLE_STATUSES,
    PENDING_REFERENCE,
    AuditStamp,
    DerivedLine,
    DocumentHeader,
    DocumentStatus,
    DocumentType,
    MovementDirection,
    ReconciliationDocument,
    ReconciliationLine,
    StockMovement,
)
from inventory_modules.reconciliation.policy import ReconciliationPolicy

__all__ = [
    "ReconciliationModuleConfig",
    "EDITABLE_STATUSES",
    "PENDING_REFERENCE",
    "AuditStamp",
    "DerivedLine",
    "DocumentHeader",
    "DocumentStatus",
    "DocumentType",
    "MovementDirection",
    "ReconciliationDocument",
    "ReconciliationLine",
    "StockMovement",
    "ReconciliationPolicy",
]
