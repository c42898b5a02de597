"""
Reconciliation Workflow Guards.

Guards shared by the Physical Inventory and Stock Adjustment state
machines.  The evaluation logic lives in
``inventory_services.workflow_executor``; these are declarations only.
"""

from inventory_kernel.domain.workflow import Guard
from inventory_kernel.logging_config import get_logger
from inventory_modules.reconciliation.models import DocumentStatus

logger = get_logger("modules.reconciliation.workflows")

DRAFT = DocumentStatus.DRAFT.value
SUBMITTED = DocumentStatus.SUBMITTED.value
APPROVED = DocumentStatus.APPROVED.value
REJECTED = DocumentStatus.REJECTED.value
RETURNED_FOR_CORRECTION = DocumentStatus.RETURNED_FOR_CORRECTION.value
VARIANCE_ACCEPTED = DocumentStatus.VARIANCE_ACCEPTED.value

EDITABLE_STATES = (DRAFT, RETURNED_FOR_CORRECTION)


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

SUBMISSION_COMPLETE = Guard(
    name="submission_complete",
    description="At least one line, required header fields, reasons and unique serials",
)

APPROVED_QUANTITIES_VALID = Guard(
    name="approved_quantities_valid",
    description="Approved quantities are non-negative and do not exceed requested quantities",
)

REASON_PROVIDED = Guard(
    name="reason_provided",
    description="A non-empty reason text is recorded",
)

logger.info(
    "reconciliation_workflow_guards_defined",
    extra={
        "guards": [
            SUBMISSION_COMPLETE.name,
            APPROVED_QUANTITIES_VALID.name,
            REASON_PROVIDED.name,
        ],
    },
)
