"""
Stock Adjustment Workflow.

Approval is terminal: an approved adjustment cannot be returned.
"""

from inventory_kernel.domain.workflow import Transition, Workflow
from inventory_kernel.logging_config import get_logger
from inventory_modules.reconciliation.workflows import (
    APPROVED,
    APPROVED_QUANTITIES_VALID,
    DRAFT,
    EDITABLE_STATES,
    REASON_PROVIDED,
    REJECTED,
    RETURNED_FOR_CORRECTION,
    SUBMISSION_COMPLETE,
    SUBMITTED,
)

logger = get_logger("modules.stock_adjustment.workflows")


STOCK_ADJUSTMENT_WORKFLOW = Workflow(
    name="stock_adjustment",
    description="Explicit add/deduct stock adjustment",
    initial_state=DRAFT,
    states=(
        DRAFT,
        SUBMITTED,
        APPROVED,
        REJECTED,
        RETURNED_FOR_CORRECTION,
    ),
    transitions=(
        Transition(DRAFT, SUBMITTED, action="submit", guard=SUBMISSION_COMPLETE, freezes_rate=True),
        Transition(RETURNED_FOR_CORRECTION, SUBMITTED, action="submit", guard=SUBMISSION_COMPLETE, freezes_rate=True),
        Transition(SUBMITTED, APPROVED, action="approve", guard=APPROVED_QUANTITIES_VALID, releases_movements=True),
        Transition(SUBMITTED, REJECTED, action="reject", guard=REASON_PROVIDED),
        Transition(SUBMITTED, RETURNED_FOR_CORRECTION, action="return_for_correction", guard=REASON_PROVIDED),
        Transition(RETURNED_FOR_CORRECTION, DRAFT, action="reopen"),
        Transition(REJECTED, SUBMITTED, action="resubmit", guard=SUBMISSION_COMPLETE, freezes_rate=True),
        Transition(REJECTED, DRAFT, action="revise"),
    ),
    terminal_states=(APPROVED,),
    editable_states=EDITABLE_STATES,
)

logger.info(
    "stock_adjustment_workflow_registered",
    extra={
        "workflow_name": STOCK_ADJUSTMENT_WORKFLOW.name,
        "state_count": len(STOCK_ADJUSTMENT_WORKFLOW.states),
        "transition_count": len(STOCK_ADJUSTMENT_WORKFLOW.transitions),
        "initial_state": STOCK_ADJUSTMENT_WORKFLOW.initial_state,
    },
)
