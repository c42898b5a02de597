"""
Physical Inventory Workflow.

A count may be returned for correction even after approval, and an
approved count ends with variance acceptance.
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
    VARIANCE_ACCEPTED,
)

logger = get_logger("modules.physical_inventory.workflows")


PHYSICAL_INVENTORY_WORKFLOW = Workflow(
    name="physical_inventory",
    description="Physical inventory count reconciliation",
    initial_state=DRAFT,
    states=(
        DRAFT,
        SUBMITTED,
        APPROVED,
        REJECTED,
        RETURNED_FOR_CORRECTION,
        VARIANCE_ACCEPTED,
    ),
    transitions=(
        Transition(DRAFT, SUBMITTED, action="submit", guard=SUBMISSION_COMPLETE, freezes_rate=True),
        Transition(RETURNED_FOR_CORRECTION, SUBMITTED, action="submit", guard=SUBMISSION_COMPLETE, freezes_rate=True),
        Transition(SUBMITTED, APPROVED, action="approve", guard=APPROVED_QUANTITIES_VALID, releases_movements=True),
        Transition(SUBMITTED, REJECTED, action="reject", guard=REASON_PROVIDED),
        Transition(SUBMITTED, RETURNED_FOR_CORRECTION, action="return_for_correction", guard=REASON_PROVIDED),
        Transition(APPROVED, RETURNED_FOR_CORRECTION, action="return_for_correction", guard=REASON_PROVIDED),
        Transition(APPROVED, VARIANCE_ACCEPTED, action="accept_variance"),
        Transition(RETURNED_FOR_CORRECTION, DRAFT, action="reopen"),
        Transition(REJECTED, SUBMITTED, action="resubmit", guard=SUBMISSION_COMPLETE, freezes_rate=True),
        Transition(REJECTED, DRAFT, action="revise"),
    ),
    terminal_states=(VARIANCE_ACCEPTED,),
    editable_states=EDITABLE_STATES,
)

logger.info(
    "physical_inventory_workflow_registered",
    extra={
        "workflow_name": PHYSICAL_INVENTORY_WORKFLOW.name,
        "state_count": len(PHYSICAL_INVENTORY_WORKFLOW.states),
        "transition_count": len(PHYSICAL_INVENTORY_WORKFLOW.transitions),
        "initial_state": PHYSICAL_INVENTORY_WORKFLOW.initial_state,
    },
)
