"""
Tests for WorkflowExecutor and GuardExecutor.

Covers:
- Legal and illegal (state, action) pairs
- Guard evaluation: pass, boolean failure, ValidationError propagation
- Unknown guards fail closed
- WORKFLOW_TRANSITION traces for every outcome
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from inventory_kernel.domain.workflow import Guard, Transition, Workflow
from inventory_kernel.exceptions import InvalidStateTransitionError, ValidationError
from inventory_modules.physical_inventory import PHYSICAL_INVENTORY_WORKFLOW, PhysicalInventoryPolicy
from inventory_modules.stock_adjustment import STOCK_ADJUSTMENT_WORKFLOW
from inventory_services.workflow_executor import (
    OUTCOME_GUARD_FAILED,
    OUTCOME_NO_TRANSITION,
    OUTCOME_SUCCESS,
    GuardExecutor,
    WorkflowExecutor,
    default_guard_executor,
)
from tests.builders import build_document, make_line

GATED = Guard("gated", "Always checked")

TOY_WORKFLOW = Workflow(
    name="toy",
    description="Two-state workflow",
    initial_state="open",
    states=("open", "closed"),
    transitions=(Transition("open", "closed", action="close", guard=GATED),),
    terminal_states=("closed",),
)


def _traces(captured_logs):
    return [r for r in captured_logs() if r["message"] == "workflow_transition"]


class TestExecuteTransition:
    def test_reason_guard_passes(self):
        result = WorkflowExecutor().execute_transition(
            PHYSICAL_INVENTORY_WORKFLOW, uuid4(), "submitted", "reject", {"reason": "Recount"}
        )

        assert result.from_state == "submitted"
        assert result.to_state == "rejected"

    def test_unguarded_transition(self):
        result = WorkflowExecutor().execute_transition(
            PHYSICAL_INVENTORY_WORKFLOW, uuid4(), "approved", "accept_variance"
        )

        assert result.to_state == "variance_accepted"

    def test_no_transition(self):
        document_id = uuid4()

        with pytest.raises(InvalidStateTransitionError) as exc_info:
            WorkflowExecutor().execute_transition(
                STOCK_ADJUSTMENT_WORKFLOW, document_id, "approved", "return_for_correction"
            )

        assert exc_info.value.current_status == "approved"
        assert exc_info.value.action == "return_for_correction"
        assert exc_info.value.document_id == str(document_id)

    def test_blank_reason_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            WorkflowExecutor().execute_transition(
                STOCK_ADJUSTMENT_WORKFLOW, uuid4(), "submitted", "reject", {"reason": "   "}
            )

        assert exc_info.value.field == "reason"

    def test_submission_guard_delegates_to_policy(self):
        document = build_document(lines=[])

        with pytest.raises(ValidationError) as exc_info:
            WorkflowExecutor().execute_transition(
                PHYSICAL_INVENTORY_WORKFLOW,
                document.id,
                "draft",
                "submit",
                {"policy": PhysicalInventoryPolicy(), "document": document},
            )

        assert exc_info.value.field == "lines"

    def test_submission_guard_passes(self):
        document = build_document(lines=[make_line()])

        result = WorkflowExecutor().execute_transition(
            PHYSICAL_INVENTORY_WORKFLOW,
            document.id,
            "draft",
            "submit",
            {"policy": PhysicalInventoryPolicy(), "document": document},
        )

        assert result.transition.freezes_rate is True

    def test_approval_guard(self):
        document = build_document(lines=[make_line(approved_quantity=Decimal("20"))])

        with pytest.raises(ValidationError) as exc_info:
            WorkflowExecutor().execute_transition(
                PHYSICAL_INVENTORY_WORKFLOW,
                document.id,
                "submitted",
                "approve",
                {"policy": PhysicalInventoryPolicy(), "document": document},
            )

        assert exc_info.value.field == "approved_quantity"

    def test_missing_context_fails_guard(self):
        with pytest.raises(ValidationError) as exc_info:
            WorkflowExecutor().execute_transition(
                PHYSICAL_INVENTORY_WORKFLOW, uuid4(), "draft", "submit"
            )

        assert exc_info.value.field == "submission_complete"


class TestGuardExecutor:
    def test_unknown_guard_fails_closed(self):
        assert GuardExecutor().evaluate(GATED, {}) is False

    def test_registered_evaluator(self):
        executor = GuardExecutor()
        executor.register("gated", lambda ctx: ctx.get("open_sesame", False))

        assert executor.evaluate(GATED, {"open_sesame": True}) is True
        assert executor.evaluate(GATED, {}) is False

    def test_custom_executor_used_by_workflow(self):
        executor = GuardExecutor()
        executor.register("gated", lambda ctx: True)

        result = WorkflowExecutor(executor).execute_transition(
            TOY_WORKFLOW, uuid4(), "open", "close"
        )

        assert result.to_state == "closed"

    def test_default_registers_reconciliation_guards(self):
        executor = default_guard_executor()

        assert executor.evaluate(Guard("reason_provided", ""), {"reason": "ok"}) is True


class TestWorkflowTraces:
    def test_success_trace(self, captured_logs):
        WorkflowExecutor().execute_transition(
            PHYSICAL_INVENTORY_WORKFLOW, uuid4(), "returned_for_correction", "reopen"
        )

        (trace,) = _traces(captured_logs)
        assert trace["outcome"] == OUTCOME_SUCCESS
        assert trace["workflow"] == "physical_inventory"
        assert trace["to_state"] == "draft"
        assert trace["reason"] == "No guard"

    def test_no_transition_trace(self, captured_logs):
        with pytest.raises(InvalidStateTransitionError):
            WorkflowExecutor().execute_transition(
                PHYSICAL_INVENTORY_WORKFLOW, uuid4(), "variance_accepted", "reopen"
            )

        (trace,) = _traces(captured_logs)
        assert trace["outcome"] == OUTCOME_NO_TRANSITION
        assert "to_state" not in trace

    def test_guard_failed_trace(self, captured_logs):
        with pytest.raises(ValidationError):
            WorkflowExecutor().execute_transition(
                PHYSICAL_INVENTORY_WORKFLOW, uuid4(), "submitted", "reject", {"reason": ""}
            )

        (trace,) = _traces(captured_logs)
        assert trace["outcome"] == OUTCOME_GUARD_FAILED
        assert trace["reason"].startswith("Guard not satisfied: reason_provided")
