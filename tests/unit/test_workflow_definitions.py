"""
Tests for workflow definitions.

Covers:
- Workflow construction checks (undeclared states, terminal outgoing edges)
- Physical Inventory and Stock Adjustment state machines
"""

import pytest

from inventory_kernel.domain.workflow import Transition, Workflow
from inventory_modules.physical_inventory.workflows import PHYSICAL_INVENTORY_WORKFLOW
from inventory_modules.stock_adjustment.workflows import STOCK_ADJUSTMENT_WORKFLOW


class TestWorkflowConstruction:
    def test_initial_state_must_be_declared(self):
        with pytest.raises(ValueError, match="initial state"):
            Workflow("wf", "", "start", ("draft",), ())

    def test_transition_states_must_be_declared(self):
        with pytest.raises(ValueError, match="undeclared state"):
            Workflow(
                "wf", "", "draft", ("draft",),
                (Transition("draft", "done", action="finish"),),
            )

    def test_terminal_state_has_no_outgoing_edges(self):
        with pytest.raises(ValueError, match="terminal state"):
            Workflow(
                "wf", "", "draft", ("draft", "done"),
                (
                    Transition("draft", "done", action="finish"),
                    Transition("done", "draft", action="undo"),
                ),
                terminal_states=("done",),
            )

    def test_find_transition(self):
        t = PHYSICAL_INVENTORY_WORKFLOW.find_transition("draft", "submit")

        assert t is not None
        assert t.to_state == "submitted"
        assert t.freezes_rate
        assert PHYSICAL_INVENTORY_WORKFLOW.find_transition("draft", "approve") is None


class TestPhysicalInventoryWorkflow:
    workflow = PHYSICAL_INVENTORY_WORKFLOW

    def test_editable_states(self):
        assert self.workflow.is_editable("draft")
        assert self.workflow.is_editable("returned_for_correction")
        assert not self.workflow.is_editable("submitted")
        assert not self.workflow.is_editable("approved")

    def test_actions_from_submitted(self):
        assert set(self.workflow.actions_from("submitted")) == {
            "approve",
            "reject",
            "return_for_correction",
        }

    def test_approved_can_accept_variance_or_be_returned(self):
        assert set(self.workflow.actions_from("approved")) == {
            "return_for_correction",
            "accept_variance",
        }

    def test_variance_accepted_is_terminal(self):
        assert self.workflow.actions_from("variance_accepted") == ()

    def test_approval_releases_movements(self):
        assert self.workflow.find_transition("submitted", "approve").releases_movements

    def test_released_states_follow_approval(self):
        assert self.workflow.released_states() == {"approved", "variance_accepted"}


class TestStockAdjustmentWorkflow:
    workflow = STOCK_ADJUSTMENT_WORKFLOW

    def test_approved_is_terminal(self):
        assert self.workflow.actions_from("approved") == ()

    def test_only_approved_releases_movements(self):
        assert self.workflow.released_states() == {"approved"}

    def test_no_variance_state(self):
        assert "variance_accepted" not in self.workflow.states

    def test_rejected_can_be_resubmitted_or_revised(self):
        assert set(self.workflow.actions_from("rejected")) == {"resubmit", "revise"}
