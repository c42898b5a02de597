"""
inventory_services.workflow_executor -- Workflow transition execution.

Responsibility:
    Finds the transition a document status allows for an action, evaluates
    its guard, and emits a structured ``workflow_transition`` trace for
    every outcome.  Applying the transition's side effects is the document
    lifecycle's job.

Architecture position:
    Services layer.  May import from inventory_modules, inventory_engines
    and inventory_kernel.

Invariants enforced:
    - An action with no matching transition raises
      InvalidStateTransitionError; it is never a silent no-op.
    - A failing guard raises ValidationError naming the offending field;
      guards that only answer yes/no are reported by guard name.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from inventory_kernel.domain.workflow import Guard, Transition, Workflow
from inventory_kernel.exceptions import InvalidStateTransitionError, ValidationError
from inventory_kernel.logging_config import get_logger

logger = get_logger("services.workflow_executor")

TRACE_TYPE_WORKFLOW_TRANSITION = "WORKFLOW_TRANSITION"
OUTCOME_SUCCESS = "success"
OUTCOME_GUARD_FAILED = "guard_failed"
OUTCOME_NO_TRANSITION = "no_transition"


def _emit_workflow_trace(
    workflow_name: str,
    action: str,
    document_id: UUID,
    from_state: str,
    outcome: str,
    reason: str,
    duration_ms: float,
    to_state: str | None = None,
) -> None:
    record: dict[str, Any] = {
        "trace_type": TRACE_TYPE_WORKFLOW_TRANSITION,
        "workflow": workflow_name,
        "action": action,
        "transition_document_id": str(document_id),
        "from_state": from_state,
        "outcome": outcome,
        "reason": reason,
        "duration_ms": round(duration_ms, 3),
    }
    if to_state is not None:
        record["to_state"] = to_state
    logger.info("workflow_transition", extra=record)


# ---------------------------------------------------------------------------
# Guards
# ---------------------------------------------------------------------------


def _lookup(context: Any, key: str) -> Any:
    if isinstance(context, Mapping):
        return context.get(key)
    return getattr(context, key, None)


def _subject(context: Any) -> tuple[Any, Any] | None:
    """(policy, document) from the guard context, or None if either is missing."""
    policy = _lookup(context, "policy")
    document = _lookup(context, "document")
    if policy is None or document is None:
        return None
    return policy, document


def _submission_complete(context: Any) -> bool:
    subject = _subject(context)
    if subject is None:
        return False
    policy, document = subject
    policy.validate_for_submission(document, _lookup(context, "reasons"))
    return True


def _approved_quantities_valid(context: Any) -> bool:
    subject = _subject(context)
    if subject is None:
        return False
    policy, document = subject
    policy.validate_approved_quantities(document)
    return True


def _reason_provided(context: Any) -> bool:
    reason = _lookup(context, "reason")
    if reason is None or not str(reason).strip():
        raise ValidationError("A reason is required", field="reason")
    return True


class GuardExecutor:
    """Evaluation logic for guards, keyed by guard name.

    An evaluator returns a bool or raises ValidationError naming the field
    at fault.  A guard with no evaluator fails closed.
    """

    def __init__(self) -> None:
        self._evaluators: dict[str, Callable[[Any], bool]] = {}

    def register(self, guard_name: str, evaluator: Callable[[Any], bool]) -> None:
        self._evaluators[guard_name] = evaluator

    def evaluate(self, guard: Guard, context: Any = None) -> bool:
        evaluator = self._evaluators.get(guard.name)
        if evaluator is None:
            logger.warning("guard_no_evaluator", extra={"guard_name": guard.name})
            return False
        return bool(evaluator(context))


def default_guard_executor() -> GuardExecutor:
    """A GuardExecutor with the reconciliation guards registered."""
    executor = GuardExecutor()
    executor.register("submission_complete", _submission_complete)
    executor.register("approved_quantities_valid", _approved_quantities_valid)
    executor.register("reason_provided", _reason_provided)
    return executor


@dataclass(frozen=True)
class TransitionResult:
    """A transition that passed its guard and may now be applied."""

    transition: Transition
    from_state: str

    @property
    def to_state(self) -> str:
        return self.transition.to_state


class WorkflowExecutor:
    """Checks a requested action against a workflow table and its guard."""

    def __init__(self, guard_executor: GuardExecutor | None = None) -> None:
        self._guards = guard_executor or default_guard_executor()

    def execute_transition(
        self,
        workflow: Workflow,
        document_id: UUID,
        current_state: str,
        action: str,
        context: Mapping[str, Any] | None = None,
    ) -> TransitionResult:
        """Check that ``action`` is legal from ``current_state`` and its guard passes.

        Raises:
            InvalidStateTransitionError: no transition for (state, action).
            ValidationError: the transition's guard failed.
        """
        started = time.monotonic()

        def trace(outcome: str, reason: str, to_state: str | None = None) -> None:
            _emit_workflow_trace(
                workflow.name, action, document_id, current_state, outcome, reason,
                (time.monotonic() - started) * 1000, to_state,
            )

        transition = workflow.find_transition(current_state, action)
        if transition is None:
            trace(
                OUTCOME_NO_TRANSITION,
                f"No transition from '{current_state}' via action '{action}' "
                f"in workflow '{workflow.name}'",
            )
            raise InvalidStateTransitionError(str(document_id), current_state, action)

        guard = transition.guard
        if guard is None:
            trace(OUTCOME_SUCCESS, "No guard", transition.to_state)
            return TransitionResult(transition=transition, from_state=current_state)

        try:
            passed = self._guards.evaluate(guard, context or {})
        except ValidationError as exc:
            trace(OUTCOME_GUARD_FAILED, f"Guard not satisfied: {guard.name}: {exc}")
            raise
        if not passed:
            trace(OUTCOME_GUARD_FAILED, f"Guard not satisfied: {guard.name}")
            raise ValidationError(f"Guard not satisfied: {guard.description}", field=guard.name)

        trace(OUTCOME_SUCCESS, "Guard satisfied", transition.to_state)
        return TransitionResult(transition=transition, from_state=current_state)
