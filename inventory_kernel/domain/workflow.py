"""
Canonical workflow types (``inventory_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for document state machines, so that Guard,
Transition, and Workflow are defined once and shared by the Physical
Inventory and Stock Adjustment modules.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/`` or outer layers.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* ``initial_state`` is a member of ``states``.
* Terminal states have no outgoing transitions.
* Editable states are members of ``states``.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Guard:
    """A condition that must be satisfied before a transition fires.

    Contract: frozen, descriptive only.
    Non-goals: does not evaluate the condition -- the workflow executor does.
    """
    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    """A valid state transition in a workflow.

    ``freezes_rate=True`` marks transitions that resolve and lock the
    document exchange rate.  ``releases_movements=True`` marks the
    transition after which stock movements may be handed to the ledger.
    """
    from_state: str
    to_state: str
    action: str
    guard: Guard | None = None
    freezes_rate: bool = False
    releases_movements: bool = False


@dataclass(frozen=True)
class Workflow:
    """A state machine definition for a document lifecycle.

    Contract: frozen; ``transitions`` reference only states in ``states``.
    ``editable_states`` are the states in which lines and header fields
    may be changed.
    """
    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[str, ...] = ()
    editable_states: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.initial_state not in self.states:
            raise ValueError(
                f"Workflow {self.name}: initial state "
                f"'{self.initial_state}' is not a declared state"
            )
        for t in self.transitions:
            if t.from_state not in self.states or t.to_state not in self.states:
                raise ValueError(
                    f"Workflow {self.name}: transition '{t.action}' "
                    f"{t.from_state}->{t.to_state} uses an undeclared state"
                )
            if t.from_state in self.terminal_states:
                raise ValueError(
                    f"Workflow {self.name}: terminal state "
                    f"'{t.from_state}' has outgoing transition '{t.action}'"
                )
        for s in self.editable_states:
            if s not in self.states:
                raise ValueError(
                    f"Workflow {self.name}: editable state '{s}' "
                    "is not a declared state"
                )

    def find_transition(self, from_state: str, action: str) -> Transition | None:
        for t in self.transitions:
            if t.from_state == from_state and t.action == action:
                return t
        return None

    def actions_from(self, state: str) -> tuple[str, ...]:
        """Actions that are legal from ``state``, in declaration order."""
        return tuple(t.action for t in self.transitions if t.from_state == state)

    def is_editable(self, state: str) -> bool:
        return state in self.editable_states

    def released_states(self) -> frozenset[str]:
        """States in which stock movements may be handed to the ledger.

        The targets of ``releases_movements`` transitions, plus every state
        reached from them without passing through an editable state.
        """
        pending = [t.to_state for t in self.transitions if t.releases_movements]
        released: set[str] = set()
        while pending:
            state = pending.pop()
            if state in released or state in self.editable_states:
                continue
            released.add(state)
            pending.extend(t.to_state for t in self.transitions if t.from_state == state)
        return frozenset(released)
