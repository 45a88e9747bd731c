"""
Lifecycle -- transition graphs for projects and milestones.

Responsibility:
    Declares the strictly linear state machines of the Project Escrow and
    Milestone Tracking engines and the single validation routine both
    engines use before any mutation.

Architecture position:
    Kernel > Domain -- pure, no I/O.  Models store these enums; services
    call ``validate_transition`` before touching a row.

Invariants enforced:
    TRANSITION_MONOTONICITY -- each state has at most one successor; no
    skips, no reversals, terminal states have no successors.
"""

from enum import Enum

from escrow_kernel.exceptions import InvalidStateError


class ProjectState(str, Enum):
    """
    Project lifecycle.

    State machine:
        CREATED -> FUNDED -> IN_PROGRESS -> COMPLETED
        COMPLETED: terminal
    """

    CREATED = "created"
    FUNDED = "funded"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class MilestoneState(str, Enum):
    """
    Milestone lifecycle.

    State machine:
        CREATED -> APPROVED -> COMPLETED -> PAID
        PAID: terminal
    """

    CREATED = "created"
    APPROVED = "approved"
    COMPLETED = "completed"
    PAID = "paid"


PROJECT_TRANSITIONS: dict[ProjectState, frozenset[ProjectState]] = {
    ProjectState.CREATED: frozenset({ProjectState.FUNDED}),
    ProjectState.FUNDED: frozenset({ProjectState.IN_PROGRESS}),
    ProjectState.IN_PROGRESS: frozenset({ProjectState.COMPLETED}),
    ProjectState.COMPLETED: frozenset(),
}

MILESTONE_TRANSITIONS: dict[MilestoneState, frozenset[MilestoneState]] = {
    MilestoneState.CREATED: frozenset({MilestoneState.APPROVED}),
    MilestoneState.APPROVED: frozenset({MilestoneState.COMPLETED}),
    MilestoneState.COMPLETED: frozenset({MilestoneState.PAID}),
    MilestoneState.PAID: frozenset(),
}

_TABLES = {
    ProjectState: PROJECT_TRANSITIONS,
    MilestoneState: MILESTONE_TRANSITIONS,
}


def allowed_targets(current: ProjectState | MilestoneState) -> frozenset:
    """Return the states reachable from ``current`` in one step."""
    return _TABLES[type(current)][current]


def is_terminal(state: ProjectState | MilestoneState) -> bool:
    """True when no transition leaves ``state``."""
    return not allowed_targets(state)


def validate_transition(
    entity_type: str,
    entity_key: str,
    current: ProjectState | MilestoneState,
    target: ProjectState | MilestoneState,
) -> None:
    """
    Validate a single lifecycle step.

    Preconditions: ``current`` and ``target`` belong to the same enum.
    Postconditions: Returns None iff ``target`` is the successor of ``current``.

    Raises:
        InvalidStateError: For any skip, reversal, repeat or exit from a
            terminal state.
    """
    if target not in allowed_targets(current):
        raise InvalidStateError(
            entity_type=entity_type,
            entity_key=entity_key,
            current_state=current.value,
            target_state=target.value,
        )
