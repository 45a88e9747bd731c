"""
Tests for the project and milestone transition tables.

Covers:
- Every state has at most one successor
- validate_transition accepts exactly the successor
- Terminal states
"""

import itertools

import pytest

from escrow_kernel.domain.lifecycle import (
    MILESTONE_TRANSITIONS,
    PROJECT_TRANSITIONS,
    MilestoneState,
    ProjectState,
    allowed_targets,
    is_terminal,
    validate_transition,
)
from escrow_kernel.exceptions import InvalidStateError
from tests.conftest import MILESTONE_ORDER, PROJECT_ORDER


class TestTransitionTables:
    """Structure of the transition graphs."""

    @pytest.mark.parametrize("table", [PROJECT_TRANSITIONS, MILESTONE_TRANSITIONS])
    def test_linear(self, table):
        assert all(len(targets) <= 1 for targets in table.values())

    def test_project_successors_follow_order(self):
        for state, targets in PROJECT_TRANSITIONS.items():
            for target in targets:
                assert PROJECT_ORDER[target] == PROJECT_ORDER[state] + 1

    def test_milestone_successors_follow_order(self):
        for state, targets in MILESTONE_TRANSITIONS.items():
            for target in targets:
                assert MILESTONE_ORDER[target] == MILESTONE_ORDER[state] + 1

    def test_terminal_states(self):
        assert [s for s in ProjectState if is_terminal(s)] == [ProjectState.COMPLETED]
        assert [s for s in MilestoneState if is_terminal(s)] == [MilestoneState.PAID]

    def test_allowed_targets(self):
        assert allowed_targets(ProjectState.FUNDED) == frozenset({ProjectState.IN_PROGRESS})
        assert allowed_targets(MilestoneState.PAID) == frozenset()


class TestValidateTransition:
    """validate_transition accepts exactly one step forward."""

    @pytest.mark.parametrize(
        "current,target", list(itertools.product(ProjectState, ProjectState))
    )
    def test_project_pairs(self, current, target):
        if PROJECT_ORDER[target] == PROJECT_ORDER[current] + 1:
            validate_transition("project", "1", current, target)
        else:
            with pytest.raises(InvalidStateError) as exc_info:
                validate_transition("project", "1", current, target)
            assert exc_info.value.current_state == current.value
            assert exc_info.value.target_state == target.value

    @pytest.mark.parametrize(
        "current,target", list(itertools.product(MilestoneState, MilestoneState))
    )
    def test_milestone_pairs(self, current, target):
        if MILESTONE_ORDER[target] == MILESTONE_ORDER[current] + 1:
            validate_transition("milestone", "1/1", current, target)
        else:
            with pytest.raises(InvalidStateError):
                validate_transition("milestone", "1/1", current, target)

    def test_error_message_names_the_record(self):
        with pytest.raises(InvalidStateError, match="project 5 cannot move from created to completed"):
            validate_transition("project", "5", ProjectState.CREATED, ProjectState.COMPLETED)
