"""
Pytest fixtures for the escrow kernel test suite.

Provides:
- A fresh in-memory SQLite ledger per test
- Deterministic clock, admin authority and orchestrator fixtures
- Helpers that walk projects and milestones to a given state
- Structured log capture

Environment Variables:
- None.  Tests never read ESCROW_CONFIG or DATABASE_URL; config tests set
  them explicitly with monkeypatch.
"""

import json
import logging
from io import StringIO
from typing import Generator

import pytest
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from escrow_kernel.db.engine import (
    create_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from escrow_kernel.domain.clock import DeterministicClock
from escrow_kernel.domain.identity import AdminAuthority
from escrow_kernel.domain.lifecycle import MilestoneState, ProjectState
from escrow_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from escrow_kernel.services.escrow_orchestrator import EscrowOrchestrator

# Principals shared by every test module
ADMIN = "admin"
CLIENT = "alice"
FREELANCER = "bob"
OUTSIDER = "mallory"

STARTING_BALANCE = 1000
PROJECT_AMOUNT = 100

# Position of each state along its linear walk
PROJECT_ORDER: dict[ProjectState, int] = {state: i for i, state in enumerate(ProjectState)}
MILESTONE_ORDER: dict[MilestoneState, int] = {state: i for i, state in enumerate(MilestoneState)}


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture escrow_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, orchestrator):
            orchestrator.create_project(CLIENT, FREELANCER, 100)
            logs = captured_logs()
            assert any(r["message"] == "project_created" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("escrow_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Ledger fixtures
# =============================================================================


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    """Fresh in-memory ledger with every table created."""
    eng = init_engine_from_url("sqlite://")
    create_tables(eng)
    yield eng
    reset_engine()


@pytest.fixture
def session(engine) -> Generator[Session, None, None]:
    sess = get_session()
    yield sess
    sess.close()


@pytest.fixture
def deterministic_clock():
    """Provide a deterministic clock for testing."""
    return DeterministicClock()


@pytest.fixture
def admin() -> AdminAuthority:
    return AdminAuthority(ADMIN)


@pytest.fixture
def orchestrator(session, admin, deterministic_clock) -> EscrowOrchestrator:
    return EscrowOrchestrator(session, admin=admin, clock=deterministic_clock)


@pytest.fixture
def funded_client(orchestrator) -> str:
    """CLIENT holding STARTING_BALANCE."""
    orchestrator.allocate_balance(CLIENT, STARTING_BALANCE, source="genesis")
    return CLIENT


# =============================================================================
# State walkers
# =============================================================================


_PROJECT_STEPS = (
    (ProjectState.FUNDED, "fund_project", CLIENT),
    (ProjectState.IN_PROGRESS, "start_project", FREELANCER),
    (ProjectState.COMPLETED, "complete_project", CLIENT),
)

_MILESTONE_STEPS = (
    (MilestoneState.APPROVED, "approve_milestone", CLIENT),
    (MilestoneState.COMPLETED, "complete_milestone", FREELANCER),
    (MilestoneState.PAID, "pay_milestone", CLIENT),
)


@pytest.fixture
def project_in_state(orchestrator, funded_client):
    """
    Factory: create a CLIENT -> FREELANCER project and walk it to ``state``.

    Usage::

        project_id = project_in_state(ProjectState.IN_PROGRESS)
    """

    def _make(state: ProjectState = ProjectState.CREATED, amount: int = PROJECT_AMOUNT) -> int:
        project_id = orchestrator.create_project(CLIENT, FREELANCER, amount)
        for target, operation, caller in _PROJECT_STEPS:
            if state == ProjectState.CREATED:
                break
            getattr(orchestrator, operation)(caller, project_id)
            if target == state:
                break
        return project_id

    return _make


@pytest.fixture
def milestone_in_state(orchestrator, project_in_state):
    """
    Factory: add a milestone to a fresh CREATED project and walk it to
    ``state``.  Returns (project_id, milestone_id).
    """

    def _make(state: MilestoneState = MilestoneState.CREATED) -> tuple[int, int]:
        project_id = project_in_state(ProjectState.CREATED)
        milestone_id = orchestrator.create_milestone(CLIENT, project_id, "UI", 50)
        for target, operation, caller in _MILESTONE_STEPS:
            if state == MilestoneState.CREATED:
                break
            getattr(orchestrator, operation)(caller, project_id, milestone_id)
            if target == state:
                break
        return project_id, milestone_id

    return _make
