"""
Tests for ProjectEscrowService (through EscrowOrchestrator).

Covers:
- Project creation, id allocation and amount validation
- Funding, starting and completing with their balance effects
- Check order: existence -> authorization -> state -> funds
- Terminal COMPLETED state
"""

import pytest

from escrow_kernel.domain.identity import CONTRACT_PRINCIPAL
from escrow_kernel.domain.lifecycle import ProjectState
from escrow_kernel.domain.project_source import ProjectSource
from escrow_kernel.exceptions import (
    InsufficientFundsError,
    InvalidAmountError,
    InvalidStateError,
    ProjectNotFoundError,
    ReservedPrincipalError,
    UnauthorizedError,
)
from escrow_kernel.models.balance import BalanceAccount
from escrow_kernel.services.project_escrow_service import ProjectEscrowService
from tests.conftest import (
    CLIENT,
    FREELANCER,
    OUTSIDER,
    PROJECT_AMOUNT,
    STARTING_BALANCE,
)


class TestCreateProject:
    """Tests for create_project."""

    def test_ids_start_at_one_and_increase(self, orchestrator):
        """Project ids come from the ledger-wide counter."""
        assert orchestrator.create_project(CLIENT, FREELANCER, 100) == 1
        assert orchestrator.create_project(OUTSIDER, FREELANCER, 200) == 2
        assert orchestrator.create_project(CLIENT, OUTSIDER, 300) == 3

    def test_caller_becomes_client(self, orchestrator, deterministic_clock):
        """Stores both parties, the fixed amount and the ledger time."""
        project_id = orchestrator.create_project(CLIENT, FREELANCER, 250)

        project = orchestrator.get_project(project_id)
        assert project.client == CLIENT
        assert project.freelancer == FREELANCER
        assert project.amount == 250
        assert project.state == ProjectState.CREATED
        assert project.created_at == deterministic_clock.now()
        assert project.completed_at is None
        assert project.is_terminal is False

    def test_no_balance_effect(self, orchestrator, funded_client):
        """Creating a project moves no funds."""
        orchestrator.create_project(CLIENT, FREELANCER, PROJECT_AMOUNT)

        assert orchestrator.balance_of(CLIENT) == STARTING_BALANCE
        assert orchestrator.balance_of(CONTRACT_PRINCIPAL) == 0

    @pytest.mark.parametrize("amount", [0, -1, -500])
    def test_non_positive_amount_rejected(self, orchestrator, amount):
        with pytest.raises(InvalidAmountError) as exc_info:
            orchestrator.create_project(CLIENT, FREELANCER, amount)

        assert exc_info.value.amount == amount
        assert exc_info.value.ledger_code == 103
        assert orchestrator.get_project(1) is None

    @pytest.mark.parametrize("amount", [0.5, 100.0, True, "100", None])
    def test_non_integer_amount_rejected(self, orchestrator, funded_client, amount):
        """Amounts are whole units; floats, bools and strings are refused."""
        with pytest.raises(InvalidAmountError) as exc_info:
            orchestrator.create_project(CLIENT, FREELANCER, amount)

        assert exc_info.value.amount is amount
        assert orchestrator.get_project(1) is None
        assert orchestrator.balance_of(CLIENT) == STARTING_BALANCE

    def test_custody_principal_cannot_be_freelancer(self, orchestrator):
        with pytest.raises(ReservedPrincipalError) as exc_info:
            orchestrator.create_project(CLIENT, CONTRACT_PRINCIPAL, 100)

        assert exc_info.value.role == "freelancer"

    def test_custody_principal_cannot_be_client(self, orchestrator):
        with pytest.raises(ReservedPrincipalError) as exc_info:
            orchestrator.create_project(CONTRACT_PRINCIPAL, FREELANCER, 100)

        assert exc_info.value.role == "client"

    def test_rolled_back_create_does_not_consume_id(self, session, deterministic_clock):
        """The project counter is transactional."""
        service = ProjectEscrowService(session, deterministic_clock)
        assert service.create_project(CLIENT, FREELANCER, 100) == 1
        session.rollback()

        assert service.create_project(CLIENT, FREELANCER, 100) == 1


class TestFundProject:
    """Tests for fund_project."""

    def test_moves_amount_into_custody(self, orchestrator, project_in_state):
        """Client 1000 funds a 100 project: 900 / 100, state FUNDED."""
        project_id = project_in_state(ProjectState.CREATED)

        project = orchestrator.fund_project(CLIENT, project_id)

        assert project.state == ProjectState.FUNDED
        assert orchestrator.balance_of(CLIENT) == 900
        assert orchestrator.balance_of(CONTRACT_PRINCIPAL) == 100

    @pytest.mark.parametrize("caller", [FREELANCER, OUTSIDER, CONTRACT_PRINCIPAL])
    def test_only_client_may_fund(self, orchestrator, project_in_state, caller):
        project_id = project_in_state(ProjectState.CREATED)

        with pytest.raises(UnauthorizedError) as exc_info:
            orchestrator.fund_project(caller, project_id)

        assert exc_info.value.caller == caller
        assert exc_info.value.required_role == "client"
        assert exc_info.value.ledger_code == 100
        assert orchestrator.get_project(project_id).state == ProjectState.CREATED
        assert orchestrator.balance_of(CLIENT) == STARTING_BALANCE
        assert orchestrator.balance_of(CONTRACT_PRINCIPAL) == 0

    def test_already_funded_is_invalid_state(self, orchestrator, project_in_state):
        """Second fund fails and leaves balances unchanged."""
        project_id = project_in_state(ProjectState.FUNDED)

        with pytest.raises(InvalidStateError) as exc_info:
            orchestrator.fund_project(CLIENT, project_id)

        assert exc_info.value.current_state == "funded"
        assert exc_info.value.target_state == "funded"
        assert orchestrator.balance_of(CLIENT) == 900
        assert orchestrator.balance_of(CONTRACT_PRINCIPAL) == 100

    def test_insufficient_funds(self, orchestrator):
        """A client without balance cannot fund."""
        project_id = orchestrator.create_project(OUTSIDER, FREELANCER, 100)

        with pytest.raises(InsufficientFundsError) as exc_info:
            orchestrator.fund_project(OUTSIDER, project_id)

        assert exc_info.value.principal == OUTSIDER
        assert exc_info.value.available == 0
        assert exc_info.value.required == 100
        assert orchestrator.get_project(project_id).state == ProjectState.CREATED
        assert orchestrator.balance_of(CONTRACT_PRINCIPAL) == 0

    def test_partial_balance_is_insufficient(self, orchestrator):
        orchestrator.allocate_balance(OUTSIDER, 99)
        project_id = orchestrator.create_project(OUTSIDER, FREELANCER, 100)

        with pytest.raises(InsufficientFundsError):
            orchestrator.fund_project(OUTSIDER, project_id)

        assert orchestrator.balance_of(OUTSIDER) == 99
        assert orchestrator.balance_of(CONTRACT_PRINCIPAL) == 0

    def test_exact_balance_is_sufficient(self, orchestrator, funded_client):
        project_id = orchestrator.create_project(CLIENT, FREELANCER, STARTING_BALANCE)

        orchestrator.fund_project(CLIENT, project_id)

        assert orchestrator.balance_of(CLIENT) == 0
        assert orchestrator.balance_of(CONTRACT_PRINCIPAL) == STARTING_BALANCE

    def test_unknown_project(self, orchestrator):
        with pytest.raises(ProjectNotFoundError) as exc_info:
            orchestrator.fund_project(CLIENT, 99)

        assert exc_info.value.project_id == 99

    def test_authorization_checked_before_state(self, orchestrator, project_in_state):
        project_id = project_in_state(ProjectState.FUNDED)

        with pytest.raises(UnauthorizedError):
            orchestrator.fund_project(OUTSIDER, project_id)

    def test_state_checked_before_funds(self, orchestrator, funded_client):
        """A drained client re-funding gets InvalidState, not InsufficientFunds."""
        project_id = orchestrator.create_project(CLIENT, FREELANCER, STARTING_BALANCE)
        orchestrator.fund_project(CLIENT, project_id)
        assert orchestrator.balance_of(CLIENT) == 0

        with pytest.raises(InvalidStateError):
            orchestrator.fund_project(CLIENT, project_id)


class TestStartProject:
    """Tests for start_project."""

    def test_freelancer_starts_funded_project(self, orchestrator, project_in_state):
        project_id = project_in_state(ProjectState.FUNDED)

        project = orchestrator.start_project(FREELANCER, project_id)

        assert project.state == ProjectState.IN_PROGRESS
        assert orchestrator.balance_of(CONTRACT_PRINCIPAL) == PROJECT_AMOUNT

    @pytest.mark.parametrize("caller", [CLIENT, OUTSIDER])
    def test_only_freelancer_may_start(self, orchestrator, project_in_state, caller):
        project_id = project_in_state(ProjectState.FUNDED)

        with pytest.raises(UnauthorizedError) as exc_info:
            orchestrator.start_project(caller, project_id)

        assert exc_info.value.required_role == "freelancer"
        assert orchestrator.get_project(project_id).state == ProjectState.FUNDED

    def test_unfunded_project_cannot_start(self, orchestrator, project_in_state):
        project_id = project_in_state(ProjectState.CREATED)

        with pytest.raises(InvalidStateError) as exc_info:
            orchestrator.start_project(FREELANCER, project_id)

        assert exc_info.value.current_state == "created"
        assert exc_info.value.target_state == "in_progress"


class TestCompleteProject:
    """Tests for complete_project."""

    def test_releases_custody_to_freelancer(
        self, orchestrator, project_in_state, deterministic_clock
    ):
        project_id = project_in_state(ProjectState.IN_PROGRESS)
        deterministic_clock.advance(3600)

        project = orchestrator.complete_project(CLIENT, project_id)

        assert project.state == ProjectState.COMPLETED
        assert project.completed_at == deterministic_clock.now()
        assert project.is_terminal is True
        assert orchestrator.balance_of(CLIENT) == STARTING_BALANCE - PROJECT_AMOUNT
        assert orchestrator.balance_of(CONTRACT_PRINCIPAL) == 0
        assert orchestrator.balance_of(FREELANCER) == PROJECT_AMOUNT

    def test_only_client_may_complete(self, orchestrator, project_in_state):
        project_id = project_in_state(ProjectState.IN_PROGRESS)

        with pytest.raises(UnauthorizedError):
            orchestrator.complete_project(FREELANCER, project_id)

        assert orchestrator.balance_of(FREELANCER) == 0
        assert orchestrator.get_project(project_id).completed_at is None

    def test_funded_but_not_started_cannot_complete(self, orchestrator, project_in_state):
        project_id = project_in_state(ProjectState.FUNDED)

        with pytest.raises(InvalidStateError):
            orchestrator.complete_project(CLIENT, project_id)

        assert orchestrator.balance_of(CONTRACT_PRINCIPAL) == PROJECT_AMOUNT

    def test_short_custody_is_insufficient_funds(self, orchestrator, project_in_state, session):
        """Release fails whole when custody holds less than the project amount."""
        project_id = project_in_state(ProjectState.IN_PROGRESS)
        session.get(BalanceAccount, CONTRACT_PRINCIPAL).balance = 10
        session.commit()

        with pytest.raises(InsufficientFundsError) as exc_info:
            orchestrator.complete_project(CLIENT, project_id)

        assert exc_info.value.principal == CONTRACT_PRINCIPAL
        assert exc_info.value.available == 10
        assert exc_info.value.required == PROJECT_AMOUNT
        project = orchestrator.get_project(project_id)
        assert project.state == ProjectState.IN_PROGRESS
        assert project.completed_at is None
        assert orchestrator.balance_of(FREELANCER) == 0
        assert orchestrator.balance_of(CONTRACT_PRINCIPAL) == 10

    def test_completed_is_terminal(self, orchestrator, project_in_state, deterministic_clock):
        """No transition leaves COMPLETED; completed_at is written once."""
        project_id = project_in_state(ProjectState.COMPLETED)
        completed_at = orchestrator.get_project(project_id).completed_at
        deterministic_clock.advance(60)

        with pytest.raises(InvalidStateError):
            orchestrator.fund_project(CLIENT, project_id)
        with pytest.raises(InvalidStateError):
            orchestrator.start_project(FREELANCER, project_id)
        with pytest.raises(InvalidStateError):
            orchestrator.complete_project(CLIENT, project_id)

        project = orchestrator.get_project(project_id)
        assert project.state == ProjectState.COMPLETED
        assert project.completed_at == completed_at
        assert orchestrator.balance_of(FREELANCER) == PROJECT_AMOUNT


class TestGetProject:
    """Tests for read-only lookups."""

    def test_absent_project_is_none(self, orchestrator):
        assert orchestrator.get_project(1) is None

    def test_service_is_a_project_source(self, orchestrator):
        assert isinstance(orchestrator.projects, ProjectSource)
