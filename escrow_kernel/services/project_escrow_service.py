"""
ProjectEscrowService -- the Project Escrow Engine.

Responsibility:
    Owns the project lifecycle and fund custody:
    CREATED -> FUNDED -> IN_PROGRESS -> COMPLETED.  Funding moves the
    project amount from the client into the custody principal; completion
    releases it to the freelancer.

Architecture position:
    Kernel > Services -- imperative shell.  Implements ProjectSource, the
    read-only capability the Milestone Tracking Engine holds.

Check order (every transition):
    existence -> authorization -> state -> funds.  All checks run before
    the first write, so a rejected call mutates nothing.

Invariants enforced:
    TRANSITION_MONOTONICITY, ROLE_EXCLUSIVITY, FUND_CONSERVATION.
    completed_at is written exactly once, on entering COMPLETED.

Failure modes:
    - ProjectNotFoundError, UnauthorizedError, InvalidStateError,
      InsufficientFundsError, InvalidAmountError, ReservedPrincipalError.
"""

from sqlalchemy.orm import Session

from escrow_kernel.domain.clock import Clock, SystemClock
from escrow_kernel.domain.dtos import ProjectInfo
from escrow_kernel.domain.amounts import ensure_amount
from escrow_kernel.domain.identity import (
    CONTRACT_PRINCIPAL,
    Role,
    ensure_not_reserved,
    require_role,
)
from escrow_kernel.domain.lifecycle import ProjectState, validate_transition
from escrow_kernel.exceptions import ProjectNotFoundError
from escrow_kernel.logging_config import get_logger
from escrow_kernel.models.ledger_event import LedgerAction
from escrow_kernel.models.project import Project
from escrow_kernel.services.base import BaseService
from escrow_kernel.services.event_recorder import LedgerEventRecorder
from escrow_kernel.services.ledger_access import LedgerAccess
from escrow_kernel.services.sequence_service import SequenceService
from escrow_kernel.utils.hashing import record_key

logger = get_logger("services.project_escrow")

ENTITY_TYPE = "project"


def project_to_dto(project: Project) -> ProjectInfo:
    """Convert ORM Project to ProjectInfo DTO."""
    return ProjectInfo(
        id=project.id,
        client=project.client,
        freelancer=project.freelancer,
        amount=project.amount,
        state=project.state_enum,
        created_at=project.created_at,
        completed_at=project.completed_at,
    )


class ProjectEscrowService(BaseService):
    """
    Project lifecycle and custody of project funds.

    Contract:
        Every public mutator takes the calling principal first.  Client-only:
        create, fund, complete.  Freelancer-only: start.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        recorder: LedgerEventRecorder | None = None,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._ledger = LedgerAccess(session)
        self._sequence = SequenceService(session)
        self._recorder = recorder or LedgerEventRecorder(session, self._clock)

    def _locked_project(self, project_id: int) -> Project:
        project = self._ledger.get(Project, project_id, for_update=True)
        if project is None:
            raise ProjectNotFoundError(project_id)
        return project

    def _record(self, project: Project, action: LedgerAction, actor: str, **payload) -> None:
        self._recorder.record(
            entity_type=ENTITY_TYPE,
            entity_key=record_key(project.id),
            action=action,
            actor=actor,
            payload={"state": project.state_enum.value, **payload},
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_project(self, project_id: int) -> ProjectInfo | None:
        """Read-only lookup; None if the project does not exist."""
        project = self._ledger.get(Project, project_id)
        return project_to_dto(project) if project is not None else None

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def create_project(self, caller: str, freelancer: str, amount: int) -> int:
        """
        Open a new engagement with ``caller`` as client.

        The amount is fixed here and never changes.  No balance moves.

        Returns:
            The new project id (ledger-wide counter, starting at 1).

        Raises:
            InvalidAmountError: If amount is not a positive int.
            ReservedPrincipalError: If either party is the custody principal.
        """
        ensure_amount(amount, minimum=1, reason="project amount must be positive")
        ensure_not_reserved(caller, Role.CLIENT)
        ensure_not_reserved(freelancer, Role.FREELANCER)

        project_id = self._sequence.next_value(SequenceService.PROJECT)
        project = Project(
            id=project_id,
            client=caller,
            freelancer=freelancer,
            amount=amount,
            state=ProjectState.CREATED,
            created_at=self._clock.now(),
            completed_at=None,
        )
        self.session.add(project)
        self.session.flush()

        self._record(
            project,
            LedgerAction.PROJECT_CREATED,
            caller,
            client=caller,
            freelancer=freelancer,
            amount=amount,
        )
        logger.info(
            "project_created",
            extra={"project_id": project_id, "freelancer": freelancer, "amount": amount},
        )
        return project_id

    def fund_project(self, caller: str, project_id: int) -> ProjectInfo:
        """
        Move the project amount from the client into custody.

        Debit, credit and the FUNDED flip happen in one transaction.

        Raises:
            ProjectNotFoundError, UnauthorizedError, InvalidStateError,
            InsufficientFundsError.
        """
        project = self._locked_project(project_id)
        require_role(caller, project.client, Role.CLIENT, "fund_project")
        validate_transition(
            ENTITY_TYPE, str(project_id), project.state_enum, ProjectState.FUNDED
        )

        self._ledger.transfer(project.client, CONTRACT_PRINCIPAL, project.amount)
        project.state = ProjectState.FUNDED
        self.session.flush()

        self._record(project, LedgerAction.PROJECT_FUNDED, caller, amount=project.amount)
        logger.info(
            "project_funded",
            extra={"project_id": project_id, "amount": project.amount},
        )
        return project_to_dto(project)

    def start_project(self, caller: str, project_id: int) -> ProjectInfo:
        """
        Freelancer accepts the funded engagement.

        Raises:
            ProjectNotFoundError, UnauthorizedError, InvalidStateError.
        """
        project = self._locked_project(project_id)
        require_role(caller, project.freelancer, Role.FREELANCER, "start_project")
        validate_transition(
            ENTITY_TYPE, str(project_id), project.state_enum, ProjectState.IN_PROGRESS
        )

        project.state = ProjectState.IN_PROGRESS
        self.session.flush()

        self._record(project, LedgerAction.PROJECT_STARTED, caller)
        logger.info("project_started", extra={"project_id": project_id})
        return project_to_dto(project)

    def complete_project(self, caller: str, project_id: int) -> ProjectInfo:
        """
        Release custody to the freelancer and close the engagement.

        COMPLETED is terminal.

        Raises:
            ProjectNotFoundError, UnauthorizedError, InvalidStateError,
            InsufficientFundsError (custody short; unreachable while
            FUND_CONSERVATION holds).
        """
        project = self._locked_project(project_id)
        require_role(caller, project.client, Role.CLIENT, "complete_project")
        validate_transition(
            ENTITY_TYPE, str(project_id), project.state_enum, ProjectState.COMPLETED
        )

        self._ledger.transfer(CONTRACT_PRINCIPAL, project.freelancer, project.amount)
        project.state = ProjectState.COMPLETED
        project.completed_at = self._clock.now()
        self.session.flush()

        self._record(
            project,
            LedgerAction.PROJECT_COMPLETED,
            caller,
            amount=project.amount,
            completed_at=project.completed_at.isoformat(),
        )
        logger.info(
            "project_completed",
            extra={
                "project_id": project_id,
                "freelancer": project.freelancer,
                "amount": project.amount,
            },
        )
        return project_to_dto(project)
