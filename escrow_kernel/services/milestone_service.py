"""
MilestoneTrackingService -- the Milestone Tracking Engine.

Responsibility:
    Owns per-project milestones: CREATED -> APPROVED -> COMPLETED -> PAID,
    plus the per-project milestone counter.

Architecture position:
    Kernel > Services -- imperative shell.  Depends on a ProjectSource for
    project existence and the client/freelancer principals, never on the
    Project Escrow Engine's tables.

Check order (every call):
    project existence -> authorization -> milestone existence -> state.
    Project roles are read live from the ProjectSource on every call; an
    unresolvable project fails closed with ProjectNotFoundError.

Invariants enforced:
    TRANSITION_MONOTONICITY, ROLE_EXCLUSIVITY, COUNTER_MONOTONICITY.
    completed_at / paid_at are written exactly once.

Non-goals:
    - Milestone amounts are not reconciled against the project amount.
    - pay_milestone marks status only; it moves no currency.  Project-level
      completion remains the sole release of escrowed funds.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from escrow_kernel.domain.clock import Clock, SystemClock
from escrow_kernel.domain.dtos import MilestoneInfo, ProjectInfo
from escrow_kernel.domain.amounts import ensure_amount
from escrow_kernel.domain.identity import Role, require_role
from escrow_kernel.domain.lifecycle import MilestoneState, validate_transition
from escrow_kernel.domain.project_source import ProjectSource
from escrow_kernel.exceptions import MilestoneNotFoundError, ProjectNotFoundError
from escrow_kernel.logging_config import get_logger
from escrow_kernel.models.ledger_event import LedgerAction
from escrow_kernel.models.milestone import Milestone, ProjectMilestoneCounter
from escrow_kernel.services.base import BaseService
from escrow_kernel.services.event_recorder import LedgerEventRecorder
from escrow_kernel.services.ledger_access import LedgerAccess
from escrow_kernel.utils.hashing import record_key

logger = get_logger("services.milestone")

ENTITY_TYPE = "milestone"


def milestone_to_dto(milestone: Milestone) -> MilestoneInfo:
    """Convert ORM Milestone to MilestoneInfo DTO."""
    return MilestoneInfo(
        project_id=milestone.project_id,
        milestone_id=milestone.milestone_id,
        description=milestone.description,
        amount=milestone.amount,
        state=milestone.state_enum,
        created_at=milestone.created_at,
        completed_at=milestone.completed_at,
        paid_at=milestone.paid_at,
    )


class MilestoneTrackingService(BaseService):
    """
    Per-project milestone lifecycle.

    Contract:
        Client-only: create, approve, pay.  Freelancer-only: complete.
    """

    def __init__(
        self,
        session: Session,
        projects: ProjectSource,
        clock: Clock | None = None,
        recorder: LedgerEventRecorder | None = None,
    ):
        super().__init__(session)
        self._projects = projects
        self._clock = clock or SystemClock()
        self._ledger = LedgerAccess(session)
        self._recorder = recorder or LedgerEventRecorder(session, self._clock)

    def _resolve_project(self, project_id: int) -> ProjectInfo:
        project = self._projects.get_project(project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)
        return project

    def _locked_milestone(self, project_id: int, milestone_id: int) -> Milestone:
        milestone = self._ledger.get(
            Milestone, (project_id, milestone_id), for_update=True
        )
        if milestone is None:
            raise MilestoneNotFoundError(project_id, milestone_id)
        return milestone

    def _record(self, milestone: Milestone, action: LedgerAction, actor: str, **payload) -> None:
        self._recorder.record(
            entity_type=ENTITY_TYPE,
            entity_key=record_key(milestone.project_id, milestone.milestone_id),
            action=action,
            actor=actor,
            payload={"state": milestone.state_enum.value, **payload},
        )

    def _advance(
        self,
        caller: str,
        project_id: int,
        milestone_id: int,
        role: Role,
        target: MilestoneState,
        action: str,
    ) -> Milestone:
        """Shared check sequence for approve/complete/pay."""
        project = self._resolve_project(project_id)
        holder = project.client if role is Role.CLIENT else project.freelancer
        require_role(caller, holder, role, action)

        milestone = self._locked_milestone(project_id, milestone_id)
        validate_transition(
            ENTITY_TYPE,
            f"{project_id}/{milestone_id}",
            milestone.state_enum,
            target,
        )
        milestone.state = target
        return milestone

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_milestone(self, project_id: int, milestone_id: int) -> MilestoneInfo | None:
        milestone = self._ledger.get(Milestone, (project_id, milestone_id))
        return milestone_to_dto(milestone) if milestone is not None else None

    def get_milestone_count(self, project_id: int) -> int:
        """Milestones ever created for the project (0 if none)."""
        count = self.session.execute(
            select(ProjectMilestoneCounter.milestone_count).where(
                ProjectMilestoneCounter.project_id == project_id
            )
        ).scalar_one_or_none()
        return count or 0

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def create_milestone(
        self,
        caller: str,
        project_id: int,
        description: str,
        amount: int,
    ) -> int:
        """
        Add the next milestone to a project.

        Returns:
            The new milestone id (per-project counter, starting at 1).

        Raises:
            ProjectNotFoundError, UnauthorizedError, InvalidAmountError.
        """
        project = self._resolve_project(project_id)
        require_role(caller, project.client, Role.CLIENT, "create_milestone")
        ensure_amount(amount, minimum=0, reason="milestone amount must not be negative")

        counter = self._ledger.get(ProjectMilestoneCounter, project_id, for_update=True)
        if counter is None:
            counter = ProjectMilestoneCounter(project_id=project_id, milestone_count=0)
            self.session.add(counter)
        counter.milestone_count += 1
        milestone_id = counter.milestone_count

        milestone = Milestone(
            project_id=project_id,
            milestone_id=milestone_id,
            description=description,
            amount=amount,
            state=MilestoneState.CREATED,
            created_at=self._clock.now(),
            completed_at=None,
            paid_at=None,
        )
        self.session.add(milestone)
        self.session.flush()

        self._record(
            milestone,
            LedgerAction.MILESTONE_CREATED,
            caller,
            description=description,
            amount=amount,
        )
        logger.info(
            "milestone_created",
            extra={"project_id": project_id, "milestone_id": milestone_id, "amount": amount},
        )
        return milestone_id

    def approve_milestone(self, caller: str, project_id: int, milestone_id: int) -> MilestoneInfo:
        """
        Client signs off the milestone scope.

        Raises:
            ProjectNotFoundError, UnauthorizedError, MilestoneNotFoundError,
            InvalidStateError.
        """
        milestone = self._advance(
            caller, project_id, milestone_id,
            Role.CLIENT, MilestoneState.APPROVED, "approve_milestone",
        )
        self.session.flush()

        self._record(milestone, LedgerAction.MILESTONE_APPROVED, caller)
        logger.info(
            "milestone_approved",
            extra={"project_id": project_id, "milestone_id": milestone_id},
        )
        return milestone_to_dto(milestone)

    def complete_milestone(self, caller: str, project_id: int, milestone_id: int) -> MilestoneInfo:
        """
        Freelancer delivers the milestone.

        Raises:
            ProjectNotFoundError, UnauthorizedError, MilestoneNotFoundError,
            InvalidStateError.
        """
        milestone = self._advance(
            caller, project_id, milestone_id,
            Role.FREELANCER, MilestoneState.COMPLETED, "complete_milestone",
        )
        milestone.completed_at = self._clock.now()
        self.session.flush()

        self._record(
            milestone,
            LedgerAction.MILESTONE_COMPLETED,
            caller,
            completed_at=milestone.completed_at.isoformat(),
        )
        logger.info(
            "milestone_completed",
            extra={"project_id": project_id, "milestone_id": milestone_id},
        )
        return milestone_to_dto(milestone)

    def pay_milestone(self, caller: str, project_id: int, milestone_id: int) -> MilestoneInfo:
        """
        Client marks the milestone paid.  Status marker only.

        Raises:
            ProjectNotFoundError, UnauthorizedError, MilestoneNotFoundError,
            InvalidStateError.
        """
        milestone = self._advance(
            caller, project_id, milestone_id,
            Role.CLIENT, MilestoneState.PAID, "pay_milestone",
        )
        milestone.paid_at = self._clock.now()
        self.session.flush()

        self._record(
            milestone,
            LedgerAction.MILESTONE_PAID,
            caller,
            amount=milestone.amount,
            paid_at=milestone.paid_at.isoformat(),
        )
        logger.info(
            "milestone_paid",
            extra={"project_id": project_id, "milestone_id": milestone_id},
        )
        return milestone_to_dto(milestone)
