"""
escrow_kernel.services.escrow_orchestrator -- Entry point for ledger operations.

Responsibility:
    Creates every engine service exactly once, wires them together and
    exposes one method per ledger operation.  Each mutating operation runs
    as one transaction: commit on success, rollback on any error.

Architecture position:
    Kernel > Services -- top of the service layer.  The only place where
    engine services are constructed and composed, and the only place in the
    kernel that commits.

Invariants enforced:
    - Single-instance lifecycle: one LedgerEventRecorder shared by all
      engines, so every mutation extends the same event chain.
    - Per-operation atomicity: every check runs before the first write and
      a failure rolls the whole transaction back (when auto_commit=True).

Failure modes:
    - Every EscrowKernelError raised by an engine is logged as
      ``operation_rejected`` and re-raised unchanged.
    - Unexpected exceptions are logged as ``operation_failed`` with the
      traceback and re-raised.

Usage:
    orchestrator = EscrowOrchestrator(session, admin=AdminAuthority("admin"))
    project_id = orchestrator.create_project("alice", "bob", 100)
    orchestrator.fund_project("alice", project_id)
"""

import time
from collections.abc import Callable
from typing import Any, TypeVar

from sqlalchemy.orm import Session

from escrow_kernel.domain.clock import Clock, SystemClock
from escrow_kernel.domain.dtos import (
    MilestoneInfo,
    ProjectInfo,
    SkillEndorsementInfo,
    SkillVerificationInfo,
)
from escrow_kernel.domain.identity import AdminAuthority
from escrow_kernel.exceptions import EscrowKernelError
from escrow_kernel.logging_config import LogContext, get_logger
from escrow_kernel.models.ledger_event import LedgerAction
from escrow_kernel.selectors.escrow_selector import EscrowSelector
from escrow_kernel.services.event_recorder import LedgerEventRecorder, LedgerTrail
from escrow_kernel.services.ledger_access import LedgerAccess
from escrow_kernel.services.milestone_service import MilestoneTrackingService
from escrow_kernel.services.project_escrow_service import ProjectEscrowService
from escrow_kernel.services.skill_verification_service import SkillVerificationService
from escrow_kernel.utils.hashing import record_key

logger = get_logger("services.orchestrator")

T = TypeVar("T")

# Actor recorded for funds entering the ledger from outside the escrow core.
SUBSTRATE_ACTOR = "ledger"


class EscrowOrchestrator:
    """
    Central factory and transaction boundary for the escrow engines.

    Contract:
        Mutating methods take the calling principal first.  Reads never
        commit and never take row locks.

    Non-goals:
        - Does NOT own the Session lifecycle (no close).
        - Does NOT retry; retry is the caller's concern.
    """

    def __init__(
        self,
        session: Session,
        admin: AdminAuthority,
        clock: Clock | None = None,
        auto_commit: bool = True,
    ) -> None:
        self._session = session
        self._clock = clock or SystemClock()
        self._admin = admin
        self._auto_commit = auto_commit

        # Foundational services
        self.recorder = LedgerEventRecorder(session, self._clock)
        self.ledger = LedgerAccess(session)
        self.selector = EscrowSelector(session)

        # Engines (milestones read projects through the ProjectSource seam)
        self.projects = ProjectEscrowService(session, self._clock, self.recorder)
        self.milestones = MilestoneTrackingService(
            session, self.projects, self._clock, self.recorder
        )
        self.skills = SkillVerificationService(
            session, self._admin, self._clock, self.recorder
        )

    @property
    def session(self) -> Session:
        return self._session

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def admin(self) -> AdminAuthority:
        return self._admin

    # ------------------------------------------------------------------
    # Transaction boundary
    # ------------------------------------------------------------------

    def _execute(
        self,
        operation: str,
        caller: str,
        fn: Callable[[], T],
        project_id: int | None = None,
    ) -> T:
        """Run one mutating operation as a single transaction."""
        with LogContext.operation(operation, caller, project_id):
            logger.debug("operation_started")
            t0 = time.monotonic()

            try:
                result = fn()
                if self._auto_commit:
                    self._session.commit()
            except EscrowKernelError as exc:
                duration_ms = round((time.monotonic() - t0) * 1000, 2)
                if self._auto_commit:
                    self._session.rollback()
                logger.warning(
                    "operation_rejected",
                    extra={
                        "duration_ms": duration_ms,
                        "error_code": exc.code,
                        "ledger_code": exc.ledger_code,
                        "reason": str(exc),
                    },
                )
                raise
            except Exception:
                duration_ms = round((time.monotonic() - t0) * 1000, 2)
                if self._auto_commit:
                    self._session.rollback()
                logger.error(
                    "operation_failed",
                    extra={"duration_ms": duration_ms},
                    exc_info=True,
                )
                raise

            duration_ms = round((time.monotonic() - t0) * 1000, 2)
            logger.info("operation_completed", extra={"duration_ms": duration_ms})
            return result

    # ------------------------------------------------------------------
    # Project Escrow Engine
    # ------------------------------------------------------------------

    def create_project(self, caller: str, freelancer: str, amount: int) -> int:
        return self._execute(
            "create_project",
            caller,
            lambda: self.projects.create_project(caller, freelancer, amount),
        )

    def fund_project(self, caller: str, project_id: int) -> ProjectInfo:
        return self._execute(
            "fund_project",
            caller,
            lambda: self.projects.fund_project(caller, project_id),
            project_id,
        )

    def start_project(self, caller: str, project_id: int) -> ProjectInfo:
        return self._execute(
            "start_project",
            caller,
            lambda: self.projects.start_project(caller, project_id),
            project_id,
        )

    def complete_project(self, caller: str, project_id: int) -> ProjectInfo:
        return self._execute(
            "complete_project",
            caller,
            lambda: self.projects.complete_project(caller, project_id),
            project_id,
        )

    def get_project(self, project_id: int) -> ProjectInfo | None:
        return self.projects.get_project(project_id)

    # ------------------------------------------------------------------
    # Milestone Tracking Engine
    # ------------------------------------------------------------------

    def create_milestone(
        self, caller: str, project_id: int, description: str, amount: int
    ) -> int:
        return self._execute(
            "create_milestone",
            caller,
            lambda: self.milestones.create_milestone(
                caller, project_id, description, amount
            ),
            project_id,
        )

    def approve_milestone(
        self, caller: str, project_id: int, milestone_id: int
    ) -> MilestoneInfo:
        return self._execute(
            "approve_milestone",
            caller,
            lambda: self.milestones.approve_milestone(caller, project_id, milestone_id),
            project_id,
        )

    def complete_milestone(
        self, caller: str, project_id: int, milestone_id: int
    ) -> MilestoneInfo:
        return self._execute(
            "complete_milestone",
            caller,
            lambda: self.milestones.complete_milestone(caller, project_id, milestone_id),
            project_id,
        )

    def pay_milestone(
        self, caller: str, project_id: int, milestone_id: int
    ) -> MilestoneInfo:
        return self._execute(
            "pay_milestone",
            caller,
            lambda: self.milestones.pay_milestone(caller, project_id, milestone_id),
            project_id,
        )

    def get_milestone(self, project_id: int, milestone_id: int) -> MilestoneInfo | None:
        return self.milestones.get_milestone(project_id, milestone_id)

    def get_milestone_count(self, project_id: int) -> int:
        return self.milestones.get_milestone_count(project_id)

    # ------------------------------------------------------------------
    # Skill Verification Engine
    # ------------------------------------------------------------------

    def verify_skill(self, caller: str, freelancer: str, skill: str) -> SkillVerificationInfo:
        return self._execute(
            "verify_skill",
            caller,
            lambda: self.skills.verify_skill(caller, freelancer, skill),
        )

    def endorse_skill(
        self,
        caller: str,
        freelancer: str,
        skill: str,
        rating: int,
        comment: str = "",
    ) -> SkillEndorsementInfo:
        return self._execute(
            "endorse_skill",
            caller,
            lambda: self.skills.endorse_skill(caller, freelancer, skill, rating, comment),
        )

    def is_skill_verified(self, freelancer: str, skill: str) -> bool:
        return self.skills.is_skill_verified(freelancer, skill)

    def get_skill_verification(
        self, freelancer: str, skill: str
    ) -> SkillVerificationInfo | None:
        return self.skills.get_skill_verification(freelancer, skill)

    def get_skill_endorsement(
        self, freelancer: str, skill: str, endorser: str
    ) -> SkillEndorsementInfo | None:
        return self.skills.get_skill_endorsement(freelancer, skill, endorser)

    # ------------------------------------------------------------------
    # Balances
    # ------------------------------------------------------------------

    def allocate_balance(
        self,
        principal: str,
        amount: int,
        source: str = "deposit",
    ) -> int:
        """
        Credit funds entering the ledger from the substrate.

        ``source`` labels the allocation on the event trail ("genesis",
        "deposit", ...).  Returns the new balance.
        """

        def _allocate() -> int:
            balance = self.ledger.allocate(principal, amount)
            self.recorder.record(
                entity_type="balance",
                entity_key=record_key(principal),
                action=LedgerAction.BALANCE_ALLOCATED,
                actor=SUBSTRATE_ACTOR,
                payload={"amount": amount, "source": source, "balance": balance},
            )
            return balance

        return self._execute("allocate_balance", SUBSTRATE_ACTOR, _allocate)

    def balance_of(self, principal: str) -> int:
        return self.ledger.balance_of(principal)

    def total_supply(self) -> int:
        return self.ledger.total_supply()

    # ------------------------------------------------------------------
    # Event trail
    # ------------------------------------------------------------------

    def validate_chain(self) -> bool:
        return self.recorder.validate_chain()

    def get_trail(self, entity_type: str, *key_parts: Any) -> LedgerTrail:
        """
        Event trail for one record, e.g. ``get_trail("milestone", 1, 2)``.
        """
        return self.recorder.get_trail(entity_type, record_key(*key_parts))
