"""
Module: escrow_kernel.selectors.escrow_selector
Responsibility: Read-only queries across projects, milestones, endorsements
    and balances: per-principal project listings, per-project milestone
    listings, endorsement aggregates and custody totals.
Architecture position: Kernel > Selectors.  May import from models/,
    domain DTOs and selectors/base.py.

Invariants observable here:
    FUND_CONSERVATION -- ``escrowed_total()`` (sum of FUNDED and IN_PROGRESS
        project amounts) equals the custody principal's balance, and
        ``total_supply()`` only changes through allocation.

Failure modes:
    - Empty lists, zero totals or None averages when nothing matches.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from escrow_kernel.domain.dtos import MilestoneInfo, ProjectInfo, SkillEndorsementInfo
from escrow_kernel.domain.lifecycle import ProjectState
from escrow_kernel.models.balance import BalanceAccount
from escrow_kernel.models.milestone import Milestone
from escrow_kernel.models.project import Project
from escrow_kernel.models.skill import SkillEndorsement
from escrow_kernel.selectors.base import BaseSelector

# States in which a project's amount sits in custody.
ESCROWED_STATES = (ProjectState.FUNDED.value, ProjectState.IN_PROGRESS.value)

_RATING_QUANTUM = Decimal("0.01")


@dataclass(frozen=True)
class PrincipalBalance:
    """Balance of a single principal."""

    principal: str
    balance: int


def _project_info(row: Project) -> ProjectInfo:
    return ProjectInfo(
        id=row.id,
        client=row.client,
        freelancer=row.freelancer,
        amount=row.amount,
        state=row.state_enum,
        created_at=row.created_at,
        completed_at=row.completed_at,
    )


def _milestone_info(row: Milestone) -> MilestoneInfo:
    return MilestoneInfo(
        project_id=row.project_id,
        milestone_id=row.milestone_id,
        description=row.description,
        amount=row.amount,
        state=row.state_enum,
        created_at=row.created_at,
        completed_at=row.completed_at,
        paid_at=row.paid_at,
    )


class EscrowSelector(BaseSelector[Project]):
    """
    Selector for escrow listings and totals.

    Contract:
        Results are ordered by primary key so repeated calls over unchanged
        ledger state return identical lists.
    """

    def __init__(self, session: Session):
        super().__init__(session)

    def projects_for(self, principal: str) -> list[ProjectInfo]:
        """Projects where ``principal`` is the client or the freelancer."""
        rows = self.session.execute(
            select(Project)
            .where(or_(Project.client == principal, Project.freelancer == principal))
            .order_by(Project.id)
        ).scalars().all()
        return [_project_info(row) for row in rows]

    def milestones_for(self, project_id: int) -> list[MilestoneInfo]:
        rows = self.session.execute(
            select(Milestone)
            .where(Milestone.project_id == project_id)
            .order_by(Milestone.milestone_id)
        ).scalars().all()
        return [_milestone_info(row) for row in rows]

    def endorsements_for(self, freelancer: str, skill: str) -> list[SkillEndorsementInfo]:
        rows = self.session.execute(
            select(SkillEndorsement)
            .where(
                SkillEndorsement.freelancer == freelancer,
                SkillEndorsement.skill == skill,
            )
            .order_by(SkillEndorsement.endorser)
        ).scalars().all()
        return [
            SkillEndorsementInfo(
                freelancer=row.freelancer,
                skill=row.skill,
                endorser=row.endorser,
                rating=row.rating,
                comment=row.comment,
                endorsed_at=row.endorsed_at,
            )
            for row in rows
        ]

    def average_rating(self, freelancer: str, skill: str) -> Decimal | None:
        """
        Mean endorsement rating, rounded half-up to two places.

        Returns:
            None if the skill has no endorsements.
        """
        total, count = self.session.execute(
            select(func.sum(SkillEndorsement.rating), func.count()).where(
                SkillEndorsement.freelancer == freelancer,
                SkillEndorsement.skill == skill,
            )
        ).one()
        if not count:
            return None
        return (Decimal(total) / Decimal(count)).quantize(
            _RATING_QUANTUM, rounding=ROUND_HALF_UP
        )

    def balances(self) -> list[PrincipalBalance]:
        """Every balance on the ledger, custody included."""
        rows = self.session.execute(
            select(BalanceAccount).order_by(BalanceAccount.principal)
        ).scalars().all()
        return [PrincipalBalance(principal=r.principal, balance=r.balance) for r in rows]

    def total_supply(self) -> int:
        return self.session.execute(
            select(func.coalesce(func.sum(BalanceAccount.balance), 0))
        ).scalar_one()

    def escrowed_total(self) -> int:
        """Sum of amounts of projects currently held in custody."""
        return self.session.execute(
            select(func.coalesce(func.sum(Project.amount), 0)).where(
                Project.state.in_(ESCROWED_STATES)
            )
        ).scalar_one()
