"""
Module: escrow_kernel.models.milestone
Responsibility: ORM persistence for per-project milestones and the
    per-project milestone counter.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/lifecycle.py only.

Invariants enforced:
    - Milestones are keyed by the composite (project_id, milestone_id).
    - completed_at / paid_at are written exactly once, on entering
      COMPLETED / PAID respectively.
    - ProjectMilestoneCounter.milestone_count only ever increases by one per
      successful milestone creation (ck_milestone_count_non_negative
      guards the floor).
"""

from datetime import datetime

from sqlalchemy import BigInteger, CheckConstraint, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from escrow_kernel.db.base import Base
from escrow_kernel.domain.lifecycle import MilestoneState


class Milestone(Base):
    """
    Sub-deliverable of a project with its own status marker.

    Contract:
        Created by the project's client.  Approved and paid by the client,
        completed by the freelancer.  Paying a milestone marks status only;
        no currency moves.
    """

    __tablename__ = "milestones"

    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_milestone_amount_non_negative"),
        Index("idx_milestone_state", "state"),
    )

    project_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)

    # Per-project counter value, starts at 1
    milestone_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)

    description: Mapped[str] = mapped_column(Text, nullable=False)

    # Not reconciled against the parent project amount
    amount: Mapped[int] = mapped_column(nullable=False)

    state: Mapped[MilestoneState] = mapped_column(
        String(20),
        nullable=False,
        default=MilestoneState.CREATED,
    )

    created_at: Mapped[datetime] = mapped_column(nullable=False)

    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    paid_at: Mapped[datetime | None] = mapped_column(nullable=True)

    @property
    def state_enum(self) -> MilestoneState:
        """Return state as MilestoneState (normalizes raw DB strings)."""
        return MilestoneState(self.state)

    def __repr__(self) -> str:
        return (
            f"<Milestone {self.project_id}/{self.milestone_id} "
            f"({self.state_enum.value})>"
        )


class ProjectMilestoneCounter(Base):
    """
    Number of milestones ever created for a project.

    The row is created on first milestone creation and locked for update
    on every later one.
    """

    __tablename__ = "project_milestone_counters"

    __table_args__ = (
        CheckConstraint("milestone_count >= 0", name="ck_milestone_count_non_negative"),
    )

    project_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)

    milestone_count: Mapped[int] = mapped_column(nullable=False, default=0)
