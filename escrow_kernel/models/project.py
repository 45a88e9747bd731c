"""
Module: escrow_kernel.models.project
Responsibility: ORM persistence for escrowed engagements between a client
    and a freelancer.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/lifecycle.py only.

Invariants enforced:
    - amount > 0 (ck_project_amount_positive); fixed at creation.
    - completed_at is set iff state == COMPLETED (set by
      ProjectEscrowService.complete_project, never elsewhere).
    - Rows are never deleted.

Failure modes:
    - IntegrityError on duplicate id (ids come from SequenceService).
"""

from datetime import datetime

from sqlalchemy import BigInteger, CheckConstraint, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from escrow_kernel.db.base import Base
from escrow_kernel.domain.lifecycle import ProjectState


class Project(Base):
    """
    Escrowed engagement.

    Contract:
        Created by the client in state CREATED.  Mutated only through
        ProjectEscrowService: fund/complete by the client, start by the
        freelancer.
    """

    __tablename__ = "projects"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_project_amount_positive"),
        Index("idx_project_client", "client"),
        Index("idx_project_freelancer", "freelancer"),
        Index("idx_project_state", "state"),
    )

    # Ledger-wide monotonic id, starts at 1
    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)

    client: Mapped[str] = mapped_column(String(128), nullable=False)

    freelancer: Mapped[str] = mapped_column(String(128), nullable=False)

    # Smallest currency unit
    amount: Mapped[int] = mapped_column(nullable=False)

    state: Mapped[ProjectState] = mapped_column(
        String(20),
        nullable=False,
        default=ProjectState.CREATED,
    )

    created_at: Mapped[datetime] = mapped_column(nullable=False)

    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    @property
    def state_enum(self) -> ProjectState:
        """Return state as ProjectState (normalizes raw DB strings)."""
        return ProjectState(self.state)

    def __repr__(self) -> str:
        return f"<Project {self.id}: {self.client} -> {self.freelancer} ({self.state_enum.value})>"
