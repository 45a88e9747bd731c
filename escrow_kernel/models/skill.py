"""
Module: escrow_kernel.models.skill
Responsibility: ORM persistence for admin-attested skill verifications and
    peer endorsements.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - One verification per (freelancer, skill); re-verification overwrites.
    - One endorsement per (freelancer, skill, endorser); re-endorsing
      overwrites.
    - 0 <= rating <= 5 (ck_endorsement_rating_range).
    - An endorsement row only exists for a verified (freelancer, skill);
      enforced by SkillVerificationService.
"""

from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from escrow_kernel.db.base import Base


class SkillVerification(Base):
    """Admin attestation that a freelancer holds a skill."""

    __tablename__ = "skill_verifications"

    freelancer: Mapped[str] = mapped_column(String(128), primary_key=True)

    skill: Mapped[str] = mapped_column(String(100), primary_key=True)

    # Always True once written; there is no revocation path
    verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    verified_at: Mapped[datetime] = mapped_column(nullable=False)

    # Admin principal at the time of verification
    verifier: Mapped[str] = mapped_column(String(128), nullable=False)

    def __repr__(self) -> str:
        return f"<SkillVerification {self.freelancer}:{self.skill} by {self.verifier}>"


class SkillEndorsement(Base):
    """Rating and comment from one endorser on a verified skill."""

    __tablename__ = "skill_endorsements"

    __table_args__ = (
        CheckConstraint(
            "rating >= 0 AND rating <= 5", name="ck_endorsement_rating_range"
        ),
        Index("idx_endorsement_skill", "freelancer", "skill"),
    )

    freelancer: Mapped[str] = mapped_column(String(128), primary_key=True)

    skill: Mapped[str] = mapped_column(String(100), primary_key=True)

    endorser: Mapped[str] = mapped_column(String(128), primary_key=True)

    rating: Mapped[int] = mapped_column(nullable=False)

    comment: Mapped[str] = mapped_column(Text, nullable=False, default="")

    endorsed_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return (
            f"<SkillEndorsement {self.freelancer}:{self.skill} "
            f"by {self.endorser} ({self.rating})>"
        )
