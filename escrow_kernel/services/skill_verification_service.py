"""
SkillVerificationService -- the Skill Verification Engine.

Responsibility:
    Admin-attested skill verifications and peer endorsements keyed by
    (freelancer, skill) and (freelancer, skill, endorser).

Architecture position:
    Kernel > Services -- imperative shell.  Receives the admin as an
    explicit AdminAuthority; holds no process-wide admin state.

Check order:
    verify_skill:  authorization -> write.
    endorse_skill: rating range -> verification exists -> write.

Invariants enforced:
    ROLE_EXCLUSIVITY   -- only the admin verifies.
    ENDORSEMENT_GATING -- no endorsement row without a verification row.

Failure modes:
    - UnauthorizedError, InvalidRatingError, SkillNotVerifiedError.

Non-goals:
    - Revoking a verification.
    - Forbidding self-endorsement; any principal may endorse.
"""

from sqlalchemy.orm import Session

from escrow_kernel.domain.clock import Clock, SystemClock
from escrow_kernel.domain.dtos import SkillEndorsementInfo, SkillVerificationInfo
from escrow_kernel.domain.amounts import ensure_rating
from escrow_kernel.domain.identity import AdminAuthority
from escrow_kernel.exceptions import SkillNotVerifiedError
from escrow_kernel.logging_config import get_logger
from escrow_kernel.models.ledger_event import LedgerAction
from escrow_kernel.models.skill import SkillEndorsement, SkillVerification
from escrow_kernel.services.base import BaseService
from escrow_kernel.services.event_recorder import LedgerEventRecorder
from escrow_kernel.services.ledger_access import LedgerAccess
from escrow_kernel.utils.hashing import record_key

logger = get_logger("services.skill_verification")


def verification_to_dto(row: SkillVerification) -> SkillVerificationInfo:
    return SkillVerificationInfo(
        freelancer=row.freelancer,
        skill=row.skill,
        verified=row.verified,
        verified_at=row.verified_at,
        verifier=row.verifier,
    )


def endorsement_to_dto(row: SkillEndorsement) -> SkillEndorsementInfo:
    return SkillEndorsementInfo(
        freelancer=row.freelancer,
        skill=row.skill,
        endorser=row.endorser,
        rating=row.rating,
        comment=row.comment,
        endorsed_at=row.endorsed_at,
    )


class SkillVerificationService(BaseService):
    """
    Verification and endorsement of freelancer skills.

    Contract:
        Re-verifying or re-endorsing overwrites the earlier record.
    """

    def __init__(
        self,
        session: Session,
        admin: AdminAuthority,
        clock: Clock | None = None,
        recorder: LedgerEventRecorder | None = None,
    ):
        super().__init__(session)
        self._admin = admin
        self._clock = clock or SystemClock()
        self._ledger = LedgerAccess(session)
        self._recorder = recorder or LedgerEventRecorder(session, self._clock)

    @property
    def admin(self) -> AdminAuthority:
        return self._admin

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def is_skill_verified(self, freelancer: str, skill: str) -> bool:
        row = self._ledger.get(SkillVerification, (freelancer, skill))
        return row is not None and row.verified

    def get_skill_verification(
        self, freelancer: str, skill: str
    ) -> SkillVerificationInfo | None:
        row = self._ledger.get(SkillVerification, (freelancer, skill))
        return verification_to_dto(row) if row is not None else None

    def get_skill_endorsement(
        self, freelancer: str, skill: str, endorser: str
    ) -> SkillEndorsementInfo | None:
        row = self._ledger.get(SkillEndorsement, (freelancer, skill, endorser))
        return endorsement_to_dto(row) if row is not None else None

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def verify_skill(self, caller: str, freelancer: str, skill: str) -> SkillVerificationInfo:
        """
        Attest that ``freelancer`` holds ``skill``.

        Raises:
            UnauthorizedError: If caller is not the current admin.
        """
        self._admin.require_admin(caller, "verify_skill")

        row = self._ledger.put(
            SkillVerification(
                freelancer=freelancer,
                skill=skill,
                verified=True,
                verified_at=self._clock.now(),
                verifier=caller,
            )
        )

        self._recorder.record(
            entity_type="skill_verification",
            entity_key=record_key(freelancer, skill),
            action=LedgerAction.SKILL_VERIFIED,
            actor=caller,
            payload={"freelancer": freelancer, "skill": skill},
        )
        logger.info(
            "skill_verified",
            extra={"freelancer": freelancer, "skill": skill},
        )
        return verification_to_dto(row)

    def endorse_skill(
        self,
        caller: str,
        freelancer: str,
        skill: str,
        rating: int,
        comment: str = "",
    ) -> SkillEndorsementInfo:
        """
        Record ``caller``'s rating of a verified skill.

        Raises:
            InvalidRatingError: If rating is not an int in [0, 5].
            SkillNotVerifiedError: If (freelancer, skill) was never verified.
        """
        ensure_rating(rating)
        if not self.is_skill_verified(freelancer, skill):
            raise SkillNotVerifiedError(freelancer, skill)

        row = self._ledger.put(
            SkillEndorsement(
                freelancer=freelancer,
                skill=skill,
                endorser=caller,
                rating=rating,
                comment=comment,
                endorsed_at=self._clock.now(),
            )
        )

        self._recorder.record(
            entity_type="skill_endorsement",
            entity_key=record_key(freelancer, skill, caller),
            action=LedgerAction.SKILL_ENDORSED,
            actor=caller,
            payload={"rating": rating, "comment": comment},
        )
        logger.info(
            "skill_endorsed",
            extra={"freelancer": freelancer, "skill": skill, "rating": rating},
        )
        return endorsement_to_dto(row)
