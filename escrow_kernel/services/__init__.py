"""Kernel services: the imperative shell around the escrow state machines."""

from escrow_kernel.services.escrow_orchestrator import EscrowOrchestrator
from escrow_kernel.services.event_recorder import LedgerEventRecorder
from escrow_kernel.services.ledger_access import LedgerAccess
from escrow_kernel.services.milestone_service import MilestoneTrackingService
from escrow_kernel.services.project_escrow_service import ProjectEscrowService
from escrow_kernel.services.sequence_service import SequenceService
from escrow_kernel.services.skill_verification_service import SkillVerificationService

__all__ = [
    "EscrowOrchestrator",
    "LedgerAccess",
    "LedgerEventRecorder",
    "MilestoneTrackingService",
    "ProjectEscrowService",
    "SequenceService",
    "SkillVerificationService",
]
