"""Ledger models for the escrow kernel."""

from escrow_kernel.models.balance import BalanceAccount
from escrow_kernel.models.ledger_event import LedgerAction, LedgerEvent
from escrow_kernel.models.milestone import Milestone, ProjectMilestoneCounter
from escrow_kernel.models.project import Project
from escrow_kernel.models.skill import SkillEndorsement, SkillVerification

__all__ = [
    "BalanceAccount",
    "LedgerAction",
    "LedgerEvent",
    "Milestone",
    "ProjectMilestoneCounter",
    "Project",
    "SkillEndorsement",
    "SkillVerification",
]
