"""
Data Transfer Objects for the escrow kernel.

Immutable snapshots of ledger records.  Services and selectors return
these instead of ORM rows, so callers cannot mutate ledger state by
accident and engines can depend on each other through plain values.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from escrow_kernel.domain.lifecycle import MilestoneState, ProjectState, is_terminal


@dataclass(frozen=True)
class ProjectInfo:
    """Snapshot of a Project record."""

    id: int
    client: str
    freelancer: str
    amount: int
    state: ProjectState
    created_at: datetime
    completed_at: datetime | None

    @property
    def is_terminal(self) -> bool:
        return is_terminal(self.state)


@dataclass(frozen=True)
class MilestoneInfo:
    """Snapshot of a Milestone record."""

    project_id: int
    milestone_id: int
    description: str
    amount: int
    state: MilestoneState
    created_at: datetime
    completed_at: datetime | None
    paid_at: datetime | None

    @property
    def is_terminal(self) -> bool:
        return is_terminal(self.state)


@dataclass(frozen=True)
class SkillVerificationInfo:
    """Snapshot of a SkillVerification record."""

    freelancer: str
    skill: str
    verified: bool
    verified_at: datetime
    verifier: str


@dataclass(frozen=True)
class SkillEndorsementInfo:
    """Snapshot of a SkillEndorsement record."""

    freelancer: str
    skill: str
    endorser: str
    rating: int
    comment: str
    endorsed_at: datetime


@dataclass(frozen=True)
class LedgerEventInfo:
    """One entry of the hash-chained ledger event trail."""

    seq: int
    entity_type: str
    entity_key: str
    action: str
    actor: str
    occurred_at: datetime
    payload: dict[str, Any]
    hash: str
