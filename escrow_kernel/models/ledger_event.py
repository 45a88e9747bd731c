"""
Module: escrow_kernel.models.ledger_event
Responsibility: ORM persistence for the append-only, hash-chained trail of
    successful ledger mutations (project, milestone, skill and balance
    events).
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - seq is globally unique and monotonically increasing.
    - hash = H(entity_type | entity_key | action | payload_hash | prev_hash).
    - prev_hash is None only for the genesis event.

Audit relevance:
    The trail lets an auditor replay every transition a record went through,
    in order, with the acting principal and ledger timestamp.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import JSON, BigInteger, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from escrow_kernel.db.base import Base


class LedgerAction(str, Enum):
    """Types of recorded ledger mutations."""

    # Balances
    BALANCE_ALLOCATED = "balance_allocated"

    # Project lifecycle
    PROJECT_CREATED = "project_created"
    PROJECT_FUNDED = "project_funded"
    PROJECT_STARTED = "project_started"
    PROJECT_COMPLETED = "project_completed"

    # Milestone lifecycle
    MILESTONE_CREATED = "milestone_created"
    MILESTONE_APPROVED = "milestone_approved"
    MILESTONE_COMPLETED = "milestone_completed"
    MILESTONE_PAID = "milestone_paid"

    # Skills
    SKILL_VERIFIED = "skill_verified"
    SKILL_ENDORSED = "skill_endorsed"


class LedgerEvent(Base):
    """
    Ledger event with hash chain for tamper evidence.

    Contract:
        Rows are append-only, never updated or deleted.
    """

    __tablename__ = "ledger_events"

    __table_args__ = (
        Index("idx_ledger_event_entity", "entity_type", "entity_key"),
        Index("idx_ledger_event_action", "action"),
    )

    seq: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)

    # "project", "milestone", "skill_verification", "skill_endorsement", "balance"
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)

    # Canonical JSON-encoded record key (utils.hashing.record_key)
    entity_key: Mapped[str] = mapped_column(String(512), nullable=False)

    action: Mapped[LedgerAction] = mapped_column(String(50), nullable=False)

    actor: Mapped[str] = mapped_column(String(128), nullable=False)

    occurred_at: Mapped[datetime] = mapped_column(nullable=False)

    payload: Mapped[dict] = mapped_column(JSON, nullable=False)

    payload_hash: Mapped[str] = mapped_column(String(64), nullable=False)

    prev_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)

    hash: Mapped[str] = mapped_column(String(64), nullable=False)

    @property
    def action_value(self) -> str:
        if isinstance(self.action, LedgerAction):
            return self.action.value
        return self.action

    @property
    def is_genesis(self) -> bool:
        """Check if this is the first event in the hash chain."""
        return self.prev_hash is None

    def __repr__(self) -> str:
        return f"<LedgerEvent {self.seq} {self.action_value} on {self.entity_type}:{self.entity_key}>"
