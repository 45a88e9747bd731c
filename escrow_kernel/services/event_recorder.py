"""
LedgerEventRecorder -- hash-chained trail of successful ledger mutations.

Responsibility:
    Appends one ``LedgerEvent`` per successful mutation with a monotonic
    sequence number and a SHA-256 chain link to its predecessor, and
    validates the chain on demand.

Architecture position:
    Kernel > Services -- imperative shell.  Called by every engine service
    after its checks pass and its rows are written, inside the same
    transaction, so an event exists iff the mutation committed.

Invariants enforced:
    EVENT_CHAIN_INTEGRITY -- hash = H(entity_type, entity_key, action,
        payload_hash, prev_hash); seq from SequenceService.

Failure modes:
    - AuditChainBrokenError from ``validate_chain`` on any mismatch.
"""

from dataclasses import dataclass
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from escrow_kernel.domain.clock import Clock, SystemClock
from escrow_kernel.domain.dtos import LedgerEventInfo
from escrow_kernel.exceptions import AuditChainBrokenError
from escrow_kernel.logging_config import get_logger
from escrow_kernel.models.ledger_event import LedgerAction, LedgerEvent
from escrow_kernel.services.sequence_service import SequenceService
from escrow_kernel.utils.hashing import hash_ledger_event, hash_payload

logger = get_logger("services.event_recorder")


@dataclass(frozen=True)
class LedgerTrail:
    """Ordered events for one record."""

    entity_type: str
    entity_key: str
    entries: tuple[LedgerEventInfo, ...]

    @property
    def is_empty(self) -> bool:
        return len(self.entries) == 0

    @property
    def actions(self) -> tuple[str, ...]:
        return tuple(e.action for e in self.entries)


def _to_info(event: LedgerEvent) -> LedgerEventInfo:
    return LedgerEventInfo(
        seq=event.seq,
        entity_type=event.entity_type,
        entity_key=event.entity_key,
        action=event.action_value,
        actor=event.actor,
        occurred_at=event.occurred_at,
        payload=dict(event.payload),
        hash=event.hash,
    )


class LedgerEventRecorder:
    """
    Service for creating and validating tamper-evident ledger events.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
        - Does NOT record rejected operations; those are logged only.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()
        self._sequence_service = SequenceService(session)

    def _get_last_hash(self) -> str | None:
        last_event = self._session.execute(
            select(LedgerEvent).order_by(LedgerEvent.seq.desc()).limit(1)
        ).scalar_one_or_none()
        return last_event.hash if last_event else None

    def record(
        self,
        entity_type: str,
        entity_key: str,
        action: LedgerAction,
        actor: str,
        payload: dict[str, Any] | None = None,
    ) -> LedgerEvent:
        """
        Append a ledger event linked to the current chain head.

        Postconditions:
            - A new row is flushed with seq strictly greater than every
              existing seq and a hash linking it to the previous head.
        """
        seq = self._sequence_service.next_value(SequenceService.LEDGER_EVENT)
        prev_hash = self._get_last_hash()

        payload_data = payload or {}
        computed_payload_hash = hash_payload(payload_data)

        event_hash = hash_ledger_event(
            entity_type=entity_type,
            entity_key=entity_key,
            action=action.value,
            payload_hash=computed_payload_hash,
            prev_hash=prev_hash,
        )

        event = LedgerEvent(
            seq=seq,
            entity_type=entity_type,
            entity_key=entity_key,
            action=action,
            actor=actor,
            occurred_at=self._clock.now(),
            payload=payload_data,
            payload_hash=computed_payload_hash,
            prev_hash=prev_hash,
            hash=event_hash,
        )
        self._session.add(event)
        self._session.flush()

        logger.info(
            "ledger_event_recorded",
            extra={
                "entity_type": entity_type,
                "entity_key": entity_key,
                "action": action.value,
                "seq": seq,
            },
        )
        return event

    def validate_chain(self) -> bool:
        """
        Validate the entire event chain.

        Raises:
            AuditChainBrokenError: If any stored hash or link is wrong.
        """
        events = self._session.execute(
            select(LedgerEvent).order_by(LedgerEvent.seq)
        ).scalars().all()

        expected_prev: str | None = None
        for event in events:
            if event.prev_hash != expected_prev:
                logger.critical("ledger_chain_broken", extra={"seq": event.seq})
                raise AuditChainBrokenError(
                    event.seq, expected_prev or "None", event.prev_hash or "None"
                )

            if hash_payload(event.payload) != event.payload_hash:
                logger.critical("ledger_chain_broken", extra={"seq": event.seq})
                raise AuditChainBrokenError(
                    event.seq, hash_payload(event.payload), event.payload_hash
                )

            expected_hash = hash_ledger_event(
                entity_type=event.entity_type,
                entity_key=event.entity_key,
                action=event.action_value,
                payload_hash=event.payload_hash,
                prev_hash=event.prev_hash,
            )
            if event.hash != expected_hash:
                logger.critical("ledger_chain_broken", extra={"seq": event.seq})
                raise AuditChainBrokenError(event.seq, expected_hash, event.hash)

            expected_prev = event.hash

        logger.info("ledger_chain_valid", extra={"event_count": len(events)})
        return True

    def get_trail(self, entity_type: str, entity_key: str) -> LedgerTrail:
        """Return every event recorded for one record, oldest first."""
        events = self._session.execute(
            select(LedgerEvent)
            .where(
                LedgerEvent.entity_type == entity_type,
                LedgerEvent.entity_key == entity_key,
            )
            .order_by(LedgerEvent.seq)
        ).scalars().all()

        return LedgerTrail(
            entity_type=entity_type,
            entity_key=entity_key,
            entries=tuple(_to_info(e) for e in events),
        )
