"""
Module: escrow_kernel.db.base
Responsibility: Declarative base for all SQLAlchemy ORM models and the
    column types shared across the ledger schema.
Architecture position: Kernel > DB.  This is the lowest-level import target
    within the kernel.  ALL model files import from here.  This module MUST NOT
    import from models/, services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - Integer amounts: int maps to BigInteger.  Balances and amounts are
      counted in the smallest currency unit; NEVER use float.
    - Timezone-aware timestamps: UTCDateTime always hands back an aware UTC
      datetime, even on backends (SQLite) that store naive values.
    - Natural keys: every table declares its own primary key (integer id or
      a genuine composite key); there is no surrogate id column.
"""

from datetime import datetime, timezone
from typing import ClassVar

from sqlalchemy import BigInteger, DateTime
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.types import TypeDecorator


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware timestamp stored in UTC.

    Contract:
        Accepts aware datetimes only; normalizes to UTC on the way in and
        re-attaches UTC on the way out.

    Guarantees:
        - process_bind_param: rejects naive datetimes with ValueError.
        - process_result_value: always returns an aware UTC datetime.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError(f"Naive datetime not allowed on the ledger: {value!r}")
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class Base(DeclarativeBase):
    """
    Declarative base for all SQLAlchemy models.

    Guarantees:
        - datetime maps to UTCDateTime -- always timezone-aware.
        - int maps to BigInteger -- safe for balances and monotonic counters.
    """

    type_annotation_map: ClassVar[dict] = {
        datetime: UTCDateTime(),
        int: BigInteger,
    }
