"""
Module: escrow_kernel.models.balance
Responsibility: ORM persistence for the principal -> balance map, including
    the reserved custody principal.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - balance >= 0 (ck_balance_non_negative).
    - FUND_CONSERVATION: rows change only through LedgerAccess.transfer
      (sum preserved) or LedgerAccess.allocate (external entry of funds).
"""

from sqlalchemy import CheckConstraint, String
from sqlalchemy.orm import Mapped, mapped_column

from escrow_kernel.db.base import Base


class BalanceAccount(Base):
    """Spendable balance of one principal, in the smallest currency unit."""

    __tablename__ = "balances"

    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_balance_non_negative"),
    )

    principal: Mapped[str] = mapped_column(String(128), primary_key=True)

    balance: Mapped[int] = mapped_column(nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<BalanceAccount {self.principal}: {self.balance}>"
