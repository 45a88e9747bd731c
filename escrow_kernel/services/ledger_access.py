"""
LedgerAccess -- typed key-value access over ledger records and balances.

Responsibility:
    The Ledger Access Layer.  Provides get/has/put over ORM records keyed
    by their real primary key (an int or a tuple for composite keys) and
    the balance map, including the reserved custody principal.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.  Used by every
    engine service; never commits.

Invariants enforced:
    FUND_CONSERVATION -- ``transfer`` checks the sender's balance first and
        then applies the debit and credit together; a failed check leaves
        both rows untouched.
    Non-negative balances -- every debit is preceded by a funds check
        (and the table carries ck_balance_non_negative).

Failure modes:
    - InsufficientFundsError: sender balance < amount.
    - InvalidAmountError: non-positive or non-integer transfer or allocation.
    - ReservedPrincipalError: allocation to the custody principal.

Audit relevance:
    ``allocate`` is the only path by which funds enter the ledger; it is
    recorded as a BALANCE_ALLOCATED ledger event by its caller.
"""

from typing import Any, TypeVar

from sqlalchemy import func, select

from escrow_kernel.db.base import Base
from escrow_kernel.domain.amounts import ensure_amount
from escrow_kernel.domain.identity import ensure_not_reserved
from escrow_kernel.exceptions import InsufficientFundsError
from escrow_kernel.logging_config import get_logger
from escrow_kernel.models.balance import BalanceAccount
from escrow_kernel.services.base import BaseService

logger = get_logger("services.ledger_access")

RecordType = TypeVar("RecordType", bound=Base)


class LedgerAccess(BaseService):
    """
    Key-value facade over the ledger session.

    Contract:
        Reads may take a row lock (``for_update=True``) so a following
        check-then-mutate sequence cannot interleave with another writer.
        Writes are flushed into the caller's transaction.
    """

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def get(
        self,
        model: type[RecordType],
        key: Any,
        *,
        for_update: bool = False,
    ) -> RecordType | None:
        """Fetch a record by primary key (scalar or tuple), or None."""
        return self.session.get(
            model,
            key,
            with_for_update=True if for_update else None,
            populate_existing=for_update,
        )

    def has(self, model: type[Base], key: Any) -> bool:
        return self.get(model, key) is not None

    def put(self, record: RecordType) -> RecordType:
        """Insert or overwrite a record under its primary key."""
        merged = self.session.merge(record)
        self.session.flush()
        return merged

    # ------------------------------------------------------------------
    # Balances
    # ------------------------------------------------------------------

    def balance_of(self, principal: str) -> int:
        """Current balance, 0 for a principal never seen on the ledger."""
        account = self.get(BalanceAccount, principal)
        return account.balance if account is not None else 0

    def total_supply(self) -> int:
        """Sum of every balance on the ledger, custody included."""
        return self.session.execute(
            select(func.coalesce(func.sum(BalanceAccount.balance), 0))
        ).scalar_one()

    def _account(self, principal: str) -> BalanceAccount:
        account = self.get(BalanceAccount, principal, for_update=True)
        if account is None:
            account = BalanceAccount(principal=principal, balance=0)
            self.session.add(account)
        return account

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        """
        Move ``amount`` from ``sender`` to ``recipient``.

        Preconditions: amount > 0.
        Postconditions: sender debited and recipient credited by exactly
            ``amount``; the ledger total is unchanged.

        Raises:
            InvalidAmountError: If amount is not a positive int.
            InsufficientFundsError: If the sender cannot cover amount.
                Nothing is mutated in that case.
        """
        ensure_amount(amount, minimum=1, reason="transfer amount must be positive")

        source = self.get(BalanceAccount, sender, for_update=True)
        available = source.balance if source is not None else 0
        if source is None or available < amount:
            raise InsufficientFundsError(
                principal=sender, available=available, required=amount
            )

        target = self._account(recipient)
        source.balance -= amount
        target.balance += amount
        self.session.flush()

        logger.debug(
            "balance_transferred",
            extra={"sender": sender, "recipient": recipient, "amount": amount},
        )

    def allocate(self, principal: str, amount: int) -> int:
        """
        Credit funds entering the ledger from outside the escrow core.

        Never called by the engines; used for genesis balances and
        substrate deposits.  Returns the new balance.

        Raises:
            InvalidAmountError: If amount is not a positive int.
            ReservedPrincipalError: If principal is the custody principal.
        """
        ensure_amount(amount, minimum=1, reason="allocation must be positive")
        ensure_not_reserved(principal, "allocation target")

        account = self._account(principal)
        account.balance += amount
        self.session.flush()

        logger.info(
            "balance_allocated",
            extra={"principal": principal, "amount": amount, "balance": account.balance},
        )
        return account.balance
