"""
Tests for LedgerAccess.

Covers:
- Typed get/has/put over scalar and composite keys
- Balance transfers: conservation, funds check, no partial mutation
- Allocation as the single entry point of funds
"""

import pytest

from escrow_kernel.domain.identity import CONTRACT_PRINCIPAL
from escrow_kernel.exceptions import (
    InsufficientFundsError,
    InvalidAmountError,
    ReservedPrincipalError,
)
from escrow_kernel.models.balance import BalanceAccount
from escrow_kernel.models.skill import SkillVerification
from escrow_kernel.services.ledger_access import LedgerAccess


@pytest.fixture
def ledger(session) -> LedgerAccess:
    return LedgerAccess(session)


class TestRecords:
    """Tests for get/has/put."""

    def test_missing_record(self, ledger):
        assert ledger.get(SkillVerification, ("bob", "python")) is None
        assert ledger.has(SkillVerification, ("bob", "python")) is False

    def test_put_then_get_by_tuple_key(self, ledger, deterministic_clock):
        ledger.put(
            SkillVerification(
                freelancer="bob",
                skill="python",
                verified=True,
                verified_at=deterministic_clock.now(),
                verifier="admin",
            )
        )

        row = ledger.get(SkillVerification, ("bob", "python"))
        assert row.verifier == "admin"
        assert ledger.has(SkillVerification, ("bob", "python")) is True

    def test_put_overwrites(self, ledger, deterministic_clock):
        for verifier in ("admin", "root"):
            ledger.put(
                SkillVerification(
                    freelancer="bob",
                    skill="python",
                    verified=True,
                    verified_at=deterministic_clock.now(),
                    verifier=verifier,
                )
            )

        assert ledger.get(SkillVerification, ("bob", "python")).verifier == "root"


class TestAllocate:
    """Tests for allocate."""

    def test_credits_new_principal(self, ledger):
        assert ledger.allocate("alice", 500) == 500
        assert ledger.allocate("alice", 250) == 750
        assert ledger.balance_of("alice") == 750

    def test_unknown_principal_has_zero_balance(self, ledger):
        assert ledger.balance_of("nobody") == 0

    @pytest.mark.parametrize("amount", [0, -5])
    def test_non_positive_allocation(self, ledger, amount):
        with pytest.raises(InvalidAmountError):
            ledger.allocate("alice", amount)

    @pytest.mark.parametrize("amount", [0.5, 10.0, True, "10"])
    def test_non_integer_allocation(self, ledger, amount):
        with pytest.raises(InvalidAmountError):
            ledger.allocate("alice", amount)

        assert ledger.get(BalanceAccount, "alice") is None

    def test_custody_principal_cannot_be_credited(self, ledger):
        with pytest.raises(ReservedPrincipalError):
            ledger.allocate(CONTRACT_PRINCIPAL, 100)

        assert ledger.balance_of(CONTRACT_PRINCIPAL) == 0

    def test_total_supply(self, ledger):
        assert ledger.total_supply() == 0
        ledger.allocate("alice", 300)
        ledger.allocate("bob", 200)

        assert ledger.total_supply() == 500


class TestTransfer:
    """Tests for transfer."""

    def test_conserves_total(self, ledger):
        ledger.allocate("alice", 1000)

        ledger.transfer("alice", CONTRACT_PRINCIPAL, 100)

        assert ledger.balance_of("alice") == 900
        assert ledger.balance_of(CONTRACT_PRINCIPAL) == 100
        assert ledger.total_supply() == 1000

    def test_insufficient_funds_mutates_nothing(self, ledger):
        ledger.allocate("alice", 50)

        with pytest.raises(InsufficientFundsError) as exc_info:
            ledger.transfer("alice", "bob", 51)

        assert exc_info.value.available == 50
        assert exc_info.value.required == 51
        assert ledger.balance_of("alice") == 50
        assert ledger.get(BalanceAccount, "bob") is None

    def test_sender_without_account(self, ledger):
        with pytest.raises(InsufficientFundsError) as exc_info:
            ledger.transfer(CONTRACT_PRINCIPAL, "bob", 1)

        assert exc_info.value.principal == CONTRACT_PRINCIPAL
        assert exc_info.value.available == 0

    @pytest.mark.parametrize("amount", [0, -1])
    def test_non_positive_transfer(self, ledger, amount):
        ledger.allocate("alice", 10)

        with pytest.raises(InvalidAmountError):
            ledger.transfer("alice", "bob", amount)

        assert ledger.balance_of("alice") == 10

    @pytest.mark.parametrize("amount", [0.5, 10.0, True, "10"])
    def test_non_integer_transfer(self, ledger, amount):
        ledger.allocate("alice", 10)

        with pytest.raises(InvalidAmountError):
            ledger.transfer("alice", "bob", amount)

        assert ledger.balance_of("alice") == 10
        assert ledger.get(BalanceAccount, "bob") is None

    def test_full_balance_transfer(self, ledger):
        ledger.allocate("alice", 10)

        ledger.transfer("alice", "bob", 10)

        assert ledger.balance_of("alice") == 0
        assert ledger.balance_of("bob") == 10
