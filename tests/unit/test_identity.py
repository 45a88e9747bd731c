"""Tests for role checks and the admin authority."""

import pytest

from escrow_kernel.domain.identity import (
    CONTRACT_PRINCIPAL,
    AdminAuthority,
    Role,
    ensure_not_reserved,
    require_role,
)
from escrow_kernel.exceptions import ReservedPrincipalError, UnauthorizedError
from escrow_kernel.utils.hashing import record_key


class TestRequireRole:

    def test_holder_passes(self):
        require_role("alice", "alice", Role.CLIENT, "fund_project")

    def test_other_principal_rejected(self):
        with pytest.raises(UnauthorizedError) as exc_info:
            require_role("bob", "alice", Role.CLIENT, "fund_project")

        assert exc_info.value.action == "fund_project"
        assert exc_info.value.code == "UNAUTHORIZED"

    def test_missing_holder_fails_closed(self):
        with pytest.raises(UnauthorizedError):
            require_role("alice", None, Role.FREELANCER, "start_project")


class TestAdminAuthority:

    def test_only_named_principal_is_admin(self):
        authority = AdminAuthority("root")

        assert authority.is_admin("root") is True
        assert authority.is_admin("admin") is False
        with pytest.raises(UnauthorizedError) as exc_info:
            authority.require_admin("admin", "verify_skill")
        assert exc_info.value.required_role == "admin"

    def test_is_immutable(self):
        authority = AdminAuthority("root")

        with pytest.raises(AttributeError):
            authority.principal = "mallory"


class TestReservedPrincipal:

    def test_custody_principal_rejected(self):
        with pytest.raises(ReservedPrincipalError) as exc_info:
            ensure_not_reserved(CONTRACT_PRINCIPAL, Role.CLIENT)

        assert exc_info.value.ledger_code == 104

    def test_ordinary_principal_accepted(self):
        ensure_not_reserved("alice", Role.CLIENT)


class TestRecordKey:

    def test_delimiters_cannot_collide(self):
        assert record_key("a-b", "c") != record_key("a", "b-c")

    def test_int_and_str_parts_differ(self):
        assert record_key(1) != record_key("1")
