"""
Identity & Authorization -- principals and role checks.

Responsibility:
    Compares the calling principal against the role holder stored on a
    record (client, freelancer) or against the injected admin authority.
    The caller principal is supplied by the surrounding runtime and is
    treated as an opaque, unforgeable identifier.

Architecture position:
    Kernel > Domain -- pure, no I/O.  Every engine service calls into this
    module before any state check or mutation.

Invariants enforced:
    ROLE_EXCLUSIVITY -- a role-gated transition succeeds only for the exact
    principal holding the role.  Failure raises UnauthorizedError and is
    checked before any lifecycle check.
"""

from dataclasses import dataclass
from enum import Enum
from typing import NewType

from escrow_kernel.exceptions import ReservedPrincipalError, UnauthorizedError

Principal = NewType("Principal", str)

# Custody principal holding escrowed funds between funding and completion.
CONTRACT_PRINCIPAL = Principal("contract")


class Role(str, Enum):
    """Roles a principal can hold against a record."""

    CLIENT = "client"
    FREELANCER = "freelancer"
    ADMIN = "admin"


def require_role(caller: str, holder: str | None, role: Role, action: str) -> None:
    """
    Require ``caller`` to be the stored holder of ``role``.

    A missing holder (record could not be resolved) fails closed.

    Raises:
        UnauthorizedError: If caller is not the holder.
    """
    if holder is None or caller != holder:
        raise UnauthorizedError(caller=caller, required_role=role.value, action=action)


def ensure_not_reserved(principal: str, role: Role | str) -> None:
    """Reject the custody principal as a party to an engagement."""
    if principal == CONTRACT_PRINCIPAL:
        raise ReservedPrincipalError(
            principal=principal,
            role=role.value if isinstance(role, Role) else role,
        )


@dataclass(frozen=True)
class AdminAuthority:
    """
    Authorization context naming the current admin principal.

    Passed explicitly to the Skill Verification Engine.  Rotating the admin
    means constructing a new authority; no process-wide state is mutated.
    """

    principal: str

    def is_admin(self, caller: str) -> bool:
        return caller == self.principal

    def require_admin(self, caller: str, action: str) -> None:
        """
        Raises:
            UnauthorizedError: If caller is not the current admin.
        """
        require_role(caller, self.principal, Role.ADMIN, action)
