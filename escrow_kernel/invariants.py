"""
Kernel Invariants Contract.

These invariants are structural law for every engine in the kernel. No
configuration value or caller may override them.

This module exists solely to declare these invariants explicitly. The
enforcement is distributed across the lifecycle tables, LedgerAccess,
the three engine services and LedgerEventRecorder.
"""

from enum import Enum, unique


@unique
class LedgerInvariant(str, Enum):
    """Non-configurable invariants enforced by the kernel.

    Each value names one structural guarantee that the kernel provides
    unconditionally.
    """

    TRANSITION_MONOTONICITY = "transition_monotonicity"
    """Projects and milestones only move one step forward along their
    linear lifecycle. Enforced by domain.lifecycle.validate_transition."""

    ROLE_EXCLUSIVITY = "role_exclusivity"
    """Only the principal holding the stored role may perform a role-gated
    transition. Enforced by domain.identity.require_role and
    AdminAuthority.require_admin."""

    FUND_CONSERVATION = "fund_conservation"
    """Transfers never mint or burn: the sum of all balances is unchanged
    by every escrow operation. Enforced by LedgerAccess.transfer."""

    COUNTER_MONOTONICITY = "counter_monotonicity"
    """Project ids and per-project milestone counters increase by exactly
    one per successful creation and never decrease. Enforced by
    SequenceService and MilestoneTrackingService."""

    ENDORSEMENT_GATING = "endorsement_gating"
    """An endorsement is only stored for a (freelancer, skill) pair that
    already carries a verification. Enforced by SkillVerificationService."""

    EVENT_CHAIN_INTEGRITY = "event_chain_integrity"
    """Every successful mutation appends one hash-chained ledger event.
    Enforced by LedgerEventRecorder."""


# All invariants as a frozenset for programmatic checks.
ALL_LEDGER_INVARIANTS: frozenset[LedgerInvariant] = frozenset(LedgerInvariant)

# The kernel package may not import from these packages.
# This is enforced by tests/architecture/test_kernel_boundary.py.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = (
    "escrow_config",
)
