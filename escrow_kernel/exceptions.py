"""
Typed Exception Hierarchy for the Escrow Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Every rejected operation must be reportable as a distinct kind. Callers
catch by type, never by message text, and every exception carries:
  1. A CODE attribute (machine-readable, API-safe string)
  2. A LEDGER_CODE attribute (the numeric contract error code reported
     back to transaction submitters)
  3. Structured DATA as attributes (not just a message string)

Example:
    try:
        orchestrator.fund_project(caller, project_id)
    except InsufficientFundsError as e:
        notify(caller, needed=e.required - e.available)
    except InvalidStateError as e:
        log.warning(f"Project {e.entity_key} is {e.current_state}")

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from EscrowKernelError:

    EscrowKernelError (base)
    |
    +-- AuthorizationError
    |   +-- UnauthorizedError
    |
    +-- NotFoundError
    |   +-- ProjectNotFoundError
    |   +-- MilestoneNotFoundError
    |
    +-- StateError
    |   +-- InvalidStateError
    |
    +-- FundsError
    |   +-- InsufficientFundsError
    |
    +-- EndorsementError
    |   +-- InvalidRatingError
    |   +-- SkillNotVerifiedError
    |
    +-- ValidationError
    |   +-- InvalidAmountError
    |   +-- ReservedPrincipalError
    |
    +-- AuditError
        +-- AuditChainBrokenError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Code                 | Ledger | When Raised
---------------------|--------|---------------------------------------------
UNAUTHORIZED         | 100    | Caller does not hold the required role
PROJECT_NOT_FOUND    | 101    | Project id does not exist
MILESTONE_NOT_FOUND  | 102    | (project_id, milestone_id) does not exist
INVALID_STATE        | 101    | Record not in the state the transition needs
INSUFFICIENT_FUNDS   | 102    | Balance cannot cover a transfer
INVALID_RATING       | 101    | Endorsement rating outside [0, 5]
SKILL_NOT_VERIFIED   | 102    | Endorsement against an unverified skill
INVALID_AMOUNT       | 103    | Amount outside its permitted range
RESERVED_PRINCIPAL   | 104    | Caller/target is the reserved custody principal
AUDIT_CHAIN_BROKEN   | -      | Ledger event hash chain validation failed

Ledger codes are scoped per engine and are not unique across the table.
"""


class EscrowKernelError(Exception):
    """
    Base exception for all escrow kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "ESCROW_KERNEL_ERROR"
    ledger_code: int | None = None


# Authorization


class AuthorizationError(EscrowKernelError):
    """Base exception for role-check failures."""

    code: str = "AUTHORIZATION_ERROR"


class UnauthorizedError(AuthorizationError):
    """Caller does not hold the role required for the requested transition."""

    code: str = "UNAUTHORIZED"
    ledger_code = 100

    def __init__(self, caller: str, required_role: str, action: str):
        self.caller = caller
        self.required_role = required_role
        self.action = action
        super().__init__(
            f"Caller {caller} is not the {required_role} required for {action}"
        )


# Existence


class NotFoundError(EscrowKernelError):
    """Base exception for missing records."""

    code: str = "NOT_FOUND"


class ProjectNotFoundError(NotFoundError):
    """Project with given id was not found."""

    code: str = "PROJECT_NOT_FOUND"
    ledger_code = 101

    def __init__(self, project_id: int):
        self.project_id = project_id
        super().__init__(f"Project not found: {project_id}")


class MilestoneNotFoundError(NotFoundError):
    """Milestone with given composite key was not found."""

    code: str = "MILESTONE_NOT_FOUND"
    ledger_code = 102

    def __init__(self, project_id: int, milestone_id: int):
        self.project_id = project_id
        self.milestone_id = milestone_id
        super().__init__(
            f"Milestone not found: project {project_id}, milestone {milestone_id}"
        )


# State


class StateError(EscrowKernelError):
    """Base exception for lifecycle violations."""

    code: str = "STATE_ERROR"


class InvalidStateError(StateError):
    """
    Record exists but is not in the state the transition requires.

    Raised for out-of-order transitions, repeated transitions and any
    attempt to move a record out of a terminal state.
    """

    code: str = "INVALID_STATE"
    ledger_code = 101

    def __init__(
        self,
        entity_type: str,
        entity_key: str,
        current_state: str,
        target_state: str,
    ):
        self.entity_type = entity_type
        self.entity_key = entity_key
        self.current_state = current_state
        self.target_state = target_state
        super().__init__(
            f"{entity_type} {entity_key} cannot move from "
            f"{current_state} to {target_state}"
        )


# Funds


class FundsError(EscrowKernelError):
    """Base exception for balance-bearing transfer failures."""

    code: str = "FUNDS_ERROR"


class InsufficientFundsError(FundsError):
    """A transfer cannot be satisfied from the sender's balance."""

    code: str = "INSUFFICIENT_FUNDS"
    ledger_code = 102

    def __init__(self, principal: str, available: int, required: int):
        self.principal = principal
        self.available = available
        self.required = required
        super().__init__(
            f"Insufficient funds for {principal}: "
            f"available={available}, required={required}"
        )


# Endorsements


class EndorsementError(EscrowKernelError):
    """Base exception for endorsement failures."""

    code: str = "ENDORSEMENT_ERROR"


class InvalidRatingError(EndorsementError):
    """Endorsement rating is outside the inclusive range [0, 5]."""

    code: str = "INVALID_RATING"
    ledger_code = 101

    def __init__(self, rating: int, max_rating: int = 5):
        self.rating = rating
        self.max_rating = max_rating
        super().__init__(f"Rating {rating} outside [0, {max_rating}]")


class SkillNotVerifiedError(EndorsementError):
    """Endorsement attempted against a skill without a verification record."""

    code: str = "SKILL_NOT_VERIFIED"
    ledger_code = 102

    def __init__(self, freelancer: str, skill: str):
        self.freelancer = freelancer
        self.skill = skill
        super().__init__(f"Skill '{skill}' is not verified for {freelancer}")


# Argument validation


class ValidationError(EscrowKernelError):
    """Base exception for rejected operation arguments."""

    code: str = "VALIDATION_ERROR"


class InvalidAmountError(ValidationError):
    """Amount is outside its permitted range."""

    code: str = "INVALID_AMOUNT"
    ledger_code = 103

    def __init__(self, amount: int, reason: str):
        self.amount = amount
        self.reason = reason
        super().__init__(f"Invalid amount {amount}: {reason}")


class ReservedPrincipalError(ValidationError):
    """The reserved custody principal cannot be used as a party."""

    code: str = "RESERVED_PRINCIPAL"
    ledger_code = 104

    def __init__(self, principal: str, role: str):
        self.principal = principal
        self.role = role
        super().__init__(f"Reserved principal {principal} cannot act as {role}")


# Audit trail


class AuditError(EscrowKernelError):
    """Base exception for ledger event trail errors."""

    code: str = "AUDIT_ERROR"


class AuditChainBrokenError(AuditError):
    """
    Ledger event hash chain validation failed.

    Indicates tampering or corruption of the event trail.
    """

    code: str = "AUDIT_CHAIN_BROKEN"

    def __init__(self, seq: int, expected_hash: str, actual_hash: str):
        self.seq = seq
        self.expected_hash = expected_hash
        self.actual_hash = actual_hash
        super().__init__(
            f"Ledger event chain broken at seq {seq}: "
            f"expected {expected_hash}, got {actual_hash}"
        )
