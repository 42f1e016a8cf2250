"""
Typed Exception Hierarchy for the Marketplace Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (the UI layer, an API gateway) must map every failure to an
actionable message: "this proposal was already decided", "only the client
can request a revision", "rating must be between 1 and 5".  Parsing message
strings for that is fragile, so:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example:
    try:
        orchestrator.accept_proposal(job_id, proposal_id, client_id)
    except ConflictError as e:
        api_response(409, code=e.code, detail=str(e))
    except PreconditionError as e:
        api_response(422, code=e.code, detail=str(e))

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from MarketplaceError:

    MarketplaceError (base)
    |
    +-- NotFoundError
    |   +-- JobNotFoundError
    |   +-- ProposalNotFoundError
    |   +-- ContractNotFoundError
    |   +-- ConversationNotFoundError
    |   +-- MessageNotFoundError
    |
    +-- PreconditionError
    |   +-- InvalidStatusError
    |   +-- InvalidTransitionError
    |   +-- NotAuthorizedPartyError
    |   +-- ProposalJobMismatchError
    |   +-- DeliveryRequiredError
    |   +-- RateLimitExceededError
    |
    +-- ConflictError
    |   +-- ConcurrentTransitionError
    |   +-- DuplicateProposalError
    |
    +-- ValidationError
    |   +-- InvalidFieldError
    |
    +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category      | Code                      | When Raised
--------------|---------------------------|---------------------------------------
Not found     | JOB_NOT_FOUND             | Job ID doesn't exist
              | PROPOSAL_NOT_FOUND        | Proposal ID doesn't exist
              | CONTRACT_NOT_FOUND        | Contract ID doesn't exist
              | CONVERSATION_NOT_FOUND    | Conversation ID doesn't exist
              | MESSAGE_NOT_FOUND         | Message ID doesn't exist
--------------|---------------------------|---------------------------------------
Precondition  | INVALID_STATUS            | Row is not in the required status
              | INVALID_TRANSITION        | Transition not in the state machine
              | NOT_AUTHORIZED_PARTY      | Caller is not the owning party
              | PROPOSAL_JOB_MISMATCH     | Proposal belongs to another job
              | DELIVERY_REQUIRED         | Completion without a delivery
              | RATE_LIMIT_EXCEEDED       | Too many actions in the window
--------------|---------------------------|---------------------------------------
Conflict      | CONCURRENT_TRANSITION     | Compare-and-set lost a race
              | DUPLICATE_PROPOSAL        | Freelancer already bid on the job
--------------|---------------------------|---------------------------------------
Validation    | INVALID_FIELD             | Malformed input value
--------------|---------------------------|---------------------------------------
Immutability  | IMMUTABILITY_VIOLATION    | Write outside the sanctioned path

===============================================================================
PROPAGATION
===============================================================================

Every error is terminal for the operation that raised it.  The kernel never
retries; the orchestrator rolls the transaction back and re-raises the
original exception unchanged.  A caller MAY retry a ConflictError once after
re-reading fresh state (see marketplace_services.conflict_retry); retrying a
PreconditionError or ValidationError is meaningless without a new user action.
"""

from typing import Any


class MarketplaceError(Exception):
    """
    Base exception for all marketplace kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "MARKETPLACE_ERROR"


# Not-found exceptions


class NotFoundError(MarketplaceError):
    """Base exception for a referenced row that does not exist."""

    code: str = "NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} not found: {entity_id}")


class JobNotFoundError(NotFoundError):
    code: str = "JOB_NOT_FOUND"

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__("Job", job_id)


class ProposalNotFoundError(NotFoundError):
    code: str = "PROPOSAL_NOT_FOUND"

    def __init__(self, proposal_id: str):
        self.proposal_id = proposal_id
        super().__init__("Proposal", proposal_id)


class ContractNotFoundError(NotFoundError):
    code: str = "CONTRACT_NOT_FOUND"

    def __init__(self, contract_id: str):
        self.contract_id = contract_id
        super().__init__("Contract", contract_id)


class ConversationNotFoundError(NotFoundError):
    code: str = "CONVERSATION_NOT_FOUND"

    def __init__(self, conversation_id: str):
        self.conversation_id = conversation_id
        super().__init__("Conversation", conversation_id)


class MessageNotFoundError(NotFoundError):
    code: str = "MESSAGE_NOT_FOUND"

    def __init__(self, message_id: str):
        self.message_id = message_id
        super().__init__("Message", message_id)


# Precondition exceptions


class PreconditionError(MarketplaceError):
    """Base exception for status, ownership or policy constraints."""

    code: str = "PRECONDITION_FAILED"


class InvalidStatusError(PreconditionError):
    """Row is not in a status that permits the requested operation."""

    code: str = "INVALID_STATUS"

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        current_status: str | None,
        required: tuple[str, ...],
    ):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.current_status = current_status
        self.required = required
        super().__init__(
            f"{entity_type} {entity_id} is '{current_status}', "
            f"expected one of: {', '.join(required)}"
        )


class InvalidTransitionError(PreconditionError):
    """Requested status change is not an edge of the state machine."""

    code: str = "INVALID_TRANSITION"

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        from_status: str | None,
        to_status: str,
    ):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Illegal {entity_type} transition for {entity_id}: "
            f"{from_status} -> {to_status}"
        )


class NotAuthorizedPartyError(PreconditionError):
    """Verified caller is not the party entitled to act on the row."""

    code: str = "NOT_AUTHORIZED_PARTY"

    def __init__(self, entity_type: str, entity_id: str, actor_id: str, role: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.actor_id = actor_id
        self.role = role
        super().__init__(
            f"Actor {actor_id} is not the {role} of {entity_type} {entity_id}"
        )


class ProposalJobMismatchError(PreconditionError):
    """Proposal does not belong to the job named by the caller."""

    code: str = "PROPOSAL_JOB_MISMATCH"

    def __init__(self, proposal_id: str, job_id: str, actual_job_id: str):
        self.proposal_id = proposal_id
        self.job_id = job_id
        self.actual_job_id = actual_job_id
        super().__init__(
            f"Proposal {proposal_id} belongs to job {actual_job_id}, not {job_id}"
        )


class DeliveryRequiredError(PreconditionError):
    """Contract completion attempted without a submitted delivery."""

    code: str = "DELIVERY_REQUIRED"

    def __init__(self, contract_id: str, delivery_status: str | None):
        self.contract_id = contract_id
        self.delivery_status = delivery_status
        super().__init__(
            f"Contract {contract_id} cannot be completed: delivery status is "
            f"'{delivery_status or 'pending'}', expected 'delivered'"
        )


class RateLimitExceededError(PreconditionError):
    """Caller exceeded the allowed number of actions in the window."""

    code: str = "RATE_LIMIT_EXCEEDED"

    def __init__(self, user_id: str, action: str, max_count: int, window_seconds: int):
        self.user_id = user_id
        self.action = action
        self.max_count = max_count
        self.window_seconds = window_seconds
        super().__init__(
            f"Rate limit exceeded for {action}: at most {max_count} "
            f"per {window_seconds}s"
        )


# Conflict exceptions


class ConflictError(MarketplaceError):
    """Base exception for write conflicts between concurrent callers."""

    code: str = "CONFLICT"


class ConcurrentTransitionError(ConflictError):
    """
    A compare-and-set on a status row matched zero rows.

    Another transaction moved the row (or bumped its version) between this
    transaction's read and its guarded write.
    """

    code: str = "CONCURRENT_TRANSITION"

    def __init__(self, entity_type: str, entity_id: str, expected_status: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.expected_status = expected_status
        super().__init__(
            f"Concurrent transition on {entity_type} {entity_id}: row is no "
            f"longer '{expected_status}' at the version that was read"
        )


class DuplicateProposalError(ConflictError):
    code: str = "DUPLICATE_PROPOSAL"

    def __init__(self, job_id: str, freelancer_id: str):
        self.job_id = job_id
        self.freelancer_id = freelancer_id
        super().__init__(
            f"Freelancer {freelancer_id} already has a proposal on job {job_id}"
        )


# Validation exceptions


class ValidationError(MarketplaceError):
    """Base exception for malformed input."""

    code: str = "VALIDATION_ERROR"


class InvalidFieldError(ValidationError):
    """A single input field failed validation."""

    code: str = "INVALID_FIELD"

    def __init__(self, field: str, reason: str, value: Any = None):
        self.field = field
        self.reason = reason
        self.value = value
        super().__init__(f"Invalid {field}: {reason}")


# Immutability exceptions


class ImmutabilityViolationError(MarketplaceError):
    """Write attempted outside the sanctioned transition path."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(f"Cannot modify {entity_type} {entity_id}: {reason}")
