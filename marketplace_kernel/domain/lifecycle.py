"""
Lifecycle -- the job / proposal / contract / delivery state machine.

Responsibility:
    Declares every status enum as a closed sum type and the legal edges
    between them.  Services consult these tables before issuing a guarded
    status write; nothing else in the system decides what a legal
    transition is.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Conceptual machine for one job::

    Job.open --(client accepts a pending proposal)--> Job.in-progress + Contract.active
    Job.open --(client cancels)--> Job.cancelled                        [terminal]

    Contract.active, delivery pending
        --(freelancer submits)--> delivered
    delivered --(client requests revision)--> revision_requested
    revision_requested --(freelancer resubmits)--> delivered
    delivered --(client accepts + reviews)--> Contract.completed, Job.completed,
                                              Review created            [terminal]
    Contract.active --(client cancels)--> Contract.cancelled            [terminal]

Failure modes:
    - InvalidTransitionError from ``require_transition()`` when the edge is
      not declared (this includes every edge out of a terminal state).
"""

from enum import Enum, unique

from marketplace_kernel.exceptions import InvalidTransitionError


@unique
class JobStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@unique
class ProposalStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"


@unique
class ContractStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@unique
class DeliveryStatus(str, Enum):
    """Delivery sub-state nested inside an active contract.

    A contract row with ``delivery_status`` NULL is equivalent to PENDING.
    """

    PENDING = "pending"
    DELIVERED = "delivered"
    REVISION_REQUESTED = "revision_requested"
    ACCEPTED = "accepted"


@unique
class BudgetType(str, Enum):
    FIXED = "fixed"
    HOURLY = "hourly"


@unique
class ContractType(str, Enum):
    FIXED = "fixed"
    HOURLY = "hourly"


@unique
class ExperienceLevel(str, Enum):
    ENTRY = "entry"
    INTERMEDIATE = "intermediate"
    EXPERT = "expert"


# Allowed status transitions (from -> set of valid next states)
JOB_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.OPEN: frozenset({JobStatus.IN_PROGRESS, JobStatus.CANCELLED}),
    JobStatus.IN_PROGRESS: frozenset({JobStatus.COMPLETED}),
    JobStatus.COMPLETED: frozenset(),  # Terminal
    JobStatus.CANCELLED: frozenset(),  # Terminal
}

PROPOSAL_TRANSITIONS: dict[ProposalStatus, frozenset[ProposalStatus]] = {
    ProposalStatus.PENDING: frozenset({
        ProposalStatus.ACCEPTED,
        ProposalStatus.REJECTED,
        ProposalStatus.WITHDRAWN,
    }),
    ProposalStatus.ACCEPTED: frozenset(),
    ProposalStatus.REJECTED: frozenset(),
    ProposalStatus.WITHDRAWN: frozenset(),
}

CONTRACT_TRANSITIONS: dict[ContractStatus, frozenset[ContractStatus]] = {
    ContractStatus.ACTIVE: frozenset({ContractStatus.COMPLETED, ContractStatus.CANCELLED}),
    ContractStatus.COMPLETED: frozenset(),
    ContractStatus.CANCELLED: frozenset(),
}

DELIVERY_TRANSITIONS: dict[DeliveryStatus, frozenset[DeliveryStatus]] = {
    DeliveryStatus.PENDING: frozenset({DeliveryStatus.DELIVERED}),
    DeliveryStatus.DELIVERED: frozenset({
        DeliveryStatus.REVISION_REQUESTED,
        DeliveryStatus.ACCEPTED,
    }),
    DeliveryStatus.REVISION_REQUESTED: frozenset({DeliveryStatus.DELIVERED}),
    DeliveryStatus.ACCEPTED: frozenset(),
}

_TABLES: dict[type[Enum], dict] = {
    JobStatus: JOB_TRANSITIONS,
    ProposalStatus: PROPOSAL_TRANSITIONS,
    ContractStatus: CONTRACT_TRANSITIONS,
    DeliveryStatus: DELIVERY_TRANSITIONS,
}

TERMINAL_JOB_STATES = frozenset(s for s, nxt in JOB_TRANSITIONS.items() if not nxt)
TERMINAL_CONTRACT_STATES = frozenset(
    s for s, nxt in CONTRACT_TRANSITIONS.items() if not nxt
)


def effective_delivery_status(value: DeliveryStatus | None) -> DeliveryStatus:
    """Map a NULL delivery column onto PENDING."""
    return value if value is not None else DeliveryStatus.PENDING


def is_legal_transition(current: Enum, target: Enum) -> bool:
    """Check if ``current -> target`` is a declared edge."""
    if type(current) is not type(target):
        return False
    table = _TABLES.get(type(current))
    if table is None:
        return False
    return target in table.get(current, frozenset())


def is_terminal(status: Enum) -> bool:
    table = _TABLES.get(type(status))
    return table is not None and not table.get(status)


def require_transition(
    entity_type: str,
    entity_id: object,
    current: Enum | None,
    target: Enum,
) -> None:
    """
    Raise unless ``current -> target`` is a declared edge.

    A ``None`` current value is only meaningful for the delivery sub-state,
    where it is read as PENDING.

    Raises:
        InvalidTransitionError: If the edge is not in the transition table.
    """
    if current is None and isinstance(target, DeliveryStatus):
        current = DeliveryStatus.PENDING
    if current is None or not is_legal_transition(current, target):
        raise InvalidTransitionError(
            entity_type=entity_type,
            entity_id=str(entity_id),
            from_status=current.value if current is not None else None,
            to_status=target.value,
        )


def contract_type_for_budget(budget_type: BudgetType) -> ContractType:
    """A contract inherits its pricing model from the job's budget type."""
    return ContractType(budget_type.value)
