"""
Kernel Invariants Contract.

These invariants are structural law. They are hardcoded in the transition
services, the guarded compare-and-set statements, the ORM listeners and the
database constraints. No setting in marketplace_config may switch them off.

This module exists solely to declare these invariants explicitly. The
enforcement is distributed across ProposalAcceptanceService,
ContractCompletionService, DeliveryService, db/immutability.py and the
unique indexes on proposals, contracts and reviews.
"""

from enum import Enum, unique


@unique
class KernelInvariant(str, Enum):
    """Non-configurable invariants enforced by the kernel."""

    SINGLE_ACCEPTED_PROPOSAL = "single_accepted_proposal"
    """At most one proposal per job is ever accepted. Enforced by the
    compare-and-set on Job.status in ProposalAcceptanceService and by the
    partial unique index uq_proposal_one_accepted_per_job."""

    COMPETING_PROPOSALS_REJECTED = "competing_proposals_rejected"
    """Accepting a proposal rejects every other pending proposal for the
    job in the same transaction."""

    ONE_CONTRACT_PER_PROPOSAL = "one_contract_per_proposal"
    """A contract is created exactly once per accepted proposal. Enforced
    by uq_contract_proposal."""

    ONE_REVIEW_PER_CONTRACT = "one_review_per_contract"
    """A review exists only for a completed contract and at most once.
    Enforced by ContractCompletionService and uq_review_contract."""

    MONOTONIC_STATUS = "monotonic_status"
    """Status fields only move along the edges declared in
    domain/lifecycle.py; terminal states are never left."""

    GUARDED_STATUS_WRITES = "guarded_status_writes"
    """Status columns are written only by versioned compare-and-set
    statements in the services. ORM attribute writes are rejected by
    db/immutability.py."""

    ATOMIC_TRANSITIONS = "atomic_transitions"
    """Multi-row transitions apply completely or not at all. Services flush
    only; the orchestrator owns commit and rollback."""

    VERIFIED_PARTY = "verified_party"
    """Every mutation checks the verified acting identity against the
    owning party of the row."""


# All invariants as a frozenset for programmatic checks.
ALL_KERNEL_INVARIANTS: frozenset[KernelInvariant] = frozenset(KernelInvariant)

# The kernel package may not import from these packages.
# This is enforced by tests/architecture/test_kernel_boundary.py.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = (
    "marketplace_services",
    "marketplace_config",
)
