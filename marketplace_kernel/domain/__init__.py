"""
Pure domain layer.

Status enums and transition tables, input rules, DTOs and the clock.
Nothing here touches the ORM or the database.
"""

from marketplace_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from marketplace_kernel.domain.dtos import (
    ContractInfo,
    ConversationInfo,
    FreelancerReputation,
    JobInfo,
    MessageInfo,
    ProposalInfo,
    ReviewInfo,
)
from marketplace_kernel.domain.lifecycle import (
    BudgetType,
    ContractStatus,
    ContractType,
    DeliveryStatus,
    ExperienceLevel,
    JobStatus,
    ProposalStatus,
    is_legal_transition,
    require_transition,
)
from marketplace_kernel.domain.rules import LifecycleRules, RateLimit

__all__ = [
    "BudgetType",
    "Clock",
    "ContractInfo",
    "ContractStatus",
    "ContractType",
    "ConversationInfo",
    "DeliveryStatus",
    "DeterministicClock",
    "ExperienceLevel",
    "FreelancerReputation",
    "JobInfo",
    "JobStatus",
    "LifecycleRules",
    "MessageInfo",
    "ProposalInfo",
    "ProposalStatus",
    "RateLimit",
    "ReviewInfo",
    "SystemClock",
    "is_legal_transition",
    "require_transition",
]
