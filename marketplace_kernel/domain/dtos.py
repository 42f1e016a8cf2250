"""
DTOs -- Immutable read models returned by services and selectors.

Responsibility:
    Services and selectors return these frozen dataclasses, never ORM
    instances, so nothing outside the kernel can mutate a row by accident
    or trigger a lazy load after the session is closed.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  from_model() class methods are
    boundary converters and are only invoked from the service and selector
    layers.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from marketplace_kernel.domain.lifecycle import (
    BudgetType,
    ContractStatus,
    ContractType,
    DeliveryStatus,
    ExperienceLevel,
    JobStatus,
    ProposalStatus,
    effective_delivery_status,
)

if TYPE_CHECKING:
    from marketplace_kernel.models.contract import Contract as ContractModel
    from marketplace_kernel.models.conversation import (
        Conversation as ConversationModel,
    )
    from marketplace_kernel.models.conversation import Message as MessageModel
    from marketplace_kernel.models.job import Job as JobModel
    from marketplace_kernel.models.proposal import Proposal as ProposalModel
    from marketplace_kernel.models.review import Review as ReviewModel


@dataclass(frozen=True)
class JobInfo:
    id: UUID
    client_id: UUID
    title: str
    description: str
    category: str
    skills: tuple[str, ...]
    budget_min: Decimal
    budget_max: Decimal
    budget_type: BudgetType
    duration: str | None
    experience_level: ExperienceLevel | None
    is_remote: bool
    location: str | None
    status: JobStatus
    version: int
    created_at: datetime

    @classmethod
    def from_model(cls, model: JobModel) -> JobInfo:
        return cls(
            id=model.id,
            client_id=model.client_id,
            title=model.title,
            description=model.description,
            category=model.category,
            skills=tuple(model.skills or ()),
            budget_min=model.budget_min,
            budget_max=model.budget_max,
            budget_type=model.budget_type,
            duration=model.duration,
            experience_level=model.experience_level,
            is_remote=model.is_remote,
            location=model.location,
            status=model.status,
            version=model.version,
            created_at=model.created_at,
        )


@dataclass(frozen=True)
class ProposalInfo:
    id: UUID
    job_id: UUID
    freelancer_id: UUID
    bid_amount: Decimal
    cover_letter: str
    timeline: str | None
    status: ProposalStatus
    version: int
    created_at: datetime

    @classmethod
    def from_model(cls, model: ProposalModel) -> ProposalInfo:
        return cls(
            id=model.id,
            job_id=model.job_id,
            freelancer_id=model.freelancer_id,
            bid_amount=model.bid_amount,
            cover_letter=model.cover_letter,
            timeline=model.timeline,
            status=model.status,
            version=model.version,
            created_at=model.created_at,
        )


@dataclass(frozen=True)
class ContractInfo:
    """
    Snapshot of a contract row.

    ``delivery_status`` is never None here: a row with no delivery reports
    DeliveryStatus.PENDING.
    """

    id: UUID
    job_id: UUID
    proposal_id: UUID
    client_id: UUID
    freelancer_id: UUID
    amount: Decimal
    contract_type: ContractType
    status: ContractStatus
    start_date: datetime
    end_date: datetime | None
    delivery_status: DeliveryStatus
    delivery_text: str | None
    delivered_at: datetime | None
    version: int

    @property
    def is_active(self) -> bool:
        return self.status == ContractStatus.ACTIVE

    @classmethod
    def from_model(cls, model: ContractModel) -> ContractInfo:
        return cls(
            id=model.id,
            job_id=model.job_id,
            proposal_id=model.proposal_id,
            client_id=model.client_id,
            freelancer_id=model.freelancer_id,
            amount=model.amount,
            contract_type=model.contract_type,
            status=model.status,
            start_date=model.start_date,
            end_date=model.end_date,
            delivery_status=effective_delivery_status(model.delivery_status),
            delivery_text=model.delivery_text,
            delivered_at=model.delivered_at,
            version=model.version,
        )


@dataclass(frozen=True)
class ReviewInfo:
    id: UUID
    contract_id: UUID
    job_id: UUID
    client_id: UUID
    freelancer_id: UUID
    rating: int
    comment: str
    amount: Decimal
    created_at: datetime

    @classmethod
    def from_model(cls, model: ReviewModel) -> ReviewInfo:
        return cls(
            id=model.id,
            contract_id=model.contract_id,
            job_id=model.job_id,
            client_id=model.client_id,
            freelancer_id=model.freelancer_id,
            rating=model.rating,
            comment=model.comment,
            amount=model.amount,
            created_at=model.created_at,
        )


@dataclass(frozen=True)
class ConversationInfo:
    id: UUID
    client_id: UUID
    freelancer_id: UUID
    job_id: UUID | None
    contract_id: UUID | None
    last_message_at: datetime | None

    @classmethod
    def from_model(cls, model: ConversationModel) -> ConversationInfo:
        return cls(
            id=model.id,
            client_id=model.client_id,
            freelancer_id=model.freelancer_id,
            job_id=model.job_id,
            contract_id=model.contract_id,
            last_message_at=model.last_message_at,
        )


@dataclass(frozen=True)
class MessageInfo:
    id: UUID
    conversation_id: UUID
    sender_id: UUID
    content: str
    is_read: bool
    read_at: datetime | None
    created_at: datetime

    @classmethod
    def from_model(cls, model: MessageModel) -> MessageInfo:
        return cls(
            id=model.id,
            conversation_id=model.conversation_id,
            sender_id=model.sender_id,
            content=model.content,
            is_read=model.is_read,
            read_at=model.read_at,
            created_at=model.created_at,
        )


@dataclass(frozen=True)
class FreelancerReputation:
    """
    Reputation derived from review and contract rows on every read.

    There is no stored aggregate to drift out of sync with the reviews.
    """

    freelancer_id: UUID
    review_count: int
    average_rating: Decimal | None
    total_earned: Decimal
    completed_contracts: int
