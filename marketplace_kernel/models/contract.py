"""
Module: marketplace_kernel.models.contract
Responsibility: ORM persistence for the agreement created when a proposal
    is accepted, including its nested delivery sub-state.
Architecture position: Kernel > Models.  May import from db/ and
    domain/lifecycle.py only.

Invariants enforced:
    - Exactly one contract per accepted proposal (uq_contract_proposal).
    - status: active -> completed | cancelled, both terminal.
    - delivery_status: NULL/pending -> delivered <-> revision_requested,
      delivered -> accepted (only as part of completion).
    - status, delivery_status and version change only through the
      services' compare-and-set statements.

Failure modes:
    - IntegrityError on a second contract for the same proposal; the
      acceptance service maps it to ConcurrentTransitionError.
"""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketplace_kernel.db.base import TimestampedBase, UTCDateTime, UUIDString
from marketplace_kernel.db.types import Amount, status_enum
from marketplace_kernel.domain.lifecycle import (
    ContractStatus,
    ContractType,
    DeliveryStatus,
    effective_delivery_status,
)

if TYPE_CHECKING:
    from marketplace_kernel.models.job import Job


class Contract(TimestampedBase):
    """Binding agreement between a job's client and the accepted freelancer."""

    __tablename__ = "contracts"

    __table_args__ = (
        UniqueConstraint("proposal_id", name="uq_contract_proposal"),
        Index("idx_contract_job", "job_id"),
        Index("idx_contract_client", "client_id"),
        Index("idx_contract_freelancer", "freelancer_id"),
        Index("idx_contract_status", "status"),
        CheckConstraint("amount > 0", name="ck_contract_amount_positive"),
    )

    job_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("jobs.id"),
        nullable=False,
    )

    proposal_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("proposals.id"),
        nullable=False,
    )

    client_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    freelancer_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    amount: Mapped[Amount] = mapped_column(nullable=False)

    contract_type: Mapped[ContractType] = mapped_column(
        status_enum(ContractType),
        nullable=False,
    )

    status: Mapped[ContractStatus] = mapped_column(
        status_enum(ContractStatus),
        nullable=False,
        default=ContractStatus.ACTIVE,
    )

    start_date: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    end_date: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    # NULL means no delivery yet, equivalent to pending
    delivery_status: Mapped[DeliveryStatus | None] = mapped_column(
        status_enum(DeliveryStatus),
        nullable=True,
    )

    delivery_text: Mapped[str | None] = mapped_column(Text, nullable=True)

    delivered_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    job: Mapped["Job"] = relationship(lazy="select")

    def __repr__(self) -> str:
        return (
            f"<Contract {self.id} status={self.status.value} "
            f"delivery={self.effective_delivery_status.value}>"
        )

    @property
    def effective_delivery_status(self) -> DeliveryStatus:
        return effective_delivery_status(self.delivery_status)

    @property
    def is_active(self) -> bool:
        return self.status == ContractStatus.ACTIVE
