"""
Module: marketplace_kernel.models.proposal
Responsibility: ORM persistence for freelancer bids on jobs.
Architecture position: Kernel > Models.  May import from db/ and
    domain/lifecycle.py only.

Invariants enforced:
    - At most one proposal per job is ever accepted.  The acceptance service
      guards this with a compare-and-set on the job row; the partial unique
      index uq_proposal_one_accepted_per_job is the database backstop.
    - One proposal per (job, freelancer) (uq_proposal_job_freelancer).
    - status leaves pending exactly once (accepted, rejected or withdrawn).

Failure modes:
    - IntegrityError on a second accepted proposal for a job or a duplicate
      (job, freelancer) pair.  Services translate both into ConflictError.
"""

from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String, Text, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketplace_kernel.db.base import TimestampedBase, UUIDString
from marketplace_kernel.db.types import Amount, status_enum
from marketplace_kernel.domain.lifecycle import ProposalStatus

if TYPE_CHECKING:
    from marketplace_kernel.models.job import Job

_ACCEPTED_ONLY = text("status = 'accepted'")


class Proposal(TimestampedBase):
    """A freelancer's bid on a job."""

    __tablename__ = "proposals"

    __table_args__ = (
        UniqueConstraint("job_id", "freelancer_id", name="uq_proposal_job_freelancer"),
        Index(
            "uq_proposal_one_accepted_per_job",
            "job_id",
            unique=True,
            postgresql_where=_ACCEPTED_ONLY,
            sqlite_where=_ACCEPTED_ONLY,
        ),
        Index("idx_proposal_job_status", "job_id", "status"),
        Index("idx_proposal_freelancer", "freelancer_id"),
        CheckConstraint("bid_amount > 0", name="ck_proposal_bid_positive"),
    )

    job_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("jobs.id"),
        nullable=False,
    )

    freelancer_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    bid_amount: Mapped[Amount] = mapped_column(nullable=False)

    cover_letter: Mapped[str] = mapped_column(Text, nullable=False)

    timeline: Mapped[str | None] = mapped_column(String(200), nullable=True)

    status: Mapped[ProposalStatus] = mapped_column(
        status_enum(ProposalStatus),
        nullable=False,
        default=ProposalStatus.PENDING,
    )

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    job: Mapped["Job"] = relationship(lazy="select")

    def __repr__(self) -> str:
        return f"<Proposal {self.id} job={self.job_id} status={self.status.value}>"
