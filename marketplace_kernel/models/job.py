"""
Module: marketplace_kernel.models.job
Responsibility: ORM persistence for jobs posted by clients.
Architecture position: Kernel > Models.  May import from db/ and
    domain/lifecycle.py only.

Invariants enforced:
    - status moves open -> in-progress -> completed, or open -> cancelled.
      Writes go through versioned compare-and-set statements in the
      services; ORM attribute writes to status/version are rejected by
      db/immutability.py.
    - version increments on every status change.

Failure modes:
    - ImmutabilityViolationError on an ORM write to status or version.
"""

from uuid import UUID

from sqlalchemy import JSON, Boolean, CheckConstraint, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from marketplace_kernel.db.base import TimestampedBase, UUIDString
from marketplace_kernel.db.types import Amount, status_enum
from marketplace_kernel.domain.lifecycle import BudgetType, ExperienceLevel, JobStatus


class Job(TimestampedBase):
    """A unit of work posted by a client, open for proposals."""

    __tablename__ = "jobs"

    __table_args__ = (
        Index("idx_job_client", "client_id"),
        Index("idx_job_status", "status"),
        Index("idx_job_category", "category"),
        CheckConstraint("budget_max >= budget_min", name="ck_job_budget_range"),
        CheckConstraint("budget_min > 0", name="ck_job_budget_positive"),
    )

    client_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    title: Mapped[str] = mapped_column(String(200), nullable=False)

    description: Mapped[str] = mapped_column(Text, nullable=False)

    category: Mapped[str] = mapped_column(String(100), nullable=False)

    skills: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    budget_min: Mapped[Amount] = mapped_column(nullable=False)

    budget_max: Mapped[Amount] = mapped_column(nullable=False)

    budget_type: Mapped[BudgetType] = mapped_column(
        status_enum(BudgetType),
        nullable=False,
    )

    duration: Mapped[str | None] = mapped_column(String(100), nullable=True)

    experience_level: Mapped[ExperienceLevel | None] = mapped_column(
        status_enum(ExperienceLevel),
        nullable=True,
    )

    is_remote: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    location: Mapped[str | None] = mapped_column(String(200), nullable=True)

    status: Mapped[JobStatus] = mapped_column(
        status_enum(JobStatus),
        nullable=False,
        default=JobStatus.OPEN,
    )

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    def __repr__(self) -> str:
        return f"<Job {self.id} status={self.status.value} v{self.version}>"

    @property
    def is_open(self) -> bool:
        return self.status == JobStatus.OPEN
