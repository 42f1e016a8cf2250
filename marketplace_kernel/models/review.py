"""
Module: marketplace_kernel.models.review
Responsibility: ORM persistence for the client's rating of a completed
    contract.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - At most one review per contract (uq_review_contract), created in the
      same transaction that completes the contract.
    - rating is an integer in [1, 5] (ck_review_rating_range).
    - Reviews are immutable once written (db/immutability.py).
"""

from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from marketplace_kernel.db.base import TimestampedBase, UUIDString
from marketplace_kernel.db.types import Amount


class Review(TimestampedBase):
    __tablename__ = "reviews"

    __table_args__ = (
        UniqueConstraint("contract_id", name="uq_review_contract"),
        Index("idx_review_freelancer", "freelancer_id"),
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_review_rating_range"),
    )

    contract_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("contracts.id"),
        nullable=False,
    )

    job_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("jobs.id"),
        nullable=False,
    )

    client_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    freelancer_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    rating: Mapped[int] = mapped_column(Integer, nullable=False)

    comment: Mapped[str] = mapped_column(Text, nullable=False)

    # Snapshot of the contract amount at completion
    amount: Mapped[Amount] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<Review {self.id} contract={self.contract_id} rating={self.rating}>"
