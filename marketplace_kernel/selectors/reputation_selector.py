"""
ReputationSelector -- freelancer reputation derived from reviews.

Completing a contract "updates" a freelancer's reputation only in the sense
that a new review row exists.  Averages, counts and earnings are always
recomputed from rows, so there is nothing to keep in sync.
"""

from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from sqlalchemy import func, select

from marketplace_kernel.domain.dtos import FreelancerReputation, ReviewInfo
from marketplace_kernel.domain.lifecycle import ContractStatus
from marketplace_kernel.models.contract import Contract
from marketplace_kernel.models.review import Review
from marketplace_kernel.selectors.base import BaseSelector

_ONE_PLACE = Decimal("0.1")


class ReputationSelector(BaseSelector[Review]):

    def for_freelancer(self, freelancer_id: UUID) -> FreelancerReputation:
        review_count, rating_sum, total_earned = self.session.execute(
            select(
                func.count(Review.id),
                func.coalesce(func.sum(Review.rating), 0),
                func.coalesce(func.sum(Review.amount), 0),
            ).where(Review.freelancer_id == freelancer_id)
        ).one()

        completed = self.session.execute(
            select(func.count(Contract.id)).where(
                Contract.freelancer_id == freelancer_id,
                Contract.status == ContractStatus.COMPLETED,
            )
        ).scalar_one()

        average = None
        if review_count:
            average = (Decimal(int(rating_sum)) / Decimal(review_count)).quantize(
                _ONE_PLACE, rounding=ROUND_HALF_UP
            )

        return FreelancerReputation(
            freelancer_id=freelancer_id,
            review_count=review_count,
            average_rating=average,
            total_earned=Decimal(str(total_earned)).quantize(Decimal("0.01")),
            completed_contracts=completed,
        )

    def reviews_for_freelancer(self, freelancer_id: UUID) -> list[ReviewInfo]:
        """Reviews newest first."""
        reviews = self.session.execute(
            select(Review)
            .where(Review.freelancer_id == freelancer_id)
            .order_by(Review.created_at.desc(), Review.id)
        ).scalars().all()
        return [ReviewInfo.from_model(r) for r in reviews]
