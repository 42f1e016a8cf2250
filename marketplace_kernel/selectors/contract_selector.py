"""ContractSelector -- contracts by party and the review of a contract."""

from uuid import UUID

from sqlalchemy import func, or_, select

from marketplace_kernel.domain.dtos import ContractInfo, ReviewInfo
from marketplace_kernel.domain.lifecycle import ContractStatus
from marketplace_kernel.models.contract import Contract
from marketplace_kernel.models.review import Review
from marketplace_kernel.selectors.base import BaseSelector


class ContractSelector(BaseSelector[Contract]):

    def contracts_for_party(
        self,
        user_id: UUID,
        status: ContractStatus | None = None,
    ) -> list[ContractInfo]:
        """Contracts where ``user_id`` is client or freelancer, newest first."""
        stmt = select(Contract).where(
            or_(Contract.client_id == user_id, Contract.freelancer_id == user_id)
        )
        if status is not None:
            stmt = stmt.where(Contract.status == status)
        contracts = self.session.execute(
            stmt.order_by(Contract.start_date.desc(), Contract.id).execution_options(
                populate_existing=True
            )
        ).scalars().all()
        return [ContractInfo.from_model(c) for c in contracts]

    def review_for_contract(self, contract_id: UUID) -> ReviewInfo | None:
        review = self.session.execute(
            select(Review).where(Review.contract_id == contract_id)
        ).scalar_one_or_none()
        return ReviewInfo.from_model(review) if review else None

    def review_count(self, contract_id: UUID) -> int:
        return self.session.execute(
            select(func.count(Review.id)).where(Review.contract_id == contract_id)
        ).scalar_one()
