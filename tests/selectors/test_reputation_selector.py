"""
Freelancer reputation derived from review and contract rows.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from marketplace_kernel.selectors.reputation_selector import ReputationSelector

COMMENT = "Reliable and quick, would hire again."
DELIVERY = "Delivered everything listed in the job description."


@pytest.fixture
def complete_for(
    session, make_job, make_proposal, acceptance_service, delivery_service,
    completion_service, deterministic_clock,
):
    """Run one job to completion for ``freelancer_id`` with the given rating."""

    def _complete(freelancer_id, rating, bid_amount):
        job = make_job()
        proposal = make_proposal(job.id, freelancer_id=freelancer_id, bid_amount=bid_amount)
        contract = acceptance_service.accept_proposal(job.id, proposal.id, job.client_id)
        delivery_service.submit_delivery(contract.id, DELIVERY, freelancer_id)
        deterministic_clock.advance(60)
        review = completion_service.complete_contract(contract.id, rating, COMMENT, job.client_id)
        session.commit()
        return review

    return _complete


class TestForFreelancer:
    def test_aggregates(self, session, complete_for):
        freelancer = uuid4()
        complete_for(freelancer, 5, Decimal("100.00"))
        complete_for(freelancer, 4, Decimal("250.50"))
        complete_for(uuid4(), 1, Decimal("999.00"))

        reputation = ReputationSelector(session).for_freelancer(freelancer)

        assert reputation.freelancer_id == freelancer
        assert reputation.review_count == 2
        assert reputation.average_rating == Decimal("4.5")
        assert reputation.total_earned == Decimal("350.50")
        assert reputation.completed_contracts == 2

    def test_average_rounds_half_up_to_one_place(self, session, complete_for):
        freelancer = uuid4()
        for rating in (5, 4, 4):
            complete_for(freelancer, rating, Decimal("10"))

        reputation = ReputationSelector(session).for_freelancer(freelancer)

        assert reputation.average_rating == Decimal("4.3")

    def test_active_contracts_do_not_count(self, session, make_contract):
        contract = make_contract()

        reputation = ReputationSelector(session).for_freelancer(contract.freelancer_id)

        assert reputation.review_count == 0
        assert reputation.average_rating is None
        assert reputation.total_earned == Decimal("0.00")
        assert reputation.completed_contracts == 0

    def test_reviews_newest_first(self, session, complete_for):
        freelancer = uuid4()
        older = complete_for(freelancer, 3, Decimal("10"))
        newer = complete_for(freelancer, 5, Decimal("10"))

        reviews = ReputationSelector(session).reviews_for_freelancer(freelancer)

        assert [r.id for r in reviews] == [newer.id, older.id]
