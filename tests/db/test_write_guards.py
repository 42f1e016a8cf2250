"""
ORM write guards and the database constraints behind the services.

The services never trip these; the tests go around the services on purpose
to prove the backstops hold.
"""

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import event
from sqlalchemy.exc import IntegrityError

from marketplace_kernel.db.immutability import (
    _check_guarded_status_fields,
    register_immutability_listeners,
)
from marketplace_kernel.domain.lifecycle import (
    ContractStatus,
    ContractType,
    DeliveryStatus,
    ProposalStatus,
)
from marketplace_kernel.exceptions import ImmutabilityViolationError
from marketplace_kernel.models.contract import Contract
from marketplace_kernel.models.conversation import Message
from marketplace_kernel.models.job import Job
from marketplace_kernel.models.proposal import Proposal
from marketplace_kernel.models.review import Review

COVER_LETTER = "c" * 60
COMMENT = "Inserted around the service."


def _proposal(job_id, now, status=ProposalStatus.PENDING, freelancer_id=None):
    return Proposal(
        job_id=job_id,
        freelancer_id=freelancer_id or uuid4(),
        bid_amount=Decimal("50.00"),
        cover_letter=COVER_LETTER,
        status=status,
        version=1,
        created_at=now,
        updated_at=now,
    )


def _review(contract, now, rating=5):
    return Review(
        contract_id=contract.id,
        job_id=contract.job_id,
        client_id=contract.client_id,
        freelancer_id=contract.freelancer_id,
        rating=rating,
        comment=COMMENT,
        amount=contract.amount,
        created_at=now,
        updated_at=now,
    )


class TestOrmWriteGuards:
    def test_proposal_status_assignment_blocked(self, session, make_job, make_proposal):
        job = make_job()
        proposal = make_proposal(job.id)
        row = session.get(Proposal, proposal.id)

        row.status = ProposalStatus.ACCEPTED
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

        assert session.get(Proposal, proposal.id, populate_existing=True).status is ProposalStatus.PENDING

    def test_contract_delivery_status_assignment_blocked(self, session, make_contract):
        contract = make_contract()
        row = session.get(Contract, contract.id)

        row.delivery_status = DeliveryStatus.DELIVERED
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

    def test_version_assignment_blocked(self, session, make_job):
        job = make_job()
        row = session.get(Job, job.id)

        row.version = 99
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

    def test_non_status_job_fields_may_change(self, session, make_job):
        job = make_job()
        row = session.get(Job, job.id)

        row.location = "Lisbon"
        session.flush()

        assert session.get(Job, job.id, populate_existing=True).location == "Lisbon"

    def test_job_delete_blocked(self, session, make_job, captured_logs):
        job = make_job()

        session.delete(session.get(Job, job.id))
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

        blocked = [r for r in captured_logs() if r["message"] == "immutability_violation_blocked"]
        assert blocked[-1]["operation"] == "DELETE"

    def test_review_is_frozen(self, session, make_delivered_contract, completion_service):
        contract = make_delivered_contract()
        review = completion_service.complete_contract(contract.id, 5, COMMENT, contract.client_id)
        session.commit()
        row = session.get(Review, review.id)

        row.rating = 1
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

        session.delete(session.get(Review, review.id))
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

    def test_message_read_flag_may_change(self, session, messaging_service, make_job):
        job = make_job()
        conversation = messaging_service.start_conversation(job.client_id, uuid4())
        sent = messaging_service.send_message(conversation.id, job.client_id, "hello")
        session.commit()

        row = session.get(Message, sent.id)
        row.is_read = True
        session.flush()

    def test_registration_is_idempotent(self):
        register_immutability_listeners()
        register_immutability_listeners()

        assert event.contains(Job, "before_update", _check_guarded_status_fields)


class TestDatabaseBackstops:
    def test_one_accepted_proposal_per_job(self, session, make_job, deterministic_clock):
        job = make_job()
        now = deterministic_clock.now()
        session.add(_proposal(job.id, now, ProposalStatus.ACCEPTED))
        session.flush()

        session.add(_proposal(job.id, now, ProposalStatus.ACCEPTED))
        with pytest.raises(IntegrityError):
            session.flush()
        session.rollback()

    def test_many_rejected_proposals_allowed(self, session, make_job, deterministic_clock):
        job = make_job()
        now = deterministic_clock.now()
        session.add_all([_proposal(job.id, now, ProposalStatus.REJECTED) for _ in range(3)])
        session.flush()

    def test_one_proposal_per_freelancer_per_job(self, session, make_job, deterministic_clock):
        job = make_job()
        freelancer = uuid4()
        now = deterministic_clock.now()
        session.add(_proposal(job.id, now, freelancer_id=freelancer))
        session.flush()

        session.add(_proposal(job.id, now, freelancer_id=freelancer))
        with pytest.raises(IntegrityError):
            session.flush()
        session.rollback()

    def test_one_contract_per_proposal(self, session, make_contract, deterministic_clock):
        contract = make_contract()
        now = deterministic_clock.now()

        session.add(
            Contract(
                job_id=contract.job_id,
                proposal_id=contract.proposal_id,
                client_id=contract.client_id,
                freelancer_id=contract.freelancer_id,
                amount=contract.amount,
                contract_type=ContractType.FIXED,
                status=ContractStatus.ACTIVE,
                start_date=now,
                version=1,
                created_at=now,
                updated_at=now,
            )
        )
        with pytest.raises(IntegrityError):
            session.flush()
        session.rollback()

    def test_one_review_per_contract(self, session, make_contract, deterministic_clock):
        contract = make_contract()
        now = deterministic_clock.now()
        session.add(_review(contract, now))
        session.flush()

        session.add(_review(contract, now))
        with pytest.raises(IntegrityError):
            session.flush()
        session.rollback()

    @pytest.mark.parametrize("rating", [0, 6])
    def test_rating_check_constraint(self, session, make_contract, deterministic_clock, rating):
        contract = make_contract()

        session.add(_review(contract, deterministic_clock.now(), rating=rating))
        with pytest.raises(IntegrityError):
            session.flush()
        session.rollback()
