"""
Atomicity of multi-row transitions under simulated crashes.

A crash part-way through acceptance or completion must leave the database
exactly as it was before the transaction began: no claimed job without a
contract, no closed contract without a review.
"""

from unittest.mock import patch
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from marketplace_kernel.domain.clock import DeterministicClock
from marketplace_kernel.domain.lifecycle import (
    BudgetType,
    ContractStatus,
    DeliveryStatus,
    JobStatus,
    ProposalStatus,
)
from marketplace_kernel.models.contract import Contract
from marketplace_kernel.models.job import Job
from marketplace_kernel.models.proposal import Proposal
from marketplace_kernel.models.review import Review
from marketplace_kernel.services.acceptance_service import ProposalAcceptanceService
from marketplace_kernel.services.completion_service import ContractCompletionService
from marketplace_services.orchestrator import MarketplaceOrchestrator

COMMENT = "Solid delivery, on schedule."


class SimulatedCrash(Exception):
    """Raised by a patched step to stand in for a process crash."""


def _count(session, model, **criteria):
    stmt = select(func.count(model.id))
    for name, value in criteria.items():
        stmt = stmt.where(getattr(model, name) == value)
    return session.execute(stmt).scalar_one()


class TestAcceptanceCrash:
    @pytest.mark.parametrize("step", ["_accept_target", "_reject_competitors", "_create_contract"])
    def test_crash_leaves_no_partial_acceptance(
        self, session, acceptance_service, make_job, make_proposal, step
    ):
        job = make_job()
        target = make_proposal(job.id)
        competitor = make_proposal(job.id)

        with patch.object(acceptance_service, step, side_effect=SimulatedCrash(step)):
            with pytest.raises(SimulatedCrash):
                acceptance_service.accept_proposal(job.id, target.id, job.client_id)
        session.rollback()

        job_row = session.get(Job, job.id, populate_existing=True)
        assert job_row.status is JobStatus.OPEN
        assert job_row.version == 1
        for proposal_id in (target.id, competitor.id):
            row = session.get(Proposal, proposal_id, populate_existing=True)
            assert row.status is ProposalStatus.PENDING
            assert row.version == 1
        assert _count(session, Contract, job_id=job.id) == 0

    def test_acceptance_succeeds_after_crash(
        self, session, acceptance_service, make_job, make_proposal
    ):
        job = make_job()
        target = make_proposal(job.id)

        with patch.object(acceptance_service, "_create_contract", side_effect=SimulatedCrash):
            with pytest.raises(SimulatedCrash):
                acceptance_service.accept_proposal(job.id, target.id, job.client_id)
        session.rollback()

        contract = acceptance_service.accept_proposal(job.id, target.id, job.client_id)

        assert contract.proposal_id == target.id
        assert _count(session, Contract, job_id=job.id) == 1


class TestCompletionCrash:
    @pytest.mark.parametrize("step", ["_record_review", "_complete_job"])
    def test_crash_leaves_contract_active_and_unreviewed(
        self, session, completion_service, make_delivered_contract, step
    ):
        contract = make_delivered_contract()

        with patch.object(completion_service, step, side_effect=SimulatedCrash(step)):
            with pytest.raises(SimulatedCrash):
                completion_service.complete_contract(contract.id, 5, COMMENT, contract.client_id)
        session.rollback()

        row = session.get(Contract, contract.id, populate_existing=True)
        assert row.status is ContractStatus.ACTIVE
        assert row.delivery_status is DeliveryStatus.DELIVERED
        assert row.end_date is None
        assert row.version == contract.version
        assert session.get(Job, contract.job_id, populate_existing=True).status is JobStatus.IN_PROGRESS
        assert _count(session, Review, contract_id=contract.id) == 0


class TestOrchestratorCrash:
    @pytest.fixture
    def orchestrator(self, session_factory):
        return MarketplaceOrchestrator(session_factory, clock=DeterministicClock())

    def _open_job_with_bids(self, orchestrator):
        client = uuid4()
        job = orchestrator.post_job(
            client,
            "Migrate a reporting database",
            "Move the reporting database to a managed service and verify every report.",
            "data",
            "200",
            "800",
            BudgetType.FIXED,
        )
        letter = "I have done three migrations like this and can start on Monday."
        bids = [
            orchestrator.submit_proposal(job.id, uuid4(), "300", letter) for _ in range(3)
        ]
        return client, job, bids

    def test_crash_rolls_back_the_whole_acceptance(self, orchestrator, captured_logs):
        client, job, bids = self._open_job_with_bids(orchestrator)

        with patch.object(
            ProposalAcceptanceService, "_create_contract", side_effect=SimulatedCrash
        ):
            with pytest.raises(SimulatedCrash):
                orchestrator.accept_proposal(job.id, bids[0].id, client)

        assert orchestrator.get_job(job.id).status is JobStatus.OPEN
        statuses = {p.status for p in orchestrator.proposals_for_job(job.id)}
        assert statuses == {ProposalStatus.PENDING}
        assert orchestrator.contracts_for_party(client) == []

        failed = [r for r in captured_logs() if r["message"] == "operation_failed"]
        assert failed[-1]["level"] == "ERROR"
        assert failed[-1]["operation"] == "accept_proposal"

    def test_crash_rolls_back_the_whole_completion(self, orchestrator):
        client, job, bids = self._open_job_with_bids(orchestrator)
        contract_id = orchestrator.accept_proposal(job.id, bids[0].id, client)
        orchestrator.submit_delivery(
            contract_id, "Migration finished and all reports verified.", bids[0].freelancer_id
        )

        with patch.object(
            ContractCompletionService, "_complete_job", side_effect=SimulatedCrash
        ):
            with pytest.raises(SimulatedCrash):
                orchestrator.complete_contract(contract_id, 5, COMMENT, client)

        contract = orchestrator.get_contract(contract_id)
        assert contract.status is ContractStatus.ACTIVE
        assert contract.delivery_status is DeliveryStatus.DELIVERED
        assert orchestrator.review_for_contract(contract_id) is None
        assert orchestrator.get_job(job.id).status is JobStatus.IN_PROGRESS

        review_id = orchestrator.complete_contract(contract_id, 5, COMMENT, client)
        assert orchestrator.review_for_contract(contract_id).id == review_id
