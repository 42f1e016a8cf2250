"""
Job listings, proposal lists and contract lookups.
"""

from decimal import Decimal
from uuid import uuid4

from marketplace_kernel.domain.lifecycle import BudgetType, ContractStatus, ProposalStatus
from marketplace_kernel.selectors.contract_selector import ContractSelector
from marketplace_kernel.selectors.job_selector import JobSelector

COMMENT = "Clear communication and solid code."


class TestListOpenJobs:
    def test_newest_first_and_only_open(self, session, make_job, make_contract, deterministic_clock):
        older = make_job()
        deterministic_clock.advance(10)
        newer = make_job()
        deterministic_clock.advance(10)
        taken = make_contract()

        ids = [j.id for j in JobSelector(session).list_open_jobs()]

        assert ids[:2] == [newer.id, older.id]
        assert taken.job_id not in ids

    def test_filters(self, session, make_job, deterministic_clock):
        design = make_job(category="design", skills=("Figma",), budget_max=Decimal("900"))
        deterministic_clock.advance(1)
        hourly = make_job(category="design", budget_type=BudgetType.HOURLY, skills=("css",))
        deterministic_clock.advance(1)
        dev = make_job(category="development", skills=("python",))

        selector = JobSelector(session)

        assert {j.id for j in selector.list_open_jobs(category="design")} == {design.id, hourly.id}
        assert [j.id for j in selector.list_open_jobs(skill="figma")] == [design.id]
        assert [j.id for j in selector.list_open_jobs(category="design", budget_type=BudgetType.HOURLY)] == [hourly.id]
        assert [j.id for j in selector.list_open_jobs(min_budget=Decimal("600"))] == [design.id]
        assert dev.id in {j.id for j in selector.list_open_jobs(skill="python")}

    def test_limit(self, session, make_job, deterministic_clock):
        for _ in range(3):
            make_job(category="limited")
            deterministic_clock.advance(1)

        assert len(JobSelector(session).list_open_jobs(category="limited", limit=2)) == 2


class TestProposalsForJob:
    def test_status_filter_after_acceptance(self, session, make_job, make_proposal, acceptance_service):
        job = make_job()
        winner = make_proposal(job.id)
        loser = make_proposal(job.id)
        acceptance_service.accept_proposal(job.id, winner.id, job.client_id)

        selector = JobSelector(session)

        assert {p.id for p in selector.proposals_for_job(job.id)} == {winner.id, loser.id}
        rejected = selector.proposals_for_job(job.id, ProposalStatus.REJECTED)
        assert [p.id for p in rejected] == [loser.id]
        assert selector.proposals_for_job(job.id, ProposalStatus.PENDING) == []


class TestContractSelector:
    def test_contracts_for_either_party(self, session, make_contract, contract_service):
        contract = make_contract()
        selector = ContractSelector(session)

        assert [c.id for c in selector.contracts_for_party(contract.client_id)] == [contract.id]
        assert [c.id for c in selector.contracts_for_party(contract.freelancer_id)] == [contract.id]
        assert selector.contracts_for_party(uuid4()) == []

        contract_service.cancel_contract(contract.id, contract.client_id)

        assert selector.contracts_for_party(contract.client_id, ContractStatus.ACTIVE) == []
        cancelled = selector.contracts_for_party(contract.client_id, ContractStatus.CANCELLED)
        assert cancelled[0].status is ContractStatus.CANCELLED

    def test_review_for_contract(self, session, make_delivered_contract, completion_service):
        contract = make_delivered_contract()
        selector = ContractSelector(session)
        assert selector.review_for_contract(contract.id) is None
        assert selector.review_count(contract.id) == 0

        review = completion_service.complete_contract(contract.id, 4, COMMENT, contract.client_id)

        assert selector.review_for_contract(contract.id) == review
        assert selector.review_count(contract.id) == 1
