"""
End-to-end flows through MarketplaceOrchestrator with committing sessions.

Covers the reference job-to-review scenario, the operation log trail,
orchestrator-level rate limiting and the caller-side conflict retry.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from marketplace_kernel.domain.clock import DeterministicClock
from marketplace_kernel.domain.lifecycle import (
    BudgetType,
    ContractStatus,
    ContractType,
    DeliveryStatus,
    JobStatus,
    ProposalStatus,
)
from marketplace_kernel.domain.rules import RateLimit
from marketplace_kernel.exceptions import (
    ConcurrentTransitionError,
    DeliveryRequiredError,
    InvalidFieldError,
    InvalidStatusError,
    PreconditionError,
    RateLimitExceededError,
)
from marketplace_services import MarketplaceOrchestrator, call_with_conflict_retry

TITLE = "Landing page redesign"
DESCRIPTION = (
    "Redesign the marketing landing page with a responsive layout and an "
    "accessible colour palette."
)
COVER_LETTER = (
    "I have shipped a dozen landing pages like this one and can start right "
    "away with a first draft in two days."
)
DELIVERY = "Delivered the responsive layout, colour tokens and a style guide."
COMMENT = "Great work, thank you!"


@pytest.fixture
def clock():
    return DeterministicClock()


@pytest.fixture
def orchestrator(session_factory, clock):
    return MarketplaceOrchestrator(session_factory, clock=clock)


def _post(orchestrator, client_id, **overrides):
    fields = dict(
        title=TITLE,
        description=DESCRIPTION,
        category="web-design",
        budget_min=Decimal("100.00"),
        budget_max=Decimal("200.00"),
        budget_type=BudgetType.FIXED,
    )
    fields.update(overrides)
    return orchestrator.post_job(client_id, **fields)


class TestReferenceScenario:
    def test_job_to_review(self, orchestrator):
        client, f1, f2 = uuid4(), uuid4(), uuid4()
        job = _post(orchestrator, client)
        p1 = orchestrator.submit_proposal(job.id, f1, Decimal("100"), COVER_LETTER)
        p2 = orchestrator.submit_proposal(job.id, f2, Decimal("150"), COVER_LETTER)

        contract_id = orchestrator.accept_proposal(job.id, p1.id, client)

        contract = orchestrator.get_contract(contract_id)
        assert orchestrator.get_proposal(p1.id).status is ProposalStatus.ACCEPTED
        assert orchestrator.get_proposal(p2.id).status is ProposalStatus.REJECTED
        assert orchestrator.get_job(job.id).status is JobStatus.IN_PROGRESS
        assert contract.status is ContractStatus.ACTIVE
        assert contract.amount == Decimal("100.00")
        assert contract.contract_type is ContractType.FIXED
        assert contract.freelancer_id == f1

        with pytest.raises(PreconditionError):
            orchestrator.accept_proposal(job.id, p2.id, client)
        assert orchestrator.get_job(job.id).status is JobStatus.IN_PROGRESS
        assert orchestrator.get_proposal(p2.id).status is ProposalStatus.REJECTED
        assert len(orchestrator.contracts_for_party(client)) == 1

        delivered = orchestrator.submit_delivery(contract_id, DELIVERY, f1)
        assert delivered.delivery_status is DeliveryStatus.DELIVERED

        review_id = orchestrator.complete_contract(contract_id, 5, COMMENT, client)

        review = orchestrator.review_for_contract(contract_id)
        assert review.id == review_id
        assert review.rating == 5
        assert review.amount == Decimal("100.00")
        assert orchestrator.get_contract(contract_id).status is ContractStatus.COMPLETED
        assert orchestrator.get_job(job.id).status is JobStatus.COMPLETED

        with pytest.raises(InvalidStatusError):
            orchestrator.complete_contract(contract_id, 5, COMMENT, client)
        assert orchestrator.review_for_contract(contract_id).id == review_id
        assert orchestrator.reputation(f1).review_count == 1

    def test_revision_round_trip(self, orchestrator):
        client, freelancer = uuid4(), uuid4()
        job = _post(orchestrator, client)
        proposal = orchestrator.submit_proposal(job.id, freelancer, "120", COVER_LETTER)
        contract_id = orchestrator.accept_proposal(job.id, proposal.id, client)

        with pytest.raises(DeliveryRequiredError):
            orchestrator.complete_contract(contract_id, 5, COMMENT, client)

        orchestrator.submit_delivery(contract_id, DELIVERY, freelancer)
        revised = orchestrator.request_revision(contract_id, client)
        assert revised.delivery_status is DeliveryStatus.REVISION_REQUESTED

        with pytest.raises(DeliveryRequiredError):
            orchestrator.complete_contract(contract_id, 5, COMMENT, client)

        orchestrator.submit_delivery(contract_id, DELIVERY + " Fixed the footer.", freelancer)
        orchestrator.complete_contract(contract_id, 4, COMMENT, client)

        contract = orchestrator.get_contract(contract_id)
        assert contract.delivery_status is DeliveryStatus.ACCEPTED
        assert contract.delivery_text.endswith("Fixed the footer.")

    def test_cancellations(self, orchestrator):
        client = uuid4()
        open_job = _post(orchestrator, client)
        bid = orchestrator.submit_proposal(open_job.id, uuid4(), "100", COVER_LETTER)

        cancelled = orchestrator.cancel_job(open_job.id, client)

        assert cancelled.status is JobStatus.CANCELLED
        assert orchestrator.get_proposal(bid.id).status is ProposalStatus.REJECTED
        assert open_job.id not in {j.id for j in orchestrator.list_open_jobs()}

        taken = _post(orchestrator, client)
        winner = orchestrator.submit_proposal(taken.id, uuid4(), "100", COVER_LETTER)
        contract_id = orchestrator.accept_proposal(taken.id, winner.id, client)

        contract = orchestrator.cancel_contract(contract_id, client)

        assert contract.status is ContractStatus.CANCELLED
        assert contract.end_date is not None
        assert orchestrator.get_job(taken.id).status is JobStatus.IN_PROGRESS

    def test_conversation(self, orchestrator):
        client, freelancer = uuid4(), uuid4()
        job = _post(orchestrator, client)
        conversation = orchestrator.start_conversation(client, freelancer, job_id=job.id)

        sent = orchestrator.send_message(conversation.id, freelancer, "Is the copy final?")
        read = orchestrator.mark_read(sent.id, client)

        assert read.is_read is True
        again = orchestrator.start_conversation(
            client, freelancer, job_id=job.id, acting_user_id=freelancer
        )
        assert again.id == conversation.id


class TestOperationLogging:
    def test_success_is_bracketed_by_one_correlation_id(self, orchestrator, captured_logs):
        client = uuid4()
        _post(orchestrator, client)

        records = [r for r in captured_logs() if r.get("operation") == "post_job"]
        started = next(r for r in records if r["message"] == "operation_started")
        completed = next(r for r in records if r["message"] == "operation_completed")
        assert started["correlation_id"] == completed["correlation_id"]
        assert completed["actor_id"] == str(client)
        assert completed["duration_ms"] >= 0
        assert any(r["message"] == "job_posted" for r in records)

    def test_failure_is_logged_with_error_code(self, orchestrator, captured_logs):
        with pytest.raises(InvalidFieldError):
            _post(orchestrator, uuid4(), title="short")

        failed = [r for r in captured_logs() if r["message"] == "operation_failed"]
        assert failed[-1]["level"] == "WARNING"
        assert failed[-1]["error_code"] == "INVALID_FIELD"
        assert failed[-1]["operation"] == "post_job"

    def test_context_does_not_leak(self, orchestrator, captured_logs):
        from marketplace_kernel.logging_config import LogContext

        _post(orchestrator, uuid4())

        assert LogContext.get_all() == {}


class TestOrchestratorRateLimits:
    @pytest.fixture
    def limited(self, session_factory, clock):
        return MarketplaceOrchestrator(
            session_factory,
            clock=clock,
            rate_limits={
                "post_job": RateLimit("post_job", 1, 3600),
                "send_message": RateLimit("send_message", 2, 60),
            },
        )

    def test_failed_operation_does_not_use_quota(self, limited):
        client = uuid4()
        with pytest.raises(InvalidFieldError):
            _post(limited, client, title="short")

        _post(limited, client)

        with pytest.raises(RateLimitExceededError):
            _post(limited, client)

    def test_window_slides_with_clock(self, limited, clock):
        client, freelancer = uuid4(), uuid4()
        conversation = limited.start_conversation(client, freelancer)
        for _ in range(2):
            limited.send_message(conversation.id, client, "ping")

        with pytest.raises(RateLimitExceededError) as exc_info:
            limited.send_message(conversation.id, client, "ping")
        assert exc_info.value.max_count == 2

        clock.advance(61)
        limited.send_message(conversation.id, client, "ping")

    def test_unlisted_actions_are_unlimited(self, limited):
        client = uuid4()
        job = _post(limited, client)
        for _ in range(3):
            limited.submit_proposal(job.id, uuid4(), "100", COVER_LETTER)

        assert len(limited.proposals_for_job(job.id)) == 3

    def test_cleanup_keeps_rows_inside_the_longest_window(self, limited, clock, captured_logs):
        client, freelancer = uuid4(), uuid4()
        _post(limited, client)
        conversation = limited.start_conversation(client, freelancer)
        for _ in range(2):
            limited.send_message(conversation.id, client, "ping")

        clock.advance(120)
        assert limited.cleanup_rate_limit_logs() == 0

        with pytest.raises(RateLimitExceededError):
            _post(limited, client)

        clock.advance(3600)
        assert limited.cleanup_rate_limit_logs() == 3
        _post(limited, client)

        completed = [
            r for r in captured_logs()
            if r["message"] == "operation_completed"
            and r["operation"] == "cleanup_rate_limit_logs"
        ]
        assert len(completed) == 2
        assert "actor_id" not in completed[-1]

    def test_cleanup_with_explicit_age(self, limited, clock):
        client, freelancer = uuid4(), uuid4()
        conversation = limited.start_conversation(client, freelancer)
        limited.send_message(conversation.id, client, "ping")

        clock.advance(61)

        assert limited.cleanup_rate_limit_logs(older_than_seconds=60) == 1

    def test_cleanup_without_limits_needs_an_age(self, orchestrator):
        with pytest.raises(ValueError):
            orchestrator.cleanup_rate_limit_logs()
        with pytest.raises(ValueError):
            orchestrator.cleanup_rate_limit_logs(older_than_seconds=0)

        assert orchestrator.cleanup_rate_limit_logs(older_than_seconds=60) == 0

    def test_from_settings_uses_configured_limits(self, session_factory, clock):
        from marketplace_config import get_active_config

        settings = get_active_config()
        orchestrator = MarketplaceOrchestrator.from_settings(session_factory, settings, clock)

        client = uuid4()
        for _ in range(settings.rate_limit_for("post_job").max_count):
            _post(orchestrator, client)
        with pytest.raises(RateLimitExceededError):
            _post(orchestrator, client)


def _conflict():
    return ConcurrentTransitionError("Job", str(uuid4()), "open")


class TestConflictRetry:
    def test_retries_once_then_succeeds(self, captured_logs):
        outcomes = iter([_conflict(), "done"])

        def operation():
            outcome = next(outcomes)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        assert call_with_conflict_retry(operation) == "done"
        retry = [r for r in captured_logs() if r["message"] == "conflict_retry"]
        assert retry[-1]["attempt"] == 1
        assert retry[-1]["error_code"] == "CONCURRENT_TRANSITION"

    def test_last_conflict_propagates(self):
        calls = []

        def operation():
            calls.append(1)
            raise _conflict()

        with pytest.raises(ConcurrentTransitionError):
            call_with_conflict_retry(operation, retries=2)
        assert len(calls) == 3

    def test_preconditions_are_not_retried(self):
        calls = []

        def operation():
            calls.append(1)
            raise InvalidStatusError("Job", "j1", "completed", ("open",))

        with pytest.raises(InvalidStatusError):
            call_with_conflict_retry(operation)
        assert len(calls) == 1

    def test_negative_retries_rejected(self):
        with pytest.raises(ValueError):
            call_with_conflict_retry(lambda: None, retries=-1)

    def test_retry_reads_fresh_state(self, orchestrator):
        client = uuid4()
        job = _post(orchestrator, client)
        first = orchestrator.submit_proposal(job.id, uuid4(), "100", COVER_LETTER)
        second = orchestrator.submit_proposal(job.id, uuid4(), "110", COVER_LETTER)
        orchestrator.accept_proposal(job.id, first.id, client)

        with pytest.raises(InvalidStatusError):
            call_with_conflict_retry(
                lambda: orchestrator.accept_proposal(job.id, second.id, client)
            )
