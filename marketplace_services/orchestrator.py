"""
MarketplaceOrchestrator -- the transaction boundary for every operation.

Responsibility:
    Opens one session per call, runs the kernel service inside it, commits
    on success, and rolls back and re-raises on any error.  This is the
    only place in the codebase that commits.

Architecture position:
    Services layer -- sits above marketplace_kernel and marketplace_config.
    Kernel services flush only; this class owns begin/commit/rollback.

Invariants enforced:
    ATOMIC_TRANSITIONS -- every multi-row transition either commits as a
                          whole or is rolled back as a whole.  No retry
                          happens here; see conflict_retry for the optional
                          caller-side policy.

Every call runs under ``LogContext.bind`` with a fresh correlation id, the
acting user and the operation name, and logs ``operation_started``,
``operation_completed`` (with duration) or ``operation_failed``.

Usage:
    engine = create_engine_from_url(settings.database.url)
    create_tables(engine)
    orchestrator = MarketplaceOrchestrator(
        create_session_factory(engine),
        rules=build_lifecycle_rules(settings),
        rate_limits=build_rate_limits(settings),
    )
    contract_id = orchestrator.accept_proposal(job_id, proposal_id, client_id)
"""

from __future__ import annotations

import time
from decimal import Decimal
from typing import Callable, TypeVar
from uuid import UUID, uuid4

from sqlalchemy.orm import Session, sessionmaker

from marketplace_config.bridges import build_lifecycle_rules, build_rate_limits
from marketplace_config.schema import MarketplaceSettings
from marketplace_kernel.db.immutability import register_immutability_listeners
from marketplace_kernel.domain.clock import Clock, SystemClock
from marketplace_kernel.domain.dtos import (
    ContractInfo,
    ConversationInfo,
    FreelancerReputation,
    JobInfo,
    MessageInfo,
    ProposalInfo,
    ReviewInfo,
)
from marketplace_kernel.domain.lifecycle import BudgetType, ContractStatus, ExperienceLevel
from marketplace_kernel.domain.rules import DEFAULT_RULES, LifecycleRules, RateLimit
from marketplace_kernel.exceptions import MarketplaceError
from marketplace_kernel.logging_config import LogContext, get_logger
from marketplace_kernel.selectors.contract_selector import ContractSelector
from marketplace_kernel.selectors.job_selector import JobSelector
from marketplace_kernel.selectors.reputation_selector import ReputationSelector
from marketplace_kernel.services.acceptance_service import ProposalAcceptanceService
from marketplace_kernel.services.completion_service import ContractCompletionService
from marketplace_kernel.services.contract_service import ContractService
from marketplace_kernel.services.delivery_service import DeliveryService
from marketplace_kernel.services.job_service import JobService
from marketplace_kernel.services.messaging_service import MessagingService
from marketplace_kernel.services.proposal_service import ProposalService
from marketplace_kernel.services.rate_limit_service import RateLimitService

logger = get_logger("services.orchestrator")

T = TypeVar("T")

ACTION_POST_JOB = "post_job"
ACTION_SUBMIT_PROPOSAL = "submit_proposal"
ACTION_SEND_MESSAGE = "send_message"


class MarketplaceOrchestrator:
    """
    Entry point used by the UI / API layer.

    Args:
        session_factory: Produces a fresh session per operation.
        clock: Injected clock; defaults to SystemClock.
        rules: Input bounds; defaults to LifecycleRules().
        rate_limits: Per-action limits keyed by action name.  Actions
            without an entry are not limited.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Clock | None = None,
        rules: LifecycleRules | None = None,
        rate_limits: dict[str, RateLimit] | None = None,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._rules = rules or DEFAULT_RULES
        self._rate_limits = dict(rate_limits or {})
        register_immutability_listeners()

    @classmethod
    def from_settings(
        cls,
        session_factory: sessionmaker[Session],
        settings: MarketplaceSettings,
        clock: Clock | None = None,
    ) -> MarketplaceOrchestrator:
        return cls(
            session_factory,
            clock=clock,
            rules=build_lifecycle_rules(settings),
            rate_limits=build_rate_limits(settings),
        )

    # ------------------------------------------------------------------
    # Transaction plumbing
    # ------------------------------------------------------------------

    def _run(
        self,
        operation: str,
        actor_id: UUID | None,
        work: Callable[[Session], T],
        *,
        job_id: UUID | None = None,
        contract_id: UUID | None = None,
        rate_limited_action: str | None = None,
    ) -> T:
        with LogContext.bind(
            correlation_id=str(uuid4()),
            actor_id=actor_id,
            operation=operation,
            job_id=job_id,
            contract_id=contract_id,
        ):
            logger.info("operation_started")
            t0 = time.monotonic()
            session = self._session_factory()
            try:
                if rate_limited_action is not None:
                    self._enforce_rate_limit(session, actor_id, rate_limited_action)
                result = work(session)
                session.commit()
                logger.info(
                    "operation_completed",
                    extra={"duration_ms": round((time.monotonic() - t0) * 1000, 2)},
                )
                return result
            except MarketplaceError as exc:
                session.rollback()
                logger.warning(
                    "operation_failed",
                    extra={
                        "error_code": exc.code,
                        "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                    },
                    exc_info=True,
                )
                raise
            except Exception:
                session.rollback()
                logger.error(
                    "operation_failed",
                    extra={"duration_ms": round((time.monotonic() - t0) * 1000, 2)},
                    exc_info=True,
                )
                raise
            finally:
                session.close()

    def _read(self, work: Callable[[Session], T]) -> T:
        session = self._session_factory()
        try:
            return work(session)
        finally:
            session.rollback()
            session.close()

    def _enforce_rate_limit(self, session: Session, actor_id: UUID, action: str) -> None:
        limit = self._rate_limits.get(action)
        if limit is not None:
            RateLimitService(session, self._clock, self._rules).enforce(actor_id, limit)

    def _service(self, cls, session: Session):
        return cls(session, self._clock, self._rules)

    # ------------------------------------------------------------------
    # Core lifecycle operations
    # ------------------------------------------------------------------

    def accept_proposal(
        self,
        job_id: UUID,
        proposal_id: UUID,
        acting_client_id: UUID,
    ) -> UUID:
        """Accept a proposal; returns the new contract's id."""
        return self._run(
            "accept_proposal",
            acting_client_id,
            lambda s: self._service(ProposalAcceptanceService, s)
            .accept_proposal(job_id, proposal_id, acting_client_id)
            .id,
            job_id=job_id,
        )

    def complete_contract(
        self,
        contract_id: UUID,
        rating: int,
        comment: str,
        acting_client_id: UUID,
    ) -> UUID:
        """Complete a contract with a review; returns the review id."""
        return self._run(
            "complete_contract",
            acting_client_id,
            lambda s: self._service(ContractCompletionService, s)
            .complete_contract(contract_id, rating, comment, acting_client_id)
            .id,
            contract_id=contract_id,
        )

    def submit_delivery(
        self,
        contract_id: UUID,
        text: str,
        acting_freelancer_id: UUID,
    ) -> ContractInfo:
        return self._run(
            "submit_delivery",
            acting_freelancer_id,
            lambda s: self._service(DeliveryService, s).submit_delivery(
                contract_id, text, acting_freelancer_id
            ),
            contract_id=contract_id,
        )

    def request_revision(self, contract_id: UUID, acting_client_id: UUID) -> ContractInfo:
        return self._run(
            "request_revision",
            acting_client_id,
            lambda s: self._service(DeliveryService, s).request_revision(
                contract_id, acting_client_id
            ),
            contract_id=contract_id,
        )

    # ------------------------------------------------------------------
    # Jobs, proposals, contracts
    # ------------------------------------------------------------------

    def post_job(
        self,
        client_id: UUID,
        title: str,
        description: str,
        category: str,
        budget_min: Decimal | int | str,
        budget_max: Decimal | int | str,
        budget_type: BudgetType | str,
        skills: tuple[str, ...] | list[str] = (),
        duration: str | None = None,
        experience_level: ExperienceLevel | str | None = None,
        is_remote: bool = True,
        location: str | None = None,
    ) -> JobInfo:
        return self._run(
            "post_job",
            client_id,
            lambda s: self._service(JobService, s).post_job(
                client_id,
                title,
                description,
                category,
                budget_min,
                budget_max,
                budget_type,
                skills=skills,
                duration=duration,
                experience_level=experience_level,
                is_remote=is_remote,
                location=location,
            ),
            rate_limited_action=ACTION_POST_JOB,
        )

    def cancel_job(self, job_id: UUID, acting_client_id: UUID) -> JobInfo:
        return self._run(
            "cancel_job",
            acting_client_id,
            lambda s: self._service(JobService, s).cancel_job(job_id, acting_client_id),
            job_id=job_id,
        )

    def submit_proposal(
        self,
        job_id: UUID,
        freelancer_id: UUID,
        bid_amount: Decimal | int | str,
        cover_letter: str,
        timeline: str | None = None,
    ) -> ProposalInfo:
        return self._run(
            "submit_proposal",
            freelancer_id,
            lambda s: self._service(ProposalService, s).submit_proposal(
                job_id, freelancer_id, bid_amount, cover_letter, timeline
            ),
            job_id=job_id,
            rate_limited_action=ACTION_SUBMIT_PROPOSAL,
        )

    def withdraw_proposal(self, proposal_id: UUID, acting_freelancer_id: UUID) -> ProposalInfo:
        return self._run(
            "withdraw_proposal",
            acting_freelancer_id,
            lambda s: self._service(ProposalService, s).withdraw_proposal(
                proposal_id, acting_freelancer_id
            ),
        )

    def reject_proposal(self, proposal_id: UUID, acting_client_id: UUID) -> ProposalInfo:
        return self._run(
            "reject_proposal",
            acting_client_id,
            lambda s: self._service(ProposalService, s).reject_proposal(
                proposal_id, acting_client_id
            ),
        )

    def cancel_contract(self, contract_id: UUID, acting_client_id: UUID) -> ContractInfo:
        return self._run(
            "cancel_contract",
            acting_client_id,
            lambda s: self._service(ContractService, s).cancel_contract(
                contract_id, acting_client_id
            ),
            contract_id=contract_id,
        )

    # ------------------------------------------------------------------
    # Messaging
    # ------------------------------------------------------------------

    def start_conversation(
        self,
        client_id: UUID,
        freelancer_id: UUID,
        job_id: UUID | None = None,
        contract_id: UUID | None = None,
        acting_user_id: UUID | None = None,
    ) -> ConversationInfo:
        return self._run(
            "start_conversation",
            acting_user_id or client_id,
            lambda s: self._service(MessagingService, s).start_conversation(
                client_id, freelancer_id, job_id, contract_id
            ),
            job_id=job_id,
            contract_id=contract_id,
        )

    def send_message(self, conversation_id: UUID, sender_id: UUID, content: str) -> MessageInfo:
        return self._run(
            "send_message",
            sender_id,
            lambda s: self._service(MessagingService, s).send_message(
                conversation_id, sender_id, content
            ),
            rate_limited_action=ACTION_SEND_MESSAGE,
        )

    def mark_read(self, message_id: UUID, reader_id: UUID) -> MessageInfo:
        return self._run(
            "mark_read",
            reader_id,
            lambda s: self._service(MessagingService, s).mark_read(message_id, reader_id),
        )

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def cleanup_rate_limit_logs(self, older_than_seconds: int | None = None) -> int:
        """
        Delete rate-limit log rows that no window can count any more.

        Defaults to the longest configured window.  With no limits
        configured there is no such window, so an explicit age is required.
        Scheduling is left to the caller.  Returns the number of rows deleted.
        """
        if older_than_seconds is None:
            if not self._rate_limits:
                raise ValueError(
                    "older_than_seconds is required when no rate limits are configured"
                )
            older_than_seconds = max(
                limit.window_seconds for limit in self._rate_limits.values()
            )
        if older_than_seconds < 1:
            raise ValueError(f"older_than_seconds must be >= 1, got {older_than_seconds}")
        return self._run(
            "cleanup_rate_limit_logs",
            None,
            lambda s: self._service(RateLimitService, s).purge_expired(older_than_seconds),
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_job(self, job_id: UUID) -> JobInfo:
        return self._read(lambda s: self._service(JobService, s).get_job(job_id))

    def get_proposal(self, proposal_id: UUID) -> ProposalInfo:
        return self._read(lambda s: self._service(ProposalService, s).get_proposal(proposal_id))

    def get_contract(self, contract_id: UUID) -> ContractInfo:
        return self._read(lambda s: self._service(ContractService, s).get_contract(contract_id))

    def list_open_jobs(self, **filters) -> list[JobInfo]:
        return self._read(lambda s: JobSelector(s).list_open_jobs(**filters))

    def proposals_for_job(self, job_id: UUID) -> list[ProposalInfo]:
        return self._read(lambda s: JobSelector(s).proposals_for_job(job_id))

    def contracts_for_party(
        self,
        user_id: UUID,
        status: ContractStatus | None = None,
    ) -> list[ContractInfo]:
        return self._read(lambda s: ContractSelector(s).contracts_for_party(user_id, status))

    def review_for_contract(self, contract_id: UUID) -> ReviewInfo | None:
        return self._read(lambda s: ContractSelector(s).review_for_contract(contract_id))

    def reputation(self, freelancer_id: UUID) -> FreelancerReputation:
        return self._read(lambda s: ReputationSelector(s).for_freelancer(freelancer_id))
