"""
Service layer for Proposal submission, withdrawal and rejection.

Responsibility:
    A freelancer submits one proposal per open job and may withdraw it
    while it is pending.  The job's client may reject a single pending
    proposal while the job is open.  Acceptance lives in
    ProposalAcceptanceService because it spans several rows.

Failure modes:
    - InvalidFieldError for bid, cover letter or timeline out of bounds.
    - JobNotFoundError, ProposalNotFoundError.
    - InvalidStatusError if the job is not open or the proposal not pending.
    - NotAuthorizedPartyError for the wrong party, including a client
      bidding on their own job.
    - DuplicateProposalError for a second proposal by the same freelancer.
    - ConcurrentTransitionError if the proposal moved after it was read,
      or the job stopped being open before a submission was inserted.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from marketplace_kernel.domain.dtos import ProposalInfo
from marketplace_kernel.domain.lifecycle import JobStatus, ProposalStatus, require_transition
from marketplace_kernel.domain.rules import validate_proposal_fields
from marketplace_kernel.exceptions import (
    ConcurrentTransitionError,
    DuplicateProposalError,
    InvalidStatusError,
    JobNotFoundError,
    NotAuthorizedPartyError,
    ProposalNotFoundError,
)
from marketplace_kernel.logging_config import get_logger
from marketplace_kernel.models.job import Job
from marketplace_kernel.models.proposal import Proposal
from marketplace_kernel.services.base import BaseService

logger = get_logger("services.proposal")


class ProposalService(BaseService[Proposal]):

    def _get(self, proposal_id: UUID) -> Proposal:
        proposal = self._fetch(Proposal, proposal_id)
        if proposal is None:
            raise ProposalNotFoundError(str(proposal_id))
        return proposal

    def _require_pending(self, proposal: Proposal) -> None:
        if proposal.status != ProposalStatus.PENDING:
            raise InvalidStatusError(
                entity_type="Proposal",
                entity_id=str(proposal.id),
                current_status=proposal.status.value,
                required=(ProposalStatus.PENDING.value,),
            )

    def _require_open_job(self, job_id: UUID) -> Job:
        job = self._fetch(Job, job_id)
        if job is None:
            raise JobNotFoundError(str(job_id))
        if job.status != JobStatus.OPEN:
            raise InvalidStatusError(
                entity_type="Job",
                entity_id=str(job_id),
                current_status=job.status.value,
                required=(JobStatus.OPEN.value,),
            )
        return job

    def _hold_open_job(self, job_id: UUID) -> None:
        """
        Re-read the job's status under a shared row lock before inserting.

        The lock makes acceptance and cancellation, which update the job row,
        wait for this transaction, so their sweep of pending proposals sees
        the new row.  A job that left ``open`` since it was first read is a
        lost race.
        """
        status = self.session.execute(
            select(Job.status).where(Job.id == job_id).with_for_update(read=True)
        ).scalar_one()
        if status != JobStatus.OPEN:
            logger.warning(
                "transition_conflict",
                extra={
                    "entity_type": "Job",
                    "entity_id": str(job_id),
                    "expected": {"status": JobStatus.OPEN.value},
                    "current_status": status.value,
                },
            )
            raise ConcurrentTransitionError(
                entity_type="Job",
                entity_id=str(job_id),
                expected_status=JobStatus.OPEN.value,
            )

    def get_proposal(self, proposal_id: UUID) -> ProposalInfo:
        return ProposalInfo.from_model(self._get(proposal_id))

    def submit_proposal(
        self,
        job_id: UUID,
        freelancer_id: UUID,
        bid_amount: Decimal | int | str,
        cover_letter: str,
        timeline: str | None = None,
    ) -> ProposalInfo:
        """Submit a pending proposal on an open job."""
        bid, letter, timeline = validate_proposal_fields(
            bid_amount, cover_letter, timeline, self.rules
        )
        job = self._require_open_job(job_id)
        if job.client_id == freelancer_id:
            raise NotAuthorizedPartyError(
                entity_type="Job",
                entity_id=str(job_id),
                actor_id=str(freelancer_id),
                role="freelancer",
            )

        existing = self.session.execute(
            select(Proposal.id).where(
                Proposal.job_id == job_id,
                Proposal.freelancer_id == freelancer_id,
            )
        ).first()
        if existing is not None:
            raise DuplicateProposalError(str(job_id), str(freelancer_id))

        self._hold_open_job(job_id)
        now = self.clock.now()
        proposal = Proposal(
            job_id=job_id,
            freelancer_id=freelancer_id,
            bid_amount=bid,
            cover_letter=letter,
            timeline=timeline,
            status=ProposalStatus.PENDING,
            version=1,
            created_at=now,
            updated_at=now,
        )
        self.session.add(proposal)
        try:
            self.session.flush()
        except IntegrityError as exc:
            raise DuplicateProposalError(str(job_id), str(freelancer_id)) from exc

        logger.info(
            "proposal_submitted",
            extra={
                "job_id": str(job_id),
                "proposal_id": str(proposal.id),
                "freelancer_id": str(freelancer_id),
                "bid_amount": str(bid),
            },
        )
        return ProposalInfo.from_model(proposal)

    def withdraw_proposal(self, proposal_id: UUID, acting_freelancer_id: UUID) -> ProposalInfo:
        proposal = self._get(proposal_id)
        self._require_party(
            "Proposal", proposal_id, acting_freelancer_id, proposal.freelancer_id, "freelancer"
        )
        self._require_pending(proposal)
        require_transition("Proposal", proposal_id, proposal.status, ProposalStatus.WITHDRAWN)

        self._compare_and_set(
            proposal,
            expected={"status": ProposalStatus.PENDING},
            values={"status": ProposalStatus.WITHDRAWN},
        )
        logger.info("proposal_withdrawn", extra={"proposal_id": str(proposal_id)})
        return ProposalInfo.from_model(proposal)

    def reject_proposal(self, proposal_id: UUID, acting_client_id: UUID) -> ProposalInfo:
        proposal = self._get(proposal_id)
        job = self._require_open_job(proposal.job_id)
        self._require_party("Job", job.id, acting_client_id, job.client_id, "client")
        self._require_pending(proposal)
        require_transition("Proposal", proposal_id, proposal.status, ProposalStatus.REJECTED)

        self._compare_and_set(
            proposal,
            expected={"status": ProposalStatus.PENDING},
            values={"status": ProposalStatus.REJECTED},
        )
        logger.info("proposal_rejected", extra={"proposal_id": str(proposal_id)})
        return ProposalInfo.from_model(proposal)
