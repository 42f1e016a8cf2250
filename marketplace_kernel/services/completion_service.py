"""
ContractCompletionService -- close a contract and record its review.

Responsibility:
    Accepting the delivery and reviewing the freelancer is one client action.
    The service completes the contract, inserts the single review and
    completes the job inside the caller's transaction.

Architecture position:
    Kernel > Services -- imperative shell, owns no transaction.

Invariants enforced:
    ONE_REVIEW_PER_CONTRACT -- the contract is closed with a compare-and-set
                               on (status=active, version) before the review
                               is inserted; uq_review_contract backs it.
    MONOTONIC_STATUS        -- Contract active -> completed and Job
                               in-progress -> completed only.
    VERIFIED_PARTY          -- only the contract's client may complete.

Delivery requirement:
    With ``LifecycleRules.require_delivery_before_completion`` (the default)
    a contract whose delivery is not ``delivered`` cannot be completed.  With
    the flag off, completion is allowed from any delivery state of an
    active contract.  The check is explicit either way.

Failure modes:
    - InvalidFieldError for a bad rating or comment (checked before any read).
    - ContractNotFoundError.
    - InvalidStatusError if the contract is not active.
    - NotAuthorizedPartyError if the caller is not the contract's client.
    - DeliveryRequiredError when a delivery is required and missing.
    - ConcurrentTransitionError if a compare-and-set loses a race.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy.exc import IntegrityError

from marketplace_kernel.domain.dtos import ReviewInfo
from marketplace_kernel.domain.lifecycle import (
    ContractStatus,
    DeliveryStatus,
    JobStatus,
    require_transition,
)
from marketplace_kernel.domain.rules import validate_rating, validate_review_comment
from marketplace_kernel.exceptions import (
    ConcurrentTransitionError,
    ContractNotFoundError,
    DeliveryRequiredError,
    InvalidStatusError,
    JobNotFoundError,
)
from marketplace_kernel.logging_config import get_logger
from marketplace_kernel.models.contract import Contract
from marketplace_kernel.models.job import Job
from marketplace_kernel.models.review import Review
from marketplace_kernel.services.base import BaseService

logger = get_logger("services.completion")


class ContractCompletionService(BaseService[Contract]):
    """Complete a contract, review the freelancer, complete the job."""

    def complete_contract(
        self,
        contract_id: UUID,
        rating: int,
        comment: str,
        acting_client_id: UUID,
    ) -> ReviewInfo:
        """
        Complete ``contract_id`` with a review.

        Effects (all inside the caller's transaction):
            1. Contract: active -> completed, end_date = now,
               delivery_status = accepted (compare-and-set).
            2. Review inserted with amount = contract amount.
            3. Job: in-progress -> completed (compare-and-set).
        """
        rating = validate_rating(rating, self.rules)
        comment = validate_review_comment(comment, self.rules)

        contract = self._fetch(Contract, contract_id)
        if contract is None:
            raise ContractNotFoundError(str(contract_id))

        if contract.status != ContractStatus.ACTIVE:
            raise InvalidStatusError(
                entity_type="Contract",
                entity_id=str(contract_id),
                current_status=contract.status.value,
                required=(ContractStatus.ACTIVE.value,),
            )
        self._require_party(
            "Contract", contract_id, acting_client_id, contract.client_id, "client"
        )

        delivery_status = contract.effective_delivery_status
        if (
            self.rules.require_delivery_before_completion
            and delivery_status != DeliveryStatus.DELIVERED
        ):
            raise DeliveryRequiredError(
                contract_id=str(contract_id),
                delivery_status=delivery_status.value,
            )

        require_transition("Contract", contract_id, contract.status, ContractStatus.COMPLETED)

        job = self._fetch(Job, contract.job_id)
        if job is None:
            raise JobNotFoundError(str(contract.job_id))
        require_transition("Job", job.id, job.status, JobStatus.COMPLETED)

        snapshot = {
            "job_id": contract.job_id,
            "client_id": contract.client_id,
            "freelancer_id": contract.freelancer_id,
            "amount": contract.amount,
        }

        now = self.clock.now()
        self._close_contract(contract, now)
        review = self._record_review(contract_id, rating, comment, snapshot)
        self._complete_job(job)

        logger.info(
            "contract_completed",
            extra={
                "contract_id": str(contract_id),
                "job_id": str(snapshot["job_id"]),
                "review_id": str(review.id),
                "rating": rating,
                "amount": str(snapshot["amount"]),
            },
        )
        return ReviewInfo.from_model(review)

    def _close_contract(self, contract: Contract, now: datetime) -> None:
        self._compare_and_set(
            contract,
            expected={
                "status": ContractStatus.ACTIVE,
                "delivery_status": contract.delivery_status,
            },
            values={
                "status": ContractStatus.COMPLETED,
                "end_date": now,
                "delivery_status": DeliveryStatus.ACCEPTED,
            },
        )

    def _record_review(
        self,
        contract_id: UUID,
        rating: int,
        comment: str,
        snapshot: dict,
    ) -> Review:
        now = self.clock.now()
        review = Review(
            contract_id=contract_id,
            job_id=snapshot["job_id"],
            client_id=snapshot["client_id"],
            freelancer_id=snapshot["freelancer_id"],
            rating=rating,
            comment=comment,
            amount=snapshot["amount"],
            created_at=now,
            updated_at=now,
        )
        self.session.add(review)
        try:
            self.session.flush()
        except IntegrityError as exc:
            logger.warning(
                "review_insert_conflict",
                extra={"contract_id": str(contract_id)},
            )
            raise ConcurrentTransitionError(
                entity_type="Contract",
                entity_id=str(contract_id),
                expected_status=ContractStatus.ACTIVE.value,
            ) from exc
        return review

    def _complete_job(self, job: Job) -> None:
        self._compare_and_set(
            job,
            expected={"status": JobStatus.IN_PROGRESS},
            values={"status": JobStatus.COMPLETED},
        )
