"""
ProposalAcceptanceService -- turn one pending proposal into a contract.

Responsibility:
    Accepts a proposal on behalf of the job's client: claims the job,
    accepts the proposal, rejects every competing pending proposal and
    creates the contract, all inside the caller's transaction.

Architecture position:
    Kernel > Services -- imperative shell, owns no transaction.

Invariants enforced:
    SINGLE_ACCEPTED_PROPOSAL     -- the job is claimed first with a
                                    compare-and-set on (status=open,
                                    version).  Of two racing acceptances
                                    exactly one matches the row; the other
                                    gets ConcurrentTransitionError.
    COMPETING_PROPOSALS_REJECTED -- every other pending proposal on the job
                                    is rejected in the same transaction.
    ONE_CONTRACT_PER_PROPOSAL    -- contract insert is backed by
                                    uq_contract_proposal.
    VERIFIED_PARTY               -- only the job's client may accept.

Failure modes:
    - JobNotFoundError, ProposalNotFoundError.
    - InvalidStatusError if the job is not open or the proposal not pending.
    - NotAuthorizedPartyError if the caller is not the job's client.
    - ProposalJobMismatchError if the proposal belongs to another job.
    - ConcurrentTransitionError if a compare-and-set loses a race or a
      database uniqueness backstop fires.

    On any failure the caller rolls back; nothing written here survives.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from marketplace_kernel.domain.dtos import ContractInfo
from marketplace_kernel.domain.lifecycle import (
    ContractStatus,
    ContractType,
    JobStatus,
    ProposalStatus,
    contract_type_for_budget,
    require_transition,
)
from marketplace_kernel.exceptions import (
    ConcurrentTransitionError,
    InvalidStatusError,
    JobNotFoundError,
    ProposalJobMismatchError,
    ProposalNotFoundError,
)
from marketplace_kernel.logging_config import get_logger
from marketplace_kernel.models.contract import Contract
from marketplace_kernel.models.job import Job
from marketplace_kernel.models.proposal import Proposal
from marketplace_kernel.services.base import BaseService

logger = get_logger("services.acceptance")


class ProposalAcceptanceService(BaseService[Contract]):
    """Accept a proposal and open its contract."""

    def accept_proposal(
        self,
        job_id: UUID,
        proposal_id: UUID,
        acting_client_id: UUID,
    ) -> ContractInfo:
        """
        Accept ``proposal_id`` on ``job_id``.

        Effects (all inside the caller's transaction):
            1. Job: open -> in-progress (compare-and-set, claimed first).
            2. Proposal: pending -> accepted (compare-and-set).
            3. Every other pending proposal on the job -> rejected.
            4. One contract inserted: amount = bid, type from the job's
               budget type, active, start_date = now, no delivery.

        Returns:
            ContractInfo for the new contract.
        """
        job = self._fetch(Job, job_id)
        if job is None:
            raise JobNotFoundError(str(job_id))

        proposal = self._fetch(Proposal, proposal_id)
        if proposal is None:
            raise ProposalNotFoundError(str(proposal_id))

        if job.status != JobStatus.OPEN:
            raise InvalidStatusError(
                entity_type="Job",
                entity_id=str(job_id),
                current_status=job.status.value,
                required=(JobStatus.OPEN.value,),
            )
        self._require_party("Job", job_id, acting_client_id, job.client_id, "client")

        if proposal.job_id != job_id:
            raise ProposalJobMismatchError(
                proposal_id=str(proposal_id),
                job_id=str(job_id),
                actual_job_id=str(proposal.job_id),
            )
        if proposal.status != ProposalStatus.PENDING:
            raise InvalidStatusError(
                entity_type="Proposal",
                entity_id=str(proposal_id),
                current_status=proposal.status.value,
                required=(ProposalStatus.PENDING.value,),
            )

        require_transition("Job", job_id, job.status, JobStatus.IN_PROGRESS)
        require_transition("Proposal", proposal_id, proposal.status, ProposalStatus.ACCEPTED)

        # Capture before the compare-and-set expires the instances
        client_id = job.client_id
        contract_type = contract_type_for_budget(job.budget_type)
        freelancer_id = proposal.freelancer_id
        bid_amount = proposal.bid_amount

        self._claim_job(job)
        self._accept_target(proposal)
        rejected = self._reject_competitors(job_id, proposal_id)
        contract = self._create_contract(
            job_id=job_id,
            proposal_id=proposal_id,
            client_id=client_id,
            freelancer_id=freelancer_id,
            amount=bid_amount,
            contract_type=contract_type,
        )

        logger.info(
            "proposal_accepted",
            extra={
                "job_id": str(job_id),
                "proposal_id": str(proposal_id),
                "contract_id": str(contract.id),
                "freelancer_id": str(freelancer_id),
                "amount": str(bid_amount),
                "rejected_count": rejected,
            },
        )
        return ContractInfo.from_model(contract)

    def _claim_job(self, job: Job) -> None:
        self._compare_and_set(
            job,
            expected={"status": JobStatus.OPEN},
            values={"status": JobStatus.IN_PROGRESS},
        )

    def _accept_target(self, proposal: Proposal) -> None:
        self._compare_and_set(
            proposal,
            expected={"status": ProposalStatus.PENDING},
            values={"status": ProposalStatus.ACCEPTED},
        )

    def _reject_competitors(self, job_id: UUID, accepted_id: UUID) -> int:
        result = self.session.execute(
            update(Proposal)
            .where(
                Proposal.job_id == job_id,
                Proposal.id != accepted_id,
                Proposal.status == ProposalStatus.PENDING,
            )
            .values(
                status=ProposalStatus.REJECTED,
                version=Proposal.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def _create_contract(
        self,
        *,
        job_id: UUID,
        proposal_id: UUID,
        client_id: UUID,
        freelancer_id: UUID,
        amount: Decimal,
        contract_type: ContractType,
    ) -> Contract:
        now = self.clock.now()
        contract = Contract(
            job_id=job_id,
            proposal_id=proposal_id,
            client_id=client_id,
            freelancer_id=freelancer_id,
            amount=amount,
            contract_type=contract_type,
            status=ContractStatus.ACTIVE,
            start_date=now,
            delivery_status=None,
            version=1,
            created_at=now,
            updated_at=now,
        )
        self.session.add(contract)
        try:
            self.session.flush()
        except IntegrityError as exc:
            logger.warning(
                "contract_insert_conflict",
                extra={"job_id": str(job_id), "proposal_id": str(proposal_id)},
            )
            raise ConcurrentTransitionError(
                entity_type="Proposal",
                entity_id=str(proposal_id),
                expected_status=ProposalStatus.PENDING.value,
            ) from exc
        return contract
