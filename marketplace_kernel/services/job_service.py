"""
Service layer for Job posting and cancellation.

Responsibility:
    Creates jobs in the ``open`` state and cancels open jobs on behalf of
    their client.  Cancelling rejects every still-pending proposal so no
    pending proposal survives on a terminal job.

Failure modes:
    - InvalidFieldError for any posting field outside its bounds.
    - JobNotFoundError, InvalidStatusError, NotAuthorizedPartyError.
    - ConcurrentTransitionError if the job moved after it was read
      (typically a concurrent acceptance).
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import update

from marketplace_kernel.domain.dtos import JobInfo
from marketplace_kernel.domain.lifecycle import (
    BudgetType,
    ExperienceLevel,
    JobStatus,
    ProposalStatus,
    require_transition,
)
from marketplace_kernel.domain.rules import validate_job_fields
from marketplace_kernel.exceptions import InvalidFieldError, InvalidStatusError, JobNotFoundError
from marketplace_kernel.logging_config import get_logger
from marketplace_kernel.models.job import Job
from marketplace_kernel.models.proposal import Proposal
from marketplace_kernel.services.base import BaseService

logger = get_logger("services.job")


class JobService(BaseService[Job]):

    def _get(self, job_id: UUID) -> Job:
        job = self._fetch(Job, job_id)
        if job is None:
            raise JobNotFoundError(str(job_id))
        return job

    def get_job(self, job_id: UUID) -> JobInfo:
        return JobInfo.from_model(self._get(job_id))

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
        """Validate and insert a new open job."""
        title, description, category, low, high, skills = validate_job_fields(
            title, description, category, budget_min, budget_max, skills, self.rules
        )
        try:
            budget_type = BudgetType(budget_type)
        except ValueError:
            raise InvalidFieldError("budget_type", "must be fixed or hourly", budget_type) from None
        if experience_level is not None:
            try:
                experience_level = ExperienceLevel(experience_level)
            except ValueError:
                raise InvalidFieldError(
                    "experience_level", "must be entry, intermediate or expert", experience_level
                ) from None

        now = self.clock.now()
        job = Job(
            client_id=client_id,
            title=title,
            description=description,
            category=category,
            skills=list(skills),
            budget_min=low,
            budget_max=high,
            budget_type=budget_type,
            duration=duration,
            experience_level=experience_level,
            is_remote=is_remote,
            location=location,
            status=JobStatus.OPEN,
            version=1,
            created_at=now,
            updated_at=now,
        )
        self.session.add(job)
        self.session.flush()

        logger.info(
            "job_posted",
            extra={
                "job_id": str(job.id),
                "client_id": str(client_id),
                "budget_type": budget_type.value,
            },
        )
        return JobInfo.from_model(job)

    def cancel_job(self, job_id: UUID, acting_client_id: UUID) -> JobInfo:
        """Cancel an open job and reject its pending proposals."""
        job = self._get(job_id)
        if job.status != JobStatus.OPEN:
            raise InvalidStatusError(
                entity_type="Job",
                entity_id=str(job_id),
                current_status=job.status.value,
                required=(JobStatus.OPEN.value,),
            )
        self._require_party("Job", job_id, acting_client_id, job.client_id, "client")
        require_transition("Job", job_id, job.status, JobStatus.CANCELLED)

        self._compare_and_set(
            job,
            expected={"status": JobStatus.OPEN},
            values={"status": JobStatus.CANCELLED},
        )
        rejected = self.session.execute(
            update(Proposal)
            .where(
                Proposal.job_id == job_id,
                Proposal.status == ProposalStatus.PENDING,
            )
            .values(status=ProposalStatus.REJECTED, version=Proposal.version + 1)
            .execution_options(synchronize_session=False)
        ).rowcount

        logger.info(
            "job_cancelled",
            extra={"job_id": str(job_id), "rejected_count": rejected},
        )
        return JobInfo.from_model(job)
