"""
JobSelector -- job listings and per-job proposal lists.

Listings are plain filtered queries ordered newest first; there is no
ranking.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from marketplace_kernel.domain.dtos import JobInfo, ProposalInfo
from marketplace_kernel.domain.lifecycle import BudgetType, JobStatus, ProposalStatus
from marketplace_kernel.models.job import Job
from marketplace_kernel.models.proposal import Proposal
from marketplace_kernel.selectors.base import BaseSelector


class JobSelector(BaseSelector[Job]):

    def list_open_jobs(
        self,
        category: str | None = None,
        skill: str | None = None,
        budget_type: BudgetType | None = None,
        min_budget: Decimal | None = None,
        limit: int = 50,
    ) -> list[JobInfo]:
        """
        Open jobs, newest first.

        ``min_budget`` matches jobs whose upper budget reaches it.  The skill
        filter runs in Python because skills are a JSON list and JSON
        containment differs between backends.
        """
        stmt = select(Job).where(Job.status == JobStatus.OPEN)
        if category is not None:
            stmt = stmt.where(Job.category == category)
        if budget_type is not None:
            stmt = stmt.where(Job.budget_type == budget_type)
        if min_budget is not None:
            stmt = stmt.where(Job.budget_max >= min_budget)
        stmt = stmt.order_by(Job.created_at.desc(), Job.id).execution_options(
            populate_existing=True
        )
        if skill is None:
            stmt = stmt.limit(limit)

        jobs = self.session.execute(stmt).scalars().all()
        if skill is not None:
            wanted = skill.strip().lower()
            jobs = [j for j in jobs if wanted in (s.lower() for s in j.skills or ())]
            jobs = jobs[:limit]
        return [JobInfo.from_model(j) for j in jobs]

    def proposals_for_job(
        self,
        job_id: UUID,
        status: ProposalStatus | None = None,
    ) -> list[ProposalInfo]:
        """Proposals on a job in submission order."""
        stmt = select(Proposal).where(Proposal.job_id == job_id)
        if status is not None:
            stmt = stmt.where(Proposal.status == status)
        proposals = self.session.execute(
            stmt.order_by(Proposal.created_at, Proposal.id).execution_options(
                populate_existing=True
            )
        ).scalars().all()
        return [ProposalInfo.from_model(p) for p in proposals]
