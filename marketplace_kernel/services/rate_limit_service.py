"""
RateLimitService -- sliding-window limits on user actions.

Each permitted action appends one row to rate_limit_log.  A check counts
the user's rows for the action inside the window ending at ``clock.now()``;
at ``max_count`` the action is refused.  The check runs inside the same
transaction as the guarded operation, so a rolled-back operation does not
consume quota.
"""

from datetime import timedelta
from uuid import UUID

from sqlalchemy import delete, func, select

from marketplace_kernel.domain.rules import RateLimit
from marketplace_kernel.exceptions import RateLimitExceededError
from marketplace_kernel.logging_config import get_logger
from marketplace_kernel.models.rate_limit import RateLimitLog
from marketplace_kernel.services.base import BaseService

logger = get_logger("services.rate_limit")


class RateLimitService(BaseService[RateLimitLog]):

    def check(
        self,
        user_id: UUID,
        action: str,
        max_count: int,
        window_seconds: int,
    ) -> int:
        """
        Record one occurrence of ``action`` or refuse it.

        Returns:
            Remaining occurrences in the current window after this one.

        Raises:
            RateLimitExceededError: If ``max_count`` occurrences already fall
                inside the window.
        """
        now = self.clock.now()
        window_start = now - timedelta(seconds=window_seconds)
        used = self.session.execute(
            select(func.count(RateLimitLog.id)).where(
                RateLimitLog.user_id == user_id,
                RateLimitLog.action == action,
                RateLimitLog.occurred_at > window_start,
            )
        ).scalar_one()

        if used >= max_count:
            logger.warning(
                "rate_limit_exceeded",
                extra={
                    "user_id": str(user_id),
                    "action": action,
                    "used": used,
                    "max_count": max_count,
                },
            )
            raise RateLimitExceededError(str(user_id), action, max_count, window_seconds)

        self.session.add(RateLimitLog(user_id=user_id, action=action, occurred_at=now))
        self.session.flush()
        return max_count - used - 1

    def enforce(self, user_id: UUID, limit: RateLimit) -> int:
        return self.check(user_id, limit.action, limit.max_count, limit.window_seconds)

    def purge_expired(self, older_than_seconds: int) -> int:
        """Delete log rows older than the given age.  Returns rows deleted."""
        cutoff = self.clock.now() - timedelta(seconds=older_than_seconds)
        deleted = self.session.execute(
            delete(RateLimitLog)
            .where(RateLimitLog.occurred_at <= cutoff)
            .execution_options(synchronize_session=False)
        ).rowcount
        logger.info("rate_limit_log_purged", extra={"deleted": deleted})
        return deleted
