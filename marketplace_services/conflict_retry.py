"""
Caller-side retry policy for write conflicts.

The kernel never retries.  A ConflictError means another transaction won a
race; the operation MAY be retried once after re-reading fresh state, which
each orchestrator call does by opening a new session.  Precondition and
validation failures are never retried: the outcome cannot change without a
new user action.
"""

from typing import Callable, TypeVar

from marketplace_kernel.exceptions import ConflictError
from marketplace_kernel.logging_config import get_logger

logger = get_logger("services.conflict_retry")

T = TypeVar("T")


def call_with_conflict_retry(operation: Callable[[], T], retries: int = 1) -> T:
    """
    Call ``operation``; on ConflictError call it again up to ``retries`` times.

    The last ConflictError propagates unchanged.  Any other exception
    propagates on the first occurrence.
    """
    if retries < 0:
        raise ValueError("retries must be >= 0")

    attempt = 0
    while True:
        try:
            return operation()
        except ConflictError as exc:
            if attempt >= retries:
                raise
            attempt += 1
            logger.info(
                "conflict_retry",
                extra={"attempt": attempt, "error_code": exc.code},
            )
