"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Provides the common constructor and session-handling contract for
    every service in the kernel layer, plus the guarded compare-and-set
    primitive that every status change goes through.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    ATOMIC_TRANSITIONS    -- services flush within the caller's transaction
                             and never commit or roll back themselves.
    GUARDED_STATUS_WRITES -- status columns change only through
                             ``_compare_and_set``, which matches the row on
                             the status and version that were read and
                             bumps the version.

Failure modes:
    - ConcurrentTransitionError when a compare-and-set matches no row,
      meaning another transaction moved the row after it was read.
"""

from abc import ABC
from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from marketplace_kernel.db.base import Base
from marketplace_kernel.domain.clock import Clock, SystemClock
from marketplace_kernel.domain.rules import DEFAULT_RULES, LifecycleRules
from marketplace_kernel.exceptions import ConcurrentTransitionError, NotAuthorizedPartyError
from marketplace_kernel.logging_config import get_logger

ModelType = TypeVar("ModelType", bound=Base)

logger = get_logger("services.base")


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all kernel services.

    Contract:
        Accepts a SQLAlchemy ``Session`` from the caller and uses
        ``session.flush()`` to persist changes within the active
        transaction.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide listing queries; those belong in
          ``marketplace_kernel/selectors/``.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        rules: LifecycleRules | None = None,
    ):
        self.session = session
        self.clock = clock or SystemClock()
        self.rules = rules or DEFAULT_RULES

    def _fetch(self, model: type[ModelType], row_id: UUID) -> ModelType | None:
        """Load a row, overwriting any stale copy held in the identity map."""
        return self.session.execute(
            select(model)
            .where(model.id == row_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def _require_party(
        self,
        entity_type: str,
        entity_id: UUID,
        actor_id: UUID,
        owner_id: UUID,
        role: str,
    ) -> None:
        if actor_id != owner_id:
            logger.warning(
                "party_check_failed",
                extra={
                    "entity_type": entity_type,
                    "entity_id": str(entity_id),
                    "actor_id": str(actor_id),
                    "role": role,
                },
            )
            raise NotAuthorizedPartyError(
                entity_type=entity_type,
                entity_id=str(entity_id),
                actor_id=str(actor_id),
                role=role,
            )

    def _compare_and_set(
        self,
        row: ModelType,
        expected: dict[str, Any],
        values: dict[str, Any],
    ) -> None:
        """
        Apply ``values`` to ``row`` only if it still holds ``expected`` at
        the version that was read.

        Issued as a Core UPDATE so the ORM write guards do not apply.  The
        in-session copy of ``row`` is expired afterwards and reloads on next
        access.

        Raises:
            ConcurrentTransitionError: If the UPDATE matched no row.
        """
        model = type(row)
        row_id = row.id
        seen_version = row.version

        criteria = [model.id == row_id, model.version == seen_version]
        for column_name, value in expected.items():
            column = getattr(model, column_name)
            criteria.append(column.is_(None) if value is None else column == value)

        result = self.session.execute(
            update(model)
            .where(*criteria)
            .values(version=seen_version + 1, **values)
            .execution_options(synchronize_session=False)
        )

        if result.rowcount != 1:
            expected_status = next(iter(expected.values()), None)
            expected_label = getattr(expected_status, "value", expected_status) or "pending"
            logger.warning(
                "transition_conflict",
                extra={
                    "entity_type": model.__name__,
                    "entity_id": str(row_id),
                    "expected": {
                        k: getattr(v, "value", v) for k, v in expected.items()
                    },
                    "seen_version": seen_version,
                },
            )
            raise ConcurrentTransitionError(
                entity_type=model.__name__,
                entity_id=str(row_id),
                expected_status=str(expected_label),
            )

        self.session.expire(row)
