"""
ORM-Level Write Guards.

===============================================================================
WHY THIS EXISTS
===============================================================================

Every status change in the marketplace is a guarded compare-and-set issued by
a transition service (``UPDATE ... WHERE status = :seen AND version = :v``).
A plain ORM assignment such as ``job.status = JobStatus.COMPLETED`` would skip
the guard, skip the version bump and race every other writer.  This module
makes that mistake impossible to flush.

SQLAlchemy fires events before UPDATE/DELETE operations reach the database:

    session.flush()
         |
         v
    [before_update event] --> _check_*() --> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

Core ``update()`` statements issued by the services do not pass through the
mapper, so the sanctioned path is unaffected.

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity      | Rule
------------|------------------------------------------------------------------
Job         | status/version never written through the ORM; never deleted
Proposal    | status/version never written through the ORM; never deleted
Contract    | status/delivery_status/version never written through the ORM;
            | never deleted
Review      | ALWAYS immutable once inserted; never deleted
Message     | only is_read/read_at may change; never deleted

===============================================================================
USAGE
===============================================================================

    from marketplace_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once at startup

To temporarily disable (TESTS ONLY):

    unregister_immutability_listeners()
"""

from sqlalchemy import event, inspect
from sqlalchemy.orm.attributes import get_history

from marketplace_kernel.exceptions import ImmutabilityViolationError
from marketplace_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

_METADATA_FIELDS = frozenset({"updated_at"})

_GUARDED_FIELDS: dict[str, tuple[str, ...]] = {
    "Job": ("status", "version"),
    "Proposal": ("status", "version"),
    "Contract": ("status", "delivery_status", "version"),
}

_MESSAGE_MUTABLE_FIELDS = frozenset({"is_read", "read_at"})


def _blocked(entity_type: str, target, operation: str, reason: str, field: str | None = None):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": operation,
            "field": field,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=reason,
    )


def _check_guarded_status_fields(mapper, connection, target):
    """
    Reject ORM writes to status columns.

    Status moves only through the compare-and-set statements in the
    transition services.
    """
    entity_type = type(target).__name__
    for field in _GUARDED_FIELDS.get(entity_type, ()):
        if get_history(target, field).has_changes():
            _blocked(
                entity_type,
                target,
                "UPDATE",
                f"'{field}' may only change through a guarded transition",
                field=field,
            )


def _check_no_delete(mapper, connection, target):
    entity_type = type(target).__name__
    _blocked(
        entity_type,
        target,
        "DELETE",
        f"{entity_type} rows are never deleted",
    )


def _check_review_immutability(mapper, connection, target):
    """Reviews are frozen from creation."""
    insp = inspect(target)
    for attr in insp.attrs:
        if attr.key in _METADATA_FIELDS:
            continue
        if attr.history.has_changes():
            _blocked(
                "Review",
                target,
                "UPDATE",
                f"Cannot modify field '{attr.key}' on a submitted review",
                field=attr.key,
            )


def _check_message_immutability(mapper, connection, target):
    """Messages are append-only apart from the read flag."""
    insp = inspect(target)
    for attr in insp.attrs:
        if attr.key in _METADATA_FIELDS or attr.key in _MESSAGE_MUTABLE_FIELDS:
            continue
        if attr.history.has_changes():
            _blocked(
                "Message",
                target,
                "UPDATE",
                f"Cannot modify field '{attr.key}' on a sent message",
                field=attr.key,
            )


def _listener_table():
    from marketplace_kernel.models.contract import Contract
    from marketplace_kernel.models.conversation import Message
    from marketplace_kernel.models.job import Job
    from marketplace_kernel.models.proposal import Proposal
    from marketplace_kernel.models.review import Review

    return [
        (Job, "before_update", _check_guarded_status_fields),
        (Job, "before_delete", _check_no_delete),
        (Proposal, "before_update", _check_guarded_status_fields),
        (Proposal, "before_delete", _check_no_delete),
        (Contract, "before_update", _check_guarded_status_fields),
        (Contract, "before_delete", _check_no_delete),
        (Review, "before_update", _check_review_immutability),
        (Review, "before_delete", _check_no_delete),
        (Message, "before_update", _check_message_immutability),
        (Message, "before_delete", _check_no_delete),
    ]


def register_immutability_listeners() -> None:
    """
    Register all write-guard event listeners.

    Safe to call more than once; already-registered listeners are skipped.
    """
    for target, event_name, listener_fn in _listener_table():
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)


def unregister_immutability_listeners() -> None:
    """
    Remove write-guard event listeners.

    WARNING: Only use this in tests that need to bypass the guards.
    """
    for target, event_name, listener_fn in _listener_table():
        if event.contains(target, event_name, listener_fn):
            event.remove(target, event_name, listener_fn)
