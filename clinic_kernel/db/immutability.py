"""
ORM-level immutability enforcement for the status history.

===============================================================================
WHY THIS EXISTS
===============================================================================

The audit trail is the record of who moved an entity into which status and
when.  Printed contracts and overdue reports are derived from it, so a stored
status event must never change.  Corrections are made by appending a new
event, never by editing an old one.

SQLAlchemy fires ``before_update`` before the SQL reaches the database:

    session.flush()
         |
         v
    [before_update event] --> _check_status_event_immutability()
         |                              |
         v                              v
    SQL sent to database        ImmutabilityViolationError

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity              | When Immutable          | Deletion
--------------------|-------------------------|------------------------------
StatusEventModel    | ALWAYS (from creation)  | Only with its parent entity

===============================================================================
USAGE
===============================================================================

    from clinic_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once at startup

Tests that need to tamper with a row on purpose may call
``unregister_immutability_listeners()`` and re-register afterwards.
"""

from sqlalchemy import event

from clinic_kernel.exceptions import ImmutabilityViolationError
from clinic_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _check_status_event_immutability(mapper, connection, target):
    """Refuse any UPDATE of a stored status event."""
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "StatusEvent",
            "entity_id": str(target.entity_id),
            "sequence": target.sequence,
            "operation": "UPDATE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type="StatusEvent",
        entity_id=f"{target.entity_id}#{target.sequence}",
        reason="Status events are append-only and cannot be modified",
    )


def register_immutability_listeners():
    """Install the listeners.  Safe to call more than once."""
    from clinic_kernel.models.lifecycle import StatusEventModel

    if not event.contains(
        StatusEventModel, "before_update", _check_status_event_immutability
    ):
        event.listen(
            StatusEventModel, "before_update", _check_status_event_immutability
        )


def unregister_immutability_listeners():
    """Remove the listeners (TESTS ONLY)."""
    from clinic_kernel.models.lifecycle import StatusEventModel

    if event.contains(
        StatusEventModel, "before_update", _check_status_event_immutability
    ):
        event.remove(
            StatusEventModel, "before_update", _check_status_event_immutability
        )
