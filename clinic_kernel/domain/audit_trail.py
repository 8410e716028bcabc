"""
Audit trail (``clinic_kernel.domain.audit_trail``).

Responsibility
--------------
Append-only, time-ordered history of status events for one lifecycle
entity, and the projection of that history onto the fixed field names that
the print/report collaborators read (``creation_date``,
``contract_approval_date``, ...).

Architecture position
---------------------
**Kernel domain layer** -- pure functions over ``LifecycleEntity``.

Invariants enforced
-------------------
* ``append`` only ever adds to the end of ``history``; events are frozen.
* ``as_named_fields`` takes the FIRST event of each mapped status, so
  re-recording a status with a new note does not move the reported date.
* Absent statuses produce absent keys -- never empty-string placeholders.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Mapping

from clinic_kernel.domain.lifecycle import LifecycleEntity, StatusEvent


def append(entity: LifecycleEntity, event: StatusEvent) -> None:
    """Append ``event`` and make its status current."""
    entity.history.append(event)
    entity.current_status = event.status


def latest(entity: LifecycleEntity, status: str) -> StatusEvent | None:
    """Most recent event with ``status``, or None."""
    for event in reversed(entity.history):
        if event.status == status:
            return event
    return None


def first(entity: LifecycleEntity, status: str) -> StatusEvent | None:
    """Earliest event with ``status``, or None."""
    for event in entity.history:
        if event.status == status:
            return event
    return None


def _put(fields: dict[str, Any], name: str, event: StatusEvent) -> None:
    fields[name] = event.timestamp
    if event.note is not None:
        fields[f"{name}_note"] = event.note


def as_named_fields(
    entity: LifecycleEntity,
    audit_fields: Mapping[str, str],
) -> dict[str, Any]:
    """
    Project history onto the fixed report field names.

    Args:
        entity: Entity whose history is projected.
        audit_fields: status -> field name table from the kind's config.

    Returns:
        Dict with ``<name>`` (event timestamp) and, when the event carries a
        note, ``<name>_note``.
    """
    fields: dict[str, Any] = {}
    if entity.history:
        _put(fields, "creation_date", entity.history[0])

    for status, name in audit_fields.items():
        if name == "creation_date":
            continue
        event = first(entity, status)
        if event is not None:
            _put(fields, name, event)
    return fields


def resolved_at(
    entity: LifecycleEntity,
    terminal_statuses: Iterable[str],
) -> datetime | None:
    """
    When the entity entered its current terminal status.

    None while the entity is still open.  Used as the end of the downtime
    interval of maintenance reports.
    """
    terminal = set(terminal_statuses)
    if entity.current_status not in terminal:
        return None

    resolved: datetime | None = None
    for event in reversed(entity.history):
        if event.status not in terminal:
            break
        resolved = event.timestamp
    return resolved
