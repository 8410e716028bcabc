"""
Lifecycle entity and status event value types.

Architecture position:
    Kernel > Domain -- pure data structures.  ZERO I/O.

Invariants:
    * ``StatusEvent`` is frozen; once appended it never changes.
    * ``LifecycleEntity.history`` is append-only and chronological; the last
      event's status equals ``current_status``.  Mutation goes exclusively
      through ``StatusMachine.transition`` / ``audit_trail.append``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class StatusEvent:
    """One recorded status change."""

    status: str
    timestamp: datetime
    note: str | None = None
    actor: str | None = None


@dataclass
class LifecycleEntity:
    """
    A record whose processing state progresses through named statuses.

    ``version`` is the compare-and-swap token assigned by the persistence
    collaborator; zero means "never stored".
    """

    id: str
    kind: str
    current_status: str
    history: list[StatusEvent] = field(default_factory=list)
    version: int = 0

    @property
    def created_at(self) -> datetime | None:
        return self.history[0].timestamp if self.history else None

    @property
    def last_event(self) -> StatusEvent | None:
        return self.history[-1] if self.history else None
