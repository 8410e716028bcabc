"""
DurationCalculator (``clinic_kernel.domain.duration``).

Responsibility
--------------
Pure, deterministic time-interval math shared by every screen that shows a
downtime period ("2 يوم 3 ساعة") or a delay counter ("10 يوم متأخر").

Architecture position
---------------------
**Kernel domain layer** -- pure functions.  The only time read is the
``SystemClock`` fallback when the caller supplies neither ``end`` nor
``now``.

Invariants enforced
-------------------
* Elapsed components are never negative (the interval is absolute).
* Overdue is None for terminal statuses and never negative otherwise.
* Overdue day counting rounds partial days up; elapsed day counting rounds
  down.  Both match the figures the clinic staff already see.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Iterable, Union

from clinic_kernel.domain.clock import SystemClock
from clinic_kernel.domain.statuses import (
    ContractStatus,
    ReportStatus,
    TransactionStatus,
)

TimeLike = Union[datetime, date, str]

DEFAULT_GRACE_DAYS = 21

DEFAULT_TERMINAL_STATUSES: frozenset[str] = frozenset({
    ContractStatus.DELIVERED.value,
    ContractStatus.REJECTED.value,
    TransactionStatus.COMPLETED.value,
    TransactionStatus.REJECTED.value,
    ReportStatus.CLOSED.value,
    ReportStatus.PAUSED.value,
})

_SECONDS_PER_DAY = 86400


def as_utc(value: TimeLike) -> datetime:
    """
    Normalize a datetime, date, or ISO-8601 string to an aware UTC datetime.

    Naive datetimes are taken to be UTC; a bare date means midnight UTC.

    Raises:
        ValueError: if a string is not ISO-8601.
        TypeError: for any other input type.
    """
    if isinstance(value, str):
        value = datetime.fromisoformat(value.strip())
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    raise TypeError(f"Cannot interpret {type(value).__name__} as a timestamp")


@dataclass(frozen=True)
class Elapsed:
    """A non-negative interval split into whole days, hours and minutes."""

    days: int
    hours: int
    minutes: int

    def format(self) -> str:
        return format_elapsed(self)


def _resolve_end(end: TimeLike | None, now: TimeLike | None) -> datetime:
    if end is not None:
        return as_utc(end)
    if now is not None:
        return as_utc(now)
    return SystemClock().now()


def compute_elapsed(
    start: TimeLike,
    end: TimeLike | None = None,
    *,
    now: TimeLike | None = None,
) -> Elapsed:
    """
    Interval between ``start`` and ``end``.

    An absent ``end`` means an open-ended interval measured up to ``now``
    (or the system time when ``now`` is also absent).
    """
    seconds = abs((_resolve_end(end, now) - as_utc(start)).total_seconds())
    days, remainder = divmod(int(seconds), _SECONDS_PER_DAY)
    hours, remainder = divmod(remainder, 3600)
    return Elapsed(days=days, hours=hours, minutes=remainder // 60)


def format_elapsed(elapsed: Elapsed) -> str:
    """Render an interval the way the downtime column shows it."""
    if elapsed.days > 0:
        return f"{elapsed.days} يوم {elapsed.hours} ساعة"
    if elapsed.hours > 0:
        return f"{elapsed.hours} ساعة {elapsed.minutes} دقيقة"
    return f"{elapsed.minutes} دقيقة"


def elapsed_days(start: TimeLike, end: TimeLike) -> int:
    """Whole days between two instants, partial days counted as a full day."""
    seconds = abs((as_utc(end) - as_utc(start)).total_seconds())
    return math.ceil(seconds / _SECONDS_PER_DAY)


def compute_overdue(
    created_at: TimeLike | None,
    status: str,
    now: TimeLike,
    grace_days: int = DEFAULT_GRACE_DAYS,
    terminal_statuses: Iterable[str] = DEFAULT_TERMINAL_STATUSES,
) -> int | None:
    """
    Days past the grace period for an unresolved entity.

    Returns:
        None when ``status`` is terminal or ``created_at`` is unknown,
        otherwise ``max(0, elapsed_days(created_at, now) - grace_days)``.
    """
    if created_at is None or status in set(terminal_statuses):
        return None
    return max(0, elapsed_days(created_at, now) - grace_days)
