"""
Conflict retry for compare-and-swap writes.

Responsibility:
    Re-runs a complete read-validate-write operation when the storage
    boundary reports ``StorageConflictError``.  The operation must start
    from a fresh read each time; re-saving a stale object would only
    conflict again.

Architecture position:
    Kernel > Services -- wraps service calls, never domain functions.
"""

from __future__ import annotations

from typing import Callable, TypeVar

from clinic_kernel.exceptions import StorageConflictError
from clinic_kernel.logging_config import get_logger

logger = get_logger("services.retry")

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 3


def run_with_conflict_retry(
    operation: Callable[[], T],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
) -> T:
    """
    Call ``operation`` until it completes without a storage conflict.

    Raises:
        StorageConflictError: the last conflict, once ``max_attempts`` calls
            have all conflicted.
        ValueError: if ``max_attempts`` < 1.
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")

    for attempt in range(1, max_attempts + 1):
        try:
            return operation()
        except StorageConflictError as exc:
            logger.warning(
                "storage_conflict",
                extra={
                    "kind": exc.kind,
                    "record_id": exc.record_id,
                    "expected_version": exc.expected_version,
                    "actual_version": exc.actual_version,
                    "attempt": attempt,
                    "max_attempts": max_attempts,
                },
            )
            if attempt == max_attempts:
                logger.error(
                    "storage_conflict_retries_exhausted",
                    extra={"kind": exc.kind, "record_id": exc.record_id},
                )
                raise
    raise AssertionError("unreachable")
