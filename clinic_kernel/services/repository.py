"""
Persistence collaborator (``clinic_kernel.services.repository``).

Responsibility
--------------
The storage boundary every service talks to: ``load`` / ``save`` /
``list`` / ``delete`` keyed by record kind and id, with compare-and-swap on
the ``version`` of lifecycle entities and inventory items.

Architecture position
---------------------
**Kernel services layer**.  ``InMemoryRepository`` lives here;
``SqlAlchemyRepository`` (sql_repository.py) implements the same protocol
on the ORM models.

Invariants enforced
-------------------
* ``save`` of a versioned record succeeds only when the stored version
  equals ``record.version`` (0 = not stored yet); it then stores version
  ``+1`` and writes the new version back onto ``record``.
* The compare and the write happen under one lock, so two callers that
  loaded the same version cannot both succeed.
* Callers never share state with the store: loads and saves copy.

Failure modes
-------------
* ``StorageConflictError`` on a version mismatch.
* ``NotFoundError`` subclasses when ``load`` / ``delete`` miss.
"""

from __future__ import annotations

import copy
import threading
from typing import Any, Mapping, Protocol, Union

from clinic_kernel.domain.aggregation import Facility
from clinic_kernel.domain.inventory import InventoryItem, WithdrawalOrder
from clinic_kernel.domain.lifecycle import LifecycleEntity
from clinic_kernel.domain.statuses import EntityKind, raw_value
from clinic_kernel.exceptions import (
    EntityNotFoundError,
    InventoryItemNotFoundError,
    NotFoundError,
    StorageConflictError,
    WithdrawalOrderNotFoundError,
)
from clinic_kernel.logging_config import get_logger

logger = get_logger("services.repository")

LIFECYCLE_KINDS: tuple[str, ...] = tuple(kind.value for kind in EntityKind)
INVENTORY_ITEM = "inventory_item"
WITHDRAWAL_ORDER = "withdrawal_order"
FACILITY = "facility"

Record = Union[LifecycleEntity, InventoryItem, WithdrawalOrder, Facility]


def record_kind(record: Record) -> str:
    if isinstance(record, LifecycleEntity):
        return raw_value(record.kind)
    if isinstance(record, InventoryItem):
        return INVENTORY_ITEM
    if isinstance(record, WithdrawalOrder):
        return WITHDRAWAL_ORDER
    if isinstance(record, Facility):
        return FACILITY
    raise TypeError(f"Not a storable record: {type(record).__name__}")


def withdrawal_key(item_id: str, order_number: str) -> str:
    """Storage id of a retained withdrawal order."""
    return f"{item_id}/{order_number}"


def record_id(record: Record) -> str:
    if isinstance(record, WithdrawalOrder):
        return withdrawal_key(record.item_id, record.order_number)
    return str(record.id)


def is_versioned(record: Record) -> bool:
    return isinstance(record, (LifecycleEntity, InventoryItem))


def not_found(kind: str, key: str) -> NotFoundError:
    """The NotFoundError subclass that matches ``kind``."""
    if kind == INVENTORY_ITEM:
        return InventoryItemNotFoundError(key)
    if kind == WITHDRAWAL_ORDER:
        item_id, _, order_number = key.partition("/")
        return WithdrawalOrderNotFoundError(item_id, order_number)
    return EntityNotFoundError(kind, key)


def matches(record: Record, criteria: Mapping[str, Any] | None) -> bool:
    """Attribute-equality filter shared by both repositories."""
    if not criteria:
        return True
    return all(getattr(record, name) == value for name, value in criteria.items())


class Repository(Protocol):
    """Storage boundary used by the services."""

    def load(self, kind: str, key: str, *, for_update: bool = False) -> Record:
        ...

    def save(self, record: Record) -> Record:
        ...

    def list(
        self, kind: str, criteria: Mapping[str, Any] | None = None,
    ) -> list[Record]:
        ...

    def delete(
        self, kind: str, key: str, *, expected_version: int | None = None,
    ) -> None:
        """Remove a record; a given ``expected_version`` must match the stored one."""
        ...


class InMemoryRepository:
    """
    Thread-safe in-process store.

    Used by tests and by tools that do not need a database.  ``for_update``
    is accepted for interface parity and ignored; the CAS check in ``save``
    is what serializes writers.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: dict[tuple[str, str], Record] = {}

    def load(self, kind: str, key: str, *, for_update: bool = False) -> Record:
        kind = raw_value(kind)
        with self._lock:
            stored = self._records.get((kind, str(key)))
        if stored is None:
            raise not_found(kind, str(key))
        return copy.deepcopy(stored)

    def save(self, record: Record) -> Record:
        kind, key = record_kind(record), record_id(record)
        with self._lock:
            if is_versioned(record):
                stored = self._records.get((kind, key))
                actual = stored.version if stored is not None else 0
                if actual != record.version:
                    logger.info(
                        "storage_conflict_detected",
                        extra={
                            "kind": kind,
                            "record_id": key,
                            "expected_version": record.version,
                            "actual_version": actual,
                        },
                    )
                    raise StorageConflictError(
                        kind, key, record.version,
                        stored.version if stored is not None else None,
                    )
                record.version = actual + 1
            self._records[(kind, key)] = copy.deepcopy(record)
        return record

    def list(
        self, kind: str, criteria: Mapping[str, Any] | None = None,
    ) -> list[Record]:
        kind = raw_value(kind)
        with self._lock:
            found = [
                copy.deepcopy(record)
                for (stored_kind, _), record in self._records.items()
                if stored_kind == kind and matches(record, criteria)
            ]
        return found

    def delete(
        self, kind: str, key: str, *, expected_version: int | None = None,
    ) -> None:
        kind = raw_value(kind)
        with self._lock:
            stored = self._records.get((kind, str(key)))
            if stored is None:
                raise not_found(kind, str(key))
            if (
                expected_version is not None
                and is_versioned(stored)
                and stored.version != expected_version
            ):
                logger.info(
                    "storage_conflict_detected",
                    extra={
                        "kind": kind,
                        "record_id": str(key),
                        "expected_version": expected_version,
                        "actual_version": stored.version,
                    },
                )
                raise StorageConflictError(
                    kind, str(key), expected_version, stored.version,
                )
            del self._records[(kind, str(key))]
