"""Imperative shell: repositories, services and conflict retry."""

from clinic_kernel.services.inventory_service import InventoryService
from clinic_kernel.services.lifecycle_service import LifecycleService
from clinic_kernel.services.repository import (
    FACILITY,
    INVENTORY_ITEM,
    LIFECYCLE_KINDS,
    WITHDRAWAL_ORDER,
    InMemoryRepository,
    Repository,
)
from clinic_kernel.services.retry import run_with_conflict_retry
from clinic_kernel.services.sql_repository import SqlAlchemyRepository

__all__ = [
    "FACILITY",
    "INVENTORY_ITEM",
    "LIFECYCLE_KINDS",
    "WITHDRAWAL_ORDER",
    "InMemoryRepository",
    "InventoryService",
    "LifecycleService",
    "Repository",
    "SqlAlchemyRepository",
    "run_with_conflict_retry",
]
