"""
Pure domain layer.

Status machine, audit trail, duration math, inventory ledger and facility
aggregation, with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- Configuration files

Time is read only through an injected ``Clock`` or an explicit ``now``.
"""

from clinic_kernel.domain.aggregation import (
    ALL,
    Facility,
    FacilityFilter,
    FacilityStats,
    GroupStats,
    facility_status_counts,
    filter_facilities,
    group_by_sector_and_category,
    reduce_stats,
)
from clinic_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from clinic_kernel.domain.duration import (
    Elapsed,
    compute_elapsed,
    compute_overdue,
    format_elapsed,
)
from clinic_kernel.domain.inventory import (
    InventoryItem,
    StockMode,
    WithdrawalOrder,
    add_item,
    is_low_stock,
    item_value,
    low_stock_items,
    resolve_withdrawal,
    total_available,
    total_inventory_value,
    unit_value,
    update_item,
    withdraw,
)
from clinic_kernel.domain.lifecycle import LifecycleEntity, StatusEvent
from clinic_kernel.domain.policy import (
    NAMED_AUDIT_FIELDS,
    FreePolicy,
    KindConfig,
    OrderedPolicy,
    TransitionPolicy,
    allowed_next_states,
)
from clinic_kernel.domain.results import (
    ItemResult,
    TransitionResult,
    ValidationError,
    ValidationResult,
    WithdrawalResult,
)
from clinic_kernel.domain.status_machine import StatusMachine
from clinic_kernel.domain.statuses import (
    ContractStatus,
    EntityKind,
    FacilityStatus,
    ReportStatus,
    TransactionStatus,
    WithdrawalStatus,
)

__all__ = [
    # Clock
    "Clock",
    "DeterministicClock",
    "SystemClock",
    # Lifecycle
    "EntityKind",
    "ContractStatus",
    "TransactionStatus",
    "ReportStatus",
    "LifecycleEntity",
    "StatusEvent",
    "StatusMachine",
    "OrderedPolicy",
    "FreePolicy",
    "TransitionPolicy",
    "KindConfig",
    "NAMED_AUDIT_FIELDS",
    "allowed_next_states",
    # Duration
    "Elapsed",
    "compute_elapsed",
    "compute_overdue",
    "format_elapsed",
    # Inventory
    "InventoryItem",
    "WithdrawalOrder",
    "WithdrawalStatus",
    "StockMode",
    "add_item",
    "update_item",
    "withdraw",
    "resolve_withdrawal",
    "unit_value",
    "item_value",
    "total_inventory_value",
    "is_low_stock",
    "low_stock_items",
    "total_available",
    # Aggregation
    "ALL",
    "Facility",
    "FacilityFilter",
    "FacilityStats",
    "FacilityStatus",
    "GroupStats",
    "filter_facilities",
    "reduce_stats",
    "facility_status_counts",
    "group_by_sector_and_category",
    # Results
    "ValidationError",
    "ValidationResult",
    "TransitionResult",
    "ItemResult",
    "WithdrawalResult",
]
