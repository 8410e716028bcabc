"""
Plain-dict projections handed to the screens and the print collaborator.

Every value in a view is JSON-friendly: datetimes become ISO-8601 strings,
Decimals become strings.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from clinic_kernel.domain import audit_trail
from clinic_kernel.domain.duration import (
    compute_elapsed,
    compute_overdue,
    format_elapsed,
)
from clinic_kernel.domain.inventory import (
    InventoryItem,
    is_low_stock,
    item_value,
    unit_value,
)
from clinic_kernel.domain.lifecycle import LifecycleEntity
from clinic_kernel.domain.policy import KindConfig


def _plain(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return value


def lifecycle_view(
    entity: LifecycleEntity,
    config: KindConfig,
    now: datetime,
) -> dict[str, Any]:
    resolved = audit_trail.resolved_at(entity, config.terminal_statuses)
    created = entity.created_at
    view: dict[str, Any] = {
        "id": entity.id,
        "kind": entity.kind,
        "current_status": entity.current_status,
        "version": entity.version,
        "history": [
            {
                "status": event.status,
                "timestamp": event.timestamp.isoformat(),
                "note": event.note,
                "actor": event.actor,
            }
            for event in entity.history
        ],
        "named_audit_fields": {
            name: _plain(value)
            for name, value in audit_trail.as_named_fields(
                entity, config.audit_fields
            ).items()
        },
        "resolved_at": _plain(resolved),
        "elapsed_text": None,
        "overdue_days": compute_overdue(
            created,
            entity.current_status,
            now,
            grace_days=config.grace_days,
            terminal_statuses=config.terminal_statuses,
        ),
    }
    if created is not None:
        view["elapsed_text"] = format_elapsed(
            compute_elapsed(created, resolved, now=now)
        )
    return view


def inventory_view(item: InventoryItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "item_number": item.item_number,
        "item_name": item.item_name,
        "received_qty": item.received_qty,
        "issued_qty": item.issued_qty,
        "available_qty": item.available_qty,
        "min_quantity": item.min_quantity,
        "is_low_stock": is_low_stock(item),
        "purchase_value": _plain(item.purchase_value),
        "unit_value": _plain(unit_value(item)),
        "item_value": _plain(item_value(item)),
        "supplier_name": item.supplier_name,
        "delivery_date": item.delivery_date.isoformat() if item.delivery_date else None,
        "beneficiary_facility": item.beneficiary_facility,
        "notes": item.notes,
        "version": item.version,
        "withdrawal_orders": [
            {
                "order_number": order.order_number,
                "quantity": order.quantity,
                "beneficiary_facility": order.beneficiary_facility,
                "recipient_name": order.recipient_name,
                "recipient_contact": order.recipient_contact,
                "status": order.status,
                "created_at": _plain(order.created_at),
                "notes": order.notes,
            }
            for order in item.withdrawal_orders
        ],
    }
