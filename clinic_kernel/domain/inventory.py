"""
InventoryLedger (``clinic_kernel.domain.inventory``).

Responsibility
--------------
Stock bookkeeping for warehouse items: received / issued / available
quantities, minimum-stock alerting, monetary valuation, and withdrawal
orders that reserve stock for a beneficiary facility.

Architecture position
---------------------
**Kernel domain layer** -- pure functions over ``InventoryItem``.  No
persistence; ``InventoryService`` wraps these with compare-and-swap saves.

Invariants enforced
-------------------
* ``available_qty == max(0, received_qty - issued_qty)`` -- a read-only
  property, so it cannot drift from the quantities it is derived from.
* A withdrawal is accepted only when ``quantity <= available_qty``; on
  acceptance ``issued_qty += quantity`` and one open order is appended.
* All monetary values are ``Decimal`` -- never ``float``.
* ``unit_value`` divides by ``max(received_qty, 1)``: an item with nothing
  received is valued as if one unit had been received.

Failure modes
-------------
* Field validation and insufficient stock are returned as failure results,
  listing every failing field.
* ``resolve_withdrawal`` raises ``WithdrawalOrderNotFoundError`` for an
  unknown order number.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Iterable
from uuid import uuid4

from clinic_kernel.domain.duration import as_utc
from clinic_kernel.domain.results import (
    INSUFFICIENT_STOCK,
    INVALID_TRANSITION,
    NEGATIVE_AVAILABLE,
    OUT_OF_RANGE,
    REQUIRED,
    ItemResult,
    ValidationError,
    WithdrawalResult,
)
from clinic_kernel.domain.statuses import WithdrawalStatus, raw_value
from clinic_kernel.exceptions import WithdrawalOrderNotFoundError
from clinic_kernel.logging_config import get_logger

logger = get_logger("domain.inventory")


class StockMode(str, Enum):
    """How to treat ``issued_qty > received_qty`` on add/update."""

    CLAMP = "clamp"  # available silently floors at zero
    STRICT = "strict"  # refused with NEGATIVE_AVAILABLE


@dataclass(frozen=True)
class WithdrawalOrder:
    """A request to issue stock from one item to a beneficiary facility."""

    order_number: str
    item_id: str
    quantity: int
    beneficiary_facility: str
    recipient_name: str
    recipient_contact: str
    status: str = WithdrawalStatus.OPEN.value
    created_at: datetime | None = None
    notes: str | None = None

    @property
    def is_open(self) -> bool:
        return self.status == WithdrawalStatus.OPEN.value


@dataclass
class InventoryItem:
    """
    Ledger state of one warehouse item.

    ``withdrawal_orders`` is owned by the item: deleting the item discards
    them unless the caller detaches them first.
    """

    id: str
    item_number: str
    item_name: str
    received_qty: int
    issued_qty: int
    min_quantity: int
    purchase_value: Decimal
    supplier_name: str
    delivery_date: date | None = None
    beneficiary_facility: str | None = None
    notes: str | None = None
    withdrawal_orders: list[WithdrawalOrder] = field(default_factory=list)
    version: int = 0

    @property
    def available_qty(self) -> int:
        return max(0, self.received_qty - self.issued_qty)


# Fields a caller may change through update_item.
EDITABLE_FIELDS: frozenset[str] = frozenset({
    "item_number",
    "item_name",
    "received_qty",
    "issued_qty",
    "min_quantity",
    "purchase_value",
    "supplier_name",
    "delivery_date",
    "beneficiary_facility",
    "notes",
})


# =============================================================================
# Validation
# =============================================================================


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _check_required_text(errors: list[ValidationError], name: str, value: Any) -> None:
    if _is_blank(value):
        errors.append(ValidationError(
            code=REQUIRED, message=f"{name} is required", field=name,
        ))


def _check_quantity(
    errors: list[ValidationError],
    name: str,
    value: Any,
    *,
    minimum: int = 0,
) -> None:
    if value is None:
        errors.append(ValidationError(
            code=REQUIRED, message=f"{name} is required", field=name,
        ))
    elif isinstance(value, bool) or not isinstance(value, int) or value < minimum:
        errors.append(ValidationError(
            code=OUT_OF_RANGE,
            message=f"{name} must be a whole number >= {minimum}",
            field=name,
            details={"value": value},
        ))


def _to_decimal(value: Any) -> Decimal | None:
    if isinstance(value, bool) or value is None or isinstance(value, float):
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


def _check_money(errors: list[ValidationError], name: str, value: Any) -> Decimal | None:
    if value is None:
        errors.append(ValidationError(
            code=REQUIRED, message=f"{name} is required", field=name,
        ))
        return None
    amount = _to_decimal(value)
    if amount is None or not amount.is_finite() or amount < 0:
        errors.append(ValidationError(
            code=OUT_OF_RANGE,
            message=f"{name} must be a decimal amount >= 0",
            field=name,
            details={"value": str(value)},
        ))
        return None
    return amount


def validate_item_fields(
    values: dict[str, Any],
    mode: StockMode = StockMode.CLAMP,
) -> list[ValidationError]:
    """
    Validate a full set of item fields, returning EVERY failure found.

    Preconditions:
        ``values`` holds the editable item fields (missing keys count as None).
    """
    errors: list[ValidationError] = []
    _check_required_text(errors, "item_number", values.get("item_number"))
    _check_required_text(errors, "item_name", values.get("item_name"))
    _check_quantity(errors, "received_qty", values.get("received_qty"))
    _check_quantity(errors, "issued_qty", values.get("issued_qty"))
    _check_quantity(errors, "min_quantity", values.get("min_quantity"))
    _check_money(errors, "purchase_value", values.get("purchase_value"))
    _check_required_text(errors, "supplier_name", values.get("supplier_name"))

    received, issued = values.get("received_qty"), values.get("issued_qty")
    if (
        StockMode(mode) is StockMode.STRICT
        and not any(e.field in ("received_qty", "issued_qty") for e in errors)
        and issued > received
    ):
        errors.append(ValidationError(
            code=NEGATIVE_AVAILABLE,
            message="issued_qty exceeds received_qty",
            field="issued_qty",
            details={"received_qty": received, "issued_qty": issued},
        ))
    return errors


# =============================================================================
# Item lifecycle
# =============================================================================


def add_item(
    *,
    item_number: str,
    item_name: str,
    received_qty: int,
    min_quantity: int,
    purchase_value: Decimal | int | str,
    supplier_name: str,
    issued_qty: int = 0,
    item_id: str | None = None,
    delivery_date: date | None = None,
    beneficiary_facility: str | None = None,
    notes: str | None = None,
    mode: StockMode = StockMode.CLAMP,
) -> ItemResult:
    """Create a ledger entry for a newly received item."""
    values = {
        "item_number": item_number,
        "item_name": item_name,
        "received_qty": received_qty,
        "issued_qty": issued_qty,
        "min_quantity": min_quantity,
        "purchase_value": purchase_value,
        "supplier_name": supplier_name,
    }
    errors = validate_item_fields(values, mode)
    if errors:
        return ItemResult.failure(*errors)

    item = InventoryItem(
        id=str(item_id or uuid4()),
        item_number=item_number.strip(),
        item_name=item_name.strip(),
        received_qty=received_qty,
        issued_qty=issued_qty,
        min_quantity=min_quantity,
        purchase_value=_to_decimal(purchase_value),
        supplier_name=supplier_name.strip(),
        delivery_date=delivery_date,
        beneficiary_facility=beneficiary_facility,
        notes=notes,
    )
    return ItemResult.success(item)


def update_item(
    item: InventoryItem,
    mode: StockMode = StockMode.CLAMP,
    **changes: Any,
) -> ItemResult:
    """
    Apply edits to an item after validating the merged field set.

    The item is modified in place only when every field is valid.

    Raises:
        TypeError: if ``changes`` names a field that is not editable.
    """
    unknown = set(changes) - EDITABLE_FIELDS
    if unknown:
        raise TypeError(f"Fields are not editable: {sorted(unknown)}")

    merged = {name: getattr(item, name) for name in EDITABLE_FIELDS}
    merged.update(changes)
    errors = validate_item_fields(merged, mode)
    if errors:
        return ItemResult.failure(*errors)

    if "purchase_value" in changes:
        changes["purchase_value"] = _to_decimal(changes["purchase_value"])
    for name, value in changes.items():
        setattr(item, name, value)
    return ItemResult.success(item)


# =============================================================================
# Valuation and alerting
# =============================================================================


def unit_value(item: InventoryItem) -> Decimal:
    """Purchase value per received unit (``received_qty == 0`` counts as 1)."""
    return Decimal(item.purchase_value) / max(item.received_qty, 1)


def item_value(item: InventoryItem) -> Decimal:
    """Value of the stock still on hand."""
    return unit_value(item) * item.available_qty


def total_inventory_value(items: Iterable[InventoryItem]) -> Decimal:
    return sum((item_value(item) for item in items), Decimal("0"))


def is_low_stock(item: InventoryItem) -> bool:
    """True at or below the minimum quantity."""
    return item.available_qty <= item.min_quantity


def low_stock_items(items: Iterable[InventoryItem]) -> list[InventoryItem]:
    return [item for item in items if is_low_stock(item)]


def total_available(items: Iterable[InventoryItem]) -> int:
    return sum(item.available_qty for item in items)


# =============================================================================
# Withdrawals
# =============================================================================


def _next_order_number(item: InventoryItem) -> str:
    return f"{item.item_number}-{len(item.withdrawal_orders) + 1:04d}"


def withdraw(
    item: InventoryItem,
    quantity: int,
    beneficiary_facility: str,
    recipient_name: str,
    recipient_contact: str,
    *,
    now: datetime,
    order_number: str | None = None,
    notes: str | None = None,
) -> WithdrawalResult:
    """
    Reserve ``quantity`` units of ``item`` for a beneficiary facility.

    Postconditions (success):
        - ``issued_qty`` increased by ``quantity``.
        - One open ``WithdrawalOrder`` appended and returned.
    Postconditions (failure):
        - Item unchanged; every failing field is reported.
    """
    errors: list[ValidationError] = []
    _check_quantity(errors, "quantity", quantity, minimum=1)
    _check_required_text(errors, "beneficiary_facility", beneficiary_facility)
    _check_required_text(errors, "recipient_name", recipient_name)
    _check_required_text(errors, "recipient_contact", recipient_contact)

    available = item.available_qty
    if all(e.field != "quantity" for e in errors):
        if quantity > available:
            errors.append(ValidationError(
                code=INSUFFICIENT_STOCK,
                message=(
                    f"Requested {quantity} exceeds available quantity {available}"
                ),
                field="quantity",
                details={"requested": quantity, "available": available},
            ))

    if errors:
        if any(e.code == INSUFFICIENT_STOCK for e in errors):
            logger.info(
                "withdrawal_rejected_insufficient_stock",
                extra={
                    "item_id": item.id,
                    "requested": quantity,
                    "available": available,
                },
            )
        return WithdrawalResult.failure(*errors)

    order = WithdrawalOrder(
        order_number=order_number or _next_order_number(item),
        item_id=item.id,
        quantity=quantity,
        beneficiary_facility=beneficiary_facility.strip(),
        recipient_name=recipient_name.strip(),
        recipient_contact=recipient_contact.strip(),
        created_at=as_utc(now),
        notes=notes,
    )
    item.issued_qty += quantity
    item.withdrawal_orders.append(order)

    logger.info(
        "withdrawal_recorded",
        extra={
            "item_id": item.id,
            "order_number": order.order_number,
            "quantity": quantity,
            "available_after": item.available_qty,
        },
    )
    return WithdrawalResult.success(item, order)


def find_order(item: InventoryItem, order_number: str) -> int:
    """Index of ``order_number`` in the item's orders."""
    for index, order in enumerate(item.withdrawal_orders):
        if order.order_number == order_number:
            return index
    raise WithdrawalOrderNotFoundError(item.id, order_number)


def resolve_withdrawal(
    item: InventoryItem,
    order_number: str,
    status: str,
) -> WithdrawalResult:
    """
    Close an open withdrawal order as fulfilled or rejected.

    Rejecting releases the reserved quantity back to available stock.
    """
    index = find_order(item, order_number)
    order = item.withdrawal_orders[index]
    status = raw_value(status)
    closing = (WithdrawalStatus.FULFILLED.value, WithdrawalStatus.REJECTED.value)

    if status not in closing or not order.is_open:
        return WithdrawalResult.failure(ValidationError(
            code=INVALID_TRANSITION,
            message=(
                f"Cannot move withdrawal {order_number} from "
                f"{order.status!r} to {status!r}"
            ),
            field="status",
            details={"current_status": order.status, "requested_status": status},
        ))

    if status == WithdrawalStatus.REJECTED.value:
        item.issued_qty = max(0, item.issued_qty - order.quantity)

    resolved = replace(order, status=status)
    item.withdrawal_orders[index] = resolved
    logger.info(
        "withdrawal_resolved",
        extra={
            "item_id": item.id,
            "order_number": order_number,
            "status": status,
            "available_after": item.available_qty,
        },
    )
    return WithdrawalResult.success(item, resolved)
