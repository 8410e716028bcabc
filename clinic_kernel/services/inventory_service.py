"""
InventoryService -- warehouse operations over the persistence collaborator.

Responsibility:
    Wraps the InventoryLedger functions with load / compare-and-swap save,
    the configured stock mode, and optional retention of withdrawal orders
    when an item is deleted.

Architecture position:
    Kernel > Services -- imperative shell around ``domain.inventory``.

Invariants enforced:
    - A withdrawal is validated against the version it was loaded at; if
      another writer changed the item first, ``save`` raises
      ``StorageConflictError`` and nothing is written.  Two withdrawals
      that each fit the available stock but not together can therefore
      never both commit.
    - Items are saved only after a successful ledger operation.

Failure modes:
    - InventoryItemNotFoundError / WithdrawalOrderNotFoundError.
    - StorageConflictError on a lost write race.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from clinic_kernel.domain import inventory
from clinic_kernel.domain.clock import Clock, SystemClock
from clinic_kernel.domain.inventory import InventoryItem, StockMode, WithdrawalOrder
from clinic_kernel.domain.presentation import inventory_view
from clinic_kernel.domain.results import ItemResult, WithdrawalResult
from clinic_kernel.logging_config import LogContext, get_logger
from clinic_kernel.services.repository import (
    INVENTORY_ITEM,
    WITHDRAWAL_ORDER,
    Repository,
)

logger = get_logger("services.inventory")


class InventoryService:
    """
    Warehouse ledger operations.

    Usage:
        service = InventoryService(repository, clock, mode=StockMode.CLAMP)
        result = service.add_item(item_number="W-1", item_name="Gloves", ...)
        outcome = service.withdraw(result.item.id, 5, "Clinic A",
                                   "Dr. Sami", "0500000000")
    """

    def __init__(
        self,
        repository: Repository,
        clock: Clock | None = None,
        mode: StockMode = StockMode.CLAMP,
    ):
        self._repository = repository
        self._clock = clock or SystemClock()
        self._mode = StockMode(mode)

    @property
    def mode(self) -> StockMode:
        return self._mode

    def add_item(self, **fields: Any) -> ItemResult:
        result = inventory.add_item(mode=self._mode, **fields)
        if result.is_valid:
            self._repository.save(result.item)
            logger.info(
                "inventory_item_added",
                extra={
                    "item_id": result.item.id,
                    "item_number": result.item.item_number,
                    "received_qty": result.item.received_qty,
                },
            )
        return result

    def update_item(self, item_id: str, **changes: Any) -> ItemResult:
        with LogContext.bind(item_id=str(item_id)):
            item = self._repository.load(INVENTORY_ITEM, item_id, for_update=True)
            result = inventory.update_item(item, self._mode, **changes)
            if result.is_valid:
                self._repository.save(item)
                logger.info(
                    "inventory_item_updated",
                    extra={"item_id": item.id, "fields": sorted(changes)},
                )
            return result

    def get_item(self, item_id: str) -> InventoryItem:
        return self._repository.load(INVENTORY_ITEM, item_id)

    def list_items(self) -> list[InventoryItem]:
        return self._repository.list(INVENTORY_ITEM)

    def withdraw(
        self,
        item_id: str,
        quantity: int,
        beneficiary_facility: str,
        recipient_name: str,
        recipient_contact: str,
        order_number: str | None = None,
        notes: str | None = None,
    ) -> WithdrawalResult:
        with LogContext.bind(item_id=str(item_id)):
            item = self._repository.load(INVENTORY_ITEM, item_id, for_update=True)
            result = inventory.withdraw(
                item,
                quantity,
                beneficiary_facility,
                recipient_name,
                recipient_contact,
                now=self._clock.now(),
                order_number=order_number,
                notes=notes,
            )
            if result.is_valid:
                self._repository.save(item)
            return result

    def resolve_withdrawal(
        self, item_id: str, order_number: str, status: str,
    ) -> WithdrawalResult:
        with LogContext.bind(item_id=str(item_id)):
            item = self._repository.load(INVENTORY_ITEM, item_id, for_update=True)
            result = inventory.resolve_withdrawal(item, order_number, status)
            if result.is_valid:
                self._repository.save(item)
            return result

    def delete_item(
        self, item_id: str, retain_withdrawals: bool = False,
    ) -> list[WithdrawalOrder]:
        """
        Delete an item.

        With ``retain_withdrawals`` the item's orders are stored as
        independent ``withdrawal_order`` records keyed by the item id, and
        returned.  Otherwise they are discarded together with the item.

        The delete is checked against the version that was loaded, so a
        withdrawal committed in between raises ``StorageConflictError`` and
        leaves the item and its orders untouched.
        """
        item = self._repository.load(INVENTORY_ITEM, item_id, for_update=True)
        self._repository.delete(
            INVENTORY_ITEM, item_id, expected_version=item.version,
        )
        retained: list[WithdrawalOrder] = []
        if retain_withdrawals:
            for order in item.withdrawal_orders:
                self._repository.save(order)
                retained.append(order)
        logger.info(
            "inventory_item_deleted",
            extra={
                "item_id": str(item_id),
                "withdrawals_retained": len(retained),
                "withdrawals_discarded": (
                    0 if retain_withdrawals else len(item.withdrawal_orders)
                ),
            },
        )
        return retained

    def retained_withdrawals(self, item_id: str | None = None) -> list[WithdrawalOrder]:
        criteria = {"item_id": str(item_id)} if item_id is not None else None
        return self._repository.list(WITHDRAWAL_ORDER, criteria)

    def low_stock_items(self) -> list[InventoryItem]:
        return inventory.low_stock_items(self.list_items())

    def total_inventory_value(self) -> Decimal:
        return inventory.total_inventory_value(self.list_items())

    def total_available(self) -> int:
        return inventory.total_available(self.list_items())

    def view(self, item_id: str) -> dict[str, Any]:
        return inventory_view(self.get_item(item_id))
