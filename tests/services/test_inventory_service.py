"""InventoryService: ledger operations behind compare-and-swap saves."""

from decimal import Decimal

import pytest

from clinic_kernel.domain.inventory import StockMode
from clinic_kernel.domain.results import INSUFFICIENT_STOCK, NEGATIVE_AVAILABLE
from clinic_kernel.domain.statuses import WithdrawalStatus
from clinic_kernel.exceptions import (
    InventoryItemNotFoundError,
    StorageConflictError,
    WithdrawalOrderNotFoundError,
)
from clinic_kernel.services.inventory_service import InventoryService
from clinic_kernel.services.repository import INVENTORY_ITEM, InMemoryRepository
from clinic_kernel.services.retry import run_with_conflict_retry


def _add(service, item_id="I-1", received=100, min_quantity=10, value="500.00", **extra):
    result = service.add_item(
        item_id=item_id,
        item_number=f"N-{item_id}",
        item_name="Composite resin",
        received_qty=received,
        min_quantity=min_quantity,
        purchase_value=value,
        supplier_name="Riyadh Dental Supply",
        **extra,
    )
    assert result.is_valid, result.errors
    return result.item


def _withdraw(service, item_id="I-1", quantity=10):
    return service.withdraw(item_id, quantity, "Clinic A", "Dr. Lina", "0501234567")


class WithdrawBeforeDeleteRepository(InMemoryRepository):
    """Runs a competing writer once, between the caller's load and its delete."""

    def __init__(self):
        super().__init__()
        self.before_delete = None

    def delete(self, kind, key, *, expected_version=None):
        if self.before_delete is not None:
            competing, self.before_delete = self.before_delete, None
            competing()
        super().delete(kind, key, expected_version=expected_version)


class TestItems:
    def test_add_and_get(self, inventory_service):
        _add(inventory_service)
        stored = inventory_service.get_item("I-1")
        assert stored.version == 1
        assert stored.available_qty == 100

    def test_invalid_item_is_not_saved(self, inventory_service):
        result = inventory_service.add_item(
            item_id="bad", item_number="", item_name="x", received_qty=1,
            min_quantity=0, purchase_value="1", supplier_name="s",
        )
        assert not result
        assert inventory_service.list_items() == []

    def test_update(self, inventory_service):
        _add(inventory_service)
        result = inventory_service.update_item("I-1", received_qty=150)
        assert result.is_valid
        assert inventory_service.get_item("I-1").available_qty == 150
        assert inventory_service.get_item("I-1").version == 2

    def test_strict_mode_service(self, memory_repository, deterministic_clock):
        service = InventoryService(memory_repository, deterministic_clock, mode=StockMode.STRICT)
        _add(service, received=10)
        result = service.update_item("I-1", issued_qty=11)
        assert result.errors[0].code == NEGATIVE_AVAILABLE
        assert service.get_item("I-1").issued_qty == 0

    def test_missing_item(self, inventory_service):
        with pytest.raises(InventoryItemNotFoundError):
            inventory_service.get_item("nope")


class TestWithdrawals:
    def test_withdraw_saves_order(self, inventory_service, deterministic_clock):
        _add(inventory_service)
        result = _withdraw(inventory_service, quantity=30)

        stored = inventory_service.get_item("I-1")
        assert result.is_valid
        assert stored.issued_qty == 30
        assert stored.withdrawal_orders[0].order_number == result.order.order_number
        assert stored.withdrawal_orders[0].created_at == deterministic_clock.now()

    def test_insufficient_stock_is_not_saved(self, inventory_service):
        _add(inventory_service, received=5)
        result = _withdraw(inventory_service, quantity=6)
        assert result.errors[0].code == INSUFFICIENT_STOCK
        assert inventory_service.get_item("I-1").version == 1

    def test_reject_order_restores_stock(self, inventory_service):
        _add(inventory_service)
        order = _withdraw(inventory_service, quantity=40).order
        inventory_service.resolve_withdrawal(
            "I-1", order.order_number, WithdrawalStatus.REJECTED.value,
        )
        stored = inventory_service.get_item("I-1")
        assert stored.available_qty == 100
        assert stored.withdrawal_orders[0].status == WithdrawalStatus.REJECTED.value

    def test_resolve_accepts_status_member(self, inventory_service):
        _add(inventory_service)
        order = _withdraw(inventory_service).order
        result = inventory_service.resolve_withdrawal(
            "I-1", order.order_number, WithdrawalStatus.FULFILLED,
        )
        assert result.is_valid
        stored = inventory_service.get_item("I-1").withdrawal_orders[0]
        assert stored.status == "تم الصرف"
        assert not isinstance(stored.status, WithdrawalStatus)

    def test_unknown_order(self, inventory_service):
        _add(inventory_service)
        with pytest.raises(WithdrawalOrderNotFoundError):
            inventory_service.resolve_withdrawal(
                "I-1", "missing", WithdrawalStatus.FULFILLED.value,
            )

    def test_stale_withdraw_conflicts_then_retry_sees_new_stock(
        self, deterministic_clock,
    ):
        repository = InMemoryRepository()
        service = InventoryService(repository, deterministic_clock)
        _add(service, received=10)

        stale = repository.load(INVENTORY_ITEM, "I-1")
        assert _withdraw(service, quantity=8).is_valid
        stale.issued_qty += 8
        with pytest.raises(StorageConflictError):
            repository.save(stale)

        retried = run_with_conflict_retry(lambda: _withdraw(service, quantity=8))
        assert retried.errors[0].code == INSUFFICIENT_STOCK
        assert service.get_item("I-1").issued_qty == 8


class TestDeleteItem:
    def test_default_discards_withdrawals(self, inventory_service):
        _add(inventory_service)
        _withdraw(inventory_service)
        assert inventory_service.delete_item("I-1") == []
        assert inventory_service.retained_withdrawals() == []
        with pytest.raises(InventoryItemNotFoundError):
            inventory_service.get_item("I-1")

    def test_retention_keeps_orders_keyed_by_item(self, inventory_service):
        _add(inventory_service)
        first = _withdraw(inventory_service, quantity=5).order
        second = _withdraw(inventory_service, quantity=7).order

        retained = inventory_service.delete_item("I-1", retain_withdrawals=True)

        assert retained == [first, second]
        assert inventory_service.retained_withdrawals("I-1") == [first, second]
        assert inventory_service.retained_withdrawals("other") == []

    def test_withdrawal_committed_before_delete_conflicts(self, deterministic_clock):
        repository = WithdrawBeforeDeleteRepository()
        service = InventoryService(repository, deterministic_clock)
        _add(service)
        kept = _withdraw(service, quantity=5).order
        repository.before_delete = lambda: _withdraw(service, quantity=30)

        with pytest.raises(StorageConflictError):
            service.delete_item("I-1", retain_withdrawals=True)

        item = service.get_item("I-1")
        assert item.issued_qty == 35
        assert len(item.withdrawal_orders) == 2
        assert item.withdrawal_orders[0] == kept
        assert service.retained_withdrawals() == []

    def test_delete_with_stale_version_leaves_item(self, inventory_service, memory_repository):
        _add(inventory_service)
        _withdraw(inventory_service)
        with pytest.raises(StorageConflictError) as excinfo:
            memory_repository.delete(INVENTORY_ITEM, "I-1", expected_version=1)
        assert excinfo.value.actual_version == 2
        assert inventory_service.get_item("I-1").issued_qty == 10


class TestSummaries:
    def test_totals_and_low_stock(self, inventory_service):
        _add(inventory_service, "I-1", received=100, min_quantity=10, value="500.00")
        _add(inventory_service, "I-2", received=4, min_quantity=5, value="40.00")
        _withdraw(inventory_service, "I-1", quantity=50)

        assert inventory_service.total_available() == 54
        assert inventory_service.total_inventory_value() == Decimal("290")
        assert [i.id for i in inventory_service.low_stock_items()] == ["I-2"]

    def test_view(self, inventory_service):
        _add(inventory_service)
        assert inventory_service.view("I-1")["available_qty"] == 100
