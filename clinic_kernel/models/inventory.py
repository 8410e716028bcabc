"""
Module: clinic_kernel.models.inventory
Responsibility: ORM persistence for warehouse items and withdrawal orders.

Invariants enforced:
    - ``available_qty`` is NOT stored; it is always derived from
      received_qty and issued_qty.
    - purchase_value uses Decimal (Numeric(38, 9)) -- NEVER float.
    - Withdrawal orders reference their item by id with NO foreign key, so
      orders marked ``retained`` survive deletion of the item.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Boolean, Date, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from clinic_kernel.db.base import TrackedBase
from clinic_kernel.domain.duration import as_utc
from clinic_kernel.domain.inventory import InventoryItem, WithdrawalOrder


class InventoryItemModel(TrackedBase):
    """
    Ledger row of one warehouse item.

    Maps to: clinic_kernel.domain.inventory.InventoryItem (orders loaded
    separately from ``withdrawal_orders``).
    """

    __tablename__ = "inventory_items"

    __table_args__ = (
        Index("idx_inventory_item_number", "item_number"),
    )

    item_number: Mapped[str] = mapped_column(String(100))
    item_name: Mapped[str] = mapped_column(String(300))
    received_qty: Mapped[int] = mapped_column(Integer)
    issued_qty: Mapped[int] = mapped_column(Integer)
    min_quantity: Mapped[int] = mapped_column(Integer)
    purchase_value: Mapped[Decimal] = mapped_column()
    supplier_name: Mapped[str] = mapped_column(String(300))
    delivery_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    beneficiary_facility: Mapped[str | None] = mapped_column(String(300), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    def to_dto(self, orders: list[WithdrawalOrder]) -> InventoryItem:
        return InventoryItem(
            id=self.id,
            item_number=self.item_number,
            item_name=self.item_name,
            received_qty=self.received_qty,
            issued_qty=self.issued_qty,
            min_quantity=self.min_quantity,
            purchase_value=Decimal(self.purchase_value),
            supplier_name=self.supplier_name,
            delivery_date=self.delivery_date,
            beneficiary_facility=self.beneficiary_facility,
            notes=self.notes,
            withdrawal_orders=list(orders),
            version=self.version,
        )

    @classmethod
    def from_dto(cls, dto: InventoryItem, version: int) -> "InventoryItemModel":
        return cls(
            id=dto.id,
            item_number=dto.item_number,
            item_name=dto.item_name,
            received_qty=dto.received_qty,
            issued_qty=dto.issued_qty,
            min_quantity=dto.min_quantity,
            purchase_value=dto.purchase_value,
            supplier_name=dto.supplier_name,
            delivery_date=dto.delivery_date,
            beneficiary_facility=dto.beneficiary_facility,
            notes=dto.notes,
            version=version,
        )

    def __repr__(self) -> str:
        return (
            f"<InventoryItemModel {self.id} {self.item_number} "
            f"recv={self.received_qty} issued={self.issued_qty} v{self.version}>"
        )


class WithdrawalOrderModel(TrackedBase):
    """
    One withdrawal order.

    Maps to: clinic_kernel.domain.inventory.WithdrawalOrder.
    """

    __tablename__ = "withdrawal_orders"

    __table_args__ = (
        UniqueConstraint("item_id", "order_number", name="uq_withdrawal_order_number"),
        Index("idx_withdrawal_item", "item_id"),
        Index("idx_withdrawal_status", "status"),
    )

    # Item reference (no FK -- retained orders outlive the item)
    item_id: Mapped[str] = mapped_column(String(64))
    order_number: Mapped[str] = mapped_column(String(100))
    quantity: Mapped[int] = mapped_column(Integer)
    beneficiary_facility: Mapped[str] = mapped_column(String(300))
    recipient_name: Mapped[str] = mapped_column(String(300))
    recipient_contact: Mapped[str] = mapped_column(String(300))
    status: Mapped[str] = mapped_column(String(100))
    ordered_at: Mapped[datetime | None] = mapped_column(nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    position: Mapped[int] = mapped_column(Integer, default=0)
    retained: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    def to_dto(self) -> WithdrawalOrder:
        return WithdrawalOrder(
            order_number=self.order_number,
            item_id=self.item_id,
            quantity=self.quantity,
            beneficiary_facility=self.beneficiary_facility,
            recipient_name=self.recipient_name,
            recipient_contact=self.recipient_contact,
            status=self.status,
            created_at=as_utc(self.ordered_at) if self.ordered_at else None,
            notes=self.notes,
        )

    @classmethod
    def from_dto(
        cls, dto: WithdrawalOrder, position: int = 0, retained: bool = False,
    ) -> "WithdrawalOrderModel":
        return cls(
            item_id=dto.item_id,
            order_number=dto.order_number,
            quantity=dto.quantity,
            beneficiary_facility=dto.beneficiary_facility,
            recipient_name=dto.recipient_name,
            recipient_contact=dto.recipient_contact,
            status=dto.status,
            ordered_at=dto.created_at,
            notes=dto.notes,
            position=position,
            retained=retained,
        )

    def __repr__(self) -> str:
        return (
            f"<WithdrawalOrderModel {self.item_id}/{self.order_number} "
            f"qty={self.quantity} status={self.status}>"
        )
