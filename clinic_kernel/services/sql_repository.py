"""
SqlAlchemyRepository -- the persistence collaborator on the ORM models.

Responsibility:
    Implements the ``Repository`` protocol on top of a caller-owned
    SQLAlchemy session.  Versioned records (lifecycle entities, inventory
    items) are written with compare-and-swap:

        UPDATE ... SET version = :expected + 1
        WHERE id = :id AND version = :expected

    and a rowcount of zero is reported as ``StorageConflictError``.

Architecture position:
    Kernel > Services -- imperative shell around the ORM.

Invariants enforced:
    - Status history rows are only ever INSERTed (positions past the stored
      count); existing rows are never rewritten.
    - ``load(..., for_update=True)`` takes a SELECT ... FOR UPDATE row lock
      on PostgreSQL so pessimistic callers serialize before validating.
    - A record inserted concurrently by another session surfaces as
      ``StorageConflictError``, never as a raw IntegrityError.

Non-goals:
    - Does NOT call ``session.commit()`` -- the caller controls transaction
      boundaries (``session_scope``).
"""

from __future__ import annotations

from typing import Any, Mapping

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from clinic_kernel.domain.aggregation import Facility
from clinic_kernel.domain.inventory import InventoryItem, WithdrawalOrder
from clinic_kernel.domain.lifecycle import LifecycleEntity
from clinic_kernel.domain.statuses import raw_value
from clinic_kernel.exceptions import StorageConflictError
from clinic_kernel.logging_config import get_logger
from clinic_kernel.models.facility import FacilityModel
from clinic_kernel.models.inventory import InventoryItemModel, WithdrawalOrderModel
from clinic_kernel.models.lifecycle import LifecycleEntityModel, StatusEventModel
from clinic_kernel.services.repository import (
    FACILITY,
    INVENTORY_ITEM,
    LIFECYCLE_KINDS,
    WITHDRAWAL_ORDER,
    Record,
    matches,
    not_found,
    record_id,
    record_kind,
)

logger = get_logger("services.sql_repository")


class SqlAlchemyRepository:
    """
    ORM-backed repository bound to one session.

    Usage:
        with session_scope() as session:
            repo = SqlAlchemyRepository(session)
            item = repo.load("inventory_item", item_id, for_update=True)
            ...
            repo.save(item)
    """

    def __init__(self, session: Session):
        self._session = session

    # =========================================================================
    # load
    # =========================================================================

    def load(self, kind: str, key: str, *, for_update: bool = False) -> Record:
        key = str(key)
        kind = raw_value(kind)
        if kind in LIFECYCLE_KINDS:
            stmt = (
                select(LifecycleEntityModel)
                .where(LifecycleEntityModel.id == key)
                .where(LifecycleEntityModel.kind == kind)
                .options(selectinload(LifecycleEntityModel.events))
            )
            model = self._fetch_one(stmt, for_update)
            if model is None:
                raise not_found(kind, key)
            return model.to_dto()

        if kind == INVENTORY_ITEM:
            stmt = select(InventoryItemModel).where(InventoryItemModel.id == key)
            model = self._fetch_one(stmt, for_update)
            if model is None:
                raise not_found(kind, key)
            return model.to_dto(self._orders_for([key]).get(key, []))

        if kind == WITHDRAWAL_ORDER:
            item_id, _, order_number = key.partition("/")
            model = self._retained_order(item_id, order_number)
            if model is None:
                raise not_found(kind, key)
            return model.to_dto()

        if kind == FACILITY:
            stmt = select(FacilityModel).where(FacilityModel.id == key)
            model = self._fetch_one(stmt, for_update)
            if model is None:
                raise not_found(kind, key)
            return model.to_dto()

        raise ValueError(f"Unknown record kind: {kind!r}")

    def _fetch_one(self, stmt, for_update: bool):
        if for_update:
            stmt = stmt.with_for_update()
        return self._session.execute(
            stmt.execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def _orders_for(self, item_ids: list[str]) -> dict[str, list[WithdrawalOrder]]:
        rows = self._session.execute(
            select(WithdrawalOrderModel)
            .where(WithdrawalOrderModel.item_id.in_(item_ids))
            .where(WithdrawalOrderModel.retained.is_(False))
            .order_by(WithdrawalOrderModel.item_id, WithdrawalOrderModel.position)
            .execution_options(populate_existing=True)
        ).scalars()
        grouped: dict[str, list[WithdrawalOrder]] = {}
        for row in rows:
            grouped.setdefault(row.item_id, []).append(row.to_dto())
        return grouped

    def _retained_order(self, item_id: str, order_number: str):
        return self._session.execute(
            select(WithdrawalOrderModel)
            .where(WithdrawalOrderModel.item_id == item_id)
            .where(WithdrawalOrderModel.order_number == order_number)
            .where(WithdrawalOrderModel.retained.is_(True))
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    # =========================================================================
    # save
    # =========================================================================

    def save(self, record: Record) -> Record:
        if isinstance(record, LifecycleEntity):
            self._save_entity(record)
        elif isinstance(record, InventoryItem):
            self._save_item(record)
        elif isinstance(record, WithdrawalOrder):
            self._save_retained_order(record)
        elif isinstance(record, Facility):
            self._save_facility(record)
        else:
            raise TypeError(f"Not a storable record: {type(record).__name__}")
        return record

    def _stored_version(self, model_cls, key: str) -> int | None:
        return self._session.execute(
            select(model_cls.version).where(model_cls.id == key)
        ).scalar_one_or_none()

    def _conflict(self, model_cls, record) -> StorageConflictError:
        kind, key = record_kind(record), record_id(record)
        actual = self._stored_version(model_cls, key)
        logger.info(
            "storage_conflict_detected",
            extra={
                "kind": kind,
                "record_id": key,
                "expected_version": record.version,
                "actual_version": actual,
            },
        )
        return StorageConflictError(kind, key, record.version, actual)

    def _insert(self, model_cls, model, record) -> None:
        """INSERT a first version; a concurrent insert becomes a conflict."""
        if self._stored_version(model_cls, model.id) is not None:
            raise self._conflict(model_cls, record)
        try:
            self._session.add(model)
            self._session.flush()
        except IntegrityError as exc:
            # The failed flush poisons the session; report without re-reading.
            raise StorageConflictError(
                record_kind(record), record_id(record), record.version, None,
            ) from exc

    def _compare_and_swap(self, model_cls, record, values: dict[str, Any]) -> None:
        expected = record.version
        result = self._session.execute(
            update(model_cls)
            .where(model_cls.id == record.id)
            .where(model_cls.version == expected)
            .values(version=expected + 1, **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise self._conflict(model_cls, record)

    def _save_entity(self, entity: LifecycleEntity) -> None:
        if entity.version == 0:
            self._insert(
                LifecycleEntityModel,
                LifecycleEntityModel.from_dto(entity, version=1),
                entity,
            )
            entity.version = 1
            return

        last_actor = entity.last_event.actor if entity.last_event else None
        self._compare_and_swap(
            LifecycleEntityModel,
            entity,
            {"current_status": entity.current_status, "updated_by": last_actor},
        )
        stored_count = self._session.execute(
            select(func.count())
            .select_from(StatusEventModel)
            .where(StatusEventModel.entity_id == entity.id)
        ).scalar_one()
        for sequence in range(stored_count, len(entity.history)):
            self._session.add(
                StatusEventModel.from_dto(entity.history[sequence], entity.id, sequence)
            )
        self._session.flush()
        entity.version += 1

    def _save_item(self, item: InventoryItem) -> None:
        if item.version == 0:
            self._insert(
                InventoryItemModel,
                InventoryItemModel.from_dto(item, version=1),
                item,
            )
        else:
            self._compare_and_swap(
                InventoryItemModel,
                item,
                {
                    "item_number": item.item_number,
                    "item_name": item.item_name,
                    "received_qty": item.received_qty,
                    "issued_qty": item.issued_qty,
                    "min_quantity": item.min_quantity,
                    "purchase_value": item.purchase_value,
                    "supplier_name": item.supplier_name,
                    "delivery_date": item.delivery_date,
                    "beneficiary_facility": item.beneficiary_facility,
                    "notes": item.notes,
                },
            )
        self._sync_orders(item)
        item.version += 1

    def _sync_orders(self, item: InventoryItem) -> None:
        stored = {
            row.order_number: row
            for row in self._session.execute(
                select(WithdrawalOrderModel)
                .where(WithdrawalOrderModel.item_id == item.id)
                .where(WithdrawalOrderModel.retained.is_(False))
                .execution_options(populate_existing=True)
            ).scalars()
        }
        for position, order in enumerate(item.withdrawal_orders):
            row = stored.get(order.order_number)
            if row is None:
                self._session.add(
                    WithdrawalOrderModel.from_dto(order, position=position)
                )
            elif row.status != order.status or row.notes != order.notes:
                row.status = order.status
                row.notes = order.notes
        self._session.flush()

    def _save_retained_order(self, order: WithdrawalOrder) -> None:
        row = self._session.execute(
            select(WithdrawalOrderModel)
            .where(WithdrawalOrderModel.item_id == order.item_id)
            .where(WithdrawalOrderModel.order_number == order.order_number)
        ).scalar_one_or_none()
        if row is None:
            self._session.add(WithdrawalOrderModel.from_dto(order, retained=True))
        else:
            row.status = order.status
            row.notes = order.notes
            row.retained = True
        self._session.flush()

    def _save_facility(self, facility: Facility) -> None:
        row = self._session.get(FacilityModel, facility.id)
        if row is None:
            self._session.add(FacilityModel.from_dto(facility))
        else:
            row.apply(facility)
        self._session.flush()

    # =========================================================================
    # list / delete
    # =========================================================================

    def list(
        self, kind: str, criteria: Mapping[str, Any] | None = None,
    ) -> list[Record]:
        kind = raw_value(kind)
        if kind in LIFECYCLE_KINDS:
            models = self._session.execute(
                select(LifecycleEntityModel)
                .where(LifecycleEntityModel.kind == kind)
                .options(selectinload(LifecycleEntityModel.events))
                .order_by(LifecycleEntityModel.created_at, LifecycleEntityModel.id)
                .execution_options(populate_existing=True)
            ).scalars().all()
            records = [model.to_dto() for model in models]
        elif kind == INVENTORY_ITEM:
            models = self._session.execute(
                select(InventoryItemModel)
                .order_by(InventoryItemModel.item_number, InventoryItemModel.id)
                .execution_options(populate_existing=True)
            ).scalars().all()
            orders = self._orders_for([model.id for model in models]) if models else {}
            records = [model.to_dto(orders.get(model.id, [])) for model in models]
        elif kind == WITHDRAWAL_ORDER:
            models = self._session.execute(
                select(WithdrawalOrderModel)
                .where(WithdrawalOrderModel.retained.is_(True))
                .order_by(WithdrawalOrderModel.item_id, WithdrawalOrderModel.position)
            ).scalars().all()
            records = [model.to_dto() for model in models]
        elif kind == FACILITY:
            models = self._session.execute(
                select(FacilityModel).order_by(FacilityModel.sector, FacilityModel.name)
            ).scalars().all()
            records = [model.to_dto() for model in models]
        else:
            raise ValueError(f"Unknown record kind: {kind!r}")
        return [record for record in records if matches(record, criteria)]

    def delete(
        self, kind: str, key: str, *, expected_version: int | None = None,
    ) -> None:
        key = str(key)
        kind = raw_value(kind)
        if kind in LIFECYCLE_KINDS:
            self._delete_versioned(
                LifecycleEntityModel, kind, key, expected_version,
                LifecycleEntityModel.kind == kind,
            )
            self._execute_delete(
                delete(StatusEventModel).where(StatusEventModel.entity_id == key)
            )
        elif kind == INVENTORY_ITEM:
            self._delete_versioned(InventoryItemModel, kind, key, expected_version)
            self._execute_delete(
                delete(WithdrawalOrderModel)
                .where(WithdrawalOrderModel.item_id == key)
                .where(WithdrawalOrderModel.retained.is_(False))
            )
        elif kind == WITHDRAWAL_ORDER:
            item_id, _, order_number = key.partition("/")
            if self._retained_order(item_id, order_number) is None:
                raise not_found(kind, key)
            self._execute_delete(
                delete(WithdrawalOrderModel)
                .where(WithdrawalOrderModel.item_id == item_id)
                .where(WithdrawalOrderModel.order_number == order_number)
            )
        elif kind == FACILITY:
            if self._session.get(FacilityModel, key) is None:
                raise not_found(kind, key)
            self._execute_delete(delete(FacilityModel).where(FacilityModel.id == key))
        else:
            raise ValueError(f"Unknown record kind: {kind!r}")

    def _delete_versioned(
        self, model_cls, kind: str, key: str, expected_version: int | None, *criteria,
    ) -> None:
        """
        Delete a versioned parent row before its children.

        With ``expected_version`` the DELETE carries the version in its WHERE
        clause, so a writer that committed after our load leaves the row in
        place and nothing else in the call is touched.
        """
        stmt = delete(model_cls).where(model_cls.id == key, *criteria)
        if expected_version is not None:
            stmt = stmt.where(model_cls.version == expected_version)
        result = self._session.execute(stmt.execution_options(synchronize_session=False))
        self._session.expire_all()
        if result.rowcount == 1:
            return
        actual = self._session.execute(
            select(model_cls.version).where(model_cls.id == key, *criteria)
        ).scalar_one_or_none()
        if actual is None:
            raise not_found(kind, key)
        logger.info(
            "storage_conflict_detected",
            extra={
                "kind": kind,
                "record_id": key,
                "expected_version": expected_version,
                "actual_version": actual,
            },
        )
        raise StorageConflictError(kind, key, expected_version, actual)

    def _execute_delete(self, stmt) -> None:
        self._session.execute(stmt.execution_options(synchronize_session=False))
        self._session.expire_all()
