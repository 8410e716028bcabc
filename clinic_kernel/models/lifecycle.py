"""
Module: clinic_kernel.models.lifecycle
Responsibility: ORM persistence for lifecycle entities and their status
    history.  Maps ``LifecycleEntity`` / ``StatusEvent`` onto two tables.

Invariants enforced:
    - ``version`` is the compare-and-swap token; the repository bumps it with
      ``UPDATE ... WHERE version = :expected``.
    - Status events are append-only: ``sequence`` preserves insertion order
      and db/immutability.py refuses any UPDATE of a stored event.
    - Events are deleted only together with their entity (cascade).
"""

from datetime import datetime

from sqlalchemy import ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clinic_kernel.db.base import Base, TrackedBase
from clinic_kernel.domain.duration import as_utc
from clinic_kernel.domain.lifecycle import LifecycleEntity, StatusEvent
from clinic_kernel.domain.statuses import raw_value


class LifecycleEntityModel(TrackedBase):
    """
    One contract, purchase order, transaction or maintenance report.

    Maps to: clinic_kernel.domain.lifecycle.LifecycleEntity.
    """

    __tablename__ = "lifecycle_entities"

    __table_args__ = (
        Index("idx_lifecycle_kind", "kind"),
        Index("idx_lifecycle_kind_status", "kind", "current_status"),
    )

    kind: Mapped[str] = mapped_column(String(50))
    current_status: Mapped[str] = mapped_column(String(100))
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    events: Mapped[list["StatusEventModel"]] = relationship(
        back_populates="entity",
        order_by="StatusEventModel.sequence",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def to_dto(self) -> LifecycleEntity:
        return LifecycleEntity(
            id=self.id,
            kind=self.kind,
            current_status=self.current_status,
            history=[event.to_dto() for event in self.events],
            version=self.version,
        )

    @classmethod
    def from_dto(cls, dto: LifecycleEntity, version: int) -> "LifecycleEntityModel":
        model = cls(
            id=dto.id,
            kind=raw_value(dto.kind),
            current_status=dto.current_status,
            version=version,
            created_by=dto.history[0].actor if dto.history else None,
        )
        model.events = [
            StatusEventModel.from_dto(event, dto.id, sequence)
            for sequence, event in enumerate(dto.history)
        ]
        return model

    def __repr__(self) -> str:
        return (
            f"<LifecycleEntityModel {self.id} kind={self.kind} "
            f"status={self.current_status} v{self.version}>"
        )


class StatusEventModel(Base):
    """
    One immutable history row.

    Maps to: clinic_kernel.domain.lifecycle.StatusEvent.
    """

    __tablename__ = "status_events"

    __table_args__ = (
        UniqueConstraint("entity_id", "sequence", name="uq_status_event_sequence"),
        Index("idx_status_event_status", "entity_id", "status"),
    )

    entity_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("lifecycle_entities.id", ondelete="CASCADE"),
    )
    sequence: Mapped[int] = mapped_column(Integer)
    status: Mapped[str] = mapped_column(String(100))
    timestamp: Mapped[datetime] = mapped_column()
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    actor: Mapped[str | None] = mapped_column(String(200), nullable=True)

    entity: Mapped[LifecycleEntityModel] = relationship(back_populates="events")

    def to_dto(self) -> StatusEvent:
        return StatusEvent(
            status=self.status,
            timestamp=as_utc(self.timestamp),
            note=self.note,
            actor=self.actor,
        )

    @classmethod
    def from_dto(
        cls, dto: StatusEvent, entity_id: str, sequence: int,
    ) -> "StatusEventModel":
        return cls(
            entity_id=entity_id,
            sequence=sequence,
            status=dto.status,
            timestamp=as_utc(dto.timestamp),
            note=dto.note,
            actor=dto.actor,
        )

    def __repr__(self) -> str:
        return f"<StatusEventModel {self.entity_id}#{self.sequence} {self.status}>"
