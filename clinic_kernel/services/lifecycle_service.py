"""
LifecycleService -- load, transition, compare-and-swap save.

Responsibility:
    Orchestrates the StatusMachine against the persistence collaborator for
    contracts, purchase orders, administrative transactions and maintenance
    reports.

Architecture position:
    Kernel > Services -- imperative shell.  All decisions are made by
    ``StatusMachine``; this class only loads, saves, logs and reads the clock.

Invariants enforced:
    - An entity is saved only after a successful transition, so a refused
      transition never bumps the stored version.
    - Concurrent transitions of one entity cannot both commit: the second
      ``save`` fails the version check with ``StorageConflictError``.

Failure modes:
    - EntityNotFoundError: unknown entity id.
    - StorageConflictError: lost a write race; retry with
      ``run_with_conflict_retry``.
    - ConfigurationError: kind with no lifecycle configuration.
"""

from __future__ import annotations

from typing import Any
from uuid import uuid4

from clinic_kernel.domain.clock import Clock, SystemClock
from clinic_kernel.domain.lifecycle import LifecycleEntity
from clinic_kernel.domain.presentation import lifecycle_view
from clinic_kernel.domain.results import TransitionResult
from clinic_kernel.domain.status_machine import StatusMachine
from clinic_kernel.domain.statuses import raw_value
from clinic_kernel.domain.duration import compute_overdue
from clinic_kernel.logging_config import LogContext, get_logger
from clinic_kernel.services.repository import Repository

logger = get_logger("services.lifecycle")


class LifecycleService:
    """
    Lifecycle operations for every configured entity kind.

    Usage:
        service = LifecycleService(repository, machine, clock)
        contract = service.create("contract", actor="admin")
        result = service.transition("contract", contract.id, "موافق عليه",
                                    note="approved by committee", actor="admin")
    """

    def __init__(
        self,
        repository: Repository,
        machine: StatusMachine,
        clock: Clock | None = None,
    ):
        self._repository = repository
        self._machine = machine
        self._clock = clock or SystemClock()

    @property
    def machine(self) -> StatusMachine:
        return self._machine

    def create(
        self,
        kind: str,
        entity_id: str | None = None,
        note: str | None = None,
        actor: str | None = None,
    ) -> LifecycleEntity:
        entity = self._machine.create(
            kind,
            entity_id or str(uuid4()),
            now=self._clock.now(),
            note=note,
            actor=actor,
        )
        self._repository.save(entity)
        return entity

    def get(self, kind: str, entity_id: str) -> LifecycleEntity:
        return self._repository.load(kind, entity_id)

    def list(self, kind: str, status: str | None = None) -> list[LifecycleEntity]:
        criteria = {"current_status": raw_value(status)} if status is not None else None
        return self._repository.list(kind, criteria)

    def allowed_next_states(self, kind: str, entity_id: str) -> tuple[str, ...]:
        return self._machine.allowed_next_states(self.get(kind, entity_id))

    def transition(
        self,
        kind: str,
        entity_id: str,
        new_status: str,
        note: str | None = None,
        actor: str | None = None,
    ) -> TransitionResult:
        """
        Load the entity, apply the transition, and save on success.

        Returns the domain ``TransitionResult``; business refusals are NOT
        raised.
        """
        with LogContext.bind(entity_id=str(entity_id), actor_id=actor):
            entity = self._repository.load(kind, entity_id, for_update=True)
            result = self._machine.transition(
                entity, new_status, note, actor, now=self._clock.now(),
            )
            if result.is_valid:
                self._repository.save(entity)
            return result

    def delete(self, kind: str, entity_id: str) -> None:
        self._repository.delete(kind, entity_id)
        logger.info(
            "lifecycle_entity_deleted",
            extra={"kind": raw_value(kind), "entity_id": str(entity_id)},
        )

    def view(self, kind: str, entity_id: str) -> dict[str, Any]:
        return lifecycle_view(
            self.get(kind, entity_id),
            self._machine.config_for(kind),
            self._clock.now(),
        )

    def overdue(self, kind: str) -> list[tuple[LifecycleEntity, int]]:
        """Entities past their grace period, most overdue first."""
        config = self._machine.config_for(kind)
        now = self._clock.now()
        late = []
        for entity in self.list(kind):
            days = compute_overdue(
                entity.created_at,
                entity.current_status,
                now,
                grace_days=config.grace_days,
                terminal_statuses=config.terminal_statuses,
            )
            if days:
                late.append((entity, days))
        late.sort(key=lambda pair: pair[1], reverse=True)
        return late
