"""
StatusMachine (``clinic_kernel.domain.status_machine``).

Responsibility
--------------
Single state machine for every lifecycle kind (contracts, purchase orders,
administrative transactions, maintenance reports).  Decides whether a
requested status is legal under the kind's policy and, if so, records it
on the entity's audit trail.

Architecture position
---------------------
**Kernel domain layer** -- pure, synchronous, no persistence.  Services
wrap ``transition`` with load / compare-and-swap save.

Invariants enforced
-------------------
* A status outside ``allowed_next_states`` is refused with an
  ``INVALID_TRANSITION`` failure; the entity is left untouched.
* History timestamps never decrease: a transition dated before the last
  event is refused with ``NON_MONOTONIC_TIMESTAMP``.
* Every new entity starts with exactly one creation event carrying the
  kind's initial status.

Failure modes
-------------
* Business refusals are returned as ``TransitionResult.failure``.
* An entity kind with no configuration raises ``ConfigurationError``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable

from clinic_kernel.domain import audit_trail
from clinic_kernel.domain.duration import as_utc
from clinic_kernel.domain.lifecycle import LifecycleEntity, StatusEvent
from clinic_kernel.domain.policy import KindConfig, allowed_next_states
from clinic_kernel.domain.results import (
    INVALID_TRANSITION,
    NON_MONOTONIC_TIMESTAMP,
    TransitionResult,
    ValidationError,
)
from clinic_kernel.domain.statuses import raw_value
from clinic_kernel.exceptions import ConfigurationError
from clinic_kernel.logging_config import get_logger

logger = get_logger("domain.status_machine")


class StatusMachine:
    """
    Transition policy registry plus validation.

    Contract:
        Constructed with one ``KindConfig`` per entity kind.  ``transition``
        mutates the entity only on success.

    Non-goals:
        - Does NOT persist -- callers save the entity afterwards.
        - Does NOT serialize concurrent callers; atomicity is the storage
          boundary's job (compare-and-swap on ``version``).
    """

    def __init__(self, configs: Iterable[KindConfig]):
        self._configs: dict[str, KindConfig] = {}
        for config in configs:
            self._configs[raw_value(config.kind)] = config

    @property
    def kinds(self) -> tuple[str, ...]:
        return tuple(self._configs)

    def config_for(self, kind: str) -> KindConfig:
        try:
            return self._configs[raw_value(kind)]
        except KeyError:
            raise ConfigurationError(
                [f"No lifecycle configuration for kind {kind!r}"]
            ) from None

    def allowed_next_states(self, entity: LifecycleEntity) -> tuple[str, ...]:
        policy = self.config_for(entity.kind).policy
        return allowed_next_states(policy, entity.current_status)

    def create(
        self,
        kind: str,
        entity_id: str,
        now: datetime,
        note: str | None = None,
        actor: str | None = None,
    ) -> LifecycleEntity:
        """Build a new entity holding its synthetic creation event."""
        config = self.config_for(kind)
        entity = LifecycleEntity(
            id=str(entity_id),
            kind=raw_value(config.kind),
            current_status=config.initial_status,
        )
        audit_trail.append(
            entity,
            StatusEvent(
                status=config.initial_status,
                timestamp=as_utc(now),
                note=note,
                actor=actor,
            ),
        )
        logger.info(
            "lifecycle_entity_created",
            extra={
                "kind": entity.kind,
                "entity_id": entity.id,
                "status": entity.current_status,
            },
        )
        return entity

    def transition(
        self,
        entity: LifecycleEntity,
        new_status: str,
        note: str | None = None,
        actor: str | None = None,
        *,
        now: datetime,
    ) -> TransitionResult:
        """
        Move ``entity`` to ``new_status`` if the kind's policy allows it.

        Postconditions (success):
            - One StatusEvent appended, ``current_status == new_status``.
        Postconditions (failure):
            - Entity unchanged; result carries the refusal.
        """
        new_status = raw_value(new_status)
        allowed = self.allowed_next_states(entity)
        if new_status not in allowed:
            logger.info(
                "transition_rejected",
                extra={
                    "kind": entity.kind,
                    "entity_id": entity.id,
                    "from_status": entity.current_status,
                    "to_status": new_status,
                },
            )
            return TransitionResult.failure(
                ValidationError(
                    code=INVALID_TRANSITION,
                    message=(
                        f"Cannot move {entity.kind} {entity.id} from "
                        f"{entity.current_status!r} to {new_status!r}"
                    ),
                    field="status",
                    details={
                        "current_status": entity.current_status,
                        "requested_status": new_status,
                        "allowed": list(allowed),
                    },
                )
            )

        timestamp = as_utc(now)
        last = entity.last_event
        if last is not None and timestamp < last.timestamp:
            return TransitionResult.failure(
                ValidationError(
                    code=NON_MONOTONIC_TIMESTAMP,
                    message=(
                        f"Transition time {timestamp.isoformat()} precedes the "
                        f"last recorded event {last.timestamp.isoformat()}"
                    ),
                    field="timestamp",
                )
            )

        event = StatusEvent(
            status=new_status, timestamp=timestamp, note=note, actor=actor
        )
        from_status = entity.current_status
        audit_trail.append(entity, event)

        logger.info(
            "status_transitioned",
            extra={
                "kind": entity.kind,
                "entity_id": entity.id,
                "from_status": from_status,
                "to_status": new_status,
                "actor": actor,
            },
        )
        return TransitionResult.success(entity, event)
