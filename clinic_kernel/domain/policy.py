"""
Transition policies (``clinic_kernel.domain.policy``).

Responsibility
--------------
Pure value objects describing which statuses an entity kind may move to.
A kind is configured with exactly one policy variant:

* ``OrderedPolicy`` -- a forward flow ``[S0, S1, ..., Sn]`` plus an absorbing
  rejection status.  From ``Si`` any of ``Si..Sn`` (forward jumps included)
  or the rejection status is allowed.
* ``FreePolicy`` -- a set of statuses, each reachable from any other.

Architecture position
---------------------
**Kernel domain layer** -- ZERO I/O.  Built from configuration by
``clinic_config.bridges``; the kernel never reads configuration itself.

Invariants enforced
-------------------
* The rejection status of an ordered policy is never a member of its flow.
* Once an entity is rejected, the rejection status is the only allowed
  status (rejection is absorbing).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Union

from clinic_kernel.domain.statuses import ContractStatus

# Fixed field-name prefixes consumed by the print/report collaborators.
# Each prefix yields the pair ``<prefix>`` / ``<prefix>_note``.
NAMED_AUDIT_FIELDS: tuple[str, ...] = (
    "creation_date",
    "contract_approval_date",
    "contract_date",
    "contract_delivery_date",
    "rejection_date",
)


@dataclass(frozen=True)
class OrderedPolicy:
    """Forward-only flow with an absorbing rejection status."""

    flow: tuple[str, ...]
    rejected: str = ContractStatus.REJECTED.value

    def __post_init__(self):
        if not self.flow:
            raise ValueError("OrderedPolicy flow must not be empty")
        if self.rejected in self.flow:
            raise ValueError(
                f"Rejection status {self.rejected!r} must not be part of the flow"
            )

    @property
    def initial_status(self) -> str:
        return self.flow[0]

    @property
    def statuses(self) -> tuple[str, ...]:
        return (*self.flow, self.rejected)


@dataclass(frozen=True)
class FreePolicy:
    """Unordered set of statuses; any is reachable from any other."""

    all_statuses: tuple[str, ...]
    initial: str | None = None

    def __post_init__(self):
        if not self.all_statuses:
            raise ValueError("FreePolicy requires at least one status")
        if self.initial is not None and self.initial not in self.all_statuses:
            raise ValueError(
                f"Initial status {self.initial!r} is not one of {self.all_statuses}"
            )

    @property
    def initial_status(self) -> str:
        return self.initial if self.initial is not None else self.all_statuses[0]

    @property
    def statuses(self) -> tuple[str, ...]:
        return self.all_statuses


TransitionPolicy = Union[OrderedPolicy, FreePolicy]


def allowed_next_states(policy: TransitionPolicy, current: str) -> tuple[str, ...]:
    """
    Statuses that ``current`` may legally move to under ``policy``.

    Ordered: ``flow[index(current):]`` followed by the rejection status,
    de-duplicated with order preserved.  A rejected entity may only be
    re-recorded as rejected.  A status unknown to the policy allows nothing.
    """
    if isinstance(policy, FreePolicy):
        return policy.all_statuses

    if current == policy.rejected:
        return (policy.rejected,)
    if current not in policy.flow:
        return ()

    index = policy.flow.index(current)
    return tuple(dict.fromkeys((*policy.flow[index:], policy.rejected)))


@dataclass(frozen=True)
class KindConfig:
    """
    Everything the kernel needs to know about one entity kind.

    ``audit_fields`` maps a status to one of ``NAMED_AUDIT_FIELDS``.  The
    ``creation_date`` pair is always filled from the first history event and
    need not be listed.
    """

    kind: str
    policy: TransitionPolicy
    terminal_statuses: frozenset[str] = frozenset()
    audit_fields: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType({})
    )
    grace_days: int = 21

    @property
    def initial_status(self) -> str:
        return self.policy.initial_status

    def is_terminal(self, status: str) -> bool:
        return status in self.terminal_statuses
