"""
Config -> Kernel bridges.

Functions that convert a validated ``ClinicConfigurationSet`` into kernel
objects.  They live in clinic_config (the producer) because the kernel
never imports clinic_config.

Usage:
    from clinic_config import get_active_config
    from clinic_config.bridges import build_status_machine, stock_mode

    config = get_active_config()
    machine = build_status_machine(config)
    inventory = InventoryService(repository, clock, mode=stock_mode(config))
"""

from __future__ import annotations

from types import MappingProxyType

from clinic_config.schema import POLICY_ORDERED, ClinicConfigurationSet, KindDef
from clinic_kernel.domain.inventory import StockMode
from clinic_kernel.domain.policy import (
    FreePolicy,
    KindConfig,
    OrderedPolicy,
    TransitionPolicy,
)
from clinic_kernel.domain.status_machine import StatusMachine


def build_policy(kind: KindDef) -> TransitionPolicy:
    if kind.policy == POLICY_ORDERED:
        return OrderedPolicy(flow=tuple(kind.statuses), rejected=kind.rejected)
    return FreePolicy(all_statuses=tuple(kind.statuses), initial=kind.initial)


def build_kind_config(kind: KindDef, default_grace_days: int) -> KindConfig:
    return KindConfig(
        kind=kind.kind,
        policy=build_policy(kind),
        terminal_statuses=frozenset(kind.terminal),
        audit_fields=MappingProxyType(dict(kind.audit_fields)),
        grace_days=(
            kind.grace_days if kind.grace_days is not None else default_grace_days
        ),
    )


def build_kind_configs(config: ClinicConfigurationSet) -> tuple[KindConfig, ...]:
    return tuple(build_kind_config(kind, config.grace_days) for kind in config.kinds)


def build_status_machine(config: ClinicConfigurationSet) -> StatusMachine:
    return StatusMachine(build_kind_configs(config))


def stock_mode(config: ClinicConfigurationSet) -> StockMode:
    return StockMode(config.inventory.stock_mode)
