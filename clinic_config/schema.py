"""
Configuration Schema (``clinic_config.schema``).

Responsibility
--------------
Frozen dataclasses describing a clinic configuration set: one entry per
lifecycle kind (policy, statuses, terminal statuses, audit field table,
grace period) plus the inventory ledger settings.

Architecture position
---------------------
**Config layer** -- pure data.  Produced by ``loader``, checked by
``validator``, turned into kernel objects by ``bridges``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

POLICY_ORDERED = "ordered"
POLICY_FREE = "free"


@dataclass(frozen=True)
class KindDef:
    """Lifecycle definition of one entity kind."""

    kind: str
    policy: str
    statuses: tuple[str, ...]
    rejected: str | None = None
    initial: str | None = None
    terminal: tuple[str, ...] = ()
    audit_fields: Mapping[str, str] = field(default_factory=dict)
    grace_days: int | None = None


@dataclass(frozen=True)
class InventoryDef:
    stock_mode: str = "clamp"


@dataclass(frozen=True)
class ClinicConfigurationSet:
    """
    A complete, versioned configuration set.

    ``checksum`` is the SHA-256 of the canonical JSON form of the source
    document, so two sets with equal checksums configure the kernel
    identically.
    """

    config_id: str
    version: int
    grace_days: int
    kinds: tuple[KindDef, ...]
    inventory: InventoryDef = field(default_factory=InventoryDef)
    checksum: str = ""

    def kind(self, name: str) -> KindDef | None:
        for kind_def in self.kinds:
            if kind_def.kind == name:
                return kind_def
        return None
