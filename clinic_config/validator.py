"""
Configuration Validator (``clinic_config.validator``).

Responsibility
--------------
Structural checks on a parsed ``ClinicConfigurationSet`` before the kernel
is built from it.  Every problem is collected; nothing stops at the first.

Checks
------
* Kind names are unique; each kind has a known policy and >= 1 status.
* Ordered kinds declare a rejection status that is not part of the flow.
* Initial and terminal statuses belong to the kind's vocabulary.
* Audit field tables reference known statuses and the fixed field names.
* Grace periods are non-negative; the stock mode is known.

Unknown entity kinds and kinds without terminal statuses are warnings.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from clinic_config.schema import (
    POLICY_FREE,
    POLICY_ORDERED,
    ClinicConfigurationSet,
    KindDef,
)
from clinic_kernel.domain.inventory import StockMode
from clinic_kernel.domain.policy import NAMED_AUDIT_FIELDS
from clinic_kernel.domain.statuses import EntityKind


@dataclass
class ConfigValidationResult:
    """
    Result of configuration validation.

    ``is_valid`` is True only when ``errors`` is empty.  Warnings do not
    block loading.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def _vocabulary(kind: KindDef) -> set[str]:
    statuses = set(kind.statuses)
    if kind.rejected:
        statuses.add(kind.rejected)
    return statuses


def _validate_kind(kind: KindDef, result: ConfigValidationResult) -> None:
    prefix = f"kind {kind.kind!r}"
    if kind.policy not in (POLICY_ORDERED, POLICY_FREE):
        result.add_error(
            f"{prefix}: unknown policy {kind.policy!r} "
            f"(expected {POLICY_ORDERED!r} or {POLICY_FREE!r})"
        )
    if not kind.statuses:
        result.add_error(f"{prefix}: at least one status is required")
    if len(set(kind.statuses)) != len(kind.statuses):
        result.add_error(f"{prefix}: duplicate statuses in {list(kind.statuses)}")

    if kind.policy == POLICY_ORDERED:
        if not kind.rejected:
            result.add_error(f"{prefix}: ordered policy requires a rejected status")
        elif kind.rejected in kind.statuses:
            result.add_error(
                f"{prefix}: rejected status {kind.rejected!r} must not be in the flow"
            )
        if kind.initial and kind.statuses and kind.initial != kind.statuses[0]:
            result.add_error(
                f"{prefix}: ordered flow starts at {kind.statuses[0]!r}, "
                f"not {kind.initial!r}"
            )

    vocabulary = _vocabulary(kind)
    if kind.initial and kind.initial not in vocabulary:
        result.add_error(f"{prefix}: initial status {kind.initial!r} is unknown")
    for status in kind.terminal:
        if status not in vocabulary:
            result.add_error(f"{prefix}: terminal status {status!r} is unknown")
    if not kind.terminal:
        result.add_warning(f"{prefix}: no terminal statuses; never counted as resolved")

    for status, name in kind.audit_fields.items():
        if status not in vocabulary:
            result.add_error(f"{prefix}: audit field for unknown status {status!r}")
        if name not in NAMED_AUDIT_FIELDS:
            result.add_error(
                f"{prefix}: audit field name {name!r} is not one of "
                f"{list(NAMED_AUDIT_FIELDS)}"
            )

    if kind.grace_days is not None and kind.grace_days < 0:
        result.add_error(f"{prefix}: grace_days must be >= 0")

    if kind.kind not in {k.value for k in EntityKind}:
        result.add_warning(f"{prefix}: not a standard entity kind")


def validate_configuration(config: ClinicConfigurationSet) -> ConfigValidationResult:
    """Validate a configuration set, collecting every error and warning."""
    result = ConfigValidationResult()

    if not config.kinds:
        result.add_error("configuration defines no kinds")
    names = [kind.kind for kind in config.kinds]
    for name in sorted({n for n in names if names.count(n) > 1}):
        result.add_error(f"kind {name!r} is defined more than once")

    if config.grace_days < 0:
        result.add_error("grace_days must be >= 0")
    if config.inventory.stock_mode not in {mode.value for mode in StockMode}:
        result.add_error(
            f"inventory.stock_mode {config.inventory.stock_mode!r} is unknown"
        )

    for kind in config.kinds:
        _validate_kind(kind, result)
    return result
