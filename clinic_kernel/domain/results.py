"""
Typed failure values for business-rule violations.

Responsibility:
    Carries the outcome of every kernel operation that can be refused on
    business grounds (invalid transition, insufficient stock, invalid form
    fields).  These are returned, never raised, so callers can branch on
    them and render every failing field at once.

Architecture position:
    Kernel > Domain -- pure value objects.  ZERO I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from clinic_kernel.domain.inventory import InventoryItem, WithdrawalOrder
    from clinic_kernel.domain.lifecycle import LifecycleEntity, StatusEvent


# Machine-readable failure codes
INVALID_TRANSITION = "INVALID_TRANSITION"
INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
REQUIRED = "REQUIRED"
OUT_OF_RANGE = "OUT_OF_RANGE"
NEGATIVE_AVAILABLE = "NEGATIVE_AVAILABLE"
NON_MONOTONIC_TIMESTAMP = "NON_MONOTONIC_TIMESTAMP"


@dataclass(frozen=True)
class ValidationError:
    """
    A single business-rule failure.

    Contract:
        Carries a machine-readable code, human-readable message, optional
        field name, and optional details dict.

    Non-goals:
        - Does NOT raise -- it IS the error representation.
    """

    code: str
    message: str
    field: str | None = None
    details: dict[str, Any] | None = None


@dataclass(frozen=True)
class ValidationResult:
    """
    Aggregates zero or more ValidationErrors.

    Guarantees:
        - errors is always a tuple (never None)
        - bool(result) == result.is_valid
    """

    is_valid: bool
    errors: tuple[ValidationError, ...] = field(default_factory=tuple)

    @classmethod
    def success(cls) -> ValidationResult:
        return cls(is_valid=True, errors=())

    @classmethod
    def failure(cls, *errors: ValidationError) -> ValidationResult:
        return cls(is_valid=False, errors=tuple(errors))

    @classmethod
    def from_errors(cls, errors: list[ValidationError]) -> ValidationResult:
        """Success when ``errors`` is empty, otherwise a failure with all of them."""
        if errors:
            return cls.failure(*errors)
        return cls.success()

    @property
    def fields(self) -> tuple[str, ...]:
        """Names of every failing field, in report order."""
        return tuple(e.field for e in self.errors if e.field is not None)

    def __bool__(self) -> bool:
        return self.is_valid


@dataclass(frozen=True)
class TransitionResult:
    """
    Result of ``StatusMachine.transition``.

    Contract:
        Either carries the appended event OR validation errors, never both.
    """

    validation: ValidationResult
    entity: LifecycleEntity | None = None
    event: StatusEvent | None = None

    @classmethod
    def success(cls, entity: LifecycleEntity, event: StatusEvent) -> TransitionResult:
        return cls(validation=ValidationResult.success(), entity=entity, event=event)

    @classmethod
    def failure(cls, *errors: ValidationError) -> TransitionResult:
        return cls(validation=ValidationResult.failure(*errors))

    @property
    def is_valid(self) -> bool:
        return self.validation.is_valid

    @property
    def errors(self) -> tuple[ValidationError, ...]:
        return self.validation.errors

    def __bool__(self) -> bool:
        return self.is_valid


@dataclass(frozen=True)
class ItemResult:
    """Result of adding or updating an inventory item."""

    validation: ValidationResult
    item: InventoryItem | None = None

    @classmethod
    def success(cls, item: InventoryItem) -> ItemResult:
        return cls(validation=ValidationResult.success(), item=item)

    @classmethod
    def failure(cls, *errors: ValidationError) -> ItemResult:
        return cls(validation=ValidationResult.failure(*errors))

    @property
    def is_valid(self) -> bool:
        return self.validation.is_valid

    @property
    def errors(self) -> tuple[ValidationError, ...]:
        return self.validation.errors

    def __bool__(self) -> bool:
        return self.is_valid


@dataclass(frozen=True)
class WithdrawalResult:
    """Result of a withdrawal or of resolving a withdrawal order."""

    validation: ValidationResult
    item: InventoryItem | None = None
    order: WithdrawalOrder | None = None

    @classmethod
    def success(cls, item: InventoryItem, order: WithdrawalOrder) -> WithdrawalResult:
        return cls(validation=ValidationResult.success(), item=item, order=order)

    @classmethod
    def failure(cls, *errors: ValidationError) -> WithdrawalResult:
        return cls(validation=ValidationResult.failure(*errors))

    @property
    def is_valid(self) -> bool:
        return self.validation.is_valid

    @property
    def errors(self) -> tuple[ValidationError, ...]:
        return self.validation.errors

    def __bool__(self) -> bool:
        return self.is_valid
