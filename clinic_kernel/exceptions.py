"""
Typed exception hierarchy for the clinic kernel.

===============================================================================
WHAT IS RAISED AND WHAT IS RETURNED
===============================================================================

Business-rule violations are NOT exceptions in this kernel.  A rejected
status change, a withdrawal larger than the available stock, or a form with
missing fields is returned as a failure value from
``clinic_kernel.domain.results`` so that callers can branch on it and show
field-level feedback:

    result = machine.transition(entity, "تم التسليم", now=clock.now())
    if not result:
        for error in result.errors:
            show_field_error(error.field, error.message)

Exceptions are reserved for hard failures the immediate caller cannot fix
by editing the submission:

    ClinicKernelError (base)
    |
    +-- NotFoundError
    |   +-- EntityNotFoundError
    |   +-- InventoryItemNotFoundError
    |   +-- WithdrawalOrderNotFoundError
    |
    +-- ConcurrencyError
    |   +-- StorageConflictError
    |
    +-- ImmutabilityError
    |   +-- ImmutabilityViolationError
    |
    +-- ConfigurationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category      | Code                     | When Raised
--------------|--------------------------|------------------------------------
Not found     | ENTITY_NOT_FOUND         | Lifecycle entity id doesn't exist
              | INVENTORY_ITEM_NOT_FOUND | Inventory item id doesn't exist
              | WITHDRAWAL_NOT_FOUND     | Order number not on the item
--------------|--------------------------|------------------------------------
Concurrency   | STORAGE_CONFLICT         | Stored version changed since load
--------------|--------------------------|------------------------------------
Immutability  | IMMUTABILITY_VIOLATION   | Stored status event was modified
--------------|--------------------------|------------------------------------
Configuration | CONFIGURATION_INVALID    | Lifecycle config failed validation

===============================================================================
HANDLING PATTERNS
===============================================================================

1. STORAGE CONFLICTS ARE RETRIED FROM A FRESH READ:

    run_with_conflict_retry(
        lambda: service.withdraw(item_id, quantity, ...),
    )

2. NOT FOUND IS SURFACED UPWARD:

    except NotFoundError as e:
        api_response(status=404, code=e.code)

===============================================================================
"""


class ClinicKernelError(Exception):
    """
    Base exception for all clinic kernel errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "CLINIC_KERNEL_ERROR"


# Not-found exceptions


class NotFoundError(ClinicKernelError):
    """Base exception for missing records."""

    code: str = "NOT_FOUND"


class EntityNotFoundError(NotFoundError):
    """Lifecycle entity with given kind and id was not found."""

    code: str = "ENTITY_NOT_FOUND"

    def __init__(self, kind: str, entity_id: str):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind} not found: {entity_id}")


class InventoryItemNotFoundError(NotFoundError):
    """Inventory item with given id was not found."""

    code: str = "INVENTORY_ITEM_NOT_FOUND"

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"Inventory item not found: {item_id}")


class WithdrawalOrderNotFoundError(NotFoundError):
    """Withdrawal order number does not exist on the item."""

    code: str = "WITHDRAWAL_NOT_FOUND"

    def __init__(self, item_id: str, order_number: str):
        self.item_id = item_id
        self.order_number = order_number
        super().__init__(
            f"Withdrawal order {order_number} not found on item {item_id}"
        )


# Concurrency exceptions


class ConcurrencyError(ClinicKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class StorageConflictError(ConcurrencyError):
    """
    Compare-and-swap at the persistence boundary failed.

    The stored record changed between the caller's read and write.  The
    caller should retry the whole operation from a fresh read.
    """

    code: str = "STORAGE_CONFLICT"

    def __init__(
        self,
        kind: str,
        record_id: str,
        expected_version: int,
        actual_version: int | None,
    ):
        self.kind = kind
        self.record_id = record_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Storage conflict on {kind} {record_id}: expected version "
            f"{expected_version}, found {actual_version}"
        )


# Immutability exceptions


class ImmutabilityError(ClinicKernelError):
    """Base exception for immutability violations."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify a record that is append-only."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Cannot modify {entity_type} {entity_id}: {reason}"
        )


# Configuration exceptions


class ConfigurationError(ClinicKernelError):
    """Lifecycle configuration failed validation."""

    code: str = "CONFIGURATION_INVALID"

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__(
            "Configuration validation failed:\n"
            + "\n".join(f"  - {e}" for e in self.errors)
        )
