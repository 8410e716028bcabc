"""ORM models.  Importing this package registers every table on Base.metadata."""

from clinic_kernel.models.facility import FacilityModel
from clinic_kernel.models.inventory import InventoryItemModel, WithdrawalOrderModel
from clinic_kernel.models.lifecycle import LifecycleEntityModel, StatusEventModel

__all__ = [
    "FacilityModel",
    "InventoryItemModel",
    "LifecycleEntityModel",
    "StatusEventModel",
    "WithdrawalOrderModel",
]
