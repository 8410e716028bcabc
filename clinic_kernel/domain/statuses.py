"""
Status vocabularies for lifecycle entities, withdrawal orders and facilities.

The enum values are the stored and displayed values used by the clinic
screens and the print/report collaborators, so they must not be translated.
Enums subclass ``str`` and compare equal to their raw values.
"""

from enum import Enum
from typing import Any


class EntityKind(str, Enum):
    """Kinds of lifecycle entity."""

    CONTRACT = "contract"
    PURCHASE_ORDER = "purchase_order"
    TRANSACTION = "transaction"
    REPORT = "report"


class ContractStatus(str, Enum):
    """Ordered flow shared by dental contracts and direct purchase orders."""

    NEW = "جديد"
    APPROVED = "موافق عليه"
    CONTRACTED = "تم التعاقد"
    DELIVERED = "تم التسليم"
    REJECTED = "مرفوض"


class TransactionStatus(str, Enum):
    """Administrative transaction statuses (free-form)."""

    OPEN = "مفتوح تحت الاجراء"
    COMPLETED = "منجز"
    REJECTED = "مرفوض"


class ReportStatus(str, Enum):
    """Maintenance report statuses (free-form)."""

    OPEN = "مفتوح"
    CLOSED = "مغلق"
    PAUSED = "مكهن"


class WithdrawalStatus(str, Enum):
    """Warehouse withdrawal order statuses."""

    OPEN = "مفتوح تحت الاجراء"
    FULFILLED = "تم الصرف"
    REJECTED = "مرفوض"


class FacilityStatus(str, Enum):
    """Facility activity status."""

    ACTIVE = "نشطة"
    INACTIVE = "غير نشطة"


def raw_value(value: Any) -> str:
    """
    Stored form of a status or kind.

    Enum members give their value; ``str()`` of a ``str`` enum member is
    ``"ClassName.MEMBER"`` on Python 3.11+, never the stored text.
    """
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


CONTRACT_FLOW: tuple[str, ...] = (
    ContractStatus.NEW.value,
    ContractStatus.APPROVED.value,
    ContractStatus.CONTRACTED.value,
    ContractStatus.DELIVERED.value,
)
