"""
AggregationEngine (``clinic_kernel.domain.aggregation``).

Responsibility
--------------
Filter, reduce and group facility records for the dashboard summary cards
(clinic counts, active/inactive facilities, per-sector breakdown).

Architecture position
---------------------
**Kernel domain layer** -- pure functions over ``Facility`` value objects.
``DashboardSelector`` feeds them from the repository.

Invariants enforced
-------------------
* Filtering is AND across dimensions; ``ALL`` (or None) disables one.
* Missing or non-numeric clinic counts contribute zero to every sum.
* Grouping never drops a facility: an empty category falls back to the
  facility type, then to the empty string.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping

from clinic_kernel.domain.statuses import FacilityStatus, raw_value

ALL = "all"


def _as_count(value: Any) -> int:
    """Integer count from a loosely typed record value (bad input -> 0)."""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    try:
        return int(Decimal(str(value).strip()))
    except (InvalidOperation, ValueError):
        return 0


def _first_present(record: Mapping[str, Any], *names: str) -> Any:
    for name in names:
        value = record.get(name)
        if value not in (None, ""):
            return value
    return None


@dataclass(frozen=True)
class Facility:
    """One facility row as the dashboard sees it."""

    id: str
    name: str
    sector: str
    category: str = ""
    status: str = FacilityStatus.ACTIVE.value
    total_clinics: int = 0
    working_clinics: int = 0
    out_of_order_clinics: int = 0
    not_working_clinics: int = 0
    facility_type: str = ""
    code: str = ""

    @property
    def group_category(self) -> str:
        return self.category or self.facility_type or ""

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> Facility:
        """
        Build a Facility from a stored record.

        Accepts both snake_case keys and the camelCase / short aliases
        (``workingClinics`` or ``working``, ``totalClinics`` or ``total``...)
        found in imported facility sheets.
        """
        return cls(
            id=str(record.get("id", "")),
            name=str(record.get("name") or ""),
            sector=str(record.get("sector") or ""),
            category=str(record.get("category") or ""),
            status=raw_value(record.get("status") or FacilityStatus.ACTIVE),
            total_clinics=_as_count(_first_present(
                record, "total_clinics", "totalClinics", "total",
            )),
            working_clinics=_as_count(_first_present(
                record, "working_clinics", "workingClinics", "working",
            )),
            out_of_order_clinics=_as_count(_first_present(
                record, "out_of_order_clinics", "outOfOrderClinics", "outOfOrder",
            )),
            not_working_clinics=_as_count(_first_present(
                record, "not_working_clinics", "notWorkingClinics", "notWorking",
            )),
            facility_type=str(
                _first_present(record, "facility_type", "facilityType", "type") or ""
            ),
            code=str(record.get("code") or ""),
        )


@dataclass(frozen=True)
class FacilityFilter:
    """Immutable filter criteria; ``ALL`` or None matches everything."""

    sector: str | None = ALL
    category: str | None = ALL

    @staticmethod
    def _matches(wanted: str | None, actual: str) -> bool:
        return wanted is None or wanted == ALL or wanted == actual

    def matches(self, facility: Facility) -> bool:
        return (
            self._matches(self.sector, facility.sector)
            and self._matches(self.category, facility.group_category)
        )


def filter_facilities(
    facilities: Iterable[Facility],
    criteria: FacilityFilter | None = None,
) -> list[Facility]:
    if criteria is None:
        return list(facilities)
    return [f for f in facilities if criteria.matches(f)]


@dataclass(frozen=True)
class FacilityStats:
    total_clinics: int = 0
    working_clinics: int = 0
    not_working_clinics: int = 0
    out_of_order_clinics: int = 0
    total_facilities: int = 0


def reduce_stats(facilities: Iterable[Facility]) -> FacilityStats:
    """Sum the clinic counters over ``facilities``."""
    total = working = not_working = out_of_order = count = 0
    for facility in facilities:
        total += _as_count(facility.total_clinics)
        working += _as_count(facility.working_clinics)
        not_working += _as_count(facility.not_working_clinics)
        out_of_order += _as_count(facility.out_of_order_clinics)
        count += 1
    return FacilityStats(
        total_clinics=total,
        working_clinics=working,
        not_working_clinics=not_working,
        out_of_order_clinics=out_of_order,
        total_facilities=count,
    )


def facility_status_counts(facilities: Iterable[Facility]) -> dict[str, int]:
    """Active / inactive facility counts (unknown statuses count as neither)."""
    counts = {"active": 0, "inactive": 0}
    for facility in facilities:
        if facility.status == FacilityStatus.ACTIVE.value:
            counts["active"] += 1
        elif facility.status == FacilityStatus.INACTIVE.value:
            counts["inactive"] += 1
    return counts


@dataclass(frozen=True)
class GroupStats:
    count: int = 0
    clinics_sum: int = 0


def group_by_sector_and_category(
    facilities: Iterable[Facility],
) -> dict[str, dict[str, GroupStats]]:
    """``{sector: {category: GroupStats}}`` in first-seen order."""
    groups: dict[str, dict[str, GroupStats]] = {}
    for facility in facilities:
        by_category = groups.setdefault(facility.sector, {})
        key = facility.group_category
        current = by_category.get(key, GroupStats())
        by_category[key] = GroupStats(
            count=current.count + 1,
            clinics_sum=current.clinics_sum + _as_count(facility.total_clinics),
        )
    return groups
