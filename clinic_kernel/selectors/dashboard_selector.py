"""
Module: clinic_kernel.selectors.dashboard_selector
Responsibility: Read-only dashboard summary over stored facilities.
Architecture position: Kernel > Selectors.  Reads through the persistence
    collaborator and delegates every computation to domain.aggregation.

Invariants enforced:
    - Read-only: never saves or deletes.
    - Returns frozen values, never ORM rows.
"""

from __future__ import annotations

from dataclasses import dataclass

from clinic_kernel.domain.aggregation import (
    Facility,
    FacilityFilter,
    FacilityStats,
    GroupStats,
    facility_status_counts,
    filter_facilities,
    group_by_sector_and_category,
    reduce_stats,
)
from clinic_kernel.services.repository import FACILITY, Repository


@dataclass(frozen=True)
class DashboardSummary:
    criteria: FacilityFilter
    stats: FacilityStats
    status_counts: dict[str, int]
    groups: dict[str, dict[str, GroupStats]]


class DashboardSelector:
    """Facility summary cards for the dashboard screen."""

    def __init__(self, repository: Repository):
        self.repository = repository

    def facilities(self, criteria: FacilityFilter | None = None) -> list[Facility]:
        return filter_facilities(self.repository.list(FACILITY), criteria)

    def summary(self, criteria: FacilityFilter | None = None) -> DashboardSummary:
        criteria = criteria or FacilityFilter()
        selected = self.facilities(criteria)
        return DashboardSummary(
            criteria=criteria,
            stats=reduce_stats(selected),
            status_counts=facility_status_counts(selected),
            groups=group_by_sector_and_category(selected),
        )
