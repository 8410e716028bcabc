"""
Dashboard selector tests.

Verifies:
- Summary cards over every stored facility.
- Sector / category filters narrow every card consistently.
- The selector reads the same through the SQL repository.
"""

import pytest

from clinic_kernel.domain.aggregation import Facility, FacilityFilter, FacilityStats, GroupStats
from clinic_kernel.domain.statuses import FacilityStatus
from clinic_kernel.selectors.dashboard_selector import DashboardSelector
from clinic_kernel.services.sql_repository import SqlAlchemyRepository

FACILITIES = [
    Facility(
        id="F-1", name="North Center", sector="North", category="Dental",
        total_clinics=10, working_clinics=7, out_of_order_clinics=2,
        not_working_clinics=1,
    ),
    Facility(
        id="F-2", name="North Hospital", sector="North", facility_type="Hospital",
        total_clinics=4, working_clinics=4, status=FacilityStatus.INACTIVE.value,
    ),
    Facility(
        id="F-3", name="South Center", sector="South", category="Dental",
        total_clinics=6, working_clinics=3, not_working_clinics=3,
    ),
]


def _seed(repository):
    for facility in FACILITIES:
        repository.save(facility)


@pytest.fixture
def selector(memory_repository):
    _seed(memory_repository)
    return DashboardSelector(memory_repository)


class TestDashboardSummary:
    def test_unfiltered_summary(self, selector):
        summary = selector.summary()

        assert summary.stats == FacilityStats(
            total_clinics=20,
            working_clinics=14,
            not_working_clinics=4,
            out_of_order_clinics=2,
            total_facilities=3,
        )
        assert summary.status_counts == {"active": 2, "inactive": 1}
        assert summary.groups == {
            "North": {
                "Dental": GroupStats(count=1, clinics_sum=10),
                "Hospital": GroupStats(count=1, clinics_sum=4),
            },
            "South": {"Dental": GroupStats(count=1, clinics_sum=6)},
        }

    def test_sector_filter(self, selector):
        summary = selector.summary(FacilityFilter(sector="North"))

        assert summary.stats.total_facilities == 2
        assert summary.stats.total_clinics == 14
        assert set(summary.groups) == {"North"}

    def test_category_filter_uses_facility_type_fallback(self, selector):
        facilities = selector.facilities(FacilityFilter(category="Hospital"))
        assert [f.id for f in facilities] == ["F-2"]

    def test_combined_filter_is_and(self, selector):
        summary = selector.summary(FacilityFilter(sector="South", category="Dental"))
        assert summary.stats.total_facilities == 1
        assert summary.status_counts == {"active": 1, "inactive": 0}

    def test_no_match_gives_zero_cards(self, selector):
        summary = selector.summary(FacilityFilter(sector="West"))
        assert summary.stats == FacilityStats()
        assert summary.groups == {}

    def test_empty_store(self, memory_repository):
        summary = DashboardSelector(memory_repository).summary()
        assert summary.stats.total_facilities == 0
        assert summary.status_counts == {"active": 0, "inactive": 0}


class TestDashboardOnDatabase:
    def test_same_summary_from_sql_repository(self, session, memory_repository):
        repository = SqlAlchemyRepository(session)
        _seed(repository)
        _seed(memory_repository)

        from_db = DashboardSelector(repository).summary()
        from_memory = DashboardSelector(memory_repository).summary()

        assert from_db.stats == from_memory.stats
        assert from_db.status_counts == from_memory.status_counts
        assert from_db.groups == from_memory.groups
