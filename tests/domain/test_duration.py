"""Duration calculator: elapsed intervals, golden formatting and overdue days."""

from datetime import date, datetime, timedelta, timezone

import pytest

from clinic_kernel.domain.duration import (
    Elapsed,
    as_utc,
    compute_elapsed,
    compute_overdue,
    elapsed_days,
    format_elapsed,
)
from clinic_kernel.domain.statuses import (
    ContractStatus,
    ReportStatus,
    TransactionStatus,
)

T0 = datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)


class TestComputeElapsed:
    def test_days_hours_minutes(self):
        end = T0 + timedelta(days=2, hours=3, minutes=15)
        assert compute_elapsed(T0, end) == Elapsed(days=2, hours=3, minutes=15)

    def test_open_interval_measured_to_now(self):
        now = T0 + timedelta(hours=5, minutes=1)
        assert compute_elapsed(T0, None, now=now) == Elapsed(0, 5, 1)

    def test_reversed_interval_is_absolute(self):
        assert compute_elapsed(T0 + timedelta(hours=2), T0) == Elapsed(0, 2, 0)

    def test_partial_minutes_are_dropped(self):
        assert compute_elapsed(T0, T0 + timedelta(seconds=119)) == Elapsed(0, 0, 1)

    def test_accepts_iso_strings_and_naive_values(self):
        assert compute_elapsed("2024-05-01T10:00:00", "2024-05-02T11:30:00+00:00") == Elapsed(1, 1, 30)


class TestFormatElapsed:
    @pytest.mark.parametrize(
        "elapsed,expected",
        [
            (Elapsed(2, 3, 15), "2 يوم 3 ساعة"),
            (Elapsed(0, 3, 15), "3 ساعة 15 دقيقة"),
            (Elapsed(0, 0, 42), "42 دقيقة"),
            (Elapsed(0, 0, 0), "0 دقيقة"),
            (Elapsed(1, 0, 59), "1 يوم 0 ساعة"),
        ],
    )
    def test_golden_output(self, elapsed, expected):
        assert format_elapsed(elapsed) == expected
        assert elapsed.format() == expected


class TestComputeOverdue:
    def test_within_grace_is_zero(self):
        now = T0 + timedelta(days=10)
        assert compute_overdue(T0, TransactionStatus.OPEN.value, now) == 0

    def test_exactly_grace_is_zero(self):
        now = T0 + timedelta(days=21)
        assert compute_overdue(T0, TransactionStatus.OPEN.value, now) == 0

    def test_thirty_one_days_open_is_ten_overdue(self):
        now = T0 + timedelta(days=31)
        assert compute_overdue(T0, TransactionStatus.OPEN.value, now) == 10

    def test_partial_day_rounds_up(self):
        now = T0 + timedelta(days=21, hours=1)
        assert compute_overdue(T0, TransactionStatus.OPEN.value, now) == 1

    @pytest.mark.parametrize(
        "status",
        [
            TransactionStatus.COMPLETED.value,
            TransactionStatus.REJECTED.value,
            ContractStatus.DELIVERED.value,
            ReportStatus.CLOSED.value,
            ReportStatus.PAUSED.value,
        ],
    )
    def test_terminal_statuses_are_never_overdue(self, status):
        assert compute_overdue(T0, status, T0 + timedelta(days=400)) is None

    def test_missing_creation_date(self):
        assert compute_overdue(None, TransactionStatus.OPEN.value, T0) is None

    def test_custom_grace_and_terminal_set(self):
        now = T0 + timedelta(days=10)
        assert compute_overdue(T0, "x", now, grace_days=7, terminal_statuses={"y"}) == 3

    def test_overdue_never_decreases_as_time_passes(self):
        previous = 0
        for day in range(0, 60):
            days = compute_overdue(T0, TransactionStatus.OPEN.value, T0 + timedelta(days=day))
            assert days >= previous
            previous = days


class TestHelpers:
    def test_elapsed_days_ceil(self):
        assert elapsed_days(T0, T0 + timedelta(seconds=1)) == 1
        assert elapsed_days(T0, T0) == 0

    def test_as_utc_date(self):
        assert as_utc(date(2024, 1, 2)) == datetime(2024, 1, 2, tzinfo=timezone.utc)

    def test_as_utc_converts_offsets(self):
        value = datetime(2024, 1, 2, 12, 0, tzinfo=timezone(timedelta(hours=3)))
        assert as_utc(value) == datetime(2024, 1, 2, 9, 0, tzinfo=timezone.utc)

    def test_as_utc_rejects_numbers(self):
        with pytest.raises(TypeError):
            as_utc(12345)
