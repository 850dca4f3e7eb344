from __future__ import annotations

from datetime import date

import pytest

from meeting_attendance.members.enrollment import is_enrolled
from meeting_attendance.members.model import EnrollmentPeriod, Member


def _member(*periods: EnrollmentPeriod) -> Member:
    return Member(member_id="m1", name="Member", enrollment_periods=tuple(periods))


def test_member_without_periods_is_enrolled():
    assert is_enrolled(_member(), date(2026, 10, 18))


@pytest.mark.parametrize(
    "day, expected",
    [
        (date(2026, 3, 31), False),
        (date(2026, 4, 1), True),
        (date(2026, 9, 30), True),
        (date(2026, 10, 1), False),
    ],
)
def test_period_bounds_are_inclusive(day, expected):
    member = _member(EnrollmentPeriod(join_date=date(2026, 4, 1), leave_date=date(2026, 9, 30)))

    assert is_enrolled(member, day) is expected


def test_open_ended_period():
    member = _member(EnrollmentPeriod(join_date=date(2025, 1, 1)))

    assert is_enrolled(member, date(2030, 1, 1))
    assert not is_enrolled(member, date(2024, 12, 31))


def test_any_period_is_enough_after_rejoining():
    member = _member(
        EnrollmentPeriod(join_date=date(2020, 1, 1), leave_date=date(2021, 12, 31)),
        EnrollmentPeriod(join_date=date(2024, 1, 1)),
    )

    assert is_enrolled(member, date(2021, 6, 6))
    assert not is_enrolled(member, date(2023, 6, 4))
    assert is_enrolled(member, date(2026, 10, 18))
