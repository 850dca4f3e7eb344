from __future__ import annotations

from datetime import date
from typing import Callable

from .model import Member

EnrollmentFilter = Callable[[Member, date], bool]


def is_enrolled(member: Member, reference_date: date) -> bool:
    """Whether ``member`` belongs on a roster dated ``reference_date``.

    A member with no enrollment periods is treated as enrolled (join date not set).
    Otherwise any period containing the date is enough.
    """
    if not member.enrollment_periods:
        return True
    return any(p.contains(reference_date) for p in member.enrollment_periods)
