from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from ..core.enums import Category


@dataclass(frozen=True)
class EnrollmentPeriod:
    """Khoảng thời gian thành viên thuộc địa phương. Hai đầu đều tính (inclusive)."""

    join_date: Optional[date] = None
    leave_date: Optional[date] = None

    def contains(self, day: date) -> bool:
        if self.join_date and day < self.join_date:
            return False
        if self.leave_date and day > self.leave_date:
            return False
        return True


@dataclass(frozen=True)
class Member:
    """Thực thể miền (domain): Thành viên trong danh sách."""

    member_id: str
    name: str
    furigana: Optional[str] = None
    is_baptized: bool = False
    unit_id: Optional[str] = None
    group_id: Optional[str] = None
    locality_id: Optional[str] = None
    age_group: Optional[Category] = None
    enrollment_periods: tuple[EnrollmentPeriod, ...] = ()

    @property
    def sort_key(self) -> str:
        return self.furigana or self.name
