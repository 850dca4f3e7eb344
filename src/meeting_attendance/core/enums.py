from __future__ import annotations

from enum import Enum


class MeetingKind(str, Enum):
    """Loại buổi nhóm lưu trong cột meeting_type."""

    MAIN = "main"
    GROUP = "group"


class Tier(str, Enum):
    """Phân loại thành viên trong một đơn vị (danh sách thường xuyên)."""

    REGULAR = "regular"
    SEMI = "semi"
    POOL = "pool"


class AttendanceChoice(str, Enum):
    """Three-way attendance state shown for each roster row."""

    UNRECORDED = "unrecorded"
    PRESENT = "present"
    ABSENT = "absent"


class EditState(str, Enum):
    VIEWING = "viewing"
    EDITING = "editing"
    COMMITTING = "committing"
    DISCARDING = "discarding"


class Category(str, Enum):
    """Age category captured on members and on attendance records."""

    ADULT = "adult"
    UNIVERSITY = "university"
    HIGH_SCHOOL = "high_school"
    JUNIOR_HIGH = "junior_high"
    ELEMENTARY = "elementary"
    PRESCHOOL = "preschool"
