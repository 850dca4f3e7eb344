from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

from ..core.constants import NEW_RECORD_ID
from ..core.enums import AttendanceChoice, Category
from ..members.model import Member


@dataclass(frozen=True)
class RecordedProfile:
    """Ảnh chụp hồ sơ thành viên tại thời điểm ghi nhận (phục vụ báo cáo lịch sử).

    Captured once when the record is inserted; later profile edits on the
    member never flow back into it.
    """

    category: Optional[Category]
    is_baptized: bool
    unit_id: Optional[str]
    group_id: Optional[str]
    is_local: bool

    @classmethod
    def capture(cls, member: Member, *, meeting_locality_id: Optional[str]) -> "RecordedProfile":
        return cls(
            category=member.age_group,
            is_baptized=member.is_baptized,
            unit_id=member.unit_id,
            group_id=member.group_id,
            is_local=is_local_member(member, meeting_locality_id),
        )


def is_local_member(member: Member, meeting_locality_id: Optional[str]) -> bool:
    return member.locality_id is not None and meeting_locality_id is not None and member.locality_id == meeting_locality_id


@dataclass(frozen=True)
class AttendanceRecord:
    """Thực thể miền (domain): Bản ghi điểm danh của một thành viên cho một buổi nhóm."""

    record_id: str
    member_id: str
    meeting_id: str = ""
    attended: bool = True
    is_online: bool = False
    is_away: bool = False
    memo: Optional[str] = None
    recorded: Optional[RecordedProfile] = None
    reported_by: Optional[str] = None

    @classmethod
    def new(cls, member_id: str, *, attended: bool = True) -> "AttendanceRecord":
        return cls(record_id=NEW_RECORD_ID, member_id=member_id, attended=attended)

    @property
    def is_persisted(self) -> bool:
        return self.record_id != NEW_RECORD_ID

    @property
    def choice(self) -> AttendanceChoice:
        return AttendanceChoice.PRESENT if self.attended else AttendanceChoice.ABSENT

    def with_attended(self, attended: bool) -> "AttendanceRecord":
        # online/away only make sense for someone who attended
        return replace(
            self,
            attended=attended,
            is_online=self.is_online if attended else False,
            is_away=self.is_away if attended else False,
        )
