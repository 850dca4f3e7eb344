from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Mapping, Optional

from ..core.enums import MeetingKind
from ..core.exceptions import ValidationError


@dataclass(frozen=True)
class MeetingKey:
    """Natural key of a meeting: either per unit or locality-wide, never both."""

    event_date: date
    kind: MeetingKind
    unit_id: Optional[str] = None
    locality_id: Optional[str] = None

    def __post_init__(self):
        if (self.unit_id is None) == (self.locality_id is None):
            raise ValidationError("A meeting key needs exactly one of unit_id or locality_id")

    @classmethod
    def for_unit(cls, event_date: date, unit_id: str, kind: MeetingKind = MeetingKind.MAIN) -> "MeetingKey":
        return cls(event_date=event_date, kind=kind, unit_id=unit_id)

    @classmethod
    def for_locality(cls, event_date: date, locality_id: str, kind: MeetingKind = MeetingKind.MAIN) -> "MeetingKey":
        return cls(event_date=event_date, kind=kind, locality_id=locality_id)


@dataclass(frozen=True)
class Meeting:
    """Thực thể miền (domain): Một buổi nhóm vào một ngày cụ thể."""

    meeting_id: str
    event_date: date
    kind: MeetingKind
    unit_id: Optional[str]
    locality_id: Optional[str]
    name: str

    @property
    def key(self) -> MeetingKey:
        return MeetingKey(
            event_date=self.event_date,
            kind=self.kind,
            unit_id=self.unit_id,
            locality_id=None if self.unit_id else self.locality_id,
        )


@dataclass(frozen=True)
class InsertOutcome:
    """Result of get-or-create. ``created`` is False when a concurrent caller won the race."""

    meeting_id: str
    created: bool


@dataclass(frozen=True)
class DuplicateMeetingGroup:
    """Several meetings sharing one natural key, with the one chosen as authoritative."""

    key: MeetingKey
    meeting_ids: tuple[str, ...]
    attendance_counts: Mapping[str, int]
    chosen_id: str
