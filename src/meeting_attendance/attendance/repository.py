from __future__ import annotations

from typing import Mapping, Protocol, Sequence

from .model import AttendanceRecord


class AttendanceRepository(Protocol):
    def list_for_meetings(self, meeting_ids: Sequence[str]) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def count_by_meeting(self, meeting_ids: Sequence[str]) -> Mapping[str, int]:
        """Number of records per meeting id; meetings without records may be absent."""

        raise NotImplementedError

    def insert(self, record: AttendanceRecord) -> AttendanceRecord:
        """Persist a new record and return it with its generated id."""

        raise NotImplementedError

    def update(self, record: AttendanceRecord) -> bool:
        """Update meeting, flags and memo of an existing record by id.

        The recorded profile is left untouched except for ``is_local``.
        """

        raise NotImplementedError

    def delete(self, record_id: str) -> bool:
        raise NotImplementedError

    def delete_for_meetings(self, meeting_ids: Sequence[str]) -> int:
        raise NotImplementedError
