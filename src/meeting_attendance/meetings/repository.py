from __future__ import annotations

from datetime import date
from typing import Mapping, Optional, Protocol, Sequence

from ..core.enums import MeetingKind
from .model import Meeting, MeetingKey


class MeetingRepository(Protocol):
    def find(self, key: MeetingKey) -> Sequence[Meeting]:
        """All meetings matching the key. More than one row means duplicates."""

        raise NotImplementedError

    def find_one(self, key: MeetingKey) -> Optional[Meeting]:
        """Point lookup used as a fallback probe; returns the oldest match if several."""

        raise NotImplementedError

    def find_for_units(self, *, event_date: date, kind: MeetingKind, unit_ids: Sequence[str]) -> Sequence[Meeting]:
        raise NotImplementedError

    def insert(self, key: MeetingKey, *, name: str) -> Optional[Meeting]:
        """Create a meeting for ``key``.

        Returns None when the store's unique key for ``key`` already exists
        (another caller created it first). Any other failure raises.
        """

        raise NotImplementedError

    def list_for_date(self, *, event_date: date, kind: MeetingKind) -> Sequence[Meeting]:
        raise NotImplementedError

    def list_all(self, *, kind: Optional[MeetingKind] = None) -> Sequence[Meeting]:
        raise NotImplementedError


class MeetingModeRepository(Protocol):
    def get_modes(self, *, event_date: date, locality_ids: Sequence[str]) -> Mapping[str, bool]:
        """Stored combined-mode flags; localities without a row are absent."""

        raise NotImplementedError

    def upsert(self, *, event_date: date, locality_id: str, is_combined: bool) -> None:
        raise NotImplementedError
