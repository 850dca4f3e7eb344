from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date
from typing import Iterable, Mapping, Optional, Sequence

from ..attendance.model import AttendanceRecord
from ..attendance.repository import AttendanceRepository
from ..common.cancellation import LoadTicket, checkpoint
from ..core.constants import ALL_UNITS
from ..core.enums import MeetingKind
from ..core.exceptions import BackingStoreUnavailable, RegistrationFailed
from ..organization.model import Unit
from ..organization.repository import OrganizationRepository
from .model import DuplicateMeetingGroup, InsertOutcome, Meeting, MeetingKey
from .repository import MeetingRepository

logger = logging.getLogger(__name__)


def unit_meeting_name(unit: Unit) -> str:
    return f"{unit.name} District Meeting"


def locality_meeting_name(locality_name: str) -> str:
    return f"{locality_name} Combined Meeting".strip()


class MeetingResolver:
    """Maps (date, unit) to a single meeting id.

    Read paths (``lookup``/``lookup_all``/``probe_records``) never create rows.
    Write paths (``resolve``/``resolve_all``) create what is missing and absorb
    the unique-key race with a concurrent writer.

    When several rows share one natural key the one with the most attendance
    records wins; ties go to the lowest id so every caller picks the same row.
    """

    def __init__(
        self,
        meetings: MeetingRepository,
        attendance: AttendanceRepository,
        organization: OrganizationRepository,
        *,
        kind: MeetingKind = MeetingKind.MAIN,
    ):
        self._meetings = meetings
        self._attendance = attendance
        self._organization = organization
        self._kind = kind

    # ---------- get-or-create ----------
    def insert_or_fetch(self, key: MeetingKey, *, name: str) -> InsertOutcome:
        try:
            created = self._meetings.insert(key, name=name)
            if created is not None:
                logger.info("Meeting created id=%s key=%s", created.meeting_id, key)
                return InsertOutcome(meeting_id=created.meeting_id, created=True)

            # Someone else inserted the same key between our read and our write.
            survivors = self._meetings.find(key)
        except BackingStoreUnavailable as exc:
            logger.warning("Meeting registration failed for %s: %s", key, exc)
            raise RegistrationFailed("Could not register the meeting, please retry", unit_id=key.unit_id) from exc

        if not survivors:
            raise RegistrationFailed(
                "Meeting insert conflicted but no row was found afterwards", unit_id=key.unit_id
            )
        chosen = self._choose(key, survivors)
        logger.info("Meeting creation race resolved key=%s id=%s", key, chosen)
        return InsertOutcome(meeting_id=chosen, created=False)

    # ---------- read-only lookups ----------
    def lookup(self, event_date: date, unit: Unit) -> Optional[str]:
        key = MeetingKey.for_unit(event_date, unit.unit_id, self._kind)
        candidates = self._meetings.find(key)
        if not candidates:
            return None
        return self._choose(key, candidates)

    def lookup_all(self, event_date: date, units: Sequence[Unit]) -> dict[str, str]:
        """Batch lookup: one query for the meetings, at most one more for counts."""

        unit_ids = [u.unit_id for u in units if u.unit_id != ALL_UNITS]
        if not unit_ids:
            return {}

        rows = self._meetings.find_for_units(event_date=event_date, kind=self._kind, unit_ids=unit_ids)
        by_unit: dict[str, list[Meeting]] = defaultdict(list)
        for meeting in rows:
            by_unit[meeting.unit_id].append(meeting)

        duplicated = [m.meeting_id for ms in by_unit.values() if len(ms) > 1 for m in ms]
        counts = self._attendance.count_by_meeting(duplicated) if duplicated else {}

        result: dict[str, str] = {}
        for unit_id in unit_ids:
            candidates = by_unit.get(unit_id)
            if not candidates:
                continue
            if len(candidates) == 1:
                result[unit_id] = candidates[0].meeting_id
            else:
                key = MeetingKey.for_unit(event_date, unit_id, self._kind)
                result[unit_id] = self._collapse(key, candidates, counts).chosen_id
        return result

    def find_locality_meeting(self, event_date: date, locality_id: str) -> Optional[str]:
        key = MeetingKey.for_locality(event_date, locality_id, self._kind)
        candidates = self._meetings.find(key)
        if not candidates:
            return None
        return self._choose(key, candidates)

    # ---------- resolve (creates) ----------
    def resolve(self, event_date: date, unit: Unit, combined: bool = False) -> str:
        if combined:
            self._ensure_locality_meeting_quietly(event_date, unit.locality_id)

        existing = self.lookup(event_date, unit)
        if existing is not None:
            return existing
        key = MeetingKey.for_unit(event_date, unit.unit_id, self._kind)
        return self.insert_or_fetch(key, name=unit_meeting_name(unit)).meeting_id

    def resolve_all(
        self,
        event_date: date,
        units: Sequence[Unit],
        combined_by_locality: Optional[Mapping[str, bool]] = None,
    ) -> dict[str, str]:
        """Resolve a meeting for every unit.

        Units whose meeting could not be registered are left out of the result
        (and logged); callers treat a missing unit as a failed registration.
        """

        units = [u for u in units if u.unit_id != ALL_UNITS]
        if not units:
            return {}

        combined_by_locality = combined_by_locality or {}
        for locality_id in sorted({u.locality_id for u in units if combined_by_locality.get(u.locality_id)}):
            self._ensure_locality_meeting_quietly(event_date, locality_id)

        result = self.lookup_all(event_date, units)
        for unit in units:
            if unit.unit_id in result:
                continue
            key = MeetingKey.for_unit(event_date, unit.unit_id, self._kind)
            try:
                result[unit.unit_id] = self.insert_or_fetch(key, name=unit_meeting_name(unit)).meeting_id
            except RegistrationFailed as exc:
                logger.warning("Unit %s has no meeting for %s: %s", unit.unit_id, event_date, exc)
        return result

    def ensure_locality_meeting(self, event_date: date, locality_id: str) -> str:
        existing = self.find_locality_meeting(event_date, locality_id)
        if existing is not None:
            return existing
        key = MeetingKey.for_locality(event_date, locality_id, self._kind)
        return self.insert_or_fetch(key, name=locality_meeting_name(self._locality_name(locality_id))).meeting_id

    def _ensure_locality_meeting_quietly(self, event_date: date, locality_id: str) -> None:
        try:
            self.ensure_locality_meeting(event_date, locality_id)
        except (RegistrationFailed, BackingStoreUnavailable) as exc:
            logger.warning("Combined meeting for locality %s on %s not ensured: %s", locality_id, event_date, exc)

    # ---------- fallback probes ----------
    def probe_records(
        self,
        event_date: date,
        unit: Unit,
        meeting_id: Optional[str],
        roster_member_ids: Iterable[str],
        *,
        ticket: Optional[LoadTicket] = None,
    ) -> list[AttendanceRecord]:
        """Attendance for a single unit, following where it may actually have been recorded.

        Order: the resolved meeting, the unit's meeting found by direct key,
        then the locality-wide meeting restricted to the unit's roster.
        """

        if meeting_id:
            records = list(self._attendance.list_for_meetings([meeting_id]))
            checkpoint(ticket)
            if records:
                return records

            direct = self._meetings.find_one(MeetingKey.for_unit(event_date, unit.unit_id, self._kind))
            checkpoint(ticket)
            if direct is not None and direct.meeting_id != meeting_id:
                records = list(self._attendance.list_for_meetings([direct.meeting_id]))
                checkpoint(ticket)
                if records:
                    logger.debug("Records for unit %s found on meeting %s", unit.unit_id, direct.meeting_id)
                    return records

        locality_meeting = self._meetings.find_one(MeetingKey.for_locality(event_date, unit.locality_id, self._kind))
        checkpoint(ticket)
        if locality_meeting is None:
            return []

        roster = set(roster_member_ids)
        records = self._attendance.list_for_meetings([locality_meeting.meeting_id])
        checkpoint(ticket)
        matched = [r for r in records if r.member_id in roster]
        if matched:
            logger.debug(
                "Using %d records of combined meeting %s for unit %s",
                len(matched),
                locality_meeting.meeting_id,
                unit.unit_id,
            )
        return matched

    # ---------- duplicates ----------
    def find_duplicate_groups(self) -> list[DuplicateMeetingGroup]:
        grouped: dict[MeetingKey, list[Meeting]] = defaultdict(list)
        for meeting in self._meetings.list_all(kind=self._kind):
            grouped[meeting.key].append(meeting)

        duplicates = {k: ms for k, ms in grouped.items() if len(ms) > 1}
        if not duplicates:
            return []

        counts = self._attendance.count_by_meeting([m.meeting_id for ms in duplicates.values() for m in ms])
        groups = [self._collapse(k, ms, counts, log=False) for k, ms in duplicates.items()]
        groups.sort(key=lambda g: (g.key.event_date, g.key.unit_id or "", g.key.locality_id or ""), reverse=True)
        return groups

    def _choose(self, key: MeetingKey, candidates: Sequence[Meeting]) -> str:
        if len(candidates) == 1:
            return candidates[0].meeting_id
        counts = self._attendance.count_by_meeting([m.meeting_id for m in candidates])
        return self._collapse(key, candidates, counts).chosen_id

    @staticmethod
    def _collapse(
        key: MeetingKey,
        candidates: Sequence[Meeting],
        counts: Mapping[str, int],
        *,
        log: bool = True,
    ) -> DuplicateMeetingGroup:
        ids = tuple(sorted(m.meeting_id for m in candidates))
        chosen = min(ids, key=lambda mid: (-counts.get(mid, 0), mid))
        group = DuplicateMeetingGroup(
            key=key,
            meeting_ids=ids,
            attendance_counts={mid: counts.get(mid, 0) for mid in ids},
            chosen_id=chosen,
        )
        if log:
            logger.warning(
                "Duplicate meetings for %s: %s, using %s",
                key,
                dict(group.attendance_counts),
                chosen,
            )
        return group

    def _locality_name(self, locality_id: str) -> str:
        for locality in self._organization.get_localities([locality_id]):
            if locality.locality_id == locality_id:
                return locality.name
        return locality_id
