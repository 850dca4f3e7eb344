from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from typing import Iterable, Mapping, Optional, Sequence

from ..common.validators import require_confirmation, require_non_empty
from ..core.constants import ALL_UNITS, SEARCH_RESULT_LIMIT
from ..core.enums import MeetingKind
from ..core.exceptions import BackingStoreUnavailable, RegistrationFailed, ValidationError
from ..meetings.repository import MeetingRepository
from ..meetings.resolver import MeetingResolver
from ..members.model import Member
from ..members.repository import MemberRepository
from ..organization.model import Unit
from ..organization.repository import OrganizationRepository
from .edit_session import CommitFailure, CommitResult, MemberChange
from .model import AttendanceRecord, RecordedProfile, is_local_member
from .reconciliation import RosterView
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


class AttendanceService:
    """Store-facing attendance operations: commit writes, bulk delete, member search."""

    def __init__(
        self,
        attendance: AttendanceRepository,
        meetings: MeetingRepository,
        members: MemberRepository,
        organization: OrganizationRepository,
        resolver: MeetingResolver,
        *,
        kind: MeetingKind = MeetingKind.MAIN,
    ):
        self._attendance = attendance
        self._meetings = meetings
        self._members = members
        self._organization = organization
        self._resolver = resolver
        self._kind = kind

    # ---------- commit ----------
    def write_changes(
        self,
        view: RosterView,
        changes: Sequence[MemberChange],
        *,
        reported_by: Optional[str] = None,
    ) -> CommitResult:
        """Write dirty members one by one. A failing member is reported, the rest continue."""

        targets = {c.member_id: self._target_unit(view, c) for c in changes}
        needed: dict[str, Unit] = {}
        for change in changes:
            unit = targets[change.member_id]
            if change.after is not None and unit is not None:
                needed.setdefault(unit.unit_id, unit)

        meeting_ids: Mapping[str, str] = {}
        resolve_error: Optional[Exception] = None
        if needed:
            try:
                meeting_ids = self._resolver.resolve_all(
                    view.event_date, list(needed.values()), view.combined_by_locality
                )
            except (BackingStoreUnavailable, RegistrationFailed) as exc:
                logger.warning("Meeting resolution for %s on %s failed: %s", view.scope, view.event_date, exc)
                resolve_error = exc

        written: dict[str, Optional[AttendanceRecord]] = {}
        failures: list[CommitFailure] = []
        for change in changes:
            if resolve_error is not None and change.after is not None:
                failures.append(CommitFailure(member_id=change.member_id, reason=str(resolve_error)))
                continue
            try:
                written[change.member_id] = self._write_one(
                    change, targets[change.member_id], meeting_ids, reported_by=reported_by
                )
            except (BackingStoreUnavailable, RegistrationFailed) as exc:
                logger.warning("Attendance for member %s not saved: %s", change.member_id, exc)
                failures.append(CommitFailure(member_id=change.member_id, reason=str(exc)))

        logger.info(
            "Attendance commit scope=%s date=%s written=%d failed=%d",
            view.scope,
            view.event_date,
            len(written),
            len(failures),
        )
        return CommitResult(written=written, failures=tuple(failures))

    @staticmethod
    def _target_unit(view: RosterView, change: MemberChange) -> Optional[Unit]:
        # The member's own unit wins; otherwise the unit being viewed (guests from elsewhere).
        if change.member is not None and change.member.unit_id:
            own = view.unit(change.member.unit_id)
            if own is not None:
                return own
        if view.is_aggregate:
            return None
        return view.unit(view.scope)

    def _write_one(
        self,
        change: MemberChange,
        unit: Optional[Unit],
        meeting_ids: Mapping[str, str],
        *,
        reported_by: Optional[str],
    ) -> Optional[AttendanceRecord]:
        if change.after is None:
            if change.before is not None and change.before.is_persisted:
                self._attendance.delete(change.before.record_id)
            return None

        record = change.after
        locality_id: Optional[str] = None
        if unit is not None:
            meeting_id = meeting_ids.get(unit.unit_id)
            if meeting_id is None:
                raise RegistrationFailed(f"No meeting could be registered for {unit.name}", unit_id=unit.unit_id)
            locality_id = unit.locality_id
        elif record.is_persisted and record.meeting_id:
            meeting_id = record.meeting_id
        else:
            raise RegistrationFailed(f"No meeting to record member {change.member_id} against")

        record = replace(record, meeting_id=meeting_id, memo=change.memo)

        if record.is_persisted:
            if change.member is not None and locality_id is not None:
                is_local = is_local_member(change.member, locality_id)
                profile = (
                    replace(record.recorded, is_local=is_local)
                    if record.recorded
                    else RecordedProfile.capture(change.member, meeting_locality_id=locality_id)
                )
                record = replace(record, recorded=profile)
            if self._attendance.update(record):
                return record
            logger.warning("Record %s vanished before update, inserting again", record.record_id)

        profile = (
            RecordedProfile.capture(change.member, meeting_locality_id=locality_id)
            if change.member is not None
            else None
        )
        return self._attendance.insert(replace(record, recorded=profile, reported_by=reported_by))

    # ---------- bulk delete ----------
    def delete_all_records_for_resolved_meetings(
        self,
        event_date: date,
        scope: str,
        confirmation: Optional[str],
    ) -> int:
        """Delete every record of the meetings that exist for (date, scope).

        The operator must type the event date (``YYYY-MM-DD``) to confirm.
        Meetings themselves are kept, and none are created.
        """

        scope = require_non_empty(scope, "scope")
        require_confirmation(confirmation, event_date.isoformat())

        if scope == ALL_UNITS:
            meeting_ids = [m.meeting_id for m in self._meetings.list_for_date(event_date=event_date, kind=self._kind)]
        else:
            unit = self._organization.get_unit(scope)
            if unit is None:
                raise ValidationError(f"Unknown unit: {scope}")
            found = self._resolver.lookup(event_date, unit)
            meeting_ids = [found] if found else []

        if not meeting_ids:
            logger.info("No meetings for scope=%s on %s, nothing deleted", scope, event_date)
            return 0

        deleted = self._attendance.delete_for_meetings(meeting_ids)
        logger.info(
            "Deleted %d attendance records from %d meetings (scope=%s date=%s)",
            deleted,
            len(meeting_ids),
            scope,
            event_date,
        )
        return deleted

    # ---------- members ----------
    def search_members(self, query: str, *, exclude_ids: Iterable[str] = ()) -> list[Member]:
        query = require_non_empty(query, "query")
        excluded = set(exclude_ids)
        found = self._members.search_by_name(query, limit=SEARCH_RESULT_LIMIT + len(excluded))
        return [m for m in found if m.member_id not in excluded][:SEARCH_RESULT_LIMIT]

    def get_member(self, member_id: str) -> Member:
        member_id = require_non_empty(member_id, "member_id")
        for member in self._members.get_many([member_id]):
            if member.member_id == member_id:
                return member
        raise ValidationError(f"Unknown member: {member_id}")
