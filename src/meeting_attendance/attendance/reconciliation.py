"""Merge roster, enrollment, meeting identity and attendance into one view."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Mapping, Optional, Sequence

from ..common.cancellation import LoadTicket, checkpoint
from ..common.validators import require_non_empty
from ..core.constants import ALL_UNITS
from ..core.enums import Tier
from ..core.exceptions import ValidationError
from ..meetings.resolver import MeetingResolver
from ..meetings.service import MeetingService
from ..members.enrollment import EnrollmentFilter, is_enrolled
from ..members.model import Member
from ..members.repository import MemberRepository
from ..organization.model import Unit
from ..organization.repository import OrganizationRepository
from ..tiers.service import TierService
from .model import AttendanceRecord
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RosterView:
    """Everything the attendance screen shows for one (scope, date).

    ``roster`` lists enrolled members of the scope first, then guests.
    ``meeting_ids`` holds the meetings found at load time; units without a
    meeting yet are simply absent (they are created on the first commit).
    """

    event_date: date
    scope: str
    units: tuple[Unit, ...]
    meeting_ids: Mapping[str, str]
    roster: tuple[Member, ...]
    attendance: Mapping[str, AttendanceRecord]
    memos: Mapping[str, str]
    guest_ids: frozenset[str]
    tiers: Mapping[str, Tier]
    combined_by_locality: Mapping[str, bool] = field(default_factory=dict)

    @property
    def is_aggregate(self) -> bool:
        return self.scope == ALL_UNITS

    @property
    def is_combined(self) -> bool:
        if self.is_aggregate:
            return False
        unit = self.unit(self.scope)
        return bool(unit and self.combined_by_locality.get(unit.locality_id))

    def unit(self, unit_id: Optional[str]) -> Optional[Unit]:
        for u in self.units:
            if u.unit_id == unit_id:
                return u
        return None

    def member(self, member_id: str) -> Optional[Member]:
        for m in self.roster:
            if m.member_id == member_id:
                return m
        return None


class AttendanceReconciler:
    def __init__(
        self,
        organization: OrganizationRepository,
        members: MemberRepository,
        attendance: AttendanceRepository,
        resolver: MeetingResolver,
        tiers: TierService,
        *,
        modes: Optional[MeetingService] = None,
        enrollment: EnrollmentFilter = is_enrolled,
    ):
        self._organization = organization
        self._modes = modes
        self._members = members
        self._attendance = attendance
        self._resolver = resolver
        self._tiers = tiers
        self._enrollment = enrollment

    def load_roster(
        self,
        scope: str,
        event_date: date,
        *,
        combined_modes: Optional[Mapping[str, bool]] = None,
        ticket: Optional[LoadTicket] = None,
    ) -> RosterView:
        """Build the view for a unit id or ``ALL_UNITS``.

        Combined-mode flags are read from the store unless ``combined_modes``
        is given. Never creates meetings. Raises ``StaleSessionWrite`` as soon as
        ``ticket`` is cancelled.
        """

        scope = require_non_empty(scope, "scope")
        focus: Optional[Unit] = None
        if scope == ALL_UNITS:
            units = list(self._organization.list_units())
            checkpoint(ticket)
            combined_modes = self._combined_modes(event_date, [u.locality_id for u in units], combined_modes, ticket)
        else:
            focus = self._organization.get_unit(scope)
            checkpoint(ticket)
            if focus is None:
                raise ValidationError(f"Unknown unit: {scope}")
            combined_modes = self._combined_modes(event_date, [focus.locality_id], combined_modes, ticket)
            if combined_modes.get(focus.locality_id):
                units = list(self._organization.list_units(locality_id=focus.locality_id))
                checkpoint(ticket)
                if focus.unit_id not in {u.unit_id for u in units}:
                    units.insert(0, focus)
            else:
                units = [focus]

        meeting_ids = self._resolver.lookup_all(event_date, units)
        checkpoint(ticket)

        unit_members = self._members.list_for_units([u.unit_id for u in units]) if units else []
        checkpoint(ticket)
        roster = [m for m in unit_members if self._enrollment(m, event_date)]
        roster_ids = {m.member_id for m in roster}

        if focus is not None and len(units) == 1:
            records = self._resolver.probe_records(
                event_date, focus, meeting_ids.get(focus.unit_id), roster_ids, ticket=ticket
            )
        else:
            records = list(self._attendance.list_for_meetings(list(meeting_ids.values())))
            checkpoint(ticket)

        by_member: dict[str, AttendanceRecord] = {}
        for record in records:
            if record.member_id in by_member:
                logger.warning(
                    "Member %s has several records on %s, keeping %s",
                    record.member_id,
                    event_date,
                    by_member[record.member_id].record_id,
                )
                continue
            by_member[record.member_id] = record

        guest_ids = [mid for mid in by_member if mid not in roster_ids]
        guests: Sequence[Member] = []
        if guest_ids:
            guests = self._members.get_many(guest_ids)
            checkpoint(ticket)
        known_guests = {g.member_id for g in guests}
        for orphan in set(guest_ids) - known_guests:
            logger.warning("Record %s points at unknown member %s", by_member[orphan].record_id, orphan)
            del by_member[orphan]

        full_roster = sorted(roster, key=lambda m: m.sort_key) + sorted(guests, key=lambda m: m.sort_key)

        tier_index = self._tiers.load_index([m.unit_id for m in full_roster if m.unit_id])
        checkpoint(ticket)

        logger.debug(
            "Loaded scope=%s date=%s members=%d records=%d guests=%d",
            scope,
            event_date,
            len(full_roster),
            len(by_member),
            len(known_guests),
        )
        return RosterView(
            event_date=event_date,
            scope=scope,
            units=tuple(units),
            meeting_ids=dict(meeting_ids),
            roster=tuple(full_roster),
            attendance=by_member,
            memos={mid: r.memo for mid, r in by_member.items() if r.memo},
            guest_ids=frozenset(known_guests),
            tiers=tier_index.tier_map(full_roster),
            combined_by_locality=combined_modes,
        )

    def _combined_modes(
        self,
        event_date: date,
        locality_ids: Sequence[str],
        given: Optional[Mapping[str, bool]],
        ticket: Optional[LoadTicket],
    ) -> dict[str, bool]:
        if given is not None:
            return dict(given)
        if self._modes is None:
            return {}
        modes = self._modes.get_combined_modes(event_date, locality_ids)
        checkpoint(ticket)
        return modes
