"""In-memory edit state for one loaded roster.

All mutations stay in two maps (record-by-member, memo-by-member) until
``commit``. A snapshot taken on ``enter_edit`` is the baseline for the dirty
set and for ``discard``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Mapping, Optional, Protocol, Sequence

from ..core.constants import LEAVE_WARNING
from ..core.enums import AttendanceChoice, EditState
from ..core.exceptions import ConfirmationRequired, EnrollmentBlocked, ValidationError
from ..members.enrollment import EnrollmentFilter, is_enrolled
from ..members.model import Member
from .model import AttendanceRecord
from .reconciliation import RosterView

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EditSnapshot:
    attendance: Mapping[str, AttendanceRecord]
    memos: Mapping[str, str]
    roster: tuple[Member, ...]
    guest_ids: frozenset[str]
    excluded: frozenset[str]


@dataclass(frozen=True)
class MemberChange:
    """One dirty member as handed to the writer. ``after`` None means delete."""

    member_id: str
    member: Optional[Member]
    before: Optional[AttendanceRecord]
    after: Optional[AttendanceRecord]
    memo: Optional[str]


@dataclass(frozen=True)
class CommitFailure:
    member_id: str
    reason: str


@dataclass(frozen=True)
class CommitResult:
    """``written`` maps member id to the stored record, or None when it was deleted."""

    written: Mapping[str, Optional[AttendanceRecord]] = field(default_factory=dict)
    failures: tuple[CommitFailure, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.failures


@dataclass(frozen=True)
class EditSummary:
    attended: int
    absent: int
    online: int
    away: int
    dirty_ids: frozenset[str]


class AttendanceWriter(Protocol):
    def write_changes(
        self, view: RosterView, changes: Sequence[MemberChange], *, reported_by: Optional[str] = None
    ) -> CommitResult:
        raise NotImplementedError


def _fingerprint(record: Optional[AttendanceRecord], memo: Optional[str]):
    if record is None:
        return None
    return (record.attended, record.is_online, record.is_away, memo or None)


class EditSession:
    def __init__(self, view: RosterView, *, enrollment: EnrollmentFilter = is_enrolled):
        self._view = view
        self._enrollment = enrollment
        self._state = EditState.VIEWING

        self._attendance: dict[str, AttendanceRecord] = dict(view.attendance)
        self._memos: dict[str, str] = dict(view.memos)
        self._roster: list[Member] = list(view.roster)
        self._guest_ids: set[str] = set(view.guest_ids)
        self._excluded: set[str] = set()

        self._snapshot: Optional[EditSnapshot] = None
        self._dirty: frozenset[str] = frozenset()

    # ---------- read side ----------
    @property
    def view(self) -> RosterView:
        return self._view

    @property
    def state(self) -> EditState:
        return self._state

    @property
    def attendance(self) -> Mapping[str, AttendanceRecord]:
        return dict(self._attendance)

    @property
    def memos(self) -> Mapping[str, str]:
        return dict(self._memos)

    @property
    def roster(self) -> tuple[Member, ...]:
        return tuple(m for m in self._roster if m.member_id not in self._excluded)

    @property
    def guest_ids(self) -> frozenset[str]:
        return frozenset(self._guest_ids - self._excluded)

    @property
    def snapshot(self) -> Optional[EditSnapshot]:
        return self._snapshot

    def dirty_ids(self) -> frozenset[str]:
        return self._dirty

    def is_dirty(self) -> bool:
        return bool(self._dirty)

    def choice(self, member_id: str) -> AttendanceChoice:
        record = self._attendance.get(member_id)
        return record.choice if record else AttendanceChoice.UNRECORDED

    def summary(self) -> EditSummary:
        records = list(self._attendance.values())
        return EditSummary(
            attended=sum(1 for r in records if r.attended),
            absent=sum(1 for r in records if not r.attended),
            online=sum(1 for r in records if r.attended and r.is_online),
            away=sum(1 for r in records if r.attended and r.is_away),
            dirty_ids=self._dirty,
        )

    def leave_warning(self) -> Optional[str]:
        return LEAVE_WARNING if self._dirty else None

    # ---------- transitions ----------
    def enter_edit(self) -> None:
        if self._state != EditState.VIEWING:
            raise ValidationError(f"Cannot start editing while {self._state.value}")
        self._snapshot = self._take_snapshot()
        self._state = EditState.EDITING
        self._recompute_dirty()

    def discard(self, confirmed: bool = False) -> None:
        self._require_editing()
        if self._dirty and not confirmed:
            raise ConfirmationRequired("Discard unsaved attendance changes?", member_ids=self._dirty)

        self._state = EditState.DISCARDING
        snap = self._snapshot
        self._attendance = dict(snap.attendance)
        self._memos = dict(snap.memos)
        self._roster = list(snap.roster)
        self._guest_ids = set(snap.guest_ids)
        self._excluded = set(snap.excluded)
        self._snapshot = None
        self._dirty = frozenset()
        self._state = EditState.VIEWING
        logger.debug("Edit session for %s on %s discarded", self._view.scope, self._view.event_date)

    def commit(self, writer: AttendanceWriter, *, reported_by: Optional[str] = None) -> CommitResult:
        self._require_editing()
        dirty = self._dirty
        if not dirty:
            self._state = EditState.VIEWING
            return CommitResult()

        snap = self._snapshot
        changes = [
            MemberChange(
                member_id=mid,
                member=self._member(mid),
                before=snap.attendance.get(mid),
                after=self._attendance.get(mid),
                memo=self._memos.get(mid),
            )
            for mid in sorted(dirty)
        ]

        self._state = EditState.COMMITTING
        try:
            result = writer.write_changes(self._view, changes, reported_by=reported_by)
        except Exception:
            self._state = EditState.EDITING
            raise

        baseline_attendance = dict(snap.attendance)
        baseline_memos = dict(snap.memos)
        for mid, stored in result.written.items():
            if stored is None:
                self._attendance.pop(mid, None)
                baseline_attendance.pop(mid, None)
                baseline_memos.pop(mid, None)
                continue
            self._attendance[mid] = stored
            baseline_attendance[mid] = stored
            if mid in self._memos:
                baseline_memos[mid] = self._memos[mid]
            else:
                baseline_memos.pop(mid, None)

        # Failed members keep their old baseline; roster only grows after the snapshot.
        written = set(result.written)
        known = {m.member_id for m in snap.roster}
        excluded = set(snap.excluded) - written
        excluded |= written & self._excluded
        self._snapshot = EditSnapshot(
            attendance=baseline_attendance,
            memos=baseline_memos,
            roster=tuple(m for m in self._roster if m.member_id in known or m.member_id in written),
            guest_ids=frozenset(set(snap.guest_ids) | (written & self._guest_ids)),
            excluded=frozenset(excluded),
        )
        self._state = EditState.VIEWING if result.ok else EditState.EDITING
        self._recompute_dirty()
        logger.info(
            "Committed %d of %d changes for %s on %s",
            len(result.written),
            len(changes),
            self._view.scope,
            self._view.event_date,
        )
        return result

    # ---------- mutations ----------
    def set_attendance(self, member_id: str, choice: AttendanceChoice) -> None:
        self._require_editing()
        self._require_member(member_id)
        choice = AttendanceChoice(choice)

        if choice == AttendanceChoice.UNRECORDED:
            self._attendance.pop(member_id, None)
            self._memos.pop(member_id, None)
        else:
            attended = choice == AttendanceChoice.PRESENT
            current = self._attendance.get(member_id)
            if current is not None:
                self._attendance[member_id] = current.with_attended(attended)
            else:
                self._attendance[member_id] = self._fresh_record(member_id, attended)
        self._excluded.discard(member_id)
        self._recompute_dirty()

    def set_memo(self, member_id: str, memo: Optional[str]) -> None:
        self._require_editing()
        self._require_record(member_id)
        text = (memo or "").strip()
        if text:
            self._memos[member_id] = text
        else:
            self._memos.pop(member_id, None)
        self._recompute_dirty()

    def toggle_online(self, member_id: str) -> None:
        self._require_editing()
        record = self._require_attended(member_id)
        self._attendance[member_id] = replace(record, is_online=not record.is_online)
        self._recompute_dirty()

    def toggle_away(self, member_id: str) -> None:
        self._require_editing()
        record = self._require_attended(member_id)
        self._attendance[member_id] = replace(record, is_away=not record.is_away)
        self._recompute_dirty()

    def add_guest(self, member: Member) -> None:
        """Add a searched member as present. Already recorded or non-enrolled members are refused."""
        self._require_editing()
        if member.member_id in self._attendance:
            raise ValidationError(f"{member.name} is already registered for this meeting")
        if not self._enrollment(member, self._view.event_date):
            raise EnrollmentBlocked(member.member_id)

        if self._member(member.member_id) is None:
            self._roster.append(member)
            self._guest_ids.add(member.member_id)
        self._excluded.discard(member.member_id)
        self._attendance[member.member_id] = self._fresh_record(member.member_id, True)
        self._recompute_dirty()

    def remove(self, member_id: str) -> None:
        self._require_editing()
        self._require_member(member_id)
        self._attendance.pop(member_id, None)
        self._memos.pop(member_id, None)
        self._excluded.add(member_id)
        self._recompute_dirty()

    # ---------- internals ----------
    def _fresh_record(self, member_id: str, attended: bool) -> AttendanceRecord:
        # Re-recording a member that was cleared in this session reuses the stored row.
        previous = self._snapshot.attendance.get(member_id) if self._snapshot else None
        if previous is not None and previous.is_persisted:
            return replace(previous, attended=attended, is_online=False, is_away=False)
        return AttendanceRecord.new(member_id, attended=attended)

    def _take_snapshot(self) -> EditSnapshot:
        return EditSnapshot(
            attendance=dict(self._attendance),
            memos=dict(self._memos),
            roster=tuple(self._roster),
            guest_ids=frozenset(self._guest_ids),
            excluded=frozenset(self._excluded),
        )

    def _recompute_dirty(self) -> None:
        snap = self._snapshot
        if snap is None:
            self._dirty = frozenset()
            return
        ids = set(snap.attendance) | set(self._attendance) | set(snap.memos) | set(self._memos)
        self._dirty = frozenset(
            mid
            for mid in ids
            if _fingerprint(snap.attendance.get(mid), snap.memos.get(mid))
            != _fingerprint(self._attendance.get(mid), self._memos.get(mid))
        )

    def _member(self, member_id: str) -> Optional[Member]:
        for m in self._roster:
            if m.member_id == member_id:
                return m
        return None

    def _require_editing(self) -> None:
        if self._state != EditState.EDITING:
            raise ValidationError("Start editing before changing attendance")

    def _require_member(self, member_id: str) -> Member:
        member = self._member(member_id)
        if member is None:
            raise ValidationError(f"Member {member_id} is not on this roster")
        return member

    def _require_record(self, member_id: str) -> AttendanceRecord:
        self._require_member(member_id)
        record = self._attendance.get(member_id)
        if record is None:
            raise ValidationError("Record attendance before changing this member")
        return record

    def _require_attended(self, member_id: str) -> AttendanceRecord:
        record = self._require_record(member_id)
        if not record.attended:
            raise ValidationError("Online and away apply only to members marked present")
        return record
