from __future__ import annotations

import pytest

from meeting_attendance.attendance.edit_session import EditSession
from meeting_attendance.core.constants import ALL_UNITS, LEAVE_WARNING
from meeting_attendance.core.enums import AttendanceChoice, EditState
from meeting_attendance.core.exceptions import ConfirmationRequired, EnrollmentBlocked, ValidationError
from meeting_attendance.meetings.model import MeetingKey
from tests.fakes import SUNDAY, InMemoryStore, build_fake_container, seed_two_localities

PRESENT = AttendanceChoice.PRESENT
ABSENT = AttendanceChoice.ABSENT
UNRECORDED = AttendanceChoice.UNRECORDED


@pytest.fixture
def store() -> InMemoryStore:
    return seed_two_localities(InMemoryStore())


def _session(store: InMemoryStore, scope: str = "north"):
    container = build_fake_container(store)
    session = EditSession(container.reconciler.load_roster(scope, SUNDAY))
    return container, session


def test_mutations_require_edit_mode(store):
    _, s = _session(store)

    with pytest.raises(ValidationError):
        s.set_attendance("a1", PRESENT)
    assert s.state == EditState.VIEWING


def test_unrecorded_present_unrecorded_is_not_dirty(store):
    _, s = _session(store)
    s.enter_edit()

    s.set_attendance("a2", PRESENT)
    assert s.dirty_ids() == frozenset({"a2"})

    s.set_attendance("a2", UNRECORDED)
    assert s.dirty_ids() == frozenset()
    assert not s.is_dirty()


def test_memo_edit_and_revert(store):
    store.seed_meeting("m-north", MeetingKey.for_unit(SUNDAY, "north"))
    store.seed_record("a1", "m-north", memo="late")
    _, s = _session(store)
    s.enter_edit()

    s.set_memo("a1", "on time")
    assert s.dirty_ids() == frozenset({"a1"})
    s.set_memo("a1", "  late ")
    assert not s.is_dirty()


def test_memo_needs_a_record(store):
    _, s = _session(store)
    s.enter_edit()

    with pytest.raises(ValidationError):
        s.set_memo("a1", "hello")


def test_absent_clears_online_and_away(store):
    _, s = _session(store)
    s.enter_edit()
    s.set_attendance("a1", PRESENT)
    s.toggle_online("a1")
    s.toggle_away("a1")

    s.set_attendance("a1", ABSENT)

    record = s.attendance["a1"]
    assert (record.attended, record.is_online, record.is_away) == (False, False, False)
    with pytest.raises(ValidationError):
        s.toggle_online("a1")


def test_commit_writes_exactly_the_dirty_members():
    store = InMemoryStore()
    store.add_unit("big", "tokyo")
    for i in range(50):
        store.add_member(f"p{i:02d}", "big")
    _, s = _session(store, "big")
    writer = build_fake_container(store).attendance_service
    s.enter_edit()
    s.set_attendance("p07", PRESENT)
    s.set_attendance("p31", ABSENT)

    result = s.commit(writer)

    assert result.ok
    assert sorted(store.writes) == [("insert", "p07"), ("insert", "p31")]
    assert s.state == EditState.VIEWING
    assert not s.is_dirty()
    assert all(r.is_persisted for r in s.attendance.values())


def test_commit_without_changes_writes_nothing(store):
    container, s = _session(store)
    s.enter_edit()

    result = s.commit(container.attendance_service)

    assert result.ok and store.writes == []
    assert store.meetings == {}
    assert s.state == EditState.VIEWING


def test_commit_updates_existing_record_by_id(store):
    store.seed_meeting("m-north", MeetingKey.for_unit(SUNDAY, "north"))
    original = store.seed_record("a1", "m-north")
    container, s = _session(store)
    s.enter_edit()
    s.set_attendance("a1", ABSENT)

    s.commit(container.attendance_service)

    assert store.writes == [("update", "a1")]
    assert store.records[original.record_id].attended is False
    assert s.attendance["a1"].record_id == original.record_id


def test_unrecording_a_persisted_member_deletes_on_commit(store):
    store.seed_meeting("m-north", MeetingKey.for_unit(SUNDAY, "north"))
    original = store.seed_record("a1", "m-north")
    container, s = _session(store)
    s.enter_edit()
    s.set_attendance("a1", UNRECORDED)

    s.commit(container.attendance_service)

    assert store.writes == [("delete", "a1")]
    assert original.record_id not in store.records
    assert "a1" not in s.attendance


def test_rerecording_after_clearing_reuses_the_stored_row(store):
    store.seed_meeting("m-north", MeetingKey.for_unit(SUNDAY, "north"))
    original = store.seed_record("a1", "m-north")
    container, s = _session(store)
    s.enter_edit()
    s.set_attendance("a1", UNRECORDED)
    s.set_attendance("a1", ABSENT)

    s.commit(container.attendance_service)

    assert store.writes == [("update", "a1")]
    assert store.records[original.record_id].attended is False


def test_discard_requires_confirmation_then_restores_snapshot(store):
    store.seed_meeting("m-north", MeetingKey.for_unit(SUNDAY, "north"))
    store.seed_record("a1", "m-north", memo="note")
    _, s = _session(store)
    before_attendance, before_memos, before_roster = s.attendance, s.memos, s.roster
    s.enter_edit()
    s.set_attendance("a2", PRESENT)
    s.set_memo("a1", "changed")
    s.remove("a1")
    s.add_guest(store.members["w1"])

    with pytest.raises(ConfirmationRequired) as excinfo:
        s.discard()
    assert excinfo.value.member_ids == frozenset({"a1", "a2", "w1"})

    s.discard(confirmed=True)

    assert s.attendance == before_attendance
    assert s.memos == before_memos
    assert s.roster == before_roster
    assert s.guest_ids == frozenset()
    assert s.snapshot is None
    assert s.state == EditState.VIEWING
    assert store.writes == []


def test_discard_of_clean_session_needs_no_confirmation(store):
    _, s = _session(store)
    s.enter_edit()

    s.discard()

    assert s.state == EditState.VIEWING


def test_add_guest_rules(store):
    store.add_member("gone", "west", name="Gone", enrollment_periods=store.members["x1"].enrollment_periods)
    _, s = _session(store)
    s.enter_edit()
    s.set_attendance("a1", PRESENT)

    with pytest.raises(ValidationError):
        s.add_guest(store.members["a1"])
    with pytest.raises(EnrollmentBlocked):
        s.add_guest(store.members["gone"])

    s.add_guest(store.members["w1"])
    assert "w1" in s.guest_ids
    assert s.choice("w1") == PRESENT


def test_guest_from_other_locality_is_written_to_viewed_unit_and_not_local(store):
    container, s = _session(store)
    s.enter_edit()
    s.add_guest(store.members["w1"])
    s.set_attendance("a2", PRESENT)

    s.commit(container.attendance_service, reported_by="op-1")

    north_meeting = store.meetings_for(MeetingKey.for_unit(SUNDAY, "north"))[0].meeting_id
    by_member = {r.member_id: r for r in store.records.values()}
    assert by_member["w1"].meeting_id == north_meeting
    assert by_member["w1"].recorded.is_local is False
    assert by_member["a2"].recorded.is_local is True
    assert by_member["a2"].reported_by == "op-1"


def test_aggregate_combined_commit_routes_to_each_members_unit(store):
    store.modes[(SUNDAY, "tokyo")] = True
    container, s = _session(store, ALL_UNITS)
    s.enter_edit()
    s.set_attendance("a1", PRESENT)
    s.set_attendance("b1", PRESENT)

    s.commit(container.attendance_service)

    north = store.meetings_for(MeetingKey.for_unit(SUNDAY, "north"))[0].meeting_id
    south = store.meetings_for(MeetingKey.for_unit(SUNDAY, "south"))[0].meeting_id
    combined = store.meetings_for(MeetingKey.for_locality(SUNDAY, "tokyo"))
    by_member = {r.member_id: r.meeting_id for r in store.records.values()}
    assert by_member == {"a1": north, "b1": south}
    assert len(combined) == 1
    assert combined[0].meeting_id not in by_member.values()


def test_failed_members_stay_dirty_and_session_stays_editing(store):
    store.failing_meeting_units.add("south")
    container, s = _session(store, ALL_UNITS)
    s.enter_edit()
    s.set_attendance("a1", PRESENT)
    s.set_attendance("b1", PRESENT)

    result = s.commit(container.attendance_service)

    assert not result.ok
    assert [f.member_id for f in result.failures] == ["b1"]
    assert set(result.written) == {"a1"}
    assert s.state == EditState.EDITING
    assert s.dirty_ids() == frozenset({"b1"})

    store.failing_meeting_units.clear()
    retry = s.commit(container.attendance_service)
    assert retry.ok
    assert s.state == EditState.VIEWING
    assert [w for w in store.writes if w[1] == "a1"] == [("insert", "a1")]


def test_store_outage_during_commit_fails_every_member(store):
    container, s = _session(store)
    s.enter_edit()
    s.set_attendance("a1", PRESENT)
    store.unavailable = True

    result = s.commit(container.attendance_service)

    assert [f.member_id for f in result.failures] == ["a1"]
    assert s.dirty_ids() == frozenset({"a1"})


def test_failed_remove_then_discard_restores_the_member(store):
    store.seed_meeting("m-north", MeetingKey.for_unit(SUNDAY, "north"))
    original = store.seed_record("a1", "m-north")
    container, s = _session(store)
    s.enter_edit()
    s.remove("a1")
    store.unavailable = True

    result = s.commit(container.attendance_service)
    assert [f.member_id for f in result.failures] == ["a1"]

    store.unavailable = False
    s.discard(confirmed=True)

    assert s.attendance["a1"].record_id == original.record_id
    assert "a1" in {m.member_id for m in s.roster}


def test_partial_commit_advances_only_written_members(store):
    store.seed_meeting("m-north", MeetingKey.for_unit(SUNDAY, "north"))
    store.seed_record("a1", "m-north")
    store.failing_meeting_units.add("south")
    container, s = _session(store, ALL_UNITS)
    s.enter_edit()
    s.remove("a1")
    s.set_attendance("b1", PRESENT)

    result = s.commit(container.attendance_service)
    assert set(result.written) == {"a1"}
    assert [f.member_id for f in result.failures] == ["b1"]

    s.discard(confirmed=True)

    assert "a1" not in s.attendance
    assert "a1" not in {m.member_id for m in s.roster}
    assert "b1" in {m.member_id for m in s.roster}
    assert s.choice("b1") == UNRECORDED


def test_summary_and_leave_warning(store):
    _, s = _session(store)
    s.enter_edit()
    assert s.leave_warning() is None

    s.set_attendance("a1", PRESENT)
    s.toggle_online("a1")
    s.set_attendance("a2", ABSENT)

    summary = s.summary()
    assert (summary.attended, summary.absent, summary.online, summary.away) == (1, 1, 1, 0)
    assert summary.dirty_ids == frozenset({"a1", "a2"})
    assert s.leave_warning() == LEAVE_WARNING
