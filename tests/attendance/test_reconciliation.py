from __future__ import annotations

import pytest

from meeting_attendance.common.cancellation import LoadTicket
from meeting_attendance.core.constants import ALL_UNITS
from meeting_attendance.core.enums import Tier
from meeting_attendance.core.exceptions import StaleSessionWrite, ValidationError
from meeting_attendance.meetings.model import MeetingKey
from tests.fakes import SUNDAY, InMemoryStore, build_fake_container, seed_two_localities


@pytest.fixture
def store() -> InMemoryStore:
    return seed_two_localities(InMemoryStore())


def test_single_unit_roster_is_enrollment_filtered_and_sorted(store):
    view = build_fake_container(store).reconciler.load_roster("north", SUNDAY)

    assert [m.member_id for m in view.roster] == ["a2", "a1"]
    assert view.attendance == {}
    assert view.guest_ids == frozenset()
    assert view.meeting_ids == {}


def test_records_of_non_roster_members_become_guests(store):
    store.seed_meeting("m-north", MeetingKey.for_unit(SUNDAY, "north"))
    store.seed_record("a1", "m-north")
    store.seed_record("w1", "m-north", memo="visiting")
    store.seed_record("x1", "m-north", attended=False)

    view = build_fake_container(store).reconciler.load_roster("north", SUNDAY)

    assert [m.member_id for m in view.roster][:2] == ["a2", "a1"]
    assert set(m.member_id for m in view.roster) == {"a1", "a2", "w1", "x1"}
    assert view.guest_ids == frozenset({"w1", "x1"})
    assert set(view.attendance) == {"a1", "w1", "x1"}
    assert view.memos == {"w1": "visiting"}


def test_records_pointing_at_unknown_members_are_dropped(store):
    store.seed_meeting("m-north", MeetingKey.for_unit(SUNDAY, "north"))
    store.seed_record("ghost", "m-north")

    view = build_fake_container(store).reconciler.load_roster("north", SUNDAY)

    assert "ghost" not in view.attendance


def test_aggregate_view_unions_all_units(store):
    store.seed_meeting("m-north", MeetingKey.for_unit(SUNDAY, "north"))
    store.seed_meeting("m-west", MeetingKey.for_unit(SUNDAY, "west"))
    store.seed_record("a1", "m-north")
    store.seed_record("w1", "m-west")

    view = build_fake_container(store).reconciler.load_roster(ALL_UNITS, SUNDAY)

    assert view.is_aggregate
    assert {m.member_id for m in view.roster} == {"a1", "a2", "b1", "w1"}
    assert set(view.attendance) == {"a1", "w1"}
    assert view.guest_ids == frozenset()
    assert view.meeting_ids == {"north": "m-north", "west": "m-west"}
    assert {m.member_id: m.unit_id for m in view.roster}["w1"] == "west"


def test_loading_never_creates_meetings(store):
    build_fake_container(store).reconciler.load_roster(ALL_UNITS, SUNDAY)
    build_fake_container(store).reconciler.load_roster("north", SUNDAY)

    assert store.meetings == {}


def test_single_unit_falls_back_to_combined_meeting_records(store):
    store.seed_meeting("m-tokyo", MeetingKey.for_locality(SUNDAY, "tokyo"))
    store.seed_record("a1", "m-tokyo")
    store.seed_record("b1", "m-tokyo")

    view = build_fake_container(store).reconciler.load_roster("north", SUNDAY)

    assert set(view.attendance) == {"a1"}
    assert view.guest_ids == frozenset()


def test_combined_mode_consolidates_locality_roster(store):
    store.modes[(SUNDAY, "tokyo")] = True

    view = build_fake_container(store).reconciler.load_roster("north", SUNDAY)

    assert view.is_combined
    assert {u.unit_id for u in view.units} == {"north", "south"}
    assert {m.member_id for m in view.roster} == {"a1", "a2", "b1"}


def test_tiers_follow_priority_and_cover_guests(store):
    store.tiers[Tier.SEMI].add(("north", "a1"))
    store.tiers[Tier.POOL].add(("north", "a1"))
    store.tiers[Tier.POOL].add(("north", "a2"))
    store.tiers[Tier.REGULAR].add(("west", "w1"))
    store.seed_meeting("m-north", MeetingKey.for_unit(SUNDAY, "north"))
    store.seed_record("w1", "m-north")

    view = build_fake_container(store).reconciler.load_roster("north", SUNDAY)

    assert view.tiers == {"a1": Tier.SEMI, "a2": Tier.POOL, "w1": Tier.REGULAR}


def _seed_units(store: InMemoryStore, count: int) -> None:
    store.add_locality("tokyo")
    for i in range(count):
        unit_id = f"u{i}"
        store.add_unit(unit_id, "tokyo")
        store.seed_meeting(f"m{i}", MeetingKey.for_unit(SUNDAY, unit_id))
        for j in range(3):
            store.add_member(f"{unit_id}-{j}", unit_id)
            store.seed_record(f"{unit_id}-{j}", f"m{i}")


def test_aggregate_load_round_trips_do_not_grow_with_units():
    small, large = InMemoryStore(), InMemoryStore()
    _seed_units(small, 2)
    _seed_units(large, 12)

    build_fake_container(small).reconciler.load_roster(ALL_UNITS, SUNDAY)
    build_fake_container(large).reconciler.load_roster(ALL_UNITS, SUNDAY)

    assert sum(small.calls.values()) == sum(large.calls.values())


def test_unknown_unit_is_rejected(store):
    with pytest.raises(ValidationError):
        build_fake_container(store).reconciler.load_roster("nowhere", SUNDAY)


def test_cancelled_ticket_stops_the_load(store):
    ticket = LoadTicket("north")
    ticket.cancel()

    with pytest.raises(StaleSessionWrite):
        build_fake_container(store).reconciler.load_roster("north", SUNDAY, ticket=ticket)
