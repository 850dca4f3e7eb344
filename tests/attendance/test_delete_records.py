from __future__ import annotations

from datetime import timedelta

import pytest

from meeting_attendance.core.constants import ALL_UNITS
from meeting_attendance.core.exceptions import ValidationError
from meeting_attendance.meetings.model import MeetingKey
from tests.fakes import SUNDAY, InMemoryStore, build_fake_container, seed_two_localities

NEXT_SUNDAY = SUNDAY + timedelta(days=7)


@pytest.fixture
def store() -> InMemoryStore:
    s = seed_two_localities(InMemoryStore())
    s.seed_meeting("m-north", MeetingKey.for_unit(SUNDAY, "north"))
    s.seed_meeting("m-south", MeetingKey.for_unit(SUNDAY, "south"))
    s.seed_meeting("m-tokyo", MeetingKey.for_locality(SUNDAY, "tokyo"))
    s.seed_meeting("m-north-next", MeetingKey.for_unit(NEXT_SUNDAY, "north"))
    s.seed_record("a1", "m-north")
    s.seed_record("a2", "m-north")
    s.seed_record("b1", "m-south")
    s.seed_record("b1", "m-tokyo")
    s.seed_record("a1", "m-north-next")
    return s


def _remaining(store):
    return sorted(r.meeting_id for r in store.records.values())


def test_wrong_confirmation_deletes_nothing(store):
    service = build_fake_container(store).attendance_service

    with pytest.raises(ValidationError):
        service.delete_all_records_for_resolved_meetings(SUNDAY, "north", "yes")
    with pytest.raises(ValidationError):
        service.delete_all_records_for_resolved_meetings(SUNDAY, "north", None)
    assert len(store.records) == 5


def test_single_unit_deletes_only_its_meeting(store):
    service = build_fake_container(store).attendance_service

    deleted = service.delete_all_records_for_resolved_meetings(SUNDAY, "north", "2026-10-18")

    assert deleted == 2
    assert _remaining(store) == ["m-north-next", "m-south", "m-tokyo"]
    assert "m-north" in store.meetings


def test_aggregate_deletes_every_meeting_of_the_date(store):
    service = build_fake_container(store).attendance_service

    deleted = service.delete_all_records_for_resolved_meetings(SUNDAY, ALL_UNITS, " 2026-10-18 ")

    assert deleted == 4
    assert _remaining(store) == ["m-north-next"]


def test_unit_without_meeting_deletes_nothing_and_creates_nothing(store):
    service = build_fake_container(store).attendance_service
    meetings_before = dict(store.meetings)

    assert service.delete_all_records_for_resolved_meetings(SUNDAY, "west", "2026-10-18") == 0
    assert store.meetings == meetings_before
