from __future__ import annotations

import pytest

from meeting_attendance.attendance.reconciliation import AttendanceReconciler
from meeting_attendance.attendance.view import AttendanceView, ViewRegistry
from meeting_attendance.core.enums import AttendanceChoice
from meeting_attendance.core.exceptions import ValidationError
from meeting_attendance.meetings.resolver import MeetingResolver
from meeting_attendance.tiers.service import TierService
from tests.fakes import (
    SUNDAY,
    InMemoryAttendanceRepo,
    InMemoryMeetingRepo,
    InMemoryMemberRepo,
    InMemoryOrganizationRepo,
    InMemoryStore,
    InMemoryTierListRepo,
    build_fake_container,
    seed_two_localities,
)


class HookedOrganizationRepo(InMemoryOrganizationRepo):
    """Runs ``hook`` once, in the middle of the first unit lookup."""

    def __init__(self, store, hook=None):
        super().__init__(store)
        self.hook = hook

    def get_unit(self, unit_id):
        unit = super().get_unit(unit_id)
        if self.hook is not None:
            hook, self.hook = self.hook, None
            hook()
        return unit


@pytest.fixture
def store() -> InMemoryStore:
    return seed_two_localities(InMemoryStore())


def test_superseded_load_is_dropped_without_touching_the_session(store):
    organization = HookedOrganizationRepo(store)
    attendance = InMemoryAttendanceRepo(store)
    resolver = MeetingResolver(InMemoryMeetingRepo(store), attendance, organization)
    reconciler = AttendanceReconciler(
        organization,
        InMemoryMemberRepo(store),
        attendance,
        resolver,
        TierService(InMemoryTierListRepo(store)),
    )
    view = AttendanceView(reconciler)
    newer = []
    organization.hook = lambda: newer.append(view.load("south", SUNDAY))

    stale = view.load("north", SUNDAY)

    assert stale is None
    assert newer and newer[0] is not None
    with view.session() as s:
        assert s.view.scope == "south"


def test_edits_made_during_a_load_are_not_overwritten(store):
    organization = HookedOrganizationRepo(store)
    attendance = InMemoryAttendanceRepo(store)
    resolver = MeetingResolver(InMemoryMeetingRepo(store), attendance, organization)
    reconciler = AttendanceReconciler(
        organization,
        InMemoryMemberRepo(store),
        attendance,
        resolver,
        TierService(InMemoryTierListRepo(store)),
    )
    view = AttendanceView(reconciler)
    view.load("north", SUNDAY)

    def edit_while_loading():
        with view.session() as s:
            s.enter_edit()
            s.set_attendance("a1", AttendanceChoice.PRESENT)

    organization.hook = edit_while_loading

    with pytest.raises(ValidationError):
        view.load("south", SUNDAY)

    with view.session() as s:
        assert s.view.scope == "north"
        assert s.dirty_ids() == frozenset({"a1"})


def test_loading_over_unsaved_changes_is_refused(store):
    view = AttendanceView(build_fake_container(store).reconciler)
    view.load("north", SUNDAY)
    with view.session() as s:
        s.enter_edit()
        s.set_attendance("a1", AttendanceChoice.PRESENT)

    with pytest.raises(ValidationError):
        view.load("south", SUNDAY)


def test_session_access_before_any_load_is_refused(store):
    view = AttendanceView(build_fake_container(store).reconciler)

    assert not view.has_session
    with pytest.raises(ValidationError):
        with view.session():
            pass


def test_registry_keeps_one_view_per_operator(store):
    container = build_fake_container(store)
    registry = ViewRegistry(lambda: AttendanceView(container.reconciler))

    assert registry.get("op-a") is registry.get("op-a")
    assert registry.get("op-a") is not registry.get("op-b")
    first = registry.get("op-a")
    registry.drop("op-a")
    assert registry.get("op-a") is not first
