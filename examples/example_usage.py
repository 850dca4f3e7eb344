"""Ví dụ: dùng service layer (không qua Flask).

Loads one unit's roster for the latest Sunday, marks the first member present
and commits.
"""

import importlib
import sys

from meeting_attendance.attendance.edit_session import EditSession
from meeting_attendance.common.datetime_utils import latest_sunday, today_local
from meeting_attendance.config import get_settings_module
from meeting_attendance.container import build_container
from meeting_attendance.core.enums import AttendanceChoice


def main(unit_id: str):
    settings = importlib.import_module(get_settings_module())
    container = build_container(db_config=settings.DB_CONFIG)

    view = container.reconciler.load_roster(unit_id, latest_sunday(today_local()))
    session = EditSession(view)
    if not session.roster:
        print("Roster is empty")
        return

    session.enter_edit()
    session.set_attendance(session.roster[0].member_id, AttendanceChoice.PRESENT)
    result = session.commit(container.attendance_service)
    print(f"written={sorted(result.written)} failures={list(result.failures)}")


if __name__ == "__main__":
    main(sys.argv[1] if len(sys.argv) > 1 else "north")
