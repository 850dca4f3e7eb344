from __future__ import annotations

from datetime import date

import pytest

from meeting_attendance.common.datetime_utils import latest_sunday, parse_iso_date
from meeting_attendance.core.exceptions import ValidationError


@pytest.mark.parametrize(
    "today, expected",
    [
        (date(2026, 10, 18), date(2026, 10, 18)),
        (date(2026, 10, 19), date(2026, 10, 18)),
        (date(2026, 10, 24), date(2026, 10, 18)),
    ],
)
def test_latest_sunday(today, expected):
    assert latest_sunday(today) == expected


def test_parse_iso_date_rejects_garbage():
    assert parse_iso_date("2026-10-18") == date(2026, 10, 18)
    with pytest.raises(ValidationError):
        parse_iso_date("18/10/2026")
