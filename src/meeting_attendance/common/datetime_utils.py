from __future__ import annotations

from datetime import date, datetime, timedelta

from ..core.exceptions import ValidationError


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    try:
        return datetime.strptime((value or "").strip(), "%Y-%m-%d").date()
    except ValueError as exc:
        raise ValidationError(f"Invalid date: {value!r} (expected YYYY-MM-DD)") from exc


def today_local() -> date:
    """Current local date.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return date.today()


def latest_sunday(today: date) -> date:
    """Most recent Sunday on or before ``today``."""
    # date.weekday(): Monday=0 ... Sunday=6
    return today - timedelta(days=(today.weekday() + 1) % 7)
