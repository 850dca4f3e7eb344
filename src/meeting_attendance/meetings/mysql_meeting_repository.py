from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Mapping, Optional, Sequence

from mysql.connector import errors as mysql_errors

from ..core.enums import MeetingKind
from ..core.exceptions import RegistrationFailed
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_bool, db_cursor, fetchall, fetchone, in_clause, is_unique_violation
from .model import Meeting, MeetingKey
from .repository import MeetingModeRepository, MeetingRepository

logger = logging.getLogger(__name__)

_COLUMNS = "id, event_date, meeting_type, unit_id, locality_id, name"


def _to_meeting(r: dict) -> Meeting:
    return Meeting(
        meeting_id=str(r["id"]),
        event_date=r["event_date"],
        kind=MeetingKind(r["meeting_type"]),
        unit_id=str(r["unit_id"]) if r.get("unit_id") else None,
        locality_id=str(r["locality_id"]) if r.get("locality_id") else None,
        name=r["name"],
    )


def _key_clause(key: MeetingKey) -> tuple[str, tuple]:
    if key.unit_id is not None:
        return "event_date=%s AND meeting_type=%s AND unit_id=%s", (key.event_date, key.kind.value, key.unit_id)
    return (
        "event_date=%s AND meeting_type=%s AND unit_id IS NULL AND locality_id=%s",
        (key.event_date, key.kind.value, key.locality_id),
    )


class MySQLMeetingRepository(MeetingRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def find(self, key: MeetingKey) -> Sequence[Meeting]:
        where, params = _key_clause(key)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM meetings WHERE {where} ORDER BY created_at, id", params)
            return [_to_meeting(r) for r in fetchall(cur)]

    def find_one(self, key: MeetingKey) -> Optional[Meeting]:
        where, params = _key_clause(key)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM meetings WHERE {where} ORDER BY created_at, id LIMIT 1", params)
            r = fetchone(cur)
            return _to_meeting(r) if r else None

    def find_for_units(self, *, event_date: date, kind: MeetingKind, unit_ids: Sequence[str]) -> Sequence[Meeting]:
        if not unit_ids:
            return []
        placeholders, unit_params = in_clause(list(unit_ids))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM meetings
                WHERE event_date=%s AND meeting_type=%s AND unit_id IN {placeholders}
                ORDER BY created_at, id
                """,
                (event_date, kind.value, *unit_params),
            )
            return [_to_meeting(r) for r in fetchall(cur)]

    def insert(self, key: MeetingKey, *, name: str) -> Optional[Meeting]:
        meeting_id = str(uuid.uuid4())
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO meetings(id, event_date, meeting_type, unit_id, locality_id, name)
                    VALUES(%s,%s,%s,%s,%s,%s)
                    """,
                    (meeting_id, key.event_date, key.kind.value, key.unit_id, key.locality_id, name),
                )
        except mysql_errors.IntegrityError as exc:
            if is_unique_violation(exc):
                logger.debug("Meeting insert hit unique key for %s", key)
                return None
            raise RegistrationFailed(f"Meeting could not be created: {exc.msg}", unit_id=key.unit_id) from exc
        return Meeting(
            meeting_id=meeting_id,
            event_date=key.event_date,
            kind=key.kind,
            unit_id=key.unit_id,
            locality_id=key.locality_id,
            name=name,
        )

    def list_for_date(self, *, event_date: date, kind: MeetingKind) -> Sequence[Meeting]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM meetings WHERE event_date=%s AND meeting_type=%s ORDER BY created_at, id",
                (event_date, kind.value),
            )
            return [_to_meeting(r) for r in fetchall(cur)]

    def list_all(self, *, kind: Optional[MeetingKind] = None) -> Sequence[Meeting]:
        sql = f"SELECT {_COLUMNS} FROM meetings"
        params: tuple = ()
        if kind is not None:
            sql += " WHERE meeting_type=%s"
            params = (kind.value,)
        sql += " ORDER BY event_date DESC, created_at ASC"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, params)
            return [_to_meeting(r) for r in fetchall(cur)]


class MySQLMeetingModeRepository(MeetingModeRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_modes(self, *, event_date: date, locality_ids: Sequence[str]) -> Mapping[str, bool]:
        if not locality_ids:
            return {}
        placeholders, params = in_clause(list(locality_ids))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT locality_id, is_combined FROM meeting_modes
                WHERE event_date=%s AND locality_id IN {placeholders}
                """,
                (event_date, *params),
            )
            return {str(r["locality_id"]): as_bool(r["is_combined"]) for r in fetchall(cur)}

    def upsert(self, *, event_date: date, locality_id: str, is_combined: bool) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO meeting_modes(event_date, locality_id, is_combined)
                VALUES(%s,%s,%s)
                ON DUPLICATE KEY UPDATE is_combined=VALUES(is_combined)
                """,
                (event_date, locality_id, int(is_combined)),
            )
