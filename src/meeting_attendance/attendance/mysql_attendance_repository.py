from __future__ import annotations

import uuid
from dataclasses import replace
from typing import Mapping, Sequence

from ..core.enums import Category
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_bool, db_cursor, fetchall, in_clause
from .model import AttendanceRecord, RecordedProfile
from .repository import AttendanceRepository


def _to_record(r: dict) -> AttendanceRecord:
    category = r.get("recorded_category")
    return AttendanceRecord(
        record_id=str(r["id"]),
        member_id=str(r["member_id"]),
        meeting_id=str(r["meeting_id"]),
        attended=as_bool(r.get("attended"), default=True),
        is_online=as_bool(r.get("is_online")),
        is_away=as_bool(r.get("is_away")),
        memo=r.get("memo"),
        recorded=RecordedProfile(
            category=Category(category) if category else None,
            is_baptized=as_bool(r.get("recorded_is_baptized")),
            unit_id=r.get("recorded_unit_id"),
            group_id=r.get("recorded_group_id"),
            is_local=as_bool(r.get("recorded_is_local")),
        ),
        reported_by=r.get("reported_by"),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_for_meetings(self, meeting_ids: Sequence[str]) -> Sequence[AttendanceRecord]:
        if not meeting_ids:
            return []
        placeholders, params = in_clause(list(meeting_ids))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT id, meeting_id, member_id, attended, is_online, is_away, memo,
                       recorded_category, recorded_is_baptized, recorded_unit_id,
                       recorded_group_id, recorded_is_local, reported_by
                FROM attendance_records
                WHERE meeting_id IN {placeholders}
                ORDER BY created_at, id
                """,
                params,
            )
            return [_to_record(r) for r in fetchall(cur)]

    def count_by_meeting(self, meeting_ids: Sequence[str]) -> Mapping[str, int]:
        if not meeting_ids:
            return {}
        placeholders, params = in_clause(list(meeting_ids))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT meeting_id, COUNT(*) AS n
                FROM attendance_records
                WHERE meeting_id IN {placeholders}
                GROUP BY meeting_id
                """,
                params,
            )
            return {str(r["meeting_id"]): int(r["n"]) for r in fetchall(cur)}

    def insert(self, record: AttendanceRecord) -> AttendanceRecord:
        record_id = str(uuid.uuid4())
        profile = record.recorded
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance_records(
                    id, meeting_id, member_id, attended, is_online, is_away, memo,
                    recorded_category, recorded_is_baptized, recorded_unit_id,
                    recorded_group_id, recorded_is_local, reported_by
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    record_id,
                    record.meeting_id,
                    record.member_id,
                    int(record.attended),
                    int(record.is_online),
                    int(record.is_away),
                    record.memo,
                    profile.category.value if profile and profile.category else None,
                    int(profile.is_baptized) if profile else None,
                    profile.unit_id if profile else None,
                    profile.group_id if profile else None,
                    int(profile.is_local) if profile else None,
                    record.reported_by,
                ),
            )
        return replace(record, record_id=record_id)

    def update(self, record: AttendanceRecord) -> bool:
        is_local = int(record.recorded.is_local) if record.recorded else None
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET meeting_id=%s, attended=%s, is_online=%s, is_away=%s, memo=%s,
                    recorded_is_local=COALESCE(%s, recorded_is_local)
                WHERE id=%s
                """,
                (
                    record.meeting_id,
                    int(record.attended),
                    int(record.is_online),
                    int(record.is_away),
                    record.memo,
                    is_local,
                    record.record_id,
                ),
            )
            return cur.rowcount > 0

    def delete(self, record_id: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM attendance_records WHERE id=%s", (record_id,))
            return cur.rowcount > 0

    def delete_for_meetings(self, meeting_ids: Sequence[str]) -> int:
        if not meeting_ids:
            return 0
        placeholders, params = in_clause(list(meeting_ids))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"DELETE FROM attendance_records WHERE meeting_id IN {placeholders}", params)
            return int(cur.rowcount)
