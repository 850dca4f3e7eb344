from __future__ import annotations

from collections import defaultdict
from typing import Sequence

from ..core.enums import Category
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_bool, db_cursor, fetchall, in_clause
from .model import EnrollmentPeriod, Member
from .repository import MemberRepository

_MEMBER_COLUMNS = (
    "id, name, furigana, is_baptized, unit_id, group_id, locality_id, age_group, "
    "local_member_join_date, local_member_leave_date"
)


class MySQLMemberRepository(MemberRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_for_units(self, unit_ids: Sequence[str]) -> Sequence[Member]:
        if not unit_ids:
            return []
        placeholders, params = in_clause(list(unit_ids))
        return self._select(f"unit_id IN {placeholders} ORDER BY name", params)

    def get_many(self, member_ids: Sequence[str]) -> Sequence[Member]:
        if not member_ids:
            return []
        placeholders, params = in_clause(list(member_ids))
        return self._select(f"id IN {placeholders} ORDER BY name", params)

    def search_by_name(self, query: str, *, limit: int) -> Sequence[Member]:
        pattern = f"%{query.strip()}%"
        return self._select(
            "(name LIKE %s OR furigana LIKE %s) ORDER BY name LIMIT %s", (pattern, pattern, int(limit))
        )

    def _select(self, where: str, params: tuple) -> list[Member]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_MEMBER_COLUMNS} FROM members WHERE {where}", params)
            rows = fetchall(cur)
            if not rows:
                return []

            ids = [str(r["id"]) for r in rows]
            placeholders, id_params = in_clause(ids)
            cur.execute(
                f"""
                SELECT member_id, join_date, leave_date
                FROM member_enrollment_periods
                WHERE member_id IN {placeholders}
                ORDER BY join_date
                """,
                id_params,
            )
            periods: dict[str, list[EnrollmentPeriod]] = defaultdict(list)
            for p in fetchall(cur):
                periods[str(p["member_id"])].append(
                    EnrollmentPeriod(join_date=p.get("join_date"), leave_date=p.get("leave_date"))
                )

        return [self._to_member(r, periods.get(str(r["id"]))) for r in rows]

    @staticmethod
    def _to_member(r: dict, periods: list[EnrollmentPeriod] | None) -> Member:
        if not periods and (r.get("local_member_join_date") or r.get("local_member_leave_date")):
            # Older rows keep a single join/leave pair on the member itself.
            periods = [
                EnrollmentPeriod(
                    join_date=r.get("local_member_join_date"),
                    leave_date=r.get("local_member_leave_date"),
                )
            ]
        age_group = r.get("age_group")
        return Member(
            member_id=str(r["id"]),
            name=r["name"],
            furigana=r.get("furigana"),
            is_baptized=as_bool(r.get("is_baptized")),
            unit_id=str(r["unit_id"]) if r.get("unit_id") else None,
            group_id=str(r["group_id"]) if r.get("group_id") else None,
            locality_id=str(r["locality_id"]) if r.get("locality_id") else None,
            age_group=Category(age_group) if age_group else None,
            enrollment_periods=tuple(periods or ()),
        )
