from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import Locality, Unit
from .repository import OrganizationRepository


def _to_unit(r: dict) -> Unit:
    return Unit(unit_id=str(r["id"]), name=r["name"], locality_id=str(r["locality_id"]))


class MySQLOrganizationRepository(OrganizationRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_units(self, *, locality_id: Optional[str] = None) -> Sequence[Unit]:
        sql = "SELECT id, name, locality_id FROM units"
        params: tuple = ()
        if locality_id is not None:
            sql += " WHERE locality_id=%s"
            params = (locality_id,)
        sql += " ORDER BY name"

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, params)
            return [_to_unit(r) for r in fetchall(cur)]

    def get_unit(self, unit_id: str) -> Optional[Unit]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT id, name, locality_id FROM units WHERE id=%s", (unit_id,))
            r = fetchone(cur)
            return _to_unit(r) if r else None

    def get_localities(self, locality_ids: Sequence[str]) -> Sequence[Locality]:
        if not locality_ids:
            return []
        placeholders, params = in_clause(list(locality_ids))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT id, name FROM localities WHERE id IN {placeholders}", params)
            return [Locality(locality_id=str(r["id"]), name=r["name"]) for r in fetchall(cur)]
