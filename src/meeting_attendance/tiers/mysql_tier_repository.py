from __future__ import annotations

from typing import Sequence

from ..core.enums import Tier
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, in_clause
from .repository import TierListRepository

_TABLES = {
    Tier.REGULAR: "unit_regular_list",
    Tier.SEMI: "unit_semi_regular_list",
    Tier.POOL: "unit_pool_list",
}


class MySQLTierListRepository(TierListRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_memberships(self, tier: Tier, unit_ids: Sequence[str]) -> Sequence[tuple[str, str]]:
        if not unit_ids:
            return []
        placeholders, params = in_clause(list(unit_ids))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT unit_id, member_id FROM {_TABLES[tier]} WHERE unit_id IN {placeholders}",
                params,
            )
            return [(str(r["unit_id"]), str(r["member_id"])) for r in fetchall(cur)]
