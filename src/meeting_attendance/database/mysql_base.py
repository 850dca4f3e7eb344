from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Sequence, Tuple

import mysql.connector
from mysql.connector import errors as mysql_errors

from ..core.constants import MYSQL_DUPLICATE_ENTRY
from ..core.exceptions import BackingStoreUnavailable
from .connection import DatabaseConnection

logger = logging.getLogger(__name__)

# Errors that mean "the server is not reachable", as opposed to a bad statement.
_CONNECTIVITY_ERRORS = (mysql_errors.InterfaceError, mysql_errors.OperationalError)


def _connect(conn_factory: DatabaseConnection):
    try:
        return conn_factory.connect()
    except _CONNECTIVITY_ERRORS as exc:
        logger.warning("Database connection failed: %s", exc)
        raise BackingStoreUnavailable("The attendance database is unavailable, please retry") from exc


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    conn = _connect(conn_factory)
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except _CONNECTIVITY_ERRORS as exc:
        _safe_rollback(conn)
        logger.warning("Database operation failed: %s", exc)
        raise BackingStoreUnavailable("The attendance database is unavailable, please retry") from exc
    except Exception:
        _safe_rollback(conn)
        raise
    finally:
        conn.close()


def _safe_rollback(conn) -> None:
    try:
        conn.rollback()
    except mysql.connector.Error as exc:
        logger.debug("Rollback failed: %s", exc)


def is_unique_violation(exc: BaseException) -> bool:
    return isinstance(exc, mysql_errors.IntegrityError) and exc.errno == MYSQL_DUPLICATE_ENTRY


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def in_clause(values: Sequence[Any]) -> Tuple[str, Tuple[Any, ...]]:
    """Build ``IN (%s,%s,...)`` placeholders for a non-empty sequence."""
    if not values:
        raise ValueError("in_clause needs at least one value")
    return "(" + ",".join(["%s"] * len(values)) + ")", tuple(values)


def as_bool(value: Any, default: bool = False) -> bool:
    """Normalize TINYINT/NULL columns to bool."""
    if value is None:
        return default
    return bool(int(value))
