from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from datetime import date
from typing import Callable, Iterator, Optional

from ..common.cancellation import LoadTicket
from ..core.exceptions import StaleSessionWrite, ValidationError
from ..members.enrollment import EnrollmentFilter, is_enrolled
from .edit_session import EditSession
from .reconciliation import AttendanceReconciler

logger = logging.getLogger(__name__)


class AttendanceView:
    """One operator's screen: the current edit session plus the load in flight.

    Starting a load cancels the previous one; a cancelled load ends quietly
    and never replaces the session.
    """

    def __init__(self, reconciler: AttendanceReconciler, *, enrollment: EnrollmentFilter = is_enrolled):
        self._reconciler = reconciler
        self._enrollment = enrollment
        self._lock = threading.Lock()
        self._ticket: Optional[LoadTicket] = None
        self._session: Optional[EditSession] = None

    @property
    def has_session(self) -> bool:
        return self._session is not None

    def load(self, scope: str, event_date: date) -> Optional[EditSession]:
        with self._lock:
            if self._session is not None and self._session.is_dirty():
                raise ValidationError("Save or discard the current changes before loading another roster")
            if self._ticket is not None:
                self._ticket.cancel()
            ticket = LoadTicket(f"{scope}@{event_date.isoformat()}")
            self._ticket = ticket

        try:
            roster = self._reconciler.load_roster(scope, event_date, ticket=ticket)
        except StaleSessionWrite:
            logger.debug("Superseded load %s dropped", ticket.label)
            return None

        with self._lock:
            if ticket.cancelled or self._ticket is not ticket:
                logger.debug("Superseded load %s dropped", ticket.label)
                return None
            self._ticket = None
            if self._session is not None and self._session.is_dirty():
                logger.warning("Load %s refused, current session has unsaved changes", ticket.label)
                raise ValidationError("Save or discard the current changes before loading another roster")
            self._session = EditSession(roster, enrollment=self._enrollment)
            return self._session

    def cancel(self) -> None:
        with self._lock:
            if self._ticket is not None:
                self._ticket.cancel()
                self._ticket = None

    @contextmanager
    def session(self) -> Iterator[EditSession]:
        """Exclusive access to the current session."""
        with self._lock:
            if self._session is None:
                raise ValidationError("Load a roster first")
            yield self._session


class ViewRegistry:
    """In-process map of operator key to that operator's view."""

    def __init__(self, factory: Callable[[], AttendanceView]):
        self._factory = factory
        self._lock = threading.Lock()
        self._views: dict[str, AttendanceView] = {}

    def get(self, operator_key: str) -> AttendanceView:
        with self._lock:
            view = self._views.get(operator_key)
            if view is None:
                view = self._factory()
                self._views[operator_key] = view
            return view

    def drop(self, operator_key: str) -> None:
        with self._lock:
            view = self._views.pop(operator_key, None)
        if view is not None:
            view.cancel()
