from __future__ import annotations

import threading
from typing import Optional

from ..core.exceptions import StaleSessionWrite


class LoadTicket:
    """Cancellation flag for one roster load.

    Loaders call :meth:`raise_if_cancelled` after every store round trip so a
    superseded load never publishes its state.
    """

    def __init__(self, label: str = ""):
        self.label = label
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def raise_if_cancelled(self) -> None:
        if self._cancelled.is_set():
            raise StaleSessionWrite(f"Load {self.label or '?'} was superseded")


def checkpoint(ticket: Optional[LoadTicket]) -> None:
    if ticket is not None:
        ticket.raise_if_cancelled()
