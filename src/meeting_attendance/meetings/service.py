from __future__ import annotations

import logging
from datetime import date
from typing import Sequence

from ..common.validators import require_non_empty
from .model import DuplicateMeetingGroup
from .repository import MeetingModeRepository
from .resolver import MeetingResolver

logger = logging.getLogger(__name__)


class MeetingService:
    def __init__(self, modes: MeetingModeRepository, resolver: MeetingResolver):
        self._modes = modes
        self._resolver = resolver

    def get_combined_modes(self, event_date: date, locality_ids: Sequence[str]) -> dict[str, bool]:
        """Combined-mode flag per locality; localities never configured are not combined."""
        locality_ids = [lid for lid in dict.fromkeys(locality_ids) if lid]
        if not locality_ids:
            return {}
        stored = self._modes.get_modes(event_date=event_date, locality_ids=locality_ids)
        return {lid: bool(stored.get(lid, False)) for lid in locality_ids}

    def set_combined_mode(self, *, event_date: date, locality_id: str, combined: bool) -> None:
        require_non_empty(locality_id, "locality_id")
        self._modes.upsert(event_date=event_date, locality_id=locality_id, is_combined=bool(combined))
        logger.info("Combined mode for locality %s on %s set to %s", locality_id, event_date, combined)

    def duplicate_report(self) -> list[DuplicateMeetingGroup]:
        return self._resolver.find_duplicate_groups()
