from __future__ import annotations

from typing import Sequence

from ..core.enums import Tier
from .classifier import TierIndex
from .repository import TierListRepository


class TierService:
    def __init__(self, tier_lists: TierListRepository):
        self._tier_lists = tier_lists

    def load_index(self, unit_ids: Sequence[str]) -> TierIndex:
        """Three list queries in total, whatever the number of units or members."""
        unit_ids = list(dict.fromkeys(unit_ids))
        if not unit_ids:
            return TierIndex()
        return TierIndex.from_memberships(
            regular=self._tier_lists.list_memberships(Tier.REGULAR, unit_ids),
            semi=self._tier_lists.list_memberships(Tier.SEMI, unit_ids),
            pool=self._tier_lists.list_memberships(Tier.POOL, unit_ids),
        )
