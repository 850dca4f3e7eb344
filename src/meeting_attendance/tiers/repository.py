from __future__ import annotations

from typing import Protocol, Sequence

from ..core.enums import Tier


class TierListRepository(Protocol):
    def list_memberships(self, tier: Tier, unit_ids: Sequence[str]) -> Sequence[tuple[str, str]]:
        """(unit_id, member_id) pairs of one tier list for the given units."""

        raise NotImplementedError
