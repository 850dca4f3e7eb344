"""Tier classification of members within a unit.

Priority is fixed: regular > semi > pool, and a member on none of the three
lists counts as semi. A member listed twice (a data-entry slip) is classified
by the same priority rather than reported.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional

from ..core.enums import Tier
from ..members.model import Member

DEFAULT_TIER = Tier.SEMI


@dataclass(frozen=True)
class TierLists:
    regular: frozenset[str] = frozenset()
    semi: frozenset[str] = frozenset()
    pool: frozenset[str] = frozenset()


EMPTY_LISTS = TierLists()


def classify(member_id: str, lists: TierLists) -> Tier:
    if member_id in lists.regular:
        return Tier.REGULAR
    if member_id in lists.semi:
        return Tier.SEMI
    if member_id in lists.pool:
        return Tier.POOL
    return DEFAULT_TIER


@dataclass(frozen=True)
class TierIndex:
    """Tier lists for several units, fetched in one batch."""

    by_unit: Mapping[str, TierLists] = field(default_factory=dict)

    @classmethod
    def from_memberships(
        cls,
        *,
        regular: Iterable[tuple[str, str]],
        semi: Iterable[tuple[str, str]],
        pool: Iterable[tuple[str, str]],
    ) -> "TierIndex":
        """Build from (unit_id, member_id) pairs of each list."""
        buckets: dict[str, dict[Tier, set[str]]] = {}
        for tier, pairs in ((Tier.REGULAR, regular), (Tier.SEMI, semi), (Tier.POOL, pool)):
            for unit_id, member_id in pairs:
                buckets.setdefault(unit_id, {t: set() for t in Tier})[tier].add(member_id)

        return cls(
            by_unit={
                unit_id: TierLists(
                    regular=frozenset(sets[Tier.REGULAR]),
                    semi=frozenset(sets[Tier.SEMI]),
                    pool=frozenset(sets[Tier.POOL]),
                )
                for unit_id, sets in buckets.items()
            }
        )

    def lists_for(self, unit_id: Optional[str]) -> TierLists:
        if unit_id is None:
            return EMPTY_LISTS
        return self.by_unit.get(unit_id, EMPTY_LISTS)

    def classify(self, unit_id: Optional[str], member_id: str) -> Tier:
        return classify(member_id, self.lists_for(unit_id))

    def tier_map(self, members: Iterable[Member]) -> dict[str, Tier]:
        return {m.member_id: self.classify(m.unit_id, m.member_id) for m in members}
