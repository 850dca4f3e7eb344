from __future__ import annotations

from typing import Protocol, Sequence

from .model import Member


class MemberRepository(Protocol):
    def list_for_units(self, unit_ids: Sequence[str]) -> Sequence[Member]:
        """Members assigned to any of ``unit_ids`` ordered by name."""

        raise NotImplementedError

    def get_many(self, member_ids: Sequence[str]) -> Sequence[Member]:
        raise NotImplementedError

    def search_by_name(self, query: str, *, limit: int) -> Sequence[Member]:
        raise NotImplementedError
