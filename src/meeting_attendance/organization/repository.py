from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Locality, Unit


class OrganizationRepository(Protocol):
    def list_units(self, *, locality_id: Optional[str] = None) -> Sequence[Unit]:
        raise NotImplementedError

    def get_unit(self, unit_id: str) -> Optional[Unit]:
        raise NotImplementedError

    def get_localities(self, locality_ids: Sequence[str]) -> Sequence[Locality]:
        raise NotImplementedError
