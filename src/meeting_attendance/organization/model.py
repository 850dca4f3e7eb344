from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Locality:
    """Thực thể miền (domain): Địa phương, nơi có thể gộp các buổi nhóm."""

    locality_id: str
    name: str


@dataclass(frozen=True)
class Unit:
    """Thực thể miền (domain): Khu vực (district) có buổi nhóm hằng tuần."""

    unit_id: str
    name: str
    locality_id: str
