from __future__ import annotations

from ..core.exceptions import ValidationError


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def require_confirmation(value: str | None, expected: str) -> None:
    """Destructive actions require the operator to type ``expected`` exactly."""
    if (value or "").strip() != expected:
        raise ValidationError(f"Type '{expected}' to confirm")
