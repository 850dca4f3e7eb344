from __future__ import annotations


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class EnrollmentBlocked(ValidationError):
    """Raised when a member is outside the enrollment period for the meeting date."""

    def __init__(self, member_id: str):
        super().__init__(f"Member {member_id} is outside the enrollment period for this date")
        self.member_id = member_id


class ConfirmationRequired(DomainError):
    """Raised when a destructive action needs an explicit confirmation first."""

    def __init__(self, message: str, *, member_ids: frozenset[str] = frozenset()):
        super().__init__(message)
        self.member_ids = member_ids


class BackingStoreUnavailable(DomainError):
    """Raised when the database cannot be reached. Callers may retry later."""


class RegistrationFailed(DomainError):
    """Raised when a meeting could not be created or resolved."""

    def __init__(self, message: str, *, unit_id: str | None = None):
        super().__init__(message)
        self.unit_id = unit_id


class StaleSessionWrite(DomainError):
    """Raised when a superseded roster load tries to publish its result."""
