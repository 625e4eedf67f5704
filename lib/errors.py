"""
Error taxonomy for registration.

Validation-kind reasons are ordinary outcomes and travel as values inside
IdentifierCheck / RegistrationOutcome. StorageUnavailable is the only one
that is raised.
"""

from enum import StrEnum


class ErrorReason(StrEnum):
    """Every reason a registration step can fail with."""

    MISSING_IDENTIFIER = "missing_identifier"
    INVALID_FORMAT = "invalid_format"
    TOO_SHORT = "too_short"
    ALREADY_REGISTERED = "already_registered"
    MISSING_FIELDS = "missing_fields"
    INVALID_EMAIL = "invalid_email"
    INVALID_PHONE = "invalid_phone"
    STORAGE_UNAVAILABLE = "storage_unavailable"


class StorageUnavailable(Exception):
    """Raised when the registration store cannot be read or written."""

    reason = ErrorReason.STORAGE_UNAVAILABLE

    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(f"{operation}: {message}")
