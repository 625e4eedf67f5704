"""
Identifier normalization and format validation.

Both functions are pure and total: malformed input is a normal outcome,
never an exception.
"""

import re
from dataclasses import dataclass
from enum import StrEnum

from lib import config
from lib.errors import ErrorReason

_SEPARATORS_RE = re.compile(r"[\s\-]")


class IdentificationType(StrEnum):
    """Declared type of an identification number."""

    NIT = "NIT"
    FOREIGN = "Foreign"
    OTHER = "Other"

    @classmethod
    def parse(cls, value: "str | IdentificationType") -> "IdentificationType":
        """Case-insensitive lookup. Raises ValueError for unknown types."""
        if isinstance(value, cls):
            return value
        wanted = str(value).strip().lower()
        for member in cls:
            if member.value.lower() == wanted:
                return member
        raise ValueError(
            f"Unknown identification type {value!r}; "
            f"expected one of {', '.join(m.value for m in cls)}"
        )

    @property
    def requires_company_name(self) -> bool:
        return self in (IdentificationType.NIT, IdentificationType.FOREIGN)


def normalize(raw) -> str:
    """Canonical uniqueness key: no whitespace, no hyphens, lowercase."""
    if not raw or not isinstance(raw, str):
        return ""
    return _SEPARATORS_RE.sub("", raw).lower()


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a format check. `reason` is None when valid."""

    valid: bool
    message: str
    reason: ErrorReason | None = None
    cleaned: str = ""

    @staticmethod
    def ok(message: str, cleaned: str) -> "ValidationResult":
        return ValidationResult(valid=True, message=message, cleaned=cleaned)

    @staticmethod
    def fail(reason: ErrorReason, message: str, cleaned: str = "") -> "ValidationResult":
        return ValidationResult(valid=False, message=message, reason=reason, cleaned=cleaned)


def validate(raw, id_type: IdentificationType) -> ValidationResult:
    """
    Check the structure of an identification number for its declared type.

    NIT: digits only once separators are stripped, 8 to 10 digits plus an
    optional check digit. Foreign and Other only need to be present, i.e.
    something must be left once separators are stripped.
    """
    id_type = IdentificationType.parse(id_type)
    if not normalize(raw):
        return ValidationResult.fail(
            ErrorReason.MISSING_IDENTIFIER, "Identification number is required"
        )

    if id_type is not IdentificationType.NIT:
        return ValidationResult.ok(f"{id_type.value} identification accepted", raw.strip())

    cleaned = _SEPARATORS_RE.sub("", raw)
    if not cleaned.isascii() or not cleaned.isdigit():
        return ValidationResult.fail(
            ErrorReason.INVALID_FORMAT,
            "Invalid NIT format. Expected format: XXXXXXXXXX-X or XXXXXXXXXX",
            cleaned,
        )
    if len(cleaned) < config.NIT_MIN_DIGITS:
        return ValidationResult.fail(
            ErrorReason.TOO_SHORT,
            f"NIT must have at least {config.NIT_MIN_DIGITS} digits",
            cleaned,
        )
    if len(cleaned) > config.NIT_MAX_DIGITS + 1:
        return ValidationResult.fail(
            ErrorReason.INVALID_FORMAT,
            "Invalid NIT format. Expected format: XXXXXXXXXX-X or XXXXXXXXXX",
            cleaned,
        )
    return ValidationResult.ok("NIT format is valid", cleaned)
