"""
Data models for registrations.
"""

import uuid
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from typing import Any

from lib.identifiers import IdentificationType, normalize

STATUS_ACTIVE = "active"


def new_registration_id() -> str:
    """Opaque, process-unique id. Not derived from the clock."""
    return f"reg_{uuid.uuid4().hex}"


def now_iso() -> str:
    """Current UTC time in ISO format."""
    return datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


# ==== Registration details ====
# One variant per identification type family.


@dataclass(frozen=True)
class CompanyDetails:
    """Details for NIT and Foreign registrations."""

    name: str = ""

    def missing_fields(self) -> dict[str, str]:
        if not (self.name or "").strip():
            return {"name": "Company name is required for this identification type"}
        return {}

    def display_name(self) -> str:
        return (self.name or "").strip()


@dataclass(frozen=True)
class PersonDetails:
    """Details for Other registrations; the name is composed from its parts."""

    first_name: str = ""
    first_last_name: str = ""
    second_last_name: str = ""
    second_name: str | None = None

    def missing_fields(self) -> dict[str, str]:
        errors = {}
        if not (self.first_name or "").strip():
            errors["first_name"] = "First name is required"
        if not (self.first_last_name or "").strip():
            errors["first_last_name"] = "First last name is required"
        if not (self.second_last_name or "").strip():
            errors["second_last_name"] = "Second last name is required"
        return errors

    def display_name(self) -> str:
        parts = [self.first_name, self.second_name, self.first_last_name, self.second_last_name]
        return " ".join(p.strip() for p in parts if p and p.strip())


RegistrationDetails = CompanyDetails | PersonDetails


def details_for(
    id_type: IdentificationType,
    *,
    name: str | None = None,
    first_name: str | None = None,
    second_name: str | None = None,
    first_last_name: str | None = None,
    second_last_name: str | None = None,
) -> RegistrationDetails:
    """Pick the details variant the identification type calls for."""
    if IdentificationType.parse(id_type).requires_company_name:
        return CompanyDetails(name=name or "")
    return PersonDetails(
        first_name=first_name or "",
        second_name=second_name or None,
        first_last_name=first_last_name or "",
        second_last_name=second_last_name or "",
    )


# ==== Persisted record ====


@dataclass(frozen=True)
class RegisteredEntity:
    """A registration. Created once, never updated."""

    raw_identifier: str
    normalized_identifier: str
    identification_type: str
    name: str
    email: str
    phone: str
    address: str
    id: str = field(default_factory=new_registration_id)
    registered_at: str = field(default_factory=now_iso)
    status: str = STATUS_ACTIVE

    @classmethod
    def create(
        cls,
        *,
        raw_identifier: str,
        identification_type: IdentificationType,
        name: str,
        email: str,
        phone: str,
        address: str,
    ) -> "RegisteredEntity":
        """Build a fresh record, trimming fields the way they are stored."""
        raw = (raw_identifier or "").strip()
        return cls(
            raw_identifier=raw,
            normalized_identifier=normalize(raw),
            identification_type=IdentificationType.parse(identification_type).value,
            name=(name or "").strip(),
            email=(email or "").strip().lower(),
            phone=(phone or "").strip(),
            address=(address or "").strip(),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert the model to a dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RegisteredEntity":
        """Create a model from a dictionary."""
        raw = data.get("raw_identifier", "")
        return cls(
            id=data["id"],
            raw_identifier=raw,
            normalized_identifier=data.get("normalized_identifier") or normalize(raw),
            identification_type=data.get("identification_type", IdentificationType.NIT.value),
            name=data["name"],
            email=data["email"],
            phone=data["phone"],
            address=data["address"],
            registered_at=data["registered_at"],
            status=data.get("status", STATUS_ACTIVE),
        )
