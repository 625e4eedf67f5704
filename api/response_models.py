"""
Pydantic request and response models for the registry API.

These give FastAPI the type information it needs to generate accurate
OpenAPI schemas, and accept the field names the original web client sends
(`nit`, `companyName`, ...) as aliases.

Usage:
    from api.response_models import RegistrationRequest, RegistrationResponse

    @router.post("/registrations", response_model=RegistrationResponse)
    def create_registration(body: RegistrationRequest): ...
"""

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from lib.identifiers import IdentificationType
from lib.models import RegisteredEntity

# ==== Requests ====


class IdentifierBody(BaseModel):
    """Phase 1 body: just the identifier."""

    identifier: str = Field(
        default="",
        validation_alias=AliasChoices("identifier", "nit", "identificationNumber"),
        description="Identification number as typed by the user",
    )


class RegistrationRequest(BaseModel):
    """Phase 2 body: declared type, identifier and entity details."""

    model_config = ConfigDict(populate_by_name=True)

    identification_type: IdentificationType = Field(
        default=IdentificationType.NIT,
        validation_alias=AliasChoices("identification_type", "identificationType"),
    )
    identifier: str = Field(
        default="",
        validation_alias=AliasChoices("identifier", "nit", "identificationNumber"),
    )
    name: str | None = Field(
        default=None, validation_alias=AliasChoices("name", "company_name", "companyName")
    )
    first_name: str | None = Field(
        default=None, validation_alias=AliasChoices("first_name", "firstName")
    )
    second_name: str | None = Field(
        default=None, validation_alias=AliasChoices("second_name", "secondName")
    )
    first_last_name: str | None = Field(
        default=None, validation_alias=AliasChoices("first_last_name", "firstLastName")
    )
    second_last_name: str | None = Field(
        default=None, validation_alias=AliasChoices("second_last_name", "secondLastName")
    )
    email: str = ""
    phone: str = ""
    address: str = ""

    @field_validator("identification_type", mode="before")
    @classmethod
    def _parse_type(cls, value: Any) -> IdentificationType:
        return IdentificationType.parse(value)


# ==== Registration payloads ====


class RegistrationData(BaseModel):
    """A stored registration, field for field."""

    id: str
    raw_identifier: str
    normalized_identifier: str
    identification_type: str
    name: str
    email: str
    phone: str
    address: str
    registered_at: str
    status: str

    @classmethod
    def from_entity(cls, entity: RegisteredEntity) -> "RegistrationData":
        return cls(**entity.to_dict())


class RegistrationResponse(BaseModel):
    """201/200 envelope."""

    success: bool = True
    message: str | None = None
    data: RegistrationData


class ErrorResponse(BaseModel):
    """4xx/5xx envelope. `data` holds the existing record on a 409."""

    success: bool = False
    message: str
    reason: str | None = None
    errors: dict[str, str] | None = None
    data: RegistrationData | None = None


# ==== Validation ====


class ValidationResponse(BaseModel):
    """Phase 1 result."""

    valid: bool
    message: str
    reason: str | None = None
    identifier: str | None = None
    identification_type: str | None = None
    existing: RegistrationData | None = None


# ==== Health Check ====


class HealthResponse(BaseModel):
    """Liveness result."""

    status: str = Field(description="ok")
    service: str
    version: str | None = None
    timestamp: str = Field(description="ISO timestamp")
    backend: str | None = None
