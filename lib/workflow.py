"""
Registration Workflow - identifier check, then registration.

    AwaitingIdentifier --check_identifier--> AwaitingDetails --register--> Completed

Nothing is persisted between the phases; the caller carries the checked
(type, identifier) pair from phase 1 into phase 2. The phase 1 duplicate
lookup only spares the user a form; the atomic insert in phase 2 is what
enforces uniqueness.

Every user-input failure comes back as a value. Only StorageUnavailable
is raised.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import StrEnum

from lib import config
from lib.errors import ErrorReason
from lib.identifiers import IdentificationType, normalize, validate
from lib.models import CompanyDetails, PersonDetails, RegisteredEntity, RegistrationDetails
from lib.registry_store import RegistrationStore

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_PHONE_SYMBOLS_RE = re.compile(r"[\s\-()]")

ALREADY_REGISTERED_MESSAGE = "Company with this identification number is already registered"


class RegistrationState(StrEnum):
    AWAITING_IDENTIFIER = "awaiting_identifier"
    AWAITING_DETAILS = "awaiting_details"
    COMPLETED = "completed"


@dataclass(frozen=True)
class IdentifierCheck:
    """Phase 1 result. On success it is the carry-over state for phase 2."""

    ok: bool
    identification_type: IdentificationType
    raw_identifier: str
    message: str
    reason: ErrorReason | None = None
    existing: RegisteredEntity | None = None

    @property
    def state(self) -> RegistrationState:
        if self.ok:
            return RegistrationState.AWAITING_DETAILS
        return RegistrationState.AWAITING_IDENTIFIER


@dataclass(frozen=True)
class RegistrationOutcome:
    """
    Phase 2 result.

    `entity` is the new record on success and the record already holding
    the identifier on ALREADY_REGISTERED. `errors` maps field name to message.
    """

    ok: bool
    message: str
    entity: RegisteredEntity | None = None
    reason: ErrorReason | None = None
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def state(self) -> RegistrationState:
        return RegistrationState.COMPLETED if self.ok else RegistrationState.AWAITING_DETAILS

    @staticmethod
    def failure(
        reason: ErrorReason,
        message: str,
        errors: dict[str, str] | None = None,
        entity: RegisteredEntity | None = None,
    ) -> "RegistrationOutcome":
        return RegistrationOutcome(
            ok=False, message=message, reason=reason, errors=errors or {}, entity=entity
        )


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_RE.match(email or ""))


def is_valid_phone(phone: str) -> bool:
    return len(_PHONE_SYMBOLS_RE.sub("", phone or "")) >= config.PHONE_MIN_LENGTH


def _blank(value) -> bool:
    return not isinstance(value, str) or not value.strip()


class RegistrationWorkflow:
    """Runs both phases against one store."""

    def __init__(self, store: RegistrationStore):
        self.store = store

    # ==================== Phase 1 ====================

    def check_identifier(self, raw: str, id_type: IdentificationType) -> IdentifierCheck:
        """Reject empty or already-registered identifiers, then check NIT format."""
        id_type = IdentificationType.parse(id_type)
        raw = raw.strip() if isinstance(raw, str) else ""
        key = normalize(raw)

        # Separators alone leave no key to register under.
        if not key:
            return IdentifierCheck(
                ok=False,
                identification_type=id_type,
                raw_identifier=raw,
                message="Identification number is required",
                reason=ErrorReason.MISSING_IDENTIFIER,
            )

        existing = self.store.find_by_normalized_identifier(key)
        if existing is not None:
            return IdentifierCheck(
                ok=False,
                identification_type=id_type,
                raw_identifier=raw,
                message=ALREADY_REGISTERED_MESSAGE,
                reason=ErrorReason.ALREADY_REGISTERED,
                existing=existing,
            )

        if id_type is IdentificationType.NIT:
            result = validate(raw, id_type)
            if not result.valid:
                return IdentifierCheck(
                    ok=False,
                    identification_type=id_type,
                    raw_identifier=raw,
                    message=result.message,
                    reason=result.reason,
                )

        return IdentifierCheck(
            ok=True,
            identification_type=id_type,
            raw_identifier=raw,
            message=f"{id_type.value} identification accepted",
        )

    # ==================== Phase 2 ====================

    def register(
        self,
        id_type: IdentificationType,
        raw_identifier: str,
        details: RegistrationDetails,
        *,
        email: str,
        phone: str,
        address: str,
    ) -> RegistrationOutcome:
        """
        Validate the details and commit the registration.

        Raises:
            StorageUnavailable: the store could not be read or written.
        """
        id_type = IdentificationType.parse(id_type)
        expected = CompanyDetails if id_type.requires_company_name else PersonDetails
        if not isinstance(details, expected):
            raise TypeError(f"{id_type.value} registrations take {expected.__name__}")

        missing: dict[str, str] = {}
        if _blank(raw_identifier) or not normalize(raw_identifier):
            missing["identifier"] = "Identification number is required"
        missing.update(details.missing_fields())
        if _blank(email):
            missing["email"] = "Email is required"
        if _blank(phone):
            missing["phone"] = "Phone is required"
        if _blank(address):
            missing["address"] = "Address is required"
        if missing:
            return RegistrationOutcome.failure(
                ErrorReason.MISSING_FIELDS,
                f"Missing required fields: {', '.join(missing)}",
                errors=missing,
            )

        raw_identifier = raw_identifier.strip()
        normalized = normalize(raw_identifier)

        # Advisory: report a known duplicate before any format complaint.
        existing = self.store.find_by_normalized_identifier(normalized)
        if existing is not None:
            return self._conflict(existing)

        if id_type is IdentificationType.NIT:
            result = validate(raw_identifier, id_type)
            if not result.valid:
                return RegistrationOutcome.failure(
                    result.reason, result.message, errors={"identifier": result.message}
                )

        if not is_valid_email(email.strip()):
            return RegistrationOutcome.failure(
                ErrorReason.INVALID_EMAIL,
                "Invalid email format",
                errors={"email": "Invalid email format"},
            )

        if not is_valid_phone(phone):
            return RegistrationOutcome.failure(
                ErrorReason.INVALID_PHONE,
                "Invalid phone format",
                errors={"phone": "Invalid phone format"},
            )

        entity = RegisteredEntity.create(
            raw_identifier=raw_identifier,
            identification_type=id_type,
            name=details.display_name(),
            email=email,
            phone=phone,
            address=address,
        )

        result = self.store.insert_if_absent(entity)
        if result.conflict:
            return self._conflict(result.entity)

        logger.info(
            "Registration %s completed for %s",
            entity.id,
            normalized,
            extra={
                "operation": "register",
                "normalized_identifier": normalized,
                "registration_id": entity.id,
            },
        )
        return RegistrationOutcome(
            ok=True, message="Company registered successfully", entity=result.entity
        )

    @staticmethod
    def _conflict(existing: RegisteredEntity) -> RegistrationOutcome:
        return RegistrationOutcome.failure(
            ErrorReason.ALREADY_REGISTERED,
            ALREADY_REGISTERED_MESSAGE,
            errors={"identifier": ALREADY_REGISTERED_MESSAGE},
            entity=existing,
        )
