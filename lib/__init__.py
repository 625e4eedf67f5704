# NIT Registry - Core Library
"""
Exports for the API, the CLI and other consumers.
"""

from .errors import ErrorReason, StorageUnavailable
from .identifiers import IdentificationType, ValidationResult, normalize, validate
from .models import CompanyDetails, PersonDetails, RegisteredEntity, details_for
from .registry_store import (
    InsertResult,
    JsonFileStore,
    RegistrationStore,
    SqliteStore,
    get_store,
    open_store,
    reset_store,
)
from .workflow import IdentifierCheck, RegistrationOutcome, RegistrationState, RegistrationWorkflow

__all__ = [
    "ErrorReason",
    "StorageUnavailable",
    "IdentificationType",
    "ValidationResult",
    "normalize",
    "validate",
    "CompanyDetails",
    "PersonDetails",
    "RegisteredEntity",
    "details_for",
    "InsertResult",
    "RegistrationStore",
    "JsonFileStore",
    "SqliteStore",
    "get_store",
    "open_store",
    "reset_store",
    "IdentifierCheck",
    "RegistrationOutcome",
    "RegistrationState",
    "RegistrationWorkflow",
]
