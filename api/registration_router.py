"""
Registration Router - register an entity once, look it up by identifier.

Endpoints:
- POST /registrations             - phase 2: validate details and commit
- GET  /registrations/{identifier} - lookup by (normalized) identifier

Mounted under /api by server.py.
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from api.dependencies import get_registry_store, get_workflow
from api.response_models import (
    ErrorResponse,
    RegistrationData,
    RegistrationRequest,
    RegistrationResponse,
)
from lib.errors import ErrorReason
from lib.models import details_for
from lib.registry_store import RegistrationStore
from lib.workflow import RegistrationOutcome, RegistrationWorkflow

logger = logging.getLogger(__name__)

registration_router = APIRouter(tags=["Registrations"])


def _error_response(status_code: int, body: ErrorResponse) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content=body.model_dump(mode="json", exclude_none=True)
    )


def _outcome_error(outcome: RegistrationOutcome) -> JSONResponse:
    if outcome.reason == ErrorReason.ALREADY_REGISTERED:
        return _error_response(
            409,
            ErrorResponse(
                message=outcome.message,
                reason=outcome.reason.value,
                data=RegistrationData.from_entity(outcome.entity) if outcome.entity else None,
            ),
        )
    return _error_response(
        400,
        ErrorResponse(
            message=outcome.message,
            reason=outcome.reason.value if outcome.reason else None,
            errors=outcome.errors or None,
        ),
    )


@registration_router.post(
    "/registrations",
    status_code=201,
    response_model=RegistrationResponse,
    responses={code: {"model": ErrorResponse} for code in (400, 409, 500)},
)
def create_registration(
    body: RegistrationRequest,
    workflow: RegistrationWorkflow = Depends(get_workflow),
):
    """Register an entity. Uniqueness is decided by the store's atomic insert."""
    details = details_for(
        body.identification_type,
        name=body.name,
        first_name=body.first_name,
        second_name=body.second_name,
        first_last_name=body.first_last_name,
        second_last_name=body.second_last_name,
    )
    outcome = workflow.register(
        body.identification_type,
        body.identifier,
        details,
        email=body.email,
        phone=body.phone,
        address=body.address,
    )
    if not outcome.ok:
        logger.info(
            "Registration rejected: %s",
            outcome.reason,
            extra={"operation": "register", "reason": str(outcome.reason)},
        )
        return _outcome_error(outcome)

    return RegistrationResponse(
        message=outcome.message, data=RegistrationData.from_entity(outcome.entity)
    )


@registration_router.get(
    "/registrations/{identifier}",
    response_model=RegistrationResponse,
    responses={404: {"model": ErrorResponse}},
)
def get_registration(identifier: str, store: RegistrationStore = Depends(get_registry_store)):
    """Look up a registration. 404 is the normal answer for a free identifier."""
    entity = store.find_by_identifier(identifier)
    if entity is None:
        return _error_response(404, ErrorResponse(message="not found"))
    return RegistrationResponse(data=RegistrationData.from_entity(entity))
