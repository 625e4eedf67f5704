"""
Validation Router - phase 1 identifier check.

Endpoints:
- GET  /validation/health - validation service liveness
- POST /validation/{identification_type} - empty / duplicate / format check

Format-only: no government registry is consulted.
"""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from api.dependencies import get_workflow
from api.response_models import IdentifierBody, RegistrationData, ValidationResponse
from lib.errors import ErrorReason
from lib.identifiers import IdentificationType
from lib.models import now_iso
from lib.workflow import RegistrationWorkflow

validation_router = APIRouter(tags=["Validation"])


@validation_router.get("/validation/health")
def validation_health():
    return {"status": "ok", "service": "validation-service", "timestamp": now_iso()}


@validation_router.post(
    "/validation/{identification_type}",
    response_model=ValidationResponse,
    responses={400: {"model": ValidationResponse}, 409: {"model": ValidationResponse}},
)
def validate_identifier(
    identification_type: str,
    body: IdentifierBody | None = None,
    workflow: RegistrationWorkflow = Depends(get_workflow),
):
    """Check an identifier before the details form is shown."""
    try:
        id_type = IdentificationType.parse(identification_type)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e

    check = workflow.check_identifier(body.identifier if body else "", id_type)
    response = ValidationResponse(
        valid=check.ok,
        message=check.message,
        reason=check.reason.value if check.reason else None,
        identifier=check.raw_identifier or None,
        identification_type=id_type.value,
        existing=RegistrationData.from_entity(check.existing) if check.existing else None,
    )
    if check.ok:
        return response

    status_code = 409 if check.reason == ErrorReason.ALREADY_REGISTERED else 400
    return JSONResponse(
        status_code=status_code, content=response.model_dump(mode="json", exclude_none=True)
    )
