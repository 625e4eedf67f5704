"""
NIT Registry API Server - REST API for the registration client.
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.dependencies import get_registry_store
from api.registration_router import registration_router
from api.response_models import ErrorResponse, HealthResponse
from api.validation_router import validation_router
from lib import config
from lib.errors import StorageUnavailable
from lib.models import now_iso
from lib.observability.health import HealthChecker, HealthStatus
from lib.observability.logging import configure_logging
from lib.observability.middleware import CorrelationIdMiddleware
from lib.registry_store import RegistrationStore, get_store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the configured store once, before the first request."""
    store = get_store()
    logger.info("=== NIT Registry Startup ===")
    logger.info(f"Store backend: {store.backend}")
    logger.info(f"Store path: {store.path}")
    yield


# FastAPI app initialization
app = FastAPI(
    title="NIT Registry API",
    description="Register a business entity once per identification number",
    version=config.SERVICE_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(CorrelationIdMiddleware)

app.include_router(validation_router, prefix="/api")
app.include_router(registration_router, prefix="/api")


# ==== Error Handlers ====


@app.exception_handler(StorageUnavailable)
async def storage_unavailable_handler(request: Request, exc: StorageUnavailable):
    """Storage failures are server-side, never a user-input error."""
    logger.error(f"Storage unavailable during {request.method} {request.url.path}: {exc}")
    body = ErrorResponse(
        message=f"Registration store unavailable ({exc.operation})",
        reason=exc.reason.value,
    )
    return JSONResponse(status_code=500, content=body.model_dump(exclude_none=True))


# ==== Health Endpoints ====


@app.get("/api/health", response_model=HealthResponse)
def health(store: RegistrationStore = Depends(get_registry_store)):
    """Liveness probe."""
    return HealthResponse(
        status="ok",
        service=config.SERVICE_NAME,
        version=config.SERVICE_VERSION,
        timestamp=now_iso(),
        backend=store.backend,
    )


@app.get("/api/health/ready")
def readiness(store: RegistrationStore = Depends(get_registry_store)):
    """Component checks; 503 when any of them is unhealthy."""
    report = HealthChecker(store).run_all()
    status_code = 503 if report.status == HealthStatus.UNHEALTHY else 200
    return JSONResponse(status_code=status_code, content=report.to_dict())


def run(host: str = config.HOST, port: int = config.PORT) -> None:
    """Serve the API with uvicorn."""
    configure_logging(config.LOG_LEVEL, config.LOG_JSON)
    uvicorn.run(app, host=host, port=port, log_config=None)


if __name__ == "__main__":
    run()
