"""
Centralized configuration for the NIT registry.

All values that vary by deployment belong here.
Override via environment variables where marked.
"""

import os

# ============================================================
# Service
# ============================================================

SERVICE_NAME: str = "nit-registry-api"
"""Name reported by the health endpoints."""

SERVICE_VERSION: str = "1.0.0"

HOST: str = os.environ.get("NIT_REGISTRY_HOST", "127.0.0.1")
"""Bind address for `cli.main serve`."""

PORT: int = int(os.environ.get("NIT_REGISTRY_PORT", "3001"))
"""Bind port for `cli.main serve`."""

CORS_ORIGINS: list[str] = [
    o.strip() for o in os.environ.get("CORS_ORIGINS", "*").split(",") if o.strip()
]
"""Allowed CORS origins. Dev default allows all; set a comma-separated list in production."""

# ============================================================
# Storage
# ============================================================

STORE_BACKENDS: tuple[str, ...] = ("json", "sqlite")

ENV_BACKEND = "NIT_REGISTRY_BACKEND"


def store_backend() -> str:
    """Configured store backend, read at call time so startup picks up the environment."""
    backend = os.environ.get(ENV_BACKEND, "json").strip().lower()
    if backend not in STORE_BACKENDS:
        raise ValueError(
            f"Unknown {ENV_BACKEND}={backend!r}; expected one of {', '.join(STORE_BACKENDS)}"
        )
    return backend


# ============================================================
# Logging
# ============================================================

LOG_LEVEL: str = os.environ.get("NIT_REGISTRY_LOG_LEVEL", "INFO")

_log_json = os.environ.get("NIT_REGISTRY_LOG_JSON", "auto").strip().lower()
LOG_JSON: bool | None = None if _log_json == "auto" else _log_json in ("1", "true", "yes")
"""None means auto-detect: JSON when stderr is not a TTY."""

# ============================================================
# Registration rules
# ============================================================

NIT_MIN_DIGITS: int = 8
NIT_MAX_DIGITS: int = 10
"""NIT body length; one trailing check digit may follow."""

PHONE_MIN_LENGTH: int = 7
