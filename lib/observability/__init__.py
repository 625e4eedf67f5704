"""
Observability module: log formatting, request ids, health checks.

Usage:
    from lib.observability import configure_logging, HealthChecker

    configure_logging("INFO", json_format=True)
    report = HealthChecker(store).run_all()
"""

from .health import HealthChecker, HealthCheckResult, HealthReport, HealthStatus
from .logging import REGISTRY_FIELDS, HumanFormatter, JSONFormatter, configure_logging
from .middleware import CorrelationIdMiddleware, RequestContext, generate_request_id, get_request_id

__all__ = [
    # Logging
    "configure_logging",
    "JSONFormatter",
    "HumanFormatter",
    "REGISTRY_FIELDS",
    # Request ids
    "CorrelationIdMiddleware",
    "RequestContext",
    "generate_request_id",
    "get_request_id",
    # Health
    "HealthChecker",
    "HealthCheckResult",
    "HealthReport",
    "HealthStatus",
]
