"""
Health check system with component-level checks.
"""

import logging
import shutil
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

from lib.errors import StorageUnavailable
from lib.registry_store import RegistrationStore

logger = logging.getLogger(__name__)


class HealthStatus(Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass
class HealthCheckResult:
    name: str
    status: HealthStatus
    message: str
    latency_ms: float
    details: dict = field(default_factory=dict)


@dataclass
class HealthReport:
    status: HealthStatus
    checks: list[HealthCheckResult]
    timestamp: str

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "timestamp": self.timestamp,
            "checks": [
                {
                    "name": c.name,
                    "status": c.status.value,
                    "message": c.message,
                    "latency_ms": c.latency_ms,
                    **c.details,
                }
                for c in self.checks
            ],
        }


class HealthChecker:
    """
    Health check orchestrator.

    Usage:
        checker = HealthChecker(store)
        checker.add_check("extra", check_fn)
        report = checker.run_all()
    """

    def __init__(self, store: RegistrationStore):
        self.store = store
        self._checks: dict[str, Callable[[], HealthCheckResult]] = {}
        self.add_check("store", self._check_store)
        self.add_check("disk_space", self._check_disk_space)

    def add_check(self, name: str, check_fn: Callable[[], HealthCheckResult]) -> None:
        """Register a health check function."""
        self._checks[name] = check_fn

    def run_all(self) -> HealthReport:
        """Run all health checks and return aggregated report."""
        results = []
        overall_status = HealthStatus.HEALTHY

        for name, check_fn in self._checks.items():
            start = time.monotonic()
            try:
                result = check_fn()
            except Exception as e:
                logger.error(f"Health check '{name}' failed with exception", exc_info=e)
                result = HealthCheckResult(
                    name=name,
                    status=HealthStatus.UNHEALTHY,
                    message=f"Check failed: {e}",
                    latency_ms=0,
                )

            result.latency_ms = (time.monotonic() - start) * 1000
            results.append(result)

            # Worst wins
            if result.status == HealthStatus.UNHEALTHY:
                overall_status = HealthStatus.UNHEALTHY
            elif (
                result.status == HealthStatus.DEGRADED and overall_status != HealthStatus.UNHEALTHY
            ):
                overall_status = HealthStatus.DEGRADED

        return HealthReport(
            status=overall_status,
            checks=results,
            timestamp=datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
        )

    def _check_store(self) -> HealthCheckResult:
        """Check the registration store is readable."""
        try:
            count = self.store.count()
        except StorageUnavailable as e:
            return HealthCheckResult(
                name="store",
                status=HealthStatus.UNHEALTHY,
                message=f"Store error: {e}",
                latency_ms=0,
                details={"backend": self.store.backend},
            )
        return HealthCheckResult(
            name="store",
            status=HealthStatus.HEALTHY,
            message="Store readable",
            latency_ms=0,
            details={"backend": self.store.backend, "registrations": count},
        )

    def _check_disk_space(self) -> HealthCheckResult:
        """Check disk space where the store lives."""
        parent = self.store.path.parent
        target = parent if parent.exists() else self.store.path.anchor
        total, used, free = shutil.disk_usage(str(target))
        percent_used = (used / total) * 100 if total > 0 else 0

        details = {
            "free_bytes": free,
            "percent_used": round(percent_used, 2),
        }

        if percent_used > 95:
            logger.error(f"Disk space critical: {percent_used:.1f}% used")
            return HealthCheckResult(
                name="disk_space",
                status=HealthStatus.UNHEALTHY,
                message=f"Disk space critical: {percent_used:.1f}% used",
                latency_ms=0,
                details=details,
            )
        if percent_used > 90:
            logger.warning(f"Disk space degraded: {percent_used:.1f}% used")
            return HealthCheckResult(
                name="disk_space",
                status=HealthStatus.DEGRADED,
                message=f"Disk space degraded: {percent_used:.1f}% used",
                latency_ms=0,
                details=details,
            )

        return HealthCheckResult(
            name="disk_space",
            status=HealthStatus.HEALTHY,
            message=f"Disk space OK: {percent_used:.1f}% used",
            latency_ms=0,
            details=details,
        )
