"""
Tests for observability modules.

Covers:
- Logging: JSONFormatter, HumanFormatter, registry fields, configure_logging
- Request ids: RequestContext, CorrelationIdMiddleware propagation
- Health: HealthChecker store and disk checks
"""

import asyncio
import json
import logging
from collections import namedtuple
from unittest.mock import patch

import pytest

from lib.errors import StorageUnavailable
from lib.observability.health import HealthChecker, HealthCheckResult, HealthStatus
from lib.observability.logging import HumanFormatter, JSONFormatter, configure_logging
from lib.observability.middleware import (
    CorrelationIdMiddleware,
    RequestContext,
    generate_request_id,
    get_request_id,
)


def make_record(msg="Registered 900674335", level=logging.INFO, exc_info=None):
    return logging.LogRecord(
        name="lib.workflow",
        level=level,
        pathname="workflow.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )


# =============================================================================
# LOGGING - JSON FORMATTER TESTS
# =============================================================================


class TestJSONFormatter:
    """Tests for JSONFormatter."""

    def test_json_formatter_basic(self):
        """JSONFormatter should output valid JSON."""
        data = json.loads(JSONFormatter().format(make_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "lib.workflow"
        assert data["message"] == "Registered 900674335"
        assert data["timestamp"].endswith("Z")

    def test_json_formatter_includes_request_id(self):
        """JSONFormatter should include request_id from context."""
        with RequestContext(request_id="req-test123"):
            data = json.loads(JSONFormatter().format(make_record()))
        assert data["request_id"] == "req-test123"

    def test_json_formatter_no_request_id_when_not_set(self):
        data = json.loads(JSONFormatter().format(make_record()))
        assert "request_id" not in data

    def test_registry_fields_top_level_in_order(self):
        record = make_record()
        record.normalized_identifier = "900674335"
        record.backend = "sqlite"
        record.operation = "insert_if_absent"

        data = json.loads(JSONFormatter().format(record))

        assert data["backend"] == "sqlite"
        assert data["normalized_identifier"] == "900674335"
        keys = list(data)
        assert keys.index("operation") < keys.index("backend") < keys.index("normalized_identifier")
        assert "extra" not in data

    def test_other_extras_nested(self):
        """Unknown extras go under "extra" and cannot shadow fixed keys."""
        record = make_record()
        record.level_hint = "x"

        data = json.loads(JSONFormatter().format(record))

        assert data["level"] == "INFO"
        assert data["extra"] == {"level_hint": "x"}

    def test_store_conflict_log_carries_registry_fields(
        self, json_store, entity_factory, caplog
    ):
        """A conflict logged by the store renders with its backend and key."""
        json_store.insert_if_absent(entity_factory())
        with caplog.at_level(logging.WARNING, logger="lib.registry_store"):
            json_store.insert_if_absent(entity_factory("900-674-335"))

        record = next(
            r for r in caplog.records if r.getMessage().startswith("Registration conflict")
        )
        data = json.loads(JSONFormatter().format(record))

        assert data["operation"] == "insert_if_absent"
        assert data["backend"] == "json"
        assert data["normalized_identifier"] == "900674335"

    def test_storage_failure_log_names_operation(self, tmp_path, caplog):
        from lib.registry_store import JsonFileStore

        path = tmp_path / "registrations.json"
        path.write_text("{}")
        with caplog.at_level(logging.ERROR, logger="lib.registry_store"):
            with pytest.raises(StorageUnavailable):
                JsonFileStore(path)

        data = json.loads(JSONFormatter().format(caplog.records[-1]))
        assert data["operation"] == "open"
        assert data["backend"] == "json"

    def test_json_formatter_exception(self):
        try:
            raise StorageUnavailable("insert_if_absent", "disk full")
        except StorageUnavailable:
            import sys

            exc_info = sys.exc_info()

        record = make_record("Store failed", logging.ERROR, exc_info)
        data = json.loads(JSONFormatter().format(record))

        assert "StorageUnavailable" in data["exception"]
        assert "disk full" in data["exception"]


# =============================================================================
# LOGGING - HUMAN FORMATTER TESTS
# =============================================================================


class TestHumanFormatter:
    """Tests for HumanFormatter."""

    def test_human_formatter_basic(self):
        output = HumanFormatter().format(make_record())

        assert "[INFO]" in output
        assert "lib.workflow" in output
        assert "Registered 900674335" in output

    def test_human_formatter_includes_request_id(self):
        with RequestContext(request_id="req-test123"):
            output = HumanFormatter().format(make_record())
        assert "[req-test123]" in output

    def test_registry_fields_appended(self):
        record = make_record()
        record.backend = "json"
        record.operation = "seed"
        record.count = 3

        output = HumanFormatter().format(record)

        assert output.endswith("(operation=seed backend=json count=3)")

    def test_no_suffix_without_registry_fields(self):
        assert HumanFormatter().format(make_record()).endswith("Registered 900674335")


class TestConfigureLogging:
    """configure_logging installs exactly one root handler."""

    @pytest.fixture(autouse=True)
    def restore_root(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_json_handler(self):
        configure_logging("DEBUG", json_format=True)
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)

    def test_human_handler_and_repeat_calls(self):
        configure_logging("INFO", json_format=False)
        configure_logging("WARNING", json_format=False)
        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, HumanFormatter)


# =============================================================================
# REQUEST IDS
# =============================================================================


class TestRequestContext:
    def test_request_context_manager(self):
        """RequestContext should restore the previous id on exit."""
        initial_id = get_request_id()

        with RequestContext(request_id="req-test123") as ctx:
            assert ctx.request_id == "req-test123"
            assert get_request_id() == "req-test123"

        assert get_request_id() == initial_id

    def test_generated_when_not_given(self):
        with RequestContext() as ctx:
            assert ctx.request_id.startswith("req-")
            assert get_request_id() == ctx.request_id

    def test_request_id_generation(self):
        rid = generate_request_id()
        assert rid.startswith("req-")
        assert len(rid) == len("req-") + 16
        assert generate_request_id() != rid


# =============================================================================
# MIDDLEWARE TESTS
# =============================================================================


def run_middleware(headers=None, scope_type="http"):
    """Drive the middleware with a bare ASGI app; return (seen request id, sent messages)."""
    seen = {}
    sent = []

    async def inner_app(scope, receive, send):
        seen["request_id"] = get_request_id()
        if scope["type"] == "http":
            await send({"type": "http.response.start", "status": 200, "headers": []})
            await send({"type": "http.response.body", "body": b"ok"})

    async def receive():
        return {"type": "http.request", "body": b""}

    async def send(message):
        sent.append(message)

    scope = {"type": scope_type, "headers": headers or []}
    asyncio.run(CorrelationIdMiddleware(inner_app)(scope, receive, send))
    return seen.get("request_id"), sent


class TestCorrelationIdMiddleware:
    """Tests for CorrelationIdMiddleware."""

    def test_middleware_structure(self):
        def dummy_app(scope, receive, send):
            pass

        assert CorrelationIdMiddleware(dummy_app).app == dummy_app

    def test_incoming_id_used_and_echoed(self):
        request_id, sent = run_middleware([(b"X-Request-ID", b"req-client1")])

        assert request_id == "req-client1"
        start = sent[0]
        assert (b"x-request-id", b"req-client1") in start["headers"]

    def test_id_generated_when_absent(self):
        request_id, sent = run_middleware()

        assert request_id.startswith("req-")
        assert (b"x-request-id", request_id.encode()) in sent[0]["headers"]

    def test_context_cleared_after_request(self):
        run_middleware([(b"x-request-id", b"req-client1")])
        assert get_request_id() is None

    def test_non_http_scope_passes_through(self):
        request_id, sent = run_middleware(scope_type="lifespan")
        assert request_id is None
        assert sent == []


# =============================================================================
# HEALTH
# =============================================================================

DiskUsage = namedtuple("DiskUsage", "total used free")


class TestHealthChecker:
    """Tests for HealthChecker."""

    def test_healthy_store(self, json_store, entity_factory):
        json_store.insert_if_absent(entity_factory())

        with patch("shutil.disk_usage", return_value=DiskUsage(100, 50, 50)):
            report = HealthChecker(json_store).run_all()

        assert report.status == HealthStatus.HEALTHY
        store_check = next(c for c in report.checks if c.name == "store")
        assert store_check.details == {"backend": "json", "registrations": 1}

    def test_unreadable_store_is_unhealthy(self, json_store, monkeypatch):
        def broken():
            raise StorageUnavailable("count", "disk gone")

        monkeypatch.setattr(json_store, "count", broken)
        with patch("shutil.disk_usage", return_value=DiskUsage(100, 50, 50)):
            report = HealthChecker(json_store).run_all()

        assert report.status == HealthStatus.UNHEALTHY
        assert report.to_dict()["status"] == "unhealthy"

    @pytest.mark.parametrize(
        "used,expected",
        [(50, HealthStatus.HEALTHY), (92, HealthStatus.DEGRADED), (97, HealthStatus.UNHEALTHY)],
    )
    def test_disk_space_thresholds(self, json_store, used, expected):
        with patch("shutil.disk_usage", return_value=DiskUsage(100, used, 100 - used)):
            report = HealthChecker(json_store).run_all()

        disk = next(c for c in report.checks if c.name == "disk_space")
        assert disk.status == expected
        assert report.status == expected

    def test_raising_check_is_unhealthy(self, json_store):
        checker = HealthChecker(json_store)

        def explode() -> HealthCheckResult:
            raise RuntimeError("boom")

        checker.add_check("extra", explode)
        with patch("shutil.disk_usage", return_value=DiskUsage(100, 50, 50)):
            report = checker.run_all()

        extra = next(c for c in report.checks if c.name == "extra")
        assert extra.status == HealthStatus.UNHEALTHY
        assert "boom" in extra.message
        assert report.status == HealthStatus.UNHEALTHY
