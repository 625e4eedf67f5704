"""
Log formatting for the registry: JSON for deployments, one-line text for terminals.

The store and the workflow attach registry fields through `extra=`:

    logger.warning(
        "Registration conflict",
        extra={"operation": "insert_if_absent", "backend": "json",
               "normalized_identifier": "900674335"},
    )

Those fields are rendered first-class by both formatters, together with the
request id of the HTTP request being handled. Identifiers only ever appear
in normalized form.
"""

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

from .middleware import get_request_id

REGISTRY_FIELDS = (
    "operation",
    "backend",
    "normalized_identifier",
    "registration_id",
    "reason",
    "count",
)
"""Fields the registry logs, in the order they are rendered."""

_STANDARD_ATTRS = frozenset(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {
    "message",
    "asctime",
}


def registry_fields(record: logging.LogRecord) -> dict[str, Any]:
    """Registry fields present on the record, in REGISTRY_FIELDS order."""
    return {name: getattr(record, name) for name in REGISTRY_FIELDS if hasattr(record, name)}


def _other_extras(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _STANDARD_ATTRS and key not in REGISTRY_FIELDS
    }


class JSONFormatter(logging.Formatter):
    """
    One JSON object per line.

    {"timestamp": "...Z", "level": "WARNING", "logger": "lib.registry_store",
     "message": "Registration conflict", "request_id": "req-...",
     "operation": "insert_if_absent", "backend": "json",
     "normalized_identifier": "900674335"}

    Extras that are not registry fields go under "extra" so they can never
    shadow the fixed keys.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_obj: dict[str, Any] = {
            "timestamp": datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = get_request_id()
        if request_id:
            log_obj["request_id"] = request_id

        log_obj.update(registry_fields(record))

        extra = _other_extras(record)
        if extra:
            log_obj["extra"] = extra

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_obj, default=str)


class HumanFormatter(logging.Formatter):
    """One line per record, registry fields appended as key=value pairs in parentheses."""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        request_id = get_request_id()
        rid_str = f"[{request_id[:12]}] " if request_id else ""
        line = f"{timestamp} [{record.levelname}] {record.name}: {rid_str}{record.getMessage()}"

        fields = registry_fields(record)
        if fields:
            line += " (" + " ".join(f"{k}={v}" for k, v in fields.items()) + ")"

        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(level: str = "INFO", json_format: bool | None = None) -> None:
    """
    Install a single stderr handler on the root logger.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON format. If None, JSON when stderr is not a TTY.
    """
    if json_format is None:
        json_format = not sys.stderr.isatty()

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if json_format else HumanFormatter())
    root_logger.addHandler(handler)
