"""
Request id tracking: a context variable plus the ASGI middleware that sets it.

Every log line written while a request is handled carries its id, so a
rejected or conflicting registration can be traced from the access log to
the store.
"""

import contextvars
import logging
import uuid

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = b"x-request-id"

_request_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)


def get_request_id() -> str | None:
    return _request_id_var.get()


def generate_request_id() -> str:
    return f"req-{uuid.uuid4().hex[:16]}"


class RequestContext:
    """
    Scope a request id to a block; the previous id is restored on exit.

    Usage:
        with RequestContext(request_id="req-abc123"):
            store.insert_if_absent(entity)
    """

    def __init__(self, request_id: str | None = None):
        self.request_id = request_id or generate_request_id()
        self._token: contextvars.Token | None = None

    def __enter__(self) -> "RequestContext":
        self._token = _request_id_var.set(self.request_id)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._token is not None:
            _request_id_var.reset(self._token)
            self._token = None


def _header_request_id(scope) -> str | None:
    for key, value in scope.get("headers", []):
        if key.lower() != REQUEST_ID_HEADER:
            continue
        try:
            return value.decode("utf-8").strip() or None
        except UnicodeDecodeError as e:
            logger.warning(f"Could not decode X-Request-ID header: {e}")
            return None
    return None


class CorrelationIdMiddleware:
    """
    Reuse the caller's X-Request-ID or mint one, and echo it on the response.

    Usage in server.py:
        app.add_middleware(CorrelationIdMiddleware)
    """

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = _header_request_id(scope) or generate_request_id()

        async def send_with_request_id(message):
            if message["type"] == "http.response.start":
                headers = list(message.get("headers", []))
                headers.append((REQUEST_ID_HEADER, request_id.encode("utf-8")))
                message["headers"] = headers
            await send(message)

        with RequestContext(request_id=request_id):
            await self.app(scope, receive, send_with_request_id)
