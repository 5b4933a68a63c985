"""
Correlation ID middleware for request tracing.

Every request gets a correlation id (session-level, sent by the mobile
client), a request id and, for order routes, the work order id. All three
are exposed through context variables and injected into log records, so
the log lines of one field visit can be followed end to end.

Headers:
- X-Correlation-ID: Session-level ID from the client (persists across requests)
- X-Request-ID: Per-request unique identifier
"""

import re
import uuid
import logging
from contextvars import ContextVar
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

correlation_id_ctx: ContextVar[str] = ContextVar("correlation_id", default="")
request_id_ctx: ContextVar[str] = ContextVar("request_id", default="")
order_id_ctx: ContextVar[str] = ContextVar("order_id", default="")

ORDER_PATH = re.compile(r"/orders/(\d+)(?:/|$)")


def generate_id() -> str:
    """Generate a short unique ID suitable for logging."""
    return str(uuid.uuid4())[:12]


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Sets the tracing context variables and echoes the ids back as headers."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Response]
    ) -> Response:
        correlation_id = request.headers.get("X-Correlation-ID") or generate_id()
        request_id = request.headers.get("X-Request-ID") or generate_id()
        match = ORDER_PATH.search(request.url.path)

        correlation_id_ctx.set(correlation_id)
        request_id_ctx.set(request_id)
        order_id_ctx.set(match.group(1) if match else "")

        request.state.correlation_id = correlation_id
        request.state.request_id = request_id

        response = await call_next(request)

        response.headers["X-Correlation-ID"] = correlation_id
        response.headers["X-Request-ID"] = request_id
        return response


def get_correlation_id() -> str:
    return correlation_id_ctx.get() or "unknown"


def get_request_id() -> str:
    return request_id_ctx.get() or "unknown"


class CorrelationLogFilter(logging.Filter):
    """Injects correlation_id, request_id and order_id into log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id()
        record.request_id = get_request_id()
        record.order_id = order_id_ctx.get() or "-"
        return True
