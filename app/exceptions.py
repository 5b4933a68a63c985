"""
RFC 7807 Problem Details exception handling.

Standardized error responses for the meter operations API. Order execution
failures map onto these as follows:

- finalize precondition not met      -> 422 (reason code + redirect step)
- edit of a closed (read-only) order -> 409
- backend rejected a save or status  -> 502

See: https://datatracker.ietf.org/doc/html/rfc7807
"""

from typing import Optional, Dict, Any, List
from enum import Enum
from pydantic import BaseModel, Field
from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging
import traceback
import uuid
from datetime import datetime, timezone

from app.middleware.correlation import get_request_id

logger = logging.getLogger(__name__)

PROBLEM_BASE_URL = "https://api.meter-ops.local/problems"


def _get_trace_id() -> str:
    """Get trace ID from correlation context or generate a new one."""
    request_id = get_request_id()
    if request_id and request_id != "unknown":
        return request_id
    return str(uuid.uuid4())[:12]


def _timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class ErrorCode(str, Enum):
    """Standardized error codes."""

    # Authentication
    UNAUTHORIZED = "AUTH_001"
    FORBIDDEN = "AUTH_002"

    # Validation
    VALIDATION_ERROR = "VAL_001"
    FINALIZATION_BLOCKED = "VAL_005"

    # Resource
    NOT_FOUND = "RES_001"
    CONFLICT = "RES_003"

    # Business Logic
    ORDER_READ_ONLY = "BIZ_004"

    # External Services
    EXTERNAL_SERVICE_ERROR = "EXT_001"
    ORDER_STORE_ERROR = "EXT_007"

    # Server
    INTERNAL_ERROR = "SRV_001"
    SERVICE_UNAVAILABLE = "SRV_002"


class ProblemDetail(BaseModel):
    """
    RFC 7807 Problem Details response schema.

    Attributes:
        type: URI reference identifying the problem type
        title: Short, human-readable summary
        status: HTTP status code
        detail: Human-readable explanation specific to this occurrence
        instance: URI reference identifying this specific occurrence
        code: Machine-readable error code for client handling
        timestamp: ISO 8601 timestamp of when the error occurred
        trace_id: Unique identifier for tracing in logs
        errors: Field-level or reason-level details
    """

    type: str = Field(default="about:blank")
    title: str
    status: int
    detail: str
    instance: Optional[str] = None
    code: str
    timestamp: str
    trace_id: str
    errors: Optional[List[Dict[str, Any]]] = None


class ApiException(HTTPException):
    """
    Base exception for the API with RFC 7807 support.

    Usage:
        raise ApiException(
            status_code=404,
            code=ErrorCode.NOT_FOUND,
            detail="Work order not found",
        )
    """

    def __init__(
        self,
        status_code: int,
        code: ErrorCode,
        detail: str,
        title: Optional[str] = None,
        instance: Optional[str] = None,
        errors: Optional[List[Dict[str, Any]]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.code = code
        self.title = title or self._default_title(status_code)
        self.instance = instance
        self.errors = errors
        self.trace_id = _get_trace_id()
        self.timestamp = _timestamp()

        super().__init__(status_code=status_code, detail=detail, headers=headers)

    @staticmethod
    def _default_title(status_code: int) -> str:
        titles = {
            400: "Bad Request",
            401: "Unauthorized",
            403: "Forbidden",
            404: "Not Found",
            409: "Conflict",
            422: "Validation Error",
            500: "Internal Server Error",
            502: "Bad Gateway",
            503: "Service Unavailable",
        }
        return titles.get(status_code, "Error")

    def to_problem_detail(self) -> ProblemDetail:
        return ProblemDetail(
            type=_problem_type(self.code),
            title=self.title,
            status=self.status_code,
            detail=self.detail,
            instance=self.instance,
            code=self.code.value,
            timestamp=self.timestamp,
            trace_id=self.trace_id,
            errors=self.errors,
        )


def _problem_type(code: ErrorCode) -> str:
    return f"{PROBLEM_BASE_URL}/{code.name.lower().replace('_', '-')}"


# Convenience exception classes

class NotFoundError(ApiException):
    """Resource not found (404)."""

    def __init__(self, resource: str, resource_id: Any, instance: Optional[str] = None):
        super().__init__(
            status_code=404,
            code=ErrorCode.NOT_FOUND,
            detail=f"{resource} with ID {resource_id} was not found",
            instance=instance,
        )


class ValidationError(ApiException):
    """Validation error (422)."""

    def __init__(
        self,
        detail: str,
        errors: Optional[List[Dict[str, Any]]] = None,
        code: ErrorCode = ErrorCode.VALIDATION_ERROR,
    ):
        super().__init__(status_code=422, code=code, detail=detail, errors=errors)


class ConflictError(ApiException):
    """Resource conflict (409)."""

    def __init__(self, detail: str, code: ErrorCode = ErrorCode.CONFLICT):
        super().__init__(status_code=409, code=code, detail=detail)


class ExternalServiceError(ApiException):
    """External service error (502)."""

    def __init__(self, service: str, detail: str, code: ErrorCode = ErrorCode.EXTERNAL_SERVICE_ERROR):
        super().__init__(
            status_code=502,
            code=code,
            detail=f"{service} error: {detail}",
        )


class OrderReadOnlyError(ConflictError):
    """Edit attempted on an order already closed by the agent."""

    def __init__(self, order_id: int):
        super().__init__(
            detail=f"Work order {order_id} is closed and can no longer be edited",
            code=ErrorCode.ORDER_READ_ONLY,
        )


# Exception handlers for FastAPI

def create_problem_response(
    status_code: int,
    code: ErrorCode,
    detail: str,
    request: Request,
    errors: Optional[List[Dict[str, Any]]] = None,
    trace_id: Optional[str] = None,
) -> JSONResponse:
    """Create a RFC 7807 compliant JSON response."""
    problem = ProblemDetail(
        type=_problem_type(code),
        title=ApiException._default_title(status_code),
        status=status_code,
        detail=detail,
        instance=str(request.url.path),
        code=code.value,
        timestamp=_timestamp(),
        trace_id=trace_id or _get_trace_id(),
        errors=errors,
    )
    return JSONResponse(
        status_code=status_code,
        content=problem.model_dump(exclude_none=True),
        media_type="application/problem+json",
    )


def create_exception_handlers():
    """
    Create exception handlers.

    Usage in main.py:
        handlers = create_exception_handlers()
        app.add_exception_handler(ApiException, handlers["api"])
        app.add_exception_handler(RequestValidationError, handlers["validation"])
        app.add_exception_handler(Exception, handlers["generic"])
    """

    async def handle_api_exception(request: Request, exc: ApiException) -> JSONResponse:
        logger.warning(
            f"ApiException: {exc.code.value} - {exc.detail}",
            extra={"trace_id": exc.trace_id, "status_code": exc.status_code, "path": request.url.path},
        )
        problem = exc.to_problem_detail()
        problem.instance = problem.instance or str(request.url.path)
        return JSONResponse(
            status_code=exc.status_code,
            content=problem.model_dump(exclude_none=True),
            media_type="application/problem+json",
            headers=exc.headers,
        )

    async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Handle standard HTTPException with RFC 7807 response."""
        code_map = {
            400: ErrorCode.VALIDATION_ERROR,
            401: ErrorCode.UNAUTHORIZED,
            403: ErrorCode.FORBIDDEN,
            404: ErrorCode.NOT_FOUND,
            409: ErrorCode.CONFLICT,
            422: ErrorCode.VALIDATION_ERROR,
            500: ErrorCode.INTERNAL_ERROR,
            502: ErrorCode.EXTERNAL_SERVICE_ERROR,
            503: ErrorCode.SERVICE_UNAVAILABLE,
        }
        response = create_problem_response(
            status_code=exc.status_code,
            code=code_map.get(exc.status_code, ErrorCode.INTERNAL_ERROR),
            detail=str(exc.detail),
            request=request,
        )
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    async def handle_validation_exception(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Handle Pydantic validation errors with field-level details."""
        errors = [
            {
                "field": ".".join(str(loc) for loc in error["loc"]),
                "message": error["msg"],
                "type": error["type"],
            }
            for error in exc.errors()
        ]
        return create_problem_response(
            status_code=422,
            code=ErrorCode.VALIDATION_ERROR,
            detail="Request validation failed",
            request=request,
            errors=errors,
        )

    async def handle_generic_exception(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected exceptions with RFC 7807 response."""
        trace_id = _get_trace_id()
        logger.error(
            f"Unhandled exception: {type(exc).__name__}",
            extra={"trace_id": trace_id, "path": request.url.path},
        )
        logger.error(traceback.format_exc())

        # Don't expose internal details in production
        from app.config import settings
        detail = str(exc) if settings.DEBUG else "An unexpected error occurred"

        return create_problem_response(
            status_code=500,
            code=ErrorCode.INTERNAL_ERROR,
            detail=detail,
            request=request,
            trace_id=trace_id,
        )

    return {
        "api": handle_api_exception,
        "http": handle_http_exception,
        "validation": handle_validation_exception,
        "generic": handle_generic_exception,
    }
