"""
Middleware modules for the meter operations API.

- Correlation ID tracking, with the work order id of order routes
"""

from app.middleware.correlation import (
    CorrelationIdMiddleware,
    CorrelationLogFilter,
    get_correlation_id,
    get_request_id,
)

__all__ = [
    "CorrelationIdMiddleware",
    "CorrelationLogFilter",
    "get_correlation_id",
    "get_request_id",
]
