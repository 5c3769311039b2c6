import logging
import uuid
from contextvars import ContextVar

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

CORRELATION_HEADER = "x-correlation-id"
MAX_CORRELATION_ID_LENGTH = 128

# Context variable to store correlation ID
correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")

logger = logging.getLogger(__name__)


def _resolve_correlation_id(request: Request) -> str:
    value = request.headers.get(CORRELATION_HEADER, "").strip()
    if not value or len(value) > MAX_CORRELATION_ID_LENGTH:
        return str(uuid.uuid4())
    return value


class CorrelationMiddleware(BaseHTTPMiddleware):
    """Middleware to add correlation ID to each request for better log tracing."""

    async def dispatch(self, request: Request, call_next):
        correlation_id_value = _resolve_correlation_id(request)
        token = correlation_id.set(correlation_id_value)
        request.state.correlation_id = correlation_id_value

        try:
            logger.debug("Handling %s %s", request.method, request.url.path)
            response: Response = await call_next(request)
        finally:
            correlation_id.reset(token)

        response.headers[CORRELATION_HEADER] = correlation_id_value
        return response


class CorrelationFilter(logging.Filter):
    """Logging filter to add correlation ID to log records."""

    def filter(self, record):
        record.correlation_id = correlation_id.get("") or "-"
        return True
