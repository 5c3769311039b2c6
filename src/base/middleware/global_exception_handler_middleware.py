import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from src.base.api.status_responder import StatusResponder
from src.base.models.api_status import ApiStatusCode

logger = logging.getLogger(__name__)


class GlobalExceptionHandlerMiddleware(BaseHTTPMiddleware):
    """
    Middleware that turns unhandled exceptions into an UNEXPECTED_ERROR envelope.
    """

    def __init__(self, app: ASGIApp):
        super().__init__(app)

    async def dispatch(self, request: Request, call_next):
        try:
            response = await call_next(request)
            return response

        except Exception as ex:
            return await self._handle_exception(request, ex)

    # ------------------------
    # Internal helpers
    # ------------------------
    async def _handle_exception(self, request: Request, ex: Exception):
        logger.error(
            "Unhandled exception occurred",
            exc_info=ex,
            extra={"path": str(request.url)},
        )

        envelope = StatusResponder.error(
            ApiStatusCode.UNEXPECTED_ERROR, [f"{ex.__class__.__name__}: {ex}"]
        )
        return JSONResponse(content=envelope.model_dump(mode="json"), status_code=500)
