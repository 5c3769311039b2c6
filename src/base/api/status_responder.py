from collections.abc import Iterable
from typing import Any

from fastapi import status
from fastapi.responses import JSONResponse

from src.base.models.api_status import ApiStatusCode, ApiStatusResponse


class StatusResponder:
    """Builds the uniform ``{code, errors}`` envelope returned by API endpoints.

    The transport status is always 200; clients inspect ``code``.
    """

    @staticmethod
    def ok(code: ApiStatusCode = ApiStatusCode.OK) -> ApiStatusResponse:
        return ApiStatusResponse(code=code)

    @staticmethod
    def error(code: ApiStatusCode, errors: Iterable[Any]) -> ApiStatusResponse:
        """Envelope carrying error messages in input order.

        Elements may be plain strings or identity errors exposing a
        ``description`` attribute.
        """
        return ApiStatusResponse(
            code=code,
            errors=[getattr(e, "description", e) for e in errors],
        )

    @staticmethod
    def respond(envelope: ApiStatusResponse, **payload: Any) -> JSONResponse:
        """Serialize the envelope, with any result fields placed beside ``code``."""
        content = envelope.model_dump(mode="json")
        content.update(payload)
        return JSONResponse(status_code=status.HTTP_200_OK, content=content)
