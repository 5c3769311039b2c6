from enum import IntEnum

from pydantic import BaseModel, ConfigDict, Field


class ApiStatusCode(IntEnum):
    """Application-level status carried inside every API envelope."""

    OK = 0
    INVALID_INPUT = 1
    NOT_FOUND = 2
    ACCESS_DENIED = 3
    OPERATION_FAILED = 4
    UNEXPECTED_ERROR = 5


class ApiStatusResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: ApiStatusCode
    errors: list[str] = Field(default_factory=list)
