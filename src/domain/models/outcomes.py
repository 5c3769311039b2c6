from typing import Any, Union

from pydantic import BaseModel, Field


class Redirect(BaseModel):
    location: str


class FormView(BaseModel):
    """A view to (re-)render with its model and accumulated errors."""

    view: str
    model: dict[str, Any] = Field(default_factory=dict)
    errors: list[str] = Field(default_factory=list)


Outcome = Union[Redirect, FormView]
