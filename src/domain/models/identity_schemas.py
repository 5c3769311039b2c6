from pydantic import BaseModel, Field


class IdentityError(BaseModel):
    code: str
    description: str


class IdentityResult(BaseModel):
    """Outcome of a user directory operation."""

    succeeded: bool
    errors: list[IdentityError] = Field(default_factory=list)

    @classmethod
    def success(cls) -> "IdentityResult":
        return cls(succeeded=True)

    @classmethod
    def failed(cls, *errors: IdentityError) -> "IdentityResult":
        return cls(succeeded=False, errors=list(errors))

    @property
    def descriptions(self) -> list[str]:
        return [e.description for e in self.errors]
