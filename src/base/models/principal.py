"""
Principal module.

This module defines the authorization context of a request: the authenticated
caller, populated from bearer token claims and passed explicitly to every
user administration operation.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Principal(BaseModel):
    """
    Represents the authenticated caller of a request.

    Attributes:
        id: The unique identifier of the caller (from the 'sub' claim)
        email: The caller's email address (from 'email' or 'preferred_username' claim)
        name: The caller's display name (from 'name' claim)
        roles: Role memberships of the caller (from 'roles' claim)
    """

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "id": "12345678-1234-1234-1234-123456789012",
                "email": "admin@example.com",
                "name": "Jane Doe",
                "roles": ["Administrator"],
            }
        },
    )

    id: str = Field(..., description="Unique identifier of the caller")
    email: str | None = Field(None, description="Caller's email address")
    name: str | None = Field(None, description="Caller's display name")
    roles: list[str] = Field(default_factory=list, description="Roles held by the caller")

    def is_in_role(self, role_name: str) -> bool:
        return role_name in self.roles

    @classmethod
    def from_claims(cls, claims: dict[str, Any]) -> "Principal":
        roles = claims.get("roles") or []
        if isinstance(roles, str):
            roles = [roles]
        return cls(
            id=str(claims["sub"]),
            email=claims.get("email") or claims.get("preferred_username"),
            name=claims.get("name"),
            roles=list(roles),
        )
