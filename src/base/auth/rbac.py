import logging

from fastapi import HTTPException, Request, status

from src.base.auth.auth_core import check_roles
from src.base.models.principal import Principal

logger = logging.getLogger(__name__)


def get_current_principal(request: Request) -> Principal:
    """Dependency returning the authenticated caller or raising 401."""
    principal: Principal | None = getattr(request.state, "user", None)
    if principal is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated"
        )
    return principal


def require_roles(*required_roles: str):
    """
    Dependency for FastAPI endpoints that enforces role membership.
    """

    def checker(request: Request) -> Principal:
        principal = get_current_principal(request)

        if not check_roles(principal, required_roles):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Forbidden: insufficient roles",
            )

        return principal

    return checker
