import logging
import os
from typing import Any, Dict, Iterable

from jose import JWTError, jwt

from src.base.models.principal import Principal

logger = logging.getLogger(__name__)


def _get_jwt_settings() -> tuple[str, str, str | None]:
    secret = os.getenv("JWT_SECRET_KEY")
    if not secret:
        raise RuntimeError("JWT_SECRET_KEY must be set")
    algorithm = os.getenv("JWT_ALGORITHM", "HS256")
    audience = os.getenv("JWT_AUDIENCE") or None
    return secret, algorithm, audience


def validate_jwt_token(token: str) -> Dict[str, Any]:
    """
    Validates a JWT and returns claims (raises JWTError/ExpiredSignatureError if invalid).
    """
    logger.debug("Starting JWT token validation")
    secret, algorithm, audience = _get_jwt_settings()

    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            audience=audience,
            options={"verify_aud": audience is not None},
        )
    except JWTError as e:
        logger.error(f"JWT validation failed: {e}")
        raise

    if not payload.get("sub"):
        logger.error("JWT has no subject claim")
        raise JWTError("Token has no subject")

    logger.info("JWT validated successfully")
    return payload


def check_roles(principal: Principal, required_roles: Iterable[str] = ()) -> bool:
    """
    Check that the principal holds every required role.
    """
    result = all(principal.is_in_role(role) for role in required_roles)

    if result:
        logger.info("Authorization successful")
    else:
        logger.warning("Authorization failed for principal %s", principal.id)

    return result
