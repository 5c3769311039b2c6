import logging
from collections.abc import Iterable, Sequence

from src.base.models.principal import Principal
from src.base.models.role import RoleNames

logger = logging.getLogger(__name__)


def allowed_manage_roles(caller: Principal) -> set[str]:
    """Roles the caller may grant or revoke."""
    if caller.is_in_role(RoleNames.ADMINISTRATOR.value):
        return {RoleNames.ADMINISTRATOR.value}
    return set()


def sanitize_roles(requested: Iterable[str], caller: Principal) -> list[str]:
    """Keep only the requested roles the caller may manage.

    Disallowed names are dropped, not rejected. Order of first request is kept.
    """
    allowed = allowed_manage_roles(caller)
    result: list[str] = []
    for role in requested:
        if role in allowed:
            if role not in result:
                result.append(role)
        else:
            logger.debug("Dropping role %r not manageable by %s", role, caller.id)
    return result


def compute_role_delta(
    current: Sequence[str], target: Sequence[str]
) -> tuple[list[str], list[str]]:
    """Return ``(to_add, to_remove)`` turning ``current`` into ``target``."""
    current_set = set(current)
    target_set = set(target)
    to_add = [r for r in dict.fromkeys(target) if r not in current_set]
    to_remove = [r for r in dict.fromkeys(current) if r not in target_set]
    return to_add, to_remove
