import logging

from fastapi import APIRouter, Depends, Query

from src.base.api.status_responder import StatusResponder
from src.base.auth.rbac import get_current_principal, require_roles
from src.base.core.dependencies import get_cache, get_user_admin_workflow
from src.base.infra.redis_cache import RedisCache
from src.base.models.api_status import ApiStatusCode
from src.base.models.principal import Principal
from src.base.models.role import RoleNames
from src.domain.models.user_schemas import UserDetailResponse, UserListEntry
from src.domain.services.list_filter import filter_collection
from src.domain.services.user_admin_service import (
    USERS_CACHE_KEY,
    UserAdministrationWorkflow,
    user_cache_key,
)

router = APIRouter(prefix="/users", tags=["Users API"])
logger = logging.getLogger(__name__)

SORTABLE_FIELDS = ("email", "first_name", "last_name", "city")


def _sort_key(field: str):
    # None sorts before any value
    return lambda entry: (getattr(entry, field) is not None, getattr(entry, field) or "")


@router.get("")
async def list_users(
    pending: bool = False,
    sort_by: str | None = None,
    sort_ascending: bool = True,
    start_row: int = Query(0, ge=0),
    page_size: int = Query(50, ge=0, le=500),
    caller: Principal = Depends(require_roles(RoleNames.ADMINISTRATOR.value)),
    workflow: UserAdministrationWorkflow = Depends(get_user_admin_workflow),
    cache: RedisCache = Depends(get_cache),
):
    """Page through users. Without ``sort_by`` the whole filtered list is returned."""
    if sort_by is not None and sort_by not in SORTABLE_FIELDS:
        return StatusResponder.respond(
            StatusResponder.error(
                ApiStatusCode.INVALID_INPUT,
                [f"Cannot sort by '{sort_by}'. Allowed: {', '.join(SORTABLE_FIELDS)}."],
            )
        )

    cached = await cache.get_json(USERS_CACHE_KEY)
    if cached is not None:
        entries = [UserListEntry.model_validate(item) for item in cached]
    else:
        users = await workflow.directory.list_accessible_to(caller)
        entries = [UserListEntry.model_validate(u) for u in users]
        await cache.set_json(USERS_CACHE_KEY, [e.model_dump(mode="json") for e in entries])

    page = filter_collection(
        entries,
        (lambda e: not e.email_confirmed) if pending else None,
        _sort_key(sort_by) if sort_by else None,
        sort_ascending,
        start_row,
        page_size,
    )
    return StatusResponder.respond(
        StatusResponder.ok(), users=[e.model_dump(mode="json") for e in page]
    )


@router.get("/{user_id}")
async def get_user(
    user_id: str,
    caller: Principal = Depends(get_current_principal),
    workflow: UserAdministrationWorkflow = Depends(get_user_admin_workflow),
    cache: RedisCache = Depends(get_cache),
):
    """Administrators may read any user; everyone else only their own record."""
    if caller.id != user_id and not caller.is_in_role(RoleNames.ADMINISTRATOR.value):
        logger.warning("User %s denied access to user %s", caller.id, user_id)
        return StatusResponder.respond(
            StatusResponder.error(ApiStatusCode.ACCESS_DENIED, ["Access denied."])
        )

    key = user_cache_key(user_id)
    cached = await cache.get_json(key)
    if cached is not None:
        return StatusResponder.respond(StatusResponder.ok(), user=cached)

    user = await workflow.directory.find_by_id(user_id)
    if user is None:
        return StatusResponder.respond(
            StatusResponder.error(ApiStatusCode.NOT_FOUND, [f"User '{user_id}' not found."])
        )

    roles = await workflow.directory.get_roles(user)
    fields = {f: getattr(user, f) for f in UserDetailResponse.model_fields if f != "roles"}
    detail = UserDetailResponse(**fields, roles=roles).model_dump(mode="json")
    await cache.set_json(key, detail)
    return StatusResponder.respond(StatusResponder.ok(), user=detail)


async def _set_confirmed(
    workflow: UserAdministrationWorkflow, user_id: str, confirmed: bool
):
    user = await workflow.set_confirmed(user_id, confirmed)
    if user is None:
        return StatusResponder.respond(
            StatusResponder.error(ApiStatusCode.NOT_FOUND, [f"User '{user_id}' not found."])
        )
    if confirmed:
        workflow.on_user_activated(user)
    else:
        workflow.on_user_deactivated(user)
    return StatusResponder.respond(StatusResponder.ok())


@router.post("/{user_id}/activate")
async def activate(
    user_id: str,
    caller: Principal = Depends(get_current_principal),
    workflow: UserAdministrationWorkflow = Depends(get_user_admin_workflow),
):
    return await _set_confirmed(workflow, user_id, True)


@router.post("/{user_id}/deactivate")
async def deactivate(
    user_id: str,
    caller: Principal = Depends(get_current_principal),
    workflow: UserAdministrationWorkflow = Depends(get_user_admin_workflow),
):
    return await _set_confirmed(workflow, user_id, False)
