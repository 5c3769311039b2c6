import logging
from typing import Any
from urllib.parse import urlsplit

from fastapi import APIRouter, Body, Depends, Request, status
from fastapi.responses import JSONResponse, RedirectResponse

from src.base.auth.rbac import get_current_principal, require_roles
from src.base.core.dependencies import get_user_admin_workflow
from src.base.models.principal import Principal
from src.base.models.role import RoleNames
from src.domain.models.outcomes import Outcome, Redirect
from src.domain.services.user_admin_service import UserAdministrationWorkflow

router = APIRouter(prefix="/users", tags=["Users"])
logger = logging.getLogger(__name__)


def same_site_referrer(request: Request) -> str | None:
    """The Referer header when it points back to this host, else None."""
    referrer = request.headers.get("referer")
    if not referrer:
        return None
    parts = urlsplit(referrer)
    if parts.netloc and parts.netloc != request.url.netloc:
        logger.warning("Ignoring foreign referrer %s", referrer)
        return None
    return referrer


def render(outcome: Outcome):
    """Redirects become 303 responses; form views are returned as JSON."""
    if isinstance(outcome, Redirect):
        return RedirectResponse(outcome.location, status_code=status.HTTP_303_SEE_OTHER)
    return JSONResponse(status_code=status.HTTP_200_OK, content=outcome.model_dump(mode="json"))


@router.get("")
async def index(
    caller: Principal = Depends(require_roles(RoleNames.ADMINISTRATOR.value)),
    workflow: UserAdministrationWorkflow = Depends(get_user_admin_workflow),
):
    """List of all users accessible to the caller (administrators only)."""
    return render(await workflow.list_users(caller))


@router.get("/pending")
async def pending(
    caller: Principal = Depends(get_current_principal),
    workflow: UserAdministrationWorkflow = Depends(get_user_admin_workflow),
):
    """Users waiting for approval of their registration."""
    return render(await workflow.list_pending(caller))


@router.get("/create")
async def create_form(
    caller: Principal = Depends(get_current_principal),
    workflow: UserAdministrationWorkflow = Depends(get_user_admin_workflow),
):
    return render(workflow.new_user_form())


@router.post("/create")
async def create(
    payload: dict[str, Any] = Body(...),
    caller: Principal = Depends(get_current_principal),
    workflow: UserAdministrationWorkflow = Depends(get_user_admin_workflow),
):
    return render(await workflow.create_user(payload, caller))


@router.get("/{user_id}/edit")
async def edit_form(
    user_id: str,
    caller: Principal = Depends(get_current_principal),
    workflow: UserAdministrationWorkflow = Depends(get_user_admin_workflow),
):
    return render(await workflow.edit_user_form(user_id))


@router.post("/edit")
async def edit(
    payload: dict[str, Any] = Body(...),
    caller: Principal = Depends(get_current_principal),
    workflow: UserAdministrationWorkflow = Depends(get_user_admin_workflow),
):
    return render(await workflow.edit_user(payload, caller))


@router.get("/{user_id}/delete")
async def delete_form(
    user_id: str,
    caller: Principal = Depends(get_current_principal),
    workflow: UserAdministrationWorkflow = Depends(get_user_admin_workflow),
):
    return render(await workflow.delete_user_form(user_id))


@router.post("/delete")
async def delete(
    payload: dict[str, Any] = Body(...),
    caller: Principal = Depends(get_current_principal),
    workflow: UserAdministrationWorkflow = Depends(get_user_admin_workflow),
):
    logger.info("Delete requested by %s", caller.id)
    return render(await workflow.delete_user(payload))


@router.post("/{user_id}/activate")
async def activate(
    user_id: str,
    request: Request,
    caller: Principal = Depends(get_current_principal),
    workflow: UserAdministrationWorkflow = Depends(get_user_admin_workflow),
):
    """Activate the user and return to the page the action was invoked from."""
    return render(await workflow.activate_user(user_id, same_site_referrer(request)))


@router.post("/{user_id}/deactivate")
async def deactivate(
    user_id: str,
    request: Request,
    caller: Principal = Depends(get_current_principal),
    workflow: UserAdministrationWorkflow = Depends(get_user_admin_workflow),
):
    return render(await workflow.deactivate_user(user_id, same_site_referrer(request)))
