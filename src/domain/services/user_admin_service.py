import logging
from collections.abc import Callable, Sequence
from typing import Any

from pydantic import BaseModel, ValidationError

from src.base.infra.redis_cache import RedisCache
from src.base.models.principal import Principal
from src.domain.models.entities.user import UserEntity
from src.domain.models.identity_schemas import IdentityResult
from src.domain.models.outcomes import FormView, Outcome, Redirect
from src.domain.models.user_schemas import (
    CreateUserForm,
    EditUserForm,
    UserListEntry,
    UsersListView,
)
from src.domain.services.role_policy import compute_role_delta, sanitize_roles
from src.domain.services.user_directory import UserDirectory
from src.domain.services.user_mapping import (
    apply_profile,
    create_form_to_user,
    user_to_edit_form,
)

logger = logging.getLogger(__name__)

USERS_CACHE_KEY = "users"


def user_cache_key(user_id: str) -> str:
    return f"user-{user_id}"


def validation_messages(error: ValidationError) -> list[str]:
    messages = []
    for item in error.errors():
        field = ".".join(str(part) for part in item["loc"])
        messages.append(f"{field}: {item['msg']}" if field else item["msg"])
    return messages


def _form_model(payload: dict[str, Any] | BaseModel) -> dict[str, Any]:
    data = payload.model_dump() if isinstance(payload, BaseModel) else dict(payload)
    data.pop("password", None)
    return data


class UserAdministrationWorkflow:
    """List, create, edit, delete, activate and deactivate users.

    Every operation completes with an ``Outcome``: a redirect or a form view
    carrying the accumulated errors. The caller is passed explicitly; the
    directory, the role policy and the model mappers are injected so the
    workflow can be reused with other user stores and view models.
    """

    def __init__(
        self,
        directory: UserDirectory,
        cache: RedisCache | None = None,
        *,
        sanitize: Callable[[Sequence[str], Principal], list[str]] = sanitize_roles,
        to_edit_form: Callable[[UserEntity, Sequence[str]], EditUserForm] = user_to_edit_form,
        to_user: Callable[[CreateUserForm], UserEntity] = create_form_to_user,
        list_url: str = "/users",
    ):
        self.directory = directory
        self.cache = cache
        self.sanitize = sanitize
        self.to_edit_form = to_edit_form
        self.to_user = to_user
        self.list_url = list_url

    # ------------------------
    # Listing
    # ------------------------
    async def list_users(self, caller: Principal) -> FormView:
        users = await self.directory.list_accessible_to(caller)
        return self._list_view("index", users)

    async def list_pending(self, caller: Principal) -> FormView:
        """Users still waiting for their registration to be approved."""
        users = await self.directory.list_accessible_to(caller)
        return self._list_view("pending", [u for u in users if not u.email_confirmed])

    # ------------------------
    # Create
    # ------------------------
    def new_user_form(self) -> FormView:
        return FormView(view="create", model={"email": "", "roles": []})

    async def create_user(self, payload: dict[str, Any], caller: Principal) -> Outcome:
        try:
            form = CreateUserForm.model_validate(payload)
        except ValidationError as e:
            return FormView(view="create", model=_form_model(payload), errors=validation_messages(e))

        user = self.to_user(form)
        result = await self.directory.create(user, form.password)
        if not result.succeeded:
            return FormView(view="create", model=_form_model(form), errors=result.descriptions)

        await self._invalidate(USERS_CACHE_KEY)
        logger.info("User %s created by %s", user.id, caller.id)

        form.roles = self.sanitize(form.roles, caller)
        result = await self.reconcile_roles(user, form.roles)
        if not result.succeeded:
            return FormView(view="create", model=_form_model(form), errors=result.descriptions)

        return self._to_list()

    # ------------------------
    # Edit
    # ------------------------
    async def edit_user_form(self, user_id: str) -> Outcome:
        return await self._user_form("edit", user_id)

    async def edit_user(self, payload: dict[str, Any], caller: Principal) -> Outcome:
        try:
            form = EditUserForm.model_validate(payload)
        except ValidationError as e:
            return FormView(view="edit", model=_form_model(payload), errors=validation_messages(e))

        user = await self.directory.find_by_id(form.id)
        if user is None:
            logger.info("Edit of unknown user %s, back to list", form.id)
            return self._to_list()

        errors = await self.update_user(form, user, caller)
        if errors:
            return FormView(view="edit", model=_form_model(form), errors=errors)

        logger.info("User %s updated by %s", user.id, caller.id)
        return self._to_list()

    async def update_user(
        self, form: EditUserForm, user: UserEntity, caller: Principal
    ) -> list[str]:
        """Apply the form to the user. Returns the errors, empty on success.

        The cached entries are dropped as soon as the profile is saved, even
        when the role reconciliation that follows fails.
        """
        apply_profile(form, user)
        result = await self.directory.update(user)
        if not result.succeeded:
            return result.descriptions
        await self._invalidate(USERS_CACHE_KEY, user_cache_key(form.id))

        form.roles = self.sanitize(form.roles, caller)
        result = await self.reconcile_roles(user, form.roles)
        return result.descriptions if not result.succeeded else []

    # ------------------------
    # Delete
    # ------------------------
    async def delete_user_form(self, user_id: str) -> Outcome:
        return await self._user_form("delete", user_id)

    async def delete_user(self, payload: dict[str, Any]) -> Outcome:
        user_id = str(payload.get("id") or "")
        user = await self.directory.find_by_id(user_id) if user_id else None
        if user is None:
            return self._to_list()

        result = await self.do_delete_user(user)
        if not result.succeeded:
            return FormView(view="delete", model=_form_model(payload), errors=result.descriptions)

        await self._invalidate(USERS_CACHE_KEY, user_cache_key(user_id))
        return self._to_list()

    async def do_delete_user(self, user: UserEntity) -> IdentityResult:
        return await self.directory.delete(user)

    # ------------------------
    # Activation
    # ------------------------
    async def activate_user(self, user_id: str, referrer: str | None = None) -> Outcome:
        user = await self.set_confirmed(user_id, True)
        if user is None:
            return self._to_list()
        self.on_user_activated(user)
        return self._back_to(referrer)

    async def deactivate_user(self, user_id: str, referrer: str | None = None) -> Outcome:
        user = await self.set_confirmed(user_id, False)
        if user is None:
            return self._to_list()
        self.on_user_deactivated(user)
        return self._back_to(referrer)

    async def set_confirmed(self, user_id: str, confirmed: bool) -> UserEntity | None:
        """Set the confirmed flag. Returns None when the user does not exist."""
        user = await self.directory.find_by_id(user_id)
        if user is None:
            return None

        user.email_confirmed = confirmed
        result = await self.directory.update(user)
        if not result.succeeded:
            logger.warning(
                "Setting confirmed=%s on user %s failed: %s",
                confirmed,
                user_id,
                "; ".join(result.descriptions),
            )
        await self._invalidate(USERS_CACHE_KEY, user_cache_key(user_id))
        return user

    def on_user_activated(self, user: UserEntity) -> None:
        """Called after a user was activated."""

    def on_user_deactivated(self, user: UserEntity) -> None:
        """Called after a user was deactivated."""

    # ------------------------
    # Roles
    # ------------------------
    async def reconcile_roles(self, user: UserEntity, target: Sequence[str]) -> IdentityResult:
        """Make the user's roles equal ``target``.

        Additions are applied before removals; a failed addition skips the
        removals. Nothing is rolled back.
        """
        current = await self.directory.get_roles(user)
        to_add, to_remove = compute_role_delta(current, target)

        result = await self.directory.add_roles(user, to_add)
        if not result.succeeded:
            return result

        return await self.directory.remove_roles(user, to_remove)

    # ------------------------
    # Internal helpers
    # ------------------------
    async def _user_form(self, view: str, user_id: str) -> Outcome:
        user = await self.directory.find_by_id(user_id)
        if user is None:
            return self._to_list()
        roles = await self.directory.get_roles(user)
        return FormView(view=view, model=self.to_edit_form(user, roles).model_dump())

    def _list_view(self, view: str, users: Sequence[UserEntity]) -> FormView:
        model = UsersListView(users=[UserListEntry.model_validate(u) for u in users])
        return FormView(view=view, model=model.model_dump())

    def _to_list(self) -> Redirect:
        return Redirect(location=self.list_url)

    def _back_to(self, referrer: str | None) -> Redirect:
        return Redirect(location=referrer) if referrer else self._to_list()

    async def _invalidate(self, *keys: str) -> None:
        if self.cache is not None:
            await self.cache.invalidate(*keys)
