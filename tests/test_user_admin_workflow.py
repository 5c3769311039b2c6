from unittest.mock import AsyncMock

import pytest

from src.base.infra.redis_cache import RedisCache
from src.domain.models.outcomes import FormView, Redirect
from src.domain.services.user_admin_service import UserAdministrationWorkflow
from tests.conftest import ADMIN, REGULAR_USER, make_user


@pytest.fixture
def redis_mock():
    return AsyncMock()


@pytest.fixture
def workflow(directory, redis_mock):
    return UserAdministrationWorkflow(directory, RedisCache(redis_client=redis_mock, ttl=60))


def _create_payload(**overrides):
    payload = {
        "email": "new@test.com",
        "password": "s3cret-pass",
        "first_name": "Ivan",
        "last_name": "Petrov",
        "roles": [],
    }
    payload.update(overrides)
    return payload


class TestListing:
    async def test_index_lists_accessible_users(self, workflow, directory):
        directory.seed(make_user("u1", "a@test.com", confirmed=True))
        directory.seed(make_user("u2", "b@test.com"))

        outcome = await workflow.list_users(ADMIN)
        assert outcome.view == "index"
        assert [u["id"] for u in outcome.model["users"]] == ["u1", "u2"]

    async def test_pending_lists_only_unconfirmed(self, workflow, directory):
        directory.seed(make_user("u1", "a@test.com", confirmed=True))
        directory.seed(make_user("u2", "b@test.com"))

        outcome = await workflow.list_pending(ADMIN)
        assert outcome.view == "pending"
        assert [u["id"] for u in outcome.model["users"]] == ["u2"]

    async def test_non_admin_only_sees_self(self, workflow, directory):
        directory.seed(make_user("user-001", "user@test.com"))
        directory.seed(make_user("u2", "b@test.com"))

        outcome = await workflow.list_pending(REGULAR_USER)
        assert [u["id"] for u in outcome.model["users"]] == ["user-001"]


class TestCreate:
    async def test_create_redirects_to_list(self, workflow, directory, redis_mock):
        outcome = await workflow.create_user(_create_payload(), ADMIN)

        assert outcome == Redirect(location="/users")
        (user,) = directory.users.values()
        assert user.email == "new@test.com"
        assert user.user_name == "new@test.com"
        assert user.email_confirmed is False
        assert user.first_name == "Ivan"
        redis_mock.delete.assert_awaited_with("users")

    async def test_invalid_payload_rerenders_without_directory_call(self, workflow, directory):
        outcome = await workflow.create_user(_create_payload(email="not-an-email"), ADMIN)

        assert isinstance(outcome, FormView)
        assert outcome.view == "create"
        assert outcome.model["email"] == "not-an-email"
        assert "password" not in outcome.model
        assert any(e.startswith("email:") for e in outcome.errors)
        assert directory.calls == []

    async def test_duplicate_email_reported(self, workflow, directory):
        directory.seed(make_user("u1", "new@test.com"))

        outcome = await workflow.create_user(_create_payload(), ADMIN)
        assert isinstance(outcome, FormView)
        assert outcome.errors == ["Email 'new@test.com' is already taken."]

    async def test_admin_grants_only_administrator(self, workflow, directory):
        await workflow.create_user(
            _create_payload(roles=["Administrator", "Manager"]), ADMIN
        )
        (user,) = directory.users.values()
        assert directory.roles[user.id] == ["Administrator"]

    async def test_non_admin_roles_dropped(self, workflow, directory):
        outcome = await workflow.create_user(
            _create_payload(roles=["Administrator"]), REGULAR_USER
        )
        assert isinstance(outcome, Redirect)
        (user,) = directory.users.values()
        assert directory.roles[user.id] == []

    async def test_role_failure_rerenders_with_errors(self, workflow, directory):
        directory.fail_on["add_roles"] = ["Role 'Administrator' does not exist."]

        outcome = await workflow.create_user(
            _create_payload(roles=["Administrator"]), ADMIN
        )
        assert isinstance(outcome, FormView)
        assert outcome.errors == ["Role 'Administrator' does not exist."]
        assert outcome.model["roles"] == ["Administrator"]


class TestEdit:
    async def test_edit_form_for_unknown_user_redirects(self, workflow):
        assert await workflow.edit_user_form("missing") == Redirect(location="/users")

    async def test_edit_form_carries_profile_and_roles(self, workflow, directory):
        directory.seed(make_user("u1", "a@test.com", city="Kyiv"), ["Administrator"])

        outcome = await workflow.edit_user_form("u1")
        assert outcome.view == "edit"
        assert outcome.model["id"] == "u1"
        assert outcome.model["city"] == "Kyiv"
        assert outcome.model["roles"] == ["Administrator"]

    async def test_edit_unknown_user_redirects_without_mutation(self, workflow, directory):
        outcome = await workflow.edit_user({"id": "missing", "first_name": "X"}, ADMIN)

        assert outcome == Redirect(location="/users")
        assert directory.calls == ["find_by_id"]

    async def test_edit_overwrites_profile_and_reconciles_roles(
        self, workflow, directory, redis_mock
    ):
        directory.seed(make_user("u1", "a@test.com", city="Kyiv"))

        outcome = await workflow.edit_user(
            {"id": "u1", "first_name": "Olga", "roles": ["Administrator", "Guest"]}, ADMIN
        )
        assert outcome == Redirect(location="/users")
        user = directory.users["u1"]
        assert user.first_name == "Olga"
        assert user.city is None
        assert directory.roles["u1"] == ["Administrator"]
        redis_mock.delete.assert_awaited_with("users", "user-u1")

    async def test_reconcile_again_with_same_roles_is_noop(self, workflow, directory):
        directory.seed(make_user("u1", "a@test.com"), ["Administrator"])

        await workflow.edit_user({"id": "u1", "roles": ["Administrator"]}, ADMIN)
        assert "add_roles:" in directory.calls
        assert "remove_roles:" in directory.calls
        assert directory.roles["u1"] == ["Administrator"]

    async def test_revoking_administrator(self, workflow, directory):
        directory.seed(make_user("u1", "a@test.com"), ["Administrator"])

        await workflow.edit_user({"id": "u1", "roles": []}, ADMIN)
        assert directory.roles["u1"] == []

    async def test_failed_addition_skips_removal(self, workflow, directory):
        directory.seed(make_user("u1", "a@test.com"), ["Legacy"])
        directory.fail_on["add_roles"] = ["boom"]

        outcome = await workflow.edit_user({"id": "u1", "roles": ["Administrator"]}, ADMIN)
        assert outcome.errors == ["boom"]
        assert not any(c.startswith("remove_roles") for c in directory.calls)
        assert directory.roles["u1"] == ["Legacy"]

    async def test_failed_removal_keeps_added_roles(self, workflow, directory):
        directory.seed(make_user("u1", "a@test.com"), ["Legacy"])
        directory.fail_on["remove_roles"] = ["cannot remove"]

        outcome = await workflow.edit_user({"id": "u1", "roles": ["Administrator"]}, ADMIN)
        assert isinstance(outcome, FormView)
        assert outcome.errors == ["cannot remove"]
        assert directory.roles["u1"] == ["Legacy", "Administrator"]

    async def test_saved_profile_invalidates_cache_when_roles_fail(
        self, workflow, directory, redis_mock
    ):
        directory.seed(make_user("u1", "a@test.com", city="Kyiv"), ["Legacy"])
        directory.fail_on["remove_roles"] = ["cannot remove"]

        outcome = await workflow.edit_user(
            {"id": "u1", "city": "Lviv", "roles": ["Administrator"]}, ADMIN
        )
        assert isinstance(outcome, FormView)
        assert directory.users["u1"].city == "Lviv"
        redis_mock.delete.assert_awaited_once_with("users", "user-u1")

    async def test_update_failure_rerenders(self, workflow, directory, redis_mock):
        directory.seed(make_user("u1", "a@test.com"))
        directory.fail_on["update"] = ["first", "second"]

        outcome = await workflow.edit_user({"id": "u1"}, ADMIN)
        assert outcome.view == "edit"
        assert outcome.errors == ["first", "second"]
        redis_mock.delete.assert_not_called()


class TestDelete:
    async def test_delete_form_for_unknown_user_redirects(self, workflow):
        assert await workflow.delete_user_form("missing") == Redirect(location="/users")

    async def test_delete_removes_user(self, workflow, directory, redis_mock):
        directory.seed(make_user("u1", "a@test.com"))

        outcome = await workflow.delete_user({"id": "u1"})
        assert outcome == Redirect(location="/users")
        assert "u1" not in directory.users
        redis_mock.delete.assert_awaited_with("users", "user-u1")

    async def test_delete_failure_shows_error_and_keeps_user(self, workflow, directory):
        directory.seed(make_user("u1", "root@test.com"))
        directory.fail_on["delete"] = ["cannot delete root user"]

        outcome = await workflow.delete_user({"id": "u1"})
        assert isinstance(outcome, FormView)
        assert outcome.view == "delete"
        assert outcome.errors == ["cannot delete root user"]
        assert "u1" in directory.users

    async def test_delete_unknown_user_redirects(self, workflow, directory):
        assert await workflow.delete_user({"id": "missing"}) == Redirect(location="/users")
        assert "delete" not in directory.calls


class TestActivation:
    async def test_activate_returns_to_referrer(self, workflow, directory):
        directory.seed(make_user("u1", "a@test.com"))

        outcome = await workflow.activate_user("u1", "http://test/users/pending")
        assert outcome == Redirect(location="http://test/users/pending")
        assert directory.users["u1"].email_confirmed is True

    async def test_missing_referrer_falls_back_to_list(self, workflow, directory):
        directory.seed(make_user("u1", "a@test.com"))
        assert await workflow.activate_user("u1", None) == Redirect(location="/users")

    async def test_activate_then_deactivate_round_trip(self, workflow, directory):
        directory.seed(make_user("u1", "a@test.com"))

        await workflow.activate_user("u1", "/users")
        await workflow.deactivate_user("u1", "/users")
        assert directory.users["u1"].email_confirmed is False

    async def test_unknown_user_redirects_to_list(self, workflow, directory):
        assert await workflow.activate_user("missing", "/x") == Redirect(location="/users")
        assert await workflow.deactivate_user("missing", "/x") == Redirect(location="/users")
        assert "update" not in directory.calls

    async def test_hooks_called(self, directory):
        activated, deactivated = [], []

        class HookedWorkflow(UserAdministrationWorkflow):
            def on_user_activated(self, user):
                activated.append(user.id)

            def on_user_deactivated(self, user):
                deactivated.append(user.id)

        directory.seed(make_user("u1", "a@test.com"))
        hooked = HookedWorkflow(directory)
        await hooked.activate_user("u1", None)
        await hooked.deactivate_user("u1", None)
        assert activated == ["u1"]
        assert deactivated == ["u1"]


class TestInjectedCapabilities:
    async def test_custom_sanitize_policy(self, directory):
        workflow = UserAdministrationWorkflow(
            directory, sanitize=lambda roles, caller: [r for r in roles if r != "Root"]
        )
        directory.seed(make_user("u1", "a@test.com"))

        await workflow.edit_user({"id": "u1", "roles": ["Editor", "Root"]}, REGULAR_USER)
        assert directory.roles["u1"] == ["Editor"]

    async def test_without_cache_nothing_fails(self, directory):
        workflow = UserAdministrationWorkflow(directory, list_url="/admin/users")
        directory.seed(make_user("u1", "a@test.com"))

        assert await workflow.delete_user({"id": "u1"}) == Redirect(location="/admin/users")
