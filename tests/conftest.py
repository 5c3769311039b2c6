import json
from collections.abc import Sequence

import pytest
from fastapi import FastAPI, Request
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from starlette.middleware.base import BaseHTTPMiddleware

import src.domain.models.entities  # noqa: F401
from src.base.config.database import Base
from src.base.infra.redis_cache import RedisCache
from src.base.models.principal import Principal
from src.base.models.role import RoleNames
from src.domain.models.entities.user import UserEntity
from src.domain.models.identity_schemas import IdentityError, IdentityResult
from src.domain.routes.user_api_routes import router as user_api_router
from src.domain.routes.user_routes import router as user_router
from src.domain.services.user_directory import SqlUserDirectory

ADMIN = Principal(
    id="admin-001", email="admin@test.com", name="Admin", roles=["Administrator"]
)
REGULAR_USER = Principal(id="user-001", email="user@test.com", name="Regular User")


def user_header(principal: Principal) -> dict[str, str]:
    return {"X-Test-User": json.dumps(principal.model_dump())}


class FakeAuthMiddleware(BaseHTTPMiddleware):
    """Middleware that sets request.state.user from X-Test-User header."""

    async def dispatch(self, request: Request, call_next):
        header = request.headers.get("X-Test-User")
        if header:
            request.state.user = Principal(**json.loads(header))
        else:
            request.state.user = None
        return await call_next(request)


class FakeUserDirectory:
    """In-memory UserDirectory recording every mutating call."""

    def __init__(self):
        self.users: dict[str, UserEntity] = {}
        self.roles: dict[str, list[str]] = {}
        self.calls: list[str] = []
        self.fail_on: dict[str, list[str]] = {}

    def seed(self, user: UserEntity, roles: Sequence[str] = ()) -> UserEntity:
        self.users[user.id] = user
        self.roles[user.id] = list(roles)
        return user

    def _failure(self, operation: str) -> IdentityResult | None:
        errors = self.fail_on.get(operation)
        if errors is None:
            return None
        return IdentityResult.failed(
            *[IdentityError(code=operation, description=e) for e in errors]
        )

    async def create(self, user, password=None):
        self.calls.append("create")
        failure = self._failure("create")
        if failure:
            return failure
        if any(u.email == user.email for u in self.users.values()):
            return IdentityResult.failed(
                IdentityError(
                    code="DuplicateEmail",
                    description=f"Email '{user.email}' is already taken.",
                )
            )
        self.seed(user)
        return IdentityResult.success()

    async def find_by_id(self, user_id):
        self.calls.append("find_by_id")
        return self.users.get(user_id)

    async def update(self, user):
        self.calls.append("update")
        return self._failure("update") or IdentityResult.success()

    async def delete(self, user):
        self.calls.append("delete")
        failure = self._failure("delete")
        if failure:
            return failure
        self.users.pop(user.id, None)
        self.roles.pop(user.id, None)
        return IdentityResult.success()

    async def list_accessible_to(self, caller):
        if caller.is_in_role(RoleNames.ADMINISTRATOR.value):
            return list(self.users.values())
        return [u for u in self.users.values() if u.id == caller.id]

    async def get_roles(self, user):
        return list(self.roles.get(user.id, []))

    async def add_roles(self, user, roles):
        self.calls.append(f"add_roles:{','.join(roles)}")
        failure = self._failure("add_roles")
        if failure:
            return failure
        self.roles.setdefault(user.id, []).extend(roles)
        return IdentityResult.success()

    async def remove_roles(self, user, roles):
        self.calls.append(f"remove_roles:{','.join(roles)}")
        failure = self._failure("remove_roles")
        if failure:
            return failure
        self.roles[user.id] = [r for r in self.roles.get(user.id, []) if r not in roles]
        return IdentityResult.success()


def make_user(user_id: str, email: str, confirmed: bool = False, **profile) -> UserEntity:
    return UserEntity(
        id=user_id,
        email=email,
        user_name=email,
        email_confirmed=confirmed,
        **profile,
    )


@pytest.fixture
def directory():
    return FakeUserDirectory()


@pytest.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://", connect_args={"check_same_thread": False}
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session_factory(db_engine):
    factory = async_sessionmaker(db_engine, expire_on_commit=False)
    async with factory() as session:
        await SqlUserDirectory(session).ensure_roles(RoleNames.get_all_roles())
    return factory


@pytest.fixture
async def db_session(db_session_factory):
    async with db_session_factory() as session:
        yield session


@pytest.fixture
def app(db_session_factory):
    test_app = FastAPI()
    test_app.state.db_session_factory = db_session_factory
    test_app.state.cache = RedisCache()
    test_app.add_middleware(FakeAuthMiddleware)
    test_app.include_router(user_router)
    test_app.include_router(user_api_router, prefix="/api")
    return test_app


@pytest.fixture
async def client(app):
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as c:
        yield c
