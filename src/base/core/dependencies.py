from collections.abc import AsyncIterator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.base.infra.redis_cache import RedisCache
from src.domain.services.user_admin_service import UserAdministrationWorkflow
from src.domain.services.user_directory import SqlUserDirectory


async def get_db_session(request: Request) -> AsyncIterator[AsyncSession]:
    """Yield a session from the app's session factory for the request."""
    async with request.app.state.db_session_factory() as session:
        yield session


def get_cache(request: Request) -> RedisCache:
    """Return the shared cache, a no-op cache when none was configured."""
    cache = getattr(request.app.state, "cache", None)
    return cache if cache is not None else RedisCache()


def get_user_directory(
    session: AsyncSession = Depends(get_db_session),
) -> SqlUserDirectory:
    return SqlUserDirectory(session)


def get_user_admin_workflow(
    directory: SqlUserDirectory = Depends(get_user_directory),
    cache: RedisCache = Depends(get_cache),
) -> UserAdministrationWorkflow:
    return UserAdministrationWorkflow(directory, cache)
