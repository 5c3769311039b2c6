import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from src.base.config.database import close_db, init_db
from src.base.infra.redis_cache import RedisCache
from src.base.infra.redis_client import close_redis, init_redis
from src.base.models.role import RoleNames
from src.base.utils.env_utils import is_local_development
from src.domain.services.user_directory import SqlUserDirectory

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Centralized initialization and teardown for app services."""
    logger.info("Starting application lifespan...")

    engine, session_factory = await init_db(create_schema=is_local_development())
    app.state.db_engine = engine
    app.state.db_session_factory = session_factory

    async with session_factory() as session:
        await SqlUserDirectory(session).ensure_roles(RoleNames.get_all_roles())

    redis_client = await init_redis()
    app.state.redis_client = redis_client
    app.state.cache = RedisCache(redis_client)

    logger.info("Services initialized.")
    yield  # --- Application runs here ---

    await close_redis(redis_client)
    await close_db(engine)
    logger.info("Application shutdown complete.")
