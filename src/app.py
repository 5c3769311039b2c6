import logging

from dotenv import load_dotenv
from fastapi import FastAPI

from src.base.config.logging_config import LoggingConfig
from src.base.config.openapi_config import setup_openapi
from src.base.core.lifespan import lifespan
from src.base.middleware.correlation_middleware import CorrelationMiddleware
from src.base.middleware.global_exception_handler_middleware import (
    GlobalExceptionHandlerMiddleware,
)
from src.base.middleware.jwt_middleware import JWTMiddleware
from src.base.routes.health import router as health_router
from src.domain.routes.user_api_routes import router as user_api_router
from src.domain.routes.user_routes import router as user_router

# Load environment variables
load_dotenv()

# --- Logging configuration ---
LoggingConfig.setup_logging()
logger = logging.getLogger(__name__)

logger.info("Starting user administration service")

# --- FastAPI app ---
app = FastAPI(title="User Administration", version="1.0.0", lifespan=lifespan)

# Setup OpenAPI configuration
setup_openapi(app)

# --- Middleware --- (last added runs first)
app.add_middleware(JWTMiddleware)
app.add_middleware(GlobalExceptionHandlerMiddleware)
app.add_middleware(CorrelationMiddleware)

# --- Routes ---
app.include_router(health_router)
app.include_router(user_router)
app.include_router(user_api_router, prefix="/api")
