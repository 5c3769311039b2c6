from typing import Any

from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi

PUBLIC_PATHS = ("/", "/health")


class OpenAPIConfig:
    """Configuration class for OpenAPI/Swagger setup"""

    def get_swagger_ui_parameters(self) -> dict[str, Any]:
        """Get Swagger UI parameters"""
        return {
            "persistAuthorization": True,
        }

    def create_custom_openapi_schema(self, app: FastAPI) -> dict[str, Any]:
        """Create OpenAPI schema declaring bearer token security"""
        if app.openapi_schema:
            return app.openapi_schema

        openapi_schema = get_openapi(
            title=app.title,
            version=app.version,
            description=app.description,
            routes=app.routes,
        )

        openapi_schema.setdefault("components", {})
        openapi_schema["components"]["securitySchemes"] = {
            "BearerAuth": {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"},
        }

        # Every endpoint needs a token unless listed as public
        openapi_schema["security"] = [{"BearerAuth": []}]

        for path, path_info in openapi_schema["paths"].items():
            if path not in PUBLIC_PATHS:
                continue
            for method, method_info in path_info.items():
                if method.lower() in ["get", "post", "put", "delete", "patch"]:
                    method_info["security"] = []

        app.openapi_schema = openapi_schema
        return app.openapi_schema


def setup_openapi(app: FastAPI) -> None:
    """Setup OpenAPI configuration for the FastAPI app"""
    config = OpenAPIConfig()

    def custom_openapi():
        return config.create_custom_openapi_schema(app)

    app.swagger_ui_parameters = config.get_swagger_ui_parameters()
    app.openapi = custom_openapi
