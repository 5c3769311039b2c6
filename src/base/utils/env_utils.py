"""
Environment utilities
"""

import os


def is_local_development() -> bool:
    """
    Check if the application is running in local development environment.

    Local development creates the database schema at startup instead of
    relying on Alembic migrations.
    """
    environment = os.getenv("ENVIRONMENT", "").lower()
    return environment in ("development", "local")
