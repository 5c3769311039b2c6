from src.domain.models.entities.role import Role
from src.domain.models.entities.user import UserEntity
from src.domain.models.entities.user_role import UserRole

__all__ = [
    "Role",
    "UserEntity",
    "UserRole",
]
