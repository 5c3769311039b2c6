from enum import Enum


class RoleNames(str, Enum):
    """Roles known to the user administration service"""

    ADMINISTRATOR = "Administrator"

    @classmethod
    def get_all_roles(cls) -> list[str]:
        """Get all available role values"""
        return [role.value for role in cls]
