import logging
from collections.abc import Iterable, Sequence
from typing import Protocol

from passlib.context import CryptContext
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.base.models.principal import Principal
from src.base.models.role import RoleNames
from src.domain.models.entities.role import Role
from src.domain.models.entities.user import UserEntity
from src.domain.models.entities.user_role import UserRole
from src.domain.models.identity_schemas import IdentityError, IdentityResult

logger = logging.getLogger(__name__)

_pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return _pwd_context.hash(password)


def verify_password(password: str, hashed: str | None) -> bool:
    if not hashed:
        return False
    return _pwd_context.verify(password, hashed)


class UserDirectory(Protocol):
    """Persistence and role membership of users."""

    async def create(self, user: UserEntity, password: str | None = None) -> IdentityResult: ...

    async def find_by_id(self, user_id: str) -> UserEntity | None: ...

    async def update(self, user: UserEntity) -> IdentityResult: ...

    async def delete(self, user: UserEntity) -> IdentityResult: ...

    async def list_accessible_to(self, caller: Principal) -> list[UserEntity]: ...

    async def get_roles(self, user: UserEntity) -> list[str]: ...

    async def add_roles(self, user: UserEntity, roles: Sequence[str]) -> IdentityResult: ...

    async def remove_roles(self, user: UserEntity, roles: Sequence[str]) -> IdentityResult: ...


class SqlUserDirectory:
    """UserDirectory backed by a SQLAlchemy async session."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def create(self, user: UserEntity, password: str | None = None) -> IdentityResult:
        if await self._find_by_email(user.email) is not None:
            return IdentityResult.failed(
                IdentityError(
                    code="DuplicateEmail",
                    description=f"Email '{user.email}' is already taken.",
                )
            )

        if password:
            user.password_hash = hash_password(password)

        self._session.add(user)
        try:
            await self._session.commit()
        except IntegrityError as e:
            await self._session.rollback()
            logger.warning("User insert rejected for %s: %s", user.email, e.orig)
            return IdentityResult.failed(
                IdentityError(code="CreateFailed", description="User could not be created.")
            )

        logger.info("Created user id=%s email=%s", user.id, user.email)
        return IdentityResult.success()

    async def find_by_id(self, user_id: str) -> UserEntity | None:
        result = await self._session.execute(
            select(UserEntity).where(UserEntity.id == user_id)
        )
        return result.scalar_one_or_none()

    async def update(self, user: UserEntity) -> IdentityResult:
        user_id = user.id
        try:
            await self._session.commit()
        except SQLAlchemyError:
            await self._session.rollback()
            logger.warning("User update rejected for id=%s", user_id, exc_info=True)
            return IdentityResult.failed(
                IdentityError(code="UpdateFailed", description="User could not be updated.")
            )

        logger.info("Updated user id=%s", user_id)
        return IdentityResult.success()

    async def delete(self, user: UserEntity) -> IdentityResult:
        user_id = user.id
        try:
            await self._session.execute(
                delete(UserRole).where(UserRole.user_id == user_id)
            )
            await self._session.delete(user)
            await self._session.commit()
        except SQLAlchemyError as e:
            await self._session.rollback()
            logger.warning("User delete failed for id=%s", user_id, exc_info=True)
            return IdentityResult.failed(
                IdentityError(code="DeleteFailed", description=f"User could not be deleted: {e}")
            )

        logger.info("Deleted user id=%s", user_id)
        return IdentityResult.success()

    async def list_accessible_to(self, caller: Principal) -> list[UserEntity]:
        """Administrators see every user; anyone else only their own record."""
        stmt = select(UserEntity).order_by(UserEntity.email)
        if not caller.is_in_role(RoleNames.ADMINISTRATOR.value):
            stmt = stmt.where(UserEntity.id == caller.id)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def get_roles(self, user: UserEntity) -> list[str]:
        result = await self._session.execute(
            select(Role.name)
            .join(UserRole, UserRole.role_id == Role.id)
            .where(UserRole.user_id == user.id)
            .order_by(Role.name)
        )
        return [row[0] for row in result.all()]

    async def add_roles(self, user: UserEntity, roles: Sequence[str]) -> IdentityResult:
        if not roles:
            return IdentityResult.success()

        known = await self._roles_by_name(roles)
        current = set(await self.get_roles(user))
        errors = []
        for name in roles:
            if name not in known:
                errors.append(
                    IdentityError(code="RoleNotFound", description=f"Role '{name}' does not exist.")
                )
            elif name in current:
                errors.append(
                    IdentityError(
                        code="UserAlreadyInRole",
                        description=f"User already in role '{name}'.",
                    )
                )
        if errors:
            return IdentityResult.failed(*errors)

        user_id = user.id
        for name in dict.fromkeys(roles):
            self._session.add(UserRole(user_id=user_id, role_id=known[name].id))
        try:
            await self._session.commit()
        except SQLAlchemyError:
            await self._session.rollback()
            logger.warning(
                "Adding roles %s to user id=%s failed", list(roles), user_id, exc_info=True
            )
            return IdentityResult.failed(
                IdentityError(code="RoleAddFailed", description="Roles could not be added.")
            )
        logger.info("Added roles %s to user id=%s", list(roles), user_id)
        return IdentityResult.success()

    async def remove_roles(self, user: UserEntity, roles: Sequence[str]) -> IdentityResult:
        if not roles:
            return IdentityResult.success()

        current = set(await self.get_roles(user))
        missing = [name for name in roles if name not in current]
        if missing:
            return IdentityResult.failed(
                *[
                    IdentityError(
                        code="UserNotInRole", description=f"User is not in role '{name}'."
                    )
                    for name in missing
                ]
            )

        user_id = user.id
        known = await self._roles_by_name(roles)
        try:
            await self._session.execute(
                delete(UserRole).where(
                    UserRole.user_id == user_id,
                    UserRole.role_id.in_([role.id for role in known.values()]),
                )
            )
            await self._session.commit()
        except SQLAlchemyError:
            await self._session.rollback()
            logger.warning(
                "Removing roles %s from user id=%s failed", list(roles), user_id, exc_info=True
            )
            return IdentityResult.failed(
                IdentityError(code="RoleRemoveFailed", description="Roles could not be removed.")
            )
        logger.info("Removed roles %s from user id=%s", list(roles), user_id)
        return IdentityResult.success()

    async def ensure_roles(self, names: Iterable[str]) -> None:
        """Create any missing role rows."""
        names = list(dict.fromkeys(names))
        existing = await self._roles_by_name(names)
        for name in names:
            if name not in existing:
                self._session.add(Role(name=name))
                logger.info("Created role %s", name)
        await self._session.commit()

    async def _find_by_email(self, email: str) -> UserEntity | None:
        result = await self._session.execute(
            select(UserEntity).where(UserEntity.email == email)
        )
        return result.scalar_one_or_none()

    async def _roles_by_name(self, names: Iterable[str]) -> dict[str, Role]:
        result = await self._session.execute(select(Role).where(Role.name.in_(list(names))))
        return {role.name: role for role in result.scalars().all()}
