"""Repository layer for user accounts.

Only database access lives here. Role rules and the administrator
invariant are enforced in the service layer.
"""

import uuid
from typing import Optional, Sequence

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from pagevault.models.models import (
    ActivityLog,
    FilePermission,
    License,
    Purchase,
    User,
    UserRole,
)


class UserRepository:
    """Repository for user database operations."""

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: uuid.UUID) -> Optional[User]:
        return await db.get(User, user_id)

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> Optional[User]:
        """Look a user up by email. Emails are stored lower-cased."""
        result = await db.execute(select(User).where(User.email == email.strip().lower()))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_username(db: AsyncSession, username: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.username == username.strip()))
        return result.scalar_one_or_none()

    @staticmethod
    async def count_active_admins(db: AsyncSession) -> int:
        """
        Count accounts that currently hold the admin role and are active.

        Args:
            db: Database session

        Returns:
            Number of active administrators
        """
        result = await db.execute(
            select(func.count()).select_from(User).where(User.role == UserRole.ADMIN, User.is_active.is_(True))
        )
        return int(result.scalar_one())

    @staticmethod
    async def list_admins(db: AsyncSession) -> Sequence[User]:
        result = await db.execute(select(User).where(User.role == UserRole.ADMIN).order_by(User.created_date.asc()))
        return result.scalars().all()

    @staticmethod
    async def list_users(
        db: AsyncSession,
        search: Optional[str] = None,
        role: Optional[UserRole] = None,
        is_active: Optional[bool] = None,
    ) -> Sequence[User]:
        """
        List users newest first with optional filters.

        Args:
            db: Database session
            search: Case-insensitive match on name, email or username
            role: Only users holding this role
            is_active: Only active (True) or inactive (False) users

        Returns:
            Matching users
        """
        stmt = select(User)
        if search:
            pattern = f"%{search.strip().lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(User.first_name).like(pattern),
                    func.lower(User.last_name).like(pattern),
                    User.email.like(pattern),
                    func.lower(User.username).like(pattern),
                )
            )
        if role is not None:
            stmt = stmt.where(User.role == role)
        if is_active is not None:
            stmt = stmt.where(User.is_active.is_(is_active))
        result = await db.execute(stmt.order_by(User.created_date.desc()))
        return result.scalars().all()

    @staticmethod
    async def delete_with_dependents(db: AsyncSession, user_id: uuid.UUID) -> None:
        """
        Delete a user and every row that references it.

        Does not commit; the caller owns the transaction so the whole
        cascade either happens or does not.
        """
        await db.execute(delete(License).where(License.user_id == user_id))
        await db.execute(delete(FilePermission).where(FilePermission.user_id == user_id))
        await db.execute(delete(ActivityLog).where(ActivityLog.actor_user_id == user_id))
        await db.execute(delete(Purchase).where(Purchase.user_id == user_id))
        await db.execute(delete(User).where(User.id == user_id))


user_repository = UserRepository()
