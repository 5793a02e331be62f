"""Authentication service for signup and login."""

import logging
from datetime import datetime
from typing import Optional

from fastapi import Request
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from pagevault.core.security import create_access_token, hash_password, verify_password
from pagevault.database.users_repo import user_repository
from pagevault.models.models import User, UserRole
from pagevault.schemas.audit import AuthDetails
from pagevault.schemas.auth import RegisterRequest
from pagevault.services.activity_service import ActivityService
from pagevault.utils.exceptions import ConflictException, UnauthorizedException

logger = logging.getLogger(__name__)


class AuthService:
    """Service for authentication operations."""

    @staticmethod
    async def ensure_unique_identity(
        db: AsyncSession,
        email: Optional[str],
        username: Optional[str],
        exclude: Optional[User] = None,
    ) -> None:
        """Raise ConflictException if the email or username belongs to another account."""
        if email:
            existing = await user_repository.get_by_email(db, email)
            if existing is not None and (exclude is None or existing.id != exclude.id):
                raise ConflictException("A user with this email already exists", details={"field": "email"})
        if username:
            existing = await user_repository.get_by_username(db, username)
            if existing is not None and (exclude is None or existing.id != exclude.id):
                raise ConflictException("This username is already taken", details={"field": "username"})

    @staticmethod
    async def register(db: AsyncSession, payload: RegisterRequest, request: Optional[Request] = None) -> User:
        """Create a regular user account."""
        await AuthService.ensure_unique_identity(db, payload.email, payload.username)

        user = User(
            first_name=payload.first_name.strip(),
            last_name=payload.last_name.strip(),
            email=payload.email.strip().lower(),
            username=payload.username.strip(),
            password_hash=hash_password(payload.password),
            phone_number=payload.phone_number or None,
            role=UserRole.USER,
            is_active=True,
        )
        db.add(user)
        try:
            await db.commit()
        except IntegrityError as exc:
            await db.rollback()
            raise ConflictException("A user with this email or username already exists") from exc
        await db.refresh(user)

        await ActivityService.log_after_commit(
            db,
            "register",
            user_id=user.id,
            target_type="user",
            target_id=str(user.id),
            details=AuthDetails(method="register"),
            request=request,
        )
        return user

    @staticmethod
    async def authenticate(db: AsyncSession, email: str, password: str) -> User:
        """
        Check credentials.

        Raises:
            UnauthorizedException: Unknown email, wrong password or disabled account
        """
        user = await user_repository.get_by_email(db, email)
        if user is None or not verify_password(password, user.password_hash):
            raise UnauthorizedException("Invalid email or password")
        if not user.is_active:
            raise UnauthorizedException("This account is disabled")
        return user

    @staticmethod
    def issue_token(user: User) -> tuple[str, datetime]:
        return create_access_token(user.id, user.role.value)

    @staticmethod
    async def login(
        db: AsyncSession, email: str, password: str, request: Optional[Request] = None
    ) -> tuple[User, str, datetime]:
        user = await AuthService.authenticate(db, email, password)
        token, expires_at = AuthService.issue_token(user)
        logger.info("User logged in", extra={"user.id": str(user.id)})

        await ActivityService.log_after_commit(
            db,
            "login",
            user_id=user.id,
            target_type="user",
            target_id=str(user.id),
            details=AuthDetails(method="login"),
            request=request,
        )
        return user, token, expires_at


auth_service = AuthService()
