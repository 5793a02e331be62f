"""Administrative user management."""

import logging
import time
import uuid
from typing import Literal, Optional, Sequence

from fastapi import Request
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from pagevault.core.security import hash_password, verify_password
from pagevault.database.users_repo import user_repository
from pagevault.models.models import User, UserRole
from pagevault.schemas.audit import (
    AccessDeniedDetails,
    ProfileUpdatedDetails,
    UserDeletedDetails,
    UserRoleChangedDetails,
    UserSavedDetails,
    UserStatusChangedDetails,
)
from pagevault.schemas.users import AdminUserCreate, AdminUserUpdate, ProfileUpdateRequest
from pagevault.services.activity_service import ActivityService
from pagevault.services.admin_guard import UserMutation, enforce_admin_invariants
from pagevault.services.auth_service import AuthService
from pagevault.utils.exceptions import (
    ConflictException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)

logger = logging.getLogger(__name__)

DeleteMode = Literal["soft", "permanent"]


class UserService:
    """Service for user administration. Every role or status change passes the admin guard."""

    @staticmethod
    async def get_user(db: AsyncSession, user_id: uuid.UUID) -> User:
        user = await user_repository.get_by_id(db, user_id)
        if user is None:
            raise NotFoundException("User not found")
        return user

    @staticmethod
    async def list_users(
        db: AsyncSession,
        search: Optional[str] = None,
        role: Optional[UserRole] = None,
        is_active: Optional[bool] = None,
    ) -> Sequence[User]:
        return await user_repository.list_users(db, search=search, role=role, is_active=is_active)

    @staticmethod
    async def create_user(
        db: AsyncSession,
        payload: AdminUserCreate,
        actor: User,
        request: Optional[Request] = None,
    ) -> User:
        await enforce_admin_invariants(db, actor, UserMutation.CREATE, new_role=payload.role, request=request)
        await AuthService.ensure_unique_identity(db, payload.email, payload.username)

        user = User(
            first_name=payload.first_name.strip(),
            last_name=payload.last_name.strip(),
            email=payload.email.strip().lower(),
            username=payload.username.strip(),
            password_hash=hash_password(payload.password),
            phone_number=payload.phone_number or None,
            role=payload.role,
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
            "user_created",
            user_id=actor.id,
            target_type="user",
            target_id=str(user.id),
            details=UserSavedDetails(target_user_id=str(user.id), operation="created"),
            request=request,
        )
        return user

    @staticmethod
    async def update_user(
        db: AsyncSession,
        user_id: uuid.UUID,
        payload: AdminUserUpdate,
        actor: User,
        request: Optional[Request] = None,
    ) -> User:
        """Edit profile fields. A new password is hashed; email is lower-cased."""
        user = await UserService.get_user(db, user_id)
        changes = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}

        if "email" in changes:
            changes["email"] = changes["email"].strip().lower()
        if "username" in changes:
            changes["username"] = changes["username"].strip()
        await AuthService.ensure_unique_identity(db, changes.get("email"), changes.get("username"), exclude=user)

        password = changes.pop("password", None)
        if password:
            user.password_hash = hash_password(password)
        for field, value in changes.items():
            setattr(user, field, value)

        try:
            await db.commit()
        except IntegrityError as exc:
            await db.rollback()
            raise ConflictException("A user with this email or username already exists") from exc
        await db.refresh(user)

        fields = sorted(changes) + (["password"] if password else [])
        await ActivityService.log_after_commit(
            db,
            "user_updated",
            user_id=actor.id,
            target_type="user",
            target_id=str(user.id),
            details=UserSavedDetails(target_user_id=str(user.id), operation="updated", fields=fields),
            request=request,
        )
        return user

    @staticmethod
    async def change_role(
        db: AsyncSession,
        user_id: uuid.UUID,
        role: UserRole,
        actor: User,
        request: Optional[Request] = None,
    ) -> User:
        user = await UserService.get_user(db, user_id)
        await enforce_admin_invariants(
            db, actor, UserMutation.ROLE_CHANGE, target=user, new_role=role, request=request
        )
        if user.role == role:
            return user

        previous = user.role
        user.role = role
        await db.commit()
        await db.refresh(user)

        await ActivityService.log_after_commit(
            db,
            "user_role_changed",
            user_id=actor.id,
            target_type="user",
            target_id=str(user.id),
            details=UserRoleChangedDetails(
                target_user_id=str(user.id), previous_role=previous.value, new_role=role.value
            ),
            request=request,
        )
        return user

    @staticmethod
    async def change_status(
        db: AsyncSession,
        user_id: uuid.UUID,
        is_active: bool,
        actor: User,
        request: Optional[Request] = None,
    ) -> User:
        user = await UserService.get_user(db, user_id)
        await enforce_admin_invariants(
            db, actor, UserMutation.STATUS_CHANGE, target=user, new_is_active=is_active, request=request
        )
        if user.is_active == is_active:
            return user

        previous = user.is_active
        user.is_active = is_active
        await db.commit()
        await db.refresh(user)

        await ActivityService.log_after_commit(
            db,
            "user_status_changed",
            user_id=actor.id,
            target_type="user",
            target_id=str(user.id),
            details=UserStatusChangedDetails(
                target_user_id=str(user.id), previous_is_active=previous, new_is_active=is_active
            ),
            request=request,
        )
        return user

    @staticmethod
    async def delete_user(
        db: AsyncSession,
        user_id: uuid.UUID,
        actor: User,
        mode: DeleteMode = "soft",
        request: Optional[Request] = None,
    ) -> None:
        """
        Delete a user.

        soft: deactivate and anonymize email and username so both can be
        reused. permanent: remove the user together with licenses, file
        permissions, activity entries and purchases in one transaction.

        Raises:
            ForbiddenException: The actor tried to delete their own account
            InvariantViolationException: The target is the last active administrator
        """
        user = await UserService.get_user(db, user_id)
        mutation = UserMutation.PERMANENT_DELETE if mode == "permanent" else UserMutation.SOFT_DELETE

        if user.id == actor.id:
            await ActivityService.log_activity(
                db,
                "access_denied",
                user_id=actor.id,
                target_type="user",
                target_id=str(user.id),
                details=AccessDeniedDetails(reason=f"self_{mutation.value}", target_user_id=str(user.id)),
                request=request,
            )
            raise ForbiddenException("You cannot delete your own account")

        await enforce_admin_invariants(db, actor, mutation, target=user, request=request)

        email, username = user.email, user.username
        if mode == "permanent":
            try:
                await user_repository.delete_with_dependents(db, user.id)
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        else:
            stamp = int(time.time() * 1000)
            user.is_active = False
            user.email = f"deleted_{user.id}_{stamp}@deleted.local"
            user.username = f"deleted_{user.id}_{stamp}"
            await db.commit()

        logger.info("User deleted", extra={"user.id": str(user_id), "delete.mode": mode})
        await ActivityService.log_after_commit(
            db,
            "user_deleted",
            user_id=actor.id,
            target_type="user",
            target_id=str(user_id),
            details=UserDeletedDetails(target_user_id=str(user_id), mode=mode, email=email, username=username),
            request=request,
        )

    @staticmethod
    async def update_profile(
        db: AsyncSession,
        user: User,
        payload: ProfileUpdateRequest,
        request: Optional[Request] = None,
    ) -> User:
        """
        Let a user edit their own profile.

        Role and active status are never touched here.

        Raises:
            ConflictException: Email or username belongs to another account
            ValidationException: Password change without a matching current password
        """
        email = payload.email.strip().lower()
        username = payload.username.strip()
        await AuthService.ensure_unique_identity(db, email, username, exclude=user)

        password_hash = None
        if payload.new_password:
            if not payload.current_password:
                raise ValidationException("Current password is required to set a new one")
            if not verify_password(payload.current_password, user.password_hash):
                raise ValidationException("Current password is incorrect")
            password_hash = hash_password(payload.new_password)

        values = {
            "first_name": payload.first_name.strip(),
            "last_name": payload.last_name.strip(),
            "email": email,
            "username": username,
            "phone_number": payload.phone_number or None,
        }
        fields = sorted(field for field, value in values.items() if getattr(user, field) != value)
        for field, value in values.items():
            setattr(user, field, value)
        if password_hash is not None:
            user.password_hash = password_hash

        try:
            await db.commit()
        except IntegrityError as exc:
            await db.rollback()
            raise ConflictException("A user with this email or username already exists") from exc
        await db.refresh(user)

        await ActivityService.log_after_commit(
            db,
            "profile_updated",
            user_id=user.id,
            target_type="user",
            target_id=str(user.id),
            details=ProfileUpdatedDetails(fields=fields, password_changed=password_hash is not None),
            request=request,
        )
        return user


user_service = UserService()
