"""FastAPI dependencies for authentication and database sessions."""

from typing import Annotated, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from pagevault.core.db import get_db
from pagevault.core.security import token_subject
from pagevault.database.users_repo import user_repository
from pagevault.models.models import User, UserRole
from pagevault.schemas.audit import AccessDeniedDetails
from pagevault.services.activity_service import ActivityService
from pagevault.utils.exceptions import ForbiddenException, UnauthorizedException

bearer_scheme = HTTPBearer(auto_error=False)


async def _resolve_user(
    credentials: Optional[HTTPAuthorizationCredentials], db: AsyncSession
) -> Optional[User]:
    if credentials is None or credentials.scheme.lower() != "bearer":
        return None
    user_id = token_subject(credentials.credentials)
    if user_id is None:
        return None
    return await user_repository.get_by_id(db, user_id)


async def get_current_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """Get current authenticated user from JWT token. Disabled accounts are rejected."""
    user = await _resolve_user(credentials, db)
    if user is None:
        raise UnauthorizedException("Could not validate credentials")
    if not user.is_active:
        raise UnauthorizedException("This account is disabled")
    return user


async def get_current_user_optional(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Optional[User]:
    """Get current user if authenticated, otherwise None (anonymous viewer)."""
    user = await _resolve_user(credentials, db)
    if user is None or not user.is_active:
        return None
    return user


async def get_current_admin(
    request: Request,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """Require the admin role. Denials are audit-logged."""
    if current_user.role != UserRole.ADMIN:
        await ActivityService.log_activity(
            db,
            "access_denied",
            user_id=current_user.id,
            target_type="route",
            target_id=request.url.path[:64],
            details=AccessDeniedDetails(reason="admin_required", path=request.url.path, method=request.method),
            request=request,
        )
        raise ForbiddenException("Administrator access required")
    return current_user


# Convenience type aliases
CurrentUser = Annotated[User, Depends(get_current_user)]
OptionalUser = Annotated[Optional[User], Depends(get_current_user_optional)]
CurrentAdmin = Annotated[User, Depends(get_current_admin)]
DB = Annotated[AsyncSession, Depends(get_db)]
