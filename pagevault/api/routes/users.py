"""Self-service user routes."""

from fastapi import APIRouter, Request

from pagevault.api.deps import CurrentUser, DB
from pagevault.schemas.auth import UserResponse
from pagevault.schemas.users import ProfileUpdateRequest
from pagevault.services.activity_service import activity_service
from pagevault.services.licensing_service import licensing_service
from pagevault.services.user_service import user_service
from pagevault.utils.envelopes import api_success

router = APIRouter(tags=["users"])


@router.get("/users/me/licenses", response_model=dict)
async def list_my_licenses(current_user: CurrentUser, db: DB):
    """Documents the current user holds a license for, including expired ones."""
    licenses = await licensing_service.list_user_licenses(db, current_user.id)
    return api_success([item.model_dump(by_alias=True) for item in licenses])


@router.get("/users/me/security-logs", response_model=dict)
async def list_my_security_logs(current_user: CurrentUser, db: DB):
    entries = await activity_service.list_security_logs(db, current_user.id)
    return api_success([activity_service.to_response(e).model_dump(by_alias=True) for e in entries])


@router.put("/users/me/profile", response_model=dict)
async def update_my_profile(payload: ProfileUpdateRequest, request: Request, current_user: CurrentUser, db: DB):
    """Edit the caller's own profile; send currentPassword and newPassword to change the password."""
    user = await user_service.update_profile(db, current_user, payload, request=request)
    return api_success(UserResponse.from_user(user).model_dump(by_alias=True), message="Profile updated")
