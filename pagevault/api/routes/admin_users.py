"""Administrative user and file-permission routes."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status

from pagevault.api.deps import CurrentAdmin, DB, get_current_admin
from pagevault.models.models import UserRole
from pagevault.schemas.auth import UserResponse
from pagevault.schemas.permissions import PermissionUpdateRequest
from pagevault.schemas.users import AdminUserCreate, AdminUserUpdate, RoleChangeRequest, StatusChangeRequest
from pagevault.services.permission_service import permission_service
from pagevault.services.user_service import user_service
from pagevault.utils.envelopes import api_success

router = APIRouter(prefix="/admin", tags=["admin-users"], dependencies=[Depends(get_current_admin)])


def _user(user) -> dict:
    return UserResponse.from_user(user).model_dump(by_alias=True)


@router.get("/users", response_model=dict)
async def list_users(
    db: DB,
    search: Optional[str] = Query(None, max_length=200),
    role: Optional[UserRole] = Query(None),
    is_active: Optional[bool] = Query(None, alias="isActive"),
):
    users = await user_service.list_users(db, search=search, role=role, is_active=is_active)
    return api_success([_user(u) for u in users])


@router.post("/users", response_model=dict, status_code=status.HTTP_201_CREATED)
async def create_user(payload: AdminUserCreate, request: Request, current_user: CurrentAdmin, db: DB):
    """Create an account. Creating another administrator is refused."""
    user = await user_service.create_user(db, payload, current_user, request=request)
    return api_success(_user(user))


@router.patch("/users/{user_id}", response_model=dict)
async def update_user(
    user_id: uuid.UUID,
    payload: AdminUserUpdate,
    request: Request,
    current_user: CurrentAdmin,
    db: DB,
):
    user = await user_service.update_user(db, user_id, payload, current_user, request=request)
    return api_success(_user(user))


@router.patch("/users/{user_id}/role", response_model=dict)
async def change_user_role(
    user_id: uuid.UUID,
    payload: RoleChangeRequest,
    request: Request,
    current_user: CurrentAdmin,
    db: DB,
):
    user = await user_service.change_role(db, user_id, payload.role, current_user, request=request)
    return api_success(_user(user))


@router.patch("/users/{user_id}/status", response_model=dict)
async def change_user_status(
    user_id: uuid.UUID,
    payload: StatusChangeRequest,
    request: Request,
    current_user: CurrentAdmin,
    db: DB,
):
    user = await user_service.change_status(db, user_id, payload.is_active, current_user, request=request)
    return api_success(_user(user))


@router.delete("/users/{user_id}", response_model=dict)
async def soft_delete_user(user_id: uuid.UUID, request: Request, current_user: CurrentAdmin, db: DB):
    """Deactivate and anonymize an account."""
    await user_service.delete_user(db, user_id, current_user, mode="soft", request=request)
    return api_success({"id": str(user_id)}, message="User deleted")


@router.delete("/users/{user_id}/permanent", response_model=dict)
async def permanent_delete_user(user_id: uuid.UUID, request: Request, current_user: CurrentAdmin, db: DB):
    """Remove an account and everything that references it."""
    await user_service.delete_user(db, user_id, current_user, mode="permanent", request=request)
    return api_success({"id": str(user_id)}, message="User permanently deleted")


@router.get("/users/{user_id}/permissions", response_model=dict)
async def list_user_permissions(user_id: uuid.UUID, db: DB):
    items = await permission_service.list_user_permissions(db, user_id)
    return api_success([item.model_dump(by_alias=True) for item in items])


@router.post("/users/{user_id}/permissions", response_model=dict)
async def set_user_permissions(
    user_id: uuid.UUID,
    payload: PermissionUpdateRequest,
    request: Request,
    current_user: CurrentAdmin,
    db: DB,
):
    """Grant or revoke document access for a user; all entries apply or none do."""
    items = await permission_service.set_permissions(
        db, user_id, payload.permissions, current_user, request=request
    )
    return api_success([item.model_dump(by_alias=True) for item in items])
