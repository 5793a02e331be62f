"""Administrative user-management schemas."""

from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from pagevault.models.models import UserRole


class AdminUserCreate(BaseModel):
    """Account created by an administrator."""

    first_name: str = Field(..., min_length=1, max_length=100, alias="firstName")
    last_name: str = Field(..., min_length=1, max_length=100, alias="lastName")
    email: EmailStr
    username: str = Field(..., min_length=3, max_length=20)
    password: str = Field(..., min_length=8, max_length=128)
    phone_number: Optional[str] = Field(None, max_length=32, alias="phoneNumber")
    role: UserRole = UserRole.USER

    class Config:
        populate_by_name = True


class AdminUserUpdate(BaseModel):
    """Profile fields an administrator may edit. Role and status have dedicated endpoints."""

    first_name: Optional[str] = Field(None, min_length=1, max_length=100, alias="firstName")
    last_name: Optional[str] = Field(None, min_length=1, max_length=100, alias="lastName")
    email: Optional[EmailStr] = None
    username: Optional[str] = Field(None, min_length=3, max_length=20)
    phone_number: Optional[str] = Field(None, max_length=32, alias="phoneNumber")
    password: Optional[str] = Field(None, min_length=8, max_length=128)

    class Config:
        populate_by_name = True


class RoleChangeRequest(BaseModel):
    role: UserRole


class StatusChangeRequest(BaseModel):
    is_active: bool = Field(..., alias="isActive")

    class Config:
        populate_by_name = True


class ProfileUpdateRequest(BaseModel):
    """
    Self-service profile edit.

    The password changes only when both currentPassword and newPassword
    are sent and currentPassword matches.
    """

    first_name: str = Field(..., min_length=1, max_length=100, alias="firstName")
    last_name: str = Field(..., min_length=1, max_length=100, alias="lastName")
    email: EmailStr
    username: str = Field(..., min_length=3, max_length=20)
    phone_number: Optional[str] = Field(None, max_length=32, alias="phoneNumber")
    current_password: Optional[str] = Field(None, max_length=128, alias="currentPassword")
    new_password: Optional[str] = Field(None, min_length=8, max_length=128, alias="newPassword")

    class Config:
        populate_by_name = True
