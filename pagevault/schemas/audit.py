"""
Typed audit payloads.

Every activity log entry stores one of these models as JSON. The `kind`
field discriminates the union so stored details can be parsed back into
the right model.
"""

from datetime import datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter


class PurchaseCreatedDetails(BaseModel):
    kind: Literal["purchase_created"] = "purchase_created"
    document_id: str
    amount: float
    discount_code: Optional[str] = None
    discount_amount: float
    final_amount: float
    status: str


class PurchaseStatusChangedDetails(BaseModel):
    kind: Literal["purchase_status_changed"] = "purchase_status_changed"
    purchase_id: str
    previous_status: str
    new_status: str
    admin_notes: Optional[str] = None


class LicenseIssuedDetails(BaseModel):
    kind: Literal["license_issued"] = "license_issued"
    purchase_id: str
    document_id: str
    user_id: str
    renewed: bool = False


class DiscountCodeRedeemedDetails(BaseModel):
    kind: Literal["discount_code_redeemed"] = "discount_code_redeemed"
    code: str
    purchase_id: str
    discount_amount: float


class DocumentAccessDetails(BaseModel):
    kind: Literal["document_access"] = "document_access"
    document_id: str
    tier: str
    reason: str
    page_cap: Optional[int] = None
    total_pages: int


class AdminGuardBlockedDetails(BaseModel):
    kind: Literal["admin_guard_blocked"] = "admin_guard_blocked"
    operation: str
    reason: str
    active_admin_count: int
    attempted_role: Optional[str] = None
    target_user_id: Optional[str] = None


class AccessDeniedDetails(BaseModel):
    kind: Literal["access_denied"] = "access_denied"
    reason: str
    path: Optional[str] = None
    method: Optional[str] = None
    target_user_id: Optional[str] = None


class UserRoleChangedDetails(BaseModel):
    kind: Literal["user_role_changed"] = "user_role_changed"
    target_user_id: str
    previous_role: str
    new_role: str


class UserStatusChangedDetails(BaseModel):
    kind: Literal["user_status_changed"] = "user_status_changed"
    target_user_id: str
    previous_is_active: bool
    new_is_active: bool


class UserDeletedDetails(BaseModel):
    kind: Literal["user_deleted"] = "user_deleted"
    target_user_id: str
    mode: Literal["soft", "permanent"]
    email: str
    username: str


class ProfileUpdatedDetails(BaseModel):
    kind: Literal["profile_updated"] = "profile_updated"
    fields: list[str] = Field(default_factory=list)
    password_changed: bool = False


class UserSavedDetails(BaseModel):
    kind: Literal["user_saved"] = "user_saved"
    target_user_id: str
    operation: Literal["created", "updated"]
    fields: list[str] = Field(default_factory=list)


class FilePermissionsUpdatedDetails(BaseModel):
    kind: Literal["file_permissions_updated"] = "file_permissions_updated"
    target_user_id: str
    granted: list[str] = Field(default_factory=list)
    revoked: list[str] = Field(default_factory=list)


class DiscountCodeChangedDetails(BaseModel):
    kind: Literal["discount_code_changed"] = "discount_code_changed"
    discount_code_id: str
    code: str
    operation: Literal["created", "updated", "deleted"]


class DocumentChangedDetails(BaseModel):
    kind: Literal["document_changed"] = "document_changed"
    document_id: str
    title: str
    operation: Literal["uploaded", "updated", "toggled", "deleted"]


class AuthDetails(BaseModel):
    kind: Literal["auth"] = "auth"
    method: Literal["login", "register"]


class BootstrapAdminDetails(BaseModel):
    kind: Literal["bootstrap_admin"] = "bootstrap_admin"
    operation: Literal["created", "promoted", "unchanged"]
    email: str


ActivityDetails = Annotated[
    Union[
        PurchaseCreatedDetails,
        PurchaseStatusChangedDetails,
        LicenseIssuedDetails,
        DiscountCodeRedeemedDetails,
        DocumentAccessDetails,
        AdminGuardBlockedDetails,
        AccessDeniedDetails,
        UserRoleChangedDetails,
        UserStatusChangedDetails,
        UserDeletedDetails,
        UserSavedDetails,
        ProfileUpdatedDetails,
        FilePermissionsUpdatedDetails,
        DiscountCodeChangedDetails,
        DocumentChangedDetails,
        AuthDetails,
        BootstrapAdminDetails,
    ],
    Field(discriminator="kind"),
]

activity_details_adapter: TypeAdapter[ActivityDetails] = TypeAdapter(ActivityDetails)


class ActivityLogResponse(BaseModel):
    id: str
    actor_user_id: Optional[str] = Field(None, alias="actorUserId")
    action: str
    target_type: Optional[str] = Field(None, alias="targetType")
    target_id: Optional[str] = Field(None, alias="targetId")
    details: Optional[ActivityDetails] = None
    ip_address: Optional[str] = Field(None, alias="ipAddress")
    user_agent: Optional[str] = Field(None, alias="userAgent")
    created_at: datetime = Field(..., alias="createdAt")

    class Config:
        populate_by_name = True
