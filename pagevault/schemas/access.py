"""Access decision types produced by the access resolver."""

import enum
from typing import Optional

from pydantic import BaseModel, Field


class AccessTier(str, enum.Enum):
    NONE = "none"
    BOUNDED = "bounded"
    FULL = "full"


class AccessReason(str, enum.Enum):
    LICENSED = "licensed"
    FILE_PERMISSION = "file_permission"
    AUTHENTICATION_REQUIRED = "authentication_required"
    LICENSE_REQUIRED = "license_required"
    LICENSE_EXPIRED = "license_expired"


class AccessDecision(BaseModel):
    """
    Outcome of resolving a viewer against a document.

    page_cap is set only for the bounded tier and never exceeds the
    document's total page count.
    """

    tier: AccessTier
    reason: AccessReason
    page_cap: Optional[int] = Field(None, ge=0, alias="pageCap")

    class Config:
        populate_by_name = True
        frozen = True

    @property
    def is_full(self) -> bool:
        return self.tier == AccessTier.FULL


class AccessCheckResponse(BaseModel):
    """Client hint describing what a viewer may do with a document."""

    document_id: str = Field(..., alias="documentId")
    tier: AccessTier
    reason: AccessReason
    page_cap: Optional[int] = Field(None, alias="pageCap")
    free_pages: int = Field(..., alias="freePages")
    total_pages: int = Field(..., alias="totalPages")
    has_full_access: bool = Field(..., alias="hasFullAccess")

    class Config:
        populate_by_name = True
