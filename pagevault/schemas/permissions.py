"""File permission schemas."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class PermissionEntry(BaseModel):
    document_id: uuid.UUID = Field(..., alias="documentId")
    has_access: bool = Field(..., alias="hasAccess")

    class Config:
        populate_by_name = True


class PermissionUpdateRequest(BaseModel):
    """Batch of grants and revocations applied atomically for one user."""

    permissions: list[PermissionEntry] = Field(..., min_length=1)


class DocumentPermissionItem(BaseModel):
    document_id: str = Field(..., alias="documentId")
    title: str
    has_access: bool = Field(..., alias="hasAccess")
    granted_at: Optional[datetime] = Field(None, alias="grantedAt")

    class Config:
        populate_by_name = True
