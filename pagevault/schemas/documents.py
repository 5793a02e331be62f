"""Document catalogue schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class DocumentResponse(BaseModel):
    """Document metadata. The storage key is never exposed."""

    id: str
    title: str
    description: Optional[str] = None
    file_name: str = Field(..., alias="fileName")
    file_size: int = Field(..., alias="fileSize")
    total_pages: int = Field(..., alias="totalPages")
    free_pages: int = Field(..., alias="freePages")
    price: float
    thumbnail_url: Optional[str] = Field(None, alias="thumbnailUrl")
    view_count: int = Field(0, alias="viewCount")
    purchase_count: int = Field(0, alias="purchaseCount")
    is_active: bool = Field(..., alias="isActive")
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")

    class Config:
        from_attributes = True
        populate_by_name = True

    @classmethod
    def from_document(cls, document) -> "DocumentResponse":
        return cls(
            id=str(document.id),
            title=document.title,
            description=document.description,
            file_name=document.file_name,
            file_size=document.file_size,
            total_pages=document.total_pages,
            free_pages=document.free_pages,
            price=float(document.price),
            thumbnail_url=document.thumbnail_url,
            view_count=document.view_count,
            purchase_count=document.purchase_count,
            is_active=document.is_active,
            created_at=document.created_at,
            updated_at=document.updated_at,
        )


class DocumentUpdate(BaseModel):
    """Editable document metadata. free_pages is re-checked against the stored page count."""

    title: Optional[str] = Field(None, min_length=1, max_length=300)
    description: Optional[str] = Field(None, max_length=5000)
    price: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
    free_pages: Optional[int] = Field(None, ge=0, alias="freePages")
    thumbnail_url: Optional[str] = Field(None, alias="thumbnailUrl")
    is_active: Optional[bool] = Field(None, alias="isActive")

    class Config:
        populate_by_name = True
