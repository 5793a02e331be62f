"""Discount code schemas."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from pagevault.models.models import DiscountType


class DiscountEvaluation(BaseModel):
    """
    Result of evaluating a code against a price.

    amount is the money removed from the price and always lies in
    [0, price]. An invalid code evaluates to amount 0 with no type.
    """

    valid: bool
    discount_id: Optional[uuid.UUID] = None
    type: Optional[DiscountType] = None
    value: Decimal = Decimal("0")
    amount: Decimal = Decimal("0")

    class Config:
        frozen = True


class DiscountValidateRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=64)
    document_id: uuid.UUID = Field(..., alias="documentId")

    class Config:
        populate_by_name = True


class DiscountPreview(BaseModel):
    """Live price preview for a code on a document."""

    code: str
    type: DiscountType
    value: float
    discount_amount: float = Field(..., alias="discountAmount")
    original_price: float = Field(..., alias="originalPrice")
    final_price: float = Field(..., alias="finalPrice")

    class Config:
        populate_by_name = True


class DiscountCodeCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=64)
    type: DiscountType
    value: Decimal = Field(..., max_digits=12, decimal_places=2)
    max_uses: Optional[int] = Field(None, alias="maxUses", description="null means unlimited")
    is_active: bool = Field(True, alias="isActive")
    expires_at: Optional[datetime] = Field(None, alias="expiresAt")

    class Config:
        populate_by_name = True


class DiscountCodeUpdate(BaseModel):
    code: Optional[str] = Field(None, min_length=1, max_length=64)
    type: Optional[DiscountType] = None
    value: Optional[Decimal] = Field(None, max_digits=12, decimal_places=2)
    max_uses: Optional[int] = Field(None, alias="maxUses")
    is_active: Optional[bool] = Field(None, alias="isActive")
    expires_at: Optional[datetime] = Field(None, alias="expiresAt")

    class Config:
        populate_by_name = True


class DiscountCodeResponse(BaseModel):
    id: str
    code: str
    type: DiscountType
    value: float
    max_uses: Optional[int] = Field(None, alias="maxUses")
    used_count: int = Field(..., alias="usedCount")
    is_active: bool = Field(..., alias="isActive")
    expires_at: Optional[datetime] = Field(None, alias="expiresAt")
    created_at: datetime = Field(..., alias="createdAt")

    class Config:
        populate_by_name = True

    @classmethod
    def from_code(cls, discount) -> "DiscountCodeResponse":
        return cls(
            id=str(discount.id),
            code=discount.code,
            type=discount.type,
            value=float(discount.value),
            max_uses=discount.max_uses,
            used_count=discount.used_count,
            is_active=discount.is_active,
            expires_at=discount.expires_at,
            created_at=discount.created_at,
        )
