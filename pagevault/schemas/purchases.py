"""Purchase and license schemas."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from pagevault.models.models import PaymentMethod, PurchaseStatus


class PurchaseCreate(BaseModel):
    """Checkout request. An unusable discount code is ignored, never rejected."""

    document_id: uuid.UUID = Field(..., alias="documentId")
    discount_code: Optional[str] = Field(None, max_length=64, alias="discountCode")
    payment_method: PaymentMethod = Field(PaymentMethod.CARD_TO_CARD, alias="paymentMethod")
    transaction_id: Optional[str] = Field(None, max_length=128, alias="transactionId")

    class Config:
        populate_by_name = True


class PurchaseStatusUpdate(BaseModel):
    status: PurchaseStatus
    admin_notes: Optional[str] = Field(None, max_length=2000, alias="adminNotes")

    class Config:
        populate_by_name = True


class PurchaseResponse(BaseModel):
    id: str
    user_id: str = Field(..., alias="userId")
    document_id: str = Field(..., alias="documentId")
    amount: float
    discount_code: Optional[str] = Field(None, alias="discountCode")
    discount_amount: float = Field(..., alias="discountAmount")
    final_amount: float = Field(..., alias="finalAmount")
    status: PurchaseStatus
    payment_method: PaymentMethod = Field(..., alias="paymentMethod")
    transaction_id: Optional[str] = Field(None, alias="transactionId")
    admin_notes: Optional[str] = Field(None, alias="adminNotes")
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")
    document_title: Optional[str] = Field(None, alias="documentTitle")
    user_email: Optional[str] = Field(None, alias="userEmail")

    class Config:
        populate_by_name = True

    @classmethod
    def from_purchase(cls, purchase, document_title=None, user_email=None) -> "PurchaseResponse":
        return cls(
            id=str(purchase.id),
            user_id=str(purchase.user_id),
            document_id=str(purchase.document_id),
            amount=float(purchase.amount),
            discount_code=purchase.discount_code,
            discount_amount=float(purchase.discount_amount),
            final_amount=float(purchase.final_amount),
            status=purchase.status,
            payment_method=purchase.payment_method,
            transaction_id=purchase.transaction_id,
            admin_notes=purchase.admin_notes,
            created_at=purchase.created_at,
            updated_at=purchase.updated_at,
            document_title=document_title,
            user_email=user_email,
        )


class LicenseResponse(BaseModel):
    """A license together with the document it unlocks."""

    id: str
    document_id: str = Field(..., alias="documentId")
    document_title: str = Field(..., alias="documentTitle")
    purchase_id: Optional[str] = Field(None, alias="purchaseId")
    is_active: bool = Field(..., alias="isActive")
    expires_at: Optional[datetime] = Field(None, alias="expiresAt")
    is_expired: bool = Field(..., alias="isExpired")
    created_at: datetime = Field(..., alias="createdAt")

    class Config:
        populate_by_name = True
