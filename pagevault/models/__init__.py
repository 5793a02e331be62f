from pagevault.models.base import Base
from pagevault.models.models import (
    ActivityLog,
    DiscountCode,
    DiscountType,
    Document,
    FilePermission,
    License,
    PaymentMethod,
    Purchase,
    PurchaseStatus,
    User,
    UserRole,
)

__all__ = [
    "ActivityLog",
    "Base",
    "DiscountCode",
    "DiscountType",
    "Document",
    "FilePermission",
    "License",
    "PaymentMethod",
    "Purchase",
    "PurchaseStatus",
    "User",
    "UserRole",
]
