from __future__ import annotations

import enum
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP

from pagevault.models.base import Base
from pagevault.utils.dates import utcnow


Money = Numeric(12, 2)


def str_enum(enum_cls: type[enum.Enum], name: str) -> Enum:
    """Non-native enum column that stores member values rather than names."""
    return Enum(enum_cls, name=name, native_enum=False, values_callable=lambda cls: [m.value for m in cls])


class UUIDMixin:
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)


class AuditMixin:
    """Audit fields that exist in all tables: created_date, updated_date"""
    created_date: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_date: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), onupdate=utcnow)


class TimestampMixin(AuditMixin):
    """Expose created_at/updated_at over created_date/updated_date"""
    @property
    def created_at(self) -> datetime:
        return self.created_date

    @property
    def updated_at(self) -> Optional[datetime]:
        return self.updated_date


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    USER = "user"


class PurchaseStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class PaymentMethod(str, enum.Enum):
    CARD_TO_CARD = "card_to_card"


class DiscountType(str, enum.Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"
    FREE = "free"


class User(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "tbl_users"
    __table_args__ = (Index("ix_users_role_active", "role", "is_active"),)

    first_name: Mapped[str] = mapped_column(Text, nullable=False)
    last_name: Mapped[str] = mapped_column(Text, nullable=False)
    # Always stored lower-cased; lookups lower-case their input too
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    username: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    phone_number: Mapped[Optional[str]] = mapped_column(String(32))
    role: Mapped[UserRole] = mapped_column(
        str_enum(UserRole, "user_role"),
        nullable=False,
        default=UserRole.USER,
        server_default=text("'user'"),
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=text("true"))

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Document(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "tbl_documents"
    __table_args__ = (
        CheckConstraint("price >= 0", name="price_non_negative"),
        CheckConstraint("total_pages >= 0", name="total_pages_non_negative"),
        CheckConstraint("free_pages >= 0 AND free_pages <= total_pages", name="free_pages_bounded"),
        Index("ix_documents_active_created", "is_active", "created_date"),
    )

    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    file_name: Mapped[str] = mapped_column(Text, nullable=False)
    # Storage key relative to settings.UPLOAD_DIR
    file_path: Mapped[str] = mapped_column(Text, nullable=False)
    file_size: Mapped[int] = mapped_column(BigInteger, nullable=False)
    total_pages: Mapped[int] = mapped_column(Integer, nullable=False)
    free_pages: Mapped[int] = mapped_column(Integer, nullable=False, default=3, server_default=text("3"))
    price: Mapped[Decimal] = mapped_column(Money, nullable=False)
    thumbnail_url: Mapped[Optional[str]] = mapped_column(Text)
    uploader_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("tbl_users.id", ondelete="SET NULL")
    )
    view_count: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default=text("0"))
    purchase_count: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default=text("0"))
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=text("true"))


class Purchase(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "tbl_purchases"
    __table_args__ = (
        CheckConstraint("amount >= 0", name="amount_non_negative"),
        CheckConstraint("discount_amount >= 0", name="discount_amount_non_negative"),
        CheckConstraint("final_amount >= 0", name="final_amount_non_negative"),
        Index("ix_purchases_user", "user_id"),
        Index("ix_purchases_status_created", "status", "created_date"),
    )

    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("tbl_users.id"), nullable=False)
    document_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("tbl_documents.id"), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    # Only set when the code was valid and actually applied
    discount_code: Mapped[Optional[str]] = mapped_column(String(64))
    # Redemptions are counted against this row, not the code string
    discount_code_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("tbl_discount_codes.id", ondelete="SET NULL")
    )
    discount_amount: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0"), server_default=text("0"))
    final_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    status: Mapped[PurchaseStatus] = mapped_column(
        str_enum(PurchaseStatus, "purchase_status"),
        nullable=False,
        default=PurchaseStatus.PENDING,
        server_default=text("'pending'"),
    )
    payment_method: Mapped[PaymentMethod] = mapped_column(
        str_enum(PaymentMethod, "payment_method"),
        nullable=False,
        default=PaymentMethod.CARD_TO_CARD,
        server_default=text("'card_to_card'"),
    )
    transaction_id: Mapped[Optional[str]] = mapped_column(String(128))
    admin_notes: Mapped[Optional[str]] = mapped_column(Text)


class License(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "tbl_licenses"
    __table_args__ = (
        # At most one active license per (user, document)
        Index(
            "uq_licenses_active_user_document",
            "user_id",
            "document_id",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active"),
        ),
        Index("ix_licenses_purchase", "purchase_id"),
    )

    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("tbl_users.id"), nullable=False)
    document_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("tbl_documents.id"), nullable=False)
    purchase_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("tbl_purchases.id"))
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=text("true"))
    expires_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True))


class DiscountCode(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "tbl_discount_codes"
    __table_args__ = (
        CheckConstraint("value >= 0", name="value_non_negative"),
        CheckConstraint("used_count >= 0", name="used_count_non_negative"),
        CheckConstraint("max_uses IS NULL OR max_uses >= 1", name="max_uses_positive"),
    )

    code: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    type: Mapped[DiscountType] = mapped_column(
        str_enum(DiscountType, "discount_type"), nullable=False
    )
    value: Mapped[Decimal] = mapped_column(Money, nullable=False)
    # NULL means unlimited
    max_uses: Mapped[Optional[int]] = mapped_column(Integer)
    used_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=text("true"))
    expires_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True))


class FilePermission(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "tbl_file_permissions"
    __table_args__ = (UniqueConstraint("user_id", "document_id", name="uq_file_permissions_user_document"),)

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tbl_users.id", ondelete="CASCADE"), nullable=False
    )
    document_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tbl_documents.id", ondelete="CASCADE"), nullable=False
    )
    granted_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("tbl_users.id", ondelete="SET NULL"))
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=text("true"))


class ActivityLog(UUIDMixin, Base):
    __tablename__ = "tbl_activity_logs"
    __table_args__ = (
        Index("ix_activity_actor_time", "actor_user_id", "created_date"),
        Index("ix_activity_target", "target_type", "target_id"),
    )

    actor_user_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("tbl_users.id"))
    action: Mapped[str] = mapped_column(String(64), nullable=False)
    target_type: Mapped[Optional[str]] = mapped_column(String(32))
    target_id: Mapped[Optional[str]] = mapped_column(String(64))
    # Typed audit payload (pagevault.schemas.audit), serialized as JSON text
    details: Mapped[Optional[str]] = mapped_column(Text)
    ip_address: Mapped[Optional[str]] = mapped_column(String(64))
    user_agent: Mapped[Optional[str]] = mapped_column(Text)
    created_date: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
