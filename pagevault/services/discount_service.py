"""Discount code evaluation and administration."""

import logging
import uuid
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Sequence

from fastapi import Request
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from pagevault.database.discount_repo import discount_code_repository
from pagevault.database.documents_repo import document_repository
from pagevault.models.models import DiscountCode, DiscountType, User
from pagevault.schemas.audit import DiscountCodeChangedDetails
from pagevault.schemas.discounts import (
    DiscountCodeCreate,
    DiscountCodeUpdate,
    DiscountEvaluation,
    DiscountPreview,
)
from pagevault.services.activity_service import ActivityService
from pagevault.utils.dates import is_past
from pagevault.utils.exceptions import ConflictException, NotFoundException, ValidationException

logger = logging.getLogger(__name__)

INVALID = DiscountEvaluation(valid=False)


def evaluate_discount(
    discount: Optional[DiscountCode],
    price: Decimal,
    now: Optional[datetime] = None,
) -> DiscountEvaluation:
    """
    Compute the discount a code grants on a price without touching usage.

    A code is usable only when it exists, is active, has not expired and
    has uses left. Percentages round half-up to whole currency units.
    """
    if discount is None or not discount.is_active:
        return INVALID
    if is_past(discount.expires_at, now):
        return INVALID
    if discount.max_uses is not None and discount.used_count >= discount.max_uses:
        return INVALID

    price = Decimal(price)
    value = Decimal(discount.value)
    if discount.type == DiscountType.PERCENTAGE:
        amount = (price * value / Decimal(100)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    elif discount.type == DiscountType.FIXED:
        amount = value
    else:
        amount = price

    amount = max(Decimal("0"), min(amount, price))
    return DiscountEvaluation(valid=True, discount_id=discount.id, type=discount.type, value=value, amount=amount)


class DiscountService:
    """Service for discount code business logic."""

    @staticmethod
    async def evaluate(db: AsyncSession, code: Optional[str], price: Decimal) -> DiscountEvaluation:
        """Look a code up and evaluate it against a price. Never mutates the code."""
        if not code or not code.strip():
            return INVALID
        discount = await discount_code_repository.get_by_code(db, code)
        return evaluate_discount(discount, price)

    @staticmethod
    async def validate_code(db: AsyncSession, code: str, document_id: uuid.UUID) -> DiscountPreview:
        """
        Preview the price of a document with a code applied.

        Raises:
            NotFoundException: Document missing or inactive
            ValidationException: Code is not usable
        """
        document = await document_repository.get_active_by_id(db, document_id)
        if document is None:
            raise NotFoundException("Document not found")

        evaluation = await DiscountService.evaluate(db, code, document.price)
        if not evaluation.valid:
            raise ValidationException("Discount code is invalid or expired")

        final_price = max(Decimal("0"), document.price - evaluation.amount)
        return DiscountPreview(
            code=code.strip(),
            type=evaluation.type,
            value=float(evaluation.value),
            discount_amount=float(evaluation.amount),
            original_price=float(document.price),
            final_price=float(final_price),
        )

    @staticmethod
    def _check_terms(type_: DiscountType, value: Decimal, max_uses: Optional[int]) -> None:
        if value < 0:
            raise ValidationException("Discount value must not be negative")
        if type_ == DiscountType.PERCENTAGE and value > 100:
            raise ValidationException("Percentage discount must not exceed 100")
        if max_uses is not None and max_uses < 1:
            raise ValidationException("maxUses must be at least 1 or null for unlimited")

    @staticmethod
    async def list_codes(db: AsyncSession) -> Sequence[DiscountCode]:
        return await discount_code_repository.list_codes(db)

    @staticmethod
    async def get_code(db: AsyncSession, discount_id: uuid.UUID) -> DiscountCode:
        discount = await discount_code_repository.get_by_id(db, discount_id)
        if discount is None:
            raise NotFoundException("Discount code not found")
        return discount

    @staticmethod
    async def create_code(
        db: AsyncSession,
        payload: DiscountCodeCreate,
        actor: User,
        request: Optional[Request] = None,
    ) -> DiscountCode:
        code = payload.code.strip()
        if not code:
            raise ValidationException("Discount code must not be blank")
        DiscountService._check_terms(payload.type, payload.value, payload.max_uses)

        if await discount_code_repository.get_by_code(db, code) is not None:
            raise ConflictException("Discount code already exists", details={"code": code})

        discount = DiscountCode(
            code=code,
            type=payload.type,
            value=payload.value,
            max_uses=payload.max_uses,
            is_active=payload.is_active,
            expires_at=payload.expires_at,
        )
        db.add(discount)
        try:
            await db.commit()
        except IntegrityError as exc:
            await db.rollback()
            raise ConflictException("Discount code already exists", details={"code": code}) from exc
        await db.refresh(discount)

        await ActivityService.log_after_commit(
            db,
            "discount_code_created",
            user_id=actor.id,
            target_type="discount_code",
            target_id=str(discount.id),
            details=DiscountCodeChangedDetails(discount_code_id=str(discount.id), code=code, operation="created"),
            request=request,
        )
        return discount

    @staticmethod
    async def update_code(
        db: AsyncSession,
        discount_id: uuid.UUID,
        payload: DiscountCodeUpdate,
        actor: User,
        request: Optional[Request] = None,
    ) -> DiscountCode:
        discount = await DiscountService.get_code(db, discount_id)
        changes = payload.model_dump(exclude_unset=True)

        if "code" in changes:
            new_code = (changes["code"] or "").strip()
            if not new_code:
                raise ValidationException("Discount code must not be blank")
            if new_code != discount.code:
                existing = await discount_code_repository.get_by_code(db, new_code)
                if existing is not None:
                    raise ConflictException("Discount code already exists", details={"code": new_code})
            changes["code"] = new_code

        if changes.get("type") is None:
            changes.pop("type", None)
        if changes.get("value") is None:
            changes.pop("value", None)
        if changes.get("is_active") is None:
            changes.pop("is_active", None)

        DiscountService._check_terms(
            changes.get("type", discount.type),
            changes.get("value", discount.value),
            changes.get("max_uses", discount.max_uses),
        )

        for field, value in changes.items():
            setattr(discount, field, value)

        try:
            await db.commit()
        except IntegrityError as exc:
            await db.rollback()
            raise ConflictException("Discount code already exists") from exc
        await db.refresh(discount)

        await ActivityService.log_after_commit(
            db,
            "discount_code_updated",
            user_id=actor.id,
            target_type="discount_code",
            target_id=str(discount.id),
            details=DiscountCodeChangedDetails(
                discount_code_id=str(discount.id), code=discount.code, operation="updated"
            ),
            request=request,
        )
        return discount

    @staticmethod
    async def delete_code(
        db: AsyncSession,
        discount_id: uuid.UUID,
        actor: User,
        request: Optional[Request] = None,
    ) -> None:
        """Delete a code. Purchases keep the code string they were priced with."""
        discount = await DiscountService.get_code(db, discount_id)
        code = discount.code
        await db.delete(discount)
        await db.commit()

        await ActivityService.log_after_commit(
            db,
            "discount_code_deleted",
            user_id=actor.id,
            target_type="discount_code",
            target_id=str(discount_id),
            details=DiscountCodeChangedDetails(discount_code_id=str(discount_id), code=code, operation="deleted"),
            request=request,
        )


discount_service = DiscountService()
