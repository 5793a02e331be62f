"""Purchase workflow: checkout, manual review and license issuance."""

import logging
import uuid
from decimal import Decimal
from typing import Optional

from fastapi import Request
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from pagevault.database.discount_repo import discount_code_repository
from pagevault.database.documents_repo import document_repository
from pagevault.database.purchases_repo import purchase_repository
from pagevault.models.models import Purchase, PurchaseStatus, User
from pagevault.schemas.audit import (
    DiscountCodeRedeemedDetails,
    LicenseIssuedDetails,
    PurchaseCreatedDetails,
    PurchaseStatusChangedDetails,
)
from pagevault.schemas.purchases import PurchaseCreate, PurchaseResponse
from pagevault.services.activity_service import ActivityService
from pagevault.services.discount_service import DiscountService
from pagevault.services.licensing_service import LicensingService
from pagevault.utils.exceptions import (
    AlreadyEntitledException,
    ConflictException,
    NotFoundException,
    ValidationException,
)

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = (PurchaseStatus.APPROVED, PurchaseStatus.REJECTED)
AUTO_APPROVAL_NOTE = "Approved automatically: nothing to pay"


class PurchaseService:
    """Service for the purchase state machine."""

    @staticmethod
    async def _apply_approval(
        db: AsyncSession,
        purchase: Purchase,
        actor_id: Optional[uuid.UUID],
        admin_notes: Optional[str] = None,
    ) -> bool:
        """
        Run the approval side effects inside the caller's transaction.

        Order: status transition, license check-and-insert, discount usage,
        document purchase counter. Nothing happens when the purchase is no
        longer pending.

        Returns:
            True if this call performed the transition
        """
        updated = await purchase_repository.transition_from_pending(
            db, purchase.id, PurchaseStatus.APPROVED, admin_notes
        )
        if updated == 0:
            return False

        license_obj, renewed = await LicensingService.issue_license(
            db, purchase.user_id, purchase.document_id, purchase.id
        )
        if license_obj is not None:
            await ActivityService.log_activity(
                db,
                "license_issued",
                user_id=actor_id,
                target_type="license",
                target_id=str(license_obj.id),
                details=LicenseIssuedDetails(
                    purchase_id=str(purchase.id),
                    document_id=str(purchase.document_id),
                    user_id=str(purchase.user_id),
                    renewed=renewed,
                ),
                commit=False,
            )

        if (
            purchase.discount_code_id is not None
            and purchase.discount_amount > 0
            and await discount_code_repository.increment_usage(db, purchase.discount_code_id)
        ):
            await ActivityService.log_activity(
                db,
                "discount_code_redeemed",
                user_id=actor_id,
                target_type="discount_code",
                target_id=str(purchase.discount_code_id),
                details=DiscountCodeRedeemedDetails(
                    code=purchase.discount_code,
                    purchase_id=str(purchase.id),
                    discount_amount=float(purchase.discount_amount),
                ),
                commit=False,
            )

        await document_repository.increment_purchase_count(db, purchase.document_id)
        return True

    @staticmethod
    async def create_purchase(
        db: AsyncSession,
        user: User,
        payload: PurchaseCreate,
        request: Optional[Request] = None,
    ) -> Purchase:
        """
        Create a purchase for a document.

        An unusable discount code is ignored. When nothing is left to pay
        the purchase is approved and licensed in the same transaction.

        Raises:
            NotFoundException: Document missing or inactive
            AlreadyEntitledException: User already holds a live license
            ConflictException: A concurrent write won the license race
        """
        document = await document_repository.get_active_by_id(db, payload.document_id)
        if document is None:
            raise NotFoundException("Document not found")

        if await LicensingService.has_live_license(db, user.id, document.id):
            raise AlreadyEntitledException(details={"documentId": str(document.id)})

        price = Decimal(document.price)
        evaluation = await DiscountService.evaluate(db, payload.discount_code, price)
        discount_amount = evaluation.amount if evaluation.valid else Decimal("0")
        final_amount = max(Decimal("0"), price - discount_amount)

        purchase = Purchase(
            user_id=user.id,
            document_id=document.id,
            amount=price,
            discount_code=payload.discount_code.strip() if evaluation.valid else None,
            discount_code_id=evaluation.discount_id if evaluation.valid else None,
            discount_amount=discount_amount,
            final_amount=final_amount,
            status=PurchaseStatus.PENDING,
            payment_method=payload.payment_method,
            transaction_id=payload.transaction_id,
        )

        try:
            db.add(purchase)
            await db.flush()
            if final_amount == 0:
                await PurchaseService._apply_approval(db, purchase, None, AUTO_APPROVAL_NOTE)
            await db.commit()
        except IntegrityError as exc:
            await db.rollback()
            raise ConflictException("Purchase conflicts with an existing license") from exc
        except Exception:
            await db.rollback()
            raise

        await db.refresh(purchase)
        logger.info(
            "Purchase created",
            extra={"purchase.id": str(purchase.id), "purchase.status": purchase.status.value},
        )

        await ActivityService.log_after_commit(
            db,
            "purchase_created",
            user_id=user.id,
            target_type="purchase",
            target_id=str(purchase.id),
            details=PurchaseCreatedDetails(
                document_id=str(document.id),
                amount=float(purchase.amount),
                discount_code=purchase.discount_code,
                discount_amount=float(purchase.discount_amount),
                final_amount=float(purchase.final_amount),
                status=purchase.status.value,
            ),
            request=request,
        )
        return purchase

    @staticmethod
    async def set_purchase_status(
        db: AsyncSession,
        purchase_id: uuid.UUID,
        status: PurchaseStatus,
        actor: User,
        admin_notes: Optional[str] = None,
        request: Optional[Request] = None,
    ) -> Purchase:
        """
        Approve or reject a pending purchase.

        Replaying the current terminal status returns the purchase
        unchanged. Moving between approved and rejected is refused.

        Raises:
            ValidationException: Target status is not approved or rejected
            NotFoundException: Purchase missing
            ConflictException: Purchase already holds the other terminal status
        """
        if status not in TERMINAL_STATUSES:
            raise ValidationException("Status must be approved or rejected")

        purchase = await purchase_repository.get_by_id(db, purchase_id)
        if purchase is None:
            raise NotFoundException("Purchase not found")

        if purchase.status == status:
            return purchase
        if purchase.status != PurchaseStatus.PENDING:
            raise ConflictException(
                f"Purchase is already {purchase.status.value}",
                details={"status": purchase.status.value},
            )

        previous_status = purchase.status
        try:
            if status == PurchaseStatus.APPROVED:
                applied = await PurchaseService._apply_approval(db, purchase, actor.id, admin_notes)
            else:
                applied = (
                    await purchase_repository.transition_from_pending(db, purchase.id, status, admin_notes)
                ) > 0

            if not applied:
                # Another reviewer got there first
                await db.rollback()
                await db.refresh(purchase)
                if purchase.status == status:
                    return purchase
                raise ConflictException(
                    f"Purchase is already {purchase.status.value}",
                    details={"status": purchase.status.value},
                )

            await db.commit()
        except IntegrityError as exc:
            await db.rollback()
            raise ConflictException("Purchase conflicts with an existing license") from exc
        except Exception:
            await db.rollback()
            raise

        await db.refresh(purchase)
        logger.info(
            "Purchase status changed",
            extra={"purchase.id": str(purchase.id), "purchase.status": purchase.status.value},
        )

        await ActivityService.log_after_commit(
            db,
            "purchase_status_changed",
            user_id=actor.id,
            target_type="purchase",
            target_id=str(purchase.id),
            details=PurchaseStatusChangedDetails(
                purchase_id=str(purchase.id),
                previous_status=previous_status.value,
                new_status=purchase.status.value,
                admin_notes=admin_notes,
            ),
            request=request,
        )
        return purchase

    @staticmethod
    async def list_user_purchases(db: AsyncSession, user_id: uuid.UUID) -> list[PurchaseResponse]:
        rows = await purchase_repository.list_for_user(db, user_id)
        return [PurchaseResponse.from_purchase(p, document_title=title) for p, title in rows]

    @staticmethod
    async def list_purchases(
        db: AsyncSession,
        status: Optional[PurchaseStatus] = None,
        search: Optional[str] = None,
    ) -> list[PurchaseResponse]:
        rows = await purchase_repository.list_all(db, status=status, search=search)
        return [
            PurchaseResponse.from_purchase(p, document_title=title, user_email=email) for p, title, email in rows
        ]


purchase_service = PurchaseService()
