"""Purchase state machine, license issuance and discount redemption."""
from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from pagevault.database.discount_repo import discount_code_repository
from pagevault.database.licenses_repo import license_repository
from pagevault.models import (
    ActivityLog,
    DiscountCode,
    DiscountType,
    License,
    Purchase,
    PurchaseStatus,
)
from pagevault.schemas.discounts import DiscountCodeUpdate
from pagevault.schemas.purchases import PurchaseCreate
from pagevault.services.discount_service import DiscountService
from pagevault.services.licensing_service import LicensingService
from pagevault.services.purchase_service import PurchaseService
from pagevault.utils.dates import utcnow
from pagevault.utils.exceptions import (
    AlreadyEntitledException,
    ConflictException,
    NotFoundException,
    ValidationException,
)

from factories import create_document


async def add_code(db, code="SAVE10", type_=DiscountType.PERCENTAGE, value="10", max_uses=None) -> DiscountCode:
    discount = DiscountCode(code=code, type=type_, value=Decimal(value), max_uses=max_uses)
    db.add(discount)
    await db.commit()
    await db.refresh(discount)
    return discount


async def count_licenses(db, user, document) -> int:
    return await count_licenses_for(db, user.id, document.id)


async def count_licenses_for(db, user_id, document_id) -> int:
    result = await db.execute(
        select(func.count())
        .select_from(License)
        .where(License.user_id == user_id, License.document_id == document_id, License.is_active.is_(True))
    )
    return result.scalar_one()


@pytest.mark.asyncio
async def test_paid_purchase_with_code_waits_then_approval_issues_license(db, admin, reader, document):
    discount = await add_code(db)

    purchase = await PurchaseService.create_purchase(
        db, reader, PurchaseCreate(document_id=document.id, discount_code="SAVE10")
    )

    assert purchase.status == PurchaseStatus.PENDING
    assert purchase.discount_code == "SAVE10"
    assert purchase.discount_amount == Decimal("10")
    assert purchase.final_amount == Decimal("90")
    assert await count_licenses(db, reader, document) == 0

    approved = await PurchaseService.set_purchase_status(db, purchase.id, PurchaseStatus.APPROVED, admin)

    assert approved.status == PurchaseStatus.APPROVED
    assert await count_licenses(db, reader, document) == 1
    await db.refresh(discount)
    await db.refresh(document)
    assert discount.used_count == 1
    assert document.purchase_count == 1


@pytest.mark.asyncio
async def test_repeated_approval_is_idempotent(db, admin, reader, document):
    discount = await add_code(db)
    purchase = await PurchaseService.create_purchase(
        db, reader, PurchaseCreate(document_id=document.id, discount_code="SAVE10")
    )

    await PurchaseService.set_purchase_status(db, purchase.id, PurchaseStatus.APPROVED, admin)
    again = await PurchaseService.set_purchase_status(db, purchase.id, PurchaseStatus.APPROVED, admin)

    assert again.status == PurchaseStatus.APPROVED
    assert await count_licenses(db, reader, document) == 1
    await db.refresh(discount)
    await db.refresh(document)
    assert discount.used_count == 1
    assert document.purchase_count == 1


@pytest.mark.asyncio
async def test_rejected_purchase_cannot_be_approved(db, admin, reader, document):
    purchase = await PurchaseService.create_purchase(db, reader, PurchaseCreate(document_id=document.id))

    rejected = await PurchaseService.set_purchase_status(
        db, purchase.id, PurchaseStatus.REJECTED, admin, admin_notes="No payment received"
    )
    assert rejected.status == PurchaseStatus.REJECTED
    assert rejected.admin_notes == "No payment received"

    with pytest.raises(ConflictException):
        await PurchaseService.set_purchase_status(db, purchase.id, PurchaseStatus.APPROVED, admin)
    assert await count_licenses(db, reader, document) == 0


@pytest.mark.asyncio
async def test_only_terminal_statuses_can_be_set(db, admin, reader, document):
    purchase = await PurchaseService.create_purchase(db, reader, PurchaseCreate(document_id=document.id))

    with pytest.raises(ValidationException):
        await PurchaseService.set_purchase_status(db, purchase.id, PurchaseStatus.PENDING, admin)


@pytest.mark.asyncio
async def test_free_code_auto_approves_and_licenses(db, reader, document):
    discount = await add_code(db, code="GIFT", type_=DiscountType.FREE, value="0")

    purchase = await PurchaseService.create_purchase(
        db, reader, PurchaseCreate(document_id=document.id, discount_code="GIFT")
    )

    assert purchase.status == PurchaseStatus.APPROVED
    assert purchase.final_amount == Decimal("0")
    assert await count_licenses(db, reader, document) == 1
    await db.refresh(discount)
    assert discount.used_count == 1


@pytest.mark.asyncio
async def test_zero_price_document_is_approved_without_code(db, reader):
    document = await create_document(db, price="0")

    purchase = await PurchaseService.create_purchase(db, reader, PurchaseCreate(document_id=document.id))

    assert purchase.status == PurchaseStatus.APPROVED
    assert purchase.discount_code is None
    assert await LicensingService.has_live_license(db, reader.id, document.id)


@pytest.mark.asyncio
async def test_invalid_code_is_ignored(db, reader, document):
    purchase = await PurchaseService.create_purchase(
        db, reader, PurchaseCreate(document_id=document.id, discount_code="DOES-NOT-EXIST")
    )

    assert purchase.status == PurchaseStatus.PENDING
    assert purchase.discount_code is None
    assert purchase.discount_amount == Decimal("0")
    assert purchase.final_amount == Decimal("100")


@pytest.mark.asyncio
async def test_exhausted_code_is_not_applied(db, admin, reader, document):
    await add_code(db, code="ONE", max_uses=1)
    first = await PurchaseService.create_purchase(db, reader, PurchaseCreate(document_id=document.id, discount_code="ONE"))
    await PurchaseService.set_purchase_status(db, first.id, PurchaseStatus.APPROVED, admin)

    other = await create_document(db, title="Another")
    second = await PurchaseService.create_purchase(db, reader, PurchaseCreate(document_id=other.id, discount_code="ONE"))

    assert second.discount_code is None
    assert second.final_amount == Decimal("100")


@pytest.mark.asyncio
async def test_already_entitled_user_cannot_buy_again(db, admin, reader, document):
    purchase = await PurchaseService.create_purchase(db, reader, PurchaseCreate(document_id=document.id))
    await PurchaseService.set_purchase_status(db, purchase.id, PurchaseStatus.APPROVED, admin)

    with pytest.raises(AlreadyEntitledException):
        await PurchaseService.create_purchase(db, reader, PurchaseCreate(document_id=document.id))


@pytest.mark.asyncio
async def test_inactive_document_cannot_be_bought(db, reader):
    document = await create_document(db, is_active=False)

    with pytest.raises(NotFoundException):
        await PurchaseService.create_purchase(db, reader, PurchaseCreate(document_id=document.id))


@pytest.mark.asyncio
async def test_approval_renews_expired_license(db, admin, reader, document):
    expired = License(
        user_id=reader.id,
        document_id=document.id,
        is_active=True,
        expires_at=utcnow() - timedelta(days=1),
    )
    db.add(expired)
    await db.commit()

    purchase = await PurchaseService.create_purchase(db, reader, PurchaseCreate(document_id=document.id))
    await PurchaseService.set_purchase_status(db, purchase.id, PurchaseStatus.APPROVED, admin)

    await db.refresh(expired)
    assert expired.is_active is False
    assert await count_licenses(db, reader, document) == 1
    assert await LicensingService.has_live_license(db, reader.id, document.id)


@pytest.mark.asyncio
async def test_approval_writes_audit_entries(db, admin, reader, document):
    await add_code(db)
    purchase = await PurchaseService.create_purchase(
        db, reader, PurchaseCreate(document_id=document.id, discount_code="SAVE10")
    )
    await PurchaseService.set_purchase_status(db, purchase.id, PurchaseStatus.APPROVED, admin)

    result = await db.execute(select(ActivityLog.action))
    actions = set(result.scalars().all())
    assert {"purchase_created", "license_issued", "discount_code_redeemed", "purchase_status_changed"} <= actions


@pytest.mark.asyncio
async def test_missing_purchase_is_not_found(db, admin):
    import uuid

    with pytest.raises(NotFoundException):
        await PurchaseService.set_purchase_status(db, uuid.uuid4(), PurchaseStatus.APPROVED, admin)


@pytest.mark.asyncio
async def test_renamed_code_still_counts_redemption(db, admin, reader, document):
    discount = await add_code(db, code="SUMMER")
    purchase = await PurchaseService.create_purchase(
        db, reader, PurchaseCreate(document_id=document.id, discount_code="SUMMER")
    )
    assert purchase.discount_code_id == discount.id

    await DiscountService.update_code(db, discount.id, DiscountCodeUpdate(code="SUMMER2"), admin)
    await PurchaseService.set_purchase_status(db, purchase.id, PurchaseStatus.APPROVED, admin)

    await db.refresh(discount)
    assert discount.code == "SUMMER2"
    assert discount.used_count == 1


@pytest.mark.asyncio
async def test_deleted_code_does_not_block_approval(db, admin, reader, document):
    discount = await add_code(db, code="GONE")
    purchase = await PurchaseService.create_purchase(
        db, reader, PurchaseCreate(document_id=document.id, discount_code="GONE")
    )

    await DiscountService.delete_code(db, discount.id, admin)
    approved = await PurchaseService.set_purchase_status(db, purchase.id, PurchaseStatus.APPROVED, admin)

    assert approved.status == PurchaseStatus.APPROVED
    assert approved.discount_code == "GONE"
    assert approved.discount_code_id is None
    assert await count_licenses(db, reader, document) == 1


@pytest.mark.asyncio
async def test_failed_approval_leaves_nothing_behind(db, admin, reader, document, monkeypatch):
    discount = await add_code(db)
    purchase = await PurchaseService.create_purchase(
        db, reader, PurchaseCreate(document_id=document.id, discount_code="SAVE10")
    )
    purchase_id, reader_id, document_id = purchase.id, reader.id, document.id

    async def broken_increment(db, discount_id):
        raise RuntimeError("connection lost")

    monkeypatch.setattr(discount_code_repository, "increment_usage", broken_increment)

    with pytest.raises(RuntimeError):
        await PurchaseService.set_purchase_status(db, purchase_id, PurchaseStatus.APPROVED, admin)

    stored = await db.get(Purchase, purchase_id, populate_existing=True)
    assert stored.status == PurchaseStatus.PENDING
    assert await count_licenses_for(db, reader_id, document_id) == 0
    await db.refresh(discount)
    assert discount.used_count == 0


@pytest.mark.asyncio
async def test_active_license_index_rejects_duplicate_issue(db, admin, reader, document, monkeypatch):
    first = await PurchaseService.create_purchase(db, reader, PurchaseCreate(document_id=document.id))
    await PurchaseService.set_purchase_status(db, first.id, PurchaseStatus.APPROVED, admin)

    async def no_current_license(db, user_id, document_id):
        return None

    # Both the entitlement check and issuance now believe no license exists
    monkeypatch.setattr(license_repository, "get_current", no_current_license)
    second = await PurchaseService.create_purchase(db, reader, PurchaseCreate(document_id=document.id))
    second_id, reader_id, document_id = second.id, reader.id, document.id

    with pytest.raises(ConflictException):
        await PurchaseService.set_purchase_status(db, second_id, PurchaseStatus.APPROVED, admin)

    stored = await db.get(Purchase, second_id, populate_existing=True)
    assert stored.status == PurchaseStatus.PENDING
    assert await count_licenses_for(db, reader_id, document_id) == 1


@pytest.mark.asyncio
async def test_fixed_discount_above_price_auto_approves(db, reader):
    document = await create_document(db, price="100000")
    await add_code(db, code="BIGFIX", type_=DiscountType.FIXED, value="150000")

    purchase = await PurchaseService.create_purchase(
        db, reader, PurchaseCreate(document_id=document.id, discount_code="BIGFIX")
    )

    assert purchase.status == PurchaseStatus.APPROVED
    assert purchase.discount_amount == Decimal("100000")
    assert purchase.final_amount == Decimal("0")
    assert await count_licenses(db, reader, document) == 1
