"""Discount evaluation: pricing rules, validity and the public preview."""
from datetime import timedelta
from decimal import Decimal

import pytest

from pagevault.models import DiscountCode, DiscountType
from pagevault.services.discount_service import DiscountService, evaluate_discount
from pagevault.utils.dates import utcnow
from pagevault.utils.exceptions import NotFoundException, ValidationException

from factories import create_document


def code(type_=DiscountType.PERCENTAGE, value="10", **kwargs) -> DiscountCode:
    kwargs.setdefault("is_active", True)
    kwargs.setdefault("used_count", 0)
    return DiscountCode(code=kwargs.pop("code", "SAVE"), type=type_, value=Decimal(value), **kwargs)


@pytest.mark.parametrize(
    "type_, value, price, expected",
    [
        (DiscountType.PERCENTAGE, "10", "100", "10"),
        (DiscountType.PERCENTAGE, "15", "99", "15"),  # 14.85 rounds up
        (DiscountType.PERCENTAGE, "25", "10", "3"),  # 2.5 rounds half-up
        (DiscountType.PERCENTAGE, "100", "40", "40"),
        (DiscountType.FIXED, "30", "100", "30"),
        (DiscountType.FIXED, "150", "100", "100"),
        (DiscountType.FREE, "0", "100", "100"),
    ],
)
def test_discount_amount_per_type(type_, value, price, expected):
    result = evaluate_discount(code(type_, value), Decimal(price))

    assert result.valid is True
    assert result.type == type_
    assert result.amount == Decimal(expected)


def test_discount_amount_never_exceeds_price():
    result = evaluate_discount(code(DiscountType.PERCENTAGE, "100"), Decimal("0.50"))

    assert result.amount <= Decimal("0.50")


@pytest.mark.parametrize(
    "overrides",
    [
        {"is_active": False},
        {"expires_at": utcnow() - timedelta(minutes=1)},
        {"max_uses": 5, "used_count": 5},
    ],
)
def test_unusable_codes_are_invalid(overrides):
    result = evaluate_discount(code(**overrides), Decimal("100"))

    assert result.valid is False
    assert result.amount == Decimal("0")


def test_missing_code_is_invalid():
    assert evaluate_discount(None, Decimal("100")).valid is False


def test_unlimited_code_with_future_expiry_is_valid():
    discount = code(max_uses=None, used_count=10_000, expires_at=utcnow() + timedelta(days=1))

    assert evaluate_discount(discount, Decimal("100")).valid is True


@pytest.mark.asyncio
async def test_evaluation_does_not_consume_code(db):
    discount = code(code="ONCE", max_uses=1)
    db.add(discount)
    await db.commit()

    for _ in range(3):
        result = await DiscountService.evaluate(db, "ONCE", Decimal("100"))
        assert result.valid is True

    await db.refresh(discount)
    assert discount.used_count == 0


@pytest.mark.asyncio
async def test_codes_are_case_sensitive(db):
    db.add(code(code="Summer"))
    await db.commit()

    assert (await DiscountService.evaluate(db, "Summer", Decimal("10"))).valid is True
    assert (await DiscountService.evaluate(db, "SUMMER", Decimal("10"))).valid is False
    assert (await DiscountService.evaluate(db, "  Summer  ", Decimal("10"))).valid is True


@pytest.mark.asyncio
async def test_validate_code_previews_final_price(db):
    document = await create_document(db, price="200")
    db.add(code(DiscountType.FIXED, "50", code="FIFTY"))
    await db.commit()

    preview = await DiscountService.validate_code(db, "FIFTY", document.id)

    assert preview.discount_amount == 50
    assert preview.original_price == 200
    assert preview.final_price == 150


@pytest.mark.asyncio
async def test_validate_code_rejects_invalid_code(db):
    document = await create_document(db)

    with pytest.raises(ValidationException):
        await DiscountService.validate_code(db, "NOPE", document.id)


@pytest.mark.asyncio
async def test_validate_code_requires_active_document(db):
    document = await create_document(db, is_active=False)
    db.add(code(code="SAVE"))
    await db.commit()

    with pytest.raises(NotFoundException):
        await DiscountService.validate_code(db, "SAVE", document.id)
