"""Administrative discount code routes."""

import uuid

from fastapi import APIRouter, Depends, Request, status

from pagevault.api.deps import CurrentAdmin, DB, get_current_admin
from pagevault.schemas.discounts import DiscountCodeCreate, DiscountCodeResponse, DiscountCodeUpdate
from pagevault.services.discount_service import discount_service
from pagevault.utils.envelopes import api_success

router = APIRouter(prefix="/admin", tags=["admin-discount-codes"], dependencies=[Depends(get_current_admin)])


@router.get("/discount-codes", response_model=dict)
async def list_discount_codes(db: DB):
    codes = await discount_service.list_codes(db)
    return api_success([DiscountCodeResponse.from_code(c).model_dump(by_alias=True) for c in codes])


@router.post("/discount-codes", response_model=dict, status_code=status.HTTP_201_CREATED)
async def create_discount_code(payload: DiscountCodeCreate, request: Request, current_user: CurrentAdmin, db: DB):
    discount = await discount_service.create_code(db, payload, current_user, request=request)
    return api_success(DiscountCodeResponse.from_code(discount).model_dump(by_alias=True))


@router.get("/discount-codes/{discount_id}", response_model=dict)
async def get_discount_code(discount_id: uuid.UUID, db: DB):
    discount = await discount_service.get_code(db, discount_id)
    return api_success(DiscountCodeResponse.from_code(discount).model_dump(by_alias=True))


@router.put("/discount-codes/{discount_id}", response_model=dict)
async def update_discount_code(
    discount_id: uuid.UUID,
    payload: DiscountCodeUpdate,
    request: Request,
    current_user: CurrentAdmin,
    db: DB,
):
    discount = await discount_service.update_code(db, discount_id, payload, current_user, request=request)
    return api_success(DiscountCodeResponse.from_code(discount).model_dump(by_alias=True))


@router.delete("/discount-codes/{discount_id}", response_model=dict)
async def delete_discount_code(discount_id: uuid.UUID, request: Request, current_user: CurrentAdmin, db: DB):
    await discount_service.delete_code(db, discount_id, current_user, request=request)
    return api_success({"id": str(discount_id)}, message="Discount code deleted")
