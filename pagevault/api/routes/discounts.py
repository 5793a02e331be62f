"""Public discount code routes."""

from fastapi import APIRouter

from pagevault.api.deps import CurrentUser, DB
from pagevault.schemas.discounts import DiscountValidateRequest
from pagevault.services.discount_service import discount_service
from pagevault.utils.envelopes import api_success

router = APIRouter(tags=["discount-codes"])


@router.post("/discount-codes/validate", response_model=dict)
async def validate_discount_code(payload: DiscountValidateRequest, current_user: CurrentUser, db: DB):
    """Preview the price of a document with a code. Does not use up the code."""
    preview = await discount_service.validate_code(db, payload.code, payload.document_id)
    return api_success(preview.model_dump(by_alias=True))
