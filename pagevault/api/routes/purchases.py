"""Purchase routes for buyers."""

from fastapi import APIRouter, Request, status

from pagevault.api.deps import CurrentUser, DB
from pagevault.models.models import PurchaseStatus
from pagevault.schemas.purchases import PurchaseCreate, PurchaseResponse
from pagevault.services.purchase_service import purchase_service
from pagevault.utils.envelopes import api_success

router = APIRouter(tags=["purchases"])


@router.post("/purchases", response_model=dict, status_code=status.HTTP_201_CREATED)
async def create_purchase(payload: PurchaseCreate, request: Request, current_user: CurrentUser, db: DB):
    """
    Buy a document.

    Free checkouts (price zero or fully discounted) come back approved with
    a license already issued; everything else waits for manual review.
    """
    purchase = await purchase_service.create_purchase(db, current_user, payload, request=request)
    message = (
        "Purchase approved"
        if purchase.status == PurchaseStatus.APPROVED
        else "Purchase submitted and awaiting review"
    )
    return api_success(PurchaseResponse.from_purchase(purchase).model_dump(by_alias=True), message=message)


@router.get("/purchases", response_model=dict)
async def list_my_purchases(current_user: CurrentUser, db: DB):
    purchases = await purchase_service.list_user_purchases(db, current_user.id)
    return api_success([p.model_dump(by_alias=True) for p in purchases])
