"""Administrative purchase review routes."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from pagevault.api.deps import CurrentAdmin, DB, get_current_admin
from pagevault.models.models import PurchaseStatus
from pagevault.schemas.purchases import PurchaseResponse, PurchaseStatusUpdate
from pagevault.services.purchase_service import purchase_service
from pagevault.utils.envelopes import api_success

router = APIRouter(prefix="/admin", tags=["admin-purchases"], dependencies=[Depends(get_current_admin)])


@router.get("/purchases", response_model=dict)
async def list_purchases(
    db: DB,
    status: Optional[PurchaseStatus] = Query(None),
    search: Optional[str] = Query(None, max_length=200),
):
    purchases = await purchase_service.list_purchases(db, status=status, search=search)
    return api_success([p.model_dump(by_alias=True) for p in purchases])


@router.patch("/purchases/{purchase_id}/status", response_model=dict)
async def set_purchase_status(
    purchase_id: uuid.UUID,
    payload: PurchaseStatusUpdate,
    request: Request,
    current_user: CurrentAdmin,
    db: DB,
):
    """
    Approve or reject a pending purchase.

    Approval issues the license and redeems the discount code in one
    transaction. Repeating the current decision is a no-op.
    """
    purchase = await purchase_service.set_purchase_status(
        db,
        purchase_id,
        payload.status,
        current_user,
        admin_notes=payload.admin_notes,
        request=request,
    )
    return api_success(PurchaseResponse.from_purchase(purchase).model_dump(by_alias=True))
