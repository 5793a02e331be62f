"""Audit log routes."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query

from pagevault.api.deps import DB, get_current_admin
from pagevault.services.activity_service import activity_service
from pagevault.utils.envelopes import api_success

router = APIRouter(prefix="/admin", tags=["admin-activities"], dependencies=[Depends(get_current_admin)])


@router.get("/activities", response_model=dict)
async def list_activities(
    db: DB,
    action: Optional[str] = Query(None, max_length=64),
    user_id: Optional[uuid.UUID] = Query(None, alias="userId"),
    limit: int = Query(100, ge=1, le=500),
):
    entries = await activity_service.list_activities(db, action=action, user_id=user_id, limit=limit)
    return api_success([activity_service.to_response(e).model_dump(by_alias=True) for e in entries])
