"""Public document catalogue and delivery routes."""

import uuid
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Query, Request
from fastapi.responses import Response

from pagevault.api.deps import DB, OptionalUser
from pagevault.schemas.access import AccessReason, AccessTier
from pagevault.schemas.documents import DocumentResponse
from pagevault.services.access_service import access_service
from pagevault.services.document_service import document_service
from pagevault.utils.envelopes import api_success
from pagevault.utils.exceptions import AppException, UnauthorizedException

router = APIRouter(tags=["documents"])

_DENIAL_CODES = {
    AccessReason.LICENSE_REQUIRED: ("LICENSE_REQUIRED", "A license is required to view this document"),
    AccessReason.LICENSE_EXPIRED: ("LICENSE_EXPIRED", "Your license for this document has expired"),
}


@router.get("/documents", response_model=dict)
async def list_documents(db: DB, search: Optional[str] = Query(None, max_length=200)):
    """List active documents, newest first."""
    documents = await document_service.list_documents(db, search=search)
    return api_success([DocumentResponse.from_document(d).model_dump(by_alias=True) for d in documents])


@router.get("/documents/{document_id}", response_model=dict)
async def get_document(document_id: uuid.UUID, current_user: OptionalUser, db: DB):
    document = await access_service.get_visible_document(db, current_user, document_id)
    return api_success(DocumentResponse.from_document(document).model_dump(by_alias=True))


@router.get("/documents/{document_id}/access", response_model=dict)
async def check_document_access(document_id: uuid.UUID, current_user: OptionalUser, db: DB):
    """What the caller may do with a document (read, preview, buy or renew). Records nothing."""
    decision = await access_service.check_access(db, current_user, document_id)
    return api_success(decision.model_dump(by_alias=True))


@router.get("/documents/{document_id}/view")
async def view_document(document_id: uuid.UUID, request: Request, current_user: OptionalUser, db: DB):
    """
    Stream the PDF the caller is entitled to.

    Licensed viewers get the whole file; everyone else gets a copy
    truncated to the free preview pages.
    """
    delivered = await access_service.open_document(db, current_user, document_id, request=request)
    document, decision = delivered.document, delivered.decision
    details = {"freePages": document.free_pages, "totalPages": document.total_pages}

    if decision.tier == AccessTier.NONE:
        if decision.reason == AccessReason.AUTHENTICATION_REQUIRED:
            raise UnauthorizedException("Sign in to view this document", details=details)
        code, message = _DENIAL_CODES[decision.reason]
        raise AppException(code=code, message=message, status_code=403, details=details)

    preview = decision.tier == AccessTier.BOUNDED
    headers = {
        "Content-Disposition": f"inline; filename*=UTF-8''{quote(document.file_name)}",
        "Cache-Control": "no-store, no-cache, must-revalidate, private",
        "Pragma": "no-cache",
        "X-Content-Type-Options": "nosniff",
        "X-Preview-Mode": "true" if preview else "false",
        "X-Free-Pages": str(decision.page_cap if preview else document.free_pages),
        "X-Total-Pages": str(document.total_pages),
        "X-Access-Tier": decision.tier.value,
    }
    return Response(content=delivered.content, media_type="application/pdf", headers=headers)
