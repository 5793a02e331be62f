"""Administrative document management routes."""

import uuid
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status

from pagevault.api.deps import CurrentAdmin, DB, get_current_admin
from pagevault.schemas.documents import DocumentResponse, DocumentUpdate
from pagevault.services.document_service import document_service
from pagevault.utils.envelopes import api_success

router = APIRouter(prefix="/admin", tags=["admin-documents"], dependencies=[Depends(get_current_admin)])


@router.get("/documents", response_model=dict)
async def list_all_documents(db: DB, search: Optional[str] = Query(None, max_length=200)):
    """List every document, including deactivated ones."""
    documents = await document_service.list_documents(db, include_inactive=True, search=search)
    return api_success([DocumentResponse.from_document(d).model_dump(by_alias=True) for d in documents])


@router.post("/documents", response_model=dict, status_code=status.HTTP_201_CREATED)
async def upload_document(
    request: Request,
    current_user: CurrentAdmin,
    db: DB,
    file: UploadFile = File(...),
    title: str = Form(..., min_length=1, max_length=300),
    price: Decimal = Form(..., ge=0),
    free_pages: int = Form(3, alias="freePages", ge=0),
    description: Optional[str] = Form(None, max_length=5000),
    thumbnail_url: Optional[str] = Form(None, alias="thumbnailUrl"),
):
    """
    Upload a PDF.

    The page count is read from the file; freePages may not exceed it.
    """
    content = await file.read()
    document = await document_service.upload_document(
        db,
        current_user,
        title=title,
        file_name=file.filename or "document.pdf",
        content=content,
        price=price,
        free_pages=free_pages,
        description=description,
        thumbnail_url=thumbnail_url,
        request=request,
    )
    return api_success(DocumentResponse.from_document(document).model_dump(by_alias=True))


@router.patch("/documents/{document_id}", response_model=dict)
async def update_document(
    document_id: uuid.UUID,
    payload: DocumentUpdate,
    request: Request,
    current_user: CurrentAdmin,
    db: DB,
):
    document = await document_service.update_document(db, document_id, payload, current_user, request=request)
    return api_success(DocumentResponse.from_document(document).model_dump(by_alias=True))


@router.patch("/documents/{document_id}/toggle", response_model=dict)
async def toggle_document(document_id: uuid.UUID, request: Request, current_user: CurrentAdmin, db: DB):
    document = await document_service.toggle_document(db, document_id, current_user, request=request)
    return api_success(DocumentResponse.from_document(document).model_dump(by_alias=True))


@router.delete("/documents/{document_id}", response_model=dict)
async def delete_document(document_id: uuid.UUID, request: Request, current_user: CurrentAdmin, db: DB):
    await document_service.delete_document(db, document_id, current_user, request=request)
    return api_success({"id": str(document_id)}, message="Document deleted")
