"""Document catalogue management: upload, edit, toggle and delete."""

import logging
import uuid
from decimal import Decimal
from pathlib import Path
from typing import Optional, Sequence

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from pagevault.core.config import settings
from pagevault.database.documents_repo import document_repository
from pagevault.models.models import Document, User
from pagevault.schemas.audit import DocumentChangedDetails
from pagevault.schemas.documents import DocumentUpdate
from pagevault.services.activity_service import ActivityService
from pagevault.services.derivative_service import DerivativeService
from pagevault.services.storage import storage_service
from pagevault.utils.exceptions import ConflictException, NotFoundException, ValidationException

logger = logging.getLogger(__name__)

PDF_MAGIC = b"%PDF-"


class DocumentService:
    """Service for document business logic."""

    @staticmethod
    def _check_free_pages(free_pages: int, total_pages: int) -> None:
        if free_pages < 0:
            raise ValidationException("freePages must not be negative")
        if free_pages > settings.MAX_FREE_PAGES:
            raise ValidationException(
                f"freePages must not exceed {settings.MAX_FREE_PAGES}",
                details={"freePages": free_pages, "max": settings.MAX_FREE_PAGES},
            )
        if free_pages > total_pages:
            raise ValidationException(
                "freePages cannot exceed the document's page count",
                details={"freePages": free_pages, "totalPages": total_pages},
            )

    @staticmethod
    def _check_file_present(document: Document) -> None:
        """Deleted documents lose their file and cannot be reactivated."""
        if not storage_service.has_document(document.file_path):
            raise ConflictException(
                "The file of this document was removed; upload it again instead",
                details={"documentId": str(document.id)},
            )

    @staticmethod
    async def list_documents(
        db: AsyncSession, include_inactive: bool = False, search: Optional[str] = None
    ) -> Sequence[Document]:
        return await document_repository.list_documents(db, include_inactive=include_inactive, search=search)

    @staticmethod
    async def get_document(db: AsyncSession, document_id: uuid.UUID) -> Document:
        document = await document_repository.get_by_id(db, document_id)
        if document is None:
            raise NotFoundException("Document not found")
        return document

    @staticmethod
    async def upload_document(
        db: AsyncSession,
        actor: User,
        title: str,
        file_name: str,
        content: bytes,
        price: Decimal,
        free_pages: int,
        description: Optional[str] = None,
        thumbnail_url: Optional[str] = None,
        request: Optional[Request] = None,
    ) -> Document:
        """
        Store a PDF and register it in the catalogue.

        The page count is read from the file itself. If the database write
        fails the stored file is removed again.

        Raises:
            ValidationException: Bad size, type, price or free page count
            ProcessingException: The file is not a readable PDF
        """
        if not title or not title.strip():
            raise ValidationException("Title is required")
        if Path(file_name or "").suffix.lower() != ".pdf" or not content.startswith(PDF_MAGIC):
            raise ValidationException("Only PDF files are accepted")
        if len(content) < settings.MIN_UPLOAD_BYTES:
            raise ValidationException("File is too small", details={"minBytes": settings.MIN_UPLOAD_BYTES})
        if len(content) > settings.MAX_UPLOAD_BYTES:
            raise ValidationException("File is too large", details={"maxBytes": settings.MAX_UPLOAD_BYTES})
        if price < 0:
            raise ValidationException("Price must not be negative")

        total_pages = DerivativeService.count_pages(content)
        DocumentService._check_free_pages(free_pages, total_pages)

        key, size = storage_service.save_document(content, file_name)
        document = Document(
            title=title.strip(),
            description=(description or "").strip() or None,
            file_name=Path(file_name).name,
            file_path=key,
            file_size=size,
            total_pages=total_pages,
            free_pages=free_pages,
            price=price,
            thumbnail_url=thumbnail_url,
            uploader_id=actor.id,
            is_active=True,
        )
        db.add(document)
        try:
            await db.commit()
        except Exception:
            await db.rollback()
            storage_service.delete_document(key)
            raise
        await db.refresh(document)

        logger.info("Document uploaded", extra={"document.id": str(document.id), "document.pages": total_pages})
        await ActivityService.log_after_commit(
            db,
            "document_uploaded",
            user_id=actor.id,
            target_type="document",
            target_id=str(document.id),
            details=DocumentChangedDetails(document_id=str(document.id), title=document.title, operation="uploaded"),
            request=request,
        )
        return document

    @staticmethod
    async def update_document(
        db: AsyncSession,
        document_id: uuid.UUID,
        payload: DocumentUpdate,
        actor: User,
        request: Optional[Request] = None,
    ) -> Document:
        """Edit metadata. Previews are generated per request so a new freePages applies at once."""
        document = await DocumentService.get_document(db, document_id)
        changes = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}

        if "title" in changes:
            changes["title"] = changes["title"].strip()
            if not changes["title"]:
                raise ValidationException("Title is required")
        if "free_pages" in changes:
            DocumentService._check_free_pages(changes["free_pages"], document.total_pages)
        if changes.get("is_active") and not document.is_active:
            DocumentService._check_file_present(document)

        for field, value in changes.items():
            setattr(document, field, value)
        await db.commit()
        await db.refresh(document)

        await ActivityService.log_after_commit(
            db,
            "document_updated",
            user_id=actor.id,
            target_type="document",
            target_id=str(document.id),
            details=DocumentChangedDetails(document_id=str(document.id), title=document.title, operation="updated"),
            request=request,
        )
        return document

    @staticmethod
    async def toggle_document(
        db: AsyncSession,
        document_id: uuid.UUID,
        actor: User,
        request: Optional[Request] = None,
    ) -> Document:
        document = await DocumentService.get_document(db, document_id)
        if not document.is_active:
            DocumentService._check_file_present(document)
        document.is_active = not document.is_active
        await db.commit()
        await db.refresh(document)

        await ActivityService.log_after_commit(
            db,
            "document_toggled",
            user_id=actor.id,
            target_type="document",
            target_id=str(document.id),
            details=DocumentChangedDetails(document_id=str(document.id), title=document.title, operation="toggled"),
            request=request,
        )
        return document

    @staticmethod
    async def delete_document(
        db: AsyncSession,
        document_id: uuid.UUID,
        actor: User,
        request: Optional[Request] = None,
    ) -> None:
        """
        Take a document out of the catalogue and remove its file.

        The row is kept (deactivated) because purchases and licenses
        reference it.
        """
        document = await DocumentService.get_document(db, document_id)
        document.is_active = False
        await db.commit()
        storage_service.delete_document(document.file_path)

        await ActivityService.log_after_commit(
            db,
            "document_deleted",
            user_id=actor.id,
            target_type="document",
            target_id=str(document.id),
            details=DocumentChangedDetails(document_id=str(document.id), title=document.title, operation="deleted"),
            request=request,
        )


document_service = DocumentService()
