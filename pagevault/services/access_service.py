"""Tiered access resolution and document delivery."""

import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from pagevault.database.documents_repo import document_repository
from pagevault.database.permissions_repo import file_permission_repository
from pagevault.models.models import Document, User, UserRole
from pagevault.schemas.access import AccessCheckResponse, AccessDecision, AccessReason, AccessTier
from pagevault.schemas.audit import DocumentAccessDetails
from pagevault.services.activity_service import ActivityService
from pagevault.services.derivative_service import DerivativeService
from pagevault.services.licensing_service import LicensingService
from pagevault.services.storage import storage_service
from pagevault.utils.exceptions import NotFoundException

logger = logging.getLogger(__name__)


@dataclass
class DeliveredDocument:
    document: Document
    decision: AccessDecision
    content: bytes


def _bounded_or_none(document: Document, reason: AccessReason) -> AccessDecision:
    if document.free_pages > 0:
        cap = min(document.free_pages, document.total_pages)
        return AccessDecision(tier=AccessTier.BOUNDED, reason=reason, page_cap=cap)
    return AccessDecision(tier=AccessTier.NONE, reason=reason)


class AccessService:
    """Service deciding how much of a document a viewer may see."""

    @staticmethod
    async def resolve_access(db: AsyncSession, viewer: Optional[User], document: Document) -> AccessDecision:
        """
        Decide the access tier of a viewer for a document. Records nothing.

        Anonymous viewers get at most the free preview. Authenticated
        viewers get everything with a live license or an active file
        permission, otherwise the free preview.
        """
        if viewer is None:
            return _bounded_or_none(document, AccessReason.AUTHENTICATION_REQUIRED)

        current = await LicensingService.get_current_license(db, viewer.id, document.id)
        if LicensingService.is_live(current):
            return AccessDecision(tier=AccessTier.FULL, reason=AccessReason.LICENSED)

        if await file_permission_repository.has_active(db, viewer.id, document.id):
            return AccessDecision(tier=AccessTier.FULL, reason=AccessReason.FILE_PERMISSION)

        reason = AccessReason.LICENSE_EXPIRED if current is not None else AccessReason.LICENSE_REQUIRED
        return _bounded_or_none(document, reason)

    @staticmethod
    async def record_access(
        db: AsyncSession,
        viewer: Optional[User],
        document: Document,
        decision: AccessDecision,
        request: Optional[Request] = None,
    ) -> None:
        """Count a view for authenticated viewers and audit every served request."""
        if decision.tier == AccessTier.NONE:
            return

        if viewer is not None:
            await document_repository.increment_view_count(db, document.id)
            action = "file_viewed" if decision.is_full else "preview_without_license"
        else:
            action = "guest_preview"

        await ActivityService.log_activity(
            db,
            action,
            user_id=viewer.id if viewer is not None else None,
            target_type="document",
            target_id=str(document.id),
            details=DocumentAccessDetails(
                document_id=str(document.id),
                tier=decision.tier.value,
                reason=decision.reason.value,
                page_cap=decision.page_cap,
                total_pages=document.total_pages,
            ),
            request=request,
        )

    @staticmethod
    async def get_visible_document(db: AsyncSession, viewer: Optional[User], document_id: uuid.UUID) -> Document:
        """Inactive documents exist only for administrators."""
        document = await document_repository.get_by_id(db, document_id)
        if document is None:
            raise NotFoundException("Document not found")
        if not document.is_active and (viewer is None or viewer.role != UserRole.ADMIN):
            raise NotFoundException("Document not found")
        return document

    @staticmethod
    async def check_access(db: AsyncSession, viewer: Optional[User], document_id: uuid.UUID) -> AccessCheckResponse:
        document = await AccessService.get_visible_document(db, viewer, document_id)
        decision = await AccessService.resolve_access(db, viewer, document)
        return AccessCheckResponse(
            document_id=str(document.id),
            tier=decision.tier,
            reason=decision.reason,
            page_cap=decision.page_cap,
            free_pages=document.free_pages,
            total_pages=document.total_pages,
            has_full_access=decision.is_full,
        )

    @staticmethod
    async def open_document(
        db: AsyncSession,
        viewer: Optional[User],
        document_id: uuid.UUID,
        request: Optional[Request] = None,
    ) -> DeliveredDocument:
        """
        Resolve access and load the bytes the viewer may see.

        A none decision is returned without content; the caller turns it
        into the matching HTTP error.
        """
        document = await AccessService.get_visible_document(db, viewer, document_id)
        decision = await AccessService.resolve_access(db, viewer, document)

        if decision.tier == AccessTier.NONE:
            return DeliveredDocument(document=document, decision=decision, content=b"")

        original = storage_service.read_document(document.file_path)
        if decision.is_full:
            content = original
        else:
            content = DerivativeService.extract_bounded_copy(original, decision.page_cap or 0)

        await AccessService.record_access(db, viewer, document, decision, request)
        return DeliveredDocument(document=document, decision=decision, content=content)


access_service = AccessService()
