"""Explicit per-user document permissions managed by administrators."""

import logging
import uuid
from typing import Optional

from fastapi import Request
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from pagevault.database.documents_repo import document_repository
from pagevault.database.permissions_repo import file_permission_repository
from pagevault.database.users_repo import user_repository
from pagevault.models.models import FilePermission, User
from pagevault.schemas.audit import FilePermissionsUpdatedDetails
from pagevault.schemas.permissions import DocumentPermissionItem, PermissionEntry
from pagevault.services.activity_service import ActivityService
from pagevault.utils.exceptions import ConflictException, NotFoundException

logger = logging.getLogger(__name__)


class PermissionService:
    """Service for granting and revoking file permissions."""

    @staticmethod
    async def list_user_permissions(db: AsyncSession, user_id: uuid.UUID) -> list[DocumentPermissionItem]:
        """Every active document with whether the user currently has a grant for it."""
        if await user_repository.get_by_id(db, user_id) is None:
            raise NotFoundException("User not found")

        rows = await file_permission_repository.list_document_flags(db, user_id)
        return [
            DocumentPermissionItem(
                document_id=str(document.id),
                title=document.title,
                has_access=bool(permission is not None and permission.is_active),
                granted_at=(permission.updated_at or permission.created_at) if permission is not None else None,
            )
            for document, permission in rows
        ]

    @staticmethod
    async def set_permissions(
        db: AsyncSession,
        user_id: uuid.UUID,
        entries: list[PermissionEntry],
        actor: User,
        request: Optional[Request] = None,
    ) -> list[DocumentPermissionItem]:
        """
        Apply a batch of grants and revocations for one user atomically.

        Existing rows are toggled rather than duplicated. An unknown user or
        document rolls back the whole batch.
        """
        if await user_repository.get_by_id(db, user_id) is None:
            raise NotFoundException("User not found")

        granted: list[str] = []
        revoked: list[str] = []
        try:
            for entry in entries:
                document = await document_repository.get_by_id(db, entry.document_id)
                if document is None:
                    raise NotFoundException("Document not found", details={"documentId": str(entry.document_id)})

                permission = await file_permission_repository.get(db, user_id, entry.document_id)
                if permission is None:
                    if not entry.has_access:
                        continue
                    db.add(
                        FilePermission(
                            user_id=user_id,
                            document_id=entry.document_id,
                            granted_by=actor.id,
                            is_active=True,
                        )
                    )
                    await db.flush()
                else:
                    if permission.is_active == entry.has_access:
                        continue
                    permission.is_active = entry.has_access
                    if entry.has_access:
                        permission.granted_by = actor.id
                    await db.flush()

                (granted if entry.has_access else revoked).append(str(entry.document_id))

            await db.commit()
        except IntegrityError as exc:
            await db.rollback()
            raise ConflictException("Permissions were changed concurrently, retry") from exc
        except Exception:
            await db.rollback()
            raise

        if granted or revoked:
            await ActivityService.log_after_commit(
                db,
                "file_permissions_updated",
                user_id=actor.id,
                target_type="user",
                target_id=str(user_id),
                details=FilePermissionsUpdatedDetails(target_user_id=str(user_id), granted=granted, revoked=revoked),
                request=request,
            )
        return await PermissionService.list_user_permissions(db, user_id)


permission_service = PermissionService()
