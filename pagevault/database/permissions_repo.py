"""Repository layer for explicit file permissions."""

import uuid
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pagevault.models.models import Document, FilePermission


class FilePermissionRepository:
    """Repository for file permission database operations."""

    @staticmethod
    async def get(db: AsyncSession, user_id: uuid.UUID, document_id: uuid.UUID) -> Optional[FilePermission]:
        result = await db.execute(
            select(FilePermission).where(
                FilePermission.user_id == user_id,
                FilePermission.document_id == document_id,
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def has_active(db: AsyncSession, user_id: uuid.UUID, document_id: uuid.UUID) -> bool:
        result = await db.execute(
            select(FilePermission.id).where(
                FilePermission.user_id == user_id,
                FilePermission.document_id == document_id,
                FilePermission.is_active.is_(True),
            )
        )
        return result.first() is not None

    @staticmethod
    async def list_document_flags(
        db: AsyncSession, user_id: uuid.UUID
    ) -> Sequence[tuple[Document, Optional[FilePermission]]]:
        """
        Pair every active document with the user's permission row, if any.

        Returns:
            Tuples of (Document, FilePermission or None), newest document first
        """
        result = await db.execute(
            select(Document, FilePermission)
            .outerjoin(
                FilePermission,
                (FilePermission.document_id == Document.id) & (FilePermission.user_id == user_id),
            )
            .where(Document.is_active.is_(True))
            .order_by(Document.created_date.desc())
        )
        return result.tuples().all()


file_permission_repository = FilePermissionRepository()
