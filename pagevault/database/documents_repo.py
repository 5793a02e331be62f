"""Repository layer for the document catalogue."""

import uuid
from typing import Optional, Sequence

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from pagevault.models.models import Document


class DocumentRepository:
    """Repository for document database operations."""

    @staticmethod
    async def get_by_id(db: AsyncSession, document_id: uuid.UUID) -> Optional[Document]:
        return await db.get(Document, document_id)

    @staticmethod
    async def get_active_by_id(db: AsyncSession, document_id: uuid.UUID) -> Optional[Document]:
        result = await db.execute(
            select(Document).where(Document.id == document_id, Document.is_active.is_(True))
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def list_documents(
        db: AsyncSession,
        include_inactive: bool = False,
        search: Optional[str] = None,
    ) -> Sequence[Document]:
        """
        List documents newest first.

        Args:
            db: Database session
            include_inactive: Include deactivated documents (admin listings)
            search: Case-insensitive match on title or description

        Returns:
            Documents ordered by creation date descending
        """
        stmt = select(Document)
        if not include_inactive:
            stmt = stmt.where(Document.is_active.is_(True))
        if search:
            pattern = f"%{search.strip().lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(Document.title).like(pattern),
                    func.lower(func.coalesce(Document.description, "")).like(pattern),
                )
            )
        result = await db.execute(stmt.order_by(Document.created_date.desc()))
        return result.scalars().all()

    @staticmethod
    async def increment_view_count(db: AsyncSession, document_id: uuid.UUID) -> None:
        await db.execute(
            update(Document).where(Document.id == document_id).values(view_count=Document.view_count + 1)
        )

    @staticmethod
    async def increment_purchase_count(db: AsyncSession, document_id: uuid.UUID) -> None:
        await db.execute(
            update(Document)
            .where(Document.id == document_id)
            .values(purchase_count=Document.purchase_count + 1)
        )


document_repository = DocumentRepository()
