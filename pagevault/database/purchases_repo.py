"""Repository layer for purchases."""

import uuid
from typing import Optional, Sequence

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from pagevault.models.models import Document, Purchase, PurchaseStatus, User


class PurchaseRepository:
    """Repository for purchase database operations."""

    @staticmethod
    async def get_by_id(db: AsyncSession, purchase_id: uuid.UUID) -> Optional[Purchase]:
        return await db.get(Purchase, purchase_id)

    @staticmethod
    async def transition_from_pending(
        db: AsyncSession,
        purchase_id: uuid.UUID,
        status: PurchaseStatus,
        admin_notes: Optional[str] = None,
    ) -> int:
        """
        Move a purchase out of pending.

        The update only matches a row that is still pending, so of two
        concurrent transitions exactly one updates a row.

        Args:
            db: Database session
            purchase_id: Purchase to transition
            status: Terminal status to set
            admin_notes: Notes to store, kept unchanged when None

        Returns:
            Number of rows updated (0 or 1)
        """
        values = {"status": status}
        if admin_notes is not None:
            values["admin_notes"] = admin_notes
        result = await db.execute(
            update(Purchase)
            .where(Purchase.id == purchase_id, Purchase.status == PurchaseStatus.PENDING)
            .values(**values)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount or 0

    @staticmethod
    async def list_for_user(db: AsyncSession, user_id: uuid.UUID) -> Sequence[tuple[Purchase, str]]:
        """Purchases of one user with the document title, newest first."""
        result = await db.execute(
            select(Purchase, Document.title)
            .join(Document, Purchase.document_id == Document.id)
            .where(Purchase.user_id == user_id)
            .order_by(Purchase.created_date.desc())
        )
        return result.tuples().all()

    @staticmethod
    async def list_all(
        db: AsyncSession,
        status: Optional[PurchaseStatus] = None,
        search: Optional[str] = None,
    ) -> Sequence[tuple[Purchase, str, str]]:
        """
        List every purchase for review, newest first.

        Args:
            db: Database session
            status: Only purchases in this status
            search: Case-insensitive match on buyer email, document title or transaction id

        Returns:
            Tuples of (Purchase, document title, buyer email)
        """
        stmt = (
            select(Purchase, Document.title, User.email)
            .join(Document, Purchase.document_id == Document.id)
            .join(User, Purchase.user_id == User.id)
        )
        if status is not None:
            stmt = stmt.where(Purchase.status == status)
        if search:
            pattern = f"%{search.strip().lower()}%"
            stmt = stmt.where(
                or_(
                    User.email.like(pattern),
                    func.lower(Document.title).like(pattern),
                    func.lower(func.coalesce(Purchase.transaction_id, "")).like(pattern),
                )
            )
        result = await db.execute(stmt.order_by(Purchase.created_date.desc()))
        return result.tuples().all()


purchase_repository = PurchaseRepository()
