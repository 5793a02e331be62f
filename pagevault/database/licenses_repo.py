"""Repository layer for licenses.

The partial unique index on (user_id, document_id) WHERE is_active
backs the one-active-license rule; callers translate its IntegrityError.
"""

import uuid
from typing import Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from pagevault.models.models import Document, License


class LicenseRepository:
    """Repository for license database operations."""

    @staticmethod
    async def get_current(db: AsyncSession, user_id: uuid.UUID, document_id: uuid.UUID) -> Optional[License]:
        """
        Fetch the active license row of a (user, document) pair.

        The row is returned even when expires_at has passed so callers
        can tell an expired license from a missing one.
        """
        result = await db.execute(
            select(License)
            .where(
                License.user_id == user_id,
                License.document_id == document_id,
                License.is_active.is_(True),
            )
            .order_by(License.created_date.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def deactivate(db: AsyncSession, license_id: uuid.UUID) -> None:
        await db.execute(
            update(License)
            .where(License.id == license_id)
            .values(is_active=False)
            .execution_options(synchronize_session="fetch")
        )

    @staticmethod
    async def list_for_user(db: AsyncSession, user_id: uuid.UUID) -> Sequence[tuple[License, str]]:
        """Active license rows of a user with document titles, newest first."""
        result = await db.execute(
            select(License, Document.title)
            .join(Document, License.document_id == Document.id)
            .where(License.user_id == user_id, License.is_active.is_(True))
            .order_by(License.created_date.desc())
        )
        return result.tuples().all()


license_repository = LicenseRepository()
