"""Repository layer for discount codes."""

import uuid
from typing import Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from pagevault.models.models import DiscountCode


class DiscountCodeRepository:
    """Repository for discount code database operations."""

    @staticmethod
    async def get_by_id(db: AsyncSession, discount_id: uuid.UUID) -> Optional[DiscountCode]:
        return await db.get(DiscountCode, discount_id)

    @staticmethod
    async def get_by_code(db: AsyncSession, code: str) -> Optional[DiscountCode]:
        """Exact, case-sensitive lookup after trimming whitespace."""
        result = await db.execute(select(DiscountCode).where(DiscountCode.code == code.strip()))
        return result.scalar_one_or_none()

    @staticmethod
    async def list_codes(db: AsyncSession) -> Sequence[DiscountCode]:
        result = await db.execute(select(DiscountCode).order_by(DiscountCode.created_date.desc()))
        return result.scalars().all()

    @staticmethod
    async def increment_usage(db: AsyncSession, discount_id: uuid.UUID) -> int:
        """
        Add one redemption to a code in SQL.

        Returns:
            Number of rows updated (0 when the code no longer exists)
        """
        result = await db.execute(
            update(DiscountCode)
            .where(DiscountCode.id == discount_id)
            .values(used_count=DiscountCode.used_count + 1)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount or 0


discount_code_repository = DiscountCodeRepository()
