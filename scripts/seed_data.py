"""Seed the database: the bootstrap administrator and a sample discount code."""

import asyncio
import sys
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from pagevault.core.config import settings
from pagevault.core.db import get_sessionmaker
from pagevault.database.discount_repo import discount_code_repository
from pagevault.models.models import DiscountCode, DiscountType
from pagevault.services.bootstrap_service import bootstrap_service


async def seed_admin(session: AsyncSession) -> bool:
    """Create or promote the configured administrator and demote any other admin."""
    admin = await bootstrap_service.ensure_bootstrap_admin(session)
    if admin is None:
        print("✗ BOOTSTRAP_ADMIN_EMAIL is not set; nothing to seed")
        return False
    print(f"✓ Administrator ready: {admin.email}")
    return True


async def seed_welcome_code(session: AsyncSession) -> None:
    """Create a 10% WELCOME10 code limited to 100 redemptions if it is missing."""
    if await discount_code_repository.get_by_code(session, "WELCOME10") is not None:
        print("✓ Discount code already exists: WELCOME10")
        return

    session.add(
        DiscountCode(
            code="WELCOME10",
            type=DiscountType.PERCENTAGE,
            value=Decimal("10"),
            max_uses=100,
            is_active=True,
        )
    )
    await session.commit()
    print("✓ Created discount code: WELCOME10")


async def main() -> int:
    """Run all seed operations."""
    print(f"Seeding database for {settings.APP_NAME}...")

    sessionmaker = get_sessionmaker()
    async with sessionmaker() as session:
        if not await seed_admin(session):
            return 1
        await seed_welcome_code(session)

    print("Database seeding completed")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
