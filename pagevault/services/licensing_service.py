"""License lookup and issuance."""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from pagevault.database.licenses_repo import license_repository
from pagevault.models.models import License
from pagevault.schemas.purchases import LicenseResponse
from pagevault.utils.dates import as_utc, is_past


class LicensingService:
    """Service for reading and issuing document licenses."""

    @staticmethod
    def is_live(license_obj: Optional[License], now: Optional[datetime] = None) -> bool:
        """A license grants access when it is active and not past its expiry."""
        if license_obj is None or not license_obj.is_active:
            return False
        return not is_past(license_obj.expires_at, now)

    @staticmethod
    async def get_current_license(
        db: AsyncSession, user_id: uuid.UUID, document_id: uuid.UUID
    ) -> Optional[License]:
        """Active license row for the pair, live or expired."""
        return await license_repository.get_current(db, user_id, document_id)

    @staticmethod
    async def has_live_license(db: AsyncSession, user_id: uuid.UUID, document_id: uuid.UUID) -> bool:
        current = await license_repository.get_current(db, user_id, document_id)
        return LicensingService.is_live(current)

    @staticmethod
    async def issue_license(
        db: AsyncSession,
        user_id: uuid.UUID,
        document_id: uuid.UUID,
        purchase_id: Optional[uuid.UUID],
    ) -> tuple[Optional[License], bool]:
        """
        Ensure the pair holds a live license inside the caller's transaction.

        An active license that has already expired is deactivated first so
        the new one acts as a renewal. Nothing is issued when a live license
        already exists.

        Returns:
            (new license or None, whether an expired license was replaced)
        """
        current = await license_repository.get_current(db, user_id, document_id)
        if LicensingService.is_live(current):
            return None, False

        renewed = False
        if current is not None:
            await license_repository.deactivate(db, current.id)
            renewed = True

        license_obj = License(user_id=user_id, document_id=document_id, purchase_id=purchase_id, is_active=True)
        db.add(license_obj)
        await db.flush()
        return license_obj, renewed

    @staticmethod
    async def list_user_licenses(db: AsyncSession, user_id: uuid.UUID) -> list[LicenseResponse]:
        rows = await license_repository.list_for_user(db, user_id)
        return [
            LicenseResponse(
                id=str(license_obj.id),
                document_id=str(license_obj.document_id),
                document_title=title,
                purchase_id=str(license_obj.purchase_id) if license_obj.purchase_id else None,
                is_active=license_obj.is_active,
                expires_at=as_utc(license_obj.expires_at),
                is_expired=not LicensingService.is_live(license_obj),
                created_at=license_obj.created_at,
            )
            for license_obj, title in rows
        ]


licensing_service = LicensingService()
