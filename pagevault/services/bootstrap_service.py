"""Seeding of the single administrator account."""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from pagevault.core.config import settings
from pagevault.core.security import hash_password
from pagevault.database.users_repo import user_repository
from pagevault.models.models import User, UserRole
from pagevault.schemas.audit import BootstrapAdminDetails, UserRoleChangedDetails
from pagevault.services.activity_service import ActivityService

logger = logging.getLogger(__name__)


class BootstrapService:
    """Makes the configured bootstrap account the one and only administrator."""

    @staticmethod
    async def ensure_bootstrap_admin(db: AsyncSession) -> Optional[User]:
        """
        Create or promote the account named by BOOTSTRAP_ADMIN_EMAIL and
        demote every other administrator, in one transaction.

        This is the only code path that assigns the admin role.

        Returns:
            The bootstrap administrator, or None when no email is configured
        """
        email = settings.BOOTSTRAP_ADMIN_EMAIL.strip().lower()
        if not email:
            logger.info("BOOTSTRAP_ADMIN_EMAIL not set, skipping administrator bootstrap")
            return None

        admin = await user_repository.get_by_email(db, email)
        if admin is None:
            if not settings.BOOTSTRAP_ADMIN_PASSWORD:
                raise RuntimeError("BOOTSTRAP_ADMIN_PASSWORD is required to create the administrator account")
            admin = User(
                first_name=settings.BOOTSTRAP_ADMIN_FIRST_NAME,
                last_name=settings.BOOTSTRAP_ADMIN_LAST_NAME,
                email=email,
                username=settings.BOOTSTRAP_ADMIN_USERNAME,
                password_hash=hash_password(settings.BOOTSTRAP_ADMIN_PASSWORD),
                role=UserRole.ADMIN,
                is_active=True,
            )
            db.add(admin)
            await db.flush()
            operation = "created"
        elif admin.role != UserRole.ADMIN or not admin.is_active:
            admin.role = UserRole.ADMIN
            admin.is_active = True
            await db.flush()
            operation = "promoted"
        else:
            operation = "unchanged"

        if operation != "unchanged":
            await ActivityService.log_activity(
                db,
                "bootstrap_admin",
                user_id=admin.id,
                target_type="user",
                target_id=str(admin.id),
                details=BootstrapAdminDetails(operation=operation, email=email),
                commit=False,
            )

        for other in await user_repository.list_admins(db):
            if other.id == admin.id:
                continue
            other.role = UserRole.USER
            logger.warning("Demoting extra administrator", extra={"user.id": str(other.id)})
            await ActivityService.log_activity(
                db,
                "user_role_changed",
                user_id=admin.id,
                target_type="user",
                target_id=str(other.id),
                details=UserRoleChangedDetails(
                    target_user_id=str(other.id),
                    previous_role=UserRole.ADMIN.value,
                    new_role=UserRole.USER.value,
                ),
                commit=False,
            )

        await db.commit()
        await db.refresh(admin)
        logger.info("Administrator bootstrap finished", extra={"bootstrap.operation": operation})
        return admin


bootstrap_service = BootstrapService()
