"""
Administrator invariant guard.

Every mutation that can touch a role or take an account out of service
passes through enforce_admin_invariants. Two rules hold at all times:

- ceiling: no account is ever given the admin role through the API;
- floor: the last active administrator can be neither demoted,
  deactivated nor deleted.

A rejected attempt is audit-logged before the exception is raised.
"""

import enum
import logging
from typing import Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from pagevault.database.users_repo import user_repository
from pagevault.models.models import User, UserRole
from pagevault.schemas.audit import AdminGuardBlockedDetails
from pagevault.services.activity_service import ActivityService
from pagevault.utils.exceptions import InvariantViolationException

logger = logging.getLogger(__name__)


class UserMutation(str, enum.Enum):
    CREATE = "create"
    ROLE_CHANGE = "role_change"
    STATUS_CHANGE = "status_change"
    SOFT_DELETE = "soft_delete"
    PERMANENT_DELETE = "permanent_delete"


def _removes_admin(
    target: Optional[User],
    mutation: UserMutation,
    new_role: Optional[UserRole],
    new_is_active: Optional[bool],
) -> bool:
    """True when the mutation takes an active admin out of the active-admin set."""
    if target is None or target.role != UserRole.ADMIN or not target.is_active:
        return False
    if mutation in (UserMutation.SOFT_DELETE, UserMutation.PERMANENT_DELETE):
        return True
    if mutation == UserMutation.ROLE_CHANGE:
        return new_role is not None and new_role != UserRole.ADMIN
    if mutation == UserMutation.STATUS_CHANGE:
        return new_is_active is False
    return False


async def _block(
    db: AsyncSession,
    actor: Optional[User],
    mutation: UserMutation,
    reason: str,
    admin_count: int,
    target: Optional[User],
    new_role: Optional[UserRole],
    request: Optional[Request],
) -> None:
    logger.warning(
        "Administrator guard blocked %s",
        mutation.value,
        extra={"guard.reason": reason, "guard.admin_count": admin_count},
    )
    # Committed on its own so the audit entry survives the rejected request
    await ActivityService.log_activity(
        db,
        "admin_guard_blocked",
        user_id=actor.id if actor is not None else None,
        target_type="user",
        target_id=str(target.id) if target is not None else None,
        details=AdminGuardBlockedDetails(
            operation=mutation.value,
            reason=reason,
            active_admin_count=admin_count,
            attempted_role=new_role.value if new_role is not None else None,
            target_user_id=str(target.id) if target is not None else None,
        ),
        request=request,
    )
    raise InvariantViolationException(
        reason,
        details={"operation": mutation.value, "activeAdminCount": admin_count},
    )


async def enforce_admin_invariants(
    db: AsyncSession,
    actor: Optional[User],
    mutation: UserMutation,
    target: Optional[User] = None,
    new_role: Optional[UserRole] = None,
    new_is_active: Optional[bool] = None,
    request: Optional[Request] = None,
) -> None:
    """
    Reject a user mutation that would break the single-administrator rule.

    Args:
        db: Database session
        actor: User performing the mutation
        mutation: Kind of mutation
        target: Existing user being changed (None for creation)
        new_role: Role the mutation would set, if any
        new_is_active: Active flag the mutation would set, if any
        request: Current request, for the audit entry

    Raises:
        InvariantViolationException: The mutation is not allowed
    """
    admin_count = await user_repository.count_active_admins(db)

    if new_role == UserRole.ADMIN:
        await _block(
            db,
            actor,
            mutation,
            "Creating or promoting administrators is not allowed",
            admin_count,
            target,
            new_role,
            request,
        )

    if _removes_admin(target, mutation, new_role, new_is_active) and admin_count - 1 < 1:
        await _block(
            db,
            actor,
            mutation,
            "The last active administrator cannot be demoted, deactivated or deleted",
            admin_count,
            target,
            new_role,
            request,
        )
