"""Activity logging service for the audit trail."""

import logging
import uuid
from typing import Optional, Sequence

from fastapi import Request
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pagevault.models.models import ActivityLog
from pagevault.schemas.audit import ActivityDetails, ActivityLogResponse, activity_details_adapter

logger = logging.getLogger(__name__)

# Actions shown to a user as their own security log
SECURITY_ACTIONS = (
    "login",
    "register",
    "admin_guard_blocked",
    "access_denied",
    "user_role_changed",
    "user_status_changed",
    "profile_updated",
)


def client_info(request: Optional[Request]) -> tuple[Optional[str], Optional[str]]:
    """Extract (ip_address, user_agent) from a request, honouring X-Forwarded-For."""
    if request is None:
        return None, None

    ip_address = request.headers.get("x-forwarded-for")
    if ip_address:
        # Get first IP if multiple
        ip_address = ip_address.split(",")[0].strip()
    else:
        ip_address = request.client.host if request.client else None

    return ip_address, request.headers.get("user-agent")


class ActivityService:
    """Service for writing and reading audit entries."""

    @staticmethod
    async def log_activity(
        db: AsyncSession,
        action: str,
        user_id: Optional[uuid.UUID] = None,
        target_type: Optional[str] = None,
        target_id: Optional[str] = None,
        details: Optional[ActivityDetails] = None,
        request: Optional[Request] = None,
        commit: bool = True,
    ) -> ActivityLog:
        """
        Append an audit entry.

        With commit=False the entry joins the caller's open transaction and
        is rolled back with it.
        """
        ip_address, user_agent = client_info(request)

        activity = ActivityLog(
            actor_user_id=user_id,
            action=action,
            target_type=target_type,
            target_id=target_id,
            details=details.model_dump_json() if details is not None else None,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        db.add(activity)

        if commit:
            await db.commit()
            await db.refresh(activity)
        else:
            await db.flush()

        return activity

    @staticmethod
    async def log_after_commit(db: AsyncSession, action: str, **kwargs) -> None:
        """
        Write a "this happened" entry once the operation itself is committed.

        A failure here is logged and swallowed so a committed operation is
        never reported as failed because of its audit line.
        """
        try:
            await ActivityService.log_activity(db, action, **kwargs)
        except Exception:
            await db.rollback()
            logger.exception("Failed to write activity log entry", extra={"activity.action": action})

    @staticmethod
    def parse_details(raw: Optional[str]) -> Optional[ActivityDetails]:
        if not raw:
            return None
        try:
            return activity_details_adapter.validate_json(raw)
        except ValidationError:
            logger.warning("Unparseable activity details: %s", raw[:200])
            return None

    @staticmethod
    def to_response(activity: ActivityLog) -> ActivityLogResponse:
        return ActivityLogResponse(
            id=str(activity.id),
            actor_user_id=str(activity.actor_user_id) if activity.actor_user_id else None,
            action=activity.action,
            target_type=activity.target_type,
            target_id=activity.target_id,
            details=ActivityService.parse_details(activity.details),
            ip_address=activity.ip_address,
            user_agent=activity.user_agent,
            created_at=activity.created_date,
        )

    @staticmethod
    async def list_activities(
        db: AsyncSession,
        action: Optional[str] = None,
        user_id: Optional[uuid.UUID] = None,
        limit: int = 100,
    ) -> Sequence[ActivityLog]:
        """Most recent audit entries, optionally filtered by action or actor."""
        stmt = select(ActivityLog)
        if action:
            stmt = stmt.where(ActivityLog.action == action)
        if user_id is not None:
            stmt = stmt.where(ActivityLog.actor_user_id == user_id)
        result = await db.execute(stmt.order_by(ActivityLog.created_date.desc()).limit(limit))
        return result.scalars().all()

    @staticmethod
    async def list_security_logs(db: AsyncSession, user_id: uuid.UUID, limit: int = 50) -> Sequence[ActivityLog]:
        """Security-relevant entries where the user is the actor or the target."""
        result = await db.execute(
            select(ActivityLog)
            .where(
                ActivityLog.action.in_(SECURITY_ACTIONS),
                (ActivityLog.actor_user_id == user_id) | (ActivityLog.target_id == str(user_id)),
            )
            .order_by(ActivityLog.created_date.desc())
            .limit(limit)
        )
        return result.scalars().all()


activity_service = ActivityService()
