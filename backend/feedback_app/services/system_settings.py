"""Current system switches and the checks that depend on them"""
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from feedback_app.core.exceptions import FeedbackClosedError, MaintenanceModeError, AuthorizationError
from feedback_app.models.settings import SystemSettings


async def get_current_settings(db: AsyncSession) -> Optional[SystemSettings]:
    """Newest history row, or None before anyone saved settings"""
    result = await db.execute(
        select(SystemSettings).order_by(SystemSettings.updated_at.desc()).limit(1)
    )
    return result.scalar_one_or_none()


async def get_or_create_settings(db: AsyncSession, updated_by_id=None) -> SystemSettings:
    current = await get_current_settings(db)
    if current is None:
        current = SystemSettings(updated_by_id=updated_by_id, updated_at=datetime.utcnow())
        db.add(current)
        await db.flush()
    return current


async def ensure_feedback_open(db: AsyncSession, now: Optional[datetime] = None) -> None:
    """Raise unless students may submit feedback right now"""
    current = await get_current_settings(db)
    if current is None:
        return

    now = now or datetime.utcnow()
    if current.maintenance_mode:
        raise MaintenanceModeError()
    if not current.feedback_enabled:
        raise FeedbackClosedError("Feedback submission is currently disabled")
    if current.feedback_deadline is not None and now > current.feedback_deadline:
        raise FeedbackClosedError("The feedback deadline has passed")


async def ensure_registration_open(db: AsyncSession) -> None:
    current = await get_current_settings(db)
    if current is None:
        return
    if current.maintenance_mode:
        raise MaintenanceModeError()
    if not current.registration_enabled:
        raise AuthorizationError("Registration is currently disabled")
