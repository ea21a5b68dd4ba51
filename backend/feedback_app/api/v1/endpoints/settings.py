from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from datetime import datetime

from feedback_app.core.database import get_db
from feedback_app.core.logging_config import logger
from feedback_app.models.settings import SystemSettings, UserSettings, USER_SETTINGS_GROUPS, default_user_settings
from feedback_app.models.user import User, UserRole
from feedback_app.modules.auth.dependencies import get_current_admin, require_roles
from feedback_app.schemas.settings import (
    SystemSettingsResponse,
    SystemSettingsUpdate,
    UserSettingsResponse,
    UserSettingsUpdate,
)
from feedback_app.services.system_settings import get_or_create_settings

router = APIRouter()

get_settings_user = require_roles(UserRole.HOD, UserRole.DEAN)


@router.get("/system", response_model=SystemSettingsResponse)
async def get_system_settings(
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    current = await get_or_create_settings(db, updated_by_id=admin.id)
    await db.commit()
    return current


@router.put("/system", response_model=SystemSettingsResponse)
async def update_system_settings(
    update: SystemSettingsUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    """Append a new settings row; earlier rows stay as history"""
    new_settings = SystemSettings(
        feedback_enabled=update.feedback_enabled,
        registration_enabled=update.registration_enabled,
        max_feedback_per_subject=update.max_feedback_per_subject or 1,
        feedback_deadline=update.feedback_deadline,
        maintenance_mode=update.maintenance_mode,
        allow_anonymous_feedback=update.allow_anonymous_feedback,
        updated_by_id=admin.id,
        updated_at=datetime.utcnow(),
    )
    db.add(new_settings)
    await db.commit()
    await db.refresh(new_settings)

    logger.info(
        f"[Settings] {admin.email} updated system settings "
        f"(feedback={update.feedback_enabled}, registration={update.registration_enabled}, "
        f"maintenance={update.maintenance_mode})"
    )
    return new_settings


async def _get_user_settings(db: AsyncSession, user: User) -> UserSettings:
    result = await db.execute(select(UserSettings).where(UserSettings.user_id == user.id))
    user_settings = result.scalar_one_or_none()
    if user_settings is None:
        user_settings = UserSettings(user_id=user.id, **default_user_settings())
        db.add(user_settings)
        await db.flush()
    return user_settings


@router.get("/user", response_model=UserSettingsResponse)
async def get_user_settings(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_settings_user)
):
    user_settings = await _get_user_settings(db, current_user)
    await db.commit()
    return user_settings


@router.put("/user", response_model=UserSettingsResponse)
async def update_user_settings(
    update: UserSettingsUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_settings_user)
):
    """Merge each provided group into the stored one"""
    user_settings = await _get_user_settings(db, current_user)

    for group in USER_SETTINGS_GROUPS:
        changes = getattr(update, group)
        if changes:
            # Assign a new dict so the JSON column is flagged dirty
            setattr(user_settings, group, {**(getattr(user_settings, group) or {}), **changes})
    user_settings.updated_at = datetime.utcnow()

    await db.commit()
    await db.refresh(user_settings)
    return user_settings
