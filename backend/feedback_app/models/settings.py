from sqlalchemy import Column, Boolean, Integer, DateTime, ForeignKey, JSON
from datetime import datetime
import copy

from feedback_app.core.database import Base
from feedback_app.core.types import GUID, generate_uuid


DEFAULT_NOTIFICATION_PREFERENCES = {
    "email_reports": True,
    "weekly_digest": True,
    "low_rating_alerts": True,
    "new_feedback_notifications": False,
}

DEFAULT_REPORT_SETTINGS = {
    "default_time_range": "30",
    "include_anonymous_data": True,
    "auto_generate_reports": False,
}

DEFAULT_DISPLAY_SETTINGS = {
    "show_branch_comparison": True,
    "show_trend_analysis": True,
    "default_chart_type": "bar",
}

USER_SETTINGS_GROUPS = ("notification_preferences", "report_settings", "display_settings")


def default_user_settings() -> dict:
    return {
        "notification_preferences": copy.deepcopy(DEFAULT_NOTIFICATION_PREFERENCES),
        "report_settings": copy.deepcopy(DEFAULT_REPORT_SETTINGS),
        "display_settings": copy.deepcopy(DEFAULT_DISPLAY_SETTINGS),
    }


class SystemSettings(Base):
    """
    Global switches for the feedback system.

    Rows are never updated in place: every change appends a new row and the
    newest row is the current configuration.
    """
    __tablename__ = "system_settings"

    id = Column(GUID, primary_key=True, default=generate_uuid)

    feedback_enabled = Column(Boolean, default=True, nullable=False)
    registration_enabled = Column(Boolean, default=True, nullable=False)
    max_feedback_per_subject = Column(Integer, default=1, nullable=False)
    feedback_deadline = Column(DateTime, nullable=True)
    maintenance_mode = Column(Boolean, default=False, nullable=False)
    allow_anonymous_feedback = Column(Boolean, default=False, nullable=False)

    # Audit trail
    updated_by_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    def __repr__(self):
        return f"<SystemSettings {self.id} @ {self.updated_at}>"


class UserSettings(Base):
    """Per-user dashboard preferences (HOD / dean)"""
    __tablename__ = "user_settings"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False, index=True)

    notification_preferences = Column(JSON, default=lambda: copy.deepcopy(DEFAULT_NOTIFICATION_PREFERENCES))
    report_settings = Column(JSON, default=lambda: copy.deepcopy(DEFAULT_REPORT_SETTINGS))
    display_settings = Column(JSON, default=lambda: copy.deepcopy(DEFAULT_DISPLAY_SETTINGS))

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<UserSettings {self.user_id}>"
