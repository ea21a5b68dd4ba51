# Re-export all models for convenient imports
from feedback_app.models.user import User, UserRole, Branch
from feedback_app.models.subject import Subject, STANDARD_QUESTIONS
from feedback_app.models.feedback import Feedback
from feedback_app.models.feedback_period import (
    FeedbackPeriod,
    FeedbackType,
    PeriodStatus,
    feedback_period_subjects,
)
from feedback_app.models.settings import SystemSettings, UserSettings

__all__ = [
    # User
    "User",
    "UserRole",
    "Branch",
    # Subjects
    "Subject",
    "STANDARD_QUESTIONS",
    # Feedback
    "Feedback",
    "FeedbackPeriod",
    "FeedbackType",
    "PeriodStatus",
    "feedback_period_subjects",
    # Settings
    "SystemSettings",
    "UserSettings",
]
