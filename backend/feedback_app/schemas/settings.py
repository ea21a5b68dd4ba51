from pydantic import BaseModel, Field, StrictBool, field_validator
from typing import Optional, Dict, Any
from datetime import datetime

from feedback_app.schemas.feedback_period import to_naive_utc


class SystemSettingsUpdate(BaseModel):
    feedback_enabled: StrictBool
    registration_enabled: StrictBool
    maintenance_mode: StrictBool
    allow_anonymous_feedback: StrictBool
    max_feedback_per_subject: Optional[int] = Field(None, ge=0)
    feedback_deadline: Optional[datetime] = None

    @field_validator('feedback_deadline')
    @classmethod
    def naive_deadline(cls, v):
        return to_naive_utc(v)


class SystemSettingsResponse(BaseModel):
    id: str
    feedback_enabled: bool
    registration_enabled: bool
    max_feedback_per_subject: int
    feedback_deadline: Optional[datetime] = None
    maintenance_mode: bool
    allow_anonymous_feedback: bool
    updated_by_id: Optional[str] = None
    updated_at: datetime

    class Config:
        from_attributes = True


class UserSettingsUpdate(BaseModel):
    notification_preferences: Optional[Dict[str, Any]] = None
    report_settings: Optional[Dict[str, Any]] = None
    display_settings: Optional[Dict[str, Any]] = None


class UserSettingsResponse(BaseModel):
    user_id: str
    notification_preferences: Dict[str, Any]
    report_settings: Dict[str, Any]
    display_settings: Dict[str, Any]
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
