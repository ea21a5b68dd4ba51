from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime, timezone

from feedback_app.models.feedback_period import FeedbackType
from feedback_app.models.user import Branch


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Stored datetimes are naive UTC"""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _check_years(years: Optional[List[int]]) -> Optional[List[int]]:
    if years and any(y < 1 or y > 4 for y in years):
        raise ValueError('Years must be between 1 and 4')
    return years


class FeedbackPeriodCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    feedback_type: FeedbackType
    academic_year: Optional[str] = None
    term: int = Field(..., ge=1, le=4)
    start_date: datetime
    end_date: datetime
    subjects: List[str] = []
    branches: List[Branch] = []
    years: List[int] = []
    instructions: Optional[str] = None

    @field_validator('start_date', 'end_date')
    @classmethod
    def naive_dates(cls, v):
        return to_naive_utc(v)

    @field_validator('years')
    @classmethod
    def years_in_range(cls, v):
        return _check_years(v)


class FeedbackPeriodUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    feedback_type: Optional[FeedbackType] = None
    academic_year: Optional[str] = None
    term: Optional[int] = Field(None, ge=1, le=4)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    subjects: Optional[List[str]] = None
    branches: Optional[List[Branch]] = None
    years: Optional[List[int]] = None
    instructions: Optional[str] = None

    @field_validator('start_date', 'end_date')
    @classmethod
    def naive_dates(cls, v):
        return to_naive_utc(v)

    @field_validator('years')
    @classmethod
    def years_in_range(cls, v):
        return _check_years(v)


class PeriodToggle(BaseModel):
    # activate, deactivate, complete or cancel
    action: str
