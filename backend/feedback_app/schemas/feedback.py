from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Union
from datetime import datetime


class Answer(BaseModel):
    """One question's answer. A missing rating makes it a comment-only entry."""
    question: str = Field(..., min_length=1)
    answer: Optional[Union[int, float]] = None
    category: Optional[str] = None
    comment: Optional[str] = None

    @field_validator('answer')
    @classmethod
    def rating_in_range(cls, v):
        if v is not None and not 1 <= v <= 5:
            raise ValueError('Ratings must be between 1 and 5')
        return v

    @property
    def is_rating(self) -> bool:
        return self.answer is not None


class FeedbackSubmit(BaseModel):
    subject_id: str
    answers: List[Answer] = Field(..., min_length=1)
    comments: Optional[str] = None
    # Admins may submit on behalf of a student
    student_id: Optional[str] = None

    @field_validator('answers')
    @classmethod
    def needs_a_rating(cls, v):
        if not any(a.is_rating for a in v):
            raise ValueError('At least one rated answer is required')
        return v


class FeedbackResponse(BaseModel):
    id: str
    student_id: str
    subject_id: str
    feedback_period_id: Optional[str] = None
    feedback_type: Optional[str] = None
    term: Optional[int] = None
    academic_year: Optional[str] = None
    answers: List[dict]
    average_rating: float
    comments: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
