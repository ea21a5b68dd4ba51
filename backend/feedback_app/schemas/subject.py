from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime

from feedback_app.models.user import Branch


def _clean_questions(questions: Optional[List[str]]) -> Optional[List[str]]:
    if questions is None:
        return None
    return [q.strip() for q in questions if q and q.strip()]


class SubjectCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    code: str = Field(..., min_length=1, max_length=50)
    instructor: Optional[str] = None
    department: Optional[str] = None
    semester: Optional[int] = Field(None, ge=1, le=8)
    branch: Optional[Branch] = None
    questions: Optional[List[str]] = None

    @field_validator('questions')
    @classmethod
    def clean_questions(cls, v):
        return _clean_questions(v)


class SubjectUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    code: Optional[str] = Field(None, min_length=1, max_length=50)
    instructor: Optional[str] = None
    department: Optional[str] = None
    semester: Optional[int] = Field(None, ge=1, le=8)
    branch: Optional[Branch] = None
    questions: Optional[List[str]] = None

    @field_validator('questions')
    @classmethod
    def clean_questions(cls, v):
        return _clean_questions(v)


class SubjectResponse(BaseModel):
    id: str
    name: str
    code: str
    instructor: Optional[str] = None
    department: Optional[str] = None
    semester: Optional[int] = None
    year: Optional[int] = None
    branch: Optional[str] = None
    questions: List[str] = []
    created_at: datetime

    class Config:
        from_attributes = True
