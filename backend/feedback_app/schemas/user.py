from pydantic import BaseModel, EmailStr, Field, field_serializer, field_validator
from typing import Optional, List
from datetime import datetime

from feedback_app.models.user import UserRole, Branch


def _strip_or_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class RegisterRequest(BaseModel):
    """Student self-registration"""
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=6)
    roll_number: Optional[str] = None
    branch: Optional[Branch] = None
    year: Optional[int] = Field(None, ge=1, le=4)

    @field_validator('roll_number')
    @classmethod
    def clean_roll_number(cls, v):
        return _strip_or_none(v)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    password: Optional[str] = Field(None, min_length=6)


class UserCreate(BaseModel):
    """Account created by an administrator"""
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: Optional[str] = Field(None, min_length=6)
    role: UserRole = UserRole.STUDENT
    roll_number: Optional[str] = None
    branch: Optional[Branch] = None
    year: Optional[int] = Field(None, ge=1, le=4)
    department: Optional[str] = None
    send_email: bool = True

    @field_validator('roll_number')
    @classmethod
    def clean_roll_number(cls, v):
        return _strip_or_none(v)


class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    role: Optional[UserRole] = None
    roll_number: Optional[str] = None
    branch: Optional[Branch] = None
    year: Optional[int] = Field(None, ge=1, le=4)
    department: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator('roll_number')
    @classmethod
    def clean_roll_number(cls, v):
        return _strip_or_none(v)


class BulkStudent(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    roll_number: Optional[str] = None
    branch: Optional[Branch] = None
    year: Optional[int] = Field(None, ge=1, le=4)

    @field_validator('roll_number')
    @classmethod
    def clean_roll_number(cls, v):
        return _strip_or_none(v)


class BulkRegisterRequest(BaseModel):
    students: List[BulkStudent] = Field(..., min_length=1)
    send_emails: bool = True


class UserResponse(BaseModel):
    id: str
    name: Optional[str] = None
    email: str
    role: UserRole
    roll_number: Optional[str] = None
    branch: Optional[str] = None
    year: Optional[int] = None
    department: Optional[str] = None
    is_active: bool
    password_reset_required: bool
    created_at: datetime
    last_login: Optional[datetime] = None

    @field_serializer('role')
    def serialize_role(self, value: UserRole) -> str:
        return value.value

    class Config:
        from_attributes = True


class AuthResponse(BaseModel):
    token: str
    user: UserResponse


class LoginResponse(AuthResponse):
    password_reset_required: bool
