# Pydantic schemas
from feedback_app.schemas.user import (
    RegisterRequest,
    LoginRequest,
    ProfileUpdate,
    UserCreate,
    UserUpdate,
    BulkStudent,
    BulkRegisterRequest,
    UserResponse,
    AuthResponse,
    LoginResponse,
)
from feedback_app.schemas.subject import SubjectCreate, SubjectUpdate, SubjectResponse
from feedback_app.schemas.feedback import Answer, FeedbackSubmit, FeedbackResponse
from feedback_app.schemas.feedback_period import (
    FeedbackPeriodCreate,
    FeedbackPeriodUpdate,
    PeriodToggle,
)
from feedback_app.schemas.settings import (
    SystemSettingsUpdate,
    SystemSettingsResponse,
    UserSettingsUpdate,
    UserSettingsResponse,
)
from feedback_app.schemas.email import EmailTestRequest
