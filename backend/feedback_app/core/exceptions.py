"""
Custom Exceptions for the Student Feedback System
=================================================

Raise these from services and endpoints instead of building HTTPException
by hand. `register_exception_handlers` maps each one to its HTTP status and
a JSON body of the form:

    {"detail": "...", "code": "...", "details": {...}}

Usage:
    from feedback_app.core.exceptions import SubjectNotFoundError

    if not subject:
        raise SubjectNotFoundError(subject_id)
"""

from typing import Optional, Any, Dict

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from feedback_app.core.config import settings
from feedback_app.core.logging_config import logger


class FeedbackAppError(Exception):
    """Base exception for all application errors"""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "detail": self.message,
            "code": self.code,
            "details": self.details
        }


# ============================================
# Authentication & Authorization Errors
# ============================================

class AuthenticationError(FeedbackAppError):
    """User authentication failed"""

    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Not authorized"):
        super().__init__(message, code="AUTH_FAILED")


class InvalidCredentialsError(AuthenticationError):
    """Email/password pair did not match"""

    def __init__(self):
        super().__init__("Invalid credentials")
        self.code = "INVALID_CREDENTIALS"


class InvalidTokenError(AuthenticationError):
    """JWT token is invalid or expired"""

    def __init__(self, message: str = "Could not validate credentials"):
        super().__init__(message)
        self.code = "INVALID_TOKEN"


class AuthorizationError(FeedbackAppError):
    """User not authorized for this action"""

    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "Access denied"):
        super().__init__(message, code="NOT_AUTHORIZED")


class RoleRequiredError(AuthorizationError):
    """Endpoint requires one of a set of roles"""

    def __init__(self, *roles: str):
        label = " or ".join(r.upper() for r in roles)
        super().__init__(f"Access denied. {label} role required.")
        self.code = "ROLE_REQUIRED"
        self.details = {"required_roles": list(roles)}


# ============================================
# Resource Errors (404-type)
# ============================================

class ResourceNotFoundError(FeedbackAppError):
    """Base class for not found errors"""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} not found",
            code=f"{resource_type.upper().replace(' ', '_')}_NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": str(resource_id)}
        )


class UserNotFoundError(ResourceNotFoundError):
    def __init__(self, user_id: str):
        super().__init__("User", user_id)


class SubjectNotFoundError(ResourceNotFoundError):
    def __init__(self, subject_id: str):
        super().__init__("Subject", subject_id)


class FeedbackPeriodNotFoundError(ResourceNotFoundError):
    def __init__(self, period_id: str):
        super().__init__("Feedback period", period_id)


# ============================================
# Validation Errors (400-type)
# ============================================

class ValidationError(FeedbackAppError):
    """Input validation failed"""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="VALIDATION_ERROR", details=details)


# ============================================
# Conflict Errors (409-type)
# ============================================

class ConflictError(FeedbackAppError):
    """Request conflicts with existing state"""

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="CONFLICT", details=details)


class DuplicateEmailError(ConflictError):
    def __init__(self, email: str):
        super().__init__(f"User with email '{email}' already exists", {"email": email})
        self.code = "DUPLICATE_EMAIL"


class DuplicateFeedbackError(ConflictError):
    def __init__(self, subject_id: str):
        super().__init__(
            "Feedback already submitted for this subject",
            {"subject_id": str(subject_id)}
        )
        self.code = "DUPLICATE_FEEDBACK"


class PeriodConflictError(ConflictError):
    def __init__(self, message: str, existing: Optional[Dict[str, Any]] = None):
        super().__init__(message, {"existing_period": existing} if existing else None)
        self.code = "PERIOD_CONFLICT"


# ============================================
# Feedback window / system state
# ============================================

class FeedbackClosedError(FeedbackAppError):
    """Feedback collection is disabled or past its deadline"""

    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "Feedback submission is currently closed"):
        super().__init__(message, code="FEEDBACK_CLOSED")


class MaintenanceModeError(FeedbackAppError):
    """System is in maintenance mode"""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self):
        super().__init__("System is under maintenance. Please try again later.", code="MAINTENANCE")


# ============================================
# Email
# ============================================

class EmailDeliveryError(FeedbackAppError):
    """Outgoing email could not be delivered"""

    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, recipient: str, message: str = "Failed to send email"):
        super().__init__(message, code="EMAIL_DELIVERY_FAILED", details={"recipient": recipient})


# ============================================
# Helpers for API responses
# ============================================

def error_response(error: FeedbackAppError) -> Dict[str, Any]:
    """Convert exception to API error response body"""
    return error.to_dict()


async def feedback_app_error_handler(request: Request, exc: FeedbackAppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == status.HTTP_401_UNAUTHORIZED else None
    return JSONResponse(status_code=exc.status_code, content=error_response(exc), headers=headers)


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.log_error_with_context(exc, context=f"{request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "Internal server error",
            "message": str(exc) if settings.DEBUG else "An error occurred"
        }
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(FeedbackAppError, feedback_app_error_handler)
    app.add_exception_handler(Exception, global_exception_handler)
