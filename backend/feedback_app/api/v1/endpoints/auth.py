from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, or_
from datetime import datetime
from typing import List, Optional

from feedback_app.core.config import settings
from feedback_app.core.database import get_db
from feedback_app.core.exceptions import (
    AuthorizationError,
    ConflictError,
    DuplicateEmailError,
    InvalidCredentialsError,
    UserNotFoundError,
    ValidationError,
)
from feedback_app.core.logging_config import logger, set_user_id
from feedback_app.core.rate_limiter import auth_rate_limit
from feedback_app.core.security import (
    create_user_token,
    default_password_for_role,
    get_password_hash,
    verify_password,
)
from feedback_app.models.feedback import Feedback
from feedback_app.models.settings import UserSettings
from feedback_app.models.user import User, UserRole
from feedback_app.modules.auth.dependencies import get_current_admin, get_current_user
from feedback_app.schemas.user import (
    AuthResponse,
    BulkRegisterRequest,
    LoginRequest,
    LoginResponse,
    ProfileUpdate,
    RegisterRequest,
    UserCreate,
    UserResponse,
    UserUpdate,
)
from feedback_app.services.email_service import email_service
from feedback_app.services.roll_numbers import next_roll_number
from feedback_app.services.system_settings import ensure_registration_open

router = APIRouter()

# Columns that cannot be cleared through an update
REQUIRED_USER_FIELDS = ("email", "role", "is_active")


async def _email_taken(db: AsyncSession, email: str, exclude_id: Optional[str] = None) -> bool:
    query = select(User.id).where(User.email == email)
    if exclude_id:
        query = query.where(User.id != exclude_id)
    return (await db.execute(query)).first() is not None


async def _roll_number_taken(db: AsyncSession, roll_number: str, exclude_id: Optional[str] = None) -> bool:
    query = select(User.id).where(User.roll_number == roll_number)
    if exclude_id:
        query = query.where(User.id != exclude_id)
    return (await db.execute(query)).first() is not None


def _enum_value(value):
    return value.value if value is not None and hasattr(value, "value") else value


def _queue_password_email(background_tasks: BackgroundTasks, user: User, password: str) -> bool:
    if not settings.SEND_ACCOUNT_EMAILS:
        return False
    background_tasks.add_task(email_service.send_password_email, user, password)
    return True


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
@auth_rate_limit(settings.REGISTER_RATE_LIMIT)
async def register(
    request: Request,
    user_data: RegisterRequest,
    db: AsyncSession = Depends(get_db)
):
    """Student self-registration (rate limited)"""
    client_ip = request.client.host if request.client else "unknown"
    email = user_data.email.lower()

    await ensure_registration_open(db)

    if await _email_taken(db, email):
        logger.log_auth_event(
            event="register",
            success=False,
            user_email=email,
            reason="Email already registered",
            client_ip=client_ip
        )
        raise DuplicateEmailError(email)

    roll_number = user_data.roll_number
    if roll_number and await _roll_number_taken(db, roll_number):
        raise ConflictError(f"Roll number '{roll_number}' is already registered", {"roll_number": roll_number})
    if not roll_number:
        roll_number = await next_roll_number(db)

    user = User(
        name=user_data.name.strip(),
        email=email,
        hashed_password=get_password_hash(user_data.password),
        role=UserRole.STUDENT,
        roll_number=roll_number,
        branch=_enum_value(user_data.branch),
        year=user_data.year,
        password_reset_required=False,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)

    logger.log_auth_event(
        event="register",
        success=True,
        user_email=email,
        client_ip=client_ip,
        user_role=UserRole.STUDENT.value
    )

    return {"token": create_user_token(user), "user": user}


@router.post("/register/bulk")
async def bulk_register(
    payload: BulkRegisterRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    """
    Create many student accounts at once.

    Every row gets the student default password. Rows that clash with an
    existing (or earlier) email or roll number are reported as failed and do
    not stop the rest.
    """
    successful = []
    failed = []
    seen_emails = set()
    seen_rolls = set()
    password = default_password_for_role(UserRole.STUDENT)

    for row in payload.students:
        email = row.email.lower()

        if email in seen_emails or await _email_taken(db, email):
            failed.append({"email": email, "reason": "Email already exists"})
            continue
        if row.roll_number and (row.roll_number in seen_rolls or await _roll_number_taken(db, row.roll_number)):
            failed.append({"email": email, "reason": f"Roll number {row.roll_number} already exists"})
            continue

        roll_number = row.roll_number or await next_roll_number(db)
        user = User(
            name=row.name.strip(),
            email=email,
            hashed_password=get_password_hash(password),
            role=UserRole.STUDENT,
            roll_number=roll_number,
            branch=_enum_value(row.branch),
            year=row.year,
            password_reset_required=True,
        )
        db.add(user)
        # Flush so the next generated roll number sees this one
        await db.flush()

        seen_emails.add(email)
        seen_rolls.add(roll_number)

        email_queued = payload.send_emails and _queue_password_email(background_tasks, user, password)
        successful.append({
            "id": str(user.id),
            "name": user.name,
            "email": user.email,
            "roll_number": user.roll_number,
            "email_queued": email_queued,
        })

    await db.commit()

    results = {"successful": successful, "failed": failed, "total": len(payload.students)}
    logger.info(
        f"[Auth] Bulk registration by {admin.email}: {len(successful)} created, {len(failed)} failed"
    )

    if payload.send_emails and settings.SEND_ACCOUNT_EMAILS:
        background_tasks.add_task(email_service.send_bulk_registration_summary, admin.email, results)

    return {"message": "Bulk registration completed", "results": results}


@router.post("/login", response_model=LoginResponse)
@auth_rate_limit(settings.LOGIN_RATE_LIMIT)
async def login(
    request: Request,
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db)
):
    """Login with email and password (rate limited)"""
    client_ip = request.client.host if request.client else "unknown"
    email = credentials.email.lower()

    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()

    if not user or not verify_password(credentials.password, user.hashed_password):
        logger.log_auth_event(
            event="login",
            success=False,
            user_email=email,
            reason="Invalid credentials",
            client_ip=client_ip
        )
        raise InvalidCredentialsError()

    if not user.is_active:
        logger.log_auth_event(
            event="login",
            success=False,
            user_email=email,
            reason="Account inactive",
            client_ip=client_ip
        )
        raise AuthorizationError("User account is inactive")

    user.last_login = datetime.utcnow()
    await db.commit()
    await db.refresh(user)

    set_user_id(str(user.id))
    logger.log_auth_event(
        event="login",
        success=True,
        user_email=email,
        client_ip=client_ip,
        user_role=user.role_value
    )

    return {
        "token": create_user_token(user),
        "user": user,
        "password_reset_required": user.password_reset_required,
    }


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    """Get current user"""
    return current_user


@router.put("/me", response_model=UserResponse)
async def update_me(
    update: ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Update own name and/or password"""
    if update.name is not None:
        current_user.name = update.name.strip()
    if update.password is not None:
        current_user.hashed_password = get_password_hash(update.password)
        current_user.password_reset_required = False
        logger.log_auth_event(event="password_change", success=True, user_email=current_user.email)

    await db.commit()
    await db.refresh(current_user)
    return current_user


# ==================== User administration ====================

@router.get("/users", response_model=List[UserResponse])
async def list_users(
    role: Optional[UserRole] = Query(None),
    branch: Optional[str] = Query(None),
    search: Optional[str] = Query(None, description="Name, email or roll number"),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    query = select(User)
    if role:
        query = query.where(User.role == role)
    if branch:
        query = query.where(User.branch == branch)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(or_(
            User.name.ilike(pattern),
            User.email.ilike(pattern),
            User.roll_number.ilike(pattern),
        ))

    result = await db.execute(query.order_by(User.created_at.desc()))
    return result.scalars().all()


@router.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    user_data: UserCreate,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    """Create a user of any role; without a password the role default is used"""
    email = user_data.email.lower()
    if await _email_taken(db, email):
        raise DuplicateEmailError(email)

    roll_number = user_data.roll_number
    if roll_number and await _roll_number_taken(db, roll_number):
        raise ConflictError(f"Roll number '{roll_number}' is already registered", {"roll_number": roll_number})
    if not roll_number and user_data.role == UserRole.STUDENT:
        roll_number = await next_roll_number(db)

    password = user_data.password or default_password_for_role(user_data.role)
    user = User(
        name=user_data.name.strip(),
        email=email,
        hashed_password=get_password_hash(password),
        role=user_data.role,
        roll_number=roll_number,
        branch=_enum_value(user_data.branch),
        year=user_data.year,
        department=user_data.department,
        password_reset_required=True,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)

    logger.info(f"[Auth] {admin.email} created {user.role_value} account {user.email}")

    if user_data.send_email:
        _queue_password_email(background_tasks, user, password)

    return user


@router.put("/users/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    update: UserUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise UserNotFoundError(user_id)

    data = update.model_dump(exclude_unset=True)

    if data.get("email"):
        data["email"] = data["email"].lower()
        if await _email_taken(db, data["email"], exclude_id=user_id):
            raise DuplicateEmailError(data["email"])
    if data.get("roll_number") and await _roll_number_taken(db, data["roll_number"], exclude_id=user_id):
        raise ConflictError(
            f"Roll number '{data['roll_number']}' is already registered",
            {"roll_number": data["roll_number"]}
        )
    if "branch" in data:
        data["branch"] = _enum_value(data["branch"])

    for field, value in data.items():
        if value is None and field in REQUIRED_USER_FIELDS:
            continue
        setattr(user, field, value)

    await db.commit()
    await db.refresh(user)
    return user


@router.delete("/users/{user_id}")
async def delete_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    """Delete a user together with their feedback and settings"""
    if str(admin.id) == str(user_id):
        raise ValidationError("You cannot delete your own account")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise UserNotFoundError(user_id)

    await db.execute(delete(Feedback).where(Feedback.student_id == user_id))
    await db.execute(delete(UserSettings).where(UserSettings.user_id == user_id))
    await db.delete(user)
    await db.commit()

    logger.info(f"[Auth] {admin.email} deleted user {user.email}")
    return {"message": "User deleted"}


@router.post("/reset-password/{user_id}")
async def reset_password(
    user_id: str,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    """Reset a user's password to their role default"""
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise UserNotFoundError(user_id)

    password = default_password_for_role(user.role)
    user.hashed_password = get_password_hash(password)
    user.password_reset_required = True
    await db.commit()

    logger.log_auth_event(event="password_reset", success=True, user_email=user.email, reset_by=admin.email)
    _queue_password_email(background_tasks, user, password)

    return {
        "message": f"Password reset to the default {user.role_value} password",
        "temporary_password": password,
    }
