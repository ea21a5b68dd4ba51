"""
Feedback submission and retrieval.

Submission rules:
- system switches first (maintenance 503, disabled or past deadline 403)
- one rated answer per subject question at least, each rating 1-5
- one submission per student, subject and feedback period
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError
from sqlalchemy import select, func
from datetime import datetime
from typing import Optional

from feedback_app.core.config import settings
from feedback_app.core.database import get_db
from feedback_app.core.exceptions import (
    AuthorizationError,
    DuplicateFeedbackError,
    RoleRequiredError,
    UserNotFoundError,
    ValidationError,
)
from feedback_app.core.logging_config import logger
from feedback_app.models.feedback import Feedback
from feedback_app.models.feedback_period import FeedbackPeriod, PeriodStatus
from feedback_app.models.subject import Subject
from feedback_app.models.user import User, UserRole
from feedback_app.modules.auth.dependencies import get_current_admin, get_current_user, require_roles
from feedback_app.schemas.feedback import FeedbackResponse, FeedbackSubmit
from feedback_app.services.feedback_queries import feedback_detail
from feedback_app.services.reporting import answer_average, average, question_summary, round_rating
from feedback_app.services.system_settings import ensure_feedback_open
from feedback_app.api.v1.endpoints.subjects import get_subject_or_404
from feedback_app.utils.pagination import paginate

router = APIRouter()

STAFF_ROLES = (UserRole.ADMIN, UserRole.HOD, UserRole.DEAN, UserRole.FACULTY)


async def find_open_period(db: AsyncSession, student: User, subject: Subject, now: datetime) -> Optional[FeedbackPeriod]:
    """Newest open period whose audience covers this student and subject"""
    result = await db.execute(
        select(FeedbackPeriod)
        .where(
            FeedbackPeriod.is_active.is_(True),
            FeedbackPeriod.status == PeriodStatus.ACTIVE,
            FeedbackPeriod.start_date <= now,
            FeedbackPeriod.end_date >= now,
        )
        .order_by(FeedbackPeriod.start_date.desc())
    )
    for period in result.scalars().all():
        if not period.applies_to(student.branch, student.year):
            continue
        if period.subjects and str(subject.id) not in {str(s.id) for s in period.subjects}:
            continue
        return period
    return None


async def _resolve_submitter(db: AsyncSession, current_user: User, student_id: Optional[str]) -> User:
    if current_user.role == UserRole.STUDENT:
        return current_user
    if current_user.role != UserRole.ADMIN:
        raise RoleRequiredError(UserRole.STUDENT.value)
    if not student_id:
        raise ValidationError("student_id is required when submitting on behalf of a student", field="student_id")

    result = await db.execute(select(User).where(User.id == student_id))
    student = result.scalar_one_or_none()
    if not student or student.role != UserRole.STUDENT:
        raise UserNotFoundError(student_id)
    return student


@router.post("", response_model=FeedbackResponse, status_code=status.HTTP_201_CREATED)
async def submit_feedback(
    payload: FeedbackSubmit,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    student = await _resolve_submitter(db, current_user, payload.student_id)
    await ensure_feedback_open(db)

    subject = await get_subject_or_404(db, payload.subject_id)

    answers = [a.model_dump(exclude_none=True) for a in payload.answers]
    rated = [a for a in payload.answers if a.is_rating]
    required = len(subject.questions or [])
    if required and len(rated) < required:
        raise ValidationError(
            f"All {required} questions must be rated ({len(rated)} given)",
            field="answers"
        )

    now = datetime.utcnow()
    period = await find_open_period(db, student, subject, now)
    period_id = period.id if period else None

    # NULL never equals NULL in the unique index, so period-less duplicates are caught here
    same_period = (
        Feedback.feedback_period_id == period_id if period_id
        else Feedback.feedback_period_id.is_(None)
    )
    duplicate = await db.execute(
        select(Feedback.id).where(
            Feedback.student_id == student.id,
            Feedback.subject_id == subject.id,
            same_period,
        )
    )
    if duplicate.first() is not None:
        raise DuplicateFeedbackError(subject.id)

    feedback = Feedback(
        student_id=student.id,
        subject_id=subject.id,
        feedback_period_id=period_id,
        feedback_type=period.feedback_type.value if period else None,
        term=period.term if period else None,
        academic_year=period.academic_year if period else settings.DEFAULT_ACADEMIC_YEAR,
        answers=answers,
        average_rating=answer_average(answers),
        comments=payload.comments,
    )
    db.add(feedback)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise DuplicateFeedbackError(subject.id)
    await db.refresh(feedback)

    logger.info(
        f"[Feedback] {student.email} rated {subject.code} {feedback.average_rating:.2f}"
        + (f" in period {period.title}" if period else "")
    )
    return feedback


@router.get("")
async def list_feedback(
    subject_id: Optional[str] = Query(None, alias="subject"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    query = select(Feedback).order_by(Feedback.created_at.desc())
    if subject_id:
        query = query.where(Feedback.subject_id == subject_id)

    page_data = await paginate(db, query, page, page_size)
    return {
        "items": [feedback_detail(fb) for fb in page_data["items"]],
        **page_data["pagination"],
    }


def _own_submission(feedback: Feedback) -> dict:
    subject = feedback.subject
    return {
        "id": str(feedback.id),
        "subject": {
            "id": str(subject.id),
            "name": subject.name,
            "code": subject.code,
            "instructor": subject.instructor,
        } if subject else None,
        "average_rating": feedback.average_rating,
        "answers": feedback.answers or [],
        "comments": feedback.comments,
        "feedback_period_id": str(feedback.feedback_period_id) if feedback.feedback_period_id else None,
        "created_at": feedback.created_at,
    }


@router.get("/me")
@router.get("/my-submissions")
async def my_feedback(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Feedback submitted by the current user"""
    result = await db.execute(
        select(Feedback).where(Feedback.student_id == current_user.id).order_by(Feedback.created_at.desc())
    )
    return [_own_submission(fb) for fb in result.scalars().all()]


@router.get("/student/{student_id}")
async def student_feedback(
    student_id: str,
    subject: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    if str(current_user.id) != str(student_id) and current_user.role not in STAFF_ROLES:
        raise AuthorizationError("You can only view your own feedback")

    query = select(Feedback).where(Feedback.student_id == student_id)
    if subject:
        query = query.where(Feedback.subject_id == subject)

    result = await db.execute(query.order_by(Feedback.created_at.desc()))
    return [_own_submission(fb) for fb in result.scalars().all()]


@router.get("/stats")
async def feedback_stats(
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    total = (await db.execute(select(func.count(Feedback.id)))).scalar() or 0
    overall = (await db.execute(select(func.avg(Feedback.average_rating)))).scalar()

    result = await db.execute(
        select(
            Subject.id,
            Subject.name,
            Subject.code,
            func.count(Feedback.id),
            func.avg(Feedback.average_rating),
        )
        .join(Feedback, Feedback.subject_id == Subject.id)
        .group_by(Subject.id, Subject.name, Subject.code)
        .order_by(func.count(Feedback.id).desc())
    )
    per_subject = [
        {
            "subject_id": str(subject_id),
            "subject_name": name,
            "subject_code": code,
            "feedback_count": count,
            "average_rating": round_rating(avg),
        }
        for subject_id, name, code, count, avg in result.all()
    ]

    return {
        "total_feedbacks": total,
        "average_rating": round_rating(overall) if overall is not None else 0,
        "subjects_with_feedback": len(per_subject),
        "per_subject": per_subject,
    }


@router.get("/recent")
async def recent_feedback(
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.ADMIN, UserRole.HOD, UserRole.DEAN))
):
    result = await db.execute(select(Feedback).order_by(Feedback.created_at.desc()).limit(limit))
    return [feedback_detail(fb) for fb in result.scalars().all()]


@router.get("/summary/{subject_id}")
async def subject_summary(
    subject_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(*STAFF_ROLES))
):
    """Averages per category and per question for one subject"""
    subject = await get_subject_or_404(db, subject_id)

    result = await db.execute(select(Feedback).where(Feedback.subject_id == subject_id))
    feedbacks = result.scalars().all()

    return {
        "subject_id": str(subject.id),
        "subject_name": subject.name,
        "subject_code": subject.code,
        "instructor": subject.instructor,
        "feedback_count": len(feedbacks),
        "average_rating": round_rating(average(fb.average_rating for fb in feedbacks)) or 0,
        "categories": question_summary(fb.answers or [] for fb in feedbacks),
    }
