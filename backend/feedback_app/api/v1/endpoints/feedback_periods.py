from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, update as sql_update
from datetime import datetime
from typing import List, Optional
import math

from feedback_app.core.config import settings
from feedback_app.core.database import get_db
from feedback_app.core.exceptions import (
    FeedbackPeriodNotFoundError,
    PeriodConflictError,
    SubjectNotFoundError,
    ValidationError,
)
from feedback_app.core.logging_config import logger
from feedback_app.models.feedback import Feedback
from feedback_app.models.feedback_period import FeedbackPeriod, FeedbackType, PeriodStatus
from feedback_app.models.subject import Subject
from feedback_app.models.user import User
from feedback_app.modules.auth.dependencies import get_current_admin, get_current_student
from feedback_app.schemas.feedback_period import FeedbackPeriodCreate, FeedbackPeriodUpdate, PeriodToggle
from feedback_app.api.v1.endpoints.subjects import subjects_for_student_query

router = APIRouter()

DEFAULT_INSTRUCTIONS = "Please provide your honest feedback to help us improve."

REQUIRED_PERIOD_FIELDS = ("title", "feedback_type", "academic_year", "term", "start_date", "end_date")

TOGGLE_ACTIONS = {
    # action: (new status or None to keep, is_active, past tense)
    "activate": (PeriodStatus.ACTIVE, True, "activated"),
    "deactivate": (None, False, "deactivated"),
    "complete": (PeriodStatus.COMPLETED, False, "completed"),
    "cancel": (PeriodStatus.CANCELLED, False, "cancelled"),
}


def _subject_brief(subject: Subject) -> dict:
    return {
        "id": str(subject.id),
        "name": subject.name,
        "code": subject.code,
        "instructor": subject.instructor,
        "branch": subject.branch,
        "semester": subject.semester,
        "year": subject.year,
    }


def period_to_dict(period: FeedbackPeriod) -> dict:
    creator = period.created_by
    return {
        "id": str(period.id),
        "title": period.title,
        "description": period.description,
        "feedback_type": period.feedback_type.value,
        "academic_year": period.academic_year,
        "term": period.term,
        "start_date": period.start_date,
        "end_date": period.end_date,
        "is_active": period.is_active,
        "status": period.status.value,
        "instructions": period.instructions,
        "branches": period.branches or [],
        "years": period.years or [],
        "subjects": [_subject_brief(s) for s in period.subjects],
        "completed_feedbacks": period.completed_feedbacks,
        "created_by": {"id": str(creator.id), "name": creator.name, "email": creator.email} if creator else None,
        "created_at": period.created_at,
        "updated_at": period.updated_at,
    }


async def _get_period(db: AsyncSession, period_id: str) -> FeedbackPeriod:
    result = await db.execute(
        select(FeedbackPeriod)
        .where(FeedbackPeriod.id == period_id)
        .execution_options(populate_existing=True)
    )
    period = result.scalar_one_or_none()
    if not period:
        raise FeedbackPeriodNotFoundError(period_id)
    return period


async def _load_subjects(db: AsyncSession, subject_ids: List[str]) -> List[Subject]:
    if not subject_ids:
        return []
    result = await db.execute(select(Subject).where(Subject.id.in_(subject_ids)))
    subjects = result.scalars().all()
    found = {str(s.id) for s in subjects}
    for subject_id in subject_ids:
        if subject_id not in found:
            raise SubjectNotFoundError(subject_id)
    return list(subjects)


async def _find_active_conflict(
    db: AsyncSession,
    feedback_type: FeedbackType,
    term: int,
    academic_year: str,
    exclude_id: Optional[str] = None,
) -> Optional[FeedbackPeriod]:
    """Only one active period per feedback type, term and academic year"""
    query = select(FeedbackPeriod).where(
        FeedbackPeriod.feedback_type == feedback_type,
        FeedbackPeriod.term == term,
        FeedbackPeriod.academic_year == academic_year,
        FeedbackPeriod.is_active.is_(True),
        FeedbackPeriod.status == PeriodStatus.ACTIVE,
    )
    if exclude_id:
        query = query.where(FeedbackPeriod.id != exclude_id)
    result = await db.execute(query.limit(1))
    return result.scalar_one_or_none()


def _conflict_summary(period: FeedbackPeriod) -> dict:
    return {
        "id": str(period.id),
        "title": period.title,
        "start_date": period.start_date.isoformat(),
        "end_date": period.end_date.isoformat(),
    }


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_period(
    payload: FeedbackPeriodCreate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    if payload.start_date >= payload.end_date:
        raise ValidationError("End date must be after start date", field="end_date")

    academic_year = payload.academic_year or settings.DEFAULT_ACADEMIC_YEAR

    existing = await _find_active_conflict(db, payload.feedback_type, payload.term, academic_year)
    if existing:
        raise PeriodConflictError(
            f"An active {payload.feedback_type.value} feedback period already exists for term {payload.term}",
            _conflict_summary(existing)
        )

    subjects = await _load_subjects(db, payload.subjects)
    now = datetime.utcnow()

    period = FeedbackPeriod(
        title=payload.title,
        description=payload.description,
        feedback_type=payload.feedback_type,
        academic_year=academic_year,
        term=payload.term,
        start_date=payload.start_date,
        end_date=payload.end_date,
        branches=[b.value for b in payload.branches],
        years=list(payload.years),
        instructions=payload.instructions or DEFAULT_INSTRUCTIONS,
        created_by_id=admin.id,
        is_active=True,
        status=PeriodStatus.ACTIVE if payload.start_date <= now else PeriodStatus.DRAFT,
    )
    period.subjects = subjects
    db.add(period)
    await db.commit()
    period = await _get_period(db, period.id)

    logger.info(f"[Periods] {admin.email} created '{period.title}' ({period.status.value})")
    return {"message": "Feedback period created successfully", "feedback_period": period_to_dict(period)}


@router.get("/admin")
async def list_periods(
    status_filter: Optional[PeriodStatus] = Query(None, alias="status"),
    feedback_type: Optional[FeedbackType] = Query(None),
    term: Optional[int] = Query(None, ge=1, le=4),
    academic_year: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    query = select(FeedbackPeriod)
    if status_filter:
        query = query.where(FeedbackPeriod.status == status_filter)
    if feedback_type:
        query = query.where(FeedbackPeriod.feedback_type == feedback_type)
    if term:
        query = query.where(FeedbackPeriod.term == term)
    if academic_year:
        query = query.where(FeedbackPeriod.academic_year == academic_year)

    result = await db.execute(query.order_by(FeedbackPeriod.created_at.desc()))
    return [period_to_dict(p) for p in result.scalars().all()]


@router.get("/active")
async def active_periods(
    db: AsyncSession = Depends(get_db),
    student: User = Depends(get_current_student)
):
    """Open periods for the current student, each with the subjects it covers for them"""
    now = datetime.utcnow()
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

    branch_subjects = None
    periods = []
    for period in result.scalars().all():
        if not period.applies_to(student.branch, student.year):
            continue

        if period.subjects:
            applicable = [
                s for s in period.subjects
                if s.branch == student.branch and (not student.year or s.year == student.year)
            ]
        else:
            if branch_subjects is None:
                branch_subjects = (await db.execute(subjects_for_student_query(student))).scalars().all()
            applicable = list(branch_subjects)

        if not applicable:
            continue

        data = period_to_dict(period)
        data["applicable_subjects"] = [_subject_brief(s) for s in applicable]
        periods.append(data)

    return periods


@router.put("/{period_id}")
async def update_period(
    period_id: str,
    payload: FeedbackPeriodUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    period = await _get_period(db, period_id)
    data = payload.model_dump(exclude_unset=True)

    if period.status == PeriodStatus.ACTIVE:
        changes_type = "feedback_type" in data and data["feedback_type"] != period.feedback_type
        changes_term = "term" in data and data["term"] != period.term
        if changes_type or changes_term:
            raise ValidationError("Cannot change feedback type or term for active periods")

    start = data.get("start_date") or period.start_date
    end = data.get("end_date") or period.end_date
    if start >= end:
        raise ValidationError("End date must be after start date", field="end_date")

    if "subjects" in data:
        period.subjects = await _load_subjects(db, data.pop("subjects") or [])
    if "branches" in data:
        data["branches"] = [b.value for b in (data["branches"] or [])]
    if "years" in data:
        data["years"] = list(data["years"] or [])

    for field, value in data.items():
        if value is None and field in REQUIRED_PERIOD_FIELDS:
            continue
        setattr(period, field, value)

    await db.commit()
    period = await _get_period(db, period_id)
    return {"message": "Feedback period updated successfully", "feedback_period": period_to_dict(period)}


@router.patch("/{period_id}/toggle")
async def toggle_period(
    period_id: str,
    payload: PeriodToggle,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    if payload.action not in TOGGLE_ACTIONS:
        raise ValidationError(
            f"Invalid action '{payload.action}'. Use one of: {', '.join(TOGGLE_ACTIONS)}",
            field="action"
        )

    period = await _get_period(db, period_id)

    if payload.action == "activate":
        conflicting = await _find_active_conflict(
            db, period.feedback_type, period.term, period.academic_year, exclude_id=period_id
        )
        if conflicting:
            raise PeriodConflictError(
                f"Cannot activate: another {period.feedback_type.value} feedback period "
                f"is already active for this term",
                _conflict_summary(conflicting)
            )

    new_status, is_active, done = TOGGLE_ACTIONS[payload.action]
    if new_status is not None:
        period.status = new_status
    period.is_active = is_active

    await db.commit()
    period = await _get_period(db, period_id)

    logger.info(f"[Periods] {admin.email} {done} '{period.title}'")
    return {
        "message": f"Feedback period {done} successfully",
        "feedback_period": period_to_dict(period),
    }


async def _period_feedback_count(db: AsyncSession, period_id: str) -> int:
    result = await db.execute(
        select(func.count(Feedback.id)).where(Feedback.feedback_period_id == period_id)
    )
    return result.scalar() or 0


@router.delete("/{period_id}")
async def delete_period(
    period_id: str,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    period = await _get_period(db, period_id)

    feedback_count = await _period_feedback_count(db, period_id)
    if feedback_count > 0 and period.status != PeriodStatus.DRAFT:
        raise ValidationError(
            "Cannot delete feedback period with submitted feedbacks. Complete or cancel it instead."
        )

    if feedback_count:
        await db.execute(
            sql_update(Feedback)
            .where(Feedback.feedback_period_id == period_id)
            .values(feedback_period_id=None)
        )
    await db.delete(period)
    await db.commit()

    logger.info(f"[Periods] {admin.email} deleted '{period.title}'")
    return {"message": "Feedback period deleted successfully"}


@router.get("/{period_id}/stats")
async def period_stats(
    period_id: str,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    period = await _get_period(db, period_id)

    total = await _period_feedback_count(db, period_id)

    counts_result = await db.execute(
        select(Feedback.subject_id, func.count(Feedback.id))
        .where(Feedback.feedback_period_id == period_id)
        .group_by(Feedback.subject_id)
    )
    counts = {str(subject_id): count for subject_id, count in counts_result.all()}

    subject_stats = [
        {
            "subject": {
                "id": str(subject.id),
                "name": subject.name,
                "code": subject.code,
                "instructor": subject.instructor,
            },
            "feedback_count": counts.get(str(subject.id), 0),
        }
        for subject in period.subjects
    ]

    days_remaining = 0
    if period.status == PeriodStatus.ACTIVE:
        seconds_left = (period.end_date - datetime.utcnow()).total_seconds()
        days_remaining = math.ceil(seconds_left / 86400)

    period.completed_feedbacks = total
    await db.commit()

    return {
        "period": {
            "id": str(period.id),
            "title": period.title,
            "feedback_type": period.feedback_type.value,
            "term": period.term,
            "status": period.status.value,
        },
        "statistics": {
            "total_feedbacks": total,
            "subject_stats": subject_stats,
            "start_date": period.start_date,
            "end_date": period.end_date,
            "days_remaining": days_remaining,
        },
    }
