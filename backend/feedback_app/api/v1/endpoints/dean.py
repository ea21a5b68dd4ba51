"""Dean dashboard: institution-wide view across every branch"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_
from datetime import datetime
from typing import Literal, Optional

from feedback_app.core.database import get_db
from feedback_app.core.exceptions import ValidationError
from feedback_app.models.feedback import Feedback
from feedback_app.models.subject import Subject
from feedback_app.models.user import User, UserRole
from feedback_app.modules.auth.dependencies import get_current_dean
from feedback_app.schemas.feedback_period import to_naive_utc
from feedback_app.schemas.subject import SubjectResponse
from feedback_app.schemas.user import UserResponse
from feedback_app.services.feedback_queries import (
    count_feedback,
    count_subjects,
    count_users,
    feedback_detail,
    load_feedback_rows,
)
from feedback_app.services import reporting
from feedback_app.utils.pagination import paginate

router = APIRouter()

ALL = "all"


def _filter_value(value: Optional[str]) -> Optional[str]:
    """'all' (or nothing) means no filter"""
    if value is None or value == "" or value == ALL:
        return None
    return value


def _parse_role(value: Optional[str]) -> Optional[UserRole]:
    value = _filter_value(value)
    if value is None:
        return None
    try:
        return UserRole(value)
    except ValueError:
        raise ValidationError(f"Unknown role '{value}'", field="role")


def _parse_semester(value: Optional[str]) -> Optional[int]:
    value = _filter_value(value)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        raise ValidationError(f"Invalid semester '{value}'", field="semester")


async def _counts_by_branch(db: AsyncSession, role: Optional[UserRole] = None) -> dict:
    if role is None:
        query = select(Subject.branch, func.count(Subject.id)).group_by(Subject.branch)
    else:
        query = select(User.branch, func.count(User.id)).where(User.role == role).group_by(User.branch)
    result = await db.execute(query)
    return {branch: count for branch, count in result.all() if branch}


@router.get("/dashboard-stats")
async def dashboard_stats(
    db: AsyncSession = Depends(get_db),
    dean: User = Depends(get_current_dean)
):
    rows = await load_feedback_rows(db)

    recent = (await db.execute(
        select(Feedback).order_by(Feedback.created_at.desc()).limit(10)
    )).scalars().all()

    students = await _counts_by_branch(db, UserRole.STUDENT)
    faculty = await _counts_by_branch(db, UserRole.FACULTY)
    subjects = await _counts_by_branch(db)
    branch_stats = [
        {
            "branch": branch,
            "students_count": students.get(branch, 0),
            "faculty_count": faculty.get(branch, 0),
            "subjects_count": subjects.get(branch, 0),
        }
        for branch in sorted(students)
    ]

    return {
        "stats": {
            "students_count": await count_users(db, UserRole.STUDENT),
            "faculty_count": await count_users(db, UserRole.FACULTY),
            "hod_count": await count_users(db, UserRole.HOD),
            "subjects_count": await count_subjects(db),
            "total_feedback": await count_feedback(db),
        },
        "recent_feedback": [feedback_detail(fb) for fb in recent],
        "branch_stats": branch_stats,
        "branch_ratings": [g.to_dict() for g in reporting.branch_ratings(rows)],
        "top_subjects": [g.to_dict() for g in reporting.top_subjects(rows, min_feedbacks=3, limit=10)],
    }


@router.get("/branches")
async def branches(
    db: AsyncSession = Depends(get_db),
    dean: User = Depends(get_current_dean)
):
    """Per-branch head counts for every branch that has users"""
    result = await db.execute(select(User.branch).where(User.branch.isnot(None)).distinct())
    branch_names = sorted(b for b in result.scalars().all() if b)

    students = await _counts_by_branch(db, UserRole.STUDENT)
    faculty = await _counts_by_branch(db, UserRole.FACULTY)
    hods = await _counts_by_branch(db, UserRole.HOD)
    subjects = await _counts_by_branch(db)

    feedback_result = await db.execute(
        select(User.branch, func.count(Feedback.id))
        .join(User, Feedback.student_id == User.id)
        .group_by(User.branch)
    )
    feedback = {branch: count for branch, count in feedback_result.all()}

    return [
        {
            "branch": branch,
            "students_count": students.get(branch, 0),
            "faculty_count": faculty.get(branch, 0),
            "hod_count": hods.get(branch, 0),
            "subjects_count": subjects.get(branch, 0),
            "feedback_count": feedback.get(branch, 0),
        }
        for branch in branch_names
    ]


@router.get("/users")
async def users(
    role: Optional[str] = Query(None),
    branch: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    dean: User = Depends(get_current_dean)
):
    query = select(User)
    role = _parse_role(role)
    if role:
        query = query.where(User.role == role)
    branch = _filter_value(branch)
    if branch:
        query = query.where(User.branch == branch)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(or_(
            User.name.ilike(pattern),
            User.email.ilike(pattern),
            User.roll_number.ilike(pattern),
        ))

    page_data = await paginate(db, query.order_by(User.role, User.name), page, limit)
    return {
        "users": [UserResponse.model_validate(u).model_dump() for u in page_data["items"]],
        "pagination": page_data["pagination"],
    }


@router.get("/subjects")
async def subjects(
    branch: Optional[str] = Query(None),
    semester: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    dean: User = Depends(get_current_dean)
):
    query = select(Subject)
    branch = _filter_value(branch)
    if branch:
        query = query.where(Subject.branch == branch)
    semester = _parse_semester(semester)
    if semester:
        query = query.where(Subject.semester == semester)

    result = await db.execute(query.order_by(Subject.branch, Subject.semester, Subject.name))
    return [SubjectResponse.model_validate(s).model_dump() for s in result.scalars().all()]


@router.get("/reports")
async def reports(
    branch: Optional[str] = Query(None),
    subject: Optional[str] = Query(None),
    semester: Optional[str] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    group_by: Literal["branch", "subject", "instructor"] = Query("subject"),
    db: AsyncSession = Depends(get_db),
    dean: User = Depends(get_current_dean)
):
    """Feedback grouped by branch, subject or instructor with min/max/average"""
    rows = await load_feedback_rows(
        db,
        student_branch=_filter_value(branch),
        subject_id=_filter_value(subject),
        semester=_parse_semester(semester),
        start_date=to_naive_utc(start_date),
        end_date=to_naive_utc(end_date),
    )
    return [g.to_dict() for g in reporting.report_groups(rows, group_by)]


@router.get("/feedback/{subject_id}")
async def subject_feedback(
    subject_id: str,
    db: AsyncSession = Depends(get_db),
    dean: User = Depends(get_current_dean)
):
    result = await db.execute(
        select(Feedback).where(Feedback.subject_id == subject_id).order_by(Feedback.created_at.desc())
    )
    return [feedback_detail(fb) for fb in result.scalars().all()]


@router.get("/analytics")
async def analytics(
    db: AsyncSession = Depends(get_db),
    dean: User = Depends(get_current_dean)
):
    rows = await load_feedback_rows(db)
    return {
        "feedback_trends": reporting.monthly_trends(rows),
        "rating_distribution": reporting.rating_distribution(rows),
        "instructor_performance": reporting.instructor_performance(rows, min_feedbacks=3),
    }
