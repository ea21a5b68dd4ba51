"""
HOD dashboard. Everything here is scoped to the HOD's own branch: students
and faculty by their branch, subjects by the subject branch, feedback by the
submitting student's branch.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_
from datetime import datetime
from typing import Optional

from feedback_app.core.database import get_db
from feedback_app.core.exceptions import ValidationError
from feedback_app.models.feedback import Feedback
from feedback_app.models.subject import Subject
from feedback_app.models.user import User, UserRole
from feedback_app.modules.auth.dependencies import get_current_hod
from feedback_app.schemas.feedback_period import to_naive_utc
from feedback_app.schemas.subject import SubjectResponse
from feedback_app.schemas.user import UserResponse
from feedback_app.services.feedback_queries import (
    count_feedback,
    count_subjects,
    count_users,
    feedback_detail,
    load_feedback_rows,
    submitted_pairs,
)
from feedback_app.services import reporting
from feedback_app.utils.pagination import paginate

router = APIRouter()


def _branch_of(hod: User) -> str:
    if not hod.branch:
        raise ValidationError("HOD account has no branch assigned", field="branch")
    return hod.branch


async def _branch_feedback(db: AsyncSession, branch: str, subject_id: Optional[str] = None, limit: Optional[int] = None):
    query = (
        select(Feedback)
        .join(User, Feedback.student_id == User.id)
        .where(User.branch == branch)
        .order_by(Feedback.created_at.desc())
    )
    if subject_id:
        query = query.where(Feedback.subject_id == subject_id)
    if limit:
        query = query.limit(limit)
    result = await db.execute(query)
    return result.scalars().all()


@router.get("/dashboard-stats")
async def dashboard_stats(
    db: AsyncSession = Depends(get_db),
    hod: User = Depends(get_current_hod)
):
    branch = _branch_of(hod)
    rows = await load_feedback_rows(db, student_branch=branch)
    recent = await _branch_feedback(db, branch, limit=5)

    return {
        "stats": {
            "students_count": await count_users(db, UserRole.STUDENT, branch),
            "faculty_count": await count_users(db, UserRole.FACULTY, branch),
            "subjects_count": await count_subjects(db, branch),
            "total_feedback": await count_feedback(db, student_branch=branch),
        },
        "recent_feedback": [feedback_detail(fb) for fb in recent],
        "subject_ratings": [g.to_dict() for g in reporting.subject_ratings(rows)],
        "branch": branch,
    }


@router.get("/students")
async def students(
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    hod: User = Depends(get_current_hod)
):
    branch = _branch_of(hod)
    query = select(User).where(User.role == UserRole.STUDENT, User.branch == branch)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(or_(
            User.name.ilike(pattern),
            User.email.ilike(pattern),
            User.roll_number.ilike(pattern),
        ))

    page_data = await paginate(db, query.order_by(User.name), page, limit)
    return {
        "students": [UserResponse.model_validate(u).model_dump() for u in page_data["items"]],
        "pagination": page_data["pagination"],
    }


@router.get("/faculty")
async def faculty(
    db: AsyncSession = Depends(get_db),
    hod: User = Depends(get_current_hod)
):
    branch = _branch_of(hod)
    result = await db.execute(
        select(User).where(User.role == UserRole.FACULTY, User.branch == branch).order_by(User.name)
    )
    return [UserResponse.model_validate(u).model_dump() for u in result.scalars().all()]


@router.get("/subjects")
async def subjects(
    db: AsyncSession = Depends(get_db),
    hod: User = Depends(get_current_hod)
):
    branch = _branch_of(hod)
    result = await db.execute(
        select(Subject).where(Subject.branch == branch).order_by(Subject.semester, Subject.name)
    )
    return [SubjectResponse.model_validate(s).model_dump() for s in result.scalars().all()]


@router.get("/reports")
async def reports(
    subject: Optional[str] = Query(None),
    semester: Optional[int] = Query(None, ge=1, le=8),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    db: AsyncSession = Depends(get_db),
    hod: User = Depends(get_current_hod)
):
    """Per-subject report for feedback from the branch's students, by subject name"""
    branch = _branch_of(hod)
    rows = await load_feedback_rows(
        db,
        student_branch=branch,
        subject_id=subject,
        semester=semester,
        start_date=to_naive_utc(start_date),
        end_date=to_naive_utc(end_date),
    )
    groups = sorted(reporting.subject_ratings(rows), key=lambda g: (g.labels.get("subject_name") or "").lower())
    return [g.to_dict() for g in groups]


@router.get("/feedback/{subject_id}")
async def subject_feedback(
    subject_id: str,
    db: AsyncSession = Depends(get_db),
    hod: User = Depends(get_current_hod)
):
    branch = _branch_of(hod)
    return [feedback_detail(fb) for fb in await _branch_feedback(db, branch, subject_id=subject_id)]


@router.get("/feedback-status")
async def feedback_status(
    db: AsyncSession = Depends(get_db),
    hod: User = Depends(get_current_hod)
):
    """Which eligible students of the branch have reviewed each branch subject"""
    branch = _branch_of(hod)

    subject_list = (await db.execute(
        select(Subject).where(Subject.branch == branch).order_by(Subject.semester, Subject.name)
    )).scalars().all()
    student_list = (await db.execute(
        select(User).where(User.role == UserRole.STUDENT, User.branch == branch).order_by(User.name)
    )).scalars().all()

    submitted = await submitted_pairs(db, [str(s.id) for s in subject_list])
    return {
        "branch": branch,
        "subjects": reporting.feedback_status_matrix(student_list, subject_list, submitted),
    }
