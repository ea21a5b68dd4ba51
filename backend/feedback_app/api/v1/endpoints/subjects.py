from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete
from typing import List, Optional

from feedback_app.core.database import get_db
from feedback_app.core.exceptions import SubjectNotFoundError
from feedback_app.core.logging_config import logger
from feedback_app.models.feedback import Feedback
from feedback_app.models.feedback_period import feedback_period_subjects
from feedback_app.models.subject import Subject, STANDARD_QUESTIONS
from feedback_app.models.user import User
from feedback_app.modules.auth.dependencies import get_current_admin, get_current_student, get_current_user
from feedback_app.schemas.subject import SubjectCreate, SubjectResponse, SubjectUpdate

router = APIRouter()

REQUIRED_SUBJECT_FIELDS = ("name", "code")


def subjects_for_student_query(student: User):
    """Subjects in the student's branch, narrowed to their year when known"""
    query = select(Subject).where(Subject.branch == student.branch)
    if student.year:
        # ceil(semester / 2) == year  <=>  semester in (2y - 1, 2y)
        query = query.where(Subject.semester.in_([2 * student.year - 1, 2 * student.year]))
    return query.order_by(Subject.semester, Subject.name)


async def get_subject_or_404(db: AsyncSession, subject_id: str) -> Subject:
    result = await db.execute(select(Subject).where(Subject.id == subject_id))
    subject = result.scalar_one_or_none()
    if not subject:
        raise SubjectNotFoundError(subject_id)
    return subject


@router.get("", response_model=List[SubjectResponse])
async def list_subjects(
    branch: Optional[str] = Query(None),
    semester: Optional[int] = Query(None, ge=1, le=8),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    query = select(Subject)
    if branch:
        query = query.where(Subject.branch == branch)
    if semester:
        query = query.where(Subject.semester == semester)

    result = await db.execute(query.order_by(Subject.branch, Subject.semester, Subject.name))
    return result.scalars().all()


@router.post("", response_model=SubjectResponse, status_code=status.HTTP_201_CREATED)
async def create_subject(
    subject_data: SubjectCreate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    data = subject_data.model_dump()
    if data.get("branch") is not None:
        data["branch"] = data["branch"].value
    if not data.get("questions"):
        data["questions"] = list(STANDARD_QUESTIONS)

    subject = Subject(**data)
    db.add(subject)
    await db.commit()
    await db.refresh(subject)

    logger.info(f"[Subjects] {admin.email} created {subject.code} ({subject.name})")
    return subject


@router.get("/student", response_model=List[SubjectResponse])
async def my_subjects(
    db: AsyncSession = Depends(get_db),
    student: User = Depends(get_current_student)
):
    """Subjects the current student is expected to review"""
    if not student.branch:
        return []
    result = await db.execute(subjects_for_student_query(student))
    return result.scalars().all()


@router.get("/{subject_id}", response_model=SubjectResponse)
async def get_subject(
    subject_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await get_subject_or_404(db, subject_id)


@router.put("/{subject_id}", response_model=SubjectResponse)
async def update_subject(
    subject_id: str,
    update: SubjectUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    subject = await get_subject_or_404(db, subject_id)

    data = update.model_dump(exclude_unset=True)
    if data.get("branch") is not None:
        data["branch"] = data["branch"].value
    if "questions" in data and not data["questions"]:
        data["questions"] = list(STANDARD_QUESTIONS)

    for field, value in data.items():
        if value is None and field in REQUIRED_SUBJECT_FIELDS:
            continue
        setattr(subject, field, value)

    await db.commit()
    await db.refresh(subject)
    return subject


@router.delete("/{subject_id}")
async def delete_subject(
    subject_id: str,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    """Delete a subject and every feedback submitted for it"""
    subject = await get_subject_or_404(db, subject_id)

    removed = await db.execute(delete(Feedback).where(Feedback.subject_id == subject_id))
    await db.execute(
        delete(feedback_period_subjects).where(feedback_period_subjects.c.subject_id == subject_id)
    )
    await db.delete(subject)
    await db.commit()

    logger.info(f"[Subjects] {admin.email} deleted {subject.code} and {removed.rowcount} feedback")
    return {"message": "Subject deleted", "deleted_feedback": removed.rowcount}
