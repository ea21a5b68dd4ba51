"""Database side of reporting: load feedback joined with student and subject"""
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from feedback_app.models.feedback import Feedback
from feedback_app.models.subject import Subject
from feedback_app.models.user import User, UserRole
from feedback_app.services.reporting import FeedbackRow


async def load_feedback_rows(
    db: AsyncSession,
    *,
    student_branch: Optional[str] = None,
    subject_branch: Optional[str] = None,
    subject_id: Optional[str] = None,
    semester: Optional[int] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    since: Optional[datetime] = None,
    feedback_period_id: Optional[str] = None,
) -> List[FeedbackRow]:
    query = (
        select(Feedback, User, Subject)
        .join(User, Feedback.student_id == User.id)
        .join(Subject, Feedback.subject_id == Subject.id)
    )

    if student_branch:
        query = query.where(User.branch == student_branch)
    if subject_branch:
        query = query.where(Subject.branch == subject_branch)
    if subject_id:
        query = query.where(Feedback.subject_id == subject_id)
    if semester:
        query = query.where(Subject.semester == semester)
    if start_date:
        query = query.where(Feedback.created_at >= start_date)
    if end_date:
        query = query.where(Feedback.created_at <= end_date)
    if since:
        query = query.where(Feedback.created_at >= since)
    if feedback_period_id:
        query = query.where(Feedback.feedback_period_id == feedback_period_id)

    result = await db.execute(query.order_by(Feedback.created_at.desc()))
    return [FeedbackRow.from_models(fb, student, subject) for fb, student, subject in result.all()]


async def count_users(db: AsyncSession, role: UserRole, branch: Optional[str] = None) -> int:
    query = select(func.count(User.id)).where(User.role == role)
    if branch:
        query = query.where(User.branch == branch)
    return (await db.execute(query)).scalar() or 0


async def count_subjects(db: AsyncSession, branch: Optional[str] = None) -> int:
    query = select(func.count(Subject.id))
    if branch:
        query = query.where(Subject.branch == branch)
    return (await db.execute(query)).scalar() or 0


async def count_feedback(db: AsyncSession, student_branch: Optional[str] = None) -> int:
    query = select(func.count(Feedback.id))
    if student_branch:
        query = query.join(User, Feedback.student_id == User.id).where(User.branch == student_branch)
    return (await db.execute(query)).scalar() or 0


async def submitted_pairs(db: AsyncSession, subject_ids: List[str]) -> Dict[Tuple[str, str], datetime]:
    """(student_id, subject_id) -> earliest submission time for the given subjects"""
    if not subject_ids:
        return {}
    result = await db.execute(
        select(Feedback.student_id, Feedback.subject_id, func.min(Feedback.created_at))
        .where(Feedback.subject_id.in_(subject_ids))
        .group_by(Feedback.student_id, Feedback.subject_id)
    )
    return {(str(student), str(subject)): created for student, subject, created in result.all()}


def feedback_detail(feedback: Feedback, student: Optional[User] = None, subject: Optional[Subject] = None) -> dict:
    """Feedback with the student and subject fields the dashboards show"""
    student = student or feedback.student
    subject = subject or feedback.subject
    return {
        "id": str(feedback.id),
        "average_rating": feedback.average_rating,
        "answers": feedback.answers or [],
        "comments": feedback.comments,
        "feedback_type": feedback.feedback_type,
        "term": feedback.term,
        "academic_year": feedback.academic_year,
        "feedback_period_id": str(feedback.feedback_period_id) if feedback.feedback_period_id else None,
        "created_at": feedback.created_at,
        "student": {
            "id": str(student.id),
            "name": student.name,
            "roll_number": student.roll_number,
            "branch": student.branch,
        } if student else None,
        "subject": {
            "id": str(subject.id),
            "name": subject.name,
            "code": subject.code,
            "instructor": subject.instructor,
            "branch": subject.branch,
        } if subject else None,
    }
