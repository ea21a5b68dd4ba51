"""Administrator dashboard: institution totals and analytics"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from datetime import datetime, timedelta

from feedback_app.core.database import get_db
from feedback_app.models.feedback import Feedback
from feedback_app.models.subject import Subject
from feedback_app.models.user import User, UserRole
from feedback_app.modules.auth.dependencies import get_current_admin
from feedback_app.services.feedback_queries import count_feedback, count_subjects, count_users, load_feedback_rows
from feedback_app.services import reporting

router = APIRouter()

TREND_WINDOW_DAYS = 183  # six months


@router.get("/dashboard/stats")
async def dashboard_stats(
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    total_students = await count_users(db, UserRole.STUDENT)
    total_faculty = await count_users(db, UserRole.FACULTY)
    total_subjects = await count_subjects(db)
    total_feedbacks = await count_feedback(db)

    overall = (await db.execute(select(func.avg(Feedback.average_rating)))).scalar()

    return {
        "total_students": total_students,
        "total_faculty": total_faculty,
        "total_subjects": total_subjects,
        "total_feedbacks": total_feedbacks,
        "average_rating": reporting.round_rating(overall) if overall is not None else 0,
        "feedback_completion": reporting.completion_rate(total_feedbacks, total_students, total_subjects),
    }


@router.get("/analytics")
async def analytics(
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    subjects = (await db.execute(select(Subject))).scalars().all()
    rows = await load_feedback_rows(db)

    department_stats = reporting.subject_rollup(subjects, rows, lambda s: s.department, "department")
    for entry in department_stats:
        entry["satisfaction_rate"] = reporting.satisfaction_rate(entry["average_rating"])

    semester_stats = sorted(
        reporting.subject_rollup(subjects, rows, lambda s: s.semester, "semester"),
        key=lambda entry: (entry["semester"] is None, entry["semester"] or 0),
    )

    since = datetime.utcnow() - timedelta(days=TREND_WINDOW_DAYS)

    return {
        "department_wise_stats": department_stats,
        "semester_wise_stats": semester_stats,
        "instructor_performance": reporting.instructor_performance(rows),
        "trend_data": reporting.monthly_trends(rows, since=since),
    }
