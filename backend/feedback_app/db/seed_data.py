"""
Database Seed Data Module

Creates or refreshes the initial administrator and, unless --admin-only is
given, a small set of demo accounts, subjects and feedback. Safe to run
repeatedly: existing emails, subject codes and (student, subject) feedback are
skipped.

Run with: python -m feedback_app.db.seed_data [--admin-only]
"""
import argparse
import asyncio
import random

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from feedback_app.core.config import settings
from feedback_app.core.database import AsyncSessionLocal, init_db, close_db
from feedback_app.core.logging_config import logger
from feedback_app.core.security import hash_if_plain, verify_password
from feedback_app.models.feedback import Feedback
from feedback_app.models.subject import Subject, STANDARD_QUESTIONS
from feedback_app.services.reporting import answer_average
from feedback_app.models.user import User, UserRole


# ==================== Sample Data Constants ====================

SAMPLE_USERS = [
    {"email": "dean@feedback.local", "name": "Dr. Srinivas Rao", "role": UserRole.DEAN, "password": "dean@123"},
    {"email": "hod.cse@feedback.local", "name": "Prof. Lakshmi Devi", "role": UserRole.HOD, "branch": "CSE",
     "department": "Engineering", "password": "hod@123"},
    {"email": "faculty1@feedback.local", "name": "Dr. Arjun Verma", "role": UserRole.FACULTY, "branch": "CSE",
     "department": "Engineering", "password": "faculty@123"},
    {"email": "faculty2@feedback.local", "name": "Prof. Meera Shah", "role": UserRole.FACULTY, "branch": "CSE",
     "department": "Engineering", "password": "faculty@123"},
    {"email": "student1@feedback.local", "name": "Rahul Sharma", "role": UserRole.STUDENT, "branch": "CSE",
     "year": 2, "roll_number": "232P4R0001", "password": "student@123"},
    {"email": "student2@feedback.local", "name": "Priya Patel", "role": UserRole.STUDENT, "branch": "CSE",
     "year": 2, "roll_number": "232P4R0002", "password": "student@123"},
    {"email": "student3@feedback.local", "name": "Amit Kumar", "role": UserRole.STUDENT, "branch": "CSE",
     "year": 3, "roll_number": "232P4R0003", "password": "student@123"},
]

SAMPLE_SUBJECTS = [
    {"name": "Data Structures", "code": "CS301", "instructor": "Dr. Arjun Verma", "semester": 3},
    {"name": "Database Management Systems", "code": "CS302", "instructor": "Prof. Meera Shah", "semester": 3},
    {"name": "Operating Systems", "code": "CS401", "instructor": "Dr. Arjun Verma", "semester": 4},
    {"name": "Computer Networks", "code": "CS501", "instructor": "Prof. Meera Shah", "semester": 5},
    {"name": "Machine Learning", "code": "CS601", "instructor": "Dr. Arjun Verma", "semester": 6},
]


async def seed_admin(db: AsyncSession) -> bool:
    """Create the initial administrator, or bring an existing one back in line with settings"""
    result = await db.execute(select(User).where(User.email == settings.INITIAL_ADMIN_EMAIL))
    admin = result.scalar_one_or_none()

    if admin:
        if not verify_password(settings.INITIAL_ADMIN_PASSWORD, admin.hashed_password):
            admin.hashed_password = hash_if_plain(settings.INITIAL_ADMIN_PASSWORD)
        admin.role = UserRole.ADMIN
        admin.is_active = True
        await db.flush()
        logger.info(f"[Seed] Updated admin {settings.INITIAL_ADMIN_EMAIL}")
        return False

    db.add(User(
        name=settings.INITIAL_ADMIN_NAME,
        email=settings.INITIAL_ADMIN_EMAIL,
        hashed_password=hash_if_plain(settings.INITIAL_ADMIN_PASSWORD),
        role=UserRole.ADMIN,
        is_active=True,
        password_reset_required=True,
    ))
    await db.flush()
    logger.info(f"[Seed] Created admin {settings.INITIAL_ADMIN_EMAIL}")
    return True


async def seed_users(db: AsyncSession) -> int:
    created = 0
    for data in SAMPLE_USERS:
        data = dict(data)
        exists = await db.execute(select(User.id).where(User.email == data["email"]))
        if exists.first():
            continue
        password = data.pop("password")
        db.add(User(**data, hashed_password=hash_if_plain(password), password_reset_required=False))
        created += 1
    await db.flush()
    return created


async def seed_subjects(db: AsyncSession) -> int:
    created = 0
    for data in SAMPLE_SUBJECTS:
        exists = await db.execute(select(Subject.id).where(Subject.code == data["code"]))
        if exists.first():
            continue
        db.add(Subject(
            **data,
            branch="CSE",
            department="Engineering",
            questions=list(STANDARD_QUESTIONS),
        ))
        created += 1
    await db.flush()
    return created


async def seed_feedback(db: AsyncSession) -> int:
    """Random ratings from each sample student for the subjects of their year"""
    students = (await db.execute(
        select(User).where(User.email.in_([u["email"] for u in SAMPLE_USERS if u["role"] == UserRole.STUDENT]))
    )).scalars().all()
    subjects = (await db.execute(
        select(Subject).where(Subject.code.in_([s["code"] for s in SAMPLE_SUBJECTS]))
    )).scalars().all()

    created = 0
    for student in students:
        for subject in subjects:
            if subject.branch != student.branch or subject.year != student.year:
                continue
            exists = await db.execute(
                select(Feedback.id).where(Feedback.student_id == student.id, Feedback.subject_id == subject.id)
            )
            if exists.first():
                continue

            # Seeded per pair so reruns and fresh databases get the same ratings
            rng = random.Random(f"{student.email}:{subject.code}")
            answers = [
                {"question": question, "answer": rng.randint(3, 5)}
                for question in subject.questions or STANDARD_QUESTIONS
            ]
            answers.append({"question": "Any suggestions for improvement?", "comment": "More practical examples"})
            db.add(Feedback(
                student_id=student.id,
                subject_id=subject.id,
                feedback_type="midterm",
                term=1,
                academic_year=settings.DEFAULT_ACADEMIC_YEAR,
                answers=answers,
                average_rating=answer_average(answers),
            ))
            created += 1
    await db.flush()
    return created


async def seed(admin_only: bool = False):
    await init_db()
    async with AsyncSessionLocal() as db:
        try:
            await seed_admin(db)
            if not admin_only:
                users = await seed_users(db)
                subjects = await seed_subjects(db)
                feedbacks = await seed_feedback(db)
                logger.info(f"[Seed] Created {users} users, {subjects} subjects and {feedbacks} feedback entries")
            await db.commit()
        except Exception:
            await db.rollback()
            raise
    await close_db()


def main():
    parser = argparse.ArgumentParser(description="Seed the feedback database")
    parser.add_argument("--admin-only", action="store_true", help="only create the initial administrator")
    args = parser.parse_args()
    asyncio.run(seed(admin_only=args.admin_only))


if __name__ == "__main__":
    main()
