from sqlalchemy import Column, String, Integer, DateTime, JSON
from datetime import datetime
import math
from typing import Optional

from feedback_app.core.database import Base
from feedback_app.core.types import GUID, generate_uuid


STANDARD_QUESTIONS = [
    "How would you rate the teaching methodology for this subject?",
    "How effective were the lectures in explaining complex concepts?",
    "How well did the instructor respond to student questions?",
    "How well-organized was the course material?",
    "How accessible was the instructor outside of class hours?",
    "How fair were the assignments and exams for this subject?",
    "How useful were the practical exercises or lab sessions?",
    "How relevant was the course content to real-world applications?",
    "How effectively did the instructor use examples to clarify concepts?",
    "How would you rate the overall quality of this course?",
]


def year_for_semester(semester) -> Optional[int]:
    """Academic year a semester falls in (semesters 1-2 -> year 1, ...)"""
    if not semester:
        return None
    return math.ceil(semester / 2)


class Subject(Base):
    """A course taught by an instructor that students give feedback on"""
    __tablename__ = "subjects"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    code = Column(String(50), nullable=False, index=True)
    instructor = Column(String(255), nullable=True, index=True)
    department = Column(String(255), nullable=True)
    semester = Column(Integer, nullable=True)  # 1-8
    branch = Column(String(100), nullable=True, index=True)
    questions = Column(JSON, default=list, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def year(self):
        return year_for_semester(self.semester)

    def __repr__(self):
        return f"<Subject {self.code} {self.name}>"
