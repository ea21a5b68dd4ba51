from sqlalchemy import Column, String, Integer, Float, DateTime, Text, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime

from feedback_app.core.database import Base
from feedback_app.core.types import GUID, generate_uuid


class Feedback(Base):
    """
    One student's ratings for one subject.

    answers holds a list of {"question", "answer", "category"?, "comment"?}
    where answer is a 1-5 rating. average_rating is the mean of the numeric
    answers and is always computed server side.
    """
    __tablename__ = "feedback"
    __table_args__ = (
        UniqueConstraint("student_id", "subject_id", "feedback_period_id", name="uq_feedback_student_subject_period"),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    student_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    subject_id = Column(GUID, ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False, index=True)
    feedback_period_id = Column(
        GUID, ForeignKey("feedback_periods.id", ondelete="SET NULL"), nullable=True, index=True
    )

    feedback_type = Column(String(20), nullable=True)  # midterm, endterm
    term = Column(Integer, nullable=True)
    academic_year = Column(String(20), nullable=True)

    answers = Column(JSON, default=list, nullable=False)
    average_rating = Column(Float, nullable=False, default=0.0)
    comments = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    student = relationship("User", lazy="selectin")
    subject = relationship("Subject", lazy="selectin")

    def __repr__(self):
        return f"<Feedback {self.student_id} -> {self.subject_id} ({self.average_rating})>"
