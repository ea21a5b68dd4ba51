from sqlalchemy import Column, String, Integer, Boolean, DateTime, Text, ForeignKey, JSON, Table, Enum as SQLEnum
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from feedback_app.core.database import Base
from feedback_app.core.types import GUID, generate_uuid


class FeedbackType(str, enum.Enum):
    MIDTERM = "midterm"
    ENDTERM = "endterm"


class PeriodStatus(str, enum.Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


feedback_period_subjects = Table(
    "feedback_period_subjects",
    Base.metadata,
    Column("feedback_period_id", GUID, ForeignKey("feedback_periods.id", ondelete="CASCADE"), primary_key=True),
    Column("subject_id", GUID, ForeignKey("subjects.id", ondelete="CASCADE"), primary_key=True),
)


class FeedbackPeriod(Base):
    """A window during which students may submit feedback"""
    __tablename__ = "feedback_periods"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    feedback_type = Column(SQLEnum(FeedbackType), nullable=False, index=True)
    academic_year = Column(String(20), nullable=False, index=True)
    term = Column(Integer, nullable=False)  # 1-4

    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    status = Column(SQLEnum(PeriodStatus), default=PeriodStatus.DRAFT, nullable=False, index=True)
    instructions = Column(Text, nullable=True)

    # Empty list means every branch / every year
    branches = Column(JSON, default=list, nullable=False)
    years = Column(JSON, default=list, nullable=False)

    completed_feedbacks = Column(Integer, default=0, nullable=False)

    created_by_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    subjects = relationship("Subject", secondary=feedback_period_subjects, lazy="selectin")
    created_by = relationship("User", lazy="selectin")

    def is_open(self, now: datetime) -> bool:
        """Active status and inside its date range"""
        return (
            bool(self.is_active)
            and self.status == PeriodStatus.ACTIVE
            and self.start_date <= now <= self.end_date
        )

    def applies_to(self, branch, year) -> bool:
        """Whether a student with this branch/year falls inside the period's audience"""
        if self.branches and branch not in self.branches:
            return False
        if self.years and year not in self.years:
            return False
        return True

    def __repr__(self):
        return f"<FeedbackPeriod {self.title} ({self.status})>"
