from sqlalchemy import Column, String, Boolean, DateTime, Enum as SQLEnum, Integer
from datetime import datetime
import enum

from feedback_app.core.database import Base
from feedback_app.core.types import GUID, generate_uuid


class UserRole(str, enum.Enum):
    """User roles"""
    STUDENT = "student"
    FACULTY = "faculty"
    HOD = "hod"
    DEAN = "dean"
    ADMIN = "admin"


class Branch(str, enum.Enum):
    """Academic branches (departments) a user or subject belongs to"""
    CSE = "CSE"
    AIML = "AIML"
    DS = "DS"
    COMPUTER_SCIENCE = "Computer Science"
    ELECTRONICS = "Electronics"
    MECHANICAL = "Mechanical"
    CIVIL = "Civil"
    ELECTRICAL = "Electrical"
    INFORMATION_TECHNOLOGY = "Information Technology"
    CHEMICAL = "Chemical"
    AEROSPACE = "Aerospace"
    BIOTECHNOLOGY = "Biotechnology"
    MCA_REGULAR = "MCA Regular"
    MCA_DS = "MCA DS"
    MBA_FINANCE = "MBA Finance"
    MBA_MARKETING = "MBA Marketing"
    MBA_HR = "MBA HR"


class User(Base):
    """User model"""
    __tablename__ = "users"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)

    role = Column(SQLEnum(UserRole), default=UserRole.STUDENT, nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)

    # Academic fields
    roll_number = Column(String(50), unique=True, index=True, nullable=True)
    branch = Column(String(100), nullable=True, index=True)
    year = Column(Integer, nullable=True)  # 1-4, students only
    department = Column(String(255), nullable=True)

    # Accounts created by an administrator start with a default password
    password_reset_required = Column(Boolean, default=True, nullable=False)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    last_login = Column(DateTime, nullable=True)

    @property
    def role_value(self) -> str:
        return self.role.value if isinstance(self.role, UserRole) else str(self.role)

    def __repr__(self):
        return f"<User {self.email} ({self.role_value})>"
