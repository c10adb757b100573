import enum
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Enum, ForeignKey, Integer, String

from app.db.base import Base


class UserRole(str, enum.Enum):
    SUPERADMIN = "SUPERADMIN"
    COMPANY = "COMPANY"
    EMPLOYEE = "EMPLOYEE"


class EmployeeType(str, enum.Enum):
    PRODUCTION_MANAGER = "PRODUCTION_MANAGER"
    INSTALLER = "INSTALLER"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    hashed_password = Column(String(255), nullable=False)
    full_name = Column(String(255), nullable=True)
    role = Column(Enum(UserRole), nullable=False)
    employee_type = Column(Enum(EmployeeType), nullable=True)
    company_id = Column(
        Integer,
        ForeignKey("companies.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    location_id = Column(
        Integer,
        ForeignKey("locations.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
