import enum
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from app.db.base import Base


class JobStatus(str, enum.Enum):
    PENDING = "PENDING"
    ORDERED = "ORDERED"
    COMPLETED = "COMPLETED"
    HOLD = "HOLD"
    CANCELLED = "CANCELLED"
    ARCHIVED = "ARCHIVED"


class JobMaterial(Base):
    """Ledger line. cost_at_time is frozen when the line is written."""

    __tablename__ = "job_materials"
    __table_args__ = (
        UniqueConstraint("job_id", "variant_id", name="uq_job_material_variant"),
    )

    id = Column(Integer, primary_key=True, index=True)
    job_id = Column(
        Integer,
        ForeignKey("jobs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    variant_id = Column(
        Integer,
        ForeignKey("material_variants.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    quantity_used = Column(Float, nullable=False)
    unit = Column(String(50), nullable=False)
    cost_at_time = Column(Float, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    variant = relationship("MaterialVariant", lazy="joined")

    @property
    def line_cost(self):
        return self.quantity_used * self.cost_at_time

    @property
    def variant_name(self):
        return self.variant.name


class Job(Base):
    __tablename__ = "jobs"
    __table_args__ = (
        UniqueConstraint("job_number", "company_id", name="uq_job_number_company"),
    )

    id = Column(Integer, primary_key=True, index=True)
    job_number = Column(String(100), nullable=False)
    company_id = Column(
        Integer,
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    location_id = Column(
        Integer,
        ForeignKey("locations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_by_user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )
    template = Column(String(100), nullable=True)
    client_first_name = Column(String(255), nullable=False)
    client_last_name = Column(String(255), nullable=True)
    client_address = Column(String(500), nullable=False)
    area_sq_ft = Column(Float, nullable=False, default=0.0)
    duration = Column(Integer, nullable=False, default=1)
    date = Column(Date, nullable=False, index=True)
    install_date = Column(Date, nullable=False, index=True)
    job_cost = Column(Float, nullable=False, default=0.0)
    status = Column(Enum(JobStatus), nullable=False, default=JobStatus.PENDING, index=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    materials = relationship(
        "JobMaterial",
        cascade="all, delete-orphan",
        order_by="JobMaterial.id",
        lazy="selectin",
    )

    @property
    def materials_cost(self):
        return sum(line.line_cost for line in self.materials)
