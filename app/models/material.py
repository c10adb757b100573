from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from app.db.base import Base


class Material(Base):
    __tablename__ = "materials"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, unique=True)
    # Product-family classifier, e.g. "base coat", "top coat", "broadcast"
    type = Column(String(100), nullable=False)
    unit = Column(String(50), nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    variants = relationship("MaterialVariant", back_populates="material")


class MaterialVariant(Base):
    __tablename__ = "material_variants"
    __table_args__ = (
        UniqueConstraint("material_id", "name", "color", name="uq_variant_material_name_color"),
    )

    id = Column(Integer, primary_key=True, index=True)
    material_id = Column(
        Integer,
        ForeignKey("materials.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String(255), nullable=False)
    color = Column(String(100), nullable=True)
    type = Column(String(100), nullable=True)
    # Both list prices are set independently; preferred is never derived
    regular_price = Column(Float, nullable=False, default=0.0)
    preferred_price = Column(Float, nullable=False, default=0.0)
    coverage_area = Column(Float, nullable=False, default=0.0)
    overage_rate = Column(Float, nullable=False, default=0.0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    material = relationship("Material", back_populates="variants", lazy="joined")

    @property
    def category(self):
        """Type used for job-template composition."""
        return self.type or self.material.type

    @property
    def is_orderable(self):
        return bool(self.is_active and self.material.is_active)
