from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import relationship

from app.db.base import Base


class CompanyOverageOverride(Base):
    __tablename__ = "company_overage_overrides"
    __table_args__ = (
        UniqueConstraint("company_id", "variant_id", name="uq_overage_company_variant"),
    )

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(
        Integer,
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    variant_id = Column(
        Integer,
        ForeignKey("material_variants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    overage_rate = Column(Float, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    variant = relationship("MaterialVariant")


class CompanyQuantityOverride(Base):
    """Operator-entered on-hand snapshot; never decremented by job consumption."""

    __tablename__ = "company_quantity_overrides"
    __table_args__ = (
        UniqueConstraint("company_id", "variant_id", name="uq_quantity_company_variant"),
    )

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(
        Integer,
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    variant_id = Column(
        Integer,
        ForeignKey("material_variants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    quantity = Column(Float, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    variant = relationship("MaterialVariant")
