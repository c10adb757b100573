"""
Demand Aggregator / Stock Projector

Sums the ledger quantities of a company's scheduled, non-archived jobs per
variant and compares them with the company's declared on-hand quantities to
produce a reorder list.
"""
from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.permissions import Action, CallerContext, ensure_can, target_company_id
from app.exceptions import NotFoundError, ValidationFailedError
from app.logging_config import get_logger
from app.models.company import Company
from app.models.job import Job, JobMaterial, JobStatus
from app.models.material import MaterialVariant
from app.services.override_service import fetch_quantity_overrides

logger = get_logger(__name__)


@dataclass(frozen=True)
class ProjectionRow:
    variant_id: int
    variant_name: str
    material_name: str
    product_type: str
    color: Optional[str]
    unit: str
    required_quantity: float
    on_hand: float
    to_order: float


def reorder_quantity(required: float, on_hand: float) -> float:
    """Shortfall to order; a surplus is never reported as negative demand."""
    return max(0.0, required - on_hand)


def project(
    db: Session,
    start_date: date,
    end_date: date,
    caller: CallerContext,
    company_id: Optional[int] = None,
) -> List[ProjectionRow]:
    """
    Reorder projection for jobs installing within [start_date, end_date].

    Variants with scheduled demand but no declared on-hand quantity count as
    zero on hand. Variants with an on-hand quantity but no demand in the
    window are left out. Rows are ordered by variant id.
    """
    if end_date < start_date:
        raise ValidationFailedError(
            "end_date cannot be earlier than start_date",
            field="end_date",
            details={"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
        )

    company_id = target_company_id(caller, company_id)
    if company_id is None:
        raise ValidationFailedError("company_id is required", field="company_id")
    ensure_can(caller, Action.VIEW_PROJECTION, company_id)
    if db.query(Company.id).filter(Company.id == company_id).first() is None:
        raise NotFoundError(
            f"Company {company_id} not found", details={"company_id": company_id}
        )

    demand = (
        db.query(JobMaterial.variant_id, func.sum(JobMaterial.quantity_used))
        .join(Job, Job.id == JobMaterial.job_id)
        .filter(
            Job.company_id == company_id,
            Job.status != JobStatus.ARCHIVED,
            Job.install_date >= start_date,
            Job.install_date <= end_date,
        )
        .group_by(JobMaterial.variant_id)
        .order_by(JobMaterial.variant_id)
        .all()
    )
    required = {variant_id: float(total) for variant_id, total in demand if total and total > 0}
    if not required:
        return []

    variants = {
        v.id: v
        for v in db.query(MaterialVariant).filter(MaterialVariant.id.in_(list(required))).all()
    }
    on_hand = fetch_quantity_overrides(db, company_id, required.keys())

    rows = []
    for variant_id in sorted(required):
        variant = variants[variant_id]
        have = on_hand.get(variant_id, 0.0)
        rows.append(
            ProjectionRow(
                variant_id=variant_id,
                variant_name=variant.name,
                material_name=variant.material.name,
                product_type=variant.material.type,
                color=variant.color,
                unit=variant.material.unit,
                required_quantity=required[variant_id],
                on_hand=have,
                to_order=reorder_quantity(required[variant_id], have),
            )
        )

    logger.info(
        "Stock projection computed",
        extra={
            "company_id": company_id,
            "start_date": start_date.isoformat(),
            "end_date": end_date.isoformat(),
            "variants": len(rows),
        },
    )
    return rows
