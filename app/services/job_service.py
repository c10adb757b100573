"""
Job Material Ledger

Jobs and their ledger lines. Each line locks the variant, the quantity and
the price resolved for the job's company when the line is written; later
catalog or tier changes never touch it. The only way to re-price a job is an
explicit ``replace_lines`` call, which deletes every line and writes a new
set inside one transaction.
"""
from collections import Counter
from datetime import date, datetime, timezone
from typing import Dict, List, Optional, Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.job_templates import get_template
from app.core.permissions import Action, CallerContext, ensure_can, target_company_id
from app.db.session import atomic
from app.exceptions import ConflictError, NotFoundError, ValidationFailedError
from app.logging_config import audit_log, get_logger
from app.models.company import Company, Location
from app.models.job import Job, JobMaterial, JobStatus
from app.models.material import MaterialVariant
from app.schemas.job import JobCreate, JobLineIn, JobUpdate
from app.services.pagination import paginate_query
from app.services.pricing_service import resolve_effective

logger = get_logger(__name__)

# Header fields an explicit null may clear
_NULLABLE_JOB_FIELDS = ("client_last_name",)

# Allowed status moves; setting the current status again is always allowed.
STATUS_TRANSITIONS: Dict[JobStatus, frozenset] = {
    JobStatus.PENDING: frozenset({JobStatus.ORDERED, JobStatus.HOLD, JobStatus.CANCELLED, JobStatus.ARCHIVED}),
    JobStatus.ORDERED: frozenset({JobStatus.COMPLETED, JobStatus.PENDING, JobStatus.HOLD, JobStatus.CANCELLED, JobStatus.ARCHIVED}),
    JobStatus.HOLD: frozenset({JobStatus.PENDING, JobStatus.ORDERED, JobStatus.CANCELLED, JobStatus.ARCHIVED}),
    JobStatus.COMPLETED: frozenset({JobStatus.ARCHIVED}),
    JobStatus.CANCELLED: frozenset({JobStatus.ARCHIVED}),
    JobStatus.ARCHIVED: frozenset(),
}


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _get_job_row(db: Session, job_id: int) -> Job:
    job = db.query(Job).filter(Job.id == job_id).first()
    if job is None:
        raise NotFoundError(f"Job {job_id} not found", details={"job_id": job_id})
    return job


def _ensure_company(db: Session, company_id: int) -> None:
    if db.query(Company.id).filter(Company.id == company_id).first() is None:
        raise NotFoundError(
            f"Company {company_id} not found", details={"company_id": company_id}
        )


def _ensure_location(db: Session, company_id: int, location_id: int) -> None:
    location = db.query(Location).filter(Location.id == location_id).first()
    if location is None:
        raise NotFoundError(
            f"Location {location_id} not found", details={"location_id": location_id}
        )
    if location.company_id != company_id:
        raise ValidationFailedError(
            f"Location {location_id} does not belong to company {company_id}",
            field="location_id",
        )


def _ensure_dates(job_date: date, install_date: date) -> None:
    if install_date < job_date:
        raise ValidationFailedError(
            "install_date cannot be earlier than date",
            field="install_date",
            details={"date": job_date.isoformat(), "install_date": install_date.isoformat()},
        )


def _ensure_unique_job_number(
    db: Session, company_id: int, job_number: str, exclude_job_id: Optional[int] = None
) -> None:
    query = db.query(Job.id).filter(Job.company_id == company_id, Job.job_number == job_number)
    if exclude_job_id is not None:
        query = query.filter(Job.id != exclude_job_id)
    if query.first() is not None:
        raise ValidationFailedError(
            f"Job number '{job_number}' already exists for this company",
            field="job_number",
            details={"job_number": job_number},
        )


def check_template(template_key: str, variants: Sequence[MaterialVariant]) -> None:
    """
    Compare the category counts of ``variants`` with a template.

    Every category the template requires must appear exactly the required
    number of times and no other category may appear.
    """
    template = get_template(template_key)
    if template is None:
        raise ValidationFailedError(
            f"Unknown job template '{template_key}'",
            field="template",
            details={"template": template_key},
        )

    found = Counter(v.category.lower() for v in variants)
    mismatches: Dict[str, Dict[str, int]] = {}
    for category, expected in template.requirements.items():
        actual = found.get(category, 0)
        if actual != expected:
            mismatches[category] = {"expected": expected, "found": actual}
    for category in sorted(found):
        if category not in template.requirements:
            mismatches[category] = {"expected": 0, "found": found[category]}

    if mismatches:
        summary = "; ".join(
            f"{category}: expected {counts['expected']}, found {counts['found']}"
            for category, counts in mismatches.items()
        )
        raise ValidationFailedError(
            f"Job materials do not match template '{template_key}': {summary}",
            field="materials",
            details={"template": template_key, "mismatches": mismatches},
        )


def validate_lines(
    db: Session, lines: Sequence[JobLineIn], template_key: Optional[str] = None
) -> List[MaterialVariant]:
    """
    Validate a submitted line set and return its variants in line order.

    Raises before anything is written: duplicate variants, unknown ids,
    inactive variants and template mismatches each fail the whole set.
    """
    ids = [line.variant_id for line in lines]
    counts = Counter(ids)
    duplicates = sorted(variant_id for variant_id, n in counts.items() if n > 1)
    if duplicates:
        raise ValidationFailedError(
            "A variant may appear only once per job",
            field="materials",
            details={"variant_ids": duplicates},
        )

    variants = (
        db.query(MaterialVariant).filter(MaterialVariant.id.in_(ids)).all() if ids else []
    )
    by_id = {v.id: v for v in variants}

    missing = [variant_id for variant_id in ids if variant_id not in by_id]
    if missing:
        raise NotFoundError(
            f"Variants not found: {', '.join(str(i) for i in missing)}",
            details={"field": "materials", "variant_ids": missing},
        )

    inactive = [variant_id for variant_id in ids if not by_id[variant_id].is_orderable]
    if inactive:
        raise ValidationFailedError(
            f"Inactive variants cannot be added to a job: {', '.join(str(i) for i in inactive)}",
            field="materials",
            details={"variant_ids": inactive},
        )

    ordered = [by_id[variant_id] for variant_id in ids]
    if template_key:
        check_template(template_key, ordered)
    return ordered


def _price_lines(
    db: Session,
    company_id: int,
    lines: Sequence[JobLineIn],
    variants: Sequence[MaterialVariant],
) -> List[JobMaterial]:
    pricing = resolve_effective(db, variants, company_id)
    return [
        JobMaterial(
            variant_id=variant.id,
            quantity_used=line.quantity_used,
            unit=variant.material.unit,
            cost_at_time=resolved.effective_price,
        )
        for line, variant, resolved in zip(lines, variants, pricing)
    ]


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


def create_job(db: Session, data: JobCreate, caller: CallerContext) -> Job:
    """
    Create a job header and its ledger lines as one unit.

    Prices are resolved with the owning company's current tier. Nothing is
    written unless every line validates.
    """
    company_id = target_company_id(caller, data.company_id)
    if company_id is None:
        raise ValidationFailedError("company_id is required", field="company_id")
    ensure_can(caller, Action.CREATE_JOB, company_id)

    _ensure_company(db, company_id)
    _ensure_location(db, company_id, data.location_id)
    _ensure_dates(data.date, data.install_date)
    _ensure_unique_job_number(db, company_id, data.job_number)
    variants = validate_lines(db, data.materials, data.template)

    try:
        with atomic(db):
            job = Job(
                job_number=data.job_number,
                company_id=company_id,
                location_id=data.location_id,
                created_by_user_id=caller.user_id,
                template=data.template,
                client_first_name=data.client_first_name,
                client_last_name=data.client_last_name,
                client_address=data.client_address,
                area_sq_ft=data.area_sq_ft,
                duration=data.duration,
                date=data.date,
                install_date=data.install_date,
                job_cost=data.job_cost,
                status=JobStatus.PENDING,
                materials=_price_lines(db, company_id, data.materials, variants),
            )
            db.add(job)
            db.flush()
    except IntegrityError as exc:
        raise ConflictError(
            f"Job number '{data.job_number}' already exists for this company",
            details={"field": "job_number", "job_number": data.job_number},
        ) from exc

    db.refresh(job)
    logger.info(
        "Job created",
        extra={"job_id": job.id, "company_id": company_id, "lines": len(job.materials)},
    )
    audit_log(
        "JOB_CREATED",
        user_id=caller.user_id,
        company_id=company_id,
        resource_type="job",
        resource_id=job.id,
        details={"job_number": job.job_number, "materials_cost": job.materials_cost},
    )
    return job


def replace_lines(
    db: Session, job_id: int, lines: Sequence[JobLineIn], caller: CallerContext
) -> Job:
    """
    Replace the entire ledger line set of a job.

    Lines are re-priced with the company's tier as it is now. The delete and
    the inserts share one transaction, so no other transaction ever sees the
    job without lines.
    """
    job = _get_job_row(db, job_id)
    ensure_can(caller, Action.EDIT_JOB, job.company_id)
    variants = validate_lines(db, lines, job.template)
    company_id = job.company_id

    try:
        with atomic(db):
            # Old lines must be gone before the new ones hit the unique index
            job.materials.clear()
            db.flush()
            job.materials.extend(_price_lines(db, company_id, lines, variants))
            job.updated_at = datetime.now(timezone.utc)
            db.flush()
    except IntegrityError as exc:
        raise ConflictError(
            "Job materials could not be replaced", details={"job_id": job_id}
        ) from exc

    db.refresh(job)
    audit_log(
        "JOB_LINES_REPLACED",
        user_id=caller.user_id,
        company_id=company_id,
        resource_type="job",
        resource_id=job.id,
        details={"lines": len(job.materials), "materials_cost": job.materials_cost},
    )
    return job


def get_job(db: Session, job_id: int, caller: CallerContext) -> Job:
    """Fetch a job; another company's job is access-denied, not not-found."""
    job = _get_job_row(db, job_id)
    ensure_can(caller, Action.READ_JOB, job.company_id)
    return job


def list_jobs(
    db: Session,
    caller: CallerContext,
    page: Optional[int] = None,
    limit: Optional[int] = None,
    status: Optional[JobStatus] = None,
    company_id: Optional[int] = None,
):
    company_id = target_company_id(caller, company_id)
    ensure_can(caller, Action.READ_JOB, company_id)

    query = db.query(Job)
    if company_id is not None:
        query = query.filter(Job.company_id == company_id)
    if status is not None:
        query = query.filter(Job.status == status)
    query = query.order_by(Job.created_at.desc(), Job.id.desc())
    return paginate_query(query, page, limit)


def update_job(db: Session, job_id: int, data: JobUpdate, caller: CallerContext) -> Job:
    """Update header fields only; ledger lines are never re-priced here."""
    job = _get_job_row(db, job_id)
    ensure_can(caller, Action.EDIT_JOB, job.company_id)
    changes = {
        k: v
        for k, v in data.model_dump(exclude_unset=True).items()
        if v is not None or k in _NULLABLE_JOB_FIELDS
    }

    if "location_id" in changes:
        _ensure_location(db, job.company_id, changes["location_id"])
    if "job_number" in changes and changes["job_number"] != job.job_number:
        _ensure_unique_job_number(db, job.company_id, changes["job_number"], exclude_job_id=job.id)
    _ensure_dates(changes.get("date", job.date), changes.get("install_date", job.install_date))

    for field, value in changes.items():
        setattr(job, field, value)
    job.updated_at = datetime.now(timezone.utc)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError(
            "Job number already exists for this company",
            details={"field": "job_number"},
        ) from exc
    db.refresh(job)

    audit_log(
        "JOB_UPDATED",
        user_id=caller.user_id,
        company_id=job.company_id,
        resource_type="job",
        resource_id=job.id,
        details={"fields": sorted(changes)},
    )
    return job


def update_job_status(
    db: Session, job_id: int, status: JobStatus, caller: CallerContext
) -> Job:
    job = _get_job_row(db, job_id)
    ensure_can(caller, Action.EDIT_JOB, job.company_id)

    previous = job.status
    if status != previous and status not in STATUS_TRANSITIONS[previous]:
        raise ValidationFailedError(
            f"Cannot move job from {previous.value} to {status.value}",
            field="status",
            details={"from": previous.value, "to": status.value},
        )

    job.status = status
    job.updated_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(job)

    audit_log(
        "JOB_STATUS_CHANGED",
        user_id=caller.user_id,
        company_id=job.company_id,
        resource_type="job",
        resource_id=job.id,
        details={"from": previous.value, "to": status.value},
    )
    return job


def delete_job(db: Session, job_id: int, caller: CallerContext) -> None:
    job = _get_job_row(db, job_id)
    ensure_can(caller, Action.EDIT_JOB, job.company_id)
    company_id = job.company_id
    db.delete(job)
    db.commit()
    audit_log(
        "JOB_DELETED",
        user_id=caller.user_id,
        company_id=company_id,
        resource_type="job",
        resource_id=job_id,
    )
