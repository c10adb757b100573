"""
Override Store

Per-company exceptions layered on top of the catalog: an overage-rate
override and a declared on-hand quantity, each unique per (company, variant)
and written with create-or-replace semantics.
"""
from typing import Dict, Iterable, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.permissions import Action, CallerContext, ensure_can, target_company_id
from app.exceptions import ConflictError, NotFoundError, ValidationFailedError
from app.logging_config import audit_log, get_logger
from app.models.company import Company
from app.models.material import MaterialVariant
from app.models.override import CompanyOverageOverride, CompanyQuantityOverride

logger = get_logger(__name__)


def fetch_overage_overrides(
    db: Session, company_id: int, variant_ids: Iterable[int]
) -> Dict[int, float]:
    """One query for all overage overrides of ``variant_ids``."""
    ids = list(set(variant_ids))
    if not ids:
        return {}
    rows = (
        db.query(CompanyOverageOverride.variant_id, CompanyOverageOverride.overage_rate)
        .filter(
            CompanyOverageOverride.company_id == company_id,
            CompanyOverageOverride.variant_id.in_(ids),
        )
        .all()
    )
    return {variant_id: rate for variant_id, rate in rows}


def fetch_quantity_overrides(
    db: Session, company_id: int, variant_ids: Iterable[int]
) -> Dict[int, float]:
    """One query for all declared on-hand quantities of ``variant_ids``."""
    ids = list(set(variant_ids))
    if not ids:
        return {}
    rows = (
        db.query(CompanyQuantityOverride.variant_id, CompanyQuantityOverride.quantity)
        .filter(
            CompanyQuantityOverride.company_id == company_id,
            CompanyQuantityOverride.variant_id.in_(ids),
        )
        .all()
    )
    return {variant_id: quantity for variant_id, quantity in rows}


def _resolve_company(db: Session, caller: CallerContext, company_id: Optional[int]) -> int:
    company_id = target_company_id(caller, company_id)
    if company_id is None:
        raise ValidationFailedError(
            "A company is required for overrides", field="company_id"
        )
    if db.query(Company.id).filter(Company.id == company_id).first() is None:
        raise NotFoundError(
            f"Company {company_id} not found", details={"company_id": company_id}
        )
    return company_id


def _upsert(db: Session, model, company_id: int, variant_id: int, field: str, value: float):
    if db.query(MaterialVariant.id).filter(MaterialVariant.id == variant_id).first() is None:
        raise NotFoundError(
            f"Variant {variant_id} not found", details={"variant_id": variant_id}
        )

    def _existing():
        return (
            db.query(model)
            .filter(model.company_id == company_id, model.variant_id == variant_id)
            .first()
        )

    row = _existing()
    if row is not None:
        setattr(row, field, value)
        db.commit()
        db.refresh(row)
        return row

    row = model(company_id=company_id, variant_id=variant_id, **{field: value})
    db.add(row)
    try:
        db.commit()
    except IntegrityError:
        # Lost an insert race on (company, variant): the other writer's row
        # exists now, so this write becomes a replace.
        db.rollback()
        logger.info(
            "Override insert lost race, replacing",
            extra={"table": model.__tablename__, "company_id": company_id, "variant_id": variant_id},
        )
        row = _existing()
        if row is None:
            raise ConflictError(
                "Override could not be saved",
                details={"company_id": company_id, "variant_id": variant_id},
            )
        setattr(row, field, value)
        db.commit()
    db.refresh(row)
    return row


def upsert_overage_override(
    db: Session,
    variant_id: int,
    overage_rate: float,
    caller: CallerContext,
    company_id: Optional[int] = None,
) -> CompanyOverageOverride:
    company_id = _resolve_company(db, caller, company_id)
    ensure_can(caller, Action.MANAGE_OVERRIDES, company_id)
    if overage_rate < 0:
        raise ValidationFailedError("Overage rate must be non-negative", field="overage_rate")

    row = _upsert(db, CompanyOverageOverride, company_id, variant_id, "overage_rate", overage_rate)
    audit_log(
        "OVERAGE_OVERRIDE_SET",
        user_id=caller.user_id,
        company_id=company_id,
        resource_type="material_variant",
        resource_id=variant_id,
        details={"overage_rate": overage_rate},
    )
    return row


def upsert_quantity_override(
    db: Session,
    variant_id: int,
    quantity: float,
    caller: CallerContext,
    company_id: Optional[int] = None,
) -> CompanyQuantityOverride:
    company_id = _resolve_company(db, caller, company_id)
    ensure_can(caller, Action.MANAGE_OVERRIDES, company_id)
    if quantity < 0:
        raise ValidationFailedError("Quantity must be non-negative", field="quantity")

    row = _upsert(db, CompanyQuantityOverride, company_id, variant_id, "quantity", quantity)
    audit_log(
        "QUANTITY_OVERRIDE_SET",
        user_id=caller.user_id,
        company_id=company_id,
        resource_type="material_variant",
        resource_id=variant_id,
        details={"quantity": quantity},
    )
    return row


def _list(db: Session, model, caller: CallerContext, company_id: Optional[int]) -> List:
    company_id = _resolve_company(db, caller, company_id)
    ensure_can(caller, Action.MANAGE_OVERRIDES, company_id)
    return (
        db.query(model)
        .filter(model.company_id == company_id)
        .order_by(model.variant_id)
        .all()
    )


def list_overage_overrides(
    db: Session, caller: CallerContext, company_id: Optional[int] = None
) -> List[CompanyOverageOverride]:
    return _list(db, CompanyOverageOverride, caller, company_id)


def list_quantity_overrides(
    db: Session, caller: CallerContext, company_id: Optional[int] = None
) -> List[CompanyQuantityOverride]:
    return _list(db, CompanyQuantityOverride, caller, company_id)


def _delete(db: Session, model, variant_id: int, caller: CallerContext, company_id: Optional[int]):
    company_id = _resolve_company(db, caller, company_id)
    ensure_can(caller, Action.MANAGE_OVERRIDES, company_id)
    row = (
        db.query(model)
        .filter(model.company_id == company_id, model.variant_id == variant_id)
        .first()
    )
    if row is None:
        raise NotFoundError(
            "Override not found",
            details={"company_id": company_id, "variant_id": variant_id},
        )
    db.delete(row)
    db.commit()
    return company_id


def delete_overage_override(
    db: Session, variant_id: int, caller: CallerContext, company_id: Optional[int] = None
) -> None:
    company_id = _delete(db, CompanyOverageOverride, variant_id, caller, company_id)
    audit_log(
        "OVERAGE_OVERRIDE_REMOVED",
        user_id=caller.user_id,
        company_id=company_id,
        resource_type="material_variant",
        resource_id=variant_id,
    )


def delete_quantity_override(
    db: Session, variant_id: int, caller: CallerContext, company_id: Optional[int] = None
) -> None:
    company_id = _delete(db, CompanyQuantityOverride, variant_id, caller, company_id)
    audit_log(
        "QUANTITY_OVERRIDE_REMOVED",
        user_id=caller.user_id,
        company_id=company_id,
        resource_type="material_variant",
        resource_id=variant_id,
    )
