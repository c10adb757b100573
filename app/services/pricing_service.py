"""
Pricing Resolver

Resolves the price and consumption parameters a company actually sees for a
material variant:

1. No company context (anonymous or platform operator): the regular price,
   no override lookups.
2. Company with preferred pricing enabled: the preferred price, otherwise the
   regular price. The flag is read from the company row on every call.
3. A per-company overage override is surfaced next to the price when one
   exists; when none exists nothing is surfaced.
4. A per-company quantity override is surfaced as the declared on-hand
   quantity; absent means zero for projections.

Overrides for a list of variants are fetched with one query per override
table. Resolution has no side effects.
"""
from dataclasses import dataclass
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from app.core.permissions import Action, CallerContext, ensure_can
from app.exceptions import NotFoundError
from app.logging_config import audit_log, get_logger
from app.models.company import Company
from app.models.material import MaterialVariant
from app.models.user import UserRole
from app.services import catalog_service
from app.services.override_service import fetch_overage_overrides, fetch_quantity_overrides
from app.services.pagination import paginate_query

logger = get_logger(__name__)


@dataclass(frozen=True)
class EffectivePricing:
    variant: MaterialVariant
    effective_price: float
    company_overage_rate: Optional[float] = None
    company_quantity: Optional[float] = None

    @property
    def has_overage_override(self) -> bool:
        return self.company_overage_rate is not None

    @property
    def effective_overage_rate(self) -> float:
        if self.company_overage_rate is not None:
            return self.company_overage_rate
        return self.variant.overage_rate

    @property
    def effective_quantity(self) -> float:
        return self.company_quantity if self.company_quantity is not None else 0.0


def pricing_company_id(caller: Optional[CallerContext]) -> Optional[int]:
    """Company whose tier applies to the caller's view, if any."""
    if caller is None or caller.role not in (UserRole.COMPANY, UserRole.EMPLOYEE):
        return None
    return caller.company_id


def company_uses_preferred_price(db: Session, company_id: int) -> bool:
    row = (
        db.query(Company.preferred_price_enabled)
        .filter(Company.id == company_id)
        .first()
    )
    if row is None:
        raise NotFoundError(
            f"Company {company_id} not found", details={"company_id": company_id}
        )
    return bool(row[0])


def resolve_effective(
    db: Session,
    variants: Sequence[MaterialVariant],
    company_id: Optional[int] = None,
) -> List[EffectivePricing]:
    """Resolve a batch of variants for one company (or for no company)."""
    if company_id is None:
        return [EffectivePricing(variant=v, effective_price=v.regular_price) for v in variants]

    use_preferred = company_uses_preferred_price(db, company_id)
    variant_ids = [v.id for v in variants]
    overage = fetch_overage_overrides(db, company_id, variant_ids)
    quantity = fetch_quantity_overrides(db, company_id, variant_ids)

    return [
        EffectivePricing(
            variant=v,
            effective_price=v.preferred_price if use_preferred else v.regular_price,
            company_overage_rate=overage.get(v.id),
            company_quantity=quantity.get(v.id),
        )
        for v in variants
    ]


def resolve_variant(
    db: Session, variant: MaterialVariant, company_id: Optional[int] = None
) -> EffectivePricing:
    return resolve_effective(db, [variant], company_id)[0]


def get_priced_variant(
    db: Session, variant_id: int, caller: Optional[CallerContext]
) -> EffectivePricing:
    variant = catalog_service.get_variant(db, variant_id)
    return resolve_variant(db, variant, pricing_company_id(caller))


def list_priced_variants(
    db: Session,
    caller: Optional[CallerContext],
    page: Optional[int] = None,
    limit: Optional[int] = None,
    search: Optional[str] = None,
    types: Optional[List[str]] = None,
    status: Optional[str] = None,
    include_inactive: bool = False,
):
    """Paginated catalog listing with effective pricing; returns (pricings, meta)."""
    is_operator = caller is not None and caller.is_operator
    query = catalog_service.variant_query(
        db,
        is_operator=is_operator,
        search=search,
        types=types,
        status=status,
        include_inactive=include_inactive,
    )
    variants, meta = paginate_query(query, page, limit)
    return resolve_effective(db, variants, pricing_company_id(caller)), meta


def list_material_variants(
    db: Session,
    material_id: int,
    caller: Optional[CallerContext],
    include_inactive: bool = False,
) -> List[EffectivePricing]:
    """Every variant of one material, sorted by name, with effective pricing."""
    material = catalog_service.get_material(db, material_id)
    is_operator = caller is not None and caller.is_operator
    variants = catalog_service.variant_query(
        db,
        is_operator=is_operator,
        include_inactive=include_inactive,
        material_id=material.id,
    ).all()
    return resolve_effective(db, variants, pricing_company_id(caller))


def set_preferred_pricing(
    db: Session, company_id: int, enabled: bool, caller: CallerContext
) -> Company:
    ensure_can(caller, Action.MANAGE_PRICING_TIER, company_id)
    company = db.query(Company).filter(Company.id == company_id).first()
    if company is None:
        raise NotFoundError(
            f"Company {company_id} not found", details={"company_id": company_id}
        )

    previous = company.preferred_price_enabled
    company.preferred_price_enabled = enabled
    db.commit()
    db.refresh(company)

    logger.info(
        "Company pricing tier changed",
        extra={"company_id": company_id, "preferred_price_enabled": enabled},
    )
    audit_log(
        "PRICING_TIER_CHANGED",
        user_id=caller.user_id,
        company_id=company_id,
        resource_type="company",
        resource_id=company_id,
        details={"from": previous, "to": enabled},
    )
    return company
