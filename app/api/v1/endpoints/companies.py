from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.permissions import CallerContext
from app.core.security import get_caller_context
from app.db.session import get_db
from app.schemas.company import CompanyResponse, PricingTierUpdate
from app.services import pricing_service

router = APIRouter()


@router.patch("/{company_id}/pricing-tier", response_model=CompanyResponse)
def update_pricing_tier(
    company_id: int,
    data: PricingTierUpdate,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller_context),
):
    return pricing_service.set_preferred_pricing(
        db, company_id, data.preferred_price_enabled, caller
    )
