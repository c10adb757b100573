from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.permissions import CallerContext
from app.core.security import get_caller_context
from app.db.session import get_db
from app.schemas.material import (
    PricedVariantPage,
    PricedVariantResponse,
    VariantResponse,
    VariantUpdate,
)
from app.services import catalog_service, pricing_service

router = APIRouter()


@router.get("", response_model=PricedVariantPage)
def list_variants(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    search: Optional[str] = Query(None),
    types: Optional[List[str]] = Query(None),
    status: Optional[str] = Query(None, pattern="^(active|inactive)$"),
    include_inactive: bool = Query(False),
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller_context),
):
    pricings, meta = pricing_service.list_priced_variants(
        db,
        caller,
        page=page,
        limit=limit,
        search=search,
        types=types,
        status=status,
        include_inactive=include_inactive,
    )
    return {
        "variants": [PricedVariantResponse.from_pricing(p) for p in pricings],
        "meta": meta,
    }


@router.get("/{variant_id}", response_model=PricedVariantResponse)
def get_variant(
    variant_id: int,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller_context),
):
    pricing = pricing_service.get_priced_variant(db, variant_id, caller)
    return PricedVariantResponse.from_pricing(pricing)


@router.put("/{variant_id}", response_model=PricedVariantResponse)
def update_variant(
    variant_id: int,
    data: VariantUpdate,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller_context),
):
    variant = catalog_service.update_variant(db, variant_id, data, caller)
    pricing = pricing_service.resolve_variant(db, variant, pricing_service.pricing_company_id(caller))
    return PricedVariantResponse.from_pricing(pricing)


@router.delete("/{variant_id}", response_model=VariantResponse, status_code=status.HTTP_200_OK)
def delete_variant(
    variant_id: int,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller_context),
):
    return catalog_service.delete_variant(db, variant_id, caller)
