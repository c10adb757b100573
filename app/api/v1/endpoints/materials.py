from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.permissions import CallerContext
from app.core.security import get_caller_context
from app.db.session import get_db
from app.schemas.material import (
    MaterialCreate,
    MaterialDropdownItem,
    MaterialResponse,
    MaterialUpdate,
    PricedVariantResponse,
    VariantCreate,
)
from app.services import catalog_service, pricing_service

router = APIRouter()


@router.get("", response_model=List[MaterialDropdownItem])
def list_materials(
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller_context),
):
    return catalog_service.list_materials(db)


@router.post("", response_model=MaterialResponse, status_code=status.HTTP_201_CREATED)
def create_material(
    data: MaterialCreate,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller_context),
):
    return catalog_service.create_material(db, data, caller)


@router.patch("/{material_id}", response_model=MaterialResponse)
def update_material(
    material_id: int,
    data: MaterialUpdate,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller_context),
):
    return catalog_service.update_material(db, material_id, data, caller)


@router.get("/{material_id}/variants", response_model=List[PricedVariantResponse])
def list_material_variants(
    material_id: int,
    include_inactive: bool = Query(False),
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller_context),
):
    pricings = pricing_service.list_material_variants(db, material_id, caller, include_inactive)
    return [PricedVariantResponse.from_pricing(p) for p in pricings]


@router.post(
    "/{material_id}/variants",
    response_model=PricedVariantResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_variant(
    material_id: int,
    data: VariantCreate,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller_context),
):
    variant = catalog_service.create_variant(db, material_id, data, caller)
    pricing = pricing_service.resolve_variant(db, variant, pricing_service.pricing_company_id(caller))
    return PricedVariantResponse.from_pricing(pricing)
