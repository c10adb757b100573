from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.permissions import CallerContext
from app.core.security import get_caller_context
from app.db.session import get_db
from app.schemas.override import (
    OverageOverrideResponse,
    OverageOverrideUpsert,
    QuantityOverrideResponse,
    QuantityOverrideUpsert,
)
from app.services import override_service

router = APIRouter()


@router.get("/overage", response_model=List[OverageOverrideResponse])
def list_overage_overrides(
    company_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller_context),
):
    return override_service.list_overage_overrides(db, caller, company_id)


@router.post("/overage", response_model=OverageOverrideResponse)
def upsert_overage_override(
    data: OverageOverrideUpsert,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller_context),
):
    return override_service.upsert_overage_override(
        db, data.variant_id, data.overage_rate, caller, company_id=data.company_id
    )


@router.delete("/overage/{variant_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_overage_override(
    variant_id: int,
    company_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller_context),
):
    override_service.delete_overage_override(db, variant_id, caller, company_id)


@router.get("/quantity", response_model=List[QuantityOverrideResponse])
def list_quantity_overrides(
    company_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller_context),
):
    return override_service.list_quantity_overrides(db, caller, company_id)


@router.post("/quantity", response_model=QuantityOverrideResponse)
def upsert_quantity_override(
    data: QuantityOverrideUpsert,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller_context),
):
    return override_service.upsert_quantity_override(
        db, data.variant_id, data.quantity, caller, company_id=data.company_id
    )


@router.delete("/quantity/{variant_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_quantity_override(
    variant_id: int,
    company_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller_context),
):
    override_service.delete_quantity_override(db, variant_id, caller, company_id)
