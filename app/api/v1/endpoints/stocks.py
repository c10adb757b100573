from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.permissions import CallerContext
from app.core.security import get_caller_context
from app.db.session import get_db
from app.schemas.override import QuantityOverrideResponse, StockUpsert
from app.schemas.stock import ProjectionPage
from app.services import override_service, projection_service
from app.services.pagination import paginate_rows

router = APIRouter()


@router.get("/projection", response_model=ProjectionPage)
def get_stock_projection(
    start_date: date = Query(...),
    end_date: date = Query(...),
    company_id: Optional[int] = Query(None),
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller_context),
):
    rows = projection_service.project(db, start_date, end_date, caller, company_id=company_id)
    data, meta = paginate_rows(rows, page, limit)
    return {"data": data, "meta": meta}


@router.post("", response_model=QuantityOverrideResponse)
def update_stock(
    data: StockUpsert,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller_context),
):
    return override_service.upsert_quantity_override(
        db, data.variant_id, data.in_stock, caller, company_id=data.company_id
    )
