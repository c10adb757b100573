from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.core.permissions import CallerContext
from app.core.security import get_caller_context
from app.db.session import get_db
from app.schemas.import_schema import ImportResult, VariantImportRequest
from app.services import catalog_service

router = APIRouter()


@router.post("", response_model=ImportResult, status_code=status.HTTP_200_OK)
def import_variants(
    data: VariantImportRequest,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller_context),
):
    return catalog_service.import_variants(db, data.rows, data.mode, caller)
