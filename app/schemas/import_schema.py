from typing import List, Literal, Optional

from pydantic import BaseModel


class VariantImportRow(BaseModel):
    material_type: Optional[str] = None
    name: Optional[str] = None
    color: Optional[str] = None
    type: Optional[str] = None
    regular_price: Optional[float] = None
    preferred_price: Optional[float] = None
    coverage_area: Optional[float] = None
    overage_rate: Optional[float] = None


class VariantImportRequest(BaseModel):
    mode: Literal["create", "upsert"] = "create"
    rows: List[VariantImportRow] = []


class ImportError(BaseModel):
    row: int
    field: str
    message: str


class ImportResult(BaseModel):
    total: int
    created: int
    updated: int
    skipped: int
    failed: int
    errors: List[ImportError]
