from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class OverageOverrideUpsert(BaseModel):
    variant_id: int
    overage_rate: float = Field(ge=0)
    company_id: Optional[int] = None


class QuantityOverrideUpsert(BaseModel):
    variant_id: int
    quantity: float = Field(ge=0)
    company_id: Optional[int] = None


class StockUpsert(BaseModel):
    variant_id: int
    in_stock: float = Field(ge=0)
    company_id: Optional[int] = None


class OverageOverrideResponse(BaseModel):
    id: int
    company_id: int
    variant_id: int
    overage_rate: float
    updated_at: datetime

    model_config = {"from_attributes": True}


class QuantityOverrideResponse(BaseModel):
    id: int
    company_id: int
    variant_id: int
    quantity: float
    updated_at: datetime

    model_config = {"from_attributes": True}
