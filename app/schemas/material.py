from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, model_serializer

from app.schemas.common import PageMeta


class MaterialCreate(BaseModel):
    name: str
    type: str
    unit: str
    description: Optional[str] = None


class MaterialUpdate(BaseModel):
    name: Optional[str] = None
    type: Optional[str] = None
    unit: Optional[str] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None


class MaterialResponse(BaseModel):
    id: int
    name: str
    type: str
    unit: str
    description: Optional[str]
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class MaterialDropdownItem(BaseModel):
    id: int
    name: str
    min_regular_price: Optional[float]
    min_preferred_price: Optional[float]


class VariantCreate(BaseModel):
    name: str
    color: Optional[str] = None
    type: Optional[str] = None
    regular_price: float = Field(ge=0)
    preferred_price: float = Field(ge=0)
    coverage_area: float = Field(ge=0)
    overage_rate: float = Field(ge=0)


class VariantUpdate(BaseModel):
    name: Optional[str] = None
    color: Optional[str] = None
    type: Optional[str] = None
    regular_price: Optional[float] = Field(default=None, ge=0)
    preferred_price: Optional[float] = Field(default=None, ge=0)
    coverage_area: Optional[float] = Field(default=None, ge=0)
    overage_rate: Optional[float] = Field(default=None, ge=0)
    is_active: Optional[bool] = None


class VariantResponse(BaseModel):
    id: int
    material_id: int
    name: str
    color: Optional[str]
    type: Optional[str]
    regular_price: float
    preferred_price: float
    coverage_area: float
    overage_rate: float
    is_active: bool

    model_config = {"from_attributes": True}


class PricedVariantResponse(BaseModel):
    id: int
    material_id: int
    material_name: str
    product_type: str
    unit: str
    name: str
    color: Optional[str]
    type: Optional[str]
    regular_price: float
    preferred_price: float
    effective_price: float
    coverage_area: float
    overage_rate: float
    effective_overage_rate: float
    effective_quantity: float
    company_overage_rate: Optional[float] = None
    company_quantity: Optional[float] = None
    is_active: bool

    @model_serializer(mode="wrap")
    def _omit_absent_overrides(self, handler):
        # An absent override is left out entirely; an override of 0 is kept.
        data = handler(self)
        for key in ("company_overage_rate", "company_quantity"):
            if data.get(key) is None:
                data.pop(key, None)
        return data

    @classmethod
    def from_pricing(cls, pricing) -> "PricedVariantResponse":
        variant = pricing.variant
        return cls(
            id=variant.id,
            material_id=variant.material_id,
            material_name=variant.material.name,
            product_type=variant.material.type,
            unit=variant.material.unit,
            name=variant.name,
            color=variant.color,
            type=variant.type,
            regular_price=variant.regular_price,
            preferred_price=variant.preferred_price,
            effective_price=pricing.effective_price,
            coverage_area=variant.coverage_area,
            overage_rate=variant.overage_rate,
            effective_overage_rate=pricing.effective_overage_rate,
            effective_quantity=pricing.effective_quantity,
            company_overage_rate=pricing.company_overage_rate,
            company_quantity=pricing.company_quantity,
            is_active=variant.is_active,
        )


class PricedVariantPage(BaseModel):
    variants: List[PricedVariantResponse]
    meta: PageMeta
