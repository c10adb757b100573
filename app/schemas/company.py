from pydantic import BaseModel


class PricingTierUpdate(BaseModel):
    preferred_price_enabled: bool


class CompanyResponse(BaseModel):
    id: int
    name: str
    preferred_price_enabled: bool
    is_active: bool

    model_config = {"from_attributes": True}
