from typing import List, Optional

from pydantic import BaseModel

from app.schemas.common import PageMeta


class ProjectionRowResponse(BaseModel):
    variant_id: int
    variant_name: str
    material_name: str
    product_type: str
    color: Optional[str]
    unit: str
    required_quantity: float
    on_hand: float
    to_order: float

    model_config = {"from_attributes": True}


class ProjectionPage(BaseModel):
    data: List[ProjectionRowResponse]
    meta: PageMeta
