from datetime import date as date_type
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from app.models.job import JobStatus
from app.schemas.common import PageMeta


class JobLineIn(BaseModel):
    variant_id: int
    quantity_used: float = Field(gt=0)


class JobCreate(BaseModel):
    job_number: str = Field(min_length=1)
    company_id: Optional[int] = None
    location_id: int
    template: Optional[str] = None
    client_first_name: str
    client_last_name: Optional[str] = None
    client_address: str
    area_sq_ft: float = Field(default=0, ge=0)
    duration: int = Field(default=1, ge=0)
    date: date_type
    install_date: date_type
    job_cost: float = Field(default=0, ge=0)
    materials: List[JobLineIn] = []


class JobUpdate(BaseModel):
    job_number: Optional[str] = Field(default=None, min_length=1)
    location_id: Optional[int] = None
    client_first_name: Optional[str] = None
    client_last_name: Optional[str] = None
    client_address: Optional[str] = None
    area_sq_ft: Optional[float] = Field(default=None, ge=0)
    duration: Optional[int] = Field(default=None, ge=0)
    date: Optional[date_type] = None
    install_date: Optional[date_type] = None
    job_cost: Optional[float] = Field(default=None, ge=0)


class JobStatusUpdate(BaseModel):
    status: JobStatus


class JobMaterialsReplace(BaseModel):
    materials: List[JobLineIn]


class JobMaterialResponse(BaseModel):
    id: int
    variant_id: int
    variant_name: str
    quantity_used: float
    unit: str
    cost_at_time: float
    line_cost: float

    model_config = {"from_attributes": True}


class JobResponse(BaseModel):
    id: int
    job_number: str
    company_id: int
    location_id: int
    created_by_user_id: Optional[int]
    template: Optional[str]
    client_first_name: str
    client_last_name: Optional[str]
    client_address: str
    area_sq_ft: float
    duration: int
    date: date_type
    install_date: date_type
    job_cost: float
    status: JobStatus
    materials: List[JobMaterialResponse]
    materials_cost: float
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class JobListItem(BaseModel):
    id: int
    job_number: str
    company_id: int
    location_id: int
    client_first_name: str
    client_last_name: Optional[str]
    install_date: date_type
    status: JobStatus
    materials_cost: float
    created_at: datetime

    model_config = {"from_attributes": True}


class JobPage(BaseModel):
    jobs: List[JobListItem]
    meta: PageMeta
