from app.models.company import Company, Location
from app.models.job import Job, JobMaterial, JobStatus
from app.models.material import Material, MaterialVariant
from app.models.override import CompanyOverageOverride, CompanyQuantityOverride
from app.models.user import EmployeeType, User, UserRole

__all__ = [
    "Company",
    "CompanyOverageOverride",
    "CompanyQuantityOverride",
    "EmployeeType",
    "Job",
    "JobMaterial",
    "JobStatus",
    "Location",
    "Material",
    "MaterialVariant",
    "User",
    "UserRole",
]
