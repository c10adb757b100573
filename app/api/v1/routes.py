from fastapi import APIRouter

from app.api.v1.endpoints import (
    auth,
    companies,
    import_data,
    jobs,
    material_variants,
    materials,
    overrides,
    stocks,
)

api_router = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(materials.router, prefix="/materials", tags=["materials"])
api_router.include_router(import_data.router, prefix="/material-variants/import", tags=["import"])
api_router.include_router(material_variants.router, prefix="/material-variants", tags=["materials"])
api_router.include_router(companies.router, prefix="/companies", tags=["companies"])
api_router.include_router(overrides.router, prefix="/overrides", tags=["overrides"])
api_router.include_router(stocks.router, prefix="/stocks", tags=["stocks"])
api_router.include_router(jobs.router, prefix="/jobs", tags=["jobs"])
