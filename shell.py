"""
Interactive shell with app context pre-loaded.

Usage:
    python shell.py                          # DATABASE_URL must be set

Available in the REPL:
    db          - active SQLAlchemy session (call db.close() when done)
    settings    - app settings object
    models      - Company, Location, User, Material, MaterialVariant,
                  CompanyOverageOverride, CompanyQuantityOverride, Job, JobMaterial
    services    - pricing_service, job_service, projection_service
"""

import code

from app.core.config import settings
from app.db.session import SessionLocal
from app.models import (
    Company,
    CompanyOverageOverride,
    CompanyQuantityOverride,
    Job,
    JobMaterial,
    Location,
    Material,
    MaterialVariant,
    User,
)
from app.services import job_service, pricing_service, projection_service

db = SessionLocal()

namespace = {
    "db": db,
    "settings": settings,
    "Company": Company,
    "Location": Location,
    "User": User,
    "Material": Material,
    "MaterialVariant": MaterialVariant,
    "CompanyOverageOverride": CompanyOverageOverride,
    "CompanyQuantityOverride": CompanyQuantityOverride,
    "Job": Job,
    "JobMaterial": JobMaterial,
    "pricing_service": pricing_service,
    "job_service": job_service,
    "projection_service": projection_service,
}

BANNER = """
Job costing interactive shell
-----------------------------
  db        -> SQLAlchemy session
  settings  -> app config

Example:
  variants = db.query(MaterialVariant).all()
  pricing_service.resolve_effective(db, variants, company_id=1)
  db.query(Job).filter(Job.company_id == 1).count()
"""

# IPython when installed, stdlib REPL otherwise
try:
    from IPython import start_ipython
    from traitlets.config import Config

    cfg = Config()
    cfg.TerminalInteractiveShell.banner1 = BANNER
    start_ipython(argv=[], config=cfg, user_ns=namespace)
except ImportError:
    code.interact(banner=BANNER, local=namespace)
finally:
    db.close()
