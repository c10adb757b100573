from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.permissions import CallerContext
from app.core.security import get_caller_context
from app.db.session import get_db
from app.models.job import JobStatus
from app.schemas.job import (
    JobCreate,
    JobMaterialsReplace,
    JobPage,
    JobResponse,
    JobStatusUpdate,
    JobUpdate,
)
from app.services import job_service
from app.services.notifications import notify_job_event

router = APIRouter()


@router.post("", response_model=JobResponse, status_code=status.HTTP_201_CREATED)
def create_job(
    data: JobCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller_context),
):
    job = job_service.create_job(db, data, caller)
    background_tasks.add_task(
        notify_job_event,
        "JOB_CREATED",
        job.id,
        job.company_id,
        {"job_number": job.job_number},
    )
    return job


@router.get("", response_model=JobPage)
def list_jobs(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    status: Optional[JobStatus] = Query(None),
    company_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller_context),
):
    jobs, meta = job_service.list_jobs(
        db, caller, page=page, limit=limit, status=status, company_id=company_id
    )
    return {"jobs": jobs, "meta": meta}


@router.get("/{job_id}", response_model=JobResponse)
def get_job(
    job_id: int,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller_context),
):
    return job_service.get_job(db, job_id, caller)


@router.patch("/{job_id}", response_model=JobResponse)
def update_job(
    job_id: int,
    data: JobUpdate,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller_context),
):
    return job_service.update_job(db, job_id, data, caller)


@router.patch("/{job_id}/status", response_model=JobResponse)
def update_job_status(
    job_id: int,
    data: JobStatusUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller_context),
):
    job = job_service.update_job_status(db, job_id, data.status, caller)
    background_tasks.add_task(
        notify_job_event,
        "JOB_STATUS_CHANGED",
        job.id,
        job.company_id,
        {"status": job.status.value},
    )
    return job


@router.put("/{job_id}/materials", response_model=JobResponse)
def replace_job_materials(
    job_id: int,
    data: JobMaterialsReplace,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller_context),
):
    return job_service.replace_lines(db, job_id, data.materials, caller)


@router.delete("/{job_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_job(
    job_id: int,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller_context),
):
    job_service.delete_job(db, job_id, caller)
