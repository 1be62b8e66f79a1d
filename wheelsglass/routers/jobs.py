"""
routers/jobs.py — Jobs created from converted quotes (auth)

Business Rules:
- Job numbers render as JOB-00042
- Status changes append to status_history with the admin's email

Called by: main.py (router mount)
Depends on: services/job_service.py, dependencies
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import require_user
from ..models import AdminUser
from ..schemas.jobs import JobStatusUpdate
from ..services import job_service

router = APIRouter(tags=["jobs"])


@router.get("/api/jobs")
async def list_jobs(
    status: str | None = None,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    user: AdminUser = Depends(require_user),
    db: Session = Depends(get_db),
):
    rows, total = job_service.list_jobs(db, status, limit, offset)
    return {
        "jobs": [job_service.job_summary(j) for j in rows],
        "total": total,
        "limit": limit,
        "offset": offset,
    }


@router.get("/api/jobs/stats")
async def job_stats(user: AdminUser = Depends(require_user), db: Session = Depends(get_db)):
    return job_service.job_stats(db)


@router.get("/api/jobs/{job_id}")
async def get_job(job_id: int, user: AdminUser = Depends(require_user), db: Session = Depends(get_db)):
    return job_service.job_to_dict(job_service.get_job(db, job_id))


@router.patch("/api/jobs/{job_id}/status")
async def update_job_status(
    job_id: int,
    body: JobStatusUpdate,
    user: AdminUser = Depends(require_user),
    db: Session = Depends(get_db),
):
    job = job_service.update_job_status(db, job_id, body.status, triggered_by=user.email, note=body.note)
    return {"success": True, "job": job_service.job_to_dict(job)}
