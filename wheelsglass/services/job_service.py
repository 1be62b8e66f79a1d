"""Job queries and status transitions for the admin console."""

from datetime import datetime, timezone

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..exceptions import NotFoundError
from ..models import Job
from ..schemas.jobs import JOB_STATUSES
from .activity_service import log_activity


def _iso(dt):
    return dt.isoformat() if dt else None


def job_summary(j: Job) -> dict:
    tech = (j.form_data or {}).get("assignedTechnician")
    return {
        "id": j.id,
        "jobNumber": j.job_number,
        "quoteId": j.quote_submission_id,
        "customerId": j.customer_id,
        "customerName": j.customer_name,
        "customerEmail": j.customer_email,
        "customerPhone": j.customer_phone,
        "vehicle": " ".join(str(p) for p in (j.vehicle_year, j.vehicle_make, j.vehicle_model) if p) or None,
        "status": j.status,
        "paymentStatus": j.payment_status,
        "finalPrice": j.final_price,
        "assignedTechnician": tech,
        "timestamp": _iso(j.timestamp),
    }


def job_to_dict(j: Job) -> dict:
    d = job_summary(j)
    d.update({
        "vehicleYear": j.vehicle_year,
        "vehicleMake": j.vehicle_make,
        "vehicleModel": j.vehicle_model,
        "vehicleVin": j.vehicle_vin,
        "damageDescription": j.damage_description,
        "sourceType": j.source_type,
        "formData": j.form_data or {},
        "statusHistory": j.status_history or [],
    })
    return d


def get_job(db: Session, job_id: int) -> Job:
    job = db.get(Job, job_id)
    if not job:
        raise NotFoundError("Job not found")
    return job


def list_jobs(db: Session, status: str | None, limit: int, offset: int) -> tuple[list[Job], int]:
    q = db.query(Job)
    if status:
        q = q.filter(Job.status == status)
    total = q.count()
    rows = q.order_by(Job.timestamp.desc(), Job.id.desc()).offset(offset).limit(limit).all()
    return rows, total


def job_stats(db: Session) -> dict:
    counts = dict(db.query(Job.status, func.count(Job.id)).group_by(Job.status).all())
    stats = {s: counts.get(s, 0) for s in JOB_STATUSES}
    stats["total"] = sum(counts.values())
    return stats


def update_job_status(db: Session, job_id: int, status: str, triggered_by: str, note: str | None = None) -> Job:
    job = get_job(db, job_id)
    previous = job.status
    entry = {
        "status": status,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "triggered_by": triggered_by,
    }
    if note:
        entry["note"] = note
    job.status = status
    job.status_history = [*(job.status_history or []), entry]
    log_activity(
        db,
        "job_status_updated",
        f"Job {job.job_number} status changed from {previous} to {status}",
        {"jobId": job.id, "previousStatus": previous, "newStatus": status, "triggeredBy": triggered_by},
        job_id=job.id,
    )
    db.commit()
    return job
