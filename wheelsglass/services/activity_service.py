"""Activity service — append-only audit feed.

log_activity() only adds the row to the session; the caller's commit makes
it durable together with the change it describes, so a rolled-back
operation leaves no stray audit entry.

Usage:
    from wheelsglass.services.activity_service import log_activity
    log_activity(db, "quote_deleted", f"Quote #{qid} deleted", {"quoteId": qid})
"""

from sqlalchemy.orm import Session

from ..models import ActivityLog


def log_activity(
    db: Session,
    type: str,
    message: str,
    details: dict | None = None,
    job_id: int | None = None,
) -> ActivityLog:
    entry = ActivityLog(type=type, message=message, details=details, job_id=job_id)
    db.add(entry)
    return entry


def recent_activity(db: Session, type: str | None = None, limit: int = 50) -> list[ActivityLog]:
    q = db.query(ActivityLog)
    if type:
        q = q.filter(ActivityLog.type == type)
    return q.order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc()).limit(limit).all()


def activity_to_dict(a: ActivityLog) -> dict:
    return {
        "id": a.id,
        "type": a.type,
        "message": a.message,
        "details": a.details,
        "jobId": a.job_id,
        "timestamp": a.timestamp.isoformat() if a.timestamp else None,
    }
