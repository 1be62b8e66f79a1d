"""routers/activity.py — Recent activity feed for the admin dashboard."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import require_user
from ..models import AdminUser
from ..services.activity_service import activity_to_dict, recent_activity

router = APIRouter(tags=["activity"])


@router.get("/api/activity")
async def list_activity(
    type: str | None = None,
    limit: int = Query(50, ge=1, le=500),
    user: AdminUser = Depends(require_user),
    db: Session = Depends(get_db),
):
    return {"activities": [activity_to_dict(a) for a in recent_activity(db, type, limit)]}
