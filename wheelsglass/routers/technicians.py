"""
routers/technicians.py — Technician directory (auth)

Reads and status changes go through the TechnicianDirectory held on
app.state. Status changes are recorded in the activity feed.

Called by: main.py (router mount)
Depends on: services/technician_service.py, services/activity_service.py, dependencies
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import get_technician_directory, require_user
from ..exceptions import NotFoundError
from ..models import AdminUser
from ..schemas.technicians import TechnicianStatusUpdate
from ..services.activity_service import log_activity
from ..services.technician_service import TechnicianDirectory

router = APIRouter(tags=["technicians"])


@router.get("/api/technicians")
async def list_technicians(
    state: str | None = None,
    city: str | None = None,
    status: str | None = None,
    search: str | None = None,
    zip: str | None = None,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    user: AdminUser = Depends(require_user),
    directory: TechnicianDirectory = Depends(get_technician_directory),
):
    techs = directory.search(state=state, city=city, status=status, search=search, zip_code=zip)
    return {
        "technicians": [t.to_dict() for t in techs[offset:offset + limit]],
        "total": len(techs),
        "limit": limit,
        "offset": offset,
    }


@router.get("/api/technicians/by-location")
async def technicians_by_location(
    state: str | None = None,
    city: str | None = None,
    user: AdminUser = Depends(require_user),
    directory: TechnicianDirectory = Depends(get_technician_directory),
):
    if not state:
        raise HTTPException(400, "State parameter is required")
    techs = directory.search(state=state, city=city)
    return {
        "technicians": [t.to_dict() for t in techs],
        "total": len(techs),
        "state": state,
        "city": city or "all",
    }


@router.get("/api/technicians/stats")
async def technician_stats(
    user: AdminUser = Depends(require_user),
    directory: TechnicianDirectory = Depends(get_technician_directory),
):
    return directory.stats()


@router.get("/api/technicians/{technician_id}")
async def get_technician(
    technician_id: int,
    user: AdminUser = Depends(require_user),
    directory: TechnicianDirectory = Depends(get_technician_directory),
):
    tech = directory.get(technician_id)
    if not tech:
        raise NotFoundError("Technician not found")
    return tech.to_dict()


@router.patch("/api/technicians/{technician_id}/status")
async def update_technician_status(
    technician_id: int,
    body: TechnicianStatusUpdate,
    user: AdminUser = Depends(require_user),
    db: Session = Depends(get_db),
    directory: TechnicianDirectory = Depends(get_technician_directory),
):
    tech = directory.get(technician_id)
    if not tech:
        raise NotFoundError("Technician not found")
    # Directory only changes once the activity row is committed
    log_activity(
        db,
        "technician_status_updated",
        f"Technician {tech.name} status changed to {body.status}",
        {"technicianId": tech.id, "newStatus": body.status, "updatedBy": user.email},
    )
    db.commit()
    tech = directory.set_status(technician_id, body.status)
    return {"success": True, "technician": tech.to_dict()}
