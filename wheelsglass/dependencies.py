"""
dependencies.py — Shared FastAPI Dependencies

Reusable dependency functions for authentication and injected services.
All routers import from here instead of defining their own auth logic.

Business Rules:
- get_user returns None if not logged in (non-throwing)
- require_user raises 401 if not logged in, 403 if deactivated
- An x-agent-key header matching AGENT_API_KEY authenticates as the agent account
- The technician directory and VIN service are injected so tests can swap them

Called by: all routers
Depends on: models, database, config, services
"""

import logging

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from .config import settings
from .database import get_db
from .models import AdminUser
from .services.technician_service import TechnicianDirectory
from .services.vin_service import VinLookupService, get_vin_service

log = logging.getLogger(__name__)

AGENT_EMAIL = "agent@wheelsglass.local"


# ── Authentication ────────────────────────────────────────────────────


def get_user(request: Request, db: Session) -> AdminUser | None:
    """Return current admin from session, or None if not logged in."""
    uid = request.session.get("user_id")
    if not uid:
        return None
    try:
        return db.get(AdminUser, uid)
    except Exception:
        request.session.clear()
        return None


def _agent_user(db: Session) -> AdminUser:
    user = db.query(AdminUser).filter_by(email=AGENT_EMAIL).first()
    if not user:
        user = AdminUser(email=AGENT_EMAIL, name="Service Agent", role="agent", is_active=True)
        db.add(user)
        db.commit()
        log.info("Created service agent account %s", AGENT_EMAIL)
    return user


def require_user(request: Request, db: Session = Depends(get_db)) -> AdminUser:
    """Dependency: raises 401 if no authenticated user, 403 if deactivated."""
    user = get_user(request, db)
    if not user:
        # Service-to-service auth
        agent_key = request.headers.get("x-agent-key")
        if agent_key and settings.agent_api_key and agent_key == settings.agent_api_key:
            user = _agent_user(db)
    if not user:
        raise HTTPException(401, "Not authenticated")
    if not getattr(user, "is_active", True):
        request.session.clear()
        raise HTTPException(403, "Account deactivated, contact an administrator")
    return user


# ── Injected services ─────────────────────────────────────────────────


def get_technician_directory(request: Request) -> TechnicianDirectory:
    directory = getattr(request.app.state, "technicians", None)
    if directory is None:
        raise HTTPException(503, "Technician directory not loaded")
    return directory


def get_vin_lookup() -> VinLookupService:
    return get_vin_service()
