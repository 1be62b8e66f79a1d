"""
routers/auth.py — Admin login, logout and session status

Business Rules:
- Login is limited to addresses in ADMIN_EMAILS with the shared ADMIN_PASSWORD
- Email normalized to lowercase on login
- Admin rows are auto-created on first login
- The session cookie stores only the admin id

Called by: main.py (router mount)
Depends on: dependencies, models, config
"""

import hmac
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ..config import APP_VERSION, settings
from ..database import get_db
from ..dependencies import get_user
from ..models import AdminUser
from ..schemas.auth import LoginRequest

log = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


@router.post("/auth/login")
async def login(body: LoginRequest, request: Request, db: Session = Depends(get_db)):
    email = body.email.strip().lower()
    if (
        email not in settings.admin_email_list
        or not settings.admin_password
        or not hmac.compare_digest(body.password, settings.admin_password)
    ):
        log.warning("Rejected admin login for %s", email)
        raise HTTPException(401, "Invalid email or password")

    user = db.query(AdminUser).filter_by(email=email).first()
    if not user:
        user = AdminUser(email=email, name=email.split("@")[0], role="admin", is_active=True)
        db.add(user)
    if not user.is_active:
        raise HTTPException(403, "Account deactivated, contact an administrator")
    user.last_login_at = datetime.now(timezone.utc)
    db.commit()

    request.session["user_id"] = user.id
    log.info("Admin %s logged in", email)
    return {"success": True, "user": {"id": user.id, "email": user.email, "name": user.name}}


@router.post("/auth/logout")
async def logout(request: Request):
    request.session.clear()
    return {"success": True}


@router.get("/auth/status")
async def auth_status(request: Request, db: Session = Depends(get_db)):
    user = get_user(request, db)
    return {
        "authenticated": user is not None,
        "user": {"id": user.id, "email": user.email, "name": user.name, "role": user.role} if user else None,
        "app_version": APP_VERSION,
    }
