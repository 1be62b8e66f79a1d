"""
routers/quotes.py — Quote intake (public) and quote administration (auth)

Business Rules:
- /submit and /submit-with-files are public; everything else requires auth
- Validation failures return 400 and write nothing
- submit-with-files ignores client-declared uploadedFiles and stores what
  was actually uploaded; written files are removed if anything fails
- convert-to-job is the only way to reach status "converted"

Called by: main.py (router mount)
Depends on: services/quote_service.py, services/conversion_service.py,
            services/upload_service.py, dependencies
"""

import json

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.exceptions import RequestValidationError
from loguru import logger
from pydantic import ValidationError
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import get_technician_directory, get_vin_lookup, require_user
from ..models import AdminUser
from ..schemas.quotes import QuoteStatusUpdate, QuoteSubmitRequest
from ..schemas.responses import (
    ConvertToJobResponse,
    OkResponse,
    QuoteListResponse,
    QuoteStatsResponse,
    QuoteSubmitResponse,
)
from ..services import conversion_service, quote_service
from ..services.technician_service import TechnicianDirectory
from ..services.upload_service import cleanup_files, save_uploads
from ..services.vin_service import VinLookupService

router = APIRouter(tags=["quotes"])


# ── Public intake ────────────────────────────────────────────────────


@router.post("/api/quote/submit", status_code=201, response_model=QuoteSubmitResponse)
async def submit_quote(
    payload: QuoteSubmitRequest,
    db: Session = Depends(get_db),
    vin_service: VinLookupService = Depends(get_vin_lookup),
):
    logger.info(
        "Quote request received: email={} division={} service={}",
        payload.email, payload.division, payload.service_type,
    )
    return await quote_service.submit_quote(db, payload, vin_service)


def _parse_form_data(data: str) -> QuoteSubmitRequest:
    try:
        raw = json.loads(data)
    except json.JSONDecodeError as e:
        raise RequestValidationError([{
            "loc": ("body", "data"), "msg": f"Invalid JSON: {e.msg}", "type": "json_invalid",
        }])
    if not isinstance(raw, dict):
        raise RequestValidationError([{
            "loc": ("body", "data"), "msg": "Expected a JSON object", "type": "dict_type",
        }])
    raw.pop("uploadedFiles", None)
    raw.pop("uploaded_files", None)
    try:
        return QuoteSubmitRequest.model_validate(raw)
    except ValidationError as e:
        raise RequestValidationError(e.errors(include_url=False))


@router.post("/api/quote/submit-with-files", status_code=201, response_model=QuoteSubmitResponse)
async def submit_quote_with_files(
    data: str = Form(...),
    files: list[UploadFile] = File(default=[]),
    db: Session = Depends(get_db),
    vin_service: VinLookupService = Depends(get_vin_lookup),
):
    payload = _parse_form_data(data)
    saved = await save_uploads(files)
    try:
        return await quote_service.submit_quote(db, payload, vin_service, uploaded_files=saved)
    except Exception:
        cleanup_files(saved)
        raise


# ── Administration ───────────────────────────────────────────────────


@router.get("/api/quote/submissions", response_model=QuoteListResponse)
async def list_submissions(
    status: str | None = None,
    search: str | None = None,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    user: AdminUser = Depends(require_user),
    db: Session = Depends(get_db),
):
    rows, total = quote_service.list_quotes(db, status, search, limit, offset)
    return {
        "submissions": [quote_service.quote_to_dict(q) for q in rows],
        "total": total,
        "limit": limit,
        "offset": offset,
    }


@router.get("/api/quote/stats", response_model=QuoteStatsResponse)
async def quote_stats(user: AdminUser = Depends(require_user), db: Session = Depends(get_db)):
    return quote_service.quote_stats(db)


@router.get("/api/quote/submissions/{quote_id}")
async def get_submission(
    quote_id: int,
    user: AdminUser = Depends(require_user),
    db: Session = Depends(get_db),
):
    return quote_service.quote_to_dict(quote_service.get_quote(db, quote_id))


@router.put("/api/quote/submissions/{quote_id}")
async def update_submission(
    quote_id: int,
    body: QuoteStatusUpdate,
    user: AdminUser = Depends(require_user),
    db: Session = Depends(get_db),
):
    quote = quote_service.update_quote_status(db, quote_id, body.status)
    logger.info("Quote {} status set to {} by {}", quote_id, body.status, user.email)
    return {"success": True, "submission": quote_service.quote_to_dict(quote)}


@router.delete("/api/quote/submissions/{quote_id}", response_model=OkResponse)
async def delete_submission(
    quote_id: int,
    user: AdminUser = Depends(require_user),
    db: Session = Depends(get_db),
):
    quote_service.delete_quote(db, quote_id)
    return {"success": True, "message": "Quote submission deleted"}


@router.post("/api/quote/submissions/{quote_id}/convert-to-job", response_model=ConvertToJobResponse)
async def convert_to_job(
    quote_id: int,
    user: AdminUser = Depends(require_user),
    db: Session = Depends(get_db),
    directory: TechnicianDirectory = Depends(get_technician_directory),
):
    return conversion_service.convert_quote_to_job(db, quote_id, directory)
