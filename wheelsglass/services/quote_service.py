"""
services/quote_service.py — Public quote intake and quote administration

Business Rules:
- VIN decode runs only for a well-formed VIN and never fails the request
- A valid decode overrides form year/make/model; otherwise form values stand
- Customer resolution, the QuoteSubmission insert and its activity entry
  commit together or not at all
- The confirmation email is sent after commit as a detached task
- Status moves to "converted" only through conversion_service, and a
  converted quote keeps that status
- Moving to "processed" stamps processed_at

Called by: routers/quotes.py, services/customer_service.py (quote_to_dict)
Depends on: models, services/customer_service.py, services/vin_service.py,
            services/email_service.py, services/activity_service.py, background.py
"""

from datetime import datetime, timedelta, timezone

from loguru import logger
from sqlalchemy import case, func, or_
from sqlalchemy.orm import Session

from .. import background
from ..exceptions import ConflictError, NotFoundError
from ..models import QuoteSubmission
from ..schemas.quotes import QuoteSubmitRequest
from .activity_service import log_activity
from .customer_service import find_or_create_customer
from .email_service import send_quote_confirmation
from .vin_service import VinLookupService, is_valid_vin_format


def _iso(dt):
    return dt.isoformat() if dt else None


def quote_to_dict(q: QuoteSubmission) -> dict:
    return {
        "id": q.id,
        "customerId": q.customer_id,
        "firstName": q.first_name,
        "lastName": q.last_name,
        "mobilePhone": q.mobile_phone,
        "email": q.email,
        "location": q.location,
        "zipCode": q.zip_code,
        "serviceType": q.service_type,
        "division": q.division,
        "privacyTinted": q.privacy_tinted,
        "year": q.year,
        "make": q.make,
        "model": q.model,
        "vin": q.vin,
        "licensePlate": q.license_plate,
        "notes": q.notes,
        "selectedWindows": q.selected_windows or [],
        "selectedWheels": q.selected_wheels or [],
        "uploadedFiles": q.uploaded_files or [],
        "status": q.status,
        "timestamp": _iso(q.timestamp),
        "processedAt": _iso(q.processed_at),
    }


# ── Intake ───────────────────────────────────────────────────────────


async def submit_quote(
    db: Session,
    form: QuoteSubmitRequest,
    vin_service: VinLookupService,
    uploaded_files: list[dict] | None = None,
) -> dict:
    """Persist a validated quote request and queue its confirmation email.

    uploaded_files, when given, replaces the client-declared metadata with
    what was actually stored on disk.
    """
    vehicle = None
    if form.vin and is_valid_vin_format(form.vin):
        try:
            details = await vin_service.lookup(db, form.vin)
        except Exception as e:
            logger.warning("VIN lookup failed for {}, using form values: {}", form.vin, e)
            details = None
        if details is not None and details.is_valid:
            vehicle = {"year": details.year, "make": details.make, "model": details.model}
            logger.info("VIN {} decoded: {} {} {}", form.vin, details.year, details.make, details.model)
        else:
            logger.info("VIN {} could not be decoded, using provided values", form.vin)

    files = uploaded_files if uploaded_files is not None else [f.model_dump() for f in form.uploaded_files]
    selections = form.selected_windows if form.division == "glass" else form.selected_wheels

    try:
        customer, created = find_or_create_customer(
            db,
            email=form.email,
            phone=form.mobile_phone,
            first_name=form.first_name,
            last_name=form.last_name,
            postal_code=form.zip_code,
        )
        submission = QuoteSubmission(
            customer_id=customer.id,
            first_name=form.first_name,
            last_name=form.last_name,
            mobile_phone=form.mobile_phone,
            email=form.email,
            location=form.location,
            zip_code=form.zip_code,
            service_type=form.service_type,
            division=form.division,
            privacy_tinted=form.privacy_tinted,
            year=vehicle["year"] if vehicle else form.year,
            make=vehicle["make"] if vehicle else form.make,
            model=vehicle["model"] if vehicle else form.model,
            vin=form.vin,
            license_plate=form.license_plate,
            notes=form.notes,
            selected_windows=list(form.selected_windows),
            selected_wheels=list(form.selected_wheels),
            uploaded_files=files,
            status="submitted",
        )
        db.add(submission)
        db.flush()
        log_activity(
            db,
            "quote_submitted",
            f"New quote request from {form.first_name} {form.last_name} ({form.email})",
            {
                "submissionId": submission.id,
                "customerId": customer.id,
                "division": form.division,
                "serviceType": form.service_type,
                "location": form.location,
                "vinDecoded": vehicle is not None,
                "selectionCount": len(selections),
                "fileCount": len(files),
            },
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        "Quote {} stored for customer {} ({})",
        submission.id, customer.id, "created" if created else "found",
    )

    background.spawn(
        send_quote_confirmation(
            email=form.email,
            submission_id=submission.id,
            customer_name=f"{form.first_name} {form.last_name}",
            division=form.division,
            service_type=form.service_type,
            vehicle=vehicle or {"year": form.year, "make": form.make, "model": form.model},
        ),
        name=f"quote-confirmation-{submission.id}",
    )

    return {
        "success": True,
        "submissionId": submission.id,
        "customerId": customer.id,
        "message": "Quote request submitted successfully",
        "vinDecoded": vehicle is not None,
        "vehicleInfo": vehicle,
    }


# ── Administration ───────────────────────────────────────────────────


def get_quote(db: Session, quote_id: int) -> QuoteSubmission:
    quote = db.get(QuoteSubmission, quote_id)
    if not quote:
        raise NotFoundError("Quote submission not found")
    return quote


def list_quotes(
    db: Session,
    status: str | None = None,
    search: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[QuoteSubmission], int]:
    q = db.query(QuoteSubmission)
    if status:
        q = q.filter(QuoteSubmission.status == status)
    if search:
        like = f"%{search.strip().lower()}%"
        q = q.filter(or_(
            func.lower(QuoteSubmission.first_name).like(like),
            func.lower(QuoteSubmission.last_name).like(like),
            func.lower(QuoteSubmission.email).like(like),
            func.lower(QuoteSubmission.vin).like(like),
        ))
    total = q.count()
    rows = (
        q.order_by(QuoteSubmission.timestamp.desc(), QuoteSubmission.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return rows, total


def update_quote_status(db: Session, quote_id: int, status: str) -> QuoteSubmission:
    quote = get_quote(db, quote_id)
    previous = quote.status
    if status == "converted" and previous != "converted":
        raise ConflictError("Use convert-to-job to mark a quote as converted")
    if previous == "converted" and status != "converted":
        raise ConflictError("Quote has already been converted to a job")
    quote.status = status
    if status == "processed":
        quote.processed_at = datetime.now(timezone.utc)
    log_activity(
        db,
        "quote_status_updated",
        f"Quote #{quote.id} status changed from {previous} to {status}",
        {"submissionId": quote.id, "previousStatus": previous, "newStatus": status},
    )
    db.commit()
    return quote


def delete_quote(db: Session, quote_id: int) -> None:
    quote = get_quote(db, quote_id)
    details = {"submissionId": quote.id, "email": quote.email, "status": quote.status}
    db.delete(quote)
    log_activity(db, "quote_deleted", f"Quote #{quote_id} deleted", details)
    db.commit()


def quote_stats(db: Session) -> dict:
    now = datetime.now(timezone.utc)
    day_ago = now - timedelta(days=1)
    week_ago = now - timedelta(days=7)

    def by_status(s):
        return func.sum(case((QuoteSubmission.status == s, 1), else_=0))

    row = db.query(
        func.count(QuoteSubmission.id),
        by_status("submitted"),
        by_status("processed"),
        by_status("quoted"),
        by_status("converted"),
        by_status("archived"),
        func.sum(case((QuoteSubmission.timestamp > day_ago, 1), else_=0)),
        func.sum(case((QuoteSubmission.timestamp > week_ago, 1), else_=0)),
    ).one()
    keys = ("total", "submitted", "processed", "quoted", "converted", "archived", "last24Hours", "last7Days")
    return {k: int(v or 0) for k, v in zip(keys, row)}
