"""
services/conversion_service.py — Quote → Job conversion with auto-assignment

Business Rules:
- A quote converts to at most one job; converting twice is a conflict (409)
- The quote row is locked (SELECT ... FOR UPDATE) for the whole conversion
- jobs.quote_submission_id is unique, so a lost race also ends in 409
- Job creation, technician assignment, the quote status change and both
  activity entries commit in one transaction
- Assignment is advisory: the technician's own status is not changed

Called by: routers/quotes.py
Depends on: models, services/technician_service.py, services/activity_service.py
"""

from datetime import datetime, timezone

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..exceptions import ConflictError, NotFoundError
from ..models import Job, QuoteSubmission
from ..utils.normalization import normalize_zip
from .activity_service import log_activity
from .technician_service import TechnicianDirectory


def _form_data(quote: QuoteSubmission) -> dict:
    return {
        "source": "quote_submission",
        "quoteId": quote.id,
        "division": quote.division,
        "serviceType": quote.service_type,
        "location": quote.location,
        "zipCode": quote.zip_code,
        "selectedWindows": quote.selected_windows or [],
        "selectedWheels": quote.selected_wheels or [],
        "notes": quote.notes,
        "privacyTinted": quote.privacy_tinted,
        "licensePlate": quote.license_plate,
        "uploadedFiles": quote.uploaded_files or [],
    }


def convert_quote_to_job(
    db: Session,
    quote_id: int,
    directory: TechnicianDirectory,
    triggered_by: str = "quote_conversion",
) -> dict:
    quote = (
        db.query(QuoteSubmission)
        .filter(QuoteSubmission.id == quote_id)
        .with_for_update()
        .first()
    )
    if not quote:
        db.rollback()
        raise NotFoundError("Quote submission not found")
    if quote.status == "converted":
        db.rollback()
        raise ConflictError("Quote has already been converted to a job")

    now = datetime.now(timezone.utc)
    try:
        form_data = _form_data(quote)
        job = Job(
            quote_submission_id=quote.id,
            customer_id=quote.customer_id,
            customer_name=f"{quote.first_name} {quote.last_name}",
            customer_email=quote.email,
            customer_phone=quote.mobile_phone,
            vehicle_year=quote.year,
            vehicle_make=quote.make,
            vehicle_model=quote.model,
            vehicle_vin=quote.vin,
            damage_description=quote.notes,
            status="pending",
            form_data=form_data,
            status_history=[{
                "status": "pending",
                "timestamp": now.isoformat(),
                "triggered_by": triggered_by,
            }],
            source_type="quote",
        )
        db.add(job)
        db.flush()

        tech = directory.match_technician(quote.zip_code)
        assigned = None
        if tech:
            assigned = tech.summary()
            # Reassign rather than mutate so the JSON column is marked dirty
            job.form_data = {**form_data, "assignedTechnician": assigned}
            log_activity(
                db,
                "technician_auto_assigned",
                f"Technician {tech.name} auto-assigned to job #{job.id}",
                {
                    "jobId": job.id,
                    "technicianId": tech.id,
                    "technicianName": tech.name,
                    "zipCode": normalize_zip(quote.zip_code),
                    "matched_from": "zip_code_coverage",
                },
                job_id=job.id,
            )

        quote.status = "converted"
        quote.processed_at = now
        log_activity(
            db,
            "quote_converted",
            f"Quote #{quote.id} converted to job #{job.id}",
            {
                "quoteId": quote.id,
                "jobId": job.id,
                "customerId": quote.customer_id,
                "division": quote.division,
                "serviceType": quote.service_type,
                "assignedTechnician": assigned,
            },
            job_id=job.id,
        )
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning("Concurrent conversion of quote {} lost the race", quote_id)
        raise ConflictError("Quote has already been converted to a job")
    except Exception:
        db.rollback()
        raise

    logger.info(
        "Quote {} converted to job {} (technician: {})",
        quote_id, job.id, assigned["name"] if assigned else "none",
    )
    return {
        "success": True,
        "message": "Quote converted to job successfully",
        "jobId": job.id,
        "quoteId": quote_id,
        "assignedTechnician": assigned,
    }
