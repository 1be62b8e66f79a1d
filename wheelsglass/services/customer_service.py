"""
services/customer_service.py — Customer resolution, lookup and rollups

Business Rules:
- Customers are matched by email (case-insensitive) first, then by phone digits
- A matched customer is refreshed with the submitted name and postal code
  and gains whichever of phone/email it was missing
- No customer is ever created twice for the same email
- Nothing here commits; callers own the transaction

Called by: services/quote_service.py, routers/customers.py
Depends on: models, services/activity_service.py, utils/normalization.py
"""

from datetime import datetime, timedelta, timezone

from loguru import logger
from sqlalchemy import case, func, or_
from sqlalchemy.orm import Session

from ..exceptions import ConflictError, NotFoundError
from ..models import Appointment, Customer, Job, QuoteSubmission
from ..utils.normalization import normalize_email, normalize_phone
from .activity_service import log_activity

# Model attribute ← API field
CUSTOMER_FIELDS = {
    "first_name": "firstName",
    "last_name": "lastName",
    "email": "primaryEmail",
    "secondary_email": "secondaryEmail",
    "phone": "primaryPhone",
    "alternate_phone": "alternatePhone",
    "address": "address",
    "postal_code": "postalCode",
    "city": "city",
    "state": "state",
    "sms_opt_in": "smsOptIn",
    "email_opt_in": "emailOptIn",
    "preferred_contact_method": "preferredContactMethod",
    "tags": "tags",
    "notes": "notes",
    "account_type": "accountType",
    "referred_by": "referredBy",
    "company": "company",
    "status": "status",
}

_REQUIRED = {"first_name", "last_name", "email"}


def _iso(dt):
    return dt.isoformat() if dt else None


def customer_to_dict(c: Customer) -> dict:
    d = {"id": c.id}
    for attr, key in CUSTOMER_FIELDS.items():
        d[key] = getattr(c, attr)
    d["tags"] = c.tags or []
    d.update({
        "totalJobs": c.total_jobs or 0,
        "totalSpent": c.total_spent or 0,
        "lastJobDate": _iso(c.last_job_date),
        "createdAt": _iso(c.created_at),
        "updatedAt": _iso(c.updated_at),
    })
    return d


# ── Lookup ───────────────────────────────────────────────────────────


def get_customer(db: Session, customer_id: int) -> Customer:
    customer = db.get(Customer, customer_id)
    if not customer:
        raise NotFoundError("Customer not found")
    return customer


def find_by_email(db: Session, email: str) -> Customer | None:
    norm = normalize_email(email)
    if not norm:
        return None
    return (
        db.query(Customer)
        .filter(func.lower(func.trim(Customer.email)) == norm)
        .order_by(Customer.id)
        .first()
    )


def find_by_phone(db: Session, phone: str) -> Customer | None:
    """Match on digits only, so "(555) 123-4567" finds "555.123.4567"."""
    digits = normalize_phone(phone)
    if not digits:
        return None
    # Phones are free-form, so compare in Python over rows containing the
    # last four digits.
    candidates = (
        db.query(Customer)
        .filter(Customer.phone.isnot(None), Customer.phone.contains(digits[-4:]))
        .order_by(Customer.id)
        .all()
    )
    for c in candidates:
        if normalize_phone(c.phone) == digits:
            return c
    return None


# ── Resolution ───────────────────────────────────────────────────────


def find_or_create_customer(
    db: Session,
    email: str,
    phone: str,
    first_name: str,
    last_name: str,
    postal_code: str | None = None,
) -> tuple[Customer, bool]:
    """Resolve the customer behind a quote. Returns (customer, created).

    A match takes the newly submitted name, postal code and contact details.
    """
    customer = find_by_email(db, email)
    if customer:
        customer.first_name = first_name
        customer.last_name = last_name
        if postal_code:
            customer.postal_code = postal_code
        if phone:
            customer.phone = phone
        db.flush()
        return customer, False

    customer = find_by_phone(db, phone)
    if customer:
        customer.first_name = first_name
        customer.last_name = last_name
        if postal_code:
            customer.postal_code = postal_code
        if email:
            customer.email = email.strip()
        db.flush()
        return customer, False

    customer = Customer(
        first_name=first_name,
        last_name=last_name,
        email=email.strip(),
        phone=phone,
        postal_code=postal_code,
    )
    db.add(customer)
    db.flush()
    log_activity(
        db,
        "customer_created",
        f"New customer created: {customer.full_name} ({customer.email})",
        {"customerId": customer.id, "source": "quote_submission"},
    )
    logger.info("Created customer {} for {}", customer.id, customer.email)
    return customer, True


# ── CRUD ─────────────────────────────────────────────────────────────


def create_customer(db: Session, data: dict) -> Customer:
    """data is keyed by model attribute name."""
    existing = find_by_email(db, data["email"])
    if existing:
        raise ConflictError("Customer with this email already exists", customerId=existing.id)
    customer = Customer(**data)
    db.add(customer)
    db.flush()
    log_activity(
        db,
        "customer_created",
        f"New customer created: {customer.full_name} ({customer.email})",
        {"customerId": customer.id},
    )
    return customer


def update_customer(db: Session, customer_id: int, updates: dict) -> Customer:
    customer = get_customer(db, customer_id)
    # Required columns cannot be cleared
    updates = {k: v for k, v in updates.items() if v is not None or k not in _REQUIRED}
    if "email" in updates:
        other = find_by_email(db, updates["email"])
        if other and other.id != customer.id:
            raise ConflictError("Customer with this email already exists", customerId=other.id)
    for attr, value in updates.items():
        setattr(customer, attr, value)
    log_activity(
        db,
        "customer_updated",
        f"Customer updated: {customer.full_name}",
        {"customerId": customer.id, "updates": [CUSTOMER_FIELDS.get(k, k) for k in updates]},
    )
    return customer


def delete_customer(db: Session, customer_id: int) -> None:
    customer = get_customer(db, customer_id)
    # Quotes and jobs keep their rows; only the link is cleared
    db.query(QuoteSubmission).filter_by(customer_id=customer_id).update({"customer_id": None})
    db.query(Job).filter_by(customer_id=customer_id).update({"customer_id": None})
    db.query(Appointment).filter_by(customer_id=customer_id).update({"customer_id": None})
    db.delete(customer)
    log_activity(db, "customer_deleted", f"Customer {customer_id} deleted", {"customerId": customer_id})


def list_customers(db: Session, search: str | None, limit: int, offset: int) -> tuple[list[Customer], int]:
    q = db.query(Customer)
    if search:
        like = f"%{search.strip().lower()}%"
        q = q.filter(or_(
            func.lower(Customer.first_name).like(like),
            func.lower(Customer.last_name).like(like),
            func.lower(Customer.email).like(like),
            Customer.phone.like(f"%{search.strip()}%"),
        ))
    total = q.count()
    rows = q.order_by(Customer.created_at.desc(), Customer.id.desc()).offset(offset).limit(limit).all()
    return rows, total


# ── Rollups ──────────────────────────────────────────────────────────


def customer_history(db: Session, customer_id: int) -> dict:
    from .quote_service import quote_to_dict
    from .job_service import job_to_dict

    customer = get_customer(db, customer_id)
    quotes = (
        db.query(QuoteSubmission)
        .filter_by(customer_id=customer_id)
        .order_by(QuoteSubmission.timestamp.desc(), QuoteSubmission.id.desc())
        .all()
    )
    appointments = (
        db.query(Appointment)
        .filter_by(customer_id=customer_id)
        .order_by(Appointment.created_at.desc(), Appointment.id.desc())
        .all()
    )
    jobs = (
        db.query(Job)
        .filter_by(customer_id=customer_id)
        .order_by(Job.timestamp.desc(), Job.id.desc())
        .all()
    )
    return {
        "customer": customer_to_dict(customer),
        "history": {
            "quotes": [quote_to_dict(q) for q in quotes],
            "appointments": [
                {
                    "id": a.id,
                    "jobId": a.job_id,
                    "requestedDate": a.requested_date,
                    "requestedTime": a.requested_time,
                    "serviceAddress": a.service_address,
                    "status": a.status,
                    "technicianId": a.technician_id,
                    "createdAt": _iso(a.created_at),
                }
                for a in appointments
            ],
            "transactions": [job_to_dict(j) for j in jobs],
            "summary": {
                "totalQuotes": len(quotes),
                "totalAppointments": len(appointments),
                "totalTransactions": len(jobs),
                "totalJobs": customer.total_jobs or 0,
                "totalSpent": customer.total_spent or 0,
                "lastJobDate": _iso(customer.last_job_date),
            },
        },
    }


def customer_stats(db: Session) -> dict:
    now = datetime.now(timezone.utc)
    day_ago = now - timedelta(days=1)
    week_ago = now - timedelta(days=7)
    month_ago = now - timedelta(days=30)

    row = db.query(
        func.count(Customer.id),
        func.sum(case((Customer.created_at > day_ago, 1), else_=0)),
        func.sum(case((Customer.created_at > week_ago, 1), else_=0)),
        func.sum(case((Customer.created_at > month_ago, 1), else_=0)),
        func.sum(case((Customer.account_type == "individual", 1), else_=0)),
        func.sum(case((Customer.account_type == "business", 1), else_=0)),
        func.sum(case((Customer.account_type == "fleet", 1), else_=0)),
        func.coalesce(func.sum(Customer.total_spent), 0),
        func.coalesce(func.sum(Customer.total_jobs), 0),
    ).one()
    total = row[0] or 0
    return {
        "total": total,
        "newLast24Hours": row[1] or 0,
        "newLast7Days": row[2] or 0,
        "newLast30Days": row[3] or 0,
        "byAccountType": {
            "individual": row[4] or 0,
            "business": row[5] or 0,
            "fleet": row[6] or 0,
        },
        "totalRevenue": int(row[7] or 0),
        "averageJobsPerCustomer": (int(row[8] or 0) / total) if total else 0,
    }
