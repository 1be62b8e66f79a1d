"""
routers/customers.py — Customer CRUD, lookup and history

Business Rules:
- Every route requires auth
- Responses use the {success, data} envelope (create/update return {success, customer})
- Creating a customer whose email already exists returns 409 with customerId
- Deleting a customer keeps its quotes and jobs (link set to null)

Called by: main.py (router mount)
Depends on: services/customer_service.py, dependencies
"""

from fastapi import APIRouter, Depends, Query
from loguru import logger
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import require_user
from ..exceptions import NotFoundError
from ..models import AdminUser
from ..schemas.customers import CustomerCreate, CustomerUpdate
from ..schemas.responses import DataEnvelope, OkResponse
from ..services import customer_service

router = APIRouter(tags=["customers"])


@router.get("/api/customers", response_model=DataEnvelope)
async def list_customers(
    search: str | None = None,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    user: AdminUser = Depends(require_user),
    db: Session = Depends(get_db),
):
    rows, total = customer_service.list_customers(db, search, limit, offset)
    return {
        "success": True,
        "data": {
            "customers": [customer_service.customer_to_dict(c) for c in rows],
            "total": total,
            "limit": limit,
            "offset": offset,
        },
    }


@router.get("/api/customers/stats", response_model=DataEnvelope)
async def customer_stats(user: AdminUser = Depends(require_user), db: Session = Depends(get_db)):
    return {"success": True, "data": customer_service.customer_stats(db)}


@router.get("/api/customers/search/email/{email}", response_model=DataEnvelope)
async def find_by_email(email: str, user: AdminUser = Depends(require_user), db: Session = Depends(get_db)):
    customer = customer_service.find_by_email(db, email)
    if not customer:
        raise NotFoundError("Customer not found")
    return {"success": True, "data": customer_service.customer_to_dict(customer)}


@router.get("/api/customers/search/phone/{phone}", response_model=DataEnvelope)
async def find_by_phone(phone: str, user: AdminUser = Depends(require_user), db: Session = Depends(get_db)):
    customer = customer_service.find_by_phone(db, phone)
    if not customer:
        raise NotFoundError("Customer not found")
    return {"success": True, "data": customer_service.customer_to_dict(customer)}


@router.get("/api/customers/{customer_id}", response_model=DataEnvelope)
async def get_customer(customer_id: int, user: AdminUser = Depends(require_user), db: Session = Depends(get_db)):
    customer = customer_service.get_customer(db, customer_id)
    return {"success": True, "data": customer_service.customer_to_dict(customer)}


@router.get("/api/customers/{customer_id}/history", response_model=DataEnvelope)
async def customer_history(customer_id: int, user: AdminUser = Depends(require_user), db: Session = Depends(get_db)):
    return {"success": True, "data": customer_service.customer_history(db, customer_id)}


@router.post("/api/customers", status_code=201)
async def create_customer(
    payload: CustomerCreate,
    user: AdminUser = Depends(require_user),
    db: Session = Depends(get_db),
):
    try:
        customer = customer_service.create_customer(db, payload.model_dump(exclude_none=True))
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Customer {} created by {}", customer.id, user.email)
    return {"success": True, "customer": customer_service.customer_to_dict(customer)}


@router.put("/api/customers/{customer_id}")
async def update_customer(
    customer_id: int,
    payload: CustomerUpdate,
    user: AdminUser = Depends(require_user),
    db: Session = Depends(get_db),
):
    updates = payload.model_dump(exclude_unset=True)
    try:
        customer = customer_service.update_customer(db, customer_id, updates)
        db.commit()
    except Exception:
        db.rollback()
        raise
    return {"success": True, "customer": customer_service.customer_to_dict(customer)}


@router.delete("/api/customers/{customer_id}", response_model=OkResponse)
async def delete_customer(customer_id: int, user: AdminUser = Depends(require_user), db: Session = Depends(get_db)):
    try:
        customer_service.delete_customer(db, customer_id)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Customer {} deleted by {}", customer_id, user.email)
    return {"success": True, "message": "Customer deleted successfully"}
