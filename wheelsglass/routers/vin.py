"""routers/vin.py — VIN validation and decode for the admin console."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import get_vin_lookup, require_user
from ..models import AdminUser
from ..services.vin_service import VinLookupService, validate_vin, year_from_vin
from ..utils.normalization import normalize_vin

router = APIRouter(tags=["vin"])


@router.get("/api/vin/{vin}")
async def lookup_vin(
    vin: str,
    user: AdminUser = Depends(require_user),
    db: Session = Depends(get_db),
    vin_service: VinLookupService = Depends(get_vin_lookup),
):
    vin = normalize_vin(vin)
    ok, reason = validate_vin(vin)
    result = {
        "vin": vin,
        "validation": {"valid": ok, "reason": reason, "yearFromVin": year_from_vin(vin)},
        "vehicle": None,
    }
    details = await vin_service.lookup(db, vin)
    if details.is_valid:
        result["vehicle"] = details.to_dict()
    return result
