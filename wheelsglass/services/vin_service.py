"""
services/vin_service.py — VIN validation and cached decoding

Business Rules:
- A VIN is 17 characters from [A-HJ-NPR-Z0-9] (no I, O, Q)
- Check digit (position 9) uses the NAV weighted-sum algorithm; remainder 10 is 'X'
- Lookups hit the vehicle_lookups cache first, then Omega EDI, then NHTSA
- Only a valid result (year, make and model present) is returned as decoded
- Cache writes are committed immediately and never fail the caller
- lookup() never raises; every failure degrades to an invalid result

Called by: services/quote_service.py, routers/vin.py
Depends on: connectors/vin_decoders.py, models, config
"""

import re
from datetime import datetime, timezone

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import settings
from ..connectors.vin_decoders import BaseDecoder, NhtsaDecoder, OmegaEdiDecoder, VehicleDetails
from ..models import VehicleLookup
from ..utils.normalization import normalize_vin

VIN_PATTERN = re.compile(r"^[A-HJ-NPR-Z0-9]{17}$")

_TRANSLITERATION = {
    "A": 1, "B": 2, "C": 3, "D": 4, "E": 5, "F": 6, "G": 7, "H": 8,
    "J": 1, "K": 2, "L": 3, "M": 4, "N": 5, "P": 7, "R": 9,
    "S": 2, "T": 3, "U": 4, "V": 5, "W": 6, "X": 7, "Y": 8, "Z": 9,
    **{str(d): d for d in range(10)},
}
_WEIGHTS = [8, 7, 6, 5, 4, 3, 2, 10, 0, 9, 8, 7, 6, 5, 4, 3, 2]

# 10th character → model year (current 30-year cycle)
_YEAR_CODES = {
    "A": 2010, "B": 2011, "C": 2012, "D": 2013, "E": 2014,
    "F": 2015, "G": 2016, "H": 2017, "J": 2018, "K": 2019,
    "L": 2020, "M": 2021, "N": 2022, "P": 2023, "R": 2024,
    "S": 2025, "T": 2026, "V": 2027, "W": 2028, "X": 2029,
    "Y": 2030, "1": 2031, "2": 2032, "3": 2033, "4": 2034,
    "5": 2035, "6": 2036, "7": 2037, "8": 2038, "9": 2039,
}


# ── Validation ───────────────────────────────────────────────────────


def is_valid_vin_format(vin: str | None) -> bool:
    return bool(vin) and VIN_PATTERN.match(vin.upper()) is not None


def is_valid_vin_checksum(vin: str | None) -> bool:
    if not is_valid_vin_format(vin):
        return False
    vin = vin.upper()
    total = sum(_TRANSLITERATION[ch] * w for ch, w in zip(vin, _WEIGHTS))
    remainder = total % 11
    check = "X" if remainder == 10 else str(remainder)
    return vin[8] == check


def validate_vin(vin: str | None) -> tuple[bool, str | None]:
    """Format + checksum. Returns (ok, reason)."""
    if not vin or len(vin) != 17:
        return False, "VIN must be exactly 17 characters"
    if not is_valid_vin_format(vin):
        return False, "VIN contains invalid characters (I, O, Q not allowed)"
    if not is_valid_vin_checksum(vin):
        return False, "VIN checksum is invalid"
    return True, None


def year_from_vin(vin: str | None) -> int | None:
    if not is_valid_vin_format(vin):
        return None
    return _YEAR_CODES.get(vin[9].upper())


# ── Lookup ───────────────────────────────────────────────────────────


def _from_cache(row: VehicleLookup) -> VehicleDetails:
    return VehicleDetails(
        vin=row.vin,
        year=row.year or 0,
        make=row.make or "",
        model=row.model or "",
        body_type=row.body_type,
        engine=row.engine,
        trim=row.trim,
        source=row.lookup_source or "manual",
    )


class VinLookupService:
    def __init__(self, decoders: list[BaseDecoder]):
        self.decoders = decoders

    async def lookup(self, db: Session, vin: str) -> VehicleDetails:
        vin = normalize_vin(vin)
        if not is_valid_vin_format(vin):
            return VehicleDetails(vin=vin)

        cached = db.query(VehicleLookup).filter_by(vin=vin).first()
        if cached and cached.is_valid:
            cached.last_used = datetime.now(timezone.utc)
            self._commit(db, vin)
            return _from_cache(cached)

        result = VehicleDetails(vin=vin)
        for decoder in self.decoders:
            if not decoder.enabled:
                continue
            try:
                details = await decoder.decode(vin)
            except Exception as e:
                logger.info("{} lookup failed for {}, trying next: {}", decoder.source, vin, e)
                continue
            if details.is_valid:
                result = details
                break

        self._store(db, cached, result)
        return result

    def _store(self, db: Session, row: VehicleLookup | None, details: VehicleDetails) -> None:
        if row is None:
            row = VehicleLookup(vin=details.vin)
            db.add(row)
        row.year = details.year or None
        row.make = details.make or None
        row.model = details.model or None
        row.body_type = details.body_type
        row.engine = details.engine
        row.trim = details.trim
        row.lookup_source = details.source
        row.is_valid = details.is_valid
        row.last_used = datetime.now(timezone.utc)
        self._commit(db, details.vin)

    @staticmethod
    def _commit(db: Session, vin: str) -> None:
        try:
            db.commit()
        except SQLAlchemyError as e:
            # Usually a concurrent insert of the same VIN; the other writer wins
            db.rollback()
            logger.warning("Failed to cache VIN {}: {}", vin, e)


def get_vin_service() -> VinLookupService:
    return VinLookupService([
        OmegaEdiDecoder(settings.omega_api_key, settings.omega_api_base_url),
        NhtsaDecoder(settings.nhtsa_api_url, timeout=settings.vin_lookup_timeout),
    ])
