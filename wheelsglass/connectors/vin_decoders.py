"""VIN decoders — Omega EDI and NHTSA vPIC.

Each decoder turns a 17-character VIN into a VehicleDetails. A result only
counts when year, make and model are all present (is_valid). Decoders
raise on transport errors; VinLookupService decides what to try next.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass

from ..utils import safe_int

log = logging.getLogger(__name__)


@dataclass
class VehicleDetails:
    vin: str
    year: int = 0
    make: str = ""
    model: str = ""
    body_type: str | None = None
    engine: str | None = None
    trim: str | None = None
    source: str = "manual"  # omega_edi | nhtsa | manual

    @property
    def is_valid(self) -> bool:
        return bool(self.year and self.make and self.model)

    def to_dict(self) -> dict:
        d = asdict(self)
        d["is_valid"] = self.is_valid
        return d


class BaseDecoder(ABC):
    source = "manual"

    def __init__(self, timeout: float = 15.0, max_retries: int = 1):
        self.timeout = timeout
        self.max_retries = max_retries

    @property
    def enabled(self) -> bool:
        return True

    async def decode(self, vin: str) -> VehicleDetails:
        last_err = None
        for attempt in range(self.max_retries + 1):
            try:
                return await self._do_decode(vin)
            except Exception as e:
                last_err = e
                if attempt < self.max_retries:
                    await asyncio.sleep(2**attempt)
                else:
                    log.warning(f"{self.__class__.__name__} failed for {vin}: {e}")
        raise last_err

    @abstractmethod
    async def _do_decode(self, vin: str) -> VehicleDetails:
        pass


class OmegaEdiDecoder(BaseDecoder):
    """Omega EDI vehicle lookup — the paid decoder, tried first."""

    source = "omega_edi"

    def __init__(self, api_key: str, base_url: str, timeout: float = 10.0):
        super().__init__(timeout=timeout)
        self.api_key = api_key
        self.base_url = base_url if base_url.endswith("/") else f"{base_url}/"

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def _do_decode(self, vin: str) -> VehicleDetails:
        from ..http_client import http

        r = await http.get(
            f"{self.base_url}vehicles/vin/{vin}",
            headers={"api_key": self.api_key, "Content-Type": "application/json"},
            timeout=self.timeout,
        )
        r.raise_for_status()
        data = r.json() or {}
        return VehicleDetails(
            vin=vin,
            year=safe_int(data.get("year")) or 0,
            make=data.get("make") or "",
            model=data.get("model") or "",
            body_type=data.get("body_type"),
            engine=data.get("engine"),
            trim=data.get("trim"),
            source=self.source,
        )


class NhtsaDecoder(BaseDecoder):
    """NHTSA vPIC DecodeVin — free public fallback."""

    source = "nhtsa"

    def __init__(self, api_url: str, timeout: float = 15.0):
        super().__init__(timeout=timeout)
        self.api_url = api_url.rstrip("/")

    async def _do_decode(self, vin: str) -> VehicleDetails:
        from ..http_client import http

        r = await http.get(
            f"{self.api_url}/DecodeVin/{vin}",
            params={"format": "json"},
            timeout=self.timeout,
        )
        r.raise_for_status()
        values = {
            item.get("Variable"): item.get("Value")
            for item in (r.json() or {}).get("Results", [])
        }
        return VehicleDetails(
            vin=vin,
            year=safe_int(values.get("Model Year")) or 0,
            make=values.get("Make") or "",
            model=values.get("Model") or "",
            body_type=values.get("Body Class") or None,
            engine=values.get("Engine Model") or None,
            trim=values.get("Trim") or None,
            source=self.source,
        )
