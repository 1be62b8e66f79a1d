"""
services/technician_service.py — Technician directory and ZIP matching

The directory is built once at startup from seed_data/technicians.json and
lives on app.state; routes receive it through a dependency. All reads return
copies so callers never mutate the shared map.

Business Rules:
- Statuses: available | busy | offline
- Ratings are integers 1-5
- Auto-assignment considers only available technicians covering the job ZIP
- Highest rating wins; equal ratings go to the lowest technician id
- Listings sort available → busy → offline, then by id

Called by: main.py (lifespan), dependencies.py, services/conversion_service.py,
           routers/technicians.py
Depends on: utils/normalization.py
"""

import json
import threading
from dataclasses import asdict, dataclass, field, replace
from pathlib import Path

from loguru import logger

from ..utils.normalization import normalize_zip

TECHNICIAN_STATUSES = ("available", "busy", "offline")
_STATUS_ORDER = {s: i for i, s in enumerate(TECHNICIAN_STATUSES)}

SEED_FILE = Path(__file__).resolve().parent.parent / "seed_data" / "technicians.json"


@dataclass
class Technician:
    id: int
    name: str
    phone: str
    city: str
    state: str
    specialty: str = ""
    status: str = "available"
    email: str | None = None
    rating: int = 3
    coverage_zips: list[str] = field(default_factory=list)
    certifications: list[str] = field(default_factory=list)
    hire_date: str | None = None

    def to_dict(self) -> dict:
        d = asdict(self)
        d["coverageZips"] = d.pop("coverage_zips")
        d["hireDate"] = d.pop("hire_date")
        return d

    def summary(self) -> dict:
        """The slice copied into a job's form_data."""
        return {"id": self.id, "name": self.name, "phone": self.phone}


def _sort_key(t: Technician):
    return (_STATUS_ORDER.get(t.status, len(_STATUS_ORDER)), t.id)


class TechnicianDirectory:
    def __init__(self, technicians: list[Technician] | None = None):
        self._lock = threading.Lock()
        self._by_id: dict[int, Technician] = {}
        for t in technicians or []:
            self._by_id[t.id] = t

    def __len__(self) -> int:
        with self._lock:
            return len(self._by_id)

    def all(self) -> list[Technician]:
        with self._lock:
            return [replace(t) for t in self._by_id.values()]

    def get(self, technician_id: int) -> Technician | None:
        with self._lock:
            t = self._by_id.get(technician_id)
            return replace(t) if t else None

    def set_status(self, technician_id: int, status: str) -> Technician | None:
        if status not in TECHNICIAN_STATUSES:
            raise ValueError(f"Invalid technician status: {status}")
        with self._lock:
            t = self._by_id.get(technician_id)
            if t is None:
                return None
            t.status = status
            return replace(t)

    def search(
        self,
        state: str | None = None,
        city: str | None = None,
        status: str | None = None,
        search: str | None = None,
        zip_code: str | None = None,
    ) -> list[Technician]:
        techs = self.all()
        if state:
            techs = [t for t in techs if t.state.lower() == state.lower()]
        if city:
            techs = [t for t in techs if t.city.lower() == city.lower()]
        if status:
            techs = [t for t in techs if t.status == status]
        if search:
            s = search.lower()
            techs = [t for t in techs if s in t.name.lower() or s in t.specialty.lower()]
        if zip_code:
            z = normalize_zip(zip_code)
            techs = [t for t in techs if z in t.coverage_zips]
        return sorted(techs, key=_sort_key)

    def match_technician(self, zip_code: str | None) -> Technician | None:
        """Best available technician covering zip_code, or None."""
        z = normalize_zip(zip_code)
        if not z:
            return None
        candidates = [
            t for t in self.all()
            if t.status == "available" and z in t.coverage_zips
        ]
        if not candidates:
            return None
        return min(candidates, key=lambda t: (-t.rating, t.id))

    def stats(self) -> dict:
        techs = self.all()
        by_state: dict[str, dict] = {}
        for t in techs:
            s = by_state.setdefault(
                t.state,
                {"state": t.state, "total": 0, "available": 0, "busy": 0, "offline": 0, "cities": set()},
            )
            s["total"] += 1
            if t.status in _STATUS_ORDER:
                s[t.status] += 1
            s["cities"].add(t.city)
        rows = []
        for s in by_state.values():
            s["cities"] = len(s["cities"])
            rows.append(s)
        rows.sort(key=lambda r: (-r["total"], r["state"]))
        return {
            "totalTechnicians": len(techs),
            "totalStates": len(rows),
            "totalAvailable": sum(1 for t in techs if t.status == "available"),
            "byState": rows,
        }


def load_seed(path: Path | str = SEED_FILE) -> list[Technician]:
    with open(path, encoding="utf-8") as f:
        raw = json.load(f)
    techs = []
    for item in raw:
        item = dict(item)
        item["rating"] = int(item.get("rating") or 3)
        item["coverage_zips"] = [normalize_zip(z) for z in item.get("coverage_zips", [])]
        techs.append(Technician(**item))
    return techs


def build_directory(path: Path | str = SEED_FILE) -> TechnicianDirectory:
    directory = TechnicianDirectory(load_seed(path))
    logger.info("Technician directory loaded: {} technicians", len(directory))
    return directory
