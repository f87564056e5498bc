"""
filedesk/entities.py

Typed entries kept in the live keyed store.

One dataclass per entry kind, each tagged with KIND:
- Record          data/<key>
- DiaryEntry      dairy/<uid>/<key>
- LogBookEntry    logbook/<uid>/<key>
- PersonalDocument portfolioDocuments/<uid>/<key>
- UserProfile     user/<uid>

from_snapshot() is tolerant: stored data may be incomplete or written by an
older client, so missing fields fall back to defaults instead of failing.
from_form() is strict: it validates and raises ValidationError.
"""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass, fields
from datetime import datetime, timezone
from typing import Any, ClassVar, Dict, Mapping, Optional

from .errors import ValidationError
from .timeutils import duration, from24h, parse12h
from .utils import DEFAULT_STATUS
from .validators import (
    clock_text,
    normalize_vehicle,
    parse_number,
    validate_diary,
    validate_logbook,
)

RECORDS_ROOT = "data"
DIARY_ROOT = "dairy"
LOGBOOK_ROOT = "logbook"
DOCUMENTS_ROOT = "portfolioDocuments"
PROFILES_ROOT = "user"


def now_ms() -> int:
    return int(time.time() * 1000)


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _int(value: Any) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return 0


class _StoreEntry:
    """Shared (de)serialisation for the dataclasses below. `key` is never stored."""

    KIND: ClassVar[str] = ""
    INT_FIELDS: ClassVar[frozenset] = frozenset()

    @classmethod
    def from_snapshot(cls, key: str, value: Optional[Mapping[str, Any]]):
        value = value if isinstance(value, Mapping) else {}
        kwargs: Dict[str, Any] = {"key": key}
        for f in fields(cls):
            if f.name == "key" or f.name not in value:
                continue
            raw = value[f.name]
            kwargs[f.name] = _int(raw) if f.name in cls.INT_FIELDS else _text(raw)
        return cls(**kwargs)

    def to_store(self) -> Dict[str, Any]:
        data = asdict(self)
        data.pop("key", None)
        return data


# ---------------------------------------------------------------------
# Records (department files)
# ---------------------------------------------------------------------
@dataclass
class Record(_StoreEntry):
    KIND: ClassVar[str] = "record"
    INT_FIELDS: ClassVar[frozenset] = frozenset({"file_size", "created_at", "updated_at"})

    key: str = ""
    department: str = ""
    public_rep_type: str = ""
    received_from: str = ""
    subject: str = ""
    allocated_to: str = ""
    status: str = DEFAULT_STATUS
    inward_number: str = ""
    inward_date: str = ""
    receiving_date: str = ""
    description: str = ""

    file_name: str = ""
    file_url: str = ""
    file_size: int = 0
    file_type: str = ""
    file_category: str = ""
    storage_path: str = ""

    uploaded_by: str = ""
    uploader_email: str = ""
    uploader_role: str = ""
    uploader_name: str = ""

    created_at: int = 0
    updated_at: int = 0

    @classmethod
    def from_snapshot(cls, key: str, value: Optional[Mapping[str, Any]]) -> "Record":
        record = super().from_snapshot(key, value)
        if not record.status:
            record.status = DEFAULT_STATUS
        return record

    FORM_FIELDS: ClassVar[tuple] = (
        "department",
        "public_rep_type",
        "received_from",
        "subject",
        "allocated_to",
        "status",
        "inward_number",
        "inward_date",
        "receiving_date",
        "description",
    )

    def form_values(self) -> Dict[str, str]:
        values = {name: getattr(self, name) or "" for name in self.FORM_FIELDS}
        values["status"] = self.status or DEFAULT_STATUS
        return values

    def file_info(self) -> Dict[str, Any]:
        return {
            "file_name": self.file_name,
            "file_url": self.file_url,
            "file_size": self.file_size,
            "file_type": self.file_type,
            "file_category": self.file_category,
            "storage_path": self.storage_path,
        }


# ---------------------------------------------------------------------
# Travel diary
# ---------------------------------------------------------------------
@dataclass
class DiaryEntry(_StoreEntry):
    KIND: ClassVar[str] = "diary"

    key: str = ""
    date: str = ""
    travel_from: str = ""
    travel_to: str = ""
    time_from: str = ""
    time_to: str = ""
    distance: str = ""
    vehicle: str = ""
    remark: str = ""
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def from_form(cls, values: Mapping[str, Any], *, key: str = "", created_at: str = "") -> "DiaryEntry":
        errors = validate_diary(values)
        if errors:
            raise ValidationError(errors)
        return cls(
            key=key,
            date=_text(values.get("date")).strip(),
            travel_from=_text(values.get("travel_from")).strip(),
            travel_to=_text(values.get("travel_to")).strip(),
            time_from=clock_text(values, "time_from") or "",
            time_to=clock_text(values, "time_to") or "",
            distance=_text(values.get("distance")).strip(),
            vehicle=normalize_vehicle(values.get("vehicle")),
            remark=_text(values.get("remark")).strip(),
            created_at=created_at or now_iso(),
            updated_at=now_iso() if key else "",
        )

    @property
    def duration(self) -> str:
        return duration(self.time_from, self.time_to)

    def form_values(self) -> Dict[str, str]:
        start = parse12h(self.time_from)
        end = parse12h(self.time_to)
        return {
            "date": self.date,
            "travel_from": self.travel_from,
            "travel_to": self.travel_to,
            "time_from_hour": str(start.hour) if start else "",
            "time_from_minute": str(start.minute) if start else "",
            "time_from_period": start.period if start else "AM",
            "time_to_hour": str(end.hour) if end else "",
            "time_to_minute": str(end.minute) if end else "",
            "time_to_period": end.period if end else "AM",
            "distance": self.distance,
            "vehicle": self.vehicle,
            "remark": self.remark,
        }


# ---------------------------------------------------------------------
# Vehicle log-book
# ---------------------------------------------------------------------
@dataclass
class LogBookEntry(_StoreEntry):
    KIND: ClassVar[str] = "logbook"

    key: str = ""
    date: str = ""
    fuel: str = ""
    oil: str = ""
    departure_time: str = ""
    arrival_time: str = ""
    start_location: str = ""
    destination: str = ""
    before_reading: str = ""
    after_reading: str = ""
    kilometers: str = ""
    purpose: str = ""
    used_by: str = ""
    remarks: str = ""
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def from_snapshot(cls, key: str, value: Optional[Mapping[str, Any]]) -> "LogBookEntry":
        entry = super().from_snapshot(key, value)
        # Rows saved before the 12-hour picker hold "HH:MM".
        entry.departure_time = from24h(entry.departure_time) or ""
        entry.arrival_time = from24h(entry.arrival_time) or ""
        return entry

    @classmethod
    def from_form(cls, values: Mapping[str, Any], *, key: str = "", created_at: str = "") -> "LogBookEntry":
        errors = validate_logbook(values)
        if errors:
            raise ValidationError(errors)
        return cls(
            key=key,
            date=_text(values.get("date")).strip(),
            fuel=_text(values.get("fuel")).strip(),
            oil=_text(values.get("oil")).strip(),
            departure_time=clock_text(values, "dep") or "",
            arrival_time=clock_text(values, "arr") or "",
            start_location=_text(values.get("start_location")).strip(),
            destination=_text(values.get("destination")).strip(),
            before_reading=_text(values.get("before_reading")).strip(),
            after_reading=_text(values.get("after_reading")).strip(),
            kilometers=_text(values.get("kilometers")).strip(),
            purpose=_text(values.get("purpose")).strip(),
            used_by=_text(values.get("used_by")).strip(),
            remarks="",
            created_at=created_at or now_iso(),
            updated_at=now_iso(),
        )

    @property
    def rounded_kilometers(self) -> int:
        return round(parse_number(self.kilometers) or 0)

    @property
    def duration(self) -> str:
        return duration(self.departure_time, self.arrival_time)

    def form_values(self) -> Dict[str, str]:
        dep = parse12h(self.departure_time)
        arr = parse12h(self.arrival_time)
        return {
            "date": self.date,
            "fuel": self.fuel,
            "oil": self.oil,
            "dep_hour": f"{dep.hour:02d}" if dep else "12",
            "dep_minute": f"{dep.minute:02d}" if dep else "00",
            "dep_period": dep.period if dep else "AM",
            "arr_hour": f"{arr.hour:02d}" if arr else "12",
            "arr_minute": f"{arr.minute:02d}" if arr else "00",
            "arr_period": arr.period if arr else "AM",
            "start_location": self.start_location,
            "destination": self.destination,
            "before_reading": self.before_reading,
            "after_reading": self.after_reading,
            "kilometers": self.kilometers,
            "purpose": self.purpose,
            "used_by": self.used_by,
        }


# ---------------------------------------------------------------------
# Personal documents
# ---------------------------------------------------------------------
@dataclass
class PersonalDocument(_StoreEntry):
    KIND: ClassVar[str] = "document"
    INT_FIELDS: ClassVar[frozenset] = frozenset({"size"})

    key: str = ""
    title: str = ""
    file_name: str = ""
    file_url: str = ""
    storage_path: str = ""
    size: int = 0
    uploaded_at: str = ""
    updated_at: str = ""


# ---------------------------------------------------------------------
# User profile
# ---------------------------------------------------------------------
@dataclass
class UserProfile(_StoreEntry):
    KIND: ClassVar[str] = "profile"

    key: str = ""
    name: str = ""
    email: str = ""
    mobile: str = ""
    role: str = ""
    created_at: str = ""
