"""
filedesk/validators.py

Field validation for the record, diary and log-book forms.

Two layers:
- Pure validators (validate_diary / validate_logbook / validate_record) take the
  current form values and return {field: message}. An empty dict means valid.
  They have no side effects.
- FormState subclasses hold the mutable form values. set() is the point of
  entry: an out-of-range hour (1-12) or minute (0-59) is refused there and the
  field keeps its previous value. Editing a field clears its error.

IMPORTANT:
- Validation runs before any store/storage call; invalid input never reaches
  the network layer.
- Arrival-after-departure: the log-book compares clock minutes on the same
  day; the diary accepts overnight trips (the same rule duration() uses).
"""

from __future__ import annotations

import math
import re
from typing import Any, Callable, Dict, Mapping, Optional

from .timeutils import arrival_follows, parse_date, to12h
from .utils import (
    DEPARTMENTS,
    PUBLIC_REP_TYPES,
    PUBLIC_REPRESENTATION,
    RECORD_STATUSES,
    SUPPORTED_FILE_TYPES,
)

VEHICLE_RE = re.compile(r"^[A-Z]{2}\d{2}[A-Z]{1,2}\d{4}$")
VEHICLE_FORMAT_ERROR = "Invalid format. Use: MH10GF3456"

ErrorMap = Dict[str, str]


# ---------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------
def _blank(value: Any) -> bool:
    return value is None or str(value).strip() == ""


def parse_number(value: Any) -> Optional[float]:
    """Parse a decimal from user input. Returns None for blank, non-numeric or non-finite input."""
    if _blank(value):
        return None
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return number


def _parse_int(value: Any) -> Optional[int]:
    raw = "" if value is None else str(value).strip()
    # isdigit() also accepts superscripts and circled digits
    if not raw.isdecimal():
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def hour_in_range(value: Any) -> bool:
    hour = _parse_int(value)
    return hour is not None and 1 <= hour <= 12


def minute_in_range(value: Any) -> bool:
    minute = _parse_int(value)
    return minute is not None and 0 <= minute <= 59


def normalize_vehicle(value: Any) -> str:
    """Upper-case and drop all whitespace: "mh 10 gf 3456" -> "MH10GF3456"."""
    return re.sub(r"\s+", "", str(value or "")).upper()


def is_valid_vehicle(value: Any) -> bool:
    return bool(VEHICLE_RE.match(normalize_vehicle(value)))


def clock_text(values: Mapping[str, Any], prefix: str) -> Optional[str]:
    """Build "HH:MM AM|PM" from <prefix>_hour/_minute/_period, or None if incomplete or out of range."""
    hour = values.get(f"{prefix}_hour")
    minute = values.get(f"{prefix}_minute")
    period = (values.get(f"{prefix}_period") or "").upper()
    if not hour_in_range(hour) or not minute_in_range(minute) or period not in ("AM", "PM"):
        return None
    return to12h(_parse_int(hour), _parse_int(minute), period)


def _check_time(values: Mapping[str, Any], prefix: str, required_message: str) -> Optional[str]:
    if _blank(values.get(f"{prefix}_hour")) or _blank(values.get(f"{prefix}_minute")):
        return required_message
    if clock_text(values, prefix) is None:
        return "Invalid time"
    return None


def _check_non_negative(value: Any) -> Optional[str]:
    number = parse_number(value)
    if number is None or number < 0:
        return "Enter a valid number"
    return None


# ---------------------------------------------------------------------
# Pure validators
# ---------------------------------------------------------------------
def validate_diary(values: Mapping[str, Any]) -> ErrorMap:
    errors: ErrorMap = {}

    if parse_date(values.get("date")) is None:
        errors["date"] = "Date is required"
    if _blank(values.get("travel_from")):
        errors["travel_from"] = "Travel From is required"
    if _blank(values.get("travel_to")):
        errors["travel_to"] = "Travel To is required"

    start_error = _check_time(values, "time_from", "Start time is required")
    if start_error:
        errors["time_from"] = start_error
    end_error = _check_time(values, "time_to", "End time is required")
    if end_error:
        errors["time_to"] = end_error

    if not start_error and not end_error:
        if not arrival_follows(
            clock_text(values, "time_from"), clock_text(values, "time_to"), allow_overnight=True
        ):
            errors["time_to"] = "End time must be after start time"

    distance = parse_number(values.get("distance"))
    if distance is None or distance <= 0:
        errors["distance"] = "Distance must be a positive number"

    if _blank(values.get("vehicle")):
        errors["vehicle"] = "Vehicle No is required"
    elif not is_valid_vehicle(values.get("vehicle")):
        errors["vehicle"] = VEHICLE_FORMAT_ERROR

    # Remark is optional.
    return errors


def validate_logbook(values: Mapping[str, Any]) -> ErrorMap:
    errors: ErrorMap = {}

    if parse_date(values.get("date")) is None:
        errors["date"] = "Date is required"

    departure_error = _check_time(values, "dep", "Departure time is required")
    if departure_error:
        errors["departure"] = departure_error
    arrival_error = _check_time(values, "arr", "Arrival time is required")
    if arrival_error:
        errors["arrival"] = arrival_error
    if not departure_error and not arrival_error:
        if not arrival_follows(clock_text(values, "dep"), clock_text(values, "arr"), allow_overnight=False):
            errors["arrival"] = "Arrival must be after departure"

    if _blank(values.get("start_location")):
        errors["start_location"] = "Starting location is required"
    if _blank(values.get("destination")):
        errors["destination"] = "Destination is required"

    if _blank(values.get("before_reading")):
        errors["before_reading"] = "Before reading is required"
    elif _check_non_negative(values.get("before_reading")):
        errors["before_reading"] = "Enter a valid number"

    if _blank(values.get("after_reading")):
        errors["after_reading"] = "After reading is required"
    elif _check_non_negative(values.get("after_reading")):
        errors["after_reading"] = "Enter a valid number"

    before = parse_number(values.get("before_reading"))
    after = parse_number(values.get("after_reading"))
    if before is not None and after is not None and after <= before:
        errors["after_reading"] = "After reading must be greater than before"

    kilometers = values.get("kilometers")
    if _blank(kilometers):
        errors["kilometers"] = "Kilometers is required"
    else:
        number = parse_number(kilometers)
        if number is None or number <= 0:
            errors["kilometers"] = "Enter a valid number"

    if _blank(values.get("purpose")):
        errors["purpose"] = "Purpose is required"
    if _blank(values.get("used_by")):
        errors["used_by"] = "Driver name is required"

    for optional in ("fuel", "oil"):
        if not _blank(values.get(optional)) and _check_non_negative(values.get(optional)):
            errors[optional] = "Enter a valid number"

    return errors


def validate_record(
    values: Mapping[str, Any],
    *,
    require_file: bool = False,
    file_type: Optional[str] = None,
    file_size: Optional[int] = None,
    max_bytes: Optional[int] = None,
    inward_taken: bool = False,
) -> ErrorMap:
    """
    Validate the record upload/edit form.

    file_type/file_size describe a newly selected file (None when no file was chosen).
    inward_taken is the result of the uniqueness lookup done by the caller.
    """
    errors: ErrorMap = {}

    department = (values.get("department") or "").strip()
    if not department:
        errors["department"] = "Department is required"
    elif department not in DEPARTMENTS:
        errors["department"] = "Select a valid department"
    elif department == PUBLIC_REPRESENTATION and values.get("public_rep_type") not in PUBLIC_REP_TYPES:
        errors["public_rep_type"] = "Select MLA or MP"

    if _blank(values.get("subject")):
        errors["subject"] = "Subject is required"

    status = (values.get("status") or "").strip()
    if status and status not in RECORD_STATUSES:
        errors["status"] = "Select a valid status"

    for date_field in ("inward_date", "receiving_date"):
        raw = values.get(date_field)
        if not _blank(raw) and parse_date(raw) is None:
            errors[date_field] = "Enter a valid date"

    if inward_taken:
        errors["inward_number"] = "Inward Number already exists"

    if file_type is None:
        if require_file:
            errors["file"] = "Please select a file"
    elif file_type not in SUPPORTED_FILE_TYPES:
        subtype = file_type.split("/")[-1] if file_type else "unknown"
        errors["file"] = f"Unsupported file format: {subtype.upper()}"
    elif max_bytes is not None and (file_size or 0) > max_bytes:
        errors["file"] = f"File size must be less than {max_bytes // (1024 * 1024)}MB"

    return errors


# ---------------------------------------------------------------------
# Form state
# ---------------------------------------------------------------------
class FormState:
    """
    Mutable form values plus the current error map.

    Subclasses declare FIELDS, DEFAULTS and the validator. Values are kept as
    strings, the way they arrive from the browser.
    """

    FIELDS: tuple = ()
    DEFAULTS: Dict[str, str] = {}
    HOUR_FIELDS: frozenset = frozenset()
    MINUTE_FIELDS: frozenset = frozenset()
    READ_ONLY_FIELDS: frozenset = frozenset()
    # field name -> error key (time parts share one error key)
    ERROR_KEYS: Dict[str, str] = {}
    validator: Callable[..., ErrorMap]

    def __init__(self, values: Optional[Mapping[str, Any]] = None):
        self.values: Dict[str, str] = {name: self.DEFAULTS.get(name, "") for name in self.FIELDS}
        self.errors: ErrorMap = {}
        self.rejected: set[str] = set()
        if values:
            self.load(values)

    @classmethod
    def from_form(cls, form: Mapping[str, Any]) -> "FormState":
        """Bind submitted data. Starts from blank values so a refused entry stays empty."""
        state = cls({name: "" for name in cls.FIELDS})
        state.rejected.clear()
        for name in cls.FIELDS:
            if name in form:
                state.set(name, form.get(name))
        return state

    def load(self, values: Mapping[str, Any]) -> None:
        """Load stored values (edit screens). Bypasses entry checks; read-only fields included."""
        for name in self.FIELDS:
            if name in values:
                self.values[name] = "" if values[name] is None else str(values[name])

    # --- point of entry ---
    def set(self, name: str, value: Any) -> bool:
        """
        Update one field. Returns False when the input is refused.

        Refused: unknown/read-only fields and out-of-range hour or minute input.
        Clearing a time part (empty string) is allowed.
        """
        if name not in self.FIELDS or name in self.READ_ONLY_FIELDS:
            return False

        text = "" if value is None else str(value)
        if text.strip():
            if name in self.HOUR_FIELDS and not hour_in_range(text):
                self.rejected.add(name)
                return False
            if name in self.MINUTE_FIELDS and not minute_in_range(text):
                self.rejected.add(name)
                return False

        self.values[name] = self.normalize(name, text)
        self.rejected.discard(name)
        self.clear_error(name)
        self.after_set(name)
        return True

    def normalize(self, name: str, value: str) -> str:
        return value

    def after_set(self, name: str) -> None:
        """Hook for derived fields."""

    def clear_error(self, name: str) -> None:
        self.errors.pop(name, None)
        self.errors.pop(self.ERROR_KEYS.get(name, name), None)

    # --- validation ---
    def validate(self, **context: Any) -> ErrorMap:
        errors = type(self).validator(self.values, **context)
        for name in self.rejected:
            errors[self.ERROR_KEYS.get(name, name)] = "Invalid time"
        self.errors = errors
        return errors

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def clock(self, prefix: str) -> Optional[str]:
        return clock_text(self.values, prefix)

    def is_dirty(self, baseline: Mapping[str, Any]) -> bool:
        """Structural comparison against the last-loaded values."""
        def _norm(value: Any) -> str:
            return "" if value is None else str(value)

        current = {name: _norm(self.values.get(name)) for name in self.FIELDS}
        loaded = {name: _norm(baseline.get(name)) for name in self.FIELDS}
        return current != loaded


class DiaryForm(FormState):
    FIELDS = (
        "date",
        "travel_from",
        "travel_to",
        "time_from_hour",
        "time_from_minute",
        "time_from_period",
        "time_to_hour",
        "time_to_minute",
        "time_to_period",
        "distance",
        "vehicle",
        "remark",
    )
    DEFAULTS = {
        "time_from_hour": "9",
        "time_from_minute": "0",
        "time_from_period": "AM",
        "time_to_hour": "5",
        "time_to_minute": "0",
        "time_to_period": "PM",
    }
    HOUR_FIELDS = frozenset({"time_from_hour", "time_to_hour"})
    MINUTE_FIELDS = frozenset({"time_from_minute", "time_to_minute"})
    ERROR_KEYS = {
        "time_from_hour": "time_from",
        "time_from_minute": "time_from",
        "time_from_period": "time_from",
        "time_to_hour": "time_to",
        "time_to_minute": "time_to",
        "time_to_period": "time_to",
    }
    validator = staticmethod(validate_diary)

    def normalize(self, name: str, value: str) -> str:
        if name == "vehicle":
            return normalize_vehicle(value)
        if name.endswith("_period"):
            return value.upper()
        return value

    def clear_error(self, name: str) -> None:
        # Any edit re-opens both time checks.
        super().clear_error(name)
        self.errors.pop("time_from", None)
        self.errors.pop("time_to", None)


class LogBookForm(FormState):
    FIELDS = (
        "date",
        "fuel",
        "oil",
        "dep_hour",
        "dep_minute",
        "dep_period",
        "arr_hour",
        "arr_minute",
        "arr_period",
        "start_location",
        "destination",
        "before_reading",
        "after_reading",
        "kilometers",
        "purpose",
        "used_by",
    )
    DEFAULTS = {
        "dep_hour": "09",
        "dep_minute": "00",
        "dep_period": "AM",
        "arr_hour": "06",
        "arr_minute": "00",
        "arr_period": "PM",
    }
    HOUR_FIELDS = frozenset({"dep_hour", "arr_hour"})
    MINUTE_FIELDS = frozenset({"dep_minute", "arr_minute"})
    READ_ONLY_FIELDS = frozenset({"kilometers"})
    ERROR_KEYS = {
        "dep_hour": "departure",
        "dep_minute": "departure",
        "dep_period": "departure",
        "arr_hour": "arrival",
        "arr_minute": "arrival",
        "arr_period": "arrival",
    }
    validator = staticmethod(validate_logbook)

    def normalize(self, name: str, value: str) -> str:
        if name.endswith("_period"):
            return value.upper()
        return value

    def after_set(self, name: str) -> None:
        if name in ("before_reading", "after_reading"):
            self.recompute_kilometers()

    def recompute_kilometers(self) -> None:
        """kilometers = after - before (one decimal) when after > before; cleared otherwise."""
        before = parse_number(self.values.get("before_reading"))
        after = parse_number(self.values.get("after_reading"))
        if before is not None and after is not None and after > before:
            self.values["kilometers"] = f"{after - before:.1f}"
        else:
            self.values["kilometers"] = ""


class RecordForm(FormState):
    FIELDS = (
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
    DEFAULTS = {"status": "Pending"}
    validator = staticmethod(validate_record)

    def normalize(self, name: str, value: str) -> str:
        if name == "inward_number":
            return value.strip()
        return value
