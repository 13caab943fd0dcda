"""Schema tolerant extraction of slots and available dates from captured JSON.

Booking widgets expose undocumented payloads, so extraction walks every JSON
body recursively and matches each object against a fixed set of known
shapes. A node may match several shapes; duplicates collapse during
normalisation, where the first occurrence of a ``(date, time)`` pair wins.
"""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence

import structlog

from .models import AvailableDate, CapturedResponse, Slot
from .utils import (
    JsonValue,
    as_array,
    as_count,
    as_identifier,
    as_object,
    as_text,
    first_present,
    to_iso_date,
)

LOGGER = structlog.get_logger(__name__)

MAX_DEPTH = 64

PRACTITIONER_LIST_KEYS = (
    "Therapists",
    "therapists",
    "Doctors",
    "doctors",
    "Practitioners",
    "practitioners",
)
PRACTITIONER_ID_KEYS = ("Oid", "oid", "Id", "id", "ID", "UserId", "userId")
PRACTITIONER_NAME_KEYS = ("Name", "name", "DisplayName", "displayName", "FullName", "fullName")

DURATION_SLOT_KEYS = ("DurationTimeSlots", "durationTimeSlots")
TIME_ENTRY_KEYS = ("TimeSlots", "timeSlots")
START_KEYS = ("Start", "start")
SLOT_LABEL_KEYS = ("TimeSlot", "timeSlot")
OWNER_KEYS = ("User", "user")

SLOT_LIST_KEYS = ("AvailableSlots", "Slots", "slots")
DATE_KEYS = ("Date", "date")
TIME_KEYS = ("Time", "time")
DOCTOR_KEYS = (
    "Doctor",
    "doctor",
    "DoctorName",
    "doctorName",
    "Therapist",
    "therapist",
    "Practitioner",
    "practitioner",
)
RANGE_DATE_KEYS = ("date", "Date", "startDate", "StartDate")

# Walked before any other key of the same object.
CONTAINER_KEYS = ("availableSlots", "appointments", "Appointments") + SLOT_LIST_KEYS

AVAILABLE_DATE_KEYS = (
    "AvailableDates",
    "availableDates",
    "dates",
    "Dates",
    "available_dates",
    "available-dates",
)
DATE_COUNT_KEYS = (
    "count",
    "Count",
    "slots",
    "Slots",
    "availableSlots",
    "AvailableSlots",
    "slotCount",
    "SlotCount",
    "available",
    "Available",
)
WRAPPER_KEYS = ("Data", "data")

CLOCK_IN_TIMESTAMP = re.compile(r"T(\d{2}:\d{2})")


@dataclass(frozen=True)
class Availability:
    """Normalised extraction output."""

    slots: List[Slot]
    available_dates: List[AvailableDate]


class DoctorDirectory(Mapping[str, str]):
    """Practitioner identifier to display name, read-only once built."""

    def __init__(self, names: Optional[Mapping[str, str]] = None):
        self._names: Dict[str, str] = dict(names or {})

    @classmethod
    def from_bodies(cls, bodies: Iterable[JsonValue]) -> "DoctorDirectory":
        names: Dict[str, str] = {}
        for body in bodies:
            for listing in _practitioner_listings(body, 0):
                for entry in listing:
                    entry_obj = as_object(entry)
                    if entry_obj is None:
                        continue
                    identifier = as_identifier(first_present(entry_obj, PRACTITIONER_ID_KEYS))
                    name = as_text(first_present(entry_obj, PRACTITIONER_NAME_KEYS))
                    if identifier and name:
                        names.setdefault(identifier, name)
        return cls(names)

    def __getitem__(self, key: str) -> str:
        return self._names[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._names)

    def __len__(self) -> int:
        return len(self._names)

    def resolve(self, owner: Any) -> Optional[str]:
        """Display name for ``owner``, or a ``User {id}`` placeholder."""
        identifier = as_identifier(owner)
        if identifier is None:
            return None
        return self._names.get(identifier, f"User {identifier}")


def _practitioner_listings(value: JsonValue, depth: int) -> Iterator[List[Any]]:
    if depth > MAX_DEPTH:
        return
    if isinstance(value, list):
        for item in value:
            yield from _practitioner_listings(item, depth + 1)
        return
    obj = as_object(value)
    if obj is None:
        return
    for key in PRACTITIONER_LIST_KEYS:
        listing = as_array(obj.get(key))
        if listing:
            yield listing
    for child in obj.values():
        if isinstance(child, (dict, list)):
            yield from _practitioner_listings(child, depth + 1)


# --- shape matchers -------------------------------------------------------


def _make_slot(date_value: Any, time_value: Any, doctor: Optional[str]) -> Optional[Slot]:
    date_iso = to_iso_date(date_value)
    time_text = as_text(time_value)
    if date_iso is None or time_text is None:
        return None
    return Slot(date=date_iso, time=time_text, doctor=doctor)


def _doctor_label(value: Any, directory: DoctorDirectory) -> Optional[str]:
    """Doctor field as a display name; ids known to the directory are resolved."""
    obj = as_object(value)
    if obj is not None:
        name = as_text(first_present(obj, PRACTITIONER_NAME_KEYS))
        if name:
            return name
        value = first_present(obj, PRACTITIONER_ID_KEYS)
        return directory.resolve(value) if value is not None else None
    identifier = as_identifier(value)
    if identifier is not None and identifier in directory:
        return directory[identifier]
    return as_text(value)


def _owner(*objects: Mapping[str, Any]) -> Any:
    for obj in objects:
        for key in OWNER_KEYS:
            if obj.get(key) is not None:
                return obj[key]
    return None


def _duration_time_slots(obj: Dict[str, Any], directory: DoctorDirectory) -> List[Slot]:
    """``DurationTimeSlots[].TimeSlots[]`` entries carrying ``Start`` and ``TimeSlot``."""
    slots: List[Slot] = []
    for duration in as_array(first_present(obj, DURATION_SLOT_KEYS)):
        duration_obj = as_object(duration)
        if duration_obj is None:
            continue
        for entry in as_array(first_present(duration_obj, TIME_ENTRY_KEYS)):
            entry_obj = as_object(entry)
            if entry_obj is None:
                continue
            start = first_present(entry_obj, START_KEYS)
            label = first_present(entry_obj, SLOT_LABEL_KEYS)
            if start is None or label is None:
                continue
            doctor = directory.resolve(_owner(entry_obj, duration_obj, obj))
            slot = _make_slot(start, label, doctor)
            if slot is not None:
                slots.append(slot)
    return slots


def _keyed_slot_lists(obj: Dict[str, Any], directory: DoctorDirectory) -> List[Slot]:
    """``AvailableSlots``/``Slots`` lists with explicit date, time and doctor fields."""
    slots: List[Slot] = []
    for key in SLOT_LIST_KEYS:
        for item in as_array(obj.get(key)):
            item_obj = as_object(item)
            if item_obj is None:
                continue
            slot = _make_slot(
                first_present(item_obj, DATE_KEYS),
                first_present(item_obj, TIME_KEYS),
                _doctor_label(first_present(item_obj, DOCTOR_KEYS), directory),
            )
            if slot is not None:
                slots.append(slot)
    return slots


def _date_time_pair(obj: Dict[str, Any], directory: DoctorDirectory) -> List[Slot]:
    date_value = first_present(obj, DATE_KEYS)
    time_value = first_present(obj, TIME_KEYS)
    if date_value is None or time_value is None:
        return []
    slot = _make_slot(
        date_value,
        time_value,
        _doctor_label(first_present(obj, DOCTOR_KEYS), directory),
    )
    return [slot] if slot is not None else []


def _start_time_slot(obj: Dict[str, Any], directory: DoctorDirectory) -> List[Slot]:
    start = first_present(obj, START_KEYS)
    label = first_present(obj, SLOT_LABEL_KEYS)
    if start is None or label is None:
        return []
    slot = _make_slot(start, label, directory.resolve(_owner(obj)))
    return [slot] if slot is not None else []


def _clock(value: Any) -> Optional[str]:
    text = as_text(value)
    if text is None:
        return None
    match = CLOCK_IN_TIMESTAMP.search(text)
    return match.group(1) if match else text


def _start_end_range(obj: Dict[str, Any], directory: DoctorDirectory) -> List[Slot]:
    """``startTime``/``endTime`` pairs rendered as ``HH:MM - HH:MM``."""
    start = _clock(obj.get("startTime"))
    end = _clock(obj.get("endTime"))
    if start is None or end is None:
        return []
    date_value = first_present(obj, RANGE_DATE_KEYS)
    if date_value is None:
        # Full timestamps carry their own date.
        date_value = obj.get("startTime")
    slot = _make_slot(
        date_value,
        f"{start} - {end}",
        _doctor_label(first_present(obj, DOCTOR_KEYS), directory),
    )
    return [slot] if slot is not None else []


ShapeMatcher = Callable[[Dict[str, Any], DoctorDirectory], List[Slot]]

SHAPE_MATCHERS: Sequence[ShapeMatcher] = (
    _duration_time_slots,
    _keyed_slot_lists,
    _date_time_pair,
    _start_time_slot,
    _start_end_range,
)


def _ordered_children(obj: Dict[str, Any]) -> Iterator[JsonValue]:
    seen = set()
    for key in CONTAINER_KEYS:
        if key in obj:
            seen.add(key)
            yield obj[key]
    for key, value in obj.items():
        if key not in seen:
            yield value


def _walk(value: JsonValue, directory: DoctorDirectory, found: List[Slot], depth: int) -> None:
    if depth > MAX_DEPTH:
        return
    if isinstance(value, list):
        for item in value:
            _walk(item, directory, found, depth + 1)
        return
    obj = as_object(value)
    if obj is None:
        return
    for matcher in SHAPE_MATCHERS:
        found.extend(matcher(obj, directory))
    for child in _ordered_children(obj):
        if isinstance(child, (dict, list)):
            _walk(child, directory, found, depth + 1)


def extract_slots(body: JsonValue, directory: Optional[DoctorDirectory] = None) -> List[Slot]:
    """Every slot found anywhere in ``body``, in traversal order, duplicates included."""
    found: List[Slot] = []
    _walk(body, directory if directory is not None else DoctorDirectory(), found, 0)
    return found


# --- declared available dates ---------------------------------------------


def extract_declared_dates(body: JsonValue) -> Dict[str, Optional[int]]:
    """Dates the source reports as available, with any count it declares."""
    declared: Dict[str, Optional[int]] = {}
    obj = as_object(body)
    if obj is None:
        return declared

    scopes = [obj] + [wrapped for wrapped in (as_object(obj.get(k)) for k in WRAPPER_KEYS) if wrapped]
    for scope in scopes:
        for key in AVAILABLE_DATE_KEYS:
            for item in as_array(scope.get(key)):
                item_obj = as_object(item)
                if item_obj is None:
                    _declare(declared, to_iso_date(item), None)
                else:
                    _declare(
                        declared,
                        to_iso_date(first_present(item_obj, DATE_KEYS)),
                        _declared_count(item_obj),
                    )
        for item in as_array(scope.get("AvailableSlots")):
            item_obj = as_object(item)
            if item_obj is not None:
                _declare(declared, to_iso_date(first_present(item_obj, DATE_KEYS)), None)
    return declared


def _declared_count(item: Dict[str, Any]) -> Optional[int]:
    # "slots" may hold a slot list rather than a number; keep looking past it.
    for key in DATE_COUNT_KEYS:
        count = as_count(item.get(key))
        if count is not None:
            return count
    return None


def _declare(declared: Dict[str, Optional[int]], date_iso: Optional[str], count: Optional[int]) -> None:
    if date_iso is None:
        return
    if declared.get(date_iso) is None:
        declared[date_iso] = count


# --- normalisation ----------------------------------------------------------


def normalise_slots(slots: Iterable[Slot]) -> List[Slot]:
    """Deduplicate on ``(date, time)`` keeping the first, then sort."""
    unique: Dict[tuple[str, str], Slot] = {}
    for slot in slots:
        unique.setdefault(slot.key, slot)
    return sorted(unique.values(), key=lambda slot: slot.key)


def summarise_dates(
    slots: Sequence[Slot],
    declared: Optional[Mapping[str, Optional[int]]] = None,
) -> List[AvailableDate]:
    """Slot counts per date, including declared dates that have no slots.

    Dates with captured slots always report the captured count. Declared
    dates without slots keep the source's own count, or zero.
    """
    declared = declared or {}
    counts = Counter(slot.date for slot in slots)
    dates = set(counts) | set(declared)
    return [
        AvailableDate(date=day, count=counts[day] if day in counts else (declared.get(day) or 0))
        for day in sorted(dates)
    ]


def extract_availability(responses: Sequence[CapturedResponse]) -> Availability:
    """Build slots and available dates from a capture buffer."""
    bodies = [response.body for response in responses if response.is_json]
    directory = DoctorDirectory.from_bodies(bodies)
    LOGGER.info("extraction.start", responses=len(responses), json_bodies=len(bodies), doctors=len(directory))

    raw: List[Slot] = []
    declared: Dict[str, Optional[int]] = {}
    for body in bodies:
        raw.extend(extract_slots(body, directory))
        for day, count in extract_declared_dates(body).items():
            _declare(declared, day, count)

    slots = normalise_slots(raw)
    available_dates = summarise_dates(slots, declared)
    LOGGER.info(
        "extraction.complete",
        raw_slots=len(raw),
        slots=len(slots),
        available_dates=len(available_dates),
    )
    return Availability(slots=slots, available_dates=available_dates)
