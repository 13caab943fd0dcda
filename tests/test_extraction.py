"""Availability extraction tests."""

from datetime import datetime, timezone

import pytest

from clinic_slots_agent.extraction import (
    DoctorDirectory,
    extract_availability,
    extract_declared_dates,
    extract_slots,
    normalise_slots,
    summarise_dates,
)
from clinic_slots_agent.models import AvailableDate, CapturedResponse, Slot


def _response(body, *, is_text=False, url="https://booking.example/api/slots"):
    return CapturedResponse(
        url=url,
        status=200,
        headers={"content-type": "application/json"},
        body=body,
        captured_at=datetime(2025, 11, 1, tzinfo=timezone.utc),
        is_text=is_text,
    )


ASPIT_BODY = {
    "Therapists": [{"Oid": 7, "Name": "Dr. Lin"}],
    "DurationTimeSlots": [
        {"User": 7, "TimeSlots": [{"Start": "2025-11-03T09:00:00Z", "TimeSlot": "09:00"}]}
    ],
}


# --- end-to-end examples ---


def test_duration_time_slots_resolve_doctor_from_directory():
    result = extract_availability([_response(ASPIT_BODY)])

    assert result.slots == [Slot(date="2025-11-03", time="09:00", doctor="Dr. Lin")]
    assert result.available_dates == [AvailableDate(date="2025-11-03", count=1)]


def test_unknown_doctor_falls_back_to_placeholder():
    body = {"DurationTimeSlots": ASPIT_BODY["DurationTimeSlots"]}

    result = extract_availability([_response(body)])

    assert result.slots == [Slot(date="2025-11-03", time="09:00", doctor="User 7")]
    assert result.available_dates == [AvailableDate(date="2025-11-03", count=1)]


def test_directory_built_from_another_response():
    listing = _response({"Therapists": [{"Oid": "7", "Name": "Dr. Lin"}]}, url="https://x/api/therapists")
    slots = _response({"DurationTimeSlots": ASPIT_BODY["DurationTimeSlots"]})

    result = extract_availability([slots, listing])

    assert result.slots[0].doctor == "Dr. Lin"


# --- shapes ---


def test_available_slots_pascal_case():
    body = {
        "AvailableSlots": [
            {"Date": "2025-11-04", "Time": "10:00", "Therapist": "Dr. Berg"},
            {"Date": "2025-11-04", "Time": "08:30", "Practitioner": "Dr. Lin"},
        ]
    }

    slots = normalise_slots(extract_slots(body))

    assert slots == [
        Slot(date="2025-11-04", time="08:30", doctor="Dr. Lin"),
        Slot(date="2025-11-04", time="10:00", doctor="Dr. Berg"),
    ]


def test_nested_data_available_slots():
    body = {"Data": {"AvailableSlots": [{"Date": "2025-11-05", "Time": "12:00", "Doctor": "Dr. A"}]}}

    assert normalise_slots(extract_slots(body)) == [Slot(date="2025-11-05", time="12:00", doctor="Dr. A")]


def test_camel_case_slots_list():
    body = {"Slots": [{"date": "2025-11-06", "time": "13:15", "doctor": "Dr. B"}]}

    assert extract_slots(body)[0] == Slot(date="2025-11-06", time="13:15", doctor="Dr. B")


def test_date_time_pair_deep_in_unknown_keys():
    body = {"result": {"payload": [{"wrapper": {"date": "2025-11-07", "time": "14:00", "doctorName": "Dr. C"}}]}}

    assert normalise_slots(extract_slots(body)) == [Slot(date="2025-11-07", time="14:00", doctor="Dr. C")]


def test_start_and_time_slot_pair_truncates_timestamp():
    body = {"Start": "2025-11-08T15:00:00+00:00", "TimeSlot": "15:00", "User": 3}

    assert extract_slots(body) == [Slot(date="2025-11-08", time="15:00", doctor="User 3")]


def test_offset_timestamp_is_converted_to_utc_date():
    body = {"Start": "2025-11-08T00:30:00+01:00", "TimeSlot": "00:30"}

    assert extract_slots(body) == [Slot(date="2025-11-07", time="00:30", doctor=None)]


def test_start_end_range_renders_single_time():
    body = {"appointments": [{"date": "2025-11-09", "startTime": "09:00", "endTime": "09:30"}]}

    assert extract_slots(body) == [Slot(date="2025-11-09", time="09:00 - 09:30")]


def test_start_end_range_with_full_timestamps():
    body = {"startTime": "2025-11-10T11:00:00", "endTime": "2025-11-10T11:45:00"}

    assert extract_slots(body) == [Slot(date="2025-11-10", time="11:00 - 11:45")]


def test_start_end_range_without_date_is_dropped():
    assert extract_slots({"startTime": "09:00", "endTime": "09:30"}) == []


def test_doctor_id_resolved_through_directory():
    directory = DoctorDirectory({"12": "Dr. Dahl"})
    body = {"Slots": [{"date": "2025-11-11", "time": "08:00", "doctor": 12}]}

    assert extract_slots(body, directory)[0].doctor == "Dr. Dahl"


def test_unparseable_date_drops_slot():
    body = {"Slots": [{"date": "sometime", "time": "08:00"}, {"date": "2025-02-30", "time": "08:00"}]}

    assert extract_slots(body) == []


def test_norwegian_date_spelling_is_normalised():
    body = {"date": "03.11.2025", "time": "08:00"}

    assert extract_slots(body) == [Slot(date="2025-11-03", time="08:00")]


def test_year_first_slash_date_keeps_month_and_day():
    body = {"date": "2025/11/03", "time": "08:00"}

    assert extract_slots(body) == [Slot(date="2025-11-03", time="08:00")]


# --- normalisation properties ---


def test_dedup_keeps_first_doctor():
    body = {
        "Slots": [
            {"date": "2025-11-03", "time": "09:00", "doctor": "Dr. First"},
            {"date": "2025-11-03", "time": "09:00", "doctor": "Dr. Second"},
        ]
    }

    result = extract_availability([_response(body)])

    assert result.slots == [Slot(date="2025-11-03", time="09:00", doctor="Dr. First")]


def test_slots_sorted_by_date_then_time():
    body = {
        "Slots": [
            {"date": "2025-11-04", "time": "08:00"},
            {"date": "2025-11-03", "time": "16:00"},
            {"date": "2025-11-03", "time": "09:30"},
        ]
    }

    result = extract_availability([_response(body)])

    assert [slot.key for slot in result.slots] == [
        ("2025-11-03", "09:30"),
        ("2025-11-03", "16:00"),
        ("2025-11-04", "08:00"),
    ]
    assert [entry.date for entry in result.available_dates] == ["2025-11-03", "2025-11-04"]


def test_counts_match_slots_per_date():
    body = {
        "Slots": [
            {"date": "2025-11-03", "time": "09:00"},
            {"date": "2025-11-03", "time": "10:00"},
            {"date": "2025-11-04", "time": "10:00"},
        ],
        "availableDates": [{"date": "2025-11-03", "count": 9}],
    }

    result = extract_availability([_response(body)])

    assert result.available_dates == [
        AvailableDate(date="2025-11-03", count=2),
        AvailableDate(date="2025-11-04", count=1),
    ]


def test_declared_date_without_slots_has_zero_count():
    body = {"AvailableDates": ["2025-11-20"], "Slots": [{"date": "2025-11-03", "time": "09:00"}]}

    result = extract_availability([_response(body)])

    assert AvailableDate(date="2025-11-20", count=0) in result.available_dates


def test_declared_date_keeps_source_count():
    body = {"data": {"dates": [{"date": "2025-11-21", "count": 4}]}}

    result = extract_availability([_response(body)])

    assert result.slots == []
    assert result.available_dates == [AvailableDate(date="2025-11-21", count=4)]


@pytest.mark.parametrize("key", ["slots", "availableSlots"])
def test_declared_count_read_from_slot_count_keys(key):
    body = {"availableDates": [{"date": "2025-11-21", key: 3}]}

    result = extract_availability([_response(body)])

    assert result.available_dates == [AvailableDate(date="2025-11-21", count=3)]


def test_declared_slot_list_does_not_hide_numeric_count():
    body = {"availableDates": [{"date": "2025-11-21", "slots": [{"id": 1}], "slotCount": 2}]}

    result = extract_availability([_response(body)])

    assert result.available_dates == [AvailableDate(date="2025-11-21", count=2)]


def test_extraction_is_idempotent():
    responses = [_response(ASPIT_BODY), _response({"AvailableDates": ["2025-11-30"]})]

    first = extract_availability(responses)
    second = extract_availability(responses)

    assert first == second


@pytest.mark.parametrize(
    "body",
    [
        {},
        [],
        42,
        "ok",
        None,
        {"a": {"b": {"c": [{"d": {"e": "f"}}]}}},
        {"Therapists": "nope", "DurationTimeSlots": {"User": 1}},
        {"AvailableDates": [None, 5, {"date": None}]},
    ],
)
def test_malformed_bodies_yield_nothing(body):
    result = extract_availability([_response(body)])

    assert result.slots == []
    assert result.available_dates == []


def test_very_deep_nesting_does_not_raise():
    body: dict = {"date": "2025-11-03", "time": "09:00"}
    for _ in range(500):
        body = {"next": body}

    assert extract_availability([_response(body)]).slots == []


def test_text_responses_are_ignored():
    result = extract_availability([_response('{"date": "2025-11-03", "time": "09:00"}', is_text=True)])

    assert result.slots == []


# --- helpers ---


def test_declared_dates_from_available_slots():
    declared = extract_declared_dates({"AvailableSlots": [{"Date": "2025-11-12"}, {"date": "2025-11-13"}]})

    assert declared == {"2025-11-12": None, "2025-11-13": None}


def test_summarise_dates_unions_declared_and_slots():
    slots = [Slot(date="2025-11-03", time="09:00")]

    assert summarise_dates(slots, {"2025-11-01": None}) == [
        AvailableDate(date="2025-11-01", count=0),
        AvailableDate(date="2025-11-03", count=1),
    ]


def test_directory_resolve():
    directory = DoctorDirectory.from_bodies([{"Doctors": [{"id": 5, "name": "Dr. Eng"}, {"id": 6}]}])

    assert len(directory) == 1
    assert directory.resolve(5) == "Dr. Eng"
    assert directory.resolve("6") == "User 6"
    assert directory.resolve(None) is None
