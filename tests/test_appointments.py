"""Tests for appointments endpoints."""
import uuid

import pytest

from tests.conftest import auth_headers


async def _book(client, patient_user, doctor, time_slot="10:00:00"):
    return await client.post(
        "/v1/appointments",
        json={
            "doctor_id": str(doctor.id),
            "appointment_date": "2026-03-02",
            "time_slot": time_slot,
            "method": "video",
            "reason_for_visit": "Chest pain",
        },
        headers=auth_headers(patient_user),
    )


@pytest.mark.asyncio
async def test_book_appointment(client, patient_user, patient, doctor):
    resp = await _book(client, patient_user, doctor)
    assert resp.status_code == 201
    data = resp.json()
    assert data["status"] == "pending"
    assert data["patient_id"] == str(patient.id)
    assert data["method"] == "video"
    assert data["duration"] == 30


@pytest.mark.asyncio
async def test_book_taken_slot(client, patient_user, other_patient_pair, doctor):
    await _book(client, patient_user, doctor)
    other_user, _ = other_patient_pair

    resp = await _book(client, other_user, doctor)
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_cancelled_slot_can_be_rebooked(client, patient_user, other_patient_pair, doctor):
    booked = await _book(client, patient_user, doctor)
    await client.put(
        f"/v1/appointments/{booked.json()['id']}/cancel",
        json={"reason": "Feeling better"},
        headers=auth_headers(patient_user),
    )
    other_user, _ = other_patient_pair

    resp = await _book(client, other_user, doctor)
    assert resp.status_code == 201


@pytest.mark.asyncio
async def test_doctor_cannot_book(client, doctor_user, doctor):
    resp = await _book(client, doctor_user, doctor)
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_list_appointments_per_side(client, patient_user, doctor_user, other_doctor_pair, doctor):
    await _book(client, patient_user, doctor)
    other_doctor_user, _ = other_doctor_pair

    resp = await client.get("/v1/appointments", headers=auth_headers(patient_user))
    assert len(resp.json()["data"]) == 1

    resp = await client.get("/v1/appointments", headers=auth_headers(doctor_user))
    assert len(resp.json()["data"]) == 1

    resp = await client.get("/v1/appointments", headers=auth_headers(other_doctor_user))
    assert len(resp.json()["data"]) == 0

    resp = await client.get("/v1/appointments?status=completed", headers=auth_headers(doctor_user))
    assert len(resp.json()["data"]) == 0


@pytest.mark.asyncio
async def test_doctor_completes_appointment(client, patient_user, doctor_user, doctor):
    booked = await _book(client, patient_user, doctor)

    resp = await client.put(
        f"/v1/appointments/{booked.json()['id']}/status",
        json={"status": "completed", "notes": "Follow up in 2 weeks", "follow_up_recommended": True},
        headers=auth_headers(doctor_user),
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "completed"
    assert data["follow_up_recommended"] is True

    resp = await client.put(
        f"/v1/appointments/{booked.json()['id']}/cancel",
        json={},
        headers=auth_headers(patient_user),
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_other_doctor_cannot_update_status(client, patient_user, doctor, other_doctor_pair):
    booked = await _book(client, patient_user, doctor)
    other_doctor_user, _ = other_doctor_pair

    resp = await client.put(
        f"/v1/appointments/{booked.json()['id']}/status",
        json={"status": "confirmed"},
        headers=auth_headers(other_doctor_user),
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_doctor_cancels(client, patient_user, doctor_user, doctor):
    booked = await _book(client, patient_user, doctor)

    resp = await client.put(
        f"/v1/appointments/{booked.json()['id']}/cancel",
        json={"reason": "Emergency surgery"},
        headers=auth_headers(doctor_user),
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "cancelled"
    assert data["cancelled_by"] == "doctor"
    assert data["cancellation_reason"] == "Emergency surgery"


@pytest.mark.asyncio
async def test_available_slots_skip_booked(client, patient_user, doctor):
    booked = await _book(client, patient_user, doctor)
    headers = auth_headers(patient_user)

    resp = await client.get(f"/v1/appointments/available-slots?doctor_id={doctor.id}&date=2026-03-02", headers=headers)
    assert resp.status_code == 200
    slots = resp.json()["slots"]
    assert len(slots) == 16
    assert slots[0] == "09:00:00"
    assert slots[-1] == "17:00:00"
    assert "10:00:00" not in slots

    await client.put(f"/v1/appointments/{booked.json()['id']}/cancel", json={}, headers=headers)
    resp = await client.get(f"/v1/appointments/available-slots?doctor_id={doctor.id}&date=2026-03-02", headers=headers)
    assert len(resp.json()["slots"]) == 17

    resp = await client.get(f"/v1/appointments/available-slots?doctor_id={doctor.id}&date=2026-03-03", headers=headers)
    assert "10:00:00" in resp.json()["slots"]


@pytest.mark.asyncio
async def test_available_slots_unknown_doctor(client, patient_user):
    resp = await client.get(
        f"/v1/appointments/available-slots?doctor_id={uuid.uuid4()}&date=2026-03-02",
        headers=auth_headers(patient_user),
    )
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_available_slots_requires_date(client, patient_user, doctor):
    resp = await client.get(f"/v1/appointments/available-slots?doctor_id={doctor.id}", headers=auth_headers(patient_user))
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_get_appointment(client, patient_user, doctor_user, other_patient_pair, doctor):
    booked = await _book(client, patient_user, doctor)
    appointment_id = booked.json()["id"]
    other_user, _ = other_patient_pair

    resp = await client.get(f"/v1/appointments/{appointment_id}", headers=auth_headers(patient_user))
    assert resp.status_code == 200
    assert resp.json()["reason_for_visit"] == "Chest pain"

    resp = await client.get(f"/v1/appointments/{appointment_id}", headers=auth_headers(doctor_user))
    assert resp.status_code == 200

    resp = await client.get(f"/v1/appointments/{appointment_id}", headers=auth_headers(other_user))
    assert resp.status_code == 403

    resp = await client.get(f"/v1/appointments/{uuid.uuid4()}", headers=auth_headers(patient_user))
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_reschedule_appointment(client, patient_user, doctor):
    booked = await _book(client, patient_user, doctor)

    resp = await client.put(
        f"/v1/appointments/{booked.json()['id']}",
        json={"appointment_date": "2026-03-03", "time_slot": "11:30:00"},
        headers=auth_headers(patient_user),
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["appointment_date"] == "2026-03-03"
    assert data["time_slot"] == "11:30:00"
    assert data["reason_for_visit"] == "Chest pain"

    # The old slot is free again
    resp = await client.get(
        f"/v1/appointments/available-slots?doctor_id={doctor.id}&date=2026-03-02",
        headers=auth_headers(patient_user),
    )
    assert "10:00:00" in resp.json()["slots"]


@pytest.mark.asyncio
async def test_reschedule_keeps_own_slot(client, patient_user, doctor):
    booked = await _book(client, patient_user, doctor)

    resp = await client.put(
        f"/v1/appointments/{booked.json()['id']}",
        json={"appointment_date": "2026-03-02", "time_slot": "10:00:00", "reason_for_visit": "Shortness of breath"},
        headers=auth_headers(patient_user),
    )
    assert resp.status_code == 200
    assert resp.json()["reason_for_visit"] == "Shortness of breath"


@pytest.mark.asyncio
async def test_reschedule_to_taken_slot(client, patient_user, other_patient_pair, doctor):
    booked = await _book(client, patient_user, doctor)
    other_user, _ = other_patient_pair
    await _book(client, other_user, doctor, time_slot="11:00:00")

    resp = await client.put(
        f"/v1/appointments/{booked.json()['id']}",
        json={"time_slot": "11:00:00"},
        headers=auth_headers(patient_user),
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_reschedule_rules(client, patient_user, doctor_user, other_patient_pair, doctor):
    booked = await _book(client, patient_user, doctor)
    appointment_id = booked.json()["id"]
    other_user, _ = other_patient_pair

    resp = await client.put(f"/v1/appointments/{appointment_id}", json={"time_slot": "12:00:00"}, headers=auth_headers(other_user))
    assert resp.status_code == 403

    await client.put(
        f"/v1/appointments/{appointment_id}/status",
        json={"status": "completed"},
        headers=auth_headers(doctor_user),
    )
    resp = await client.put(f"/v1/appointments/{appointment_id}", json={"time_slot": "12:00:00"}, headers=auth_headers(patient_user))
    assert resp.status_code == 400
