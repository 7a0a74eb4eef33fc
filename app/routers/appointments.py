import uuid
from datetime import date, time

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.deps import get_current_user, require_role
from app.models.appointment import Appointment
from app.models.user import Doctor, Patient, User
from app.schemas.appointment import (
    AppointmentItem,
    AppointmentListResponse,
    AvailableSlotsResponse,
    CancelRequest,
    CreateAppointmentRequest,
    RescheduleRequest,
    UpdateStatusRequest,
)

router = APIRouter(prefix="/appointments", tags=["Appointments"])

CLOSED_STATUSES = ("completed", "cancelled", "no-show")

# Bookable 30-minute slots, 09:00 through 17:00
DAY_SLOTS = [time(hour, minute) for hour in range(9, 17) for minute in (0, 30)] + [time(17, 0)]


def _appointment_item(a: Appointment) -> AppointmentItem:
    return AppointmentItem(
        id=str(a.id),
        doctor_id=str(a.doctor_id),
        patient_id=str(a.patient_id),
        appointment_date=a.appointment_date,
        time_slot=a.time_slot,
        duration=a.duration,
        type=a.type,
        method=a.method,
        status=a.status,
        reason_for_visit=a.reason_for_visit,
        symptoms=a.symptoms,
        notes=a.notes,
        follow_up_recommended=a.follow_up_recommended,
        cancellation_reason=a.cancellation_reason,
        cancelled_by=a.cancelled_by,
        created_at=a.created_at,
    )


async def get_patient_profile(db: AsyncSession, user: User) -> Patient | None:
    result = await db.execute(select(Patient).where(Patient.user_id == user.id))
    return result.scalar_one_or_none()


async def get_doctor_profile(db: AsyncSession, user: User) -> Doctor | None:
    result = await db.execute(select(Doctor).where(Doctor.user_id == user.id))
    return result.scalar_one_or_none()


async def _get_appointment(db: AsyncSession, appointment_id: uuid.UUID) -> Appointment:
    result = await db.execute(select(Appointment).where(Appointment.id == appointment_id))
    appointment = result.scalar_one_or_none()
    if not appointment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Appointment not found")
    return appointment


async def _slot_taken(
    db: AsyncSession,
    doctor_id: uuid.UUID,
    appointment_date: date,
    time_slot: time,
    exclude_id: uuid.UUID | None = None,
) -> bool:
    query = select(Appointment.id).where(
        Appointment.doctor_id == doctor_id,
        Appointment.appointment_date == appointment_date,
        Appointment.time_slot == time_slot,
        Appointment.status != "cancelled",
    )
    if exclude_id is not None:
        query = query.where(Appointment.id != exclude_id)
    return (await db.execute(query)).first() is not None


async def _participant_role(db: AsyncSession, user: User, appointment: Appointment) -> str | None:
    patient = await get_patient_profile(db, user)
    if patient and patient.id == appointment.patient_id:
        return "patient"
    doctor = await get_doctor_profile(db, user)
    if doctor and doctor.id == appointment.doctor_id:
        return "doctor"
    return None


@router.post("", response_model=AppointmentItem, status_code=status.HTTP_201_CREATED, summary="Book appointment", description="A patient books a time slot with a doctor. A slot held by any non-cancelled appointment cannot be booked again.")
async def create_appointment(
    body: CreateAppointmentRequest,
    user: User = Depends(require_role("patient")),
    db: AsyncSession = Depends(get_db),
):
    patient = await get_patient_profile(db, user)
    if not patient:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Patient not found")

    doctor = (await db.execute(select(Doctor).where(Doctor.id == body.doctor_id))).scalar_one_or_none()
    if not doctor:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Doctor not found")

    if await _slot_taken(db, doctor.id, body.appointment_date, body.time_slot):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="This time slot is already booked")

    appointment = Appointment(patient_id=patient.id, **body.model_dump())
    db.add(appointment)
    await db.commit()
    await db.refresh(appointment)
    return _appointment_item(appointment)


@router.get("", response_model=AppointmentListResponse, summary="My appointments", description="Appointments of the current user: as patient or as doctor. Admins see all.")
async def list_appointments(
    status_filter: str | None = Query(None, alias="status"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    query = select(Appointment)
    if user.role == "doctor":
        doctor = await get_doctor_profile(db, user)
        query = query.where(Appointment.doctor_id == (doctor.id if doctor else None))
    elif user.role == "patient":
        patient = await get_patient_profile(db, user)
        query = query.where(Appointment.patient_id == (patient.id if patient else None))

    if status_filter:
        query = query.where(Appointment.status == status_filter)

    result = await db.execute(query.order_by(Appointment.appointment_date.desc(), Appointment.time_slot.desc()))
    return AppointmentListResponse(data=[_appointment_item(a) for a in result.scalars().all()])


@router.get("/available-slots", response_model=AvailableSlotsResponse, summary="Available slots", description="Free 30-minute slots of a doctor on a date, between 09:00 and 17:00.")
async def get_available_slots(
    doctor_id: uuid.UUID,
    appointment_date: date = Query(..., alias="date"),
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    doctor = (await db.execute(select(Doctor.id).where(Doctor.id == doctor_id))).first()
    if not doctor:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Doctor not found")

    result = await db.execute(
        select(Appointment.time_slot).where(
            Appointment.doctor_id == doctor_id,
            Appointment.appointment_date == appointment_date,
            Appointment.status != "cancelled",
        )
    )
    booked = set(result.scalars().all())

    return AvailableSlotsResponse(
        doctor_id=str(doctor_id),
        appointment_date=appointment_date,
        slots=[slot for slot in DAY_SLOTS if slot not in booked],
    )


@router.get("/{appointment_id}", response_model=AppointmentItem, summary="Appointment details", description="Visible to its patient, its doctor and admins.")
async def get_appointment(
    appointment_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    appointment = await _get_appointment(db, appointment_id)
    if user.role != "admin" and not await _participant_role(db, user, appointment):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not your appointment")
    return _appointment_item(appointment)


@router.put("/{appointment_id}", response_model=AppointmentItem, summary="Reschedule appointment", description="Either participant moves an open appointment to another date or slot, or edits the reason for the visit.")
async def reschedule_appointment(
    appointment_id: uuid.UUID,
    body: RescheduleRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    appointment = await _get_appointment(db, appointment_id)
    if user.role != "admin" and not await _participant_role(db, user, appointment):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not your appointment")

    if appointment.status in CLOSED_STATUSES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Appointment is already {appointment.status}")

    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    new_date = changes.get("appointment_date", appointment.appointment_date)
    new_slot = changes.get("time_slot", appointment.time_slot)
    if (new_date, new_slot) != (appointment.appointment_date, appointment.time_slot):
        if await _slot_taken(db, appointment.doctor_id, new_date, new_slot, exclude_id=appointment.id):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="This time slot is already booked")

    for field, value in changes.items():
        setattr(appointment, field, value)

    await db.commit()
    await db.refresh(appointment)
    return _appointment_item(appointment)


@router.put("/{appointment_id}/status", response_model=AppointmentItem, summary="Update appointment status", description="The appointment's doctor confirms it, completes it or marks a no-show.")
async def update_status(
    appointment_id: uuid.UUID,
    body: UpdateStatusRequest,
    user: User = Depends(require_role("doctor")),
    db: AsyncSession = Depends(get_db),
):
    appointment = await _get_appointment(db, appointment_id)
    if user.role != "admin":
        doctor = await get_doctor_profile(db, user)
        if not doctor or doctor.id != appointment.doctor_id:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not your appointment")

    if appointment.status in CLOSED_STATUSES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Appointment is already {appointment.status}")

    appointment.status = body.status
    if body.notes is not None:
        appointment.notes = body.notes
    if body.follow_up_recommended is not None:
        appointment.follow_up_recommended = body.follow_up_recommended

    await db.commit()
    await db.refresh(appointment)
    return _appointment_item(appointment)


@router.put("/{appointment_id}/cancel", response_model=AppointmentItem, summary="Cancel appointment", description="Either participant cancels an open appointment.")
async def cancel_appointment(
    appointment_id: uuid.UUID,
    body: CancelRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    appointment = await _get_appointment(db, appointment_id)

    cancelled_by = await _participant_role(db, user, appointment)
    if not cancelled_by:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not your appointment")

    if appointment.status in CLOSED_STATUSES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Appointment is already {appointment.status}")

    appointment.status = "cancelled"
    appointment.cancelled_by = cancelled_by
    appointment.cancellation_reason = body.reason

    await db.commit()
    await db.refresh(appointment)
    return _appointment_item(appointment)
