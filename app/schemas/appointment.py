import uuid
from datetime import date, datetime, time
from typing import Literal

from pydantic import BaseModel, Field


class CreateAppointmentRequest(BaseModel):
    doctor_id: uuid.UUID
    appointment_date: date
    time_slot: time
    duration: int = Field(30, ge=5, le=240)
    type: Literal["consultation", "follow-up", "check-up", "emergency"] = "consultation"
    method: Literal["in-person", "video", "phone"] = "in-person"
    reason_for_visit: str | None = None
    symptoms: str | None = None


class UpdateStatusRequest(BaseModel):
    status: Literal["confirmed", "completed", "no-show"]
    notes: str | None = None
    follow_up_recommended: bool | None = None


class CancelRequest(BaseModel):
    reason: str | None = Field(None, max_length=255)


class AppointmentItem(BaseModel):
    id: str
    doctor_id: str
    patient_id: str
    appointment_date: date
    time_slot: time
    duration: int
    type: str
    method: str
    status: str
    reason_for_visit: str | None = None
    symptoms: str | None = None
    notes: str | None = None
    follow_up_recommended: bool = False
    cancellation_reason: str | None = None
    cancelled_by: str | None = None
    created_at: datetime


class AppointmentListResponse(BaseModel):
    data: list[AppointmentItem]


class RescheduleRequest(BaseModel):
    appointment_date: date | None = None
    time_slot: time | None = None
    reason_for_visit: str | None = None
    symptoms: str | None = None


class AvailableSlotsResponse(BaseModel):
    doctor_id: str
    appointment_date: date
    slots: list[time]
