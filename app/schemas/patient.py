from datetime import date

from pydantic import BaseModel, Field


class PatientListItem(BaseModel):
    id: str
    user_id: str
    name: str
    email: str
    phone: str | None = None
    profile_image: str | None = None


class PatientProfile(PatientListItem):
    address: str | None = None
    date_of_birth: date | None = None
    gender: str | None = None
    blood_type: str | None = None
    allergies: str | None = None
    emergency_contact: str | None = None
    medical_history: str | None = None


class PatientListResponse(BaseModel):
    data: list[PatientListItem]


class PatientUpdateRequest(BaseModel):
    """Editable profile fields. ``phone`` and ``address`` are stored on the user account."""

    phone: str | None = Field(None, max_length=30)
    address: str | None = Field(None, max_length=255)
    date_of_birth: date | None = None
    gender: str | None = Field(None, max_length=20)
    blood_type: str | None = Field(None, max_length=5)
    allergies: str | None = None
    emergency_contact: str | None = Field(None, max_length=255)
    medical_history: str | None = None
