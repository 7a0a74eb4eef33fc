from datetime import date
from typing import Literal

from pydantic import BaseModel, EmailStr, Field


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    name: str = Field(..., min_length=1, max_length=255)
    role: Literal["patient", "doctor"] = "patient"
    specialty: str | None = Field(None, max_length=100, examples=["Cardiology"])
    date_of_birth: date | None = None
    gender: str | None = Field(None, max_length=20)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class UserBrief(BaseModel):
    id: str
    email: str
    name: str
    role: str
    profile_image: str | None = None
    doctor_id: str | None = None
    patient_id: str | None = None


class AuthResponse(BaseModel):
    token: str
    refresh_token: str
    user: UserBrief


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class RefreshTokenResponse(BaseModel):
    token: str
    refresh_token: str


class ErrorResponse(BaseModel):
    detail: str
