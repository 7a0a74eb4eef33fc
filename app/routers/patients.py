from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.deps import require_role
from app.models.user import Patient, User
from app.schemas.patient import PatientListItem, PatientProfile, PatientUpdateRequest

router = APIRouter(prefix="/patients", tags=["Patients"])

USER_FIELDS = ("phone", "address")


def patient_list_item(user: User, patient: Patient) -> PatientListItem:
    return PatientListItem(
        id=str(patient.id),
        user_id=str(user.id),
        name=user.name,
        email=user.email,
        phone=user.phone,
        profile_image=user.profile_image,
    )


def _patient_profile(user: User, patient: Patient) -> PatientProfile:
    return PatientProfile(
        **patient_list_item(user, patient).model_dump(),
        address=user.address,
        date_of_birth=patient.date_of_birth,
        gender=patient.gender,
        blood_type=patient.blood_type,
        allergies=patient.allergies,
        emergency_contact=patient.emergency_contact,
        medical_history=patient.medical_history,
    )


async def _own_patient(db: AsyncSession, user: User) -> Patient:
    result = await db.execute(select(Patient).where(Patient.user_id == user.id))
    patient = result.scalar_one_or_none()
    if not patient:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Patient profile not found")
    return patient


@router.get("/profile", response_model=PatientProfile, summary="My patient profile")
async def get_profile(
    user: User = Depends(require_role("patient")),
    db: AsyncSession = Depends(get_db),
):
    patient = await _own_patient(db, user)
    return _patient_profile(user, patient)


@router.put("/profile", response_model=PatientProfile, summary="Update patient profile", description="Contact details, blood type, allergies, emergency contact and medical history.")
async def update_profile(
    body: PatientUpdateRequest,
    user: User = Depends(require_role("patient")),
    db: AsyncSession = Depends(get_db),
):
    patient = await _own_patient(db, user)

    for field, value in body.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(user if field in USER_FIELDS else patient, field, value)

    await db.commit()
    return _patient_profile(user, patient)
