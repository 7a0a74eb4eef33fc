import math
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.deps import get_current_user, require_role
from app.models.appointment import Appointment
from app.models.review import Review
from app.models.user import Doctor, Patient, User
from app.routers.patients import patient_list_item
from app.schemas.doctor import (
    DoctorDetail,
    DoctorListItem,
    DoctorListResponse,
    DoctorUpdateRequest,
    PaginationMeta,
    WorkingHours,
)
from app.schemas.patient import PatientListResponse

router = APIRouter(prefix="/doctors", tags=["Doctors"])


def _list_item(user: User, doctor: Doctor) -> DoctorListItem:
    return DoctorListItem(
        id=str(doctor.id),
        user_id=str(user.id),
        name=user.name,
        profile_image=user.profile_image,
        specialty=doctor.specialty,
        hospital=doctor.hospital,
        experience=doctor.experience,
        consultation_fee=doctor.consultation_fee,
        rating=doctor.rating,
        review_count=doctor.review_count,
    )


async def rating_breakdown(db: AsyncSession, doctor_id: uuid.UUID) -> dict[str, int]:
    breakdown = {"5": 0, "4": 0, "3": 0, "2": 0, "1": 0}
    result = await db.execute(
        select(Review.rating, func.count()).where(Review.doctor_id == doctor_id).group_by(Review.rating)
    )
    for rating, count in result.all():
        breakdown[str(rating)] = count
    return breakdown


async def _doctor_detail(db: AsyncSession, user: User, doctor: Doctor) -> DoctorDetail:
    return DoctorDetail(
        **_list_item(user, doctor).model_dump(),
        email=user.email,
        phone=user.phone,
        education=doctor.education,
        license_number=doctor.license_number,
        bio=doctor.bio,
        languages=doctor.languages or [],
        available_days=doctor.available_days or [],
        working_hours=WorkingHours(**doctor.working_hours) if doctor.working_hours else None,
        review_breakdown=await rating_breakdown(db, doctor.id),
    )


async def _get_doctor_row(db: AsyncSession, doctor_id: uuid.UUID) -> tuple[User, Doctor]:
    result = await db.execute(
        select(User, Doctor)
        .join(Doctor, Doctor.user_id == User.id)
        .where(Doctor.id == doctor_id)
        .execution_options(populate_existing=True)
    )
    row = result.one_or_none()
    if not row:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Doctor not found")
    return row


@router.get("", response_model=DoctorListResponse, summary="List doctors", description="Search doctors by specialty, name and minimum rating. Sorted by rating, highest first.")
async def list_doctors(
    q: str | None = None,
    specialty: str | None = None,
    min_rating: float | None = Query(None, ge=0, le=5),
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100),
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    query = select(User, Doctor).join(Doctor, Doctor.user_id == User.id).where(User.status == "active")

    if q:
        query = query.where(User.name.ilike(f"%{q}%"))
    if specialty:
        query = query.where(Doctor.specialty == specialty)
    if min_rating is not None:
        query = query.where(Doctor.rating >= min_rating)

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar() or 0
    total_pages = math.ceil(total / per_page) if total > 0 else 0

    query = (
        query.order_by(Doctor.rating.desc(), Doctor.review_count.desc(), User.name)
        .offset((page - 1) * per_page)
        .limit(per_page)
        .execution_options(populate_existing=True)
    )
    rows = (await db.execute(query)).all()

    return DoctorListResponse(
        data=[_list_item(user, doctor) for user, doctor in rows],
        meta=PaginationMeta(page=page, per_page=per_page, total=total, total_pages=total_pages),
    )


@router.get("/{doctor_id}", response_model=DoctorDetail, summary="Doctor profile", description="Doctor details with rating, review count and a 1-5 rating breakdown.")
async def get_doctor(
    doctor_id: uuid.UUID,
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    user, doctor = await _get_doctor_row(db, doctor_id)
    return await _doctor_detail(db, user, doctor)


@router.put("/{doctor_id}", response_model=DoctorDetail, summary="Update doctor profile", description="A doctor updates their own profile. `rating` and `review_count` are computed from reviews and cannot be set.")
async def update_doctor(
    doctor_id: uuid.UUID,
    body: DoctorUpdateRequest,
    user: User = Depends(require_role("doctor")),
    db: AsyncSession = Depends(get_db),
):
    owner, doctor = await _get_doctor_row(db, doctor_id)
    if owner.id != user.id and user.role != "admin":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You are not authorized to update this profile")

    for field, value in body.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(doctor, field, value)

    await db.commit()
    return await _doctor_detail(db, owner, doctor)


@router.get("/{doctor_id}/patients", response_model=PatientListResponse, summary="Doctor's patients", description="Patients who have booked with this doctor. Only the doctor and admins can see it.")
async def list_doctor_patients(
    doctor_id: uuid.UUID,
    user: User = Depends(require_role("doctor")),
    db: AsyncSession = Depends(get_db),
):
    owner, _doctor = await _get_doctor_row(db, doctor_id)
    if owner.id != user.id and user.role != "admin":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You can only view your own patients")

    booked = select(Appointment.patient_id).where(Appointment.doctor_id == doctor_id)
    result = await db.execute(
        select(User, Patient).join(Patient, Patient.user_id == User.id).where(Patient.id.in_(booked)).order_by(User.name)
    )
    return PatientListResponse(data=[patient_list_item(u, p) for u, p in result.all()])
