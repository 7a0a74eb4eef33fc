import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.deps import get_current_user, require_role
from app.models.appointment import Appointment
from app.models.review import Review
from app.models.user import Doctor, Patient, User
from app.routers.appointments import get_patient_profile
from app.routers.doctors import rating_breakdown
from app.schemas.review import (
    CreateReviewRequest,
    DeleteReviewResponse,
    ReviewerBrief,
    ReviewItem,
    ReviewListResponse,
    ReviewMeta,
    ReviewResponse,
    ReviewSummary,
    UpdateReviewRequest,
)
from app.services.rating import affected_doctor_ids, refresh_doctor_ratings

router = APIRouter(prefix="/reviews", tags=["Reviews"])


def _review_response(review: Review) -> ReviewResponse:
    return ReviewResponse(
        id=str(review.id),
        doctor_id=str(review.doctor_id),
        rating=review.rating,
        comment=review.comment,
        created_at=review.created_at,
        updated_at=review.updated_at,
    )


async def _doctor_exists(db: AsyncSession, doctor_id: uuid.UUID) -> bool:
    return (await db.execute(select(Doctor.id).where(Doctor.id == doctor_id))).first() is not None


async def _has_reviewed(db: AsyncSession, doctor_id: uuid.UUID, patient_id: uuid.UUID) -> bool:
    result = await db.execute(select(Review.id).where(Review.doctor_id == doctor_id, Review.patient_id == patient_id))
    return result.first() is not None


async def _get_own_review(db: AsyncSession, review_id: uuid.UUID, user: User) -> Review:
    result = await db.execute(select(Review).where(Review.id == review_id))
    review = result.scalar_one_or_none()
    if not review:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Review not found")

    if user.role != "admin":
        patient = await get_patient_profile(db, user)
        if not patient or patient.id != review.patient_id:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not your review")
    return review


@router.get("/doctor/{doctor_id}", response_model=ReviewListResponse, summary="Doctor reviews", description="Reviews of a doctor with a rating summary (average, total, breakdown by 1-5).")
async def get_doctor_reviews(
    doctor_id: uuid.UUID,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if not await _doctor_exists(db, doctor_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Doctor not found")

    total, avg = (
        await db.execute(select(func.count(Review.id), func.avg(Review.rating)).where(Review.doctor_id == doctor_id))
    ).one()

    result = await db.execute(
        select(Review, User)
        .join(Patient, Patient.id == Review.patient_id)
        .join(User, User.id == Patient.user_id)
        .where(Review.doctor_id == doctor_id)
        .order_by(Review.created_at.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )

    data = [
        ReviewItem(
            id=str(r.id),
            doctor_id=str(r.doctor_id),
            reviewer=ReviewerBrief(id=str(r.patient_id), name=reviewer.name, profile_image=reviewer.profile_image),
            rating=r.rating,
            comment=r.comment,
            appointment_id=str(r.appointment_id) if r.appointment_id else None,
            created_at=r.created_at,
            updated_at=r.updated_at,
        )
        for r, reviewer in result.all()
    ]

    return ReviewListResponse(
        summary=ReviewSummary(
            average_rating=round(float(avg or 0.0), 1),
            total_count=total or 0,
            breakdown=await rating_breakdown(db, doctor_id),
        ),
        data=data,
        meta=ReviewMeta(page=page, total=total or 0),
    )


@router.post("", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED, summary="Review a doctor", description="A patient rates a doctor 1-5. One review per doctor per patient. When `appointment_id` is given it must be the patient's completed appointment with that doctor.")
async def create_review(
    body: CreateReviewRequest,
    user: User = Depends(require_role("patient")),
    db: AsyncSession = Depends(get_db),
):
    patient = await get_patient_profile(db, user)
    if not patient:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Patient not found")

    if not await _doctor_exists(db, body.doctor_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Doctor not found")

    if body.appointment_id:
        result = await db.execute(select(Appointment).where(Appointment.id == body.appointment_id))
        appointment = result.scalar_one_or_none()
        if not appointment or appointment.patient_id != patient.id or appointment.doctor_id != body.doctor_id:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Appointment not found")
        if appointment.status != "completed":
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You can only review a completed appointment")

    if await _has_reviewed(db, body.doctor_id, patient.id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You have already reviewed this doctor")

    review = Review(
        doctor_id=body.doctor_id,
        patient_id=patient.id,
        appointment_id=body.appointment_id,
        rating=body.rating,
        comment=body.comment,
    )
    db.add(review)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You have already reviewed this doctor")
    await db.refresh(review)
    response = _review_response(review)

    await refresh_doctor_ratings(db, review.doctor_id)
    return response


@router.patch("/{review_id}", response_model=ReviewResponse, summary="Edit review", description="The author edits `rating` or `comment`. Admins may also move a review to another doctor with `doctor_id`.")
async def update_review(
    review_id: uuid.UUID,
    body: UpdateReviewRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    review = await _get_own_review(db, review_id, user)
    old_doctor_id, old_rating = review.doctor_id, review.rating

    if body.doctor_id and body.doctor_id != review.doctor_id:
        if user.role != "admin":
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only admins can move a review")
        if not await _doctor_exists(db, body.doctor_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Doctor not found")
        clash = await db.execute(
            select(Review.id).where(Review.doctor_id == body.doctor_id, Review.patient_id == review.patient_id)
        )
        if clash.first():
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="The patient has already reviewed that doctor")
        review.doctor_id = body.doctor_id

    if body.rating is not None:
        review.rating = body.rating
    if body.comment is not None:
        review.comment = body.comment

    await db.commit()
    await db.refresh(review)
    response = _review_response(review)

    if review.doctor_id != old_doctor_id or review.rating != old_rating:
        await refresh_doctor_ratings(db, *affected_doctor_ids(old_doctor_id, review.doctor_id))
    return response


@router.delete("/{review_id}", response_model=DeleteReviewResponse, summary="Delete review", description="The author or an admin deletes a review.")
async def delete_review(
    review_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    review = await _get_own_review(db, review_id, user)
    doctor_id = review.doctor_id

    await db.delete(review)
    await db.commit()

    await refresh_doctor_ratings(db, doctor_id)
    return DeleteReviewResponse(id=str(review_id))
