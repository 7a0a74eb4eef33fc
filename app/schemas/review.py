import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class ReviewerBrief(BaseModel):
    id: str
    name: str | None = None
    profile_image: str | None = None


class ReviewItem(BaseModel):
    id: str
    doctor_id: str
    reviewer: ReviewerBrief
    rating: int
    comment: str | None = None
    appointment_id: str | None = None
    created_at: datetime
    updated_at: datetime | None = None


class ReviewSummary(BaseModel):
    average_rating: float = 0.0
    total_count: int = 0
    breakdown: dict[str, int] = {}


class ReviewListResponse(BaseModel):
    summary: ReviewSummary
    data: list[ReviewItem]
    meta: "ReviewMeta"


class ReviewMeta(BaseModel):
    page: int
    total: int


class CreateReviewRequest(BaseModel):
    doctor_id: uuid.UUID
    rating: int = Field(..., ge=1, le=5)
    comment: str | None = None
    appointment_id: uuid.UUID | None = None


class UpdateReviewRequest(BaseModel):
    rating: int | None = Field(None, ge=1, le=5)
    comment: str | None = None
    # Admin only: move the review to another doctor
    doctor_id: uuid.UUID | None = None


class ReviewResponse(BaseModel):
    id: str
    doctor_id: str
    rating: int
    comment: str | None = None
    created_at: datetime
    updated_at: datetime | None = None


class DeleteReviewResponse(BaseModel):
    id: str
    message: str = "Review deleted"
