from pydantic import BaseModel, Field


class WorkingHours(BaseModel):
    start: str = Field(..., pattern=r"^\d{2}:\d{2}$", examples=["09:00"])
    end: str = Field(..., pattern=r"^\d{2}:\d{2}$", examples=["17:00"])


class DoctorListItem(BaseModel):
    id: str
    user_id: str
    name: str
    profile_image: str | None = None
    specialty: str
    hospital: str | None = None
    experience: int | None = None
    consultation_fee: float | None = None
    rating: float = 0.0
    review_count: int = 0


class DoctorDetail(DoctorListItem):
    email: str | None = None
    phone: str | None = None
    education: str | None = None
    license_number: str | None = None
    bio: str | None = None
    languages: list[str] = []
    available_days: list[str] = []
    working_hours: WorkingHours | None = None
    review_breakdown: dict[str, int] = {}


class DoctorListResponse(BaseModel):
    data: list[DoctorListItem]
    meta: "PaginationMeta"


class PaginationMeta(BaseModel):
    page: int
    per_page: int
    total: int
    total_pages: int


class DoctorUpdateRequest(BaseModel):
    """Editable profile fields. ``rating`` and ``review_count`` are derived and not accepted."""

    specialty: str | None = Field(None, min_length=1, max_length=100)
    education: str | None = None
    experience: int | None = Field(None, ge=0, le=80)
    license_number: str | None = Field(None, max_length=100)
    hospital: str | None = Field(None, max_length=255)
    bio: str | None = None
    consultation_fee: float | None = Field(None, ge=0)
    languages: list[str] | None = None
    available_days: list[str] | None = None
    working_hours: WorkingHours | None = None
