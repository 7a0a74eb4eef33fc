import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.routers import api_router
from app.services.rating import rating_reconciliation

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

TAGS_METADATA = [
    {"name": "Auth", "description": "Email and password registration and login. JWT bearer tokens."},
    {"name": "Doctors", "description": "Doctor search, profiles, profile editing and a doctor's patient list."},
    {"name": "Patients", "description": "The patient's own medical profile."},
    {"name": "Appointments", "description": "Booking, rescheduling, confirming, completing and cancelling appointments. Free slots per doctor and day."},
    {"name": "Reviews", "description": "Patient reviews of doctors. Every change recomputes the doctor's rating and review count."},
]

DESCRIPTION = """
# Marrow API

Backend of the Marrow doctor/patient portal.

## Authorization

Every request except `/auth/register`, `/auth/login` and `/auth/refresh` needs:
```
Authorization: Bearer <token>
```
Use `POST /v1/auth/refresh` with the `refresh_token` once the token expires.

## Ratings

`rating` and `review_count` on a doctor are computed from the doctor's reviews.
They are refreshed after each review is created, edited or deleted, and a
background sweep reconciles every doctor periodically. A doctor with no reviews
has `rating = 0` and `review_count = 0`.
"""


@asynccontextmanager
async def lifespan(app: FastAPI):
    task = None
    if settings.RATING_RECONCILE_INTERVAL_SECONDS > 0:
        task = asyncio.create_task(rating_reconciliation())
    yield
    if task is not None:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description=DESCRIPTION,
    openapi_tags=TAGS_METADATA,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix=settings.API_V1_PREFIX)


@app.get("/health", tags=["Health"])
async def health():
    """Health check."""
    return {"status": "ok"}
