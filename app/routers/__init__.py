from fastapi import APIRouter

from app.routers import appointments, auth, doctors, patients, reviews

api_router = APIRouter()

api_router.include_router(auth.router)
api_router.include_router(doctors.router)
api_router.include_router(patients.router)
api_router.include_router(appointments.router)
api_router.include_router(reviews.router)
