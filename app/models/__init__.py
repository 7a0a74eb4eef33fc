from app.models.appointment import Appointment
from app.models.review import Review
from app.models.user import Doctor, Patient, User

__all__ = [
    "User",
    "Doctor",
    "Patient",
    "Appointment",
    "Review",
]
