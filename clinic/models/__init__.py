from .admin import Admin
from .doctor import Doctor, DoctorStatus
from .patient import Patient
from .appointment import Appointment, AppointmentStatus

__all__ = [
    "Admin",
    "Doctor",
    "DoctorStatus",
    "Patient",
    "Appointment",
    "AppointmentStatus",
]
