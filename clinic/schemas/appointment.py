from datetime import date, datetime
from typing import Optional
from pydantic import EmailStr, Field

from .base import CamelModel
from ..models.appointment import AppointmentStatus


class AppointmentCreate(CamelModel):
    doctor_id: str
    patient_name: Optional[str] = None
    patient_email: Optional[EmailStr] = None
    patient_phone: Optional[str] = None
    reason: Optional[str] = None

class AppointmentConfirm(CamelModel):
    time_slot: str = Field(..., min_length=1)
    appointment_date: date
    confirmation_message: Optional[str] = None

class AppointmentResponse(CamelModel):
    id: int
    doctor_id: str
    patient_name: str
    patient_email: Optional[str] = None
    patient_phone: Optional[str] = None
    reason: Optional[str] = None
    status: AppointmentStatus
    time_slot: Optional[str] = None
    appointment_date: Optional[date] = None
    confirmation_message: Optional[str] = None
    created_at: datetime
