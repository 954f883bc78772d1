from datetime import datetime
from typing import Optional
from pydantic import EmailStr, Field, field_validator

from .base import CamelModel
from ..models.doctor import DoctorStatus


def normalize_email(value: str) -> str:
    """Emails are stored and looked up lowercased."""
    return value.strip().lower()


class DoctorRegister(CamelModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=1)
    phone: str
    gender: str
    specialization: str
    location: str
    hospital_name: str = ""

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value: str) -> str:
        return normalize_email(value)

class DoctorLogin(CamelModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value: str) -> str:
        return normalize_email(value)

class DoctorProfileUpdate(CamelModel):
    """Self-service fields; anything else in the body is ignored."""
    name: Optional[str] = None
    phone: Optional[str] = None
    specialization: Optional[str] = None
    location: Optional[str] = None
    hospital_name: Optional[str] = None

class DoctorResponse(CamelModel):
    """Doctor record as exposed to clients. Never carries the password hash."""
    doctor_id: str
    email: str
    name: str
    phone: str
    gender: str
    specialization: str
    location: str
    hospital_name: str = ""
    status: DoctorStatus
    profile_picture: Optional[str] = None
    created_at: Optional[datetime] = None
