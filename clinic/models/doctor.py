from sqlalchemy import Column, Integer, String, DateTime, Enum as SQLEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum

from ..core.database import Base

class DoctorStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

class Doctor(Base):
    __tablename__ = "doctors"

    id = Column(Integer, primary_key=True, index=True)
    # Public-facing identifier, distinct from the row key
    doctor_id = Column(String(16), unique=True, index=True, nullable=False)

    # Account
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    status = Column(SQLEnum(DoctorStatus), default=DoctorStatus.PENDING, nullable=False)

    # Personal information
    name = Column(String(200), nullable=False)
    phone = Column(String(20), nullable=False)
    gender = Column(String(20), nullable=False)

    # Professional information
    specialization = Column(String(100), nullable=False, index=True)
    location = Column(String(100), nullable=False, index=True)
    hospital_name = Column(String(255), nullable=False, default="")

    # Media
    profile_picture = Column(String(500), nullable=True)
    profile_picture_public_id = Column(String(255), nullable=True)

    # Timestamps
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    appointments = relationship("Appointment", back_populates="doctor")

    def __repr__(self):
        return f"<Doctor(doctor_id='{self.doctor_id}', email='{self.email}', status='{self.status}')>"
