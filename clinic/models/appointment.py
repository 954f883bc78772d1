from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, ForeignKey, Date, DateTime, Text, Enum as SQLEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum

from ..core.database import Base

class AppointmentStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"

class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)

    doctor_id = Column(String(16), ForeignKey("doctors.doctor_id"), nullable=False, index=True)

    # Patient contact details
    patient_name = Column(String(200), nullable=False)
    patient_email = Column(String(255), nullable=True)
    patient_phone = Column(String(20), nullable=True, index=True)
    reason = Column(Text, nullable=True)

    # Appointment details
    status = Column(SQLEnum(AppointmentStatus), default=AppointmentStatus.PENDING, nullable=False)
    time_slot = Column(String(50), nullable=True)
    appointment_date = Column(Date, nullable=True)
    confirmation_message = Column(Text, nullable=True)

    # Tracking; client-side default keeps sub-second ordering on SQLite
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    doctor = relationship("Doctor", back_populates="appointments")

    def __repr__(self):
        return f"<Appointment(id={self.id}, doctor_id='{self.doctor_id}', status='{self.status}')>"
