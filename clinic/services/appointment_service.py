from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from ..models.appointment import Appointment, AppointmentStatus
from ..models.doctor import Doctor, DoctorStatus
from ..core.errors import ConflictError, NotFoundError
from ..schemas.appointment import AppointmentConfirm, AppointmentCreate, AppointmentResponse
from ..schemas.doctor import DoctorResponse
from .notifications import EmailNotifier, NotificationResult

logger = logging.getLogger(__name__)

def default_confirmation_message(data: AppointmentConfirm) -> str:
    d = data.appointment_date
    return (
        f"Your appointment has been confirmed for {data.time_slot} "
        f"on {d.month}/{d.day}/{d.year}"
    )

class AppointmentService:
    def __init__(self, db: Session):
        self.db = db

    def list_for_doctor(self, doctor_id: str) -> List[Appointment]:
        """All appointments of a doctor, newest first."""
        return (
            self.db.query(Appointment)
            .filter(Appointment.doctor_id == doctor_id)
            .order_by(Appointment.created_at.desc(), Appointment.id.desc())
            .all()
        )

    def list_for_patient_phone(self, phone: Optional[str]) -> List[Appointment]:
        if not phone:
            return []
        return (
            self.db.query(Appointment)
            .filter(Appointment.patient_phone == phone)
            .order_by(Appointment.created_at.desc(), Appointment.id.desc())
            .all()
        )

    def book(self, data: AppointmentCreate, patient_name: Optional[str]) -> Appointment:
        """Create a pending appointment with an approved doctor."""
        doctor = self.db.query(Doctor).filter(
            Doctor.doctor_id == data.doctor_id,
            Doctor.status == DoctorStatus.APPROVED
        ).first()
        if not doctor:
            raise NotFoundError("Doctor not found")

        appointment = Appointment(
            doctor_id=doctor.doctor_id,
            patient_name=data.patient_name or patient_name or "Patient",
            patient_email=data.patient_email,
            patient_phone=data.patient_phone,
            reason=data.reason,
            status=AppointmentStatus.PENDING,
        )
        self.db.add(appointment)
        self.db.commit()
        self.db.refresh(appointment)
        logger.info(f"Booked appointment {appointment.id} with doctor {doctor.doctor_id}")
        return appointment

    def confirm(self, appointment_id: int, doctor_id: str, data: AppointmentConfirm) -> Appointment:
        """Confirm an appointment owned by ``doctor_id``.

        Missing appointments and appointments of other doctors are reported
        identically so that non-owners learn nothing about existence.
        """
        appointment = self.db.query(Appointment).filter(
            Appointment.id == appointment_id,
            Appointment.doctor_id == doctor_id
        ).first()

        if not appointment:
            raise NotFoundError("Appointment not found")

        if appointment.status != AppointmentStatus.PENDING:
            raise ConflictError("Appointment is already confirmed")

        appointment.status = AppointmentStatus.CONFIRMED
        appointment.time_slot = data.time_slot
        appointment.appointment_date = data.appointment_date
        appointment.confirmation_message = (
            data.confirmation_message or default_confirmation_message(data)
        )

        self.db.commit()
        self.db.refresh(appointment)
        logger.info(f"Doctor {doctor_id} confirmed appointment {appointment.id}")
        return appointment


async def send_confirmation_notice(
    notifier: EmailNotifier,
    appointment: AppointmentResponse,
    doctor: Optional[DoctorResponse],
) -> NotificationResult:
    """Notify the patient of a confirmation that is already committed.

    Runs after the response; the outcome is only logged.
    """
    try:
        result = await notifier.send_appointment_confirmation(appointment, doctor)
    except Exception as e:
        logger.exception(f"Notifier crashed for appointment {appointment.id}")
        result = NotificationResult(success=False, error=str(e))

    if result.success:
        logger.info(
            f"Appointment confirmation email sent to {appointment.patient_email} "
            f"(appointment {appointment.id})"
        )
    else:
        logger.error(
            f"Failed to send appointment confirmation email for appointment "
            f"{appointment.id}: {result.error}"
        )
    return result
