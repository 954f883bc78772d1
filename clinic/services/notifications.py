"""
Appointment notifications over SMTP.

Delivery is advisory: ``send_appointment_confirmation`` reports its outcome
through ``NotificationResult`` and never raises for delivery problems.
"""
import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Optional

from starlette.concurrency import run_in_threadpool

from ..schemas.appointment import AppointmentResponse
from ..schemas.doctor import DoctorResponse

logger = logging.getLogger(__name__)


@dataclass
class NotificationResult:
    success: bool
    error: Optional[str] = None


def build_confirmation_email(
    appointment: AppointmentResponse,
    doctor: Optional[DoctorResponse],
    sender: str,
) -> EmailMessage:
    doctor_name = f"Dr. {doctor.name}" if doctor else "your doctor"
    lines = [
        f"Dear {appointment.patient_name},",
        "",
        appointment.confirmation_message or "Your appointment has been confirmed.",
        "",
        f"Doctor: {doctor_name}",
    ]
    if doctor:
        lines.append(f"Specialization: {doctor.specialization}")
        if doctor.hospital_name:
            lines.append(f"Hospital: {doctor.hospital_name}")
        lines.append(f"Location: {doctor.location}")
    if appointment.appointment_date:
        lines.append(f"Date: {appointment.appointment_date.isoformat()}")
    if appointment.time_slot:
        lines.append(f"Time: {appointment.time_slot}")
    lines += ["", "Please arrive 10-15 minutes early."]

    message = EmailMessage()
    message["Subject"] = "Your appointment has been confirmed"
    message["From"] = sender
    message["To"] = appointment.patient_email
    message.set_content("\n".join(lines))
    return message


class EmailNotifier:
    def __init__(
        self,
        host: Optional[str],
        port: int = 587,
        user: Optional[str] = None,
        password: Optional[str] = None,
        sender: str = "no-reply@clinic.local",
        timeout: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.sender = sender
        self.timeout = timeout

    def _deliver(self, message: EmailMessage):
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            smtp.starttls()
            if self.user and self.password:
                smtp.login(self.user, self.password)
            smtp.send_message(message)

    async def send_appointment_confirmation(
        self,
        appointment: AppointmentResponse,
        doctor: Optional[DoctorResponse],
    ) -> NotificationResult:
        if not self.host:
            return NotificationResult(success=False, error="SMTP is not configured")
        if not appointment.patient_email:
            return NotificationResult(success=False, error="Appointment has no patient email")

        message = build_confirmation_email(appointment, doctor, self.sender)
        try:
            await run_in_threadpool(self._deliver, message)
        except (smtplib.SMTPException, OSError) as e:
            return NotificationResult(success=False, error=str(e))
        return NotificationResult(success=True)
