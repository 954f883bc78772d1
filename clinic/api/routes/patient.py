from fastapi import APIRouter, Depends, status
from fastapi.responses import RedirectResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from typing import Optional
import logging

import redis

from ...core.database import get_db
from ...core.errors import ServerError
from ...core.security import SessionContext, UserRole
from ...core.session import RedisSessionStore, set_session_cookie
from ...api.deps import get_session_store, require_patient, require_patient_page
from ...schemas.appointment import AppointmentCreate, AppointmentResponse
from ...schemas.doctor import DoctorResponse
from ...services.appointment_service import AppointmentService
from ...services.doctor_service import DoctorService
from ...services.patient_service import PatientService

logger = logging.getLogger(__name__)

verify_router = APIRouter(tags=["Patients"])
router = APIRouter(prefix="/patientPage", tags=["Patients"])

@verify_router.get("/patientVerify")
def patient_verify(
    aadhar: Optional[str] = None,
    phone: Optional[str] = None,
    name: Optional[str] = None,
    db: Session = Depends(get_db),
    store: RedisSessionStore = Depends(get_session_store)
):
    """Self-attested patient entry: lookup-or-create, then open a session."""
    try:
        patient = PatientService(db).verify(aadhar, phone, name)
        if patient:
            name, phone = patient.name or name, patient.phone
        session_id = store.create({
            "role": UserRole.PATIENT.value,
            "patient_name": name or "Patient",
            "patient_phone": phone,
        })
    except (SQLAlchemyError, redis.RedisError) as e:
        logger.error(f"Patient verification error: {str(e)}")
        raise ServerError("Error verifying patient", str(e))

    response = RedirectResponse("/patientPage", status_code=status.HTTP_302_FOUND)
    set_session_cookie(response, session_id)
    return response

@router.get("")
def patient_page(
    context: SessionContext = Depends(require_patient_page),
    db: Session = Depends(get_db)
):
    try:
        appointments = AppointmentService(db).list_for_patient_phone(context.patient_phone)
    except SQLAlchemyError as e:
        logger.error(f"Patient page error: {str(e)}")
        raise ServerError("Error loading patient page", str(e))

    return {
        "success": True,
        "name": context.patient_name,
        "appointments": [
            AppointmentResponse.model_validate(a).to_json() for a in appointments
        ],
    }

@router.get("/doctors")
def search_doctors(
    specialization: Optional[str] = None,
    location: Optional[str] = None,
    _: SessionContext = Depends(require_patient),
    db: Session = Depends(get_db)
):
    """Approved doctors, optionally filtered by specialization and location."""
    try:
        doctors = DoctorService(db).search_approved(specialization, location)
    except SQLAlchemyError as e:
        logger.error(f"Doctor search error: {str(e)}")
        raise ServerError("Error searching doctors", str(e))

    return {
        "success": True,
        "doctors": [DoctorResponse.model_validate(d).to_json() for d in doctors],
    }

@router.post("/appointments", status_code=status.HTTP_201_CREATED)
def book_appointment(
    appointment_data: AppointmentCreate,
    context: SessionContext = Depends(require_patient),
    db: Session = Depends(get_db)
):
    """Request an appointment; it stays pending until the doctor confirms."""
    if not appointment_data.patient_phone and context.patient_phone:
        appointment_data.patient_phone = context.patient_phone

    try:
        appointment = AppointmentService(db).book(appointment_data, context.patient_name)
    except SQLAlchemyError as e:
        logger.error(f"Appointment booking error: {str(e)}")
        raise ServerError("Error booking appointment", str(e))

    return {
        "success": True,
        "message": "Appointment booked successfully",
        "appointment": AppointmentResponse.model_validate(appointment).to_json(),
    }
