from fastapi import APIRouter, BackgroundTasks, Depends, File, Request, UploadFile, status
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from typing import Optional
import logging

import redis

from ...core.config import settings
from ...core.database import get_db
from ...core.errors import LoginRequired, NotFoundError, ServerError
from ...core.security import SessionContext, UserRole
from ...core.session import RedisSessionStore, clear_session_cookie, set_session_cookie
from ...api.deps import (
    get_media_uploader, get_notifier, get_session_store, read_session_id,
    require_doctor, require_doctor_page
)
from ...schemas.appointment import AppointmentConfirm, AppointmentResponse
from ...schemas.doctor import DoctorLogin, DoctorProfileUpdate, DoctorRegister, DoctorResponse
from ...services.appointment_service import AppointmentService, send_confirmation_notice
from ...services.auth_service import AuthService
from ...services.doctor_service import DoctorService
from ...services.media import CloudinaryUploader, UploadError
from ...services.notifications import EmailNotifier

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/doctor", tags=["Doctors"])

PROFILE_PICTURE_FOLDER = "doctor-profiles"

@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(
    doctor_data: DoctorRegister,
    db: Session = Depends(get_db)
):
    """Register a doctor account pending admin approval."""
    try:
        doctor = DoctorService(db).register(
            doctor_data, max_attempts=settings.DOCTOR_ID_MAX_ATTEMPTS
        )
    except SQLAlchemyError as e:
        logger.error(f"Doctor registration error: {str(e)}")
        raise ServerError("Error registering doctor", str(e))

    return {
        "success": True,
        "message": "Doctor registered successfully! Please wait for admin approval.",
        "doctorId": doctor.doctor_id,
    }

@router.post("/login")
def login(
    login_data: DoctorLogin,
    db: Session = Depends(get_db),
    store: RedisSessionStore = Depends(get_session_store)
):
    """Authenticate an approved doctor and open a session."""
    try:
        doctor = AuthService(db).authenticate_doctor(login_data)
        session_id = store.create({
            "role": UserRole.DOCTOR.value,
            "doctor_id": doctor.doctor_id,
            "email": doctor.email,
        })
    except (SQLAlchemyError, redis.RedisError) as e:
        logger.error(f"Doctor login error: {str(e)}")
        raise ServerError("Error during login", str(e))

    response = JSONResponse({
        "success": True,
        "message": "Login successful",
        "doctorId": doctor.doctor_id,
        "redirectUrl": "/doctor/dashboard",
    })
    set_session_cookie(response, session_id)
    return response

@router.get("/dashboard")
def dashboard(
    context: SessionContext = Depends(require_doctor_page),
    db: Session = Depends(get_db)
):
    """Doctor record plus appointments, newest first."""
    try:
        doctor = DoctorService(db).get_by_doctor_id(context.doctor_id)
        if not doctor:
            raise LoginRequired("/doctorLogin")
        appointments = AppointmentService(db).list_for_doctor(context.doctor_id)
    except SQLAlchemyError as e:
        logger.error(f"Dashboard error: {str(e)}")
        raise ServerError("Error loading dashboard", str(e))

    return {
        "success": True,
        "doctor": DoctorResponse.model_validate(doctor).to_json(),
        "appointments": [
            AppointmentResponse.model_validate(a).to_json() for a in appointments
        ],
    }

@router.get("/profile")
def get_profile(
    context: SessionContext = Depends(require_doctor),
    db: Session = Depends(get_db)
):
    try:
        doctor = DoctorService(db).get_by_doctor_id(context.doctor_id)
    except SQLAlchemyError as e:
        logger.error(f"Profile fetch error: {str(e)}")
        raise ServerError("Error fetching profile", str(e))

    if not doctor:
        raise NotFoundError("Doctor not found")

    return {"success": True, "doctor": DoctorResponse.model_validate(doctor).to_json()}

@router.post("/profile")
@router.post("/profile/update")
def update_profile(
    profile_data: DoctorProfileUpdate,
    context: SessionContext = Depends(require_doctor),
    db: Session = Depends(get_db)
):
    """Update the self-service profile fields."""
    try:
        doctor = DoctorService(db).update_profile(context.doctor_id, profile_data)
    except SQLAlchemyError as e:
        logger.error(f"Profile update error: {str(e)}")
        raise ServerError("Error updating profile", str(e))

    return {
        "success": True,
        "message": "Profile updated successfully",
        "doctor": DoctorResponse.model_validate(doctor).to_json(),
    }

@router.post("/profile/picture")
async def upload_profile_picture(
    profile_picture: Optional[UploadFile] = File(None, alias="profilePicture"),
    context: SessionContext = Depends(require_doctor),
    db: Session = Depends(get_db),
    uploader: CloudinaryUploader = Depends(get_media_uploader)
):
    if profile_picture is None:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"success": False, "message": "No file uploaded"}
        )

    try:
        data = await profile_picture.read()
        result = await uploader.upload(
            data, profile_picture.filename or "profile", folder=PROFILE_PICTURE_FOLDER
        )
        doctor = await run_in_threadpool(
            DoctorService(db).set_profile_picture,
            context.doctor_id, result.url, result.public_id
        )
    except (UploadError, SQLAlchemyError) as e:
        logger.error(f"Profile picture upload error: {str(e)}")
        raise ServerError("Error uploading profile picture", str(e))

    return {
        "success": True,
        "message": "Profile picture uploaded successfully",
        "profilePicture": result.url,
        "doctor": DoctorResponse.model_validate(doctor).to_json(),
    }

@router.get("/appointments")
def list_appointments(
    context: SessionContext = Depends(require_doctor),
    db: Session = Depends(get_db)
):
    try:
        appointments = AppointmentService(db).list_for_doctor(context.doctor_id)
    except SQLAlchemyError as e:
        logger.error(f"Appointments fetch error: {str(e)}")
        raise ServerError("Error fetching appointments", str(e))

    return {
        "success": True,
        "appointments": [
            AppointmentResponse.model_validate(a).to_json() for a in appointments
        ],
    }

@router.post("/appointments/{appointment_id}/confirm")
def confirm_appointment(
    appointment_id: int,
    confirm_data: AppointmentConfirm,
    background_tasks: BackgroundTasks,
    context: SessionContext = Depends(require_doctor),
    db: Session = Depends(get_db),
    notifier: EmailNotifier = Depends(get_notifier)
):
    """Confirm an owned appointment, then notify the patient after responding."""
    try:
        appointment = AppointmentService(db).confirm(
            appointment_id, context.doctor_id, confirm_data
        )
        doctor = DoctorService(db).get_by_doctor_id(context.doctor_id)
    except SQLAlchemyError as e:
        logger.error(f"Appointment confirmation error: {str(e)}")
        raise ServerError("Error confirming appointment", str(e))

    # Detached snapshots; the db session is closed once the response is sent
    appointment_out = AppointmentResponse.model_validate(appointment)
    doctor_out = DoctorResponse.model_validate(doctor) if doctor else None
    background_tasks.add_task(send_confirmation_notice, notifier, appointment_out, doctor_out)

    return {
        "success": True,
        "message": "Appointment confirmed successfully. Patient will be notified.",
        "appointment": appointment_out.to_json(),
        "emailSent": True,
    }

@router.post("/logout")
def logout(
    request: Request,
    store: RedisSessionStore = Depends(get_session_store)
):
    """Destroy the current session. Without a session this is a no-op."""
    session_id = read_session_id(request)
    if session_id:
        try:
            store.destroy(session_id)
        except redis.RedisError as e:
            logger.error(f"Logout error: {str(e)}")
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"success": False, "message": "Error logging out"}
            )

    response = JSONResponse({"success": True, "message": "Logged out successfully"})
    clear_session_cookie(response)
    return response
