from fastapi import APIRouter, Depends, Form, Query, status
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from typing import Optional
import logging

import redis

from ...core.database import get_db
from ...core.errors import ServerError
from ...core.security import SessionContext, UserRole
from ...core.session import RedisSessionStore, set_session_cookie
from ...api.deps import get_session_store, require_admin, require_admin_page
from ...models.doctor import DoctorStatus
from ...schemas.doctor import DoctorResponse
from ...services.auth_service import AuthService
from ...services.doctor_service import DoctorService

logger = logging.getLogger(__name__)

# Login lives at /admin, the review pages under /adminPage
login_router = APIRouter(tags=["Admin"])
router = APIRouter(prefix="/adminPage", tags=["Admin"])

@login_router.post("/admin")
def admin_login(
    email: str = Form(""),
    password: str = Form(""),
    db: Session = Depends(get_db),
    store: RedisSessionStore = Depends(get_session_store)
):
    """Admin login from the landing page form."""
    try:
        admin = AuthService(db).authenticate_admin(email, password)
        if not admin:
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content={"status": 400, "valid": "Invalid Email!"}
            )
        session_id = store.create({"role": UserRole.ADMIN.value, "email": admin.email})
    except (SQLAlchemyError, redis.RedisError) as e:
        logger.error(f"Admin login error: {str(e)}")
        raise ServerError("Server error during admin login", str(e))

    response = RedirectResponse("/adminPage", status_code=status.HTTP_303_SEE_OTHER)
    set_session_cookie(response, session_id)
    return response

def _doctor_list(doctors) -> list:
    return [DoctorResponse.model_validate(d).to_json() for d in doctors]

@router.get("")
def admin_page(
    context: SessionContext = Depends(require_admin_page),
    db: Session = Depends(get_db)
):
    """Doctors waiting for review."""
    try:
        doctors = DoctorService(db).list_by_status(DoctorStatus.PENDING)
    except SQLAlchemyError as e:
        logger.error(f"Admin page error: {str(e)}")
        raise ServerError("Error loading admin page", str(e))

    return {"success": True, "admin": context.email, "pendingDoctors": _doctor_list(doctors)}

@router.get("/doctors")
def list_doctors(
    status_filter: Optional[DoctorStatus] = Query(None, alias="status"),
    _: SessionContext = Depends(require_admin),
    db: Session = Depends(get_db)
):
    try:
        doctors = DoctorService(db).list_by_status(status_filter)
    except SQLAlchemyError as e:
        logger.error(f"Doctor listing error: {str(e)}")
        raise ServerError("Error fetching doctors", str(e))

    return {"success": True, "doctors": _doctor_list(doctors)}

def _review(doctor_id: str, new_status: DoctorStatus, db: Session) -> dict:
    try:
        doctor = DoctorService(db).set_status(doctor_id, new_status)
    except SQLAlchemyError as e:
        logger.error(f"Doctor review error: {str(e)}")
        raise ServerError("Error updating doctor status", str(e))

    return {
        "success": True,
        "message": f"Doctor {new_status.value}",
        "doctor": DoctorResponse.model_validate(doctor).to_json(),
    }

@router.post("/doctors/{doctor_id}/approve")
def approve_doctor(
    doctor_id: str,
    _: SessionContext = Depends(require_admin),
    db: Session = Depends(get_db)
):
    return _review(doctor_id, DoctorStatus.APPROVED, db)

@router.post("/doctors/{doctor_id}/reject")
def reject_doctor(
    doctor_id: str,
    _: SessionContext = Depends(require_admin),
    db: Session = Depends(get_db)
):
    return _review(doctor_id, DoctorStatus.REJECTED, db)
