from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from ..models.doctor import Doctor, DoctorStatus
from ..core.errors import ConflictError, NotFoundError, ServerError
from ..core.security import get_password_hash
from ..schemas.doctor import DoctorRegister, DoctorProfileUpdate, normalize_email
from .identifiers import IdentifierExhausted, generate_unique_code

logger = logging.getLogger(__name__)

DUPLICATE_EMAIL = "Doctor with this email already exists"
# Stored lowercased so search is case-insensitive
SEARCHABLE_FIELDS = ("specialization", "location")

class DoctorService:
    def __init__(self, db: Session):
        self.db = db

    def get_by_doctor_id(self, doctor_id: str) -> Optional[Doctor]:
        return self.db.query(Doctor).filter(Doctor.doctor_id == doctor_id).first()

    def get_by_email(self, email: str) -> Optional[Doctor]:
        return self.db.query(Doctor).filter(
            func.lower(Doctor.email) == normalize_email(email)
        ).first()

    def _doctor_id_taken(self, doctor_id: str) -> bool:
        return self.get_by_doctor_id(doctor_id) is not None

    def register(self, data: DoctorRegister, max_attempts: int = 5) -> Doctor:
        """Create a pending doctor account with a fresh doctor identifier."""
        if self.get_by_email(data.email):
            raise ConflictError(DUPLICATE_EMAIL)

        password_hash = get_password_hash(data.password)

        for attempt in range(1, max_attempts + 1):
            try:
                doctor_id = generate_unique_code(self._doctor_id_taken, max_attempts)
            except IdentifierExhausted as e:
                raise ServerError("Error registering doctor", str(e))

            doctor = Doctor(
                doctor_id=doctor_id,
                email=data.email,
                password_hash=password_hash,
                name=data.name,
                phone=data.phone,
                gender=data.gender,
                specialization=data.specialization.lower(),
                location=data.location.lower(),
                hospital_name=data.hospital_name or "",
                status=DoctorStatus.PENDING,
            )
            self.db.add(doctor)
            try:
                self.db.commit()
            except IntegrityError:
                # Lost a race on either unique column
                self.db.rollback()
                if self.get_by_email(data.email):
                    raise ConflictError(DUPLICATE_EMAIL)
                logger.warning(
                    f"Doctor id {doctor_id} collided on insert (attempt {attempt}), retrying"
                )
                continue

            self.db.refresh(doctor)
            logger.info(f"Registered doctor {doctor.doctor_id} ({doctor.email})")
            return doctor

        raise ServerError(
            "Error registering doctor",
            f"No free doctor identifier after {max_attempts} attempts"
        )

    def update_profile(self, doctor_id: str, data: DoctorProfileUpdate) -> Doctor:
        doctor = self.get_by_doctor_id(doctor_id)
        if not doctor:
            raise NotFoundError("Doctor not found")

        for field, value in data.model_dump(exclude_unset=True).items():
            if value is None:
                continue
            if field in SEARCHABLE_FIELDS:
                value = value.lower()
            setattr(doctor, field, value)

        self.db.commit()
        self.db.refresh(doctor)
        return doctor

    def set_profile_picture(self, doctor_id: str, url: str, public_id: str) -> Doctor:
        doctor = self.get_by_doctor_id(doctor_id)
        if not doctor:
            raise NotFoundError("Doctor not found")

        doctor.profile_picture = url
        doctor.profile_picture_public_id = public_id
        self.db.commit()
        self.db.refresh(doctor)
        return doctor

    def list_by_status(self, status: Optional[DoctorStatus] = None) -> List[Doctor]:
        query = self.db.query(Doctor)
        if status:
            query = query.filter(Doctor.status == status)
        return query.order_by(Doctor.created_at.desc(), Doctor.id.desc()).all()

    def set_status(self, doctor_id: str, status: DoctorStatus) -> Doctor:
        """Admin review of a doctor account."""
        doctor = self.get_by_doctor_id(doctor_id)
        if not doctor:
            raise NotFoundError("Doctor not found")

        doctor.status = status
        self.db.commit()
        self.db.refresh(doctor)
        logger.info(f"Doctor {doctor_id} marked {status.value}")
        return doctor

    def search_approved(
        self,
        specialization: Optional[str] = None,
        location: Optional[str] = None,
    ) -> List[Doctor]:
        query = self.db.query(Doctor).filter(Doctor.status == DoctorStatus.APPROVED)
        if specialization:
            query = query.filter(
                func.lower(Doctor.specialization) == specialization.strip().lower()
            )
        if location:
            query = query.filter(func.lower(Doctor.location) == location.strip().lower())
        return query.order_by(Doctor.name).all()
