from sqlalchemy import func
from sqlalchemy.orm import Session
from typing import Optional
import logging

from ..models.admin import Admin
from ..models.doctor import Doctor, DoctorStatus
from ..core.errors import AuthenticationError, AuthorizationError
from ..core.security import verify_password, get_password_hash
from ..schemas.doctor import DoctorLogin, normalize_email

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"
PENDING_APPROVAL = "Your account is pending approval. Please wait for admin approval."
REJECTED_ACCOUNT = "Your account registration has been rejected."

class AuthService:
    def __init__(self, db: Session):
        self.db = db

    def authenticate_doctor(self, login_data: DoctorLogin) -> Doctor:
        """Check doctor credentials. Only approved accounts may log in."""
        doctor = self.db.query(Doctor).filter(
            func.lower(Doctor.email) == normalize_email(login_data.email)
        ).first()

        if not doctor:
            raise AuthenticationError(INVALID_CREDENTIALS)

        # Approval is checked before the password
        if doctor.status == DoctorStatus.REJECTED:
            raise AuthorizationError(REJECTED_ACCOUNT)
        if doctor.status != DoctorStatus.APPROVED:
            raise AuthorizationError(PENDING_APPROVAL)

        if not verify_password(login_data.password, doctor.password_hash):
            raise AuthenticationError(INVALID_CREDENTIALS)

        return doctor

    def authenticate_admin(self, email: str, password: str) -> Optional[Admin]:
        """Return the admin for a correct email/password pair, otherwise None."""
        if not email or not password:
            return None

        admin = self.db.query(Admin).filter(Admin.email == email).first()
        if not admin or not verify_password(password, admin.password_hash):
            return None
        return admin

    def seed_admin(self, email: Optional[str], password: Optional[str]) -> Optional[Admin]:
        """Create the configured admin account if it does not exist yet."""
        if not email or not password:
            logger.warning("ADMIN_EMAIL/ADMIN_PASSWORD not set; admin login disabled")
            return None

        admin = self.db.query(Admin).filter(Admin.email == email).first()
        if admin:
            return admin

        admin = Admin(email=email, password_hash=get_password_hash(password))
        self.db.add(admin)
        self.db.commit()
        self.db.refresh(admin)
        logger.info(f"Seeded admin account {email}")
        return admin
