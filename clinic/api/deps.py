from fastapi import Depends, Request
from typing import Optional
import logging

import redis

from ..core.config import settings
from ..core.errors import AuthenticationError, LoginRequired, ServerError
from ..core.security import SessionContext, UserRole, unsign_session_id
from ..core.session import RedisSessionStore
from ..services.media import CloudinaryUploader
from ..services.notifications import EmailNotifier

logger = logging.getLogger(__name__)

# Clients built at startup and held on app.state
def get_session_store(request: Request) -> RedisSessionStore:
    return request.app.state.session_store

def get_media_uploader(request: Request) -> CloudinaryUploader:
    return request.app.state.media_uploader

def get_notifier(request: Request) -> EmailNotifier:
    return request.app.state.notifier

def read_session_id(request: Request) -> Optional[str]:
    """Session id from the signed cookie, if any."""
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if not token:
        return None
    return unsign_session_id(token)

def get_session_context(
    request: Request,
    store: RedisSessionStore = Depends(get_session_store)
) -> Optional[SessionContext]:
    """Load the session record referenced by the request cookie."""
    session_id = read_session_id(request)
    if not session_id:
        return None

    try:
        record = store.get(session_id)
    except redis.RedisError as e:
        logger.error(f"Session store unavailable: {str(e)}")
        raise ServerError("Session store unavailable", str(e))

    if not record or "role" not in record:
        return None
    return SessionContext(session_id=session_id, **record)

# Role gates. API variants answer 401, page variants redirect to a login page.
def require_role(role: UserRole, login_url: Optional[str] = None):
    async def role_checker(
        context: Optional[SessionContext] = Depends(get_session_context)
    ) -> SessionContext:
        if context is None or context.role != role:
            if login_url:
                raise LoginRequired(login_url)
            raise AuthenticationError(f"{role.value.capitalize()} login required")
        if role == UserRole.DOCTOR and not context.doctor_id:
            if login_url:
                raise LoginRequired(login_url)
            raise AuthenticationError("Doctor login required")
        return context

    return role_checker

require_doctor = require_role(UserRole.DOCTOR)
require_doctor_page = require_role(UserRole.DOCTOR, login_url="/doctorLogin")
require_patient = require_role(UserRole.PATIENT)
require_patient_page = require_role(UserRole.PATIENT, login_url="/")
require_admin = require_role(UserRole.ADMIN)
require_admin_page = require_role(UserRole.ADMIN, login_url="/")
