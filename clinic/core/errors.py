from typing import Optional
from fastapi import HTTPException, status


class ConflictError(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)

class AuthenticationError(HTTPException):
    def __init__(self, detail: str = "Authentication required"):
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)

class AuthorizationError(HTTPException):
    def __init__(self, detail: str = "Not enough permissions"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)

class NotFoundError(HTTPException):
    def __init__(self, detail: str = "Not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)

class ServerError(HTTPException):
    """Unexpected or downstream failure.

    ``internal`` carries the underlying error text; it is only exposed to
    clients when the application runs with ``DEBUG`` enabled.
    """

    def __init__(self, detail: str, internal: Optional[str] = None):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail
        )
        self.internal = internal

class LoginRequired(Exception):
    """Raised by page routes; rendered as a redirect to ``redirect_url``."""

    def __init__(self, redirect_url: str):
        self.redirect_url = redirect_url
